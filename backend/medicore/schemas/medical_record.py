import datetime as dt
from typing import Optional

from pydantic import Field, field_validator

from medicore.schemas.common import CamelModel, OrmModel


class PrescriptionIn(CamelModel):
    medication: Optional[str] = None
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    duration: Optional[str] = None
    instructions: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return all(
            (value or "").strip()
            for value in (self.medication, self.dosage, self.frequency, self.duration)
        )


class PrescriptionOut(OrmModel):
    id: str
    medication: str
    dosage: str
    frequency: str
    duration: str
    instructions: Optional[str] = None


class MedicalRecordCreate(CamelModel):
    patient_id: str = Field(min_length=1)
    doctor_id: int
    date: dt.date
    diagnosis: str
    symptoms: list[str] = Field(default_factory=list)
    notes: Optional[str] = ""
    prescriptions: list[PrescriptionIn] = Field(default_factory=list)

    @field_validator("diagnosis")
    @classmethod
    def diagnosis_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Diagnosis is required")
        return value


class MedicalRecordUpdate(CamelModel):
    diagnosis: str
    symptoms: Optional[list[str]] = None
    notes: Optional[str] = None

    @field_validator("diagnosis")
    @classmethod
    def diagnosis_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Diagnosis is required")
        return value


class MedicalRecordOut(OrmModel):
    id: str
    patient_id: str
    patient_name: Optional[str] = None
    doctor_id: int
    doctor_name: Optional[str] = None
    date: dt.date
    diagnosis: str
    symptoms: list[str]
    notes: Optional[str] = None
    version: int
    updated_by: Optional[int] = None
    prescriptions: list[PrescriptionOut]
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

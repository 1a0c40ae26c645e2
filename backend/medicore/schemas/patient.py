import datetime as dt
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from medicore.models.patient import Gender, PatientStatus
from medicore.schemas.common import CamelModel, OrmModel

BLOOD_GROUPS = {"A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"}


class PatientBase(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    age: int = Field(ge=0, le=150)
    gender: Gender
    blood_group: str
    phone: str = Field(min_length=1, max_length=50)
    email: EmailStr
    address: str = Field(min_length=1)
    emergency_contact: str = Field(min_length=1, max_length=200)
    medical_history: list[str] = Field(default_factory=list)

    @field_validator("name", "address", "emergency_contact", "phone", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("blood_group")
    @classmethod
    def known_blood_group(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in BLOOD_GROUPS:
            raise ValueError("Valid blood group is required")
        return value


class PatientCreate(PatientBase):
    pass


class PatientUpdate(PatientBase):
    pass


class PatientOut(OrmModel):
    id: str
    name: str
    age: int
    gender: Gender
    blood_group: str
    phone: str
    email: str
    address: str
    emergency_contact: str
    medical_history: list[str]
    status: PatientStatus
    registration_date: dt.date
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

import datetime as dt
from typing import Optional

from pydantic import Field, field_validator

from medicore.models.appointment import AppointmentStatus
from medicore.schemas.common import CamelModel, ClockTime, OrmModel


def _require_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Reason is required")
    return value


class AppointmentCreate(CamelModel):
    patient_id: str = Field(min_length=1)
    doctor_id: int
    date: dt.date
    time: ClockTime
    duration: int = Field(default=30, ge=15)
    reason: str
    notes: Optional[str] = ""

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, value: str) -> str:
        return _require_text(value)


class AppointmentUpdate(CamelModel):
    patient_id: Optional[str] = None
    doctor_id: Optional[int] = None
    date: dt.date
    time: ClockTime
    duration: Optional[int] = Field(default=None, ge=15)
    reason: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _require_text(value)


class AppointmentStatusUpdate(CamelModel):
    status: str


class AppointmentOut(OrmModel):
    id: str
    patient_id: str
    patient_name: Optional[str] = None
    doctor_id: int
    doctor_name: Optional[str] = None
    department: str
    date: dt.date
    time: ClockTime
    duration: int
    status: AppointmentStatus
    reason: str
    notes: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

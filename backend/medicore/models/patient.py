from __future__ import annotations

import enum
from datetime import date

from sqlalchemy import JSON, Date, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medicore.models.base import Base, TimestampMixin


class Gender(str, enum.Enum):
    male = "Male"
    female = "Female"
    other = "Other"


class PatientStatus(str, enum.Enum):
    active = "Active"
    archived = "Archived"


class Patient(Base, TimestampMixin):
    __tablename__ = "patients"

    id: Mapped[str] = mapped_column(String(20), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    gender: Mapped[Gender] = mapped_column(
        Enum(Gender, name="gender", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    blood_group: Mapped[str] = mapped_column(String(5), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    emergency_contact: Mapped[str] = mapped_column(String(200), nullable=False)
    medical_history: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    status: Mapped[PatientStatus] = mapped_column(
        Enum(PatientStatus, name="patient_status", values_callable=lambda e: [m.value for m in e]),
        default=PatientStatus.active,
        nullable=False,
    )
    registration_date: Mapped[date] = mapped_column(Date, nullable=False)

    appointments = relationship(
        "Appointment", back_populates="patient", cascade="all, delete-orphan"
    )
    invoices = relationship(
        "Invoice", back_populates="patient", cascade="all, delete-orphan"
    )
    medical_records = relationship(
        "MedicalRecord", back_populates="patient", cascade="all, delete-orphan"
    )

from __future__ import annotations

import datetime as dt

from sqlalchemy import JSON, Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medicore.models.base import Base, TimestampMixin


class MedicalRecord(Base, TimestampMixin):
    __tablename__ = "medical_records"

    id: Mapped[str] = mapped_column(String(20), primary_key=True)
    patient_id: Mapped[str] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    doctor_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    diagnosis: Mapped[str] = mapped_column(Text, nullable=False)
    symptoms: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    patient = relationship("Patient", back_populates="medical_records", lazy="joined")
    doctor = relationship("User", foreign_keys=[doctor_id], lazy="joined")
    prescriptions = relationship(
        "Prescription",
        back_populates="medical_record",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Prescription.id",
    )

    @property
    def patient_name(self) -> str | None:
        return self.patient.name if self.patient else None

    @property
    def doctor_name(self) -> str | None:
        return self.doctor.name if self.doctor else None


class Prescription(Base):
    __tablename__ = "medical_record_prescriptions"

    id: Mapped[str] = mapped_column(String(20), primary_key=True)
    medical_record_id: Mapped[str] = mapped_column(
        ForeignKey("medical_records.id", ondelete="CASCADE"), nullable=False, index=True
    )
    medication: Mapped[str] = mapped_column(String(200), nullable=False)
    dosage: Mapped[str] = mapped_column(String(100), nullable=False)
    frequency: Mapped[str] = mapped_column(String(100), nullable=False)
    duration: Mapped[str] = mapped_column(String(100), nullable=False)
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)

    medical_record = relationship("MedicalRecord", back_populates="prescriptions")

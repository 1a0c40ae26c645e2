from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, time

from sqlalchemy import select
from sqlalchemy.orm import Session

from medicore.core.settings import settings
from medicore.models.appointment import Appointment, AppointmentStatus
from medicore.models.user import User

logger = logging.getLogger("medicore.scheduling")


@dataclass(frozen=True)
class BookedSlot:
    appointment_id: str
    start: time
    duration: int


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    # Half-open intervals: touching endpoints do not overlap.
    return start_a < end_b and start_b < end_a


def find_conflicts(slots: Iterable[BookedSlot], start: time, duration: int) -> list[str]:
    proposed_start = to_minutes(start)
    proposed_end = proposed_start + duration
    conflicts: list[str] = []
    for slot in slots:
        slot_start = to_minutes(slot.start)
        if intervals_overlap(slot_start, slot_start + slot.duration, proposed_start, proposed_end):
            conflicts.append(slot.appointment_id)
    return conflicts


def load_booked_slots(
    db: Session,
    doctor_id: int,
    on_date: date,
    exclude_appointment_id: str | None = None,
) -> list[BookedSlot]:
    stmt = select(Appointment.id, Appointment.time, Appointment.duration).where(
        Appointment.doctor_id == doctor_id,
        Appointment.date == on_date,
        Appointment.status != AppointmentStatus.cancelled,
    )
    if exclude_appointment_id:
        stmt = stmt.where(Appointment.id != exclude_appointment_id)
    return [
        BookedSlot(appointment_id=row.id, start=row.time, duration=row.duration)
        for row in db.execute(stmt)
    ]


def has_conflict(
    db: Session,
    doctor_id: int,
    on_date: date,
    proposed_start: time,
    duration_minutes: int | None = None,
    exclude_appointment_id: str | None = None,
) -> bool:
    duration = (
        settings.default_appointment_duration if duration_minutes is None else duration_minutes
    )
    if duration <= 0:
        raise ValueError("Appointment duration must be positive")
    slots = load_booked_slots(db, doctor_id, on_date, exclude_appointment_id)
    conflicts = find_conflicts(slots, proposed_start, duration)
    if conflicts:
        logger.info(
            "Slot conflict for doctor %s on %s at %s (%s min): %s",
            doctor_id,
            on_date.isoformat(),
            proposed_start.strftime("%H:%M"),
            duration,
            ", ".join(conflicts),
        )
    return bool(conflicts)


def lock_doctor_schedule(db: Session, doctor_id: int) -> User | None:
    """Lock the doctor's row so concurrent bookings for them run one at a time.

    Must be called inside the transaction that will insert or move the
    appointment. SQLite ignores ``FOR UPDATE``.
    """
    return db.scalar(select(User).where(User.id == doctor_id).with_for_update())

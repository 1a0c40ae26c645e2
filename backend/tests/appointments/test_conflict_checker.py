import random
from datetime import date, time

import pytest

from medicore.services.scheduling import (
    BookedSlot,
    find_conflicts,
    has_conflict,
    intervals_overlap,
    to_minutes,
)


def test_to_minutes_counts_from_midnight():
    assert to_minutes(time(0, 0)) == 0
    assert to_minutes(time(9, 30)) == 570
    assert to_minutes(time(23, 59)) == 1439


@pytest.mark.parametrize(
    ("a", "b", "expected"),
    [
        ((540, 570), (555, 585), True),
        ((540, 600), (550, 560), True),
        ((550, 560), (540, 600), True),
        ((540, 570), (540, 570), True),
        ((540, 570), (570, 600), False),
        ((570, 600), (540, 570), False),
        ((540, 570), (600, 630), False),
    ],
)
def test_intervals_overlap_is_half_open(a, b, expected):
    assert intervals_overlap(a[0], a[1], b[0], b[1]) is expected


def test_find_conflicts_returns_overlapping_ids():
    slots = [
        BookedSlot(appointment_id="A001", start=time(9, 0), duration=30),
        BookedSlot(appointment_id="A002", start=time(10, 0), duration=60),
    ]
    assert find_conflicts(slots, time(9, 15), 30) == ["A001"]
    assert find_conflicts(slots, time(9, 30), 30) == []
    assert find_conflicts(slots, time(9, 45), 30) == ["A002"]
    assert find_conflicts(slots, time(8, 0), 240) == ["A001", "A002"]


def test_find_conflicts_with_no_bookings():
    assert find_conflicts([], time(9, 0), 30) == []


def test_has_conflict_reads_doctor_day(api_client, db_session, doctor, create_patient, book):
    patient = create_patient()
    res = book(patient["id"], doctor.id, date="2026-03-02", time="09:00", duration=30)
    assert res.status_code == 201, res.text
    appointment_id = res.json()["data"]["id"]
    day = date(2026, 3, 2)

    assert has_conflict(db_session, doctor.id, day, time(9, 15)) is True
    assert has_conflict(db_session, doctor.id, day, time(9, 30)) is False
    assert has_conflict(db_session, doctor.id, day, time(8, 30)) is False
    assert has_conflict(db_session, doctor.id, day, time(8, 45), duration_minutes=30) is True
    assert has_conflict(db_session, doctor.id, date(2026, 3, 3), time(9, 0)) is False
    assert (
        has_conflict(db_session, doctor.id, day, time(9, 0), exclude_appointment_id=appointment_id)
        is False
    )


def test_has_conflict_ignores_cancelled(api_client, auth_headers, db_session, doctor, create_patient, book):
    patient = create_patient()
    appointment_id = book(patient["id"], doctor.id, time="11:00").json()["data"]["id"]
    res = api_client.patch(
        f"/api/appointments/{appointment_id}/status",
        json={"status": "Cancelled"},
        headers=auth_headers,
    )
    assert res.status_code == 200, res.text

    assert has_conflict(db_session, doctor.id, date(2026, 3, 2), time(11, 0)) is False


@pytest.mark.parametrize("duration", [0, -15])
def test_has_conflict_rejects_non_positive_duration(db_session, duration):
    with pytest.raises(ValueError):
        has_conflict(db_session, 1, date(2026, 3, 2), time(9, 0), duration_minutes=duration)


def _clock(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def _random_day(rng: random.Random) -> list[BookedSlot]:
    """Build a doctor's day of back-to-back or gapped bookings from 07:00."""
    slots = []
    cursor = 7 * 60
    for n in range(rng.randint(1, 10)):
        start = cursor + rng.choice([0, 0, 5, 15, 30])
        duration = rng.choice([10, 15, 30, 45, 60])
        slots.append(BookedSlot(appointment_id=f"A{n + 1:03d}", start=_clock(start), duration=duration))
        cursor = start + duration
    return slots


@pytest.mark.parametrize("seed", range(25))
def test_random_non_overlapping_day_has_no_conflicts(seed):
    rng = random.Random(seed)
    slots = _random_day(rng)

    for slot in slots:
        others = [other for other in slots if other is not slot]
        assert find_conflicts(others, slot.start, slot.duration) == []

    # Any gap between consecutive bookings can be filled exactly.
    for before, after in zip(slots, slots[1:]):
        gap_start = to_minutes(before.start) + before.duration
        gap = to_minutes(after.start) - gap_start
        if gap > 0:
            assert find_conflicts(slots, _clock(gap_start), gap) == []


@pytest.mark.parametrize("seed", range(25))
def test_random_overlapping_booking_is_detected(seed):
    rng = random.Random(seed)
    slots = _random_day(rng)
    target = rng.choice(slots)
    target_start = to_minutes(target.start)
    duration = rng.choice([5, 15, 30, 60])
    start = rng.randint(target_start - duration + 1, target_start + target.duration - 1)

    assert target.appointment_id in find_conflicts(slots, _clock(start), duration)

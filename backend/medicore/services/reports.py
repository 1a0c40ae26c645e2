from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import extract, func, select
from sqlalchemy.orm import Session

from medicore.models.appointment import Appointment
from medicore.models.invoice import Invoice, InvoiceStatus
from medicore.models.patient import Patient, PatientStatus
from medicore.models.user import Role, User
from medicore.schemas.reports import (
    DashboardStatsOut,
    DepartmentShareOut,
    MonthlyPointOut,
    ReportsOverviewOut,
    ReportsStatsOut,
)
from medicore.services.billing import normalize_money


def _count(db: Session, stmt) -> int:
    return int(db.scalar(stmt) or 0)


def _sum(db: Session, stmt) -> Decimal:
    return normalize_money(db.scalar(stmt))


def month_keys(anchor: date, months: int) -> list[tuple[int, int]]:
    """Return ``months`` (year, month) pairs ending with ``anchor``'s month, oldest first."""
    keys: list[tuple[int, int]] = []
    year, month = anchor.year, anchor.month
    for _ in range(months):
        keys.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def month_bounds(anchor: date) -> tuple[date, date]:
    start = anchor.replace(day=1)
    if start.month == 12:
        return start, start.replace(year=start.year + 1, month=1)
    return start, start.replace(month=start.month + 1)


def _monthly_counts(db: Session, column, value=None) -> dict[tuple[int, int], int | Decimal]:
    year = extract("year", column)
    month = extract("month", column)
    measure = func.count() if value is None else func.coalesce(func.sum(value), 0)
    stmt = select(year, month, measure).group_by(year, month)
    return {(int(y), int(m)): total for y, m, total in db.execute(stmt)}


def dashboard_stats(db: Session, today: date) -> DashboardStatsOut:
    month_start, next_month_start = month_bounds(today)
    return DashboardStatsOut(
        total_patients=_count(db, select(func.count(Patient.id))),
        active_patients=_count(
            db, select(func.count(Patient.id)).where(Patient.status == PatientStatus.active)
        ),
        today_appointments=_count(
            db, select(func.count(Appointment.id)).where(Appointment.date == today)
        ),
        pending_invoices=_count(
            db,
            select(func.count(Invoice.id)).where(
                Invoice.status.in_([InvoiceStatus.pending, InvoiceStatus.overdue])
            ),
        ),
        monthly_revenue=_sum(
            db,
            select(func.sum(Invoice.paid_amount)).where(
                Invoice.date >= month_start,
                Invoice.date < next_month_start,
                Invoice.status == InvoiceStatus.paid,
            ),
        ),
    )


def reports_stats(db: Session, today: date, months: int = 6) -> ReportsStatsOut:
    overview = ReportsOverviewOut(
        total_patients=_count(db, select(func.count(Patient.id))),
        active_patients=_count(
            db, select(func.count(Patient.id)).where(Patient.status == PatientStatus.active)
        ),
        total_doctors=_count(
            db,
            select(func.count(User.id)).where(User.role == Role.doctor, User.is_active.is_(True)),
        ),
        total_revenue=_sum(db, select(func.sum(Invoice.total_amount))),
        total_paid=_sum(db, select(func.sum(Invoice.paid_amount))),
    )

    patients = _monthly_counts(db, Patient.registration_date)
    appointments = _monthly_counts(db, Appointment.date)
    revenue = _monthly_counts(db, Invoice.date, Invoice.paid_amount)
    monthly = [
        MonthlyPointOut(
            month=f"{year:04d}-{month:02d}",
            patients=int(patients.get((year, month), 0)),
            appointments=int(appointments.get((year, month), 0)),
            revenue=normalize_money(revenue.get((year, month), 0)),
        )
        for year, month in month_keys(today, months)
    ]

    dept_rows = db.execute(
        select(User.department, func.count(User.id))
        .where(User.role == Role.doctor, User.department.is_not(None))
        .group_by(User.department)
        .order_by(func.count(User.id).desc(), User.department.asc())
    ).all()
    doctors_with_department = sum(count for _, count in dept_rows)
    departments = [
        DepartmentShareOut(
            name=department or "General",
            count=count,
            value=round(count * 100.0 / doctors_with_department, 2),
        )
        for department, count in dept_rows
    ]
    return ReportsStatsOut(overview=overview, monthly_data=monthly, department_data=departments)

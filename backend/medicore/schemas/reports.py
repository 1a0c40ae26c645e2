from datetime import datetime
from typing import Optional

from medicore.schemas.appointment import AppointmentOut
from medicore.schemas.common import CamelModel, Money, OrmModel
from medicore.schemas.patient import PatientOut


class DashboardStatsOut(CamelModel):
    total_patients: int
    active_patients: int
    today_appointments: int
    pending_invoices: int
    monthly_revenue: Money


class RecentActivityOut(CamelModel):
    recent_appointments: list[AppointmentOut]
    recent_patients: list[PatientOut]


class ReportsOverviewOut(CamelModel):
    total_patients: int
    active_patients: int
    total_doctors: int
    total_revenue: Money
    total_paid: Money


class MonthlyPointOut(CamelModel):
    month: str
    patients: int
    appointments: int
    revenue: Money


class DepartmentShareOut(CamelModel):
    name: str
    count: int
    value: float


class ReportsStatsOut(CamelModel):
    overview: ReportsOverviewOut
    monthly_data: list[MonthlyPointOut]
    department_data: list[DepartmentShareOut]


class AuditLogOut(OrmModel):
    id: int
    created_at: datetime
    actor_user_id: Optional[int] = None
    actor_email: Optional[str] = None
    action: str
    entity_type: str
    entity_id: str
    request_id: Optional[str] = None

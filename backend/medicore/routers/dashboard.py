from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from medicore.db.session import get_db
from medicore.deps import get_current_user
from medicore.models.appointment import Appointment
from medicore.models.patient import Patient, PatientStatus
from medicore.schemas.appointment import AppointmentOut
from medicore.schemas.common import ApiResponse, envelope
from medicore.schemas.patient import PatientOut
from medicore.schemas.reports import DashboardStatsOut, RecentActivityOut
from medicore.services.identifiers import id_ordering
from medicore.services.reports import dashboard_stats

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=ApiResponse[DashboardStatsOut])
def get_dashboard_stats(
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    return envelope(dashboard_stats(db, date.today()))


@router.get("/recent", response_model=ApiResponse[RecentActivityOut])
def get_recent_activity(
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    appointments = db.scalars(
        select(Appointment)
        .order_by(Appointment.created_at.desc(), *id_ordering(Appointment.id, descending=True))
        .limit(limit)
    )
    patients = db.scalars(
        select(Patient)
        .where(Patient.status == PatientStatus.active)
        .order_by(Patient.created_at.desc(), *id_ordering(Patient.id, descending=True))
        .limit(limit)
    )
    return envelope(
        RecentActivityOut(
            recent_appointments=[AppointmentOut.model_validate(row) for row in appointments],
            recent_patients=[PatientOut.model_validate(row) for row in patients],
        )
    )

import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from medicore.core.settings import settings
from medicore.db.pagination import PageParams, fetch_page, page_params
from medicore.db.session import get_db
from medicore.deps import client_ip, get_current_user, require_admin
from medicore.models.appointment import Appointment, AppointmentStatus
from medicore.models.patient import Patient
from medicore.models.user import User
from medicore.schemas.appointment import (
    AppointmentCreate,
    AppointmentOut,
    AppointmentStatusUpdate,
    AppointmentUpdate,
)
from medicore.schemas.common import ApiResponse, PaginatedResponse, StatusOut, envelope, paginated
from medicore.services.audit import log_event, snapshot_model
from medicore.services.identifiers import (
    APPOINTMENT_PREFIX,
    allocate_id,
    id_ordering,
    retry_on_id_collision,
)
from medicore.services.scheduling import has_conflict, lock_doctor_schedule
from medicore.services.users import get_doctor

router = APIRouter(prefix="/appointments", tags=["appointments"])

SLOT_CONFLICT = "Time slot conflict detected"


def _get_appointment_or_404(db: Session, appointment_id: str) -> Appointment:
    appt = db.get(Appointment, appointment_id)
    if not appt:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    return appt


def _require_patient(db: Session, patient_id: str) -> Patient:
    patient = db.get(Patient, patient_id)
    if not patient:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
    return patient


def _require_doctor(db: Session, doctor_id: int) -> User:
    doctor = get_doctor(db, doctor_id)
    if not doctor:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found")
    return doctor


def _ensure_slot_free(
    db: Session,
    *,
    doctor_id: int,
    on_date: dt.date,
    start: dt.time,
    duration: int,
    exclude_appointment_id: str | None = None,
) -> None:
    lock_doctor_schedule(db, doctor_id)
    if has_conflict(
        db,
        doctor_id,
        on_date,
        start,
        duration_minutes=duration,
        exclude_appointment_id=exclude_appointment_id,
    ):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=SLOT_CONFLICT)


@router.get("", response_model=PaginatedResponse[AppointmentOut])
def list_appointments(
    search: Optional[str] = Query(default=None),
    status_filter: Optional[AppointmentStatus] = Query(default=None, alias="status"),
    on_date: Optional[dt.date] = Query(default=None, alias="date"),
    doctor_id: Optional[int] = Query(default=None, alias="doctorId"),
    patient_id: Optional[str] = Query(default=None, alias="patientId"),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    stmt = select(Appointment)
    if search and search.strip():
        like = f"%{search.strip()}%"
        stmt = stmt.join(Patient, Patient.id == Appointment.patient_id).where(
            or_(Patient.name.ilike(like), Appointment.id.ilike(like), Appointment.reason.ilike(like))
        )
    if status_filter is not None:
        stmt = stmt.where(Appointment.status == status_filter)
    if on_date is not None:
        stmt = stmt.where(Appointment.date == on_date)
    if doctor_id is not None:
        stmt = stmt.where(Appointment.doctor_id == doctor_id)
    if patient_id:
        stmt = stmt.where(Appointment.patient_id == patient_id)
    stmt = stmt.order_by(
        Appointment.date.desc(),
        Appointment.time.desc(),
        *id_ordering(Appointment.id, descending=True),
    )
    rows, total = fetch_page(db, stmt, params)
    return paginated(
        [AppointmentOut.model_validate(row) for row in rows],
        page=params.page,
        limit=params.limit,
        total=total,
    )


@router.get("/today", response_model=ApiResponse[list[AppointmentOut]])
def list_today(
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    stmt = (
        select(Appointment)
        .where(Appointment.date == dt.date.today())
        .order_by(Appointment.time.asc(), *id_ordering(Appointment.id))
    )
    return envelope([AppointmentOut.model_validate(row) for row in db.scalars(stmt)])


@router.get("/{appointment_id}", response_model=ApiResponse[AppointmentOut])
def get_appointment(
    appointment_id: str,
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    return envelope(AppointmentOut.model_validate(_get_appointment_or_404(db, appointment_id)))


@router.post("", response_model=ApiResponse[AppointmentOut], status_code=status.HTTP_201_CREATED)
def create_appointment(
    payload: AppointmentCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None, alias="X-Request-ID"),
):
    _require_patient(db, payload.patient_id)
    doctor = _require_doctor(db, payload.doctor_id)
    department = doctor.department or "General"

    def build() -> Appointment:
        _ensure_slot_free(
            db,
            doctor_id=payload.doctor_id,
            on_date=payload.date,
            start=payload.time,
            duration=payload.duration,
        )
        appt = Appointment(
            id=allocate_id(db, Appointment.id, APPOINTMENT_PREFIX),
            patient_id=payload.patient_id,
            doctor_id=payload.doctor_id,
            department=department,
            date=payload.date,
            time=payload.time,
            duration=payload.duration,
            status=AppointmentStatus.scheduled,
            reason=payload.reason,
            notes=payload.notes or "",
        )
        db.add(appt)
        db.flush()
        log_event(
            db,
            actor=user,
            action="appointment.created",
            entity_type="appointment",
            entity_id=appt.id,
            after_obj=appt,
            request_id=request_id,
            ip_address=client_ip(request),
        )
        return appt

    appt = retry_on_id_collision(db, build, attempts=settings.id_allocation_retries)
    db.refresh(appt)
    return envelope(AppointmentOut.model_validate(appt), "Appointment created successfully")


@router.put("/{appointment_id}", response_model=ApiResponse[AppointmentOut])
def update_appointment(
    appointment_id: str,
    payload: AppointmentUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None, alias="X-Request-ID"),
):
    appt = _get_appointment_or_404(db, appointment_id)
    patient_id = payload.patient_id or appt.patient_id
    doctor_id = payload.doctor_id if payload.doctor_id is not None else appt.doctor_id
    duration = payload.duration if payload.duration is not None else appt.duration
    if patient_id != appt.patient_id:
        _require_patient(db, patient_id)
    if doctor_id != appt.doctor_id:
        _require_doctor(db, doctor_id)

    if appt.status != AppointmentStatus.cancelled:
        _ensure_slot_free(
            db,
            doctor_id=doctor_id,
            on_date=payload.date,
            start=payload.time,
            duration=duration,
            exclude_appointment_id=appt.id,
        )

    before = snapshot_model(appt)
    appt.patient_id = patient_id
    appt.doctor_id = doctor_id
    appt.date = payload.date
    appt.time = payload.time
    appt.duration = duration
    if payload.reason is not None:
        appt.reason = payload.reason
    if payload.notes is not None:
        appt.notes = payload.notes
    db.flush()
    log_event(
        db,
        actor=user,
        action="appointment.updated",
        entity_type="appointment",
        entity_id=appt.id,
        before_data=before,
        after_obj=appt,
        request_id=request_id,
        ip_address=client_ip(request),
    )
    db.commit()
    db.refresh(appt)
    return envelope(AppointmentOut.model_validate(appt), "Appointment updated successfully")


@router.patch("/{appointment_id}/status", response_model=ApiResponse[StatusOut])
def update_appointment_status(
    appointment_id: str,
    payload: AppointmentStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None, alias="X-Request-ID"),
):
    try:
        new_status = AppointmentStatus(payload.status)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid status")

    appt = _get_appointment_or_404(db, appointment_id)
    previous = appt.status
    if previous == AppointmentStatus.cancelled and new_status != AppointmentStatus.cancelled:
        _ensure_slot_free(
            db,
            doctor_id=appt.doctor_id,
            on_date=appt.date,
            start=appt.time,
            duration=appt.duration,
            exclude_appointment_id=appt.id,
        )

    appt.status = new_status
    log_event(
        db,
        actor=user,
        action=f"appointment.status: {previous.value} -> {new_status.value}",
        entity_type="appointment",
        entity_id=appt.id,
        before_data={"status": previous.value},
        after_data={"status": new_status.value},
        request_id=request_id,
        ip_address=client_ip(request),
    )
    db.commit()
    return envelope(StatusOut(id=appt.id, status=new_status.value), "Appointment status updated")


@router.delete("/{appointment_id}", response_model=ApiResponse[None])
def delete_appointment(
    appointment_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
    request_id: str | None = Header(default=None, alias="X-Request-ID"),
):
    appt = _get_appointment_or_404(db, appointment_id)
    log_event(
        db,
        actor=user,
        action="appointment.deleted",
        entity_type="appointment",
        entity_id=appt.id,
        before_obj=appt,
        request_id=request_id,
        ip_address=client_ip(request),
    )
    db.delete(appt)
    db.commit()
    return envelope(None, "Appointment deleted successfully")

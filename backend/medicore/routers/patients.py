from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from medicore.core.settings import settings
from medicore.db.pagination import PageParams, fetch_page, page_params
from medicore.db.session import get_db
from medicore.deps import client_ip, get_current_user, require_admin, require_front_desk
from medicore.models.patient import Patient, PatientStatus
from medicore.models.user import User
from medicore.schemas.common import ApiResponse, PaginatedResponse, StatusOut, envelope, paginated
from medicore.schemas.patient import PatientCreate, PatientOut, PatientUpdate
from medicore.services.audit import log_event, snapshot_model
from medicore.services.identifiers import (
    PATIENT_PREFIX,
    allocate_id,
    id_ordering,
    retry_on_id_collision,
)

router = APIRouter(prefix="/patients", tags=["patients"])


def _get_patient_or_404(db: Session, patient_id: str) -> Patient:
    patient = db.get(Patient, patient_id)
    if not patient:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
    return patient


def _email_taken(db: Session, email: str, exclude_id: str | None = None) -> bool:
    stmt = select(Patient.id).where(Patient.email == email.lower())
    if exclude_id:
        stmt = stmt.where(Patient.id != exclude_id)
    return db.scalar(stmt) is not None


@router.get("", response_model=PaginatedResponse[PatientOut])
def list_patients(
    search: Optional[str] = Query(default=None),
    status_filter: Optional[PatientStatus] = Query(default=None, alias="status"),
    blood_group: Optional[str] = Query(default=None, alias="bloodGroup"),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    stmt = select(Patient)
    if search and search.strip():
        like = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(Patient.name.ilike(like), Patient.id.ilike(like), Patient.email.ilike(like))
        )
    if status_filter is not None:
        stmt = stmt.where(Patient.status == status_filter)
    if blood_group:
        stmt = stmt.where(Patient.blood_group == blood_group.strip().upper())
    stmt = stmt.order_by(Patient.created_at.desc(), *id_ordering(Patient.id, descending=True))
    rows, total = fetch_page(db, stmt, params)
    return paginated(
        [PatientOut.model_validate(row) for row in rows],
        page=params.page,
        limit=params.limit,
        total=total,
    )


@router.get("/{patient_id}", response_model=ApiResponse[PatientOut])
def get_patient(
    patient_id: str,
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    return envelope(PatientOut.model_validate(_get_patient_or_404(db, patient_id)))


@router.post("", response_model=ApiResponse[PatientOut], status_code=status.HTTP_201_CREATED)
def create_patient(
    payload: PatientCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_front_desk),
    request_id: str | None = Header(default=None, alias="X-Request-ID"),
):
    email = payload.email.lower()
    if _email_taken(db, email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Patient with this email already exists"
        )

    def build() -> Patient:
        patient = Patient(
            id=allocate_id(db, Patient.id, PATIENT_PREFIX),
            name=payload.name,
            age=payload.age,
            gender=payload.gender,
            blood_group=payload.blood_group,
            phone=payload.phone,
            email=email,
            address=payload.address,
            emergency_contact=payload.emergency_contact,
            medical_history=list(payload.medical_history),
            status=PatientStatus.active,
            registration_date=date.today(),
        )
        db.add(patient)
        db.flush()
        log_event(
            db,
            actor=user,
            action="patient.created",
            entity_type="patient",
            entity_id=patient.id,
            after_obj=patient,
            request_id=request_id,
            ip_address=client_ip(request),
        )
        return patient

    patient = retry_on_id_collision(db, build, attempts=settings.id_allocation_retries)
    db.refresh(patient)
    return envelope(PatientOut.model_validate(patient), "Patient created successfully")


@router.put("/{patient_id}", response_model=ApiResponse[PatientOut])
def update_patient(
    patient_id: str,
    payload: PatientUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_front_desk),
    request_id: str | None = Header(default=None, alias="X-Request-ID"),
):
    patient = _get_patient_or_404(db, patient_id)
    email = payload.email.lower()
    if _email_taken(db, email, exclude_id=patient.id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Email already exists for another patient"
        )
    before = snapshot_model(patient)
    patient.name = payload.name
    patient.age = payload.age
    patient.gender = payload.gender
    patient.blood_group = payload.blood_group
    patient.phone = payload.phone
    patient.email = email
    patient.address = payload.address
    patient.emergency_contact = payload.emergency_contact
    patient.medical_history = list(payload.medical_history)
    db.flush()
    log_event(
        db,
        actor=user,
        action="patient.updated",
        entity_type="patient",
        entity_id=patient.id,
        before_data=before,
        after_obj=patient,
        request_id=request_id,
        ip_address=client_ip(request),
    )
    db.commit()
    db.refresh(patient)
    return envelope(PatientOut.model_validate(patient), "Patient updated successfully")


def _set_status(
    db: Session,
    *,
    patient: Patient,
    new_status: PatientStatus,
    user: User,
    request: Request,
    request_id: str | None,
) -> StatusOut:
    previous = patient.status
    patient.status = new_status
    log_event(
        db,
        actor=user,
        action=f"patient.status: {previous.value} -> {new_status.value}",
        entity_type="patient",
        entity_id=patient.id,
        before_data={"status": previous.value},
        after_data={"status": new_status.value},
        request_id=request_id,
        ip_address=client_ip(request),
    )
    db.commit()
    return StatusOut(id=patient.id, status=new_status.value)


@router.patch("/{patient_id}/archive", response_model=ApiResponse[StatusOut])
def archive_patient(
    patient_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_front_desk),
    request_id: str | None = Header(default=None, alias="X-Request-ID"),
):
    patient = _get_patient_or_404(db, patient_id)
    result = _set_status(
        db,
        patient=patient,
        new_status=PatientStatus.archived,
        user=user,
        request=request,
        request_id=request_id,
    )
    return envelope(result, "Patient archived successfully")


@router.patch("/{patient_id}/restore", response_model=ApiResponse[StatusOut])
def restore_patient(
    patient_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
    request_id: str | None = Header(default=None, alias="X-Request-ID"),
):
    patient = _get_patient_or_404(db, patient_id)
    result = _set_status(
        db,
        patient=patient,
        new_status=PatientStatus.active,
        user=user,
        request=request,
        request_id=request_id,
    )
    return envelope(result, "Patient restored successfully")


@router.delete("/{patient_id}", response_model=ApiResponse[None])
def delete_patient(
    patient_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
    request_id: str | None = Header(default=None, alias="X-Request-ID"),
):
    patient = _get_patient_or_404(db, patient_id)
    log_event(
        db,
        actor=user,
        action="patient.deleted",
        entity_type="patient",
        entity_id=patient.id,
        before_obj=patient,
        request_id=request_id,
        ip_address=client_ip(request),
    )
    db.delete(patient)
    db.commit()
    return envelope(None, "Patient deleted successfully")

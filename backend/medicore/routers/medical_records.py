from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from medicore.core.settings import settings
from medicore.db.pagination import PageParams, fetch_page, page_params
from medicore.db.session import get_db
from medicore.deps import client_ip, require_admin, require_clinical
from medicore.models.medical_record import MedicalRecord, Prescription
from medicore.models.patient import Patient
from medicore.models.user import User
from medicore.schemas.common import ApiResponse, PaginatedResponse, envelope, paginated
from medicore.schemas.medical_record import (
    MedicalRecordCreate,
    MedicalRecordOut,
    MedicalRecordUpdate,
)
from medicore.services.audit import log_event, snapshot_model
from medicore.services.identifiers import (
    MEDICAL_RECORD_PREFIX,
    PRESCRIPTION_PREFIX,
    allocate_id,
    allocate_many,
    id_ordering,
    retry_on_id_collision,
)
from medicore.services.users import get_doctor

router = APIRouter(prefix="/medical-records", tags=["medical-records"])


def _get_record_or_404(db: Session, record_id: str) -> MedicalRecord:
    record = db.get(MedicalRecord, record_id)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medical record not found")
    return record


@router.get("", response_model=PaginatedResponse[MedicalRecordOut])
def list_medical_records(
    search: Optional[str] = Query(default=None),
    patient_id: Optional[str] = Query(default=None, alias="patientId"),
    doctor_id: Optional[int] = Query(default=None, alias="doctorId"),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    _=Depends(require_clinical),
):
    stmt = select(MedicalRecord)
    if search and search.strip():
        like = f"%{search.strip()}%"
        stmt = stmt.join(Patient, Patient.id == MedicalRecord.patient_id).where(
            or_(
                Patient.name.ilike(like),
                MedicalRecord.id.ilike(like),
                MedicalRecord.diagnosis.ilike(like),
            )
        )
    if patient_id:
        stmt = stmt.where(MedicalRecord.patient_id == patient_id)
    if doctor_id is not None:
        stmt = stmt.where(MedicalRecord.doctor_id == doctor_id)
    stmt = stmt.order_by(MedicalRecord.date.desc(), *id_ordering(MedicalRecord.id, descending=True))
    rows, total = fetch_page(db, stmt, params)
    return paginated(
        [MedicalRecordOut.model_validate(row) for row in rows],
        page=params.page,
        limit=params.limit,
        total=total,
    )


@router.get("/{record_id}", response_model=ApiResponse[MedicalRecordOut])
def get_medical_record(
    record_id: str,
    db: Session = Depends(get_db),
    _=Depends(require_clinical),
):
    return envelope(MedicalRecordOut.model_validate(_get_record_or_404(db, record_id)))


@router.post("", response_model=ApiResponse[MedicalRecordOut], status_code=status.HTTP_201_CREATED)
def create_medical_record(
    payload: MedicalRecordCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_clinical),
    request_id: str | None = Header(default=None, alias="X-Request-ID"),
):
    if not db.get(Patient, payload.patient_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
    if not get_doctor(db, payload.doctor_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found")
    complete = [p for p in payload.prescriptions if p.is_complete]

    def build() -> MedicalRecord:
        record_id = allocate_id(db, MedicalRecord.id, MEDICAL_RECORD_PREFIX)
        rx_ids = allocate_many(db, Prescription.id, PRESCRIPTION_PREFIX, len(complete))
        record = MedicalRecord(
            id=record_id,
            patient_id=payload.patient_id,
            doctor_id=payload.doctor_id,
            date=payload.date,
            diagnosis=payload.diagnosis,
            symptoms=list(payload.symptoms),
            notes=payload.notes or "",
            version=1,
            prescriptions=[
                Prescription(
                    id=rx_id,
                    medication=rx.medication.strip(),
                    dosage=rx.dosage.strip(),
                    frequency=rx.frequency.strip(),
                    duration=rx.duration.strip(),
                    instructions=rx.instructions,
                )
                for rx_id, rx in zip(rx_ids, complete)
            ],
        )
        db.add(record)
        db.flush()
        log_event(
            db,
            actor=user,
            action="medical_record.created",
            entity_type="medical_record",
            entity_id=record.id,
            after_obj=record,
            request_id=request_id,
            ip_address=client_ip(request),
        )
        return record

    record = retry_on_id_collision(db, build, attempts=settings.id_allocation_retries)
    db.refresh(record)
    return envelope(MedicalRecordOut.model_validate(record), "Medical record created successfully")


@router.put("/{record_id}", response_model=ApiResponse[MedicalRecordOut])
def update_medical_record(
    record_id: str,
    payload: MedicalRecordUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_clinical),
    request_id: str | None = Header(default=None, alias="X-Request-ID"),
):
    record = _get_record_or_404(db, record_id)
    before = snapshot_model(record)
    record.diagnosis = payload.diagnosis
    if payload.symptoms is not None:
        record.symptoms = list(payload.symptoms)
    if payload.notes is not None:
        record.notes = payload.notes
    record.version = (record.version or 1) + 1
    record.updated_by = user.id
    db.flush()
    log_event(
        db,
        actor=user,
        action="medical_record.updated",
        entity_type="medical_record",
        entity_id=record.id,
        before_data=before,
        after_obj=record,
        request_id=request_id,
        ip_address=client_ip(request),
    )
    db.commit()
    db.refresh(record)
    return envelope(MedicalRecordOut.model_validate(record), "Medical record updated successfully")


@router.delete("/{record_id}", response_model=ApiResponse[None])
def delete_medical_record(
    record_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
    request_id: str | None = Header(default=None, alias="X-Request-ID"),
):
    record = _get_record_or_404(db, record_id)
    log_event(
        db,
        actor=user,
        action="medical_record.deleted",
        entity_type="medical_record",
        entity_id=record.id,
        before_obj=record,
        request_id=request_id,
        ip_address=client_ip(request),
    )
    db.delete(record)
    db.commit()
    return envelope(None, "Medical record deleted successfully")

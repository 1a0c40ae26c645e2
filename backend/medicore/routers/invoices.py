import datetime as dt
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from medicore.core.settings import settings
from medicore.db.pagination import PageParams, fetch_page, page_params
from medicore.db.session import get_db
from medicore.deps import client_ip, require_admin, require_front_desk
from medicore.models.invoice import Invoice, InvoiceItem, InvoiceStatus
from medicore.models.patient import Patient
from medicore.models.user import User
from medicore.schemas.common import ApiResponse, PaginatedResponse, envelope, paginated
from medicore.schemas.invoice import InvoiceCreate, InvoiceOut, PaymentCreate
from medicore.services.audit import log_event, snapshot_model
from medicore.services.billing import (
    apply_payment,
    line_total,
    lock_invoice,
    normalize_money,
    remaining_balance,
)
from medicore.services.identifiers import (
    INVOICE_ITEM_PREFIX,
    INVOICE_PREFIX,
    allocate_id,
    allocate_many,
    id_ordering,
    retry_on_id_collision,
)

router = APIRouter(prefix="/invoices", tags=["invoices"])


def _get_invoice_or_404(db: Session, invoice_id: str) -> Invoice:
    invoice = db.get(Invoice, invoice_id)
    if not invoice:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return invoice


@router.get("", response_model=PaginatedResponse[InvoiceOut])
def list_invoices(
    search: Optional[str] = Query(default=None),
    status_filter: Optional[InvoiceStatus] = Query(default=None, alias="status"),
    patient_id: Optional[str] = Query(default=None, alias="patientId"),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    _=Depends(require_front_desk),
):
    stmt = select(Invoice)
    if search and search.strip():
        like = f"%{search.strip()}%"
        stmt = stmt.join(Patient, Patient.id == Invoice.patient_id).where(
            or_(Invoice.id.ilike(like), Patient.name.ilike(like))
        )
    if status_filter is not None:
        stmt = stmt.where(Invoice.status == status_filter)
    if patient_id:
        stmt = stmt.where(Invoice.patient_id == patient_id)
    stmt = stmt.order_by(Invoice.date.desc(), *id_ordering(Invoice.id, descending=True))
    rows, total = fetch_page(db, stmt, params)
    return paginated(
        [InvoiceOut.model_validate(row) for row in rows],
        page=params.page,
        limit=params.limit,
        total=total,
    )


@router.get("/{invoice_id}", response_model=ApiResponse[InvoiceOut])
def get_invoice(
    invoice_id: str,
    db: Session = Depends(get_db),
    _=Depends(require_front_desk),
):
    return envelope(InvoiceOut.model_validate(_get_invoice_or_404(db, invoice_id)))


@router.post("", response_model=ApiResponse[InvoiceOut], status_code=status.HTTP_201_CREATED)
def create_invoice(
    payload: InvoiceCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_front_desk),
    request_id: str | None = Header(default=None, alias="X-Request-ID"),
):
    if not db.get(Patient, payload.patient_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")

    line_totals = [line_total(item.quantity, item.price) for item in payload.items]
    total_amount = normalize_money(sum(line_totals, Decimal("0")))

    def build() -> Invoice:
        invoice_id = allocate_id(db, Invoice.id, INVOICE_PREFIX)
        item_ids = allocate_many(db, InvoiceItem.id, INVOICE_ITEM_PREFIX, len(payload.items))
        invoice = Invoice(
            id=invoice_id,
            patient_id=payload.patient_id,
            date=payload.date or dt.date.today(),
            due_date=payload.due_date,
            total_amount=total_amount,
            paid_amount=Decimal("0.00"),
            status=InvoiceStatus.pending,
            notes=payload.notes,
            items=[
                InvoiceItem(
                    id=item_id,
                    description=item.description,
                    category=item.category,
                    quantity=item.quantity,
                    price=normalize_money(item.price),
                    total=total,
                )
                for item_id, item, total in zip(item_ids, payload.items, line_totals)
            ],
        )
        db.add(invoice)
        db.flush()
        log_event(
            db,
            actor=user,
            action="invoice.created",
            entity_type="invoice",
            entity_id=invoice.id,
            after_obj=invoice,
            request_id=request_id,
            ip_address=client_ip(request),
        )
        return invoice

    invoice = retry_on_id_collision(db, build, attempts=settings.id_allocation_retries)
    db.refresh(invoice)
    return envelope(InvoiceOut.model_validate(invoice), "Invoice created successfully")


@router.patch("/{invoice_id}/payment", response_model=ApiResponse[InvoiceOut])
def record_payment(
    invoice_id: str,
    payload: PaymentCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_front_desk),
    request_id: str | None = Header(default=None, alias="X-Request-ID"),
):
    invoice = lock_invoice(db, invoice_id)
    if not invoice:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")

    remaining = remaining_balance(invoice)
    if remaining <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invoice is already paid")
    if normalize_money(payload.amount) > remaining:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Payment amount exceeds remaining balance",
        )

    before = snapshot_model(invoice)
    apply_payment(invoice, payload.amount, payload.payment_method)
    log_event(
        db,
        actor=user,
        action="invoice.payment",
        entity_type="invoice",
        entity_id=invoice.id,
        before_data=before,
        after_obj=invoice,
        request_id=request_id,
        ip_address=client_ip(request),
    )
    db.commit()
    db.refresh(invoice)
    return envelope(InvoiceOut.model_validate(invoice), "Payment recorded successfully")


@router.delete("/{invoice_id}", response_model=ApiResponse[None])
def delete_invoice(
    invoice_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
    request_id: str | None = Header(default=None, alias="X-Request-ID"),
):
    invoice = _get_invoice_or_404(db, invoice_id)
    log_event(
        db,
        actor=user,
        action="invoice.deleted",
        entity_type="invoice",
        entity_id=invoice.id,
        before_obj=invoice,
        request_id=request_id,
        ip_address=client_ip(request),
    )
    db.delete(invoice)
    db.commit()
    return envelope(None, "Invoice deleted successfully")

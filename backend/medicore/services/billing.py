from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from medicore.models.invoice import Invoice, InvoiceStatus

logger = logging.getLogger("medicore.billing")

CENT = Decimal("0.01")


def normalize_money(value: Decimal | int | float | str | None) -> Decimal:
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(quantity: Decimal, price: Decimal) -> Decimal:
    return normalize_money(Decimal(quantity) * Decimal(price))


def derive_status(paid_amount: Decimal, total_amount: Decimal) -> InvoiceStatus:
    if normalize_money(paid_amount) >= normalize_money(total_amount):
        return InvoiceStatus.paid
    return InvoiceStatus.pending


def remaining_balance(invoice: Invoice) -> Decimal:
    return normalize_money(invoice.total_amount) - normalize_money(invoice.paid_amount)


def apply_payment(
    invoice: Invoice,
    amount: Decimal,
    payment_method: str,
    now: datetime | None = None,
) -> Invoice:
    """Add ``amount`` to the invoice and re-derive its status.

    Only the in-memory object changes; the caller commits the four fields
    together. Amount and over-payment checks belong to the caller.
    """
    new_paid = normalize_money(invoice.paid_amount) + normalize_money(amount)
    new_status = derive_status(new_paid, invoice.total_amount)

    invoice.paid_amount = new_paid
    invoice.status = new_status
    invoice.payment_method = payment_method
    invoice.paid_at = (now or datetime.now(timezone.utc)) if new_status == InvoiceStatus.paid else None
    logger.info(
        "Payment of %s (%s) applied to %s: paid %s of %s, status %s",
        normalize_money(amount),
        payment_method,
        invoice.id,
        new_paid,
        normalize_money(invoice.total_amount),
        new_status.value,
    )
    return invoice


def lock_invoice(db: Session, invoice_id: str) -> Invoice | None:
    stmt = select(Invoice).where(Invoice.id == invoice_id).with_for_update(of=Invoice)
    return db.scalar(stmt)

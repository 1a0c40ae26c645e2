import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from medicore.models.invoice import InvoiceStatus
from medicore.schemas.common import CamelModel, Money, OrmModel


class InvoiceItemCreate(CamelModel):
    description: str
    category: str = "General"
    quantity: Decimal = Field(default=Decimal("1"), gt=0, max_digits=10, decimal_places=2)
    price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Item description is required")
        return value

    @field_validator("category")
    @classmethod
    def default_category(cls, value: str) -> str:
        return value.strip() or "General"


class InvoiceItemOut(OrmModel):
    id: str
    invoice_id: str
    description: str
    category: str
    quantity: Decimal
    price: Money
    total: Money


class InvoiceCreate(CamelModel):
    patient_id: str = Field(min_length=1)
    date: Optional[dt.date] = None
    due_date: dt.date
    items: list[InvoiceItemCreate]
    notes: Optional[str] = None

    @field_validator("items")
    @classmethod
    def items_not_empty(cls, value: list[InvoiceItemCreate]) -> list[InvoiceItemCreate]:
        if not value:
            raise ValueError("At least one invoice item is required")
        return value


class PaymentCreate(CamelModel):
    amount: Decimal = Field(gt=0, decimal_places=2)
    payment_method: str = "Cash"

    @field_validator("payment_method")
    @classmethod
    def method_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Payment method is required")
        return value


class InvoiceOut(OrmModel):
    id: str
    patient_id: str
    patient_name: Optional[str] = None
    date: dt.date
    due_date: dt.date
    total_amount: Money
    paid_amount: Money
    balance: Money
    status: InvoiceStatus
    payment_method: Optional[str] = None
    paid_at: Optional[dt.datetime] = None
    notes: Optional[str] = None
    items: list[InvoiceItemOut]
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

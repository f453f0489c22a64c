"""Pydantic schemas for invoices."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import Field

from academy_admin.models.invoice import InvoiceItemType, InvoiceStatus
from academy_admin.schemas.common import BaseSchema


class LunchOption(str, Enum):
    """Lunch plans that can be added to an invoice."""

    NONE = "none"
    SEMESTER = "semester"
    SINGLE = "single"


class InvoiceItemCreate(BaseSchema):
    type: InvoiceItemType = InvoiceItemType.ADJUSTMENT
    description: str = Field(..., min_length=1, max_length=255)
    academy_id: uuid.UUID | None = None
    quantity: int = Field(1, ge=1)
    unit_price: Decimal = Field(..., max_digits=10, decimal_places=2)


class InvoiceCreate(BaseSchema):
    """Schema for creating an invoice by hand.

    Tuition lines are built from the student's enrollments unless
    ``from_enrollments`` is false; extra ``items`` are appended.
    """

    student_id: uuid.UUID
    semester_id: uuid.UUID | None = None
    from_enrollments: bool = True
    items: list[InvoiceItemCreate] = Field(default_factory=list)
    lunch: LunchOption = LunchOption.NONE
    lunch_days: int = Field(1, ge=1)
    discount_amount: Decimal = Field(Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)
    discount_note: str | None = None
    due_date: date | None = None


class InvoiceUpdate(BaseSchema):
    """Schema for updating an invoice.

    Setting ``status`` to exonerated waives the balance; any other status
    clears the exoneration and lets the amounts decide.
    """

    discount_amount: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    discount_note: str | None = None
    due_date: date | None = None
    lunch: LunchOption | None = None
    lunch_days: int = Field(1, ge=1)
    status: InvoiceStatus | None = None


class InvoiceItemResponse(BaseSchema):
    id: uuid.UUID
    type: str
    description: str
    academy_id: uuid.UUID | None = None
    quantity: int
    unit_price: Decimal
    amount: Decimal


class InvoiceResponse(BaseSchema):
    id: uuid.UUID
    student_id: uuid.UUID
    student_name: str
    semester_id: uuid.UUID
    status: str
    subtotal: Decimal
    lunch_amount: Decimal
    discount_amount: Decimal
    discount_note: str | None = None
    total: Decimal
    paid_amount: Decimal
    balance: Decimal
    due_date: date | None = None
    is_restored: bool
    items: list[InvoiceItemResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

"""Pydantic schemas for payments."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import Field

from academy_admin.models.payment import PaymentMethod
from academy_admin.schemas.common import BaseSchema


class PaymentCreate(BaseSchema):
    invoice_id: uuid.UUID
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    method: PaymentMethod = PaymentMethod.CASH
    notes: str | None = None
    transaction_date: datetime | None = None


class PaymentResponse(BaseSchema):
    id: uuid.UUID
    invoice_id: uuid.UUID | None = None
    student_id: uuid.UUID
    student_name: str
    amount: Decimal
    method: str
    notes: str | None = None
    transaction_date: datetime
    received_by: str | None = None

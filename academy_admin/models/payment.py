"""Payment model."""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from academy_admin.models.base import BaseModel


class PaymentMethod(str, Enum):
    """Accepted payment methods."""

    CASH = "cash"
    ZELLE = "zelle"
    CARD = "card"
    CHECK = "check"
    OTHER = "other"


class Payment(BaseModel):
    """Money received against an invoice."""

    __tablename__ = "payments"
    __table_args__ = (
        Index("idx_payments_student", "student_id"),
        Index("idx_payments_transaction_date", "transaction_date"),
    )

    # Nullable so payments imported without a matching invoice can be kept
    invoice_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    method: Mapped[str] = mapped_column(String(20), nullable=False, default=PaymentMethod.CASH.value)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    transaction_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    received_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    legacy_id: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)

    # Relationships
    invoice = relationship("Invoice", back_populates="payments")
    student = relationship("Student", lazy="selectin")

"""Invoice models."""

import uuid
from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from academy_admin.models.base import BaseModel


class InvoiceStatus(str, Enum):
    """Invoice status options."""

    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"
    EXONERATED = "exonerated"


class InvoiceItemType(str, Enum):
    """Invoice line types."""

    TUITION = "tuition"
    LUNCH_SEMESTER = "lunch_semester"
    LUNCH_SINGLE = "lunch_single"
    ADJUSTMENT = "adjustment"


LUNCH_ITEM_TYPES = (InvoiceItemType.LUNCH_SEMESTER.value, InvoiceItemType.LUNCH_SINGLE.value)


class Invoice(BaseModel):
    """A student's bill for one semester."""

    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("student_id", "semester_id", name="uq_invoices_student_semester"),
    )

    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    semester_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("semesters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InvoiceStatus.UNPAID.value,
    )
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    discount_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    balance: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_restored: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    legacy_id: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)

    # Relationships
    student = relationship("Student", lazy="selectin")
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.created_at",
    )
    payments = relationship(
        "Payment",
        back_populates="invoice",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    @property
    def lunch_amount(self) -> Decimal:
        return sum((i.amount for i in self.items if i.type in LUNCH_ITEM_TYPES), Decimal("0.00"))


class InvoiceItem(BaseModel):
    """One billed line on an invoice."""

    __tablename__ = "invoice_items"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(30), nullable=False, default=InvoiceItemType.TUITION.value)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    academy_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("academies.id", ondelete="SET NULL"),
        nullable=True,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))

    invoice = relationship("Invoice", back_populates="items")

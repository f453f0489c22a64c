"""Payment service."""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.exceptions import NotFoundException
from academy_admin.models import Invoice, Payment, Semester
from academy_admin.schemas.payment import PaymentCreate
from academy_admin.services.invoice_service import InvoiceService, recalculate
from academy_admin.utils.money import ZERO, quantize

logger = logging.getLogger(__name__)


class PaymentService:
    """Service for recording payments against invoices."""

    def __init__(self):
        self.invoices = InvoiceService()

    async def list_payments(
        self,
        db: AsyncSession,
        semester: Semester | None = None,
        student_id: uuid.UUID | None = None,
        invoice_id: uuid.UUID | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[Payment], int]:
        """Payments, newest first."""
        query = select(Payment)
        if semester:
            query = query.join(Invoice, Invoice.id == Payment.invoice_id).where(
                Invoice.semester_id == semester.id
            )
        if student_id:
            query = query.where(Payment.student_id == student_id)
        if invoice_id:
            query = query.where(Payment.invoice_id == invoice_id)

        total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0

        query = query.order_by(Payment.transaction_date.desc(), Payment.id.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def get_payment(self, db: AsyncSession, payment_id: uuid.UUID) -> Payment:
        payment = await db.get(Payment, payment_id)
        if not payment:
            raise NotFoundException("Payment")
        return payment

    async def record_payment(
        self,
        db: AsyncSession,
        data: PaymentCreate,
        received_by: str | None = None,
    ) -> Payment:
        """Record a payment and update the invoice in the same transaction."""
        invoice = await self.invoices.get_invoice(db, data.invoice_id)

        payment = Payment(
            invoice_id=invoice.id,
            student_id=invoice.student_id,
            amount=quantize(data.amount),
            method=data.method.value,
            notes=data.notes,
            transaction_date=data.transaction_date or datetime.now(timezone.utc),
            received_by=received_by,
        )
        invoice.payments.append(payment)
        invoice.paid_amount = quantize((invoice.paid_amount or ZERO) + payment.amount)
        recalculate(invoice)
        await db.flush()
        await db.refresh(payment, attribute_names=["student"])

        logger.info(
            f"Recorded {payment.method} payment of {payment.amount} on invoice {invoice.id} "
            f"(balance {invoice.balance}, {invoice.status})"
        )
        return payment

    async def delete_payment(self, db: AsyncSession, payment_id: uuid.UUID) -> Invoice | None:
        """Delete a payment and take it back off its invoice.

        Returns:
            The updated invoice, if the payment had one
        """
        payment = await self.get_payment(db, payment_id)
        invoice = None
        if payment.invoice_id:
            invoice = await self.invoices.get_invoice(db, payment.invoice_id)
            invoice.paid_amount = max(ZERO, quantize(invoice.paid_amount - payment.amount))
            recalculate(invoice)

        await db.delete(payment)
        await db.flush()
        return invoice


def get_payment_service() -> PaymentService:
    return PaymentService()

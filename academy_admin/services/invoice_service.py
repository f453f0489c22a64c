"""Invoice service: line building, totals and status."""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.config import settings
from academy_admin.exceptions import ConflictException, NotFoundException
from academy_admin.models import (
    LUNCH_ITEM_TYPES,
    Enrollment,
    EnrollmentStatus,
    Invoice,
    InvoiceItem,
    InvoiceItemType,
    InvoiceStatus,
    Semester,
    Student,
)
from academy_admin.schemas.invoice import InvoiceCreate, InvoiceUpdate, LunchOption
from academy_admin.utils.money import ZERO, cents_to_dollars, quantize
from academy_admin.utils.timestamps import to_millis

logger = logging.getLogger(__name__)

# Balances at or below this count as settled
PAID_TOLERANCE = Decimal("0.01")


@dataclass
class InvoiceLine:
    """A line to be billed, before it becomes an InvoiceItem row."""

    type: str
    description: str
    unit_price: Decimal
    quantity: int = 1
    academy_id: uuid.UUID | None = None

    @property
    def amount(self) -> Decimal:
        return quantize(self.unit_price * self.quantity)

    def to_item(self) -> InvoiceItem:
        return InvoiceItem(
            type=self.type,
            description=self.description,
            academy_id=self.academy_id,
            quantity=self.quantity,
            unit_price=quantize(self.unit_price),
            amount=self.amount,
        )


def tuition_lines(enrollments: list[Enrollment]) -> list[InvoiceLine]:
    """One tuition line per active enrollment, priced from the academy."""
    lines = []
    for enrollment in enrollments:
        if enrollment.status != EnrollmentStatus.ENROLLED.value:
            continue
        lines.append(
            InvoiceLine(
                type=InvoiceItemType.TUITION.value,
                description=enrollment.label,
                unit_price=enrollment.academy.price,
                academy_id=enrollment.academy_id,
            )
        )
    return lines


def lunch_lines(option: LunchOption | None, days: int = 1) -> list[InvoiceLine]:
    if option == LunchOption.SEMESTER:
        return [
            InvoiceLine(
                type=InvoiceItemType.LUNCH_SEMESTER.value,
                description="Lunch (semester)",
                unit_price=cents_to_dollars(settings.lunch_semester_price_cents),
            )
        ]
    if option == LunchOption.SINGLE:
        return [
            InvoiceLine(
                type=InvoiceItemType.LUNCH_SINGLE.value,
                description="Lunch (single day)",
                unit_price=cents_to_dollars(settings.lunch_single_price_cents),
                quantity=days,
            )
        ]
    return []


def compute_total(subtotal: Decimal, lunch: Decimal, discount: Decimal) -> Decimal:
    """``max(0, subtotal + lunch - discount)``."""
    return max(ZERO, quantize(subtotal + lunch - discount))


def compute_status(total: Decimal, paid: Decimal, current: str | None = None) -> str:
    """Status implied by the amounts; exonerated invoices stay exonerated."""
    if current == InvoiceStatus.EXONERATED.value:
        return current
    if total - paid <= PAID_TOLERANCE:
        return InvoiceStatus.PAID.value
    if paid > 0:
        return InvoiceStatus.PARTIAL.value
    return InvoiceStatus.UNPAID.value


def recalculate(invoice: Invoice) -> Invoice:
    """Refresh subtotal, total, balance and status from items and paid amount."""
    lunch = invoice.lunch_amount
    subtotal = quantize(sum((i.amount for i in invoice.items), ZERO) - lunch)
    invoice.subtotal = subtotal
    invoice.total = compute_total(subtotal, lunch, invoice.discount_amount or ZERO)
    invoice.paid_amount = quantize(invoice.paid_amount or ZERO)
    invoice.balance = quantize(invoice.total - invoice.paid_amount)
    invoice.status = compute_status(invoice.total, invoice.paid_amount, invoice.status)
    return invoice


def replace_items(invoice: Invoice, types: tuple[str, ...], lines: list[InvoiceLine]) -> None:
    """Swap every item of the given types for the new lines."""
    for item in [i for i in invoice.items if i.type in types]:
        invoice.items.remove(item)
    for line in lines:
        invoice.items.append(line.to_item())


def latest_invoice_per_student(invoices):
    """Newest invoice for each student.

    Works on Invoice rows and on invoice documents (``studentId`` /
    ``createdAt``) alike.
    """
    latest = {}
    for invoice in invoices:
        if isinstance(invoice, dict):
            student_id = invoice.get("studentId")
            created = to_millis(invoice.get("createdAt"))
        else:
            student_id = invoice.student_id
            created = to_millis(invoice.created_at)
        if not student_id:
            continue
        current = latest.get(student_id)
        if current is None or created > current[0]:
            latest[student_id] = (created, invoice)
    return {student_id: invoice for student_id, (_, invoice) in latest.items()}


class InvoiceService:
    """Service for managing invoices."""

    async def list_invoices(
        self,
        db: AsyncSession,
        semester: Semester,
        status: str | None = None,
        student_id: uuid.UUID | None = None,
        search: str | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[Invoice], int]:
        query = select(Invoice).where(Invoice.semester_id == semester.id)
        if status:
            query = query.where(Invoice.status == status)
        if student_id:
            query = query.where(Invoice.student_id == student_id)
        if search:
            term = f"%{search}%"
            query = query.join(Student, Student.id == Invoice.student_id).where(
                Student.first_name.ilike(term) | Student.last_name.ilike(term) | Student.email.ilike(term)
            )

        total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0

        query = query.order_by(Invoice.created_at.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def get_invoice(self, db: AsyncSession, invoice_id: uuid.UUID) -> Invoice:
        result = await db.execute(
            select(Invoice).where(Invoice.id == invoice_id).execution_options(populate_existing=True)
        )
        invoice = result.scalar_one_or_none()
        if not invoice:
            raise NotFoundException("Invoice")
        return invoice

    async def get_for_student(
        self,
        db: AsyncSession,
        student_id: uuid.UUID,
        semester_id: uuid.UUID,
    ) -> Invoice | None:
        result = await db.execute(
            select(Invoice)
            .where(Invoice.student_id == student_id, Invoice.semester_id == semester_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _semester_enrollments(
        self,
        db: AsyncSession,
        student_id: uuid.UUID,
        semester_id: uuid.UUID,
    ) -> list[Enrollment]:
        await db.flush()
        result = await db.execute(
            select(Enrollment)
            .where(Enrollment.student_id == student_id, Enrollment.semester_id == semester_id)
            .order_by(Enrollment.created_at, Enrollment.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def sync_for_student(
        self,
        db: AsyncSession,
        student_id: uuid.UUID,
        semester: Semester,
    ) -> Invoice | None:
        """Bring the student's semester invoice in line with their enrollments.

        Tuition lines are rebuilt; lunch and adjustment lines, discounts and
        payments are kept. An invoice is only created when there is something
        to bill.
        """
        lines = tuition_lines(await self._semester_enrollments(db, student_id, semester.id))
        invoice = await self.get_for_student(db, student_id, semester.id)

        if invoice is None:
            if not lines:
                return None
            invoice = Invoice(
                student_id=student_id,
                semester_id=semester.id,
                status=InvoiceStatus.UNPAID.value,
                discount_amount=ZERO,
                paid_amount=ZERO,
                items=[line.to_item() for line in lines],
            )
            db.add(invoice)
            logger.info(f"Created invoice for student {student_id} in {semester.name}")
        else:
            replace_items(invoice, (InvoiceItemType.TUITION.value,), lines)
            logger.debug(f"Rebuilt tuition lines of invoice {invoice.id}")

        recalculate(invoice)
        await db.flush()
        return invoice

    async def create_invoice(self, db: AsyncSession, semester: Semester, data: InvoiceCreate) -> Invoice:
        student = await db.get(Student, data.student_id)
        if not student:
            raise NotFoundException("Student")
        if await self.get_for_student(db, student.id, semester.id):
            raise ConflictException(f"{student.full_name} already has an invoice for {semester.name}")

        lines = []
        if data.from_enrollments:
            lines.extend(tuition_lines(await self._semester_enrollments(db, student.id, semester.id)))
        lines.extend(
            InvoiceLine(
                type=item.type.value,
                description=item.description,
                unit_price=item.unit_price,
                quantity=item.quantity,
                academy_id=item.academy_id,
            )
            for item in data.items
        )
        lines.extend(lunch_lines(data.lunch, data.lunch_days))

        invoice = Invoice(
            student_id=student.id,
            semester_id=semester.id,
            status=InvoiceStatus.UNPAID.value,
            discount_amount=data.discount_amount,
            discount_note=data.discount_note,
            due_date=data.due_date,
            paid_amount=ZERO,
            items=[line.to_item() for line in lines],
        )
        recalculate(invoice)
        db.add(invoice)
        await db.flush()
        return await self.get_invoice(db, invoice.id)

    async def update_invoice(self, db: AsyncSession, invoice_id: uuid.UUID, data: InvoiceUpdate) -> Invoice:
        invoice = await self.get_invoice(db, invoice_id)
        update_data = data.model_dump(exclude_unset=True)

        if "discount_amount" in update_data and data.discount_amount is not None:
            invoice.discount_amount = data.discount_amount
        if "discount_note" in update_data:
            invoice.discount_note = data.discount_note
        if "due_date" in update_data:
            invoice.due_date = data.due_date
        if data.lunch is not None:
            replace_items(invoice, LUNCH_ITEM_TYPES, lunch_lines(data.lunch, data.lunch_days))
        if data.status is not None:
            if data.status == InvoiceStatus.EXONERATED:
                invoice.status = InvoiceStatus.EXONERATED.value
            else:
                # Let the amounts decide again
                invoice.status = InvoiceStatus.UNPAID.value

        recalculate(invoice)
        await db.flush()
        return await self.get_invoice(db, invoice.id)

    async def delete_invoice(self, db: AsyncSession, invoice_id: uuid.UUID) -> None:
        """Delete an invoice with its items and payments."""
        invoice = await self.get_invoice(db, invoice_id)
        await db.delete(invoice)
        await db.flush()


def get_invoice_service() -> InvoiceService:
    return InvoiceService()

"""Consistency checks between invoices, payments and enrollments."""

import logging
from collections import defaultdict
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.config import settings
from academy_admin.docstore import DocumentStore
from academy_admin.exceptions import NotFoundException
from academy_admin.models import Enrollment, EnrollmentStatus, Invoice, Payment, Semester, Student
from academy_admin.schemas.maintenance import JobReport
from academy_admin.services.dedup_service import deduplicate_registrations
from academy_admin.services.invoice_service import (
    InvoiceService,
    compute_status,
    compute_total,
    recalculate,
)
from academy_admin.services.legacy import (
    academy_price_map,
    build_document_invoice,
    document_invoice_status,
    registration_name,
)
from academy_admin.utils.money import ZERO, format_usd, quantize
from academy_admin.utils.normalization import student_key

logger = logging.getLogger(__name__)

RESTORED_LINE = "Tuition Fee (Restored)"


def _registration_key(doc: dict) -> str:
    return student_key(doc.get("email"), doc.get("firstName"), doc.get("lastName"))


async def reconcile_doc_payments(store: DocumentStore, fix: bool = False, dry_run: bool = False) -> JobReport:
    """Compare payment documents with the invoices they point at.

    Reports payments without an invoice, payments whose invoice is gone and
    invoices whose ``paid``/``status`` disagree with their payments. With
    ``fix`` the invoices are brought in line.
    """
    report = JobReport(job="reconcile payments", dry_run=dry_run)
    invoices = {doc["id"]: doc for doc in await store.list_collection(settings.invoices_collection)}
    paid_by_invoice: dict[str, int] = defaultdict(int)

    for payment in await store.list_collection(settings.payments_collection):
        invoice_id = payment.get("invoiceId")
        amount = int(payment.get("amount") or 0)
        if not invoice_id:
            report.warn(f"Payment {payment['id']} ({format_usd(amount)}) is not linked to an invoice")
            report.count("unlinked")
        elif invoice_id not in invoices:
            report.warn(f"Payment {payment['id']} ({format_usd(amount)}) points at missing invoice {invoice_id}")
            report.count("orphaned")
        else:
            paid_by_invoice[invoice_id] += amount

    updates: dict[str, dict] = {}
    for invoice_id, doc in invoices.items():
        total = int(doc.get("total") or 0)
        paid = int(doc.get("paid") or 0)
        from_payments = paid_by_invoice.get(invoice_id, 0)
        name = doc.get("studentName") or doc.get("studentId")

        if from_payments and from_payments != paid:
            report.warn(f"{name}: invoice says paid {format_usd(paid)}, payments add up to {format_usd(from_payments)}")
            report.count("paid_mismatch")
            paid = from_payments
        elif not from_payments and paid:
            report.warn(f"{name}: paid {format_usd(paid)} recorded on the invoice without payment documents")

        status = document_invoice_status(total, paid, doc.get("status"))
        balance = total - paid
        if paid != int(doc.get("paid") or 0) or status != doc.get("status") or balance != doc.get("balance"):
            report.count("stale")
            updates[invoice_id] = {"paid": paid, "balance": balance, "status": status}
            if fix:
                report.action(f"{name}: paid {format_usd(paid)}, balance {format_usd(balance)}, {status}")

    if fix and updates and not dry_run:
        updates = {k: {**v, "updatedAt": store.server_timestamp} for k, v in updates.items()}
        await store.update_many(settings.invoices_collection, updates)
    return report


async def restore_orphaned_invoices(store: DocumentStore, dry_run: bool = False) -> JobReport:
    """Recreate invoices that payments still point at.

    The new invoice is a single restored tuition line for the paid amount,
    marked ``isRestored``, and the payment is relinked to it.
    """
    report = JobReport(job="restore invoices", dry_run=dry_run)
    invoice_ids = {doc["id"] for doc in await store.list_collection(settings.invoices_collection)}

    for payment in await store.list_collection(settings.payments_collection):
        if not payment.get("invoiceId") or payment["invoiceId"] in invoice_ids:
            continue
        amount = int(payment.get("amount") or 0)
        if not payment.get("studentId"):
            report.error(f"Payment {payment['id']} ({format_usd(amount)}) has no student")
            continue
        registration = await store.get(settings.registrations_collection, payment["studentId"])
        if registration is None:
            report.error(f"Payment {payment['id']}: registration {payment['studentId']} not found")
            continue

        name = registration_name(registration)
        report.action(f"Restore {format_usd(amount)} invoice for {name} and relink payment {payment['id']}")
        report.count("restored")
        if dry_run:
            continue

        invoice_id = await store.add(
            settings.invoices_collection,
            {
                "studentId": payment["studentId"],
                "studentName": name,
                "status": "paid",
                "total": amount,
                "paid": amount,
                "balance": 0,
                "lines": [{"description": RESTORED_LINE, "amount": amount, "academy": "General"}],
                "createdAt": payment.get("createdAt") or store.server_timestamp,
                "updatedAt": store.server_timestamp,
                "isRestored": True,
            },
        )
        await store.update(settings.payments_collection, payment["id"], {"invoiceId": invoice_id})
        invoice_ids.add(invoice_id)
        logger.info(f"Restored invoice {invoice_id} for payment {payment['id']}")

    return report


async def generate_missing_doc_invoices(store: DocumentStore, dry_run: bool = False) -> JobReport:
    """Create invoice documents for registrations that have none.

    Prices come from the academies collection; a registration naming an
    academy without a price is reported as an error.
    """
    report = JobReport(job="generate invoices", dry_run=dry_run)
    prices = academy_price_map(await store.list_collection(settings.academies_collection))
    if not prices:
        raise NotFoundException("Academy pricing")

    invoiced = {doc.get("studentId") for doc in await store.list_collection(settings.invoices_collection)}
    registrations, duplicates = deduplicate_registrations(
        await store.list_collection(settings.registrations_collection)
    )
    # A student counts as invoiced when any of their registrations is
    invoiced_keys = {_registration_key(doc) for doc in duplicates if doc["id"] in invoiced}
    for duplicate in duplicates:
        report.warn(f"Skipping repeated registration {duplicate['id']} of {registration_name(duplicate)}")

    for registration in registrations:
        if registration["id"] in invoiced or _registration_key(registration) in invoiced_keys:
            continue
        name = registration_name(registration)
        try:
            invoice = build_document_invoice(registration, prices)
        except NotFoundException as e:
            report.error(f"{name}: {e.message}")
            continue
        if not invoice["lines"]:
            report.warn(f"{name}: no academies selected")
            continue

        report.action(f"Create invoice for {name}: {format_usd(invoice['total'])}")
        report.count("created")
        if not dry_run:
            invoice["createdAt"] = store.server_timestamp
            invoice["updatedAt"] = store.server_timestamp
            await store.add(settings.invoices_collection, invoice)

    return report


def expected_amounts(invoice: Invoice, paid: Decimal) -> dict:
    """What the stored amounts of an invoice should be for a paid amount."""
    lunch = invoice.lunch_amount
    subtotal = quantize(sum((i.amount for i in invoice.items), ZERO) - lunch)
    total = compute_total(subtotal, lunch, invoice.discount_amount or ZERO)
    return {
        "subtotal": subtotal,
        "total": total,
        "paid_amount": quantize(paid),
        "balance": quantize(total - paid),
        "status": compute_status(total, paid, invoice.status),
    }


class ReconcileService:
    """Checks on relational invoices and enrollments."""

    def __init__(self):
        self.invoices = InvoiceService()

    async def reconcile_invoice_balances(
        self,
        db: AsyncSession,
        semester: Semester,
        fix: bool = False,
        dry_run: bool = False,
    ) -> JobReport:
        """Invoices whose paid amount, totals or status are out of date.

        Payments are the record of money received. An invoice with a paid
        amount but no payment rows is reported and left alone.
        """
        report = JobReport(job="reconcile balances", dry_run=dry_run)
        sums = dict(
            (
                await db.execute(
                    select(Payment.invoice_id, func.sum(Payment.amount))
                    .join(Invoice, Invoice.id == Payment.invoice_id)
                    .where(Invoice.semester_id == semester.id)
                    .group_by(Payment.invoice_id)
                )
            ).all()
        )
        invoices = (
            await db.execute(select(Invoice).where(Invoice.semester_id == semester.id))
        ).scalars().all()

        for invoice in invoices:
            report.count("checked")
            name = invoice.student.full_name if invoice.student else str(invoice.student_id)
            paid = quantize(sums.get(invoice.id) or ZERO)
            if paid == ZERO and invoice.paid_amount > ZERO:
                report.warn(f"{name}: {invoice.paid_amount} paid without payment records")
                paid = invoice.paid_amount

            expected = expected_amounts(invoice, paid)
            stale = [
                f"{field} {getattr(invoice, field)} -> {value}"
                for field, value in expected.items()
                if getattr(invoice, field) != value
            ]
            if not stale:
                continue
            report.count("stale")
            report.action(f"{name}: {', '.join(stale)}")
            if fix:
                invoice.paid_amount = paid
                recalculate(invoice)

        await db.flush()
        return report

    async def find_missing_invoices(
        self,
        db: AsyncSession,
        semester: Semester,
        fix: bool = False,
        dry_run: bool = False,
    ) -> JobReport:
        """Enrolled students without an invoice this semester."""
        report = JobReport(job="missing invoices", dry_run=dry_run)
        enrolled = select(Enrollment.student_id).where(
            Enrollment.semester_id == semester.id,
            Enrollment.status == EnrollmentStatus.ENROLLED.value,
        )
        invoiced = select(Invoice.student_id).where(Invoice.semester_id == semester.id)
        students = (
            await db.execute(
                select(Student)
                .where(Student.id.in_(enrolled), Student.id.not_in(invoiced))
                .order_by(Student.last_name, Student.first_name)
            )
        ).scalars().all()

        for student in students:
            report.count("missing")
            if not fix:
                report.warn(f"{student.full_name} ({student.email or 'no e-mail'}) has no invoice")
                continue
            invoice = await self.invoices.sync_for_student(db, student.id, semester)
            if invoice is None:
                report.warn(f"{student.full_name}: nothing to bill")
                continue
            report.action(f"Created invoice for {student.full_name}: {invoice.total}")
            report.count("created")
        return report

    async def report_invalid_enrollments(self, db: AsyncSession, semester: Semester) -> JobReport:
        """Enrollments missing a required level or pointing at the wrong catalog rows."""
        report = JobReport(job="check enrollments")
        enrollments = (
            await db.execute(select(Enrollment).where(Enrollment.semester_id == semester.id))
        ).scalars().all()

        for enrollment in enrollments:
            report.count("checked")
            academy = enrollment.academy
            where = f"enrollment {enrollment.id} ({academy.name})"
            if academy.semester_id != semester.id:
                report.warn(f"{where}: academy belongs to another semester")
                report.count("invalid")
            elif enrollment.level is not None and enrollment.level.academy_id != academy.id:
                report.warn(f"{where}: level {enrollment.level.name} belongs to another academy")
                report.count("invalid")
            elif enrollment.level is None and academy.levels:
                report.warn(f"{where}: no level chosen")
                report.count("invalid")
        return report


def get_reconcile_service() -> ReconcileService:
    return ReconcileService()

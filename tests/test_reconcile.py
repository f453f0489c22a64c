"""Tests for invoice, payment and enrollment consistency checks."""

from decimal import Decimal

import pytest

from academy_admin.config import settings
from academy_admin.exceptions import NotFoundException
from academy_admin.models import Enrollment, Student
from academy_admin.schemas.payment import PaymentCreate
from academy_admin.schemas.registration import AcademySelection, RegistrationCreate
from academy_admin.services.invoice_service import InvoiceService
from academy_admin.services.payment_service import PaymentService
from academy_admin.services.reconcile_service import (
    RESTORED_LINE,
    ReconcileService,
    generate_missing_doc_invoices,
    reconcile_doc_payments,
    restore_orphaned_invoices,
)
from academy_admin.services.registration_service import RegistrationService
from tests.fakes import MemoryDocumentStore

pytestmark = pytest.mark.anyio


def _registration(doc_id, first, last, email=None, academies=(), created=1000):
    return {
        "id": doc_id,
        "firstName": first,
        "lastName": last,
        "email": email,
        "createdAt": created,
        "selectedAcademies": [{"academy": a, "level": lvl} for a, lvl in academies],
    }


class TestDocumentPayments:
    @pytest.fixture
    def store(self):
        return MemoryDocumentStore({
            settings.registrations_collection: [_registration("r1", "Ana", "Lopez", "ana@example.com")],
            settings.invoices_collection: [
                {"id": "inv1", "studentId": "r1", "studentName": "Ana Lopez", "total": 27000, "paid": 0,
                 "balance": 27000, "status": "unpaid"},
                {"id": "inv2", "studentId": "r9", "studentName": "Ben Carter", "total": 12000, "paid": 12000,
                 "balance": 0, "status": "paid"},
            ],
            settings.payments_collection: [
                {"id": "p1", "studentId": "r1", "invoiceId": "inv1", "amount": 10000},
                {"id": "p2", "studentId": "r1", "amount": 500},
                {"id": "p3", "studentId": "r1", "invoiceId": "gone", "amount": 7500, "createdAt": 1234},
                {"id": "p4", "studentId": "rX", "invoiceId": "gone2", "amount": 100},
            ],
        })

    async def test_reconcile_reports_without_fix(self, store):
        report = await reconcile_doc_payments(store)

        assert report.counts == {"unlinked": 1, "orphaned": 2, "paid_mismatch": 1, "stale": 1}
        assert report.actions == []
        assert any("without payment documents" in w for w in report.warnings)
        assert store.writes == []

    async def test_reconcile_fix_updates_invoice(self, store):
        await reconcile_doc_payments(store, fix=True)

        invoice = store.docs(settings.invoices_collection)["inv1"]
        assert (invoice["paid"], invoice["balance"], invoice["status"]) == (10000, 17000, "partial")
        assert "updatedAt" in invoice
        assert store.writes == [("update", settings.invoices_collection, "inv1")]

    async def test_reconcile_fix_dry_run_writes_nothing(self, store):
        report = await reconcile_doc_payments(store, fix=True, dry_run=True)

        assert len(report.actions) == 1
        assert store.writes == []

    async def test_restore_orphaned_invoices(self, store):
        report = await restore_orphaned_invoices(store)

        assert report.counts == {"restored": 1}
        assert report.errors == ["Payment p4: registration rX not found"]
        new_id = store.docs(settings.payments_collection)["p3"]["invoiceId"]
        restored = store.docs(settings.invoices_collection)[new_id]
        assert restored["isRestored"] is True
        assert restored["total"] == restored["paid"] == 7500
        assert restored["lines"][0]["description"] == RESTORED_LINE
        assert restored["createdAt"] == 1234

    async def test_restore_dry_run(self, store):
        report = await restore_orphaned_invoices(store, dry_run=True)

        assert report.counts == {"restored": 1}
        assert store.writes == []


class TestGenerateDocumentInvoices:
    def _store(self, academies):
        return MemoryDocumentStore({
            settings.academies_collection: academies,
            settings.registrations_collection: [
                _registration("r1", "Ana", "Lopez", "ana@example.com", [("Art Academy", None)]),
                _registration("r2", "Ben", "Carter", "ben@example.com",
                              [("Korean Language", "Beginner"), ("Art Academy", "N/A")], created=2000),
                _registration("r3", "Ben", "Carter", "BEN@example.com", [("Art Academy", None)], created=3000),
                _registration("r4", "Chloe", "Kim", "chloe@example.com", [("Robotics", None)]),
                _registration("r5", "Dan", "Reyes", None, [("N/A", None)]),
            ],
            settings.invoices_collection: [{"id": "inv1", "studentId": "r1", "total": 12000}],
        })

    async def test_creates_priced_invoices(self):
        store = self._store([
            {"id": "a1", "name": "Korean Language", "price": 150},
            {"id": "a2", "name": "Art Academy", "price": "120.00"},
        ])

        report = await generate_missing_doc_invoices(store)

        assert report.counts == {"created": 1}
        assert any("Robotics" in e for e in report.errors)
        assert any("r3" in w for w in report.warnings)
        assert any("Dan Reyes: no academies selected" == w for w in report.warnings)
        created = [d for d in store.docs(settings.invoices_collection).values() if d["studentId"] == "r2"]
        assert len(created) == 1
        invoice = created[0]
        assert invoice["total"] == 27000
        assert invoice["balance"] == 27000
        assert invoice["status"] == "unpaid"
        assert [line["level"] for line in invoice["lines"]] == ["Beginner", "N/A"]

    async def test_requires_pricing(self):
        with pytest.raises(NotFoundException):
            await generate_missing_doc_invoices(self._store([]))


async def _register(db, semester, email="ana@example.com"):
    student, _ = await RegistrationService().create_registration(
        db,
        RegistrationCreate(
            first_name="Ana",
            last_name="Lopez",
            email=email,
            selections=[AcademySelection(academy="Korean Language", level="Beginner")],
        ),
        semester,
    )
    return student


class TestReconcileService:
    async def test_balances_follow_payments(self, db, catalog):
        semester = catalog["semester"]
        student = await _register(db, semester)
        invoice = await InvoiceService().get_for_student(db, student.id, semester.id)
        await PaymentService().record_payment(db, PaymentCreate(invoice_id=invoice.id, amount=Decimal("50.00")))
        invoice.paid_amount = Decimal("0.00")
        invoice.balance = Decimal("150.00")
        await db.flush()

        service = ReconcileService()
        report = await service.reconcile_invoice_balances(db, semester)
        assert report.counts == {"checked": 1, "stale": 1}
        assert invoice.paid_amount == Decimal("0.00")

        await service.reconcile_invoice_balances(db, semester, fix=True)
        assert invoice.paid_amount == Decimal("50.00")
        assert invoice.balance == Decimal("100.00")
        assert invoice.status == "partial"

    async def test_paid_amount_without_payments_is_kept(self, db, catalog):
        semester = catalog["semester"]
        student = await _register(db, semester)
        invoice = await InvoiceService().get_for_student(db, student.id, semester.id)
        invoice.paid_amount = Decimal("150.00")
        await db.flush()

        report = await ReconcileService().reconcile_invoice_balances(db, semester, fix=True)

        assert any("without payment records" in w for w in report.warnings)
        assert invoice.paid_amount == Decimal("150.00")
        assert invoice.status == "paid"

    async def test_missing_invoices(self, db, catalog):
        semester = catalog["semester"]
        student = Student(first_name="Ben", last_name="Carter", address={})
        db.add(student)
        await db.flush()
        db.add(Enrollment(student_id=student.id, semester_id=semester.id, academy_id=catalog["art"].id))
        await db.flush()

        service = ReconcileService()
        report = await service.find_missing_invoices(db, semester)
        assert report.counts == {"missing": 1}

        report = await service.find_missing_invoices(db, semester, fix=True)
        assert report.counts == {"missing": 1, "created": 1}
        invoice = await InvoiceService().get_for_student(db, student.id, semester.id)
        assert invoice.total == Decimal("120.00")

    async def test_invalid_enrollments(self, db, catalog):
        semester = catalog["semester"]
        await _register(db, semester)
        student = Student(first_name="Ben", last_name="Carter", address={})
        db.add(student)
        await db.flush()
        db.add(Enrollment(student_id=student.id, semester_id=semester.id, academy_id=catalog["korean"].id))
        await db.flush()

        report = await ReconcileService().report_invalid_enrollments(db, semester)

        assert report.counts == {"checked": 2, "invalid": 1}
        assert "no level chosen" in report.warnings[0]

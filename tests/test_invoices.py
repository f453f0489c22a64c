"""Tests for invoice math and the invoice service."""

from decimal import Decimal

import pytest

from academy_admin.exceptions import ConflictException
from academy_admin.models import Invoice, InvoiceItemType, InvoiceStatus, Student
from academy_admin.schemas.invoice import InvoiceCreate, InvoiceItemCreate, InvoiceUpdate, LunchOption
from academy_admin.schemas.registration import AcademySelection, RegistrationCreate
from academy_admin.services.invoice_service import (
    InvoiceLine,
    InvoiceService,
    compute_status,
    compute_total,
    latest_invoice_per_student,
    recalculate,
)
from academy_admin.services.registration_service import RegistrationService


def _invoice(*amounts, lunch=None, discount="0.00", paid="0.00", status=InvoiceStatus.UNPAID.value):
    items = [
        InvoiceLine(type=InvoiceItemType.TUITION.value, description="Tuition", unit_price=Decimal(a)).to_item()
        for a in amounts
    ]
    if lunch:
        items.append(
            InvoiceLine(
                type=InvoiceItemType.LUNCH_SEMESTER.value, description="Lunch", unit_price=Decimal(lunch)
            ).to_item()
        )
    return Invoice(
        items=items,
        discount_amount=Decimal(discount),
        paid_amount=Decimal(paid),
        status=status,
    )


class TestComputeTotal:
    def test_adds_lunch_and_subtracts_discount(self):
        assert compute_total(Decimal("270.00"), Decimal("50.00"), Decimal("20.00")) == Decimal("300.00")

    def test_never_negative(self):
        assert compute_total(Decimal("100.00"), Decimal("0.00"), Decimal("150.00")) == Decimal("0.00")


class TestComputeStatus:
    @pytest.mark.parametrize(
        "total,paid,expected",
        [
            ("270.00", "0.00", "unpaid"),
            ("270.00", "100.00", "partial"),
            ("270.00", "270.00", "paid"),
            ("270.00", "269.99", "paid"),
            ("270.00", "300.00", "paid"),
            ("0.00", "0.00", "paid"),
        ],
    )
    def test_status_from_amounts(self, total, paid, expected):
        assert compute_status(Decimal(total), Decimal(paid)) == expected

    def test_exonerated_is_kept(self):
        assert compute_status(Decimal("270.00"), Decimal("0.00"), "exonerated") == "exonerated"


class TestRecalculate:
    def test_lunch_is_not_part_of_the_subtotal(self):
        invoice = recalculate(_invoice("150.00", "120.00", lunch="50.00", discount="20.00", paid="100.00"))

        assert invoice.subtotal == Decimal("270.00")
        assert invoice.lunch_amount == Decimal("50.00")
        assert invoice.total == Decimal("300.00")
        assert invoice.balance == Decimal("200.00")
        assert invoice.status == InvoiceStatus.PARTIAL.value

    def test_paid_status_follows_the_amounts(self):
        invoice = recalculate(_invoice("150.00", paid="150.00"))
        assert invoice.status == InvoiceStatus.PAID.value
        assert invoice.balance == Decimal("0.00")

    def test_exonerated_invoice_keeps_its_balance(self):
        invoice = recalculate(_invoice("150.00", status=InvoiceStatus.EXONERATED.value))
        assert invoice.status == InvoiceStatus.EXONERATED.value
        assert invoice.balance == Decimal("150.00")


def test_invoice_line_amount_uses_quantity():
    line = InvoiceLine(type="lunch_single", description="Lunch", unit_price=Decimal("8.50"), quantity=3)
    assert line.amount == Decimal("25.50")
    assert line.to_item().amount == Decimal("25.50")


def test_latest_invoice_per_student_for_documents():
    docs = [
        {"id": "a", "studentId": "s1", "createdAt": 1000},
        {"id": "b", "studentId": "s1", "createdAt": 3000},
        {"id": "c", "studentId": "s2", "createdAt": 2000},
        {"id": "d", "createdAt": 9000},
    ]

    latest = latest_invoice_per_student(docs)

    assert {k: v["id"] for k, v in latest.items()} == {"s1": "b", "s2": "c"}


async def _register(db, catalog, email="ana@example.com", selections=None):
    data = RegistrationCreate(
        first_name="Ana",
        last_name="Lopez",
        email=email,
        selections=selections
        or [
            AcademySelection(academy="Korean Language", level="Beginner"),
            AcademySelection(academy="Art Academy"),
        ],
    )
    student, _ = await RegistrationService().create_registration(db, data, catalog["semester"])
    return student


@pytest.mark.anyio
class TestInvoiceService:
    async def test_registration_creates_tuition_invoice(self, db, catalog):
        student = await _register(db, catalog)

        invoice = await InvoiceService().get_for_student(db, student.id, catalog["semester"].id)

        assert invoice is not None
        assert sorted(i.description for i in invoice.items) == ["Art Academy", "Korean Language - Beginner"]
        assert invoice.total == Decimal("270.00")
        assert invoice.status == InvoiceStatus.UNPAID.value

    async def test_sync_keeps_lunch_lines(self, db, catalog):
        service = InvoiceService()
        student = await _register(db, catalog)
        invoice = await service.get_for_student(db, student.id, catalog["semester"].id)
        await service.update_invoice(db, invoice.id, InvoiceUpdate(lunch=LunchOption.SEMESTER))

        invoice = await service.sync_for_student(db, student.id, catalog["semester"])

        types = sorted(i.type for i in invoice.items)
        assert types == ["lunch_semester", "tuition", "tuition"]
        assert invoice.total == invoice.subtotal + invoice.lunch_amount

    async def test_sync_without_enrollments_creates_nothing(self, db, catalog):
        student = Student(first_name="No", last_name="Classes", address={})
        db.add(student)
        await db.flush()

        assert await InvoiceService().sync_for_student(db, student.id, catalog["semester"]) is None

    async def test_second_invoice_for_semester_conflicts(self, db, catalog):
        student = await _register(db, catalog)

        with pytest.raises(ConflictException):
            await InvoiceService().create_invoice(db, catalog["semester"], InvoiceCreate(student_id=student.id))

    async def test_manual_invoice_with_adjustment_and_discount(self, db, catalog):
        student = Student(first_name="Walk", last_name="In", address={})
        db.add(student)
        await db.flush()

        invoice = await InvoiceService().create_invoice(
            db,
            catalog["semester"],
            InvoiceCreate(
                student_id=student.id,
                items=[InvoiceItemCreate(description="Materials", unit_price=Decimal("40.00"))],
                discount_amount=Decimal("10.00"),
            ),
        )

        assert invoice.subtotal == Decimal("40.00")
        assert invoice.total == Decimal("30.00")
        assert invoice.items[0].type == InvoiceItemType.ADJUSTMENT.value

    async def test_exonerate_and_reopen(self, db, catalog):
        service = InvoiceService()
        student = await _register(db, catalog)
        invoice = await service.get_for_student(db, student.id, catalog["semester"].id)

        invoice = await service.update_invoice(db, invoice.id, InvoiceUpdate(status=InvoiceStatus.EXONERATED))
        assert invoice.status == InvoiceStatus.EXONERATED.value

        invoice = await service.update_invoice(db, invoice.id, InvoiceUpdate(status=InvoiceStatus.PAID))
        assert invoice.status == InvoiceStatus.UNPAID.value

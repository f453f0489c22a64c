"""Tests for the payment service."""

import uuid
from decimal import Decimal

import pytest

from academy_admin.exceptions import NotFoundException
from academy_admin.models import InvoiceStatus, PaymentMethod
from academy_admin.schemas.payment import PaymentCreate
from academy_admin.schemas.registration import AcademySelection, RegistrationCreate
from academy_admin.services.invoice_service import InvoiceService
from academy_admin.services.payment_service import PaymentService
from academy_admin.services.registration_service import RegistrationService

pytestmark = pytest.mark.anyio


@pytest.fixture
async def invoice(db, catalog):
    student, _ = await RegistrationService().create_registration(
        db,
        RegistrationCreate(
            first_name="Ana",
            last_name="Lopez",
            email="ana@example.com",
            selections=[
                AcademySelection(academy="Korean Language", level="Beginner"),
                AcademySelection(academy="Art Academy"),
            ],
        ),
        catalog["semester"],
    )
    return await InvoiceService().get_for_student(db, student.id, catalog["semester"].id)


async def test_partial_then_full_payment(db, invoice):
    service = PaymentService()

    first = await service.record_payment(
        db,
        PaymentCreate(invoice_id=invoice.id, amount=Decimal("100.00"), method=PaymentMethod.ZELLE),
        received_by="admin@example.com",
    )
    invoice = await InvoiceService().get_invoice(db, invoice.id)
    assert first.student_id == invoice.student_id
    assert first.received_by == "admin@example.com"
    assert invoice.paid_amount == Decimal("100.00")
    assert invoice.balance == Decimal("170.00")
    assert invoice.status == InvoiceStatus.PARTIAL.value

    await service.record_payment(db, PaymentCreate(invoice_id=invoice.id, amount=Decimal("170.00")))
    invoice = await InvoiceService().get_invoice(db, invoice.id)
    assert invoice.balance == Decimal("0.00")
    assert invoice.status == InvoiceStatus.PAID.value


async def test_delete_payment_reopens_invoice(db, invoice):
    service = PaymentService()
    payment = await service.record_payment(db, PaymentCreate(invoice_id=invoice.id, amount=Decimal("270.00")))

    updated = await service.delete_payment(db, payment.id)

    assert updated.paid_amount == Decimal("0.00")
    assert updated.balance == Decimal("270.00")
    assert updated.status == InvoiceStatus.UNPAID.value
    payments, total = await service.list_payments(db, invoice_id=invoice.id)
    assert total == 0


async def test_list_payments_by_semester(db, catalog, invoice):
    service = PaymentService()
    await service.record_payment(db, PaymentCreate(invoice_id=invoice.id, amount=Decimal("20.00")))
    await service.record_payment(db, PaymentCreate(invoice_id=invoice.id, amount=Decimal("30.00")))

    payments, total = await service.list_payments(db, semester=catalog["semester"])

    assert total == 2
    assert sum(p.amount for p in payments) == Decimal("50.00")


async def test_payment_for_missing_invoice(db, catalog):
    with pytest.raises(NotFoundException):
        await PaymentService().record_payment(db, PaymentCreate(invoice_id=uuid.uuid4(), amount=Decimal("1.00")))

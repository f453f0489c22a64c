"""Tests for the registration service."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from academy_admin.exceptions import ConflictException, ValidationException
from academy_admin.schemas.registration import AcademySelection, RegistrationCreate, RegistrationUpdate
from academy_admin.services.invoice_service import InvoiceService
from academy_admin.services.registration_service import RegistrationService, expected_total

pytestmark = pytest.mark.anyio


def _create(email="ana@example.com", *selections, **fields):
    return RegistrationCreate(
        first_name=fields.pop("first_name", "Ana"),
        last_name=fields.pop("last_name", "Lopez"),
        email=email,
        selections=[AcademySelection(academy=a, level=lvl) for a, lvl in selections],
        **fields,
    )


async def test_create_registration(db, catalog):
    service = RegistrationService()

    student, created = await service.create_registration(
        db, _create("Ana@Example.com", ("Korean Language", "Beginner"), ("Art Academy", None)), catalog["semester"]
    )

    assert created is True
    assert student.email_key == "ana@example.com"
    labels = sorted(e.label for e in student.enrollments_for(catalog["semester"].id))
    assert labels == ["Art Academy", "Korean Language - Beginner"]
    assert expected_total(student.enrollments) == Decimal("270.00")


async def test_same_email_merges_into_one_student(db, catalog):
    service = RegistrationService()
    first, _ = await service.create_registration(
        db, _create("ana@example.com", ("Art Academy", None), phone="407-555-0100"), catalog["semester"]
    )

    second, created = await service.create_registration(
        db, _create("ANA@example.com", ("Korean Language", "Alphabet"), phone=None), catalog["semester"]
    )

    assert created is False
    assert second.id == first.id
    assert second.phone == "407-555-0100"
    assert len(second.enrollments_for(catalog["semester"].id)) == 2

    invoice = await InvoiceService().get_for_student(db, second.id, catalog["semester"].id)
    assert invoice.total == Decimal("270.00")


async def test_alias_and_empty_selections(db, catalog):
    student, _ = await RegistrationService().create_registration(
        db,
        _create(
            "kim@example.com",
            ("korean conversation", None),
            ("N/A", None),
            ("", None),
            ("Art Academy", None),
            ("Art Academy", None),
        ),
        catalog["semester"],
    )

    labels = sorted(e.label for e in student.enrollments)
    assert labels == ["Art Academy", "Korean Language - Conversation"]


async def test_unknown_academy_is_rejected(db, catalog):
    with pytest.raises(ValidationException) as exc:
        await RegistrationService().create_registration(
            db, _create("x@example.com", ("Underwater Basket Weaving", None)), catalog["semester"]
        )
    assert exc.value.errors[0]["field"] == "selections[0]"


async def test_level_is_required_when_academy_has_levels(db, catalog):
    with pytest.raises(ValidationException) as exc:
        await RegistrationService().create_registration(
            db, _create("x@example.com", ("Korean Language", None)), catalog["semester"]
        )
    assert "level is required" in exc.value.errors[0]["message"]


async def test_lenient_resolution_collects_warnings(db, catalog):
    warnings = []

    resolved = await RegistrationService().resolve_selections(
        db,
        catalog["semester"],
        [("Korean Language", None), ("Robotics", None), ("Art Academy", None)],
        strict=False,
        warnings=warnings,
    )

    assert [r.academy.name for r in resolved] == ["Korean Language", "Art Academy"]
    assert "No level given for Korean Language" in warnings
    assert any("Robotics" in w for w in warnings)


async def test_update_replaces_selections_and_resyncs_invoice(db, catalog):
    service = RegistrationService()
    student, _ = await service.create_registration(
        db, _create("ana@example.com", ("Korean Language", "Beginner"), ("Art Academy", None)), catalog["semester"]
    )

    student = await service.update_registration(
        db,
        student.id,
        RegistrationUpdate(first_name="Anna", selections=[AcademySelection(academy="Art Academy")]),
        catalog["semester"],
    )

    assert student.first_name == "Anna"
    assert [e.label for e in student.enrollments] == ["Art Academy"]
    invoice = await InvoiceService().get_for_student(db, student.id, catalog["semester"].id)
    assert invoice.total == Decimal("120.00")


async def test_update_to_taken_email_conflicts(db, catalog):
    service = RegistrationService()
    await service.create_registration(db, _create("ana@example.com", ("Art Academy", None)), catalog["semester"])
    ben, _ = await service.create_registration(
        db, _create("ben@example.com", ("Art Academy", None), first_name="Ben"), catalog["semester"]
    )

    with pytest.raises(ConflictException):
        await service.update_registration(
            db, ben.id, RegistrationUpdate(email="Ana@example.com"), catalog["semester"]
        )


async def test_delete_registration(db, catalog):
    service = RegistrationService()
    student, _ = await service.create_registration(
        db, _create("ana@example.com", ("Art Academy", None)), catalog["semester"]
    )

    assert await service.delete_registration(db, student.id, catalog["semester"]) is True
    assert await InvoiceService().get_for_student(db, student.id, catalog["semester"].id) is None
    students, total = await service.list_registrations(db, catalog["semester"])
    assert total == 0


async def test_list_registrations_search(db, catalog):
    service = RegistrationService()
    await service.create_registration(db, _create("ana@example.com", ("Art Academy", None)), catalog["semester"])
    await service.create_registration(
        db,
        _create("ben@example.com", ("Korean Language", "Alphabet"), first_name="Ben", last_name="Carter"),
        catalog["semester"],
    )

    students, total = await service.list_registrations(db, catalog["semester"], search="cart")
    assert total == 1
    assert students[0].first_name == "Ben"

    students, total = await service.list_registrations(
        db, catalog["semester"], academy_id=catalog["art"].id
    )
    assert [s.first_name for s in students] == ["Ana"]


class TestRegistrationSchema:
    def test_rejects_bad_phone(self):
        with pytest.raises(ValidationError):
            RegistrationCreate(first_name="A", last_name="B", phone="12")

    def test_rejects_bad_zip(self):
        with pytest.raises(ValidationError):
            RegistrationCreate(first_name="A", last_name="B", address={"zip": "ABCDE"})

    def test_rejects_future_birth_date(self):
        with pytest.raises(ValidationError):
            RegistrationCreate(first_name="A", last_name="B", birth_date="2999-01-01")

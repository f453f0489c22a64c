"""Tests for copying document-store collections into the relational store."""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from academy_admin.config import settings
from academy_admin.models import Enrollment, Invoice, InvoiceStatus, Payment, Profile, Student
from academy_admin.schemas.registration import AcademySelection, RegistrationCreate
from academy_admin.services.academy_service import AcademyService
from academy_admin.services.migration_service import MigrationService
from academy_admin.services.registration_service import RegistrationService
from academy_admin.services.semester_service import SemesterService
from tests.fakes import MemoryDocumentStore

pytestmark = pytest.mark.anyio


def legacy_collections() -> dict[str, list[dict]]:
    return {
        settings.academies_collection: [
            {
                "id": "a1",
                "name": "Korean Language",
                "price": 150,
                "levels": [{"name": "Alphabet"}, {"name": "Beginner"}],
            },
            {"id": "a2", "name": "Korean Conversation", "price": 150},
            {"id": "a3", "name": "Art Academy", "price": "120", "order": 2},
            {"id": "a4", "name": ""},
        ],
        settings.teachers_collection: [
            {
                "id": "t1",
                "name": "Jisoo Park",
                "email": "Jisoo@Example.com",
                "assignments": [{"academyName": "Korean Language", "levelName": "Beginner"}],
            },
            {"id": "t2", "name": "No Mail"},
        ],
        settings.registrations_collection: [
            {
                "id": "r1",
                "firstName": "Ana",
                "lastName": "Lopez",
                "email": "ana@example.com",
                "cellNumber": "407-555-0100",
                "zipCode": "32801",
                "createdAt": 1000,
                "selectedAcademies": [
                    {"academy": "Korean Language", "level": "Beginner"},
                    {"academy": "Art Academy", "level": "N/A"},
                ],
            },
            {
                "id": "r2",
                "firstName": "Ben",
                "lastName": "Carter",
                "email": "ben@example.com",
                "createdAt": 2000,
                "firstPeriod": {"academy": "Korean Conversation"},
                "secondPeriod": {"academy": "Art Academy"},
            },
            {
                "id": "r3",
                "firstName": "Ana",
                "lastName": "Lopez",
                "email": "ANA@example.com",
                "createdAt": 3000,
                "selectedAcademies": [{"academy": "Art Academy"}],
            },
        ],
        settings.invoices_collection: [
            {"id": "i0", "studentId": "r1", "studentName": "Ana Lopez", "createdAt": 1000, "items": []},
            {
                "id": "i1",
                "studentId": "r1",
                "studentName": "Ana Lopez",
                "createdAt": 1500,
                "lines": [
                    {"academy": "Korean Language", "level": "Beginner", "unitPrice": 15000, "qty": 1, "amount": 15000},
                    {"academy": "Art Academy", "unitPrice": 12000, "qty": 1, "amount": 12000},
                ],
                "lunch": {"semester": True, "single": 0},
                "lunchAmount": 4000,
                "discountAmount": 1000,
                "total": 30000,
                "paid": 10000,
                "status": "partial",
            },
            {"id": "i2", "studentId": "ghost", "studentName": "Nobody", "createdAt": 1000},
        ],
        settings.payments_collection: [
            {
                "id": "p1",
                "studentId": "r1",
                "invoiceId": "i1",
                "amount": 10000,
                "method": "Credit Card",
                "date": 1767225600000,
            },
            {"id": "p2", "studentId": "r1", "amount": 0},
            {"id": "p3", "studentId": "ghost", "amount": 500},
        ],
    }


@pytest.fixture
def store():
    return MemoryDocumentStore(legacy_collections())


async def _count(db, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


async def test_migrate_all(db, store):
    reports = await MigrationService(store).migrate_all(db)
    academies, teachers, registrations, invoices, payments = reports

    semester = await SemesterService().get_active_semester(db)
    assert semester.name == "Spring 2026"

    catalog = {a.name: a for a in await AcademyService().list_academies(db, semester)}
    assert set(catalog) == {"Korean Language", "Art Academy"}
    assert [lvl.name for lvl in catalog["Korean Language"].levels] == ["Alphabet", "Beginner", "Conversation"]
    assert catalog["Art Academy"].price == Decimal("120.00")
    assert academies.counts == {"created": 2, "levels": 3}
    assert academies.errors == ["Academy document a4 has no name"]

    profile = (await db.execute(select(Profile))).scalar_one()
    assert profile.email == "jisoo@example.com"
    assert profile.role == "teacher"
    assert [a.level.name for a in profile.assignments] == ["Beginner"]
    assert len(teachers.errors) == 1

    assert registrations.counts == {"created": 2, "merged": 1, "enrollments": 4}
    assert any("merged into r1" in w for w in registrations.warnings)
    ana = (await db.execute(select(Student).where(Student.legacy_id == "r1"))).scalar_one()
    assert ana.phone == "407-555-0100"
    assert ana.address["zip"] == "32801"
    ben = (await db.execute(select(Student).where(Student.legacy_id == "r2"))).scalar_one()
    assert sorted(e.label for e in ben.enrollments) == ["Art Academy", "Korean Language - Conversation"]

    assert invoices.counts == {"created": 1, "skipped": 1}
    assert any("i0" in w for w in invoices.warnings)
    invoice = (await db.execute(select(Invoice))).scalar_one()
    assert invoice.subtotal == Decimal("270.00")
    assert invoice.lunch_amount == Decimal("40.00")
    assert invoice.total == Decimal("300.00")
    assert invoice.paid_amount == Decimal("100.00")
    assert invoice.status == InvoiceStatus.PARTIAL.value

    assert payments.counts == {"created": 1, "skipped": 1}
    assert len(payments.errors) == 1
    payment = (await db.execute(select(Payment))).scalar_one()
    assert payment.method == "card"
    assert payment.invoice_id == invoice.id
    assert payment.amount == Decimal("100.00")

    # Reads only
    assert store.writes == []


async def test_migration_is_idempotent(db, store):
    service = MigrationService(store)
    await service.migrate_all(db)

    reports = await service.migrate_all(db)

    academies, teachers, registrations, invoices, payments = reports
    assert academies.counts.get("created") is None
    assert academies.counts["updated"] == 2
    assert teachers.counts["updated"] == 1
    assert "created" not in teachers.counts
    assert registrations.counts.get("created") is None
    assert invoices.counts["updated"] == 1
    assert payments.counts["existing"] == 1
    assert await _count(db, Student) == 2
    assert await _count(db, Invoice) == 1
    assert await _count(db, Payment) == 1


async def test_rename_document_academy(store):
    service = MigrationService(store)

    dry = await service.rename_document_academy("art academy", "Art", dry_run=True)
    assert dry.counts == {"documents": 3}
    assert store.writes == []

    await service.rename_document_academy("Art Academy", "Art")

    docs = store.docs(settings.registrations_collection)
    assert docs["r1"]["selectedAcademies"][1] == {"academy": "Art", "level": "N/A"}
    assert docs["r2"]["secondPeriod"]["academy"] == "Art"
    assert docs["r2"]["firstPeriod"]["academy"] == "Korean Conversation"
    assert len(store.writes) == 3


async def test_changed_email_moves_the_student_key(db, store):
    service = MigrationService(store)
    await service.migrate_all(db)
    registrations = store.docs(settings.registrations_collection)
    registrations["r1"]["email"] = "Ana.Lopez@example.com"
    registrations["r3"]["email"] = "ana.lopez@example.com"
    semester = await SemesterService().get_active_semester(db)

    report = await service.migrate_registrations(db, semester)

    assert report.errors == []
    ana = (await db.execute(select(Student).where(Student.legacy_id == "r1"))).scalar_one()
    assert ana.email_key == "ana.lopez@example.com"

    student, created = await RegistrationService().create_registration(
        db,
        RegistrationCreate(
            first_name="Ana",
            last_name="Lopez",
            email="ana.lopez@example.com",
            selections=[AcademySelection(academy="Art Academy")],
        ),
        semester,
    )
    assert not created
    assert student.id == ana.id
    assert await _count(db, Student) == 2


async def test_email_owned_by_another_student_is_reported(db, store):
    service = MigrationService(store)
    await service.migrate_all(db)
    store.docs(settings.registrations_collection)["r2"]["email"] = "ana@example.com"
    semester = await SemesterService().get_active_semester(db)

    report = await service.migrate_registrations(db, semester)

    assert report.errors == ["Ben Carter: Another student is registered with ana@example.com"]
    assert report.counts["merged"] == 2
    ben = (await db.execute(select(Student).where(Student.legacy_id == "r2"))).scalar_one()
    assert ben.email_key == "ben@example.com"


async def test_failed_record_does_not_stop_the_migration(db, store, monkeypatch):
    service = MigrationService(store)
    semester = await service.target_semester(db)
    await service.migrate_academies(db, semester)

    merge = service.registrations._merge_enrollments

    def merge_with_duplicate(student, semester, resolved):
        merge(student, semester, resolved)
        if student.first_name == "Ben":
            first = student.enrollments[0]
            student.enrollments.append(Enrollment(semester_id=semester.id, academy=first.academy))

    monkeypatch.setattr(service.registrations, "_merge_enrollments", merge_with_duplicate)

    report = await service.migrate_registrations(db, semester)

    assert len(report.errors) == 1
    assert report.errors[0].startswith("Ben Carter: ")
    assert report.counts["merged"] == 1
    students = (await db.execute(select(Student))).scalars().all()
    assert [s.legacy_id for s in students] == ["r1"]
    ana = await RegistrationService().get_registration(db, students[0].id)
    assert sorted(e.label for e in ana.enrollments) == ["Art Academy", "Korean Language - Beginner"]

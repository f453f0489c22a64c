"""Tests for the attendance service."""

import uuid
from datetime import date

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateTable

from academy_admin.exceptions import ForbiddenException, ValidationException
from academy_admin.models import ActivityAction, AttendanceRecord, AttendanceSession, AttendanceStatus, Role
from academy_admin.schemas.attendance import AttendanceEntry, AttendanceSave
from academy_admin.schemas.profile import AssignmentCreate, ProfileUpsert
from academy_admin.schemas.registration import AcademySelection, RegistrationCreate
from academy_admin.services.activity_service import ActivityService
from academy_admin.services.attendance_service import AttendanceService
from academy_admin.services.profile_service import ProfileService
from academy_admin.services.registration_service import RegistrationService

pytestmark = pytest.mark.anyio

CLASS_DATE = date(2026, 3, 7)


@pytest.fixture
async def korean_class(db, catalog):
    """Two Korean Beginner students and a teacher assigned to Korean."""
    registrations = RegistrationService()
    students = []
    for first, email in (("Ana", "ana@example.com"), ("Ben", "ben@example.com")):
        student, _ = await registrations.create_registration(
            db,
            RegistrationCreate(
                first_name=first,
                last_name="Kim",
                email=email,
                selections=[AcademySelection(academy="Korean Language", level="Beginner")],
            ),
            catalog["semester"],
        )
        students.append(student)

    profiles = ProfileService()
    teacher = await profiles.upsert_profile(
        db, ProfileUpsert(email="jisoo@example.com", full_name="Jisoo Park", role=Role.TEACHER)
    )
    await profiles.add_assignment(db, teacher.id, AssignmentCreate(academy_id=catalog["korean"].id))

    beginner = next(level for level in catalog["korean"].levels if level.name == "Beginner")
    return {"students": students, "teacher": teacher, "level": beginner, "academy": catalog["korean"]}


def _save(korean_class, *statuses, on_date=CLASS_DATE):
    return AttendanceSave(
        academy_id=korean_class["academy"].id,
        level_id=korean_class["level"].id,
        date=on_date,
        entries=[
            AttendanceEntry(student_id=student.id, status=status, reason="Sick" if status != "present" else "ignored")
            for student, status in zip(korean_class["students"], statuses)
        ],
    )


async def test_roster_defaults_to_present(db, korean_class):
    roster = await AttendanceService().get_roster(
        db, korean_class["academy"].id, korean_class["level"].id, CLASS_DATE
    )

    assert roster.session_id is None
    assert [row.student_name for row in roster.rows] == ["Ana Kim", "Ben Kim"]
    assert all(row.status == AttendanceStatus.PRESENT for row in roster.rows)


async def test_teacher_saves_and_updates_attendance(db, korean_class):
    service = AttendanceService()

    roster = await service.save_attendance(
        db, _save(korean_class, "present", "absent"), actor_email="jisoo@example.com", actor_role="teacher"
    )

    assert roster.session_id is not None
    by_name = {row.student_name: row for row in roster.rows}
    assert by_name["Ana Kim"].reason is None
    assert by_name["Ben Kim"].status == AttendanceStatus.ABSENT
    assert by_name["Ben Kim"].reason == "Sick"
    assert by_name["Ana Kim"].attendance_rate == 100.0
    assert by_name["Ben Kim"].attendance_rate == 0.0

    roster = await service.save_attendance(
        db, _save(korean_class, "present", "late"), actor_email="jisoo@example.com", actor_role="teacher"
    )
    assert {row.student_name: row.status for row in roster.rows}["Ben Kim"] == AttendanceStatus.LATE

    actions = [a.action for a in await ActivityService().list_recent(db)]
    assert sorted(actions) == sorted(
        [ActivityAction.ATTENDANCE_CREATED.value, ActivityAction.ATTENDANCE_UPDATED.value]
    )


async def test_unassigned_teacher_is_forbidden(db, catalog, korean_class):
    profiles = ProfileService()
    art_teacher = await profiles.upsert_profile(
        db, ProfileUpsert(email="mark@example.com", full_name="Mark Lee", role=Role.TEACHER)
    )
    await profiles.add_assignment(db, art_teacher.id, AssignmentCreate(academy_id=catalog["art"].id))

    with pytest.raises(ForbiddenException):
        await AttendanceService().save_attendance(
            db, _save(korean_class, "present", "present"), actor_email="mark@example.com", actor_role="teacher"
        )


async def test_admin_needs_no_assignment(db, korean_class):
    roster = await AttendanceService().save_attendance(
        db, _save(korean_class, "present", "present"), actor_email="boss@example.com", actor_role="admin"
    )
    assert roster.session_id is not None


async def test_student_outside_the_class_is_rejected(db, korean_class):
    data = AttendanceSave(
        academy_id=korean_class["academy"].id,
        level_id=korean_class["level"].id,
        date=CLASS_DATE,
        entries=[AttendanceEntry(student_id=uuid.uuid4())],
    )

    with pytest.raises(ValidationException):
        await AttendanceService().save_attendance(db, data, actor_email="boss@example.com", actor_role="admin")


async def test_daily_overview_and_delete(db, korean_class):
    service = AttendanceService()
    roster = await service.save_attendance(
        db, _save(korean_class, "present", "absent"), actor_email="boss@example.com", actor_role="admin"
    )

    overview = await service.daily_overview(db, CLASS_DATE)
    assert overview.total_present == 1
    assert overview.total_classes_recorded == 1

    deleted = await service.delete_records(db, [row.record_id for row in roster.rows])
    assert deleted == 2


async def test_late_counts_as_present(db, korean_class):
    service = AttendanceService()
    await service.save_attendance(
        db, _save(korean_class, "late", "late"), actor_email="boss@example.com", actor_role="admin"
    )
    roster = await service.save_attendance(
        db,
        _save(korean_class, "present", "absent", on_date=date(2026, 3, 14)),
        actor_email="boss@example.com",
        actor_role="admin",
    )

    rates = {row.student_name: row.attendance_rate for row in roster.rows}
    assert rates == {"Ana Kim": 100.0, "Ben Kim": 50.0}
    assert (await service.daily_overview(db, CLASS_DATE)).total_present == 2
    assert AttendanceRecord(status="late").is_present
    assert not AttendanceRecord(status="absent").is_present


async def test_academy_wide_sessions_are_unique_per_day_on_postgres():
    ddl = str(CreateTable(AttendanceSession.__table__).compile(dialect=postgresql.dialect()))

    assert "uq_attendance_sessions_class_date UNIQUE NULLS NOT DISTINCT (academy_id, level_id, date)" in ddl

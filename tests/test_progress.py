"""Tests for student progress reports."""

from datetime import date

import pytest

from academy_admin.exceptions import ForbiddenException, NotFoundException
from academy_admin.models import ActivityAction, Role
from academy_admin.schemas.profile import AssignmentCreate, ProfileUpsert
from academy_admin.schemas.progress import ProgressCreate, ProgressUpdate
from academy_admin.schemas.registration import AcademySelection, RegistrationCreate
from academy_admin.services.activity_service import ActivityService
from academy_admin.services.dedup_service import DedupService
from academy_admin.services.profile_service import ProfileService
from academy_admin.services.progress_service import ProgressService
from academy_admin.services.registration_service import RegistrationService
from tests.conftest import auth_headers

pytestmark = pytest.mark.anyio

REPORT_DATE = date(2026, 3, 7)


@pytest.fixture
async def classroom(db, catalog):
    """Ana in Korean Beginner, a Korean teacher and an Art teacher."""
    ana, _ = await RegistrationService().create_registration(
        db,
        RegistrationCreate(
            first_name="Ana",
            last_name="Kim",
            email="ana@example.com",
            selections=[
                AcademySelection(academy="Korean Language", level="Beginner"),
                AcademySelection(academy="Art Academy"),
            ],
        ),
        catalog["semester"],
    )
    profiles = ProfileService()
    jisoo = await profiles.upsert_profile(
        db, ProfileUpsert(email="jisoo@example.com", full_name="Jisoo Park", role=Role.TEACHER)
    )
    await profiles.add_assignment(db, jisoo.id, AssignmentCreate(academy_id=catalog["korean"].id))
    mark = await profiles.upsert_profile(
        db, ProfileUpsert(email="mark@example.com", full_name="Mark Lee", role=Role.TEACHER)
    )
    await profiles.add_assignment(db, mark.id, AssignmentCreate(academy_id=catalog["art"].id))
    await db.commit()

    beginner = next(level for level in catalog["korean"].levels if level.name == "Beginner")
    return {"student": ana, "level": beginner, "teacher": jisoo, **catalog}


def _korean_report(classroom, score=80):
    return ProgressCreate(
        student_id=classroom["student"].id,
        academy_id=classroom["korean"].id,
        level_id=classroom["level"].id,
        date=REPORT_DATE,
        score=score,
        comments="Reads hangul fluently",
    )


async def test_teacher_records_and_updates_progress(db, classroom):
    service = ProgressService()

    report = await service.create_report(
        db, _korean_report(classroom), actor_email="jisoo@example.com", actor_role="teacher"
    )

    assert report.teacher_id == classroom["teacher"].id
    assert report.level.name == "Beginner"

    report = await service.update_report(
        db, report.id, ProgressUpdate(score=92), actor_email="jisoo@example.com", actor_role="teacher"
    )
    assert report.score == 92
    assert report.comments == "Reads hangul fluently"

    activity = await ActivityService().list_recent(db)
    assert sorted(a.action for a in activity) == sorted(
        [ActivityAction.PROGRESS_CREATED.value, ActivityAction.PROGRESS_UPDATED.value]
    )
    assert all(a.details == "Ana Kim on 2026-03-07 (92)" for a in activity if a.action == "progress_updated")


async def test_teacher_of_another_academy_is_forbidden(db, classroom):
    with pytest.raises(ForbiddenException):
        await ProgressService().create_report(
            db, _korean_report(classroom), actor_email="mark@example.com", actor_role="teacher"
        )


async def test_level_must_belong_to_the_academy(db, classroom):
    data = _korean_report(classroom)
    data.academy_id = classroom["art"].id

    with pytest.raises(NotFoundException):
        await ProgressService().create_report(db, data, actor_email="boss@example.com", actor_role="admin")


async def test_teachers_only_list_their_academies(db, classroom):
    service = ProgressService()
    await service.create_report(db, _korean_report(classroom), actor_email="boss@example.com", actor_role="admin")
    await service.create_report(
        db,
        ProgressCreate(student_id=classroom["student"].id, academy_id=classroom["art"].id, date=REPORT_DATE),
        actor_email="boss@example.com",
        actor_role="admin",
    )

    admin_view = await service.list_progress(db, actor_email="boss@example.com", actor_role="admin")
    korean_view = await service.list_progress(db, actor_email="jisoo@example.com", actor_role="teacher")
    stranger_view = await service.list_progress(db, actor_email="nobody@example.com", actor_role="teacher")

    assert len(admin_view) == 2
    assert [r.academy.name for r in korean_view] == ["Korean Language"]
    assert stranger_view == []


async def test_progress_api(client, classroom):
    payload = {
        "student_id": str(classroom["student"].id),
        "academy_id": str(classroom["korean"].id),
        "level_id": str(classroom["level"].id),
        "date": "2026-03-07",
        "score": 101,
    }
    headers = auth_headers(Role.TEACHER, email="jisoo@example.com")

    response = await client.post("/api/v1/progress", json=payload, headers=headers)
    assert response.status_code == 422

    response = await client.post("/api/v1/progress", json={**payload, "score": 75}, headers=headers)
    assert response.status_code == 200
    created = response.json()["data"]
    assert created["student_name"] == "Ana Kim"
    assert created["level_name"] == "Beginner"

    response = await client.get("/api/v1/progress", headers=headers)
    assert [r["id"] for r in response.json()["data"]] == [created["id"]]

    response = await client.post(
        "/api/v1/progress/delete", json={"report_ids": [created["id"]]}, headers=headers
    )
    assert response.status_code == 403

    response = await client.post(
        "/api/v1/progress/delete", json={"report_ids": [created["id"]]}, headers=auth_headers()
    )
    assert response.json()["data"] == {"deleted": 1}


async def test_merged_student_keeps_progress(db, classroom):
    duplicate, _ = await RegistrationService().create_registration(
        db,
        RegistrationCreate(
            first_name="Ana",
            last_name="Kim",
            email="ana.kim@example.com",
            selections=[AcademySelection(academy="Korean Language", level="Beginner")],
        ),
        classroom["semester"],
    )
    data = _korean_report(classroom)
    data.student_id = duplicate.id
    report = await ProgressService().create_report(db, data, actor_email="boss@example.com", actor_role="admin")

    await DedupService().merge_students(db, classroom["student"].id, [duplicate.id])

    reports = await ProgressService().list_progress(db, actor_role="admin")
    assert [(r.id, r.student_id) for r in reports] == [(report.id, classroom["student"].id)]

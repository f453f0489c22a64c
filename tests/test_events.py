"""Tests for events and volunteer hours."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from academy_admin.exceptions import ConflictException, ValidationException
from academy_admin.models import EventStatus, HoursStatus, Role
from academy_admin.schemas.event import CheckInRequest, EventCreate, EventUpdate, HoursUpdate
from academy_admin.services.event_service import EventService, shift_hours
from tests.conftest import auth_headers

pytestmark = pytest.mark.anyio

MORNING = datetime(2026, 4, 11, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
async def festival(db):
    event = await EventService().create_event(
        db,
        EventCreate(
            name="Taste of Korea",
            date=date(2026, 4, 11),
            start_time="09:00",
            end_time="17:00",
            location="Lake Eola Park",
        ),
    )
    await db.commit()
    return event


def _volunteer(code="v-001", name="Mina Cho"):
    return CheckInRequest(volunteer_code=code, volunteer_name=name, volunteer_email="Mina@Example.com")


async def test_shift_hours_rounds_to_hundredths():
    assert shift_hours(MORNING, MORNING + timedelta(hours=2, minutes=20)) == Decimal("2.33")
    assert shift_hours(MORNING.replace(tzinfo=None), MORNING + timedelta(minutes=30)) == Decimal("0.50")


async def test_check_in_and_out(db, festival):
    service = EventService()

    hours = await service.check_in(db, festival.id, _volunteer(), now=MORNING)
    assert hours.volunteer_code == "V-001"
    assert hours.volunteer_email == "mina@example.com"
    assert hours.status == HoursStatus.CHECKED_IN.value

    hours = await service.check_out(db, hours.id, now=MORNING + timedelta(hours=3, minutes=45))
    assert hours.status == HoursStatus.COMPLETED.value
    assert hours.total_hours == Decimal("3.75")

    with pytest.raises(ConflictException):
        await service.check_out(db, hours.id, now=MORNING + timedelta(hours=4))


async def test_one_open_shift_per_day(db, festival):
    service = EventService()
    await service.check_in(db, festival.id, _volunteer(), now=MORNING)

    with pytest.raises(ConflictException):
        await service.check_in(db, festival.id, _volunteer(code="V-001"), now=MORNING + timedelta(hours=1))

    # A different volunteer, and the same one on another day, are fine
    await service.check_in(db, festival.id, _volunteer(code="v-002", name="Joon Lee"), now=MORNING)
    await service.check_in(db, festival.id, _volunteer(), now=MORNING + timedelta(days=1))
    assert len(await service.list_hours(db, festival.id)) == 3


async def test_cancelled_event_rejects_check_in(db, festival):
    service = EventService()
    await service.update_event(db, festival.id, EventUpdate(status=EventStatus.CANCELLED))

    with pytest.raises(ValidationException):
        await service.check_in(db, festival.id, _volunteer(), now=MORNING)


async def test_corrected_times_recompute_the_total(db, festival):
    service = EventService()
    hours = await service.check_in(db, festival.id, _volunteer(), now=MORNING)

    hours = await service.update_hours(
        db, hours.id, HoursUpdate(check_out_at=MORNING + timedelta(hours=5), notes="Forgot to check out")
    )
    assert hours.total_hours == Decimal("5.00")
    assert hours.status == HoursStatus.COMPLETED.value

    with pytest.raises(ValidationException):
        await service.update_hours(db, hours.id, HoursUpdate(check_in_at=MORNING + timedelta(hours=6)))


async def test_volunteer_totals(db, festival):
    service = EventService()
    for code, name, length in (("V-1", "Mina Cho", 2), ("V-2", "Joon Lee", 5), ("V-1", "Mina Cho", 4)):
        start = MORNING + timedelta(days=length)
        hours = await service.check_in(db, festival.id, _volunteer(code=code, name=name), now=start)
        await service.check_out(db, hours.id, now=start + timedelta(hours=length))
    await service.check_in(db, festival.id, _volunteer(code="V-3", name="Still Here"), now=MORNING)

    totals = await service.volunteer_totals(db, festival.id)

    assert [(t.volunteer_name, t.shifts, t.total_hours) for t in totals] == [
        ("Mina Cho", 2, Decimal("6.00")),
        ("Joon Lee", 1, Decimal("5.00")),
    ]


async def test_events_api(client, database):
    response = await client.post(
        "/api/v1/events",
        json={"name": "Volunteer Day", "date": "2026-05-02", "start_time": "9am"},
        headers=auth_headers(),
    )
    assert response.status_code == 422

    response = await client.post(
        "/api/v1/events",
        json={"name": "Volunteer Day", "date": "2026-05-02", "start_time": "09:00"},
        headers=auth_headers(Role.TEACHER),
    )
    assert response.status_code == 403

    response = await client.post(
        "/api/v1/events",
        json={"name": "Volunteer Day", "date": "2026-05-02", "start_time": "09:00"},
        headers=auth_headers(),
    )
    event = response.json()["data"]
    assert event["status"] == "upcoming"

    response = await client.post(
        f"/api/v1/events/{event['id']}/check-in",
        json={"volunteer_code": "v-9", "volunteer_name": "Mina Cho"},
        headers=auth_headers(Role.TEACHER),
    )
    assert response.status_code == 200
    hours = response.json()["data"]

    response = await client.post(f"/api/v1/events/hours/{hours['id']}/check-out", headers=auth_headers())
    assert response.json()["data"]["status"] == "completed"

    response = await client.get(f"/api/v1/events/{event['id']}/hours", headers=auth_headers(Role.VIEWER))
    assert [h["volunteer_code"] for h in response.json()["data"]] == ["V-9"]

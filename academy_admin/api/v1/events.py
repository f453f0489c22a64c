"""Event and volunteer hours API endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.database import get_db
from academy_admin.models import EventStatus, Role
from academy_admin.schemas.common import APIResponse
from academy_admin.schemas.event import (
    CheckInRequest,
    EventCreate,
    EventResponse,
    EventUpdate,
    HoursResponse,
    HoursUpdate,
    VolunteerTotal,
)
from academy_admin.services.event_service import get_event_service
from academy_admin.utils.permissions import ANY_ROLE, STAFF, require_role

router = APIRouter()


@router.get("", response_model=APIResponse[list[EventResponse]])
@require_role(*ANY_ROLE)
async def list_events(
    status: EventStatus | None = Query(None, description="Only events with this status"),
    db: AsyncSession = Depends(get_db),
):
    events = await get_event_service().list_events(db, status=status)
    return APIResponse(data=[EventResponse.model_validate(e) for e in events])


@router.post("", response_model=APIResponse[EventResponse])
@require_role(Role.ADMIN)
async def create_event(
    data: EventCreate,
    db: AsyncSession = Depends(get_db),
):
    event = await get_event_service().create_event(db, data)
    await db.commit()

    return APIResponse(data=EventResponse.model_validate(event), message="Event created successfully")


@router.patch("/{event_id}", response_model=APIResponse[EventResponse])
@require_role(Role.ADMIN)
async def update_event(
    event_id: uuid.UUID,
    data: EventUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Edit an event, including moving it through its statuses."""
    event = await get_event_service().update_event(db, event_id, data)
    await db.commit()

    return APIResponse(data=EventResponse.model_validate(event), message="Event updated successfully")


@router.get("/hours/totals", response_model=APIResponse[list[VolunteerTotal]])
@require_role(*ANY_ROLE)
async def volunteer_totals(
    event_id: uuid.UUID | None = Query(None, description="Only this event"),
    db: AsyncSession = Depends(get_db),
):
    """Completed volunteer hours per volunteer."""
    totals = await get_event_service().volunteer_totals(db, event_id)
    return APIResponse(data=totals)


@router.get("/{event_id}/hours", response_model=APIResponse[list[HoursResponse]])
@require_role(*ANY_ROLE)
async def list_hours(
    event_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    service = get_event_service()
    await service.get_event(db, event_id)
    hours = await service.list_hours(db, event_id)
    return APIResponse(data=[HoursResponse.model_validate(h) for h in hours])


@router.post("/{event_id}/check-in", response_model=APIResponse[HoursResponse])
@require_role(*STAFF)
async def check_in(
    event_id: uuid.UUID,
    data: CheckInRequest,
    db: AsyncSession = Depends(get_db),
):
    hours = await get_event_service().check_in(db, event_id, data)
    await db.commit()

    return APIResponse(data=HoursResponse.model_validate(hours), message=f"{hours.volunteer_name} checked in")


@router.post("/hours/{hours_id}/check-out", response_model=APIResponse[HoursResponse])
@require_role(*STAFF)
async def check_out(
    hours_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    hours = await get_event_service().check_out(db, hours_id)
    await db.commit()

    return APIResponse(data=HoursResponse.model_validate(hours), message=f"{hours.volunteer_name} checked out")


@router.patch("/hours/{hours_id}", response_model=APIResponse[HoursResponse])
@require_role(Role.ADMIN)
async def update_hours(
    hours_id: uuid.UUID,
    data: HoursUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Correct a volunteer's check-in or check-out time."""
    hours = await get_event_service().update_hours(db, hours_id, data)
    await db.commit()

    return APIResponse(data=HoursResponse.model_validate(hours), message="Volunteer hours updated")

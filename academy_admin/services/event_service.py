"""Event and volunteer hours service."""

import logging
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.exceptions import ConflictException, NotFoundException, ValidationException
from academy_admin.models import Event, EventStatus, HoursStatus, VolunteerHours
from academy_admin.schemas.event import CheckInRequest, EventCreate, EventUpdate, HoursUpdate, VolunteerTotal
from academy_admin.utils.timestamps import to_datetime

logger = logging.getLogger(__name__)

HOURS_PLACES = Decimal("0.01")


def shift_hours(check_in: datetime, check_out: datetime) -> Decimal:
    """Length of a shift in hours, to the hundredth."""
    seconds = (to_datetime(check_out) - to_datetime(check_in)).total_seconds()
    return (Decimal(seconds) / 3600).quantize(HOURS_PLACES, rounding=ROUND_HALF_UP)


class EventService:
    """Service for events and the hours volunteers work at them."""

    async def list_events(self, db: AsyncSession, status: EventStatus | None = None) -> list[Event]:
        """Events, most recent first."""
        query = select(Event)
        if status:
            query = query.where(Event.status == status.value)
        query = query.order_by(Event.date.desc(), Event.name)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_event(self, db: AsyncSession, event_id: uuid.UUID) -> Event:
        event = await db.get(Event, event_id)
        if not event:
            raise NotFoundException("Event")
        return event

    async def create_event(self, db: AsyncSession, data: EventCreate) -> Event:
        event = Event(**data.model_dump(exclude={"status"}), status=data.status.value)
        db.add(event)
        await db.flush()
        logger.info(f"Created event {event.name} on {event.date}")
        return event

    async def update_event(self, db: AsyncSession, event_id: uuid.UUID, data: EventUpdate) -> Event:
        event = await self.get_event(db, event_id)
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("status") is not None:
            update_data["status"] = update_data["status"].value
        for field, value in update_data.items():
            setattr(event, field, value)
        await db.flush()
        return event

    async def list_hours(self, db: AsyncSession, event_id: uuid.UUID | None = None) -> list[VolunteerHours]:
        """Shifts, latest check-in first."""
        query = select(VolunteerHours)
        if event_id:
            query = query.where(VolunteerHours.event_id == event_id)
        query = query.order_by(VolunteerHours.check_in_at.desc())
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_hours(self, db: AsyncSession, hours_id: uuid.UUID) -> VolunteerHours:
        hours = await db.get(VolunteerHours, hours_id)
        if not hours:
            raise NotFoundException("Volunteer hours")
        return hours

    async def check_in(
        self,
        db: AsyncSession,
        event_id: uuid.UUID,
        data: CheckInRequest,
        now: datetime | None = None,
    ) -> VolunteerHours:
        """Open a shift. A volunteer can hold one open shift per event and day."""
        event = await self.get_event(db, event_id)
        if event.status == EventStatus.CANCELLED.value:
            raise ValidationException([{"field": "event_id", "message": f"{event.name} was cancelled"}])
        now = to_datetime(now) if now else datetime.now(timezone.utc)
        code = data.volunteer_code.strip().upper()

        result = await db.execute(
            select(VolunteerHours).where(
                VolunteerHours.event_id == event.id,
                VolunteerHours.volunteer_code == code,
                VolunteerHours.status == HoursStatus.CHECKED_IN.value,
            )
        )
        if any(to_datetime(h.check_in_at).date() == now.date() for h in result.scalars()):
            raise ConflictException(f"{data.volunteer_name} is already checked in today")

        hours = VolunteerHours(
            event_id=event.id,
            volunteer_code=code,
            volunteer_name=data.volunteer_name,
            volunteer_email=str(data.volunteer_email).lower() if data.volunteer_email else None,
            check_in_at=now,
            status=HoursStatus.CHECKED_IN.value,
        )
        db.add(hours)
        await db.flush()
        logger.info(f"{hours.volunteer_name} checked in to {event.name}")
        return hours

    async def check_out(self, db: AsyncSession, hours_id: uuid.UUID, now: datetime | None = None) -> VolunteerHours:
        hours = await self.get_hours(db, hours_id)
        if hours.status != HoursStatus.CHECKED_IN.value:
            raise ConflictException(f"{hours.volunteer_name} is already checked out")
        now = to_datetime(now) if now else datetime.now(timezone.utc)
        if now < to_datetime(hours.check_in_at):
            raise ValidationException([{"field": "check_out_at", "message": "Check-out is before check-in"}])

        hours.check_out_at = now
        hours.total_hours = shift_hours(hours.check_in_at, now)
        hours.status = HoursStatus.COMPLETED.value
        await db.flush()
        logger.info(f"{hours.volunteer_name} checked out after {hours.total_hours} hours")
        return hours

    async def update_hours(self, db: AsyncSession, hours_id: uuid.UUID, data: HoursUpdate) -> VolunteerHours:
        """Correct a shift's times; the total is recomputed once both ends are known."""
        hours = await self.get_hours(db, hours_id)
        update_data = data.model_dump(exclude_unset=True)
        check_in = update_data.get("check_in_at") or hours.check_in_at
        check_out = update_data.get("check_out_at") or hours.check_out_at
        if check_out is not None and to_datetime(check_out) < to_datetime(check_in):
            raise ValidationException([{"field": "check_out_at", "message": "Check-out is before check-in"}])

        for field, value in update_data.items():
            setattr(hours, field, value)
        if hours.check_out_at is not None:
            hours.total_hours = shift_hours(hours.check_in_at, hours.check_out_at)
            hours.status = HoursStatus.COMPLETED.value
        await db.flush()
        return hours

    async def volunteer_totals(self, db: AsyncSession, event_id: uuid.UUID | None = None) -> list[VolunteerTotal]:
        """Completed hours per volunteer code, most hours first."""
        totals: dict[str, VolunteerTotal] = {}
        for hours in await self.list_hours(db, event_id):
            if hours.total_hours is None:
                continue
            entry = totals.get(hours.volunteer_code)
            if entry is None:
                entry = totals[hours.volunteer_code] = VolunteerTotal(
                    volunteer_code=hours.volunteer_code,
                    volunteer_name=hours.volunteer_name,
                    volunteer_email=hours.volunteer_email,
                    shifts=0,
                    total_hours=Decimal("0.00"),
                )
            entry.shifts += 1
            entry.total_hours += hours.total_hours
        return sorted(totals.values(), key=lambda t: (-t.total_hours, t.volunteer_name))


def get_event_service() -> EventService:
    return EventService()

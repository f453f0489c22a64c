"""Pydantic schemas for events and volunteer hours."""

import uuid
import datetime as dt
from decimal import Decimal

from pydantic import EmailStr, Field

from academy_admin.models.event import EventStatus
from academy_admin.schemas.common import BaseSchema

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class EventCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    date: dt.date
    start_time: str | None = Field(None, pattern=TIME_PATTERN)
    end_time: str | None = Field(None, pattern=TIME_PATTERN)
    location: str = Field("", max_length=255)
    status: EventStatus = EventStatus.UPCOMING


class EventUpdate(BaseSchema):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    date: dt.date | None = None
    start_time: str | None = Field(None, pattern=TIME_PATTERN)
    end_time: str | None = Field(None, pattern=TIME_PATTERN)
    location: str | None = Field(None, max_length=255)
    status: EventStatus | None = None


class EventResponse(BaseSchema):
    id: uuid.UUID
    name: str
    description: str | None = None
    date: dt.date
    start_time: str | None = None
    end_time: str | None = None
    location: str
    status: str


class CheckInRequest(BaseSchema):
    volunteer_code: str = Field(..., min_length=1, max_length=50)
    volunteer_name: str = Field(..., min_length=1, max_length=200)
    volunteer_email: EmailStr | None = None


class HoursUpdate(BaseSchema):
    """Correction of a shift's times by an admin."""

    check_in_at: dt.datetime | None = None
    check_out_at: dt.datetime | None = None
    notes: str | None = None


class HoursResponse(BaseSchema):
    id: uuid.UUID
    event_id: uuid.UUID
    volunteer_code: str
    volunteer_name: str
    volunteer_email: str | None = None
    check_in_at: dt.datetime
    check_out_at: dt.datetime | None = None
    total_hours: Decimal | None = None
    status: str
    notes: str | None = None


class VolunteerTotal(BaseSchema):
    volunteer_code: str
    volunteer_name: str
    volunteer_email: str | None = None
    shifts: int
    total_hours: Decimal

"""Event and volunteer hours models."""

import uuid
import datetime as dt
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from academy_admin.models.base import BaseModel


class EventStatus(str, Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class HoursStatus(str, Enum):
    """Where a volunteer is in a shift."""

    CHECKED_IN = "checked-in"
    COMPLETED = "completed"


class Event(BaseModel):
    """A community event volunteers check in to."""

    __tablename__ = "events"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[str | None] = mapped_column(String(10), nullable=True)
    end_time: Mapped[str | None] = mapped_column(String(10), nullable=True)
    location: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=EventStatus.UPCOMING.value)

    hours = relationship(
        "VolunteerHours",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="VolunteerHours.check_in_at",
    )


class VolunteerHours(BaseModel):
    """One volunteer shift at an event, from check-in to check-out."""

    __tablename__ = "volunteer_hours"

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    volunteer_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    volunteer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    volunteer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    check_in_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    check_out_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_hours: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=HoursStatus.CHECKED_IN.value)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    event = relationship("Event", back_populates="hours", lazy="selectin")

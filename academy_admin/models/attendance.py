"""Attendance tracking models."""

import uuid
import datetime as dt
from enum import Enum

from sqlalchemy import (
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from academy_admin.models.base import BaseModel


class AttendanceStatus(str, Enum):
    """Attendance status options."""

    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"


# Late counts as present
PRESENT_STATUSES = (AttendanceStatus.PRESENT.value, AttendanceStatus.LATE.value)


class AttendanceSession(BaseModel):
    """One class meeting: an academy (and optional level) on a date."""

    __tablename__ = "attendance_sessions"
    __table_args__ = (
        # One academy-wide session per day too, where level_id is NULL
        UniqueConstraint(
            "academy_id",
            "level_id",
            "date",
            name="uq_attendance_sessions_class_date",
            postgresql_nulls_not_distinct=True,
        ),
        Index("idx_attendance_sessions_date", "date"),
    )

    academy_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("academies.id", ondelete="CASCADE"),
        nullable=False,
    )
    level_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("levels.id", ondelete="CASCADE"),
        nullable=True,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    teacher_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    records = relationship(
        "AttendanceRecord",
        back_populates="session",
        lazy="selectin",
        cascade="all, delete-orphan",
    )


class AttendanceRecord(BaseModel):
    """A student's status in one session."""

    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint("session_id", "student_id", name="uq_attendance_records_session_student"),
    )

    session_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("attendance_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AttendanceStatus.PRESENT.value,
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    session = relationship("AttendanceSession", back_populates="records")

    @property
    def is_present(self) -> bool:
        return self.status in PRESENT_STATUSES

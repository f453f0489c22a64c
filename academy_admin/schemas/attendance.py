"""Pydantic schemas for attendance."""

import uuid
from datetime import date

from pydantic import Field

from academy_admin.models.attendance import AttendanceStatus
from academy_admin.schemas.common import BaseSchema


class AttendanceEntry(BaseSchema):
    student_id: uuid.UUID
    status: AttendanceStatus = AttendanceStatus.PRESENT
    reason: str | None = None


class AttendanceSave(BaseSchema):
    """A class session's attendance as submitted by a teacher."""

    academy_id: uuid.UUID
    level_id: uuid.UUID | None = None
    date: date
    notes: str | None = None
    entries: list[AttendanceEntry] = Field(..., min_length=1)


class RosterRow(BaseSchema):
    student_id: uuid.UUID
    student_name: str
    status: AttendanceStatus
    reason: str | None = None
    record_id: uuid.UUID | None = None
    # Share of this class's recorded sessions the student attended
    attendance_rate: float | None = None


class RosterResponse(BaseSchema):
    session_id: uuid.UUID | None = None
    academy_id: uuid.UUID
    level_id: uuid.UUID | None = None
    date: date
    notes: str | None = None
    rows: list[RosterRow] = Field(default_factory=list)


class DailyOverview(BaseSchema):
    date: date
    total_present: int
    total_classes_recorded: int


class DeleteRecordsRequest(BaseSchema):
    record_ids: list[uuid.UUID] = Field(..., min_length=1)

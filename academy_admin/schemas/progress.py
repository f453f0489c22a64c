"""Pydantic schemas for student progress reports."""

import uuid
import datetime as dt

from pydantic import Field

from academy_admin.schemas.common import BaseSchema


class ProgressCreate(BaseSchema):
    student_id: uuid.UUID
    academy_id: uuid.UUID
    level_id: uuid.UUID | None = None
    date: dt.date
    score: int | None = Field(None, ge=0, le=100)
    comments: str | None = None


class ProgressUpdate(BaseSchema):
    level_id: uuid.UUID | None = None
    date: dt.date | None = None
    score: int | None = Field(None, ge=0, le=100)
    comments: str | None = None


class ProgressResponse(BaseSchema):
    id: uuid.UUID
    date: dt.date
    student_id: uuid.UUID
    student_name: str
    academy_id: uuid.UUID
    academy_name: str
    level_id: uuid.UUID | None = None
    level_name: str | None = None
    score: int | None = None
    comments: str | None = None


class DeleteProgressRequest(BaseSchema):
    report_ids: list[uuid.UUID] = Field(..., min_length=1)

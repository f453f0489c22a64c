"""Pydantic schemas for the teacher activity log."""

import uuid
from datetime import datetime

from academy_admin.schemas.common import BaseSchema


class ActivityResponse(BaseSchema):
    id: uuid.UUID
    teacher_email: str
    teacher_name: str
    action: str
    academy: str
    level: str | None = None
    details: str | None = None
    created_at: datetime

"""Pydantic schemas for staff profiles."""

import uuid

from pydantic import EmailStr, Field

from academy_admin.models.profile import Role
from academy_admin.schemas.common import BaseSchema


class ProfileUpsert(BaseSchema):
    email: EmailStr
    full_name: str = Field("", max_length=200)
    phone: str | None = None
    credentials: str | None = None
    role: Role | None = None
    is_active: bool | None = None


class RoleUpdate(BaseSchema):
    role: Role


class AssignmentCreate(BaseSchema):
    academy_id: uuid.UUID
    level_id: uuid.UUID | None = None


class AssignmentResponse(BaseSchema):
    id: uuid.UUID
    academy_id: uuid.UUID
    academy_name: str
    level_id: uuid.UUID | None = None
    level_name: str | None = None


class ProfileResponse(BaseSchema):
    id: uuid.UUID
    email: str
    full_name: str
    phone: str | None = None
    credentials: str | None = None
    role: str
    is_active: bool
    assignments: list[AssignmentResponse] = Field(default_factory=list)

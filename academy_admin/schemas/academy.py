"""Pydantic schemas for semesters and the academy catalog."""

import uuid
from datetime import date
from decimal import Decimal

from pydantic import Field

from academy_admin.schemas.common import BaseSchema


class SemesterCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=100)
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool = False


class SemesterResponse(BaseSchema):
    id: uuid.UUID
    name: str
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool


class LevelCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=150)
    schedule: str | None = None
    display_order: int = 0


class LevelUpdate(BaseSchema):
    name: str | None = Field(None, min_length=1, max_length=150)
    schedule: str | None = None
    display_order: int | None = None


class LevelResponse(BaseSchema):
    id: uuid.UUID
    academy_id: uuid.UUID
    name: str
    schedule: str | None = None
    display_order: int


class AcademyCreate(BaseSchema):
    """Schema for creating an academy, optionally with its levels."""

    name: str = Field(..., min_length=1, max_length=150)
    description: str | None = None
    price: Decimal = Field(Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)
    schedule: str | None = None
    display_order: int = 0
    is_active: bool = True
    semester_id: uuid.UUID | None = None
    levels: list[LevelCreate] = Field(default_factory=list)


class AcademyUpdate(BaseSchema):
    name: str | None = Field(None, min_length=1, max_length=150)
    description: str | None = None
    price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    schedule: str | None = None
    display_order: int | None = None
    is_active: bool | None = None


class AcademyResponse(BaseSchema):
    id: uuid.UUID
    semester_id: uuid.UUID
    name: str
    description: str | None = None
    price: Decimal
    schedule: str | None = None
    display_order: int
    is_active: bool
    levels: list[LevelResponse] = Field(default_factory=list)

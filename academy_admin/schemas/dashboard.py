"""Pydantic schemas for the dashboard summary."""

import uuid
from decimal import Decimal

from pydantic import Field

from academy_admin.schemas.attendance import DailyOverview
from academy_admin.schemas.common import BaseSchema


class LevelCount(BaseSchema):
    level_id: uuid.UUID | None = None
    name: str
    enrolled: int


class AcademySummary(BaseSchema):
    academy_id: uuid.UUID
    name: str
    price: Decimal
    enrolled: int
    levels: list[LevelCount] = Field(default_factory=list)


class FinancialSummary(BaseSchema):
    expected: Decimal
    collected: Decimal
    pending: Decimal
    invoices_by_status: dict[str, int] = Field(default_factory=dict)


class DashboardSummary(BaseSchema):
    semester_id: uuid.UUID
    semester_name: str
    total_students: int
    total_enrollments: int
    academies: list[AcademySummary] = Field(default_factory=list)
    financial: FinancialSummary
    attendance_today: DailyOverview

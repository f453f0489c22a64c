"""Semester (term) model."""

from datetime import date

from sqlalchemy import Boolean, Date, String
from sqlalchemy.orm import Mapped, mapped_column

from academy_admin.models.base import BaseModel


class Semester(BaseModel):
    """An enrollment period scoping academies, enrollments and invoices."""

    __tablename__ = "semesters"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

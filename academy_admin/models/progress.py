"""Student progress report model."""

import uuid
import datetime as dt

from sqlalchemy import Date, ForeignKey, Index, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from academy_admin.models.base import BaseModel


class ProgressReport(BaseModel):
    """A teacher's score and comments for a student in one class."""

    __tablename__ = "progress_reports"
    __table_args__ = (
        Index("idx_progress_reports_academy_date", "academy_id", "date"),
    )

    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    academy_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("academies.id", ondelete="CASCADE"),
        nullable=False,
    )
    level_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("levels.id", ondelete="SET NULL"),
        nullable=True,
    )
    teacher_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    student = relationship("Student", lazy="selectin")
    academy = relationship("Academy", lazy="selectin")
    level = relationship("Level", lazy="selectin")

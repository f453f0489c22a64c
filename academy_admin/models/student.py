"""Student and enrollment models."""

import uuid
from datetime import date
from enum import Enum

from sqlalchemy import (
    JSON,
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
from academy_admin.utils.validations import compute_age


class EnrollmentStatus(str, Enum):
    """Enrollment status options."""

    ENROLLED = "enrolled"
    WITHDRAWN = "withdrawn"


class Student(BaseModel):
    """A registered person. One row per e-mail address."""

    __tablename__ = "students"
    __table_args__ = (
        Index("idx_students_name", "last_name", "first_name"),
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Lowercased e-mail; NULLs do not collide
    email_key: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(20), nullable=True)
    address: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    guardian_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    guardian_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    t_shirt_size: Mapped[str | None] = mapped_column(String(20), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Document-store ID for migrated registrations
    legacy_id: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)

    # Relationships
    enrollments = relationship(
        "Enrollment",
        back_populates="student",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def age(self) -> int | None:
        return compute_age(self.birth_date)

    def enrollments_for(self, semester_id: uuid.UUID) -> list["Enrollment"]:
        return [e for e in self.enrollments if e.semester_id == semester_id]


class Enrollment(BaseModel):
    """A student's place in one academy (and optional level) for a semester."""

    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint(
            "student_id", "semester_id", "academy_id", name="uq_enrollments_student_semester_academy"
        ),
        Index("idx_enrollments_semester_academy", "semester_id", "academy_id"),
    )

    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    semester_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("semesters.id", ondelete="CASCADE"),
        nullable=False,
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
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=EnrollmentStatus.ENROLLED.value,
    )

    # Relationships
    student = relationship("Student", back_populates="enrollments")
    academy = relationship("Academy", lazy="selectin")
    level = relationship("Level", lazy="selectin")

    @property
    def label(self) -> str:
        """``Academy - Level`` as printed on invoices."""
        if self.level is not None:
            return f"{self.academy.name} - {self.level.name}"
        return self.academy.name

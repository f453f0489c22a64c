"""Staff profile model with role-based access control."""

import uuid
from enum import Enum

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from academy_admin.models.base import BaseModel


class Role(str, Enum):
    """Dashboard roles, lowest to highest."""

    VIEWER = "viewer"  # Read-only dashboards
    TEACHER = "teacher"  # Attendance for assigned academies
    ADMIN = "admin"  # Registrations, finances, catalog
    SUPERUSER = "superuser"  # Everything, including role management


ROLE_RANK = {role.value: rank for rank, role in enumerate(Role)}


class Profile(BaseModel):
    """A dashboard user, usually a teacher or office staff."""

    __tablename__ = "profiles"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    credentials: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=Role.VIEWER.value)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    assignments = relationship(
        "TeacherAssignment",
        back_populates="profile",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    @property
    def is_staff(self) -> bool:
        return self.role in (Role.TEACHER.value, Role.ADMIN.value, Role.SUPERUSER.value)

    def outranks(self, role: str) -> bool:
        return ROLE_RANK.get(self.role, -1) > ROLE_RANK.get(role, -1)

    def is_assigned_to(self, academy_id: uuid.UUID, level_id: uuid.UUID | None = None) -> bool:
        """Academy-wide assignments cover every level of the academy."""
        for assignment in self.assignments:
            if assignment.academy_id != academy_id:
                continue
            if assignment.level_id is None or assignment.level_id == level_id:
                return True
        return False


class TeacherAssignment(BaseModel):
    """Links a profile to an academy, optionally to one of its levels."""

    __tablename__ = "teacher_assignments"
    __table_args__ = (
        UniqueConstraint("profile_id", "academy_id", "level_id", name="uq_teacher_assignments"),
    )

    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
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
        ForeignKey("levels.id", ondelete="CASCADE"),
        nullable=True,
    )

    profile = relationship("Profile", back_populates="assignments")
    academy = relationship("Academy", lazy="selectin")
    level = relationship("Level", lazy="selectin")

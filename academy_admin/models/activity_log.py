"""Teacher activity log model."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from academy_admin.models.base import Base


class ActivityAction(str, Enum):
    """Actions recorded in the activity log."""

    ATTENDANCE_CREATED = "attendance_created"
    ATTENDANCE_UPDATED = "attendance_updated"
    PROGRESS_CREATED = "progress_created"
    PROGRESS_UPDATED = "progress_updated"
    EXPORT_CSV = "export_csv"


class TeacherActivity(Base):
    """Append-only record of what a teacher did."""

    __tablename__ = "teacher_activity_log"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        Index("idx_teacher_activity_created", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    teacher_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    teacher_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    teacher_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    action: Mapped[str] = mapped_column(String(40), nullable=False)
    academy: Mapped[str] = mapped_column(String(150), nullable=False, default="")
    level: Mapped[str | None] = mapped_column(String(150), nullable=True)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

"""Teacher activity log service."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.models import ActivityAction, Profile, TeacherActivity

logger = logging.getLogger(__name__)

RECENT_LIMIT = 100


class ActivityService:
    """Service for recording and reading teacher activity."""

    async def log_activity(
        self,
        db: AsyncSession,
        teacher_email: str,
        action: ActivityAction,
        academy: str = "",
        level: str | None = None,
        details: str | None = None,
        profile: Profile | None = None,
        teacher_name: str | None = None,
    ) -> TeacherActivity:
        entry = TeacherActivity(
            teacher_id=profile.id if profile else None,
            teacher_email=teacher_email,
            teacher_name=teacher_name or (profile.full_name if profile else "") or teacher_email,
            action=action.value,
            academy=academy,
            level=level,
            details=details,
        )
        db.add(entry)
        await db.flush()
        logger.debug(f"Activity {action.value} by {teacher_email} on {academy}")
        return entry

    async def list_recent(
        self,
        db: AsyncSession,
        limit: int = RECENT_LIMIT,
        teacher_email: str | None = None,
    ) -> list[TeacherActivity]:
        query = select(TeacherActivity)
        if teacher_email:
            query = query.where(TeacherActivity.teacher_email == teacher_email.lower())
        query = query.order_by(TeacherActivity.created_at.desc(), TeacherActivity.id).limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())


def get_activity_service() -> ActivityService:
    return ActivityService()

"""Student progress report service."""

import logging
import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.exceptions import ForbiddenException, NotFoundException
from academy_admin.models import Academy, ActivityAction, Level, Profile, ProgressReport, Student
from academy_admin.schemas.progress import ProgressCreate, ProgressResponse, ProgressUpdate
from academy_admin.services.activity_service import ActivityService
from academy_admin.services.profile_service import ProfileService
from academy_admin.utils.permissions import PermissionChecker

logger = logging.getLogger(__name__)


def build_progress_response(report: ProgressReport) -> ProgressResponse:
    return ProgressResponse(
        id=report.id,
        date=report.date,
        student_id=report.student_id,
        student_name=report.student.full_name,
        academy_id=report.academy_id,
        academy_name=report.academy.name,
        level_id=report.level_id,
        level_name=report.level.name if report.level else None,
        score=report.score,
        comments=report.comments,
    )


class ProgressService:
    """Service for teachers' progress reports on students.

    Teachers only see and write reports for the academies they are assigned
    to; admins see everything.
    """

    def __init__(self):
        self.profiles = ProfileService()
        self.activity = ActivityService()

    async def list_progress(
        self,
        db: AsyncSession,
        actor_email: str | None = None,
        actor_role: str | None = None,
        academy_id: uuid.UUID | None = None,
        student_id: uuid.UUID | None = None,
    ) -> list[ProgressReport]:
        """Reports newest first."""
        query = select(ProgressReport)
        if PermissionChecker(actor_role).is_teacher:
            profile = await self.profiles.get_by_email(db, actor_email) if actor_email else None
            academy_ids = {a.academy_id for a in profile.assignments} if profile else set()
            if not academy_ids:
                return []
            query = query.where(ProgressReport.academy_id.in_(academy_ids))
        if academy_id:
            query = query.where(ProgressReport.academy_id == academy_id)
        if student_id:
            query = query.where(ProgressReport.student_id == student_id)
        query = query.order_by(ProgressReport.date.desc(), ProgressReport.created_at.desc())
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_report(self, db: AsyncSession, report_id: uuid.UUID) -> ProgressReport:
        report = await db.get(ProgressReport, report_id)
        if not report:
            raise NotFoundException("Progress report")
        return report

    async def create_report(
        self,
        db: AsyncSession,
        data: ProgressCreate,
        actor_email: str | None = None,
        actor_role: str | None = None,
    ) -> ProgressReport:
        student = await db.get(Student, data.student_id)
        if not student:
            raise NotFoundException("Student")
        academy, level = await self._get_class(db, data.academy_id, data.level_id)
        profile = await self._check_assignment(db, academy, level, actor_email, actor_role)

        report = ProgressReport(
            student_id=student.id,
            academy_id=academy.id,
            level_id=level.id if level else None,
            teacher_id=profile.id if profile and profile.is_staff else None,
            date=data.date,
            score=data.score,
            comments=data.comments,
        )
        db.add(report)
        await db.flush()

        await self._log(db, ActivityAction.PROGRESS_CREATED, report, student, academy, level, actor_email, profile)
        logger.info(f"Recorded progress of {student.full_name} in {academy.name} on {data.date}")
        return await self._reload(db, report.id)

    async def update_report(
        self,
        db: AsyncSession,
        report_id: uuid.UUID,
        data: ProgressUpdate,
        actor_email: str | None = None,
        actor_role: str | None = None,
    ) -> ProgressReport:
        report = await self.get_report(db, report_id)
        update_data = data.model_dump(exclude_unset=True)
        level_id = update_data.get("level_id", report.level_id)
        academy, level = await self._get_class(db, report.academy_id, level_id)
        profile = await self._check_assignment(db, academy, level, actor_email, actor_role)

        for field, value in update_data.items():
            setattr(report, field, value)
        await db.flush()

        student = await db.get(Student, report.student_id)
        await self._log(db, ActivityAction.PROGRESS_UPDATED, report, student, academy, level, actor_email, profile)
        return await self._reload(db, report.id)

    async def delete_reports(self, db: AsyncSession, report_ids: list[uuid.UUID]) -> int:
        result = await db.execute(delete(ProgressReport).where(ProgressReport.id.in_(report_ids)))
        await db.flush()
        return result.rowcount or 0

    async def _get_class(
        self,
        db: AsyncSession,
        academy_id: uuid.UUID,
        level_id: uuid.UUID | None,
    ) -> tuple[Academy, Level | None]:
        academy = await db.get(Academy, academy_id)
        if not academy:
            raise NotFoundException("Academy")
        level = None
        if level_id:
            level = await db.get(Level, level_id)
            if not level or level.academy_id != academy.id:
                raise NotFoundException("Level")
        return academy, level

    async def _check_assignment(
        self,
        db: AsyncSession,
        academy: Academy,
        level: Level | None,
        actor_email: str | None,
        actor_role: str | None,
    ) -> Profile | None:
        profile = await self.profiles.get_by_email(db, actor_email) if actor_email else None
        if PermissionChecker(actor_role).is_teacher:
            if profile is None or not profile.is_assigned_to(academy.id, level.id if level else None):
                raise ForbiddenException(f"You are not assigned to {academy.name}")
        return profile

    async def _log(self, db, action, report, student, academy, level, actor_email, profile) -> None:
        if not actor_email:
            return
        score = f" ({report.score})" if report.score is not None else ""
        await self.activity.log_activity(
            db,
            teacher_email=actor_email,
            action=action,
            academy=academy.name,
            level=level.name if level else None,
            details=f"{student.full_name} on {report.date.isoformat()}{score}",
            profile=profile,
        )

    async def _reload(self, db: AsyncSession, report_id: uuid.UUID) -> ProgressReport:
        result = await db.execute(
            select(ProgressReport)
            .where(ProgressReport.id == report_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()


def get_progress_service() -> ProgressService:
    return ProgressService()

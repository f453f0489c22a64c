"""Attendance service."""

import logging
import uuid
from collections import defaultdict
from datetime import date

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.exceptions import ForbiddenException, NotFoundException, ValidationException
from academy_admin.models import (
    ActivityAction,
    Academy,
    AttendanceRecord,
    AttendanceSession,
    AttendanceStatus,
    Enrollment,
    EnrollmentStatus,
    PRESENT_STATUSES,
    Level,
    Student,
)
from academy_admin.schemas.attendance import AttendanceSave, DailyOverview, RosterResponse, RosterRow
from academy_admin.services.activity_service import ActivityService
from academy_admin.services.profile_service import ProfileService
from academy_admin.utils.permissions import PermissionChecker

logger = logging.getLogger(__name__)


def _level_clause(column, level_id: uuid.UUID | None):
    return column.is_(None) if level_id is None else column == level_id


class AttendanceService:
    """Service for class-session attendance."""

    def __init__(self):
        self.profiles = ProfileService()
        self.activity = ActivityService()

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

    async def find_session(
        self,
        db: AsyncSession,
        academy_id: uuid.UUID,
        level_id: uuid.UUID | None,
        on_date: date,
    ) -> AttendanceSession | None:
        result = await db.execute(
            select(AttendanceSession)
            .where(
                AttendanceSession.academy_id == academy_id,
                _level_clause(AttendanceSession.level_id, level_id),
                AttendanceSession.date == on_date,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def class_students(self, db: AsyncSession, academy: Academy, level_id: uuid.UUID | None) -> list[Student]:
        """Students enrolled in the academy (and level) for the academy's semester."""
        query = (
            select(Student)
            .join(Enrollment, Enrollment.student_id == Student.id)
            .where(
                Enrollment.academy_id == academy.id,
                Enrollment.semester_id == academy.semester_id,
                Enrollment.status == EnrollmentStatus.ENROLLED.value,
            )
        )
        if level_id:
            query = query.where(Enrollment.level_id == level_id)
        result = await db.execute(query.order_by(Student.last_name, Student.first_name))
        return list(result.scalars().unique().all())

    async def attendance_rates(
        self,
        db: AsyncSession,
        academy_id: uuid.UUID,
        level_id: uuid.UUID | None,
    ) -> dict[uuid.UUID, float]:
        """Per student, the share of recorded sessions attended (late counts)."""
        result = await db.execute(
            select(AttendanceRecord)
            .join(AttendanceSession, AttendanceSession.id == AttendanceRecord.session_id)
            .where(
                AttendanceSession.academy_id == academy_id,
                _level_clause(AttendanceSession.level_id, level_id),
            )
        )
        totals: dict[uuid.UUID, list[int]] = defaultdict(lambda: [0, 0])
        for record in result.scalars():
            totals[record.student_id][1] += 1
            if record.is_present:
                totals[record.student_id][0] += 1
        return {sid: round(attended / recorded * 100, 1) for sid, (attended, recorded) in totals.items()}

    async def get_roster(
        self,
        db: AsyncSession,
        academy_id: uuid.UUID,
        level_id: uuid.UUID | None,
        on_date: date,
    ) -> RosterResponse:
        """Enrolled students merged with whatever was saved for the session.

        Students without a saved record default to present.
        """
        academy, _ = await self._get_class(db, academy_id, level_id)
        students = await self.class_students(db, academy, level_id)
        session = await self.find_session(db, academy.id, level_id, on_date)
        records = {r.student_id: r for r in session.records} if session else {}
        rates = await self.attendance_rates(db, academy.id, level_id)

        rows = []
        for student in students:
            record = records.get(student.id)
            rows.append(
                RosterRow(
                    student_id=student.id,
                    student_name=student.full_name,
                    status=record.status if record else AttendanceStatus.PRESENT,
                    reason=record.reason if record else None,
                    record_id=record.id if record else None,
                    attendance_rate=rates.get(student.id),
                )
            )

        return RosterResponse(
            session_id=session.id if session else None,
            academy_id=academy.id,
            level_id=level_id,
            date=on_date,
            notes=session.notes if session else None,
            rows=rows,
        )

    async def save_attendance(
        self,
        db: AsyncSession,
        data: AttendanceSave,
        actor_email: str | None = None,
        actor_role: str | None = None,
    ) -> RosterResponse:
        """Upsert the session, then one record per student.

        Teachers may only record attendance for classes they are assigned to.
        """
        academy, level = await self._get_class(db, data.academy_id, data.level_id)
        profile = await self.profiles.get_by_email(db, actor_email) if actor_email else None

        if PermissionChecker(actor_role).is_teacher:
            if profile is None or not profile.is_assigned_to(academy.id, data.level_id):
                raise ForbiddenException(f"You are not assigned to {academy.name}")

        enrolled = {s.id for s in await self.class_students(db, academy, data.level_id)}
        unknown = [str(e.student_id) for e in data.entries if e.student_id not in enrolled]
        if unknown:
            raise ValidationException(
                [{"field": "entries", "message": f"Student {sid} is not enrolled in this class"} for sid in unknown]
            )

        session = await self.find_session(db, academy.id, data.level_id, data.date)
        created = session is None
        if created:
            session = AttendanceSession(
                academy_id=academy.id,
                level_id=data.level_id,
                date=data.date,
                notes=data.notes,
            )
            db.add(session)
        elif data.notes is not None:
            session.notes = data.notes
        if profile is not None and profile.is_staff:
            session.teacher_id = profile.id

        existing = {r.student_id: r for r in session.records}
        for entry in data.entries:
            reason = None if entry.status == AttendanceStatus.PRESENT else (entry.reason or None)
            record = existing.get(entry.student_id)
            if record is None:
                session.records.append(
                    AttendanceRecord(student_id=entry.student_id, status=entry.status.value, reason=reason)
                )
            else:
                record.status = entry.status.value
                record.reason = reason
        await db.flush()

        if actor_email:
            await self.activity.log_activity(
                db,
                teacher_email=actor_email,
                action=ActivityAction.ATTENDANCE_CREATED if created else ActivityAction.ATTENDANCE_UPDATED,
                academy=academy.name,
                level=level.name if level else None,
                details=f"{len(data.entries)} students on {data.date.isoformat()}",
                profile=profile,
            )
        logger.info(
            f"{'Recorded' if created else 'Updated'} attendance for {academy.name} on {data.date} "
            f"({len(data.entries)} students)"
        )
        return await self.get_roster(db, academy.id, data.level_id, data.date)

    async def daily_overview(self, db: AsyncSession, on_date: date) -> DailyOverview:
        """Students present and classes recorded on a date."""
        sessions = await db.scalar(
            select(func.count()).select_from(AttendanceSession).where(AttendanceSession.date == on_date)
        )
        present = await db.scalar(
            select(func.count())
            .select_from(AttendanceRecord)
            .join(AttendanceSession, AttendanceSession.id == AttendanceRecord.session_id)
            .where(
                AttendanceSession.date == on_date,
                AttendanceRecord.status.in_(PRESENT_STATUSES),
            )
        )
        return DailyOverview(date=on_date, total_present=present or 0, total_classes_recorded=sessions or 0)

    async def delete_records(self, db: AsyncSession, record_ids: list[uuid.UUID]) -> int:
        result = await db.execute(delete(AttendanceRecord).where(AttendanceRecord.id.in_(record_ids)))
        await db.flush()
        return result.rowcount or 0


def get_attendance_service() -> AttendanceService:
    return AttendanceService()

"""Dashboard statistics."""

from collections import Counter, defaultdict
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.models import Enrollment, EnrollmentStatus, Invoice, Payment, Semester
from academy_admin.schemas.dashboard import AcademySummary, DashboardSummary, FinancialSummary, LevelCount
from academy_admin.services.academy_service import AcademyService
from academy_admin.services.attendance_service import AttendanceService
from academy_admin.services.invoice_service import latest_invoice_per_student
from academy_admin.utils.money import ZERO, quantize


class DashboardService:
    """Aggregates for the admin dashboard."""

    def __init__(self):
        self.academies = AcademyService()
        self.attendance = AttendanceService()

    async def summary(self, db: AsyncSession, semester: Semester, today: date | None = None) -> DashboardSummary:
        enrollments = (
            await db.execute(
                select(Enrollment.student_id, Enrollment.academy_id, Enrollment.level_id).where(
                    Enrollment.semester_id == semester.id,
                    Enrollment.status == EnrollmentStatus.ENROLLED.value,
                )
            )
        ).all()

        per_academy = Counter(row.academy_id for row in enrollments)
        per_level: dict = defaultdict(Counter)
        for row in enrollments:
            per_level[row.academy_id][row.level_id] += 1

        academies = []
        for academy in await self.academies.list_academies(db, semester):
            level_names = {level.id: level.name for level in academy.levels}
            levels = [
                LevelCount(level_id=level.id, name=level.name, enrolled=per_level[academy.id][level.id])
                for level in academy.levels
            ]
            unassigned = sum(n for lid, n in per_level[academy.id].items() if lid not in level_names)
            if academy.levels and unassigned:
                levels.append(LevelCount(level_id=None, name="No Level", enrolled=unassigned))
            academies.append(
                AcademySummary(
                    academy_id=academy.id,
                    name=academy.name,
                    price=academy.price,
                    enrolled=per_academy[academy.id],
                    levels=levels,
                )
            )

        return DashboardSummary(
            semester_id=semester.id,
            semester_name=semester.name,
            total_students=len({row.student_id for row in enrollments}),
            total_enrollments=len(enrollments),
            academies=academies,
            financial=await self.financial_summary(db, semester),
            attendance_today=await self.attendance.daily_overview(db, today or date.today()),
        )

    async def financial_summary(self, db: AsyncSession, semester: Semester) -> FinancialSummary:
        """Expected and pending come from each student's latest invoice."""
        invoices = list(
            (await db.execute(select(Invoice).where(Invoice.semester_id == semester.id))).scalars().all()
        )
        latest = latest_invoice_per_student(invoices).values()

        collected = await db.scalar(
            select(func.coalesce(func.sum(Payment.amount), 0))
            .select_from(Payment)
            .join(Invoice, Invoice.id == Payment.invoice_id)
            .where(Invoice.semester_id == semester.id)
        )

        return FinancialSummary(
            expected=quantize(sum((i.total for i in latest), ZERO)),
            collected=quantize(collected or ZERO),
            pending=quantize(sum((i.balance for i in latest if i.balance > 0), ZERO)),
            invoices_by_status=dict(Counter(i.status for i in latest)),
        )


def get_dashboard_service() -> DashboardService:
    return DashboardService()

"""Semester service."""

import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.config import settings
from academy_admin.exceptions import ConflictException, NotFoundException
from academy_admin.models import Semester
from academy_admin.schemas.academy import SemesterCreate


class SemesterService:
    """Service for managing semesters."""

    async def list_semesters(self, db: AsyncSession) -> list[Semester]:
        result = await db.execute(select(Semester).order_by(Semester.start_date.desc(), Semester.name))
        return list(result.scalars().all())

    async def get_semester(self, db: AsyncSession, semester_id: uuid.UUID) -> Semester:
        semester = await db.get(Semester, semester_id)
        if not semester:
            raise NotFoundException("Semester")
        return semester

    async def get_by_name(self, db: AsyncSession, name: str) -> Semester | None:
        result = await db.execute(select(Semester).where(Semester.name == name))
        return result.scalar_one_or_none()

    async def get_active_semester(self, db: AsyncSession) -> Semester:
        """The flagged semester, else the one named by ACTIVE_SEMESTER_NAME."""
        result = await db.execute(select(Semester).where(Semester.is_active.is_(True)))
        semester = result.scalars().first()
        if semester:
            return semester

        semester = await self.get_by_name(db, settings.active_semester_name)
        if not semester:
            raise NotFoundException(f"Active semester ({settings.active_semester_name})")
        return semester

    async def resolve(self, db: AsyncSession, semester_id: uuid.UUID | None) -> Semester:
        """The given semester, or the active one."""
        if semester_id:
            return await self.get_semester(db, semester_id)
        return await self.get_active_semester(db)

    async def create_semester(self, db: AsyncSession, data: SemesterCreate) -> Semester:
        if await self.get_by_name(db, data.name):
            raise ConflictException(f"Semester '{data.name}' already exists")

        semester = Semester(
            name=data.name,
            start_date=data.start_date,
            end_date=data.end_date,
            is_active=False,
        )
        db.add(semester)
        await db.flush()

        if data.is_active:
            return await self.activate(db, semester.id)
        return semester

    async def activate(self, db: AsyncSession, semester_id: uuid.UUID) -> Semester:
        """Make one semester the active one."""
        semester = await self.get_semester(db, semester_id)
        await db.execute(update(Semester).where(Semester.id != semester.id).values(is_active=False))
        semester.is_active = True
        await db.flush()
        return semester


def get_semester_service() -> SemesterService:
    return SemesterService()

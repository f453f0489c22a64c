"""Academy catalog service."""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.exceptions import ConflictException, NotFoundException
from academy_admin.models import Academy, Enrollment, Level, Semester
from academy_admin.schemas.academy import AcademyCreate, AcademyUpdate, LevelCreate, LevelUpdate
from academy_admin.utils.normalization import normalize_academy, normalize_level, price_key

logger = logging.getLogger(__name__)


def canonical_level_name(academy_name: str, level_name: str) -> str:
    """Levels of the Korean Language academy use the canonical level names."""
    if normalize_academy(academy_name) == "Korean Language":
        return normalize_level(level_name)
    return level_name.strip()


class AcademyService:
    """Service for managing academies and their levels."""

    async def list_academies(
        self,
        db: AsyncSession,
        semester: Semester,
        active_only: bool = False,
    ) -> list[Academy]:
        """Catalog for a semester in display order, levels included."""
        query = select(Academy).where(Academy.semester_id == semester.id)
        if active_only:
            query = query.where(Academy.is_active.is_(True))
        query = query.order_by(Academy.display_order, Academy.name)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_academy(self, db: AsyncSession, academy_id: uuid.UUID) -> Academy:
        academy = await db.get(Academy, academy_id)
        if not academy:
            raise NotFoundException("Academy")
        return academy

    async def get_by_name(self, db: AsyncSession, semester: Semester, name: str) -> Academy | None:
        result = await db.execute(
            select(Academy).where(
                Academy.semester_id == semester.id,
                func.lower(Academy.name) == normalize_academy(name).lower(),
            )
        )
        return result.scalar_one_or_none()

    async def create_academy(self, db: AsyncSession, semester: Semester, data: AcademyCreate) -> Academy:
        name = normalize_academy(data.name)
        if await self.get_by_name(db, semester, name):
            raise ConflictException(f"Academy '{name}' already exists in {semester.name}")

        academy = Academy(
            semester_id=semester.id,
            name=name,
            description=data.description,
            price=data.price,
            schedule=data.schedule,
            display_order=data.display_order,
            is_active=data.is_active,
        )
        seen = set()
        for position, level_data in enumerate(data.levels):
            level_name = canonical_level_name(name, level_data.name)
            if level_name.lower() in seen:
                continue
            seen.add(level_name.lower())
            academy.levels.append(
                Level(
                    name=level_name,
                    schedule=level_data.schedule,
                    display_order=level_data.display_order or position,
                )
            )

        db.add(academy)
        await db.flush()
        logger.info(f"Created academy {name} in {semester.name}")
        return await self._reload(db, academy.id)

    async def update_academy(self, db: AsyncSession, academy_id: uuid.UUID, data: AcademyUpdate) -> Academy:
        academy = await self.get_academy(db, academy_id)
        update_data = data.model_dump(exclude_unset=True)

        if "name" in update_data:
            name = normalize_academy(update_data["name"])
            result = await db.execute(
                select(Academy.id).where(
                    Academy.semester_id == academy.semester_id,
                    func.lower(Academy.name) == name.lower(),
                    Academy.id != academy.id,
                )
            )
            if result.first():
                raise ConflictException(f"Academy '{name}' already exists")
            update_data["name"] = name

        for field, value in update_data.items():
            setattr(academy, field, value)

        await db.flush()
        return await self._reload(db, academy.id)

    async def delete_academy(self, db: AsyncSession, academy_id: uuid.UUID) -> None:
        """Delete an academy that nobody is enrolled in."""
        academy = await self.get_academy(db, academy_id)
        enrolled = await db.scalar(
            select(func.count()).select_from(Enrollment).where(Enrollment.academy_id == academy.id)
        )
        if enrolled:
            raise ConflictException(f"{academy.name} has {enrolled} enrollments; deactivate it instead")
        await db.delete(academy)
        await db.flush()

    async def add_level(self, db: AsyncSession, academy_id: uuid.UUID, data: LevelCreate) -> Level:
        academy = await self.get_academy(db, academy_id)
        name = canonical_level_name(academy.name, data.name)
        if any(level.name.lower() == name.lower() for level in academy.levels):
            raise ConflictException(f"Level '{name}' already exists in {academy.name}")

        level = Level(
            name=name,
            schedule=data.schedule,
            display_order=data.display_order or len(academy.levels),
        )
        academy.levels.append(level)
        await db.flush()
        return level

    async def get_level(self, db: AsyncSession, level_id: uuid.UUID) -> Level:
        level = await db.get(Level, level_id)
        if not level:
            raise NotFoundException("Level")
        return level

    async def update_level(self, db: AsyncSession, level_id: uuid.UUID, data: LevelUpdate) -> Level:
        level = await self.get_level(db, level_id)
        update_data = data.model_dump(exclude_unset=True)
        if "name" in update_data:
            academy = await self.get_academy(db, level.academy_id)
            name = canonical_level_name(academy.name, update_data["name"])
            if any(other.id != level.id and other.name.lower() == name.lower() for other in academy.levels):
                raise ConflictException(f"Level '{name}' already exists in {academy.name}")
            update_data["name"] = name
        for field, value in update_data.items():
            setattr(level, field, value)
        await db.flush()
        return level

    async def delete_level(self, db: AsyncSession, level_id: uuid.UUID) -> None:
        level = await self.get_level(db, level_id)
        enrolled = await db.scalar(
            select(func.count()).select_from(Enrollment).where(Enrollment.level_id == level.id)
        )
        if enrolled:
            raise ConflictException(f"Level {level.name} has {enrolled} enrollments")
        await db.delete(level)
        await db.flush()

    async def price_map(self, db: AsyncSession, semester: Semester) -> dict[str, int]:
        """Academy prices in cents keyed by normalized lowercase name."""
        academies = await self.list_academies(db, semester)
        return {price_key(a.name): a.price_cents for a in academies}

    async def _reload(self, db: AsyncSession, academy_id: uuid.UUID) -> Academy:
        result = await db.execute(
            select(Academy)
            .where(Academy.id == academy_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()


def get_academy_service() -> AcademyService:
    return AcademyService()

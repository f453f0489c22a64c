"""Profile (staff and teacher) service."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.config import settings
from academy_admin.exceptions import ConflictException, NotFoundException, ValidationException
from academy_admin.models import Academy, Level, Profile, Role, TeacherAssignment
from academy_admin.schemas.profile import AssignmentCreate, ProfileUpsert
from academy_admin.utils.normalization import email_key

logger = logging.getLogger(__name__)


class ProfileService:
    """Service for staff profiles, roles and teaching assignments."""

    async def list_profiles(self, db: AsyncSession, role: Role | None = None) -> list[Profile]:
        query = select(Profile)
        if role:
            query = query.where(Profile.role == role.value)
        result = await db.execute(query.order_by(Profile.full_name, Profile.email))
        return list(result.scalars().all())

    async def get_profile(self, db: AsyncSession, profile_id: uuid.UUID) -> Profile:
        result = await db.execute(
            select(Profile).where(Profile.id == profile_id).execution_options(populate_existing=True)
        )
        profile = result.scalar_one_or_none()
        if not profile:
            raise NotFoundException("Profile")
        return profile

    async def get_by_email(self, db: AsyncSession, email: str) -> Profile | None:
        result = await db.execute(
            select(Profile)
            .where(Profile.email == email_key(email))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def upsert_profile(self, db: AsyncSession, data: ProfileUpsert) -> Profile:
        """Create or update a profile keyed by e-mail."""
        key = email_key(data.email)
        profile = await self.get_by_email(db, key)
        if profile is None:
            profile = Profile(
                email=key,
                full_name=data.full_name,
                phone=data.phone,
                credentials=data.credentials,
                role=(data.role or Role.VIEWER).value,
                is_active=True if data.is_active is None else data.is_active,
            )
            db.add(profile)
        else:
            update_data = data.model_dump(exclude_unset=True, exclude={"email"})
            if "role" in update_data and data.role is not None:
                update_data["role"] = data.role.value
            for field, value in update_data.items():
                if value is not None:
                    setattr(profile, field, value)

        try:
            await db.flush()
        except IntegrityError as e:
            raise ConflictException(f"Profile {key} already exists") from e
        return await self.get_profile(db, profile.id)

    async def set_role(
        self,
        db: AsyncSession,
        email: str,
        role: Role,
        create: bool = False,
        full_name: str = "",
    ) -> Profile:
        """Change a user's role.

        Profiles normally exist once the user has signed in; ``create`` makes
        one up front.
        """
        profile = await self.get_by_email(db, email)
        if profile is None:
            if not create:
                raise NotFoundException(f"Profile for {email}")
            profile = Profile(email=email_key(email), full_name=full_name, role=role.value)
            db.add(profile)
        else:
            profile.role = role.value
        await db.flush()
        logger.info(f"Set role of {email_key(email)} to {role.value}")
        return await self.get_profile(db, profile.id)

    async def resolve_role(self, db: AsyncSession, email: str) -> str | None:
        """Effective role of an e-mail, or None when it has no access.

        Configured admin e-mails are admins even without a profile.
        """
        key = email_key(email)
        profile = await self.get_by_email(db, key)
        if profile is not None and not profile.is_active:
            return None
        if key in settings.admin_emails_list:
            if profile is not None and profile.role == Role.SUPERUSER.value:
                return Role.SUPERUSER.value
            return Role.ADMIN.value
        return profile.role if profile is not None else None

    async def add_assignment(
        self,
        db: AsyncSession,
        profile_id: uuid.UUID,
        data: AssignmentCreate,
    ) -> Profile:
        profile = await self.get_profile(db, profile_id)
        academy = await db.get(Academy, data.academy_id)
        if not academy:
            raise NotFoundException("Academy")
        if data.level_id:
            level = await db.get(Level, data.level_id)
            if not level or level.academy_id != academy.id:
                raise ValidationException([{"field": "level_id", "message": f"Level is not part of {academy.name}"}])

        for assignment in profile.assignments:
            if assignment.academy_id == data.academy_id and assignment.level_id == data.level_id:
                return profile

        profile.assignments.append(TeacherAssignment(academy_id=data.academy_id, level_id=data.level_id))
        if profile.role == Role.VIEWER.value:
            profile.role = Role.TEACHER.value
        await db.flush()
        return await self.get_profile(db, profile.id)

    async def remove_assignment(self, db: AsyncSession, assignment_id: uuid.UUID) -> None:
        assignment = await db.get(TeacherAssignment, assignment_id)
        if not assignment:
            raise NotFoundException("Assignment")
        await db.delete(assignment)
        await db.flush()


def get_profile_service() -> ProfileService:
    return ProfileService()

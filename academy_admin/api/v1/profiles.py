"""Staff profile API endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.database import get_db
from academy_admin.exceptions import ForbiddenException, NotFoundException
from academy_admin.models import Role
from academy_admin.schemas.common import APIResponse
from academy_admin.schemas.profile import (
    AssignmentCreate,
    AssignmentResponse,
    ProfileResponse,
    ProfileUpsert,
    RoleUpdate,
)
from academy_admin.services.profile_service import get_profile_service
from academy_admin.utils.permissions import ANY_ROLE, get_permission_checker, require_role
from academy_admin.utils.request_context import get_current_user_email

router = APIRouter()


def _build_profile_response(profile) -> ProfileResponse:
    return ProfileResponse(
        id=profile.id,
        email=profile.email,
        full_name=profile.full_name,
        phone=profile.phone,
        credentials=profile.credentials,
        role=profile.role,
        is_active=profile.is_active,
        assignments=[
            AssignmentResponse(
                id=a.id,
                academy_id=a.academy_id,
                academy_name=a.academy.name,
                level_id=a.level_id,
                level_name=a.level.name if a.level else None,
            )
            for a in profile.assignments
        ],
    )


@router.get("/me", response_model=APIResponse[ProfileResponse])
@require_role(*ANY_ROLE)
async def get_my_profile(db: AsyncSession = Depends(get_db)):
    """The signed-in user's profile."""
    profile = await get_profile_service().get_by_email(db, get_current_user_email())
    if profile is None:
        raise NotFoundException("Profile")
    return APIResponse(data=_build_profile_response(profile))


@router.get("", response_model=APIResponse[list[ProfileResponse]])
@require_role(Role.ADMIN)
async def list_profiles(
    role: Role | None = Query(None, description="Filter by role"),
    db: AsyncSession = Depends(get_db),
):
    profiles = await get_profile_service().list_profiles(db, role=role)
    return APIResponse(data=[_build_profile_response(p) for p in profiles])


@router.put("", response_model=APIResponse[ProfileResponse])
@require_role(Role.ADMIN)
async def upsert_profile(
    data: ProfileUpsert,
    db: AsyncSession = Depends(get_db),
):
    """Create or update a profile by e-mail.

    Only superusers may set a role here.
    """
    if data.role is not None and not get_permission_checker().can_manage_roles():
        raise ForbiddenException("Only superusers can change roles")

    profile = await get_profile_service().upsert_profile(db, data)
    await db.commit()

    return APIResponse(
        data=_build_profile_response(profile),
        message="Profile saved successfully",
    )


@router.put("/{email}/role", response_model=APIResponse[ProfileResponse])
@require_role(Role.SUPERUSER)
async def set_role(
    email: str,
    data: RoleUpdate,
    create: bool = Query(False, description="Create the profile when it does not exist"),
    db: AsyncSession = Depends(get_db),
):
    profile = await get_profile_service().set_role(db, email, data.role, create=create)
    await db.commit()

    return APIResponse(
        data=_build_profile_response(profile),
        message=f"{profile.email} is now {profile.role}",
    )


@router.post("/{profile_id}/assignments", response_model=APIResponse[ProfileResponse])
@require_role(Role.ADMIN)
async def add_assignment(
    profile_id: uuid.UUID,
    data: AssignmentCreate,
    db: AsyncSession = Depends(get_db),
):
    """Assign a teacher to an academy, or to one of its levels."""
    profile = await get_profile_service().add_assignment(db, profile_id, data)
    await db.commit()

    return APIResponse(
        data=_build_profile_response(profile),
        message="Assignment added successfully",
    )


@router.delete("/assignments/{assignment_id}", response_model=APIResponse)
@require_role(Role.ADMIN)
async def remove_assignment(
    assignment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    await get_profile_service().remove_assignment(db, assignment_id)
    await db.commit()
    return APIResponse(message="Assignment removed successfully")

"""Academy catalog API endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.database import get_db
from academy_admin.models import Role
from academy_admin.schemas.academy import (
    AcademyCreate,
    AcademyResponse,
    AcademyUpdate,
    LevelCreate,
    LevelResponse,
    LevelUpdate,
)
from academy_admin.schemas.common import APIResponse
from academy_admin.services.academy_service import get_academy_service
from academy_admin.services.semester_service import get_semester_service
from academy_admin.utils.permissions import ANY_ROLE, require_role

router = APIRouter()


@router.get("", response_model=APIResponse[list[AcademyResponse]])
@require_role(*ANY_ROLE)
async def list_academies(
    semester_id: uuid.UUID | None = Query(None, description="Defaults to the active semester"),
    active_only: bool = Query(False, description="Hide deactivated academies"),
    db: AsyncSession = Depends(get_db),
):
    """List a semester's academies with their levels."""
    semester = await get_semester_service().resolve(db, semester_id)
    academies = await get_academy_service().list_academies(db, semester, active_only=active_only)
    return APIResponse(data=[AcademyResponse.model_validate(a) for a in academies])


@router.get("/prices", response_model=APIResponse[dict[str, int]])
@require_role(*ANY_ROLE)
async def get_price_map(
    semester_id: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Academy prices in cents, keyed by lowercase academy name."""
    semester = await get_semester_service().resolve(db, semester_id)
    prices = await get_academy_service().price_map(db, semester)
    return APIResponse(data=prices)


@router.post("", response_model=APIResponse[AcademyResponse])
@require_role(Role.ADMIN)
async def create_academy(
    data: AcademyCreate,
    db: AsyncSession = Depends(get_db),
):
    semester = await get_semester_service().resolve(db, data.semester_id)
    academy = await get_academy_service().create_academy(db, semester, data)
    await db.commit()

    return APIResponse(
        data=AcademyResponse.model_validate(academy),
        message="Academy created successfully",
    )


@router.get("/{academy_id}", response_model=APIResponse[AcademyResponse])
@require_role(*ANY_ROLE)
async def get_academy(
    academy_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    academy = await get_academy_service().get_academy(db, academy_id)
    return APIResponse(data=AcademyResponse.model_validate(academy))


@router.patch("/{academy_id}", response_model=APIResponse[AcademyResponse])
@require_role(Role.ADMIN)
async def update_academy(
    academy_id: uuid.UUID,
    data: AcademyUpdate,
    db: AsyncSession = Depends(get_db),
):
    academy = await get_academy_service().update_academy(db, academy_id, data)
    await db.commit()

    return APIResponse(
        data=AcademyResponse.model_validate(academy),
        message="Academy updated successfully",
    )


@router.delete("/{academy_id}", response_model=APIResponse)
@require_role(Role.ADMIN)
async def delete_academy(
    academy_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Delete an academy nobody is enrolled in."""
    await get_academy_service().delete_academy(db, academy_id)
    await db.commit()
    return APIResponse(message="Academy deleted successfully")


@router.post("/{academy_id}/levels", response_model=APIResponse[LevelResponse])
@require_role(Role.ADMIN)
async def add_level(
    academy_id: uuid.UUID,
    data: LevelCreate,
    db: AsyncSession = Depends(get_db),
):
    level = await get_academy_service().add_level(db, academy_id, data)
    await db.commit()

    return APIResponse(
        data=LevelResponse.model_validate(level),
        message="Level created successfully",
    )


@router.patch("/levels/{level_id}", response_model=APIResponse[LevelResponse])
@require_role(Role.ADMIN)
async def update_level(
    level_id: uuid.UUID,
    data: LevelUpdate,
    db: AsyncSession = Depends(get_db),
):
    level = await get_academy_service().update_level(db, level_id, data)
    await db.commit()

    return APIResponse(
        data=LevelResponse.model_validate(level),
        message="Level updated successfully",
    )


@router.delete("/levels/{level_id}", response_model=APIResponse)
@require_role(Role.ADMIN)
async def delete_level(
    level_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    await get_academy_service().delete_level(db, level_id)
    await db.commit()
    return APIResponse(message="Level deleted successfully")

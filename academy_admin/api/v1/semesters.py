"""Semester API endpoints."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.database import get_db
from academy_admin.models import Role
from academy_admin.schemas.academy import SemesterCreate, SemesterResponse
from academy_admin.schemas.common import APIResponse
from academy_admin.services.semester_service import get_semester_service
from academy_admin.utils.permissions import ANY_ROLE, require_role

router = APIRouter()


@router.get("", response_model=APIResponse[list[SemesterResponse]])
@require_role(*ANY_ROLE)
async def list_semesters(db: AsyncSession = Depends(get_db)):
    service = get_semester_service()
    semesters = await service.list_semesters(db)
    return APIResponse(data=[SemesterResponse.model_validate(s) for s in semesters])


@router.get("/active", response_model=APIResponse[SemesterResponse])
@require_role(*ANY_ROLE)
async def get_active_semester(db: AsyncSession = Depends(get_db)):
    """The semester registrations and invoices default to."""
    service = get_semester_service()
    semester = await service.get_active_semester(db)
    return APIResponse(data=SemesterResponse.model_validate(semester))


@router.post("", response_model=APIResponse[SemesterResponse])
@require_role(Role.ADMIN)
async def create_semester(
    data: SemesterCreate,
    db: AsyncSession = Depends(get_db),
):
    service = get_semester_service()
    semester = await service.create_semester(db, data)
    await db.commit()

    return APIResponse(
        data=SemesterResponse.model_validate(semester),
        message="Semester created successfully",
    )


@router.post("/{semester_id}/activate", response_model=APIResponse[SemesterResponse])
@require_role(Role.ADMIN)
async def activate_semester(
    semester_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    service = get_semester_service()
    semester = await service.activate(db, semester_id)
    await db.commit()

    return APIResponse(
        data=SemesterResponse.model_validate(semester),
        message=f"{semester.name} is now the active semester",
    )

"""Student progress API endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.database import get_db
from academy_admin.models import Role
from academy_admin.schemas.common import APIResponse
from academy_admin.schemas.progress import DeleteProgressRequest, ProgressCreate, ProgressResponse, ProgressUpdate
from academy_admin.services.progress_service import build_progress_response, get_progress_service
from academy_admin.utils.permissions import STAFF, require_role
from academy_admin.utils.request_context import get_current_user_email, get_current_user_role

router = APIRouter()


@router.get("", response_model=APIResponse[list[ProgressResponse]])
@require_role(*STAFF)
async def list_progress(
    academy_id: uuid.UUID | None = Query(None, description="Only this academy"),
    student_id: uuid.UUID | None = Query(None, description="Only this student"),
    db: AsyncSession = Depends(get_db),
):
    """Progress reports, newest first. Teachers see their own academies only."""
    reports = await get_progress_service().list_progress(
        db,
        actor_email=get_current_user_email(),
        actor_role=get_current_user_role(),
        academy_id=academy_id,
        student_id=student_id,
    )
    return APIResponse(data=[build_progress_response(r) for r in reports])


@router.post("", response_model=APIResponse[ProgressResponse])
@require_role(*STAFF)
async def create_progress(
    data: ProgressCreate,
    db: AsyncSession = Depends(get_db),
):
    report = await get_progress_service().create_report(
        db, data, actor_email=get_current_user_email(), actor_role=get_current_user_role()
    )
    await db.commit()

    return APIResponse(data=build_progress_response(report), message="Progress saved successfully")


@router.patch("/{report_id}", response_model=APIResponse[ProgressResponse])
@require_role(*STAFF)
async def update_progress(
    report_id: uuid.UUID,
    data: ProgressUpdate,
    db: AsyncSession = Depends(get_db),
):
    report = await get_progress_service().update_report(
        db, report_id, data, actor_email=get_current_user_email(), actor_role=get_current_user_role()
    )
    await db.commit()

    return APIResponse(data=build_progress_response(report), message="Progress saved successfully")


@router.post("/delete", response_model=APIResponse[dict])
@require_role(Role.ADMIN)
async def delete_progress(
    data: DeleteProgressRequest,
    db: AsyncSession = Depends(get_db),
):
    deleted = await get_progress_service().delete_reports(db, data.report_ids)
    await db.commit()
    return APIResponse(data={"deleted": deleted}, message=f"Deleted {deleted} progress reports")

"""Attendance API endpoints."""

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.database import get_db
from academy_admin.models import Role
from academy_admin.schemas.attendance import (
    AttendanceSave,
    DailyOverview,
    DeleteRecordsRequest,
    RosterResponse,
)
from academy_admin.schemas.common import APIResponse
from academy_admin.services.attendance_service import get_attendance_service
from academy_admin.utils.permissions import ANY_ROLE, STAFF, require_role
from academy_admin.utils.request_context import get_current_user_email, get_current_user_role

router = APIRouter()


@router.get("/roster", response_model=APIResponse[RosterResponse])
@require_role(*STAFF)
async def get_roster(
    academy_id: uuid.UUID = Query(..., description="Academy of the class"),
    level_id: uuid.UUID | None = Query(None, description="Level, for academies that have levels"),
    on_date: date | None = Query(None, alias="date", description="Class date, defaults to today"),
    db: AsyncSession = Depends(get_db),
):
    """Class roster merged with the attendance saved for the date."""
    roster = await get_attendance_service().get_roster(db, academy_id, level_id, on_date or date.today())
    return APIResponse(data=roster)


@router.post("", response_model=APIResponse[RosterResponse])
@require_role(*STAFF)
async def save_attendance(
    data: AttendanceSave,
    db: AsyncSession = Depends(get_db),
):
    """Save attendance for a class.

    Teachers can only save classes they are assigned to.
    """
    roster = await get_attendance_service().save_attendance(
        db,
        data,
        actor_email=get_current_user_email(),
        actor_role=get_current_user_role(),
    )
    await db.commit()

    return APIResponse(data=roster, message="Attendance saved successfully")


@router.get("/daily", response_model=APIResponse[DailyOverview])
@require_role(*ANY_ROLE)
async def daily_overview(
    on_date: date | None = Query(None, alias="date", description="Defaults to today"),
    db: AsyncSession = Depends(get_db),
):
    overview = await get_attendance_service().daily_overview(db, on_date or date.today())
    return APIResponse(data=overview)


@router.post("/records/delete", response_model=APIResponse[dict])
@require_role(Role.ADMIN)
async def delete_records(
    data: DeleteRecordsRequest,
    db: AsyncSession = Depends(get_db),
):
    deleted = await get_attendance_service().delete_records(db, data.record_ids)
    await db.commit()
    return APIResponse(data={"deleted": deleted}, message=f"Deleted {deleted} attendance records")

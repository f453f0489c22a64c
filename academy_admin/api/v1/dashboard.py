"""Dashboard API endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.database import get_db
from academy_admin.models import Role
from academy_admin.schemas.common import APIResponse
from academy_admin.schemas.dashboard import DashboardSummary
from academy_admin.services.dashboard_service import get_dashboard_service
from academy_admin.services.semester_service import get_semester_service
from academy_admin.utils.permissions import require_role

router = APIRouter()


@router.get("", response_model=APIResponse[DashboardSummary])
@require_role(Role.ADMIN)
async def get_summary(
    semester_id: uuid.UUID | None = Query(None, description="Defaults to the active semester"),
    db: AsyncSession = Depends(get_db),
):
    """Enrollment counts, money expected and collected, and today's attendance."""
    semester = await get_semester_service().resolve(db, semester_id)
    summary = await get_dashboard_service().summary(db, semester)
    return APIResponse(data=summary)

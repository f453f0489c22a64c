"""Teacher activity API endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.database import get_db
from academy_admin.models import Role
from academy_admin.schemas.activity import ActivityResponse
from academy_admin.schemas.common import APIResponse
from academy_admin.services.activity_service import RECENT_LIMIT, get_activity_service
from academy_admin.utils.permissions import require_role

router = APIRouter()


@router.get("", response_model=APIResponse[list[ActivityResponse]])
@require_role(Role.ADMIN)
async def list_recent_activity(
    teacher_email: str | None = Query(None, description="Only this teacher's activity"),
    limit: int = Query(RECENT_LIMIT, ge=1, le=RECENT_LIMIT),
    db: AsyncSession = Depends(get_db),
):
    """Most recent teacher activity, newest first."""
    entries = await get_activity_service().list_recent(db, limit=limit, teacher_email=teacher_email)
    return APIResponse(data=[ActivityResponse.model_validate(e) for e in entries])

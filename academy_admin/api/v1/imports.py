"""Bulk registration import endpoints."""

import uuid

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.config import settings
from academy_admin.database import get_db
from academy_admin.exceptions import ValidationException
from academy_admin.models import Role
from academy_admin.schemas.common import APIResponse
from academy_admin.schemas.maintenance import ImportResult
from academy_admin.services.import_service import get_import_service
from academy_admin.services.semester_service import get_semester_service
from academy_admin.utils.permissions import require_role

router = APIRouter()


@router.get("/fields", response_model=APIResponse[list[dict]])
@require_role(Role.ADMIN)
async def get_import_fields():
    """Columns the registration import understands."""
    fields = get_import_service().get_available_fields()
    return APIResponse(
        data=[
            {"name": name, "label": info["label"], "required": info.get("required", False)}
            for name, info in fields.items()
        ],
    )


@router.post("/registrations", response_model=APIResponse[ImportResult])
@require_role(Role.ADMIN)
async def import_registrations(
    file: UploadFile = File(...),
    semester_id: uuid.UUID | None = Form(None),
    db: AsyncSession = Depends(get_db),
):
    """Upload a CSV of registrations.

    Each row creates a student or merges into the student with the same
    e-mail; rows that fail validation are reported and skipped.
    """
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise ValidationException([{"field": "file", "message": "File must be a CSV"}])

    content = await file.read()
    if len(content) > settings.max_upload_size_bytes:
        raise ValidationException(
            [{"field": "file", "message": f"File is larger than {settings.max_upload_size_mb} MB"}]
        )
    try:
        csv_content = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ValidationException([{"field": "file", "message": f"File is not UTF-8 text: {e}"}]) from e

    semester = await get_semester_service().resolve(db, semester_id)
    result = await get_import_service().import_registrations(db, csv_content, semester)
    await db.commit()

    return APIResponse(
        data=result,
        message=f"Imported {result.created + result.merged} of {result.total_rows} rows",
    )

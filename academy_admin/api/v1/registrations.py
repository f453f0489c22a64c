"""Registration (student) API endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.database import get_db
from academy_admin.models import ActivityAction, Role
from academy_admin.schemas.common import APIResponse, PaginationMeta
from academy_admin.schemas.registration import (
    Address,
    EnrollmentResponse,
    RegistrationCreate,
    RegistrationResponse,
    RegistrationUpdate,
)
from academy_admin.services.activity_service import get_activity_service
from academy_admin.services.import_service import get_import_service
from academy_admin.services.profile_service import get_profile_service
from academy_admin.services.registration_service import expected_total, get_registration_service
from academy_admin.services.semester_service import get_semester_service
from academy_admin.utils.permissions import ANY_ROLE, STAFF, require_role
from academy_admin.utils.request_context import get_current_user_email, get_current_user_name

router = APIRouter()


def _build_enrollment_response(enrollment) -> EnrollmentResponse:
    return EnrollmentResponse(
        id=enrollment.id,
        semester_id=enrollment.semester_id,
        academy_id=enrollment.academy_id,
        academy_name=enrollment.academy.name,
        level_id=enrollment.level_id,
        level_name=enrollment.level.name if enrollment.level else None,
        status=enrollment.status,
    )


def _build_registration_response(student, semester_id: uuid.UUID) -> RegistrationResponse:
    """Build a registration response limited to one semester's enrollments."""
    enrollments = student.enrollments_for(semester_id)
    return RegistrationResponse(
        id=student.id,
        first_name=student.first_name,
        last_name=student.last_name,
        full_name=student.full_name,
        email=student.email,
        phone=student.phone,
        birth_date=student.birth_date,
        age=student.age,
        gender=student.gender,
        address=Address.model_validate(student.address or {}),
        guardian_name=student.guardian_name,
        guardian_phone=student.guardian_phone,
        t_shirt_size=student.t_shirt_size,
        notes=student.notes,
        enrollments=[_build_enrollment_response(e) for e in enrollments],
        expected_total=expected_total(enrollments),
        created_at=student.created_at,
        updated_at=student.updated_at,
    )


@router.get("", response_model=APIResponse[list[RegistrationResponse]])
@require_role(*ANY_ROLE)
async def list_registrations(
    semester_id: uuid.UUID | None = Query(None, description="Defaults to the active semester"),
    academy_id: uuid.UUID | None = Query(None, description="Only students enrolled in this academy"),
    search: str | None = Query(None, description="Search by name or e-mail"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=200, description="Items per page"),
    db: AsyncSession = Depends(get_db),
):
    """List the semester's registrations."""
    semester = await get_semester_service().resolve(db, semester_id)
    students, total = await get_registration_service().list_registrations(
        db,
        semester,
        academy_id=academy_id,
        search=search,
        page=page,
        page_size=page_size,
    )

    return APIResponse(
        data=[_build_registration_response(s, semester.id) for s in students],
        pagination=PaginationMeta.build(page, page_size, total),
    )


@router.get("/export")
@require_role(*STAFF)
async def export_registrations(
    semester_id: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Download the semester's registrations as CSV.

    Exports are recorded in the activity log.
    """
    semester = await get_semester_service().resolve(db, semester_id)
    content = await get_import_service().export_registrations(db, semester)

    email = get_current_user_email()
    await get_activity_service().log_activity(
        db,
        email,
        ActivityAction.EXPORT_CSV,
        academy="All academies",
        details=f"Registrations export for {semester.name}",
        profile=await get_profile_service().get_by_email(db, email),
        teacher_name=get_current_user_name(),
    )
    await db.commit()

    filename = f"registrations_{semester.name.replace(' ', '_').lower()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("", response_model=APIResponse[RegistrationResponse])
@require_role(Role.ADMIN)
async def create_registration(
    data: RegistrationCreate,
    semester_id: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Register a student.

    An e-mail that is already registered updates that student instead.
    """
    semester = await get_semester_service().resolve(db, semester_id)
    student, created = await get_registration_service().create_registration(db, data, semester)
    await db.commit()

    return APIResponse(
        data=_build_registration_response(student, semester.id),
        message="Registration created successfully" if created else "Registration merged into existing student",
    )


@router.get("/{student_id}", response_model=APIResponse[RegistrationResponse])
@require_role(*ANY_ROLE)
async def get_registration(
    student_id: uuid.UUID,
    semester_id: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    semester = await get_semester_service().resolve(db, semester_id)
    student = await get_registration_service().get_registration(db, student_id)
    return APIResponse(data=_build_registration_response(student, semester.id))


@router.patch("/{student_id}", response_model=APIResponse[RegistrationResponse])
@require_role(Role.ADMIN)
async def update_registration(
    student_id: uuid.UUID,
    data: RegistrationUpdate,
    semester_id: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    semester = await get_semester_service().resolve(db, semester_id)
    student = await get_registration_service().update_registration(db, student_id, data, semester)
    await db.commit()

    return APIResponse(
        data=_build_registration_response(student, semester.id),
        message="Registration updated successfully",
    )


@router.delete("/{student_id}", response_model=APIResponse[dict])
@require_role(Role.ADMIN)
async def delete_registration(
    student_id: uuid.UUID,
    semester_id: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Remove the student's semester enrollments, invoice and payments."""
    semester = await get_semester_service().resolve(db, semester_id)
    student_deleted = await get_registration_service().delete_registration(db, student_id, semester)
    await db.commit()

    return APIResponse(
        data={"student_deleted": student_deleted},
        message="Registration deleted successfully",
    )

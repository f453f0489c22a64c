"""Invoice API endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.database import get_db
from academy_admin.models import InvoiceStatus, Role
from academy_admin.schemas.common import APIResponse, PaginationMeta
from academy_admin.schemas.invoice import (
    InvoiceCreate,
    InvoiceItemResponse,
    InvoiceResponse,
    InvoiceUpdate,
)
from academy_admin.services.invoice_service import get_invoice_service
from academy_admin.services.semester_service import get_semester_service
from academy_admin.utils.permissions import require_role

router = APIRouter()


def _build_invoice_response(invoice) -> InvoiceResponse:
    """Build invoice response with the student's name and lunch total."""
    return InvoiceResponse(
        id=invoice.id,
        student_id=invoice.student_id,
        student_name=invoice.student.full_name if invoice.student else "",
        semester_id=invoice.semester_id,
        status=invoice.status,
        subtotal=invoice.subtotal,
        lunch_amount=invoice.lunch_amount,
        discount_amount=invoice.discount_amount,
        discount_note=invoice.discount_note,
        total=invoice.total,
        paid_amount=invoice.paid_amount,
        balance=invoice.balance,
        due_date=invoice.due_date,
        is_restored=invoice.is_restored,
        items=[InvoiceItemResponse.model_validate(item) for item in invoice.items],
        created_at=invoice.created_at,
        updated_at=invoice.updated_at,
    )


@router.get("", response_model=APIResponse[list[InvoiceResponse]])
@require_role(Role.ADMIN)
async def list_invoices(
    semester_id: uuid.UUID | None = Query(None, description="Defaults to the active semester"),
    status: InvoiceStatus | None = Query(None, description="Filter by status"),
    student_id: uuid.UUID | None = Query(None),
    search: str | None = Query(None, description="Search by student name or e-mail"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    semester = await get_semester_service().resolve(db, semester_id)
    invoices, total = await get_invoice_service().list_invoices(
        db,
        semester,
        status=status.value if status else None,
        student_id=student_id,
        search=search,
        page=page,
        page_size=page_size,
    )

    return APIResponse(
        data=[_build_invoice_response(i) for i in invoices],
        pagination=PaginationMeta.build(page, page_size, total),
    )


@router.post("", response_model=APIResponse[InvoiceResponse])
@require_role(Role.ADMIN)
async def create_invoice(
    data: InvoiceCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create the student's invoice for a semester."""
    semester = await get_semester_service().resolve(db, data.semester_id)
    invoice = await get_invoice_service().create_invoice(db, semester, data)
    await db.commit()

    return APIResponse(
        data=_build_invoice_response(invoice),
        message="Invoice created successfully",
    )


@router.post("/sync/{student_id}", response_model=APIResponse[InvoiceResponse | None])
@require_role(Role.ADMIN)
async def sync_invoice(
    student_id: uuid.UUID,
    semester_id: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Rebuild the tuition lines of a student's invoice from their enrollments."""
    semester = await get_semester_service().resolve(db, semester_id)
    service = get_invoice_service()
    invoice = await service.sync_for_student(db, student_id, semester)
    if invoice is None:
        await db.commit()
        return APIResponse(data=None, message="Nothing to invoice")

    invoice = await service.get_invoice(db, invoice.id)
    await db.commit()
    return APIResponse(
        data=_build_invoice_response(invoice),
        message="Invoice synced successfully",
    )


@router.get("/{invoice_id}", response_model=APIResponse[InvoiceResponse])
@require_role(Role.ADMIN)
async def get_invoice(
    invoice_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    invoice = await get_invoice_service().get_invoice(db, invoice_id)
    return APIResponse(data=_build_invoice_response(invoice))


@router.patch("/{invoice_id}", response_model=APIResponse[InvoiceResponse])
@require_role(Role.ADMIN)
async def update_invoice(
    invoice_id: uuid.UUID,
    data: InvoiceUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Change the discount, due date, lunch option or status."""
    invoice = await get_invoice_service().update_invoice(db, invoice_id, data)
    await db.commit()

    return APIResponse(
        data=_build_invoice_response(invoice),
        message="Invoice updated successfully",
    )


@router.delete("/{invoice_id}", response_model=APIResponse)
@require_role(Role.ADMIN)
async def delete_invoice(
    invoice_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    await get_invoice_service().delete_invoice(db, invoice_id)
    await db.commit()
    return APIResponse(message="Invoice deleted successfully")

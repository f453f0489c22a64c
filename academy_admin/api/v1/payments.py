"""Payment API endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy_admin.database import get_db
from academy_admin.models import Role
from academy_admin.schemas.common import APIResponse, PaginationMeta
from academy_admin.schemas.payment import PaymentCreate, PaymentResponse
from academy_admin.services.payment_service import get_payment_service
from academy_admin.services.semester_service import get_semester_service
from academy_admin.utils.permissions import require_role
from academy_admin.utils.request_context import get_current_user_email

router = APIRouter()


def _build_payment_response(payment) -> PaymentResponse:
    return PaymentResponse(
        id=payment.id,
        invoice_id=payment.invoice_id,
        student_id=payment.student_id,
        student_name=payment.student.full_name if payment.student else "",
        amount=payment.amount,
        method=payment.method,
        notes=payment.notes,
        transaction_date=payment.transaction_date,
        received_by=payment.received_by,
    )


@router.get("", response_model=APIResponse[list[PaymentResponse]])
@require_role(Role.ADMIN)
async def list_payments(
    semester_id: uuid.UUID | None = Query(None, description="Only payments on this semester's invoices"),
    student_id: uuid.UUID | None = Query(None),
    invoice_id: uuid.UUID | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    """List payments, newest first."""
    semester = await get_semester_service().get_semester(db, semester_id) if semester_id else None
    payments, total = await get_payment_service().list_payments(
        db,
        semester=semester,
        student_id=student_id,
        invoice_id=invoice_id,
        page=page,
        page_size=page_size,
    )

    return APIResponse(
        data=[_build_payment_response(p) for p in payments],
        pagination=PaginationMeta.build(page, page_size, total),
    )


@router.post("", response_model=APIResponse[PaymentResponse])
@require_role(Role.ADMIN)
async def record_payment(
    data: PaymentCreate,
    db: AsyncSession = Depends(get_db),
):
    """Record a payment against an invoice."""
    payment = await get_payment_service().record_payment(db, data, received_by=get_current_user_email())
    await db.commit()

    return APIResponse(
        data=_build_payment_response(payment),
        message="Payment recorded successfully",
    )


@router.delete("/{payment_id}", response_model=APIResponse[dict])
@require_role(Role.ADMIN)
async def delete_payment(
    payment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Delete a payment and take it back off its invoice."""
    invoice = await get_payment_service().delete_payment(db, payment_id)
    await db.commit()

    data = {}
    if invoice is not None:
        data = {
            "invoice_id": str(invoice.id),
            "paid_amount": str(invoice.paid_amount),
            "balance": str(invoice.balance),
            "status": invoice.status,
        }
    return APIResponse(data=data, message="Payment deleted successfully")

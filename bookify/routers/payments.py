from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from bookify.core.dependencies import get_authenticated_user, require_admin, AuthenticatedUser
from bookify.models.payment import (
    Payment, PaymentCreate, PaymentUpdate, PaymentReview, PaymentStatus,
    PaymentAdminView, PaymentReviewResult
)
from bookify.services import payments_service

router = APIRouter()


@router.get("", response_model=List[PaymentAdminView])
async def list_payments(
    status: Optional[PaymentStatus] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin: AuthenticatedUser = Depends(require_admin)
):
    return await payments_service.get_payments(status.value if status else None, limit, offset)


@router.post("", response_model=Payment, status_code=201)
async def create_payment(data: PaymentCreate, user: AuthenticatedUser = Depends(get_authenticated_user)):
    """Submit payment details for one of the caller's orders"""
    return await payments_service.create_payment(user.user_id, data)


@router.put("/admin/{payment_id}", response_model=PaymentReviewResult)
async def review_payment(
    payment_id: int,
    data: PaymentReview,
    admin: AuthenticatedUser = Depends(require_admin)
):
    """
    Accept or decline a payment.

    Valid delivers the order, records the sale and awards loyalty points.
    Declined sends the order back to Unpaid.
    """
    return await payments_service.review_payment(payment_id, data.status)


@router.put("/{payment_id}", response_model=Payment)
async def update_payment(
    payment_id: int,
    data: PaymentUpdate,
    user: AuthenticatedUser = Depends(get_authenticated_user)
):
    return await payments_service.update_payment(payment_id, user.user_id, data)


@router.delete("/{payment_id}", status_code=204)
async def delete_payment(payment_id: int, user: AuthenticatedUser = Depends(get_authenticated_user)):
    await payments_service.delete_payment(payment_id, user.user_id)
    return None

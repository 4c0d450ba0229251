from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List
from bookify.core.dependencies import get_authenticated_user, AuthenticatedUser
from bookify.models.order import Order, OrderSummary
from bookify.services import orders_service

router = APIRouter()


@router.post("/checkout", response_model=Order, status_code=201)
async def checkout(user: AuthenticatedUser = Depends(get_authenticated_user)):
    """
    Turn the cart into an unpaid order.

    An unused redemption held by the user is applied as a discount.
    """
    return await orders_service.checkout(user.user_id)


@router.get("", response_model=List[OrderSummary])
async def list_orders(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: AuthenticatedUser = Depends(get_authenticated_user)
):
    return await orders_service.get_orders(user.user_id, limit, offset)


@router.get("/{order_id}", response_model=Order)
async def get_order(order_id: int, user: AuthenticatedUser = Depends(get_authenticated_user)):
    order = await orders_service.get_order(order_id, user.user_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.delete("/{order_id}", status_code=204)
async def delete_order(order_id: int, user: AuthenticatedUser = Depends(get_authenticated_user)):
    if not await orders_service.delete_order(order_id, user.user_id):
        raise HTTPException(status_code=404, detail="Order not found")
    return None

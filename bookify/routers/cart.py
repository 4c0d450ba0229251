from fastapi import APIRouter, Depends
from bookify.core.dependencies import require_customer, AuthenticatedUser
from bookify.models.cart import Cart, CartItemCreate, CartItemUpdate
from bookify.services import cart_service

router = APIRouter()


@router.get("", response_model=Cart)
async def get_cart(user: AuthenticatedUser = Depends(require_customer)):
    return await cart_service.get_cart(user.user_id)


@router.post("/items", response_model=Cart, status_code=201)
async def add_item(data: CartItemCreate, user: AuthenticatedUser = Depends(require_customer)):
    """
    Add a ticket or product to the cart.

    The unit price is computed from the current price and discount.
    Quantities are limited by what is left and by the per-user limit.
    """
    return await cart_service.add_item(user.user_id, data)


@router.put("/items/{cart_item_id}", response_model=Cart)
async def update_item(
    cart_item_id: int,
    data: CartItemUpdate,
    user: AuthenticatedUser = Depends(require_customer)
):
    return await cart_service.update_item(user.user_id, cart_item_id, data.quantity)


@router.delete("/items/{cart_item_id}", status_code=204)
async def remove_item(cart_item_id: int, user: AuthenticatedUser = Depends(require_customer)):
    await cart_service.remove_item(user.user_id, cart_item_id)
    return None


@router.delete("", status_code=204)
async def clear_cart(user: AuthenticatedUser = Depends(require_customer)):
    await cart_service.clear_cart(user.user_id)
    return None

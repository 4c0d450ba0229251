from fastapi import APIRouter, Depends
from typing import List
from bookify.core.dependencies import get_authenticated_user, require_organizer, AuthenticatedUser
from bookify.models.reward import Redemption, RedemptionCreate, RedemptionResult
from bookify.services import rewards_service

router = APIRouter()


@router.post("", response_model=RedemptionResult, status_code=201)
async def redeem_reward(data: RedemptionCreate, user: AuthenticatedUser = Depends(get_authenticated_user)):
    """Spend loyalty points on a reward. It is applied to the next checkout."""
    return await rewards_service.redeem(user.user_id, data.reward_id)


@router.get("/me", response_model=List[Redemption])
async def my_redemptions(user: AuthenticatedUser = Depends(get_authenticated_user)):
    return await rewards_service.get_user_redemptions(user.user_id)


@router.get("/product/{product_id}", response_model=List[Redemption])
async def product_redemptions(product_id: int, user: AuthenticatedUser = Depends(require_organizer)):
    return await rewards_service.get_item_redemptions(product_id=product_id)


@router.get("/ticket/{ticket_id}", response_model=List[Redemption])
async def ticket_redemptions(ticket_id: int, user: AuthenticatedUser = Depends(require_organizer)):
    return await rewards_service.get_item_redemptions(ticket_id=ticket_id)

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List
from bookify.core.dependencies import get_authenticated_user, require_admin, AuthenticatedUser
from bookify.models.reward import Reward, RewardCreate, RewardUpdate
from bookify.services import rewards_service

router = APIRouter()


@router.get("", response_model=List[Reward])
async def list_rewards(active_only: bool = Query(False)):
    return await rewards_service.get_rewards(active_only)


@router.get("/available", response_model=List[Reward])
async def available_rewards(user: AuthenticatedUser = Depends(get_authenticated_user)):
    """Active rewards the caller has enough points for"""
    return await rewards_service.get_available_rewards(user.user_id)


@router.get("/{reward_id}", response_model=Reward)
async def get_reward(reward_id: int):
    reward = await rewards_service.get_reward(reward_id)
    if not reward:
        raise HTTPException(status_code=404, detail="Reward not found")
    return reward


@router.post("", response_model=Reward, status_code=201)
async def create_reward(data: RewardCreate, admin: AuthenticatedUser = Depends(require_admin)):
    return await rewards_service.create_reward(data)


@router.put("/{reward_id}", response_model=Reward)
async def update_reward(
    reward_id: int,
    data: RewardUpdate,
    admin: AuthenticatedUser = Depends(require_admin)
):
    reward = await rewards_service.update_reward(reward_id, data)
    if not reward:
        raise HTTPException(status_code=404, detail="Reward not found")
    return reward


@router.delete("/{reward_id}", status_code=204)
async def delete_reward(reward_id: int, admin: AuthenticatedUser = Depends(require_admin)):
    if not await rewards_service.delete_reward(reward_id):
        raise HTTPException(status_code=404, detail="Reward not found")
    return None

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional
from bookify.core.dependencies import require_admin, canonical_role, AuthenticatedUser
from bookify.core.roles import Role
from bookify.models.user import (
    AdminUserSummary, AdminUserDetail, AdminUserUpdate, UserStatistics, MessageResponse
)
from bookify.services import users_service

router = APIRouter()


@router.get("", response_model=List[AdminUserSummary])
async def list_users(
    search: Optional[str] = Query(None, description="Matches name, username or email"),
    role: Optional[str] = Query(None),
    is_banned: Optional[bool] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: AuthenticatedUser = Depends(require_admin)
):
    if role:
        role = canonical_role(role)
    return await users_service.list_users(search, role, is_banned, limit, offset)


@router.get("/active", response_model=List[AdminUserSummary])
async def list_active_users(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: AuthenticatedUser = Depends(require_admin)
):
    return await users_service.list_users(is_banned=False, limit=limit, offset=offset)


@router.get("/banned", response_model=List[AdminUserSummary])
async def list_banned_users(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: AuthenticatedUser = Depends(require_admin)
):
    return await users_service.list_users(is_banned=True, limit=limit, offset=offset)


@router.get("/admins", response_model=List[AdminUserSummary])
async def list_admins(admin: AuthenticatedUser = Depends(require_admin)):
    return await users_service.users_in_role(Role.ADMIN.value)


@router.get("/organizers", response_model=List[AdminUserSummary])
async def list_organizers(admin: AuthenticatedUser = Depends(require_admin)):
    return await users_service.users_in_role(Role.ORGANIZER.value)


@router.get("/statistics", response_model=UserStatistics)
async def get_statistics(admin: AuthenticatedUser = Depends(require_admin)):
    return await users_service.get_statistics()


@router.get("/{user_id}", response_model=AdminUserDetail)
async def get_user(user_id: str, admin: AuthenticatedUser = Depends(require_admin)):
    user = await users_service.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.put("/{user_id}", response_model=AdminUserDetail)
async def update_user(
    user_id: str,
    data: AdminUserUpdate,
    admin: AuthenticatedUser = Depends(require_admin)
):
    user = await users_service.update_user(user_id, data)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/{user_id}/ban", response_model=MessageResponse)
async def ban_user(user_id: str, admin: AuthenticatedUser = Depends(require_admin)):
    if not await users_service.set_banned(user_id, True):
        raise HTTPException(status_code=404, detail="User not found")
    return MessageResponse(message="User banned")


@router.post("/{user_id}/unban", response_model=MessageResponse)
async def unban_user(user_id: str, admin: AuthenticatedUser = Depends(require_admin)):
    if not await users_service.set_banned(user_id, False):
        raise HTTPException(status_code=404, detail="User not found")
    return MessageResponse(message="User unbanned")


@router.delete("/{user_id}/permanent", status_code=204)
async def delete_user(user_id: str, admin: AuthenticatedUser = Depends(require_admin)):
    """Remove the account and everything it owns"""
    if not await users_service.delete_user_permanently(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return None

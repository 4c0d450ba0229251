from fastapi import APIRouter, Depends
from typing import List
from bookify.core.dependencies import require_admin, canonical_role, AuthenticatedUser
from bookify.models.user import AdminUserSummary, RoleSummary, RoleAssignment
from bookify.services import users_service

router = APIRouter()


@router.get("", response_model=List[RoleSummary])
async def list_roles(admin: AuthenticatedUser = Depends(require_admin)):
    return await users_service.list_roles()


@router.get("/{role}/users", response_model=List[AdminUserSummary])
async def list_role_users(role: str, admin: AuthenticatedUser = Depends(require_admin)):
    return await users_service.users_in_role(canonical_role(role))


@router.post("/assign")
async def assign_role(data: RoleAssignment, admin: AuthenticatedUser = Depends(require_admin)):
    roles = await users_service.assign_role(data.user_id, canonical_role(data.role))
    return {"user_id": data.user_id, "roles": roles}


@router.post("/remove")
async def remove_role(data: RoleAssignment, admin: AuthenticatedUser = Depends(require_admin)):
    roles = await users_service.remove_role(data.user_id, canonical_role(data.role))
    return {"user_id": data.user_id, "roles": roles}

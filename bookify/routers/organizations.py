from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional
from bookify.core.dependencies import require_admin, require_organizer, AuthenticatedUser
from bookify.models.organization import (
    Organization, OrganizationCreate, OrganizationUpdate, Organizer, OrganizerAssign
)
from bookify.models.user import MessageResponse
from bookify.services import organizations_service

router = APIRouter()


@router.get("", response_model=List[Organization])
async def list_organizations(
    search: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0)
):
    return await organizations_service.get_organizations(search, limit, offset)


@router.get("/mine", response_model=List[Organization])
async def my_organizations(user: AuthenticatedUser = Depends(require_organizer)):
    """Organizations the caller organizes"""
    return await organizations_service.get_user_organizations(user.user_id)


@router.get("/{org_id}", response_model=Organization)
async def get_organization(org_id: int):
    org = await organizations_service.get_organization(org_id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


@router.post("", response_model=Organization, status_code=201)
async def create_organization(data: OrganizationCreate, admin: AuthenticatedUser = Depends(require_admin)):
    return await organizations_service.create_organization(data)


@router.put("/{org_id}", response_model=Organization)
async def update_organization(
    org_id: int,
    data: OrganizationUpdate,
    admin: AuthenticatedUser = Depends(require_admin)
):
    org = await organizations_service.update_organization(org_id, data)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


@router.delete("/{org_id}", status_code=204)
async def delete_organization(org_id: int, admin: AuthenticatedUser = Depends(require_admin)):
    if not await organizations_service.delete_organization(org_id):
        raise HTTPException(status_code=404, detail="Organization not found")
    return None


@router.get("/{org_id}/organizers", response_model=List[Organizer])
async def list_organizers(org_id: int, user: AuthenticatedUser = Depends(require_organizer)):
    return await organizations_service.get_organizers(org_id)


@router.post("/{org_id}/organizers", response_model=MessageResponse, status_code=201)
async def assign_organizer(
    org_id: int,
    data: OrganizerAssign,
    admin: AuthenticatedUser = Depends(require_admin)
):
    await organizations_service.assign_organizer(org_id, data.user_id)
    return MessageResponse(message="Organizer assigned")


@router.delete("/{org_id}/organizers/{user_id}", status_code=204)
async def remove_organizer(org_id: int, user_id: str, admin: AuthenticatedUser = Depends(require_admin)):
    if not await organizations_service.remove_organizer(org_id, user_id):
        raise HTTPException(status_code=404, detail="Organizer not found")
    return None

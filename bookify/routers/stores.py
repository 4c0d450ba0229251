from fastapi import APIRouter, Depends, HTTPException, Form, File, UploadFile
from typing import Optional
from bookify.core.dependencies import require_admin, require_organizer, AuthenticatedUser
from bookify.core.forms import parse_form, blank_to_none, upload_optional
from bookify.models.outlet import Store, StoreCreate, OutletUpdate
from bookify.services import outlets_service

router = APIRouter()


@router.get("/by-org/{org_id}", response_model=Store)
async def get_org_store(org_id: int):
    """The store of an organization, including its products"""
    store = await outlets_service.get_store_by_org(org_id)
    if not store:
        raise HTTPException(status_code=404, detail="Store not found")
    return store


@router.get("/{store_id}", response_model=Store)
async def get_store(store_id: int):
    store = await outlets_service.get_store(store_id)
    if not store:
        raise HTTPException(status_code=404, detail="Store not found")
    return store


@router.post("", response_model=Store, status_code=201)
async def create_store(
    org_id: str = Form(...),
    name: str = Form(...),
    description: Optional[str] = Form(None),
    logo: Optional[UploadFile] = File(None),
    user: AuthenticatedUser = Depends(require_organizer)
):
    data = parse_form(StoreCreate, org_id=org_id, name=name, description=blank_to_none(description))
    logo_url = await upload_optional(logo, "outlets")
    return await outlets_service.create_store(data, logo_url, user.user_id, user.is_admin)


@router.put("/{store_id}", response_model=Store)
async def update_store(
    store_id: int,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    logo: Optional[UploadFile] = File(None),
    user: AuthenticatedUser = Depends(require_organizer)
):
    data = parse_form(
        OutletUpdate,
        name=blank_to_none(name),
        description=blank_to_none(description),
        status=blank_to_none(status)
    )
    logo_url = await upload_optional(logo, "outlets")

    store = await outlets_service.update_store(store_id, data, logo_url, user.user_id, user.is_admin)
    if not store:
        raise HTTPException(status_code=404, detail="Store not found")
    return store


@router.delete("/{store_id}", status_code=204)
async def delete_store(store_id: int, admin: AuthenticatedUser = Depends(require_admin)):
    if not await outlets_service.delete_store(store_id):
        raise HTTPException(status_code=404, detail="Store not found")
    return None

from fastapi import APIRouter, Depends, HTTPException, Form, File, UploadFile
from typing import Optional
from bookify.core.dependencies import require_admin, require_organizer, AuthenticatedUser
from bookify.core.forms import parse_form, blank_to_none, upload_optional
from bookify.models.outlet import Shop, ShopCreate, OutletUpdate
from bookify.services import outlets_service

router = APIRouter()


@router.get("/event/{event_id}", response_model=Shop)
async def get_event_shop(event_id: int):
    shop = await outlets_service.get_shop_by_event(event_id)
    if not shop:
        raise HTTPException(status_code=404, detail="Shop not found")
    return shop


@router.get("/{shop_id}", response_model=Shop)
async def get_shop(shop_id: int):
    shop = await outlets_service.get_shop(shop_id)
    if not shop:
        raise HTTPException(status_code=404, detail="Shop not found")
    return shop


@router.post("", response_model=Shop, status_code=201)
async def create_shop(
    event_id: str = Form(...),
    name: str = Form(...),
    description: Optional[str] = Form(None),
    logo: Optional[UploadFile] = File(None),
    user: AuthenticatedUser = Depends(require_organizer)
):
    """Open the merchandise shop of an event. Each event has at most one."""
    data = parse_form(ShopCreate, event_id=event_id, name=name, description=blank_to_none(description))
    logo_url = await upload_optional(logo, "outlets")
    return await outlets_service.create_shop(data, logo_url, user.user_id, user.is_admin)


@router.put("/{shop_id}", response_model=Shop)
async def update_shop(
    shop_id: int,
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

    shop = await outlets_service.update_shop(shop_id, data, logo_url, user.user_id, user.is_admin)
    if not shop:
        raise HTTPException(status_code=404, detail="Shop not found")
    return shop


@router.delete("/{shop_id}", status_code=204)
async def delete_shop(shop_id: int, admin: AuthenticatedUser = Depends(require_admin)):
    if not await outlets_service.delete_shop(shop_id):
        raise HTTPException(status_code=404, detail="Shop not found")
    return None

from fastapi import APIRouter, Depends, HTTPException, Query, Form, File, UploadFile
from typing import List, Optional
from bookify.core.dependencies import require_admin, require_organizer, AuthenticatedUser
from bookify.core.forms import parse_form, blank_to_none, upload_optional, upload_or_default
from bookify.models.product import Product, ProductCreate, ProductUpdate
from bookify.services import products_service

router = APIRouter()


def _present(**fields) -> dict:
    return {k: v for k, v in fields.items() if blank_to_none(v) is not None}


@router.get("", response_model=List[Product])
async def list_products(
    shop_id: Optional[int] = Query(None),
    store_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    in_stock: Optional[bool] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0)
):
    return await products_service.get_products(shop_id, store_id, search, in_stock, limit, offset)


@router.get("/{product_id}", response_model=Product)
async def get_product(product_id: int):
    product = await products_service.get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.post("", response_model=Product, status_code=201)
async def create_product(
    name: str = Form(...),
    price: str = Form(...),
    stock_quantity: str = Form(...),
    shop_id: Optional[str] = Form(None),
    store_id: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    limit_per_user: Optional[str] = Form(None),
    discount: Optional[str] = Form(None),
    points_earned_per_unit: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    user: AuthenticatedUser = Depends(require_organizer)
):
    """
    Create a product in a shop or a store (multipart form).

    Exactly one of shop_id and store_id must be given.
    """
    data = parse_form(ProductCreate, **_present(
        name=name,
        price=price,
        stock_quantity=stock_quantity,
        shop_id=shop_id,
        store_id=store_id,
        description=description,
        limit_per_user=limit_per_user,
        discount=discount,
        points_earned_per_unit=points_earned_per_unit
    ))

    image_url = await upload_or_default(image, "products")
    return await products_service.create_product(data, image_url, user.user_id, user.is_admin)


@router.put("/{product_id}", response_model=Product)
async def update_product(
    product_id: int,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    stock_quantity: Optional[str] = Form(None),
    limit_per_user: Optional[str] = Form(None),
    discount: Optional[str] = Form(None),
    points_earned_per_unit: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    user: AuthenticatedUser = Depends(require_organizer)
):
    data = parse_form(ProductUpdate, **_present(
        name=name,
        description=description,
        price=price,
        stock_quantity=stock_quantity,
        limit_per_user=limit_per_user,
        discount=discount,
        points_earned_per_unit=points_earned_per_unit
    ))

    image_url = await upload_optional(image, "products")
    product = await products_service.update_product(product_id, data, image_url, user.user_id, user.is_admin)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.delete("/{product_id}", status_code=204)
async def delete_product(product_id: int, admin: AuthenticatedUser = Depends(require_admin)):
    if not await products_service.delete_product(product_id):
        raise HTTPException(status_code=404, detail="Product not found")
    return None

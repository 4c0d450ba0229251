from fastapi import APIRouter, Depends, HTTPException
from typing import List
from bookify.core.dependencies import require_admin, AuthenticatedUser
from bookify.models.category import Category, CategoryCreate, CategoryUpdate
from bookify.services import categories_service

router = APIRouter()


@router.get("", response_model=List[Category])
async def list_categories():
    return await categories_service.get_categories()


@router.get("/{category_id}", response_model=Category)
async def get_category(category_id: int):
    category = await categories_service.get_category(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.post("", response_model=Category, status_code=201)
async def create_category(data: CategoryCreate, admin: AuthenticatedUser = Depends(require_admin)):
    return await categories_service.create_category(data)


@router.put("/{category_id}", response_model=Category)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    admin: AuthenticatedUser = Depends(require_admin)
):
    category = await categories_service.update_category(category_id, data)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.delete("/{category_id}", status_code=204)
async def delete_category(category_id: int, admin: AuthenticatedUser = Depends(require_admin)):
    if not await categories_service.delete_category(category_id):
        raise HTTPException(status_code=404, detail="Category not found")
    return None

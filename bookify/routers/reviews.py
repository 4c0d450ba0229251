from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List
from bookify.core.dependencies import get_authenticated_user, AuthenticatedUser
from bookify.models.review import Review, ReviewCreate, ReviewUpdate, RatingSummary
from bookify.services import reviews_service

router = APIRouter()


@router.post("", response_model=Review, status_code=201)
async def create_review(data: ReviewCreate, user: AuthenticatedUser = Depends(get_authenticated_user)):
    """Review an event or a product. One review per user per target."""
    return await reviews_service.create_review(user.user_id, data)


@router.get("/event/{event_id}", response_model=List[Review])
async def event_reviews(
    event_id: int,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0)
):
    return await reviews_service.get_reviews_for(event_id=event_id, limit=limit, offset=offset)


@router.get("/event/{event_id}/summary", response_model=RatingSummary)
async def event_rating(event_id: int):
    return await reviews_service.get_rating_summary(event_id=event_id)


@router.get("/product/{product_id}", response_model=List[Review])
async def product_reviews(
    product_id: int,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0)
):
    return await reviews_service.get_reviews_for(product_id=product_id, limit=limit, offset=offset)


@router.get("/product/{product_id}/summary", response_model=RatingSummary)
async def product_rating(product_id: int):
    return await reviews_service.get_rating_summary(product_id=product_id)


@router.get("/{review_id}", response_model=Review)
async def get_review(review_id: int):
    review = await reviews_service.get_review(review_id)
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")
    return review


@router.put("/{review_id}", response_model=Review)
async def update_review(
    review_id: int,
    data: ReviewUpdate,
    user: AuthenticatedUser = Depends(get_authenticated_user)
):
    return await reviews_service.update_review(review_id, user.user_id, data)


@router.delete("/{review_id}", status_code=204)
async def delete_review(review_id: int, user: AuthenticatedUser = Depends(get_authenticated_user)):
    await reviews_service.delete_review(review_id, user.user_id, user.is_admin)
    return None

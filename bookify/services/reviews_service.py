import logging
from typing import Optional, List
from bookify.database import get_db_connection
from bookify.core.exceptions import ConflictError, NotFoundError, AuthorizationError
from bookify.models.review import Review, ReviewCreate, ReviewUpdate, ReviewType, RatingSummary
from bookify.services.events_service import ensure_event_exists
from bookify.services.products_service import ensure_product_exists

logger = logging.getLogger(__name__)

REVIEW_SELECT = """
    SELECT r.id, r.user_id, u.username, r.event_id, r.product_id, r.review_type,
           r.rating, r.comment, r.created_on, r.updated_on
    FROM reviews r
    JOIN users u ON u.id = r.user_id
"""


async def create_review(user_id: str, data: ReviewCreate) -> Review:
    async with get_db_connection() as conn:
        if data.event_id is not None:
            await ensure_event_exists(conn, data.event_id)
            target_column, target_id, review_type = "event_id", data.event_id, ReviewType.EVENT
        else:
            await ensure_product_exists(conn, data.product_id)
            target_column, target_id, review_type = "product_id", data.product_id, ReviewType.PRODUCT

        duplicate = await conn.fetchrow(f"""
            SELECT id FROM reviews
            WHERE user_id = $1 AND {target_column} = $2 AND is_deleted = false
        """, user_id, target_id)
        if duplicate:
            raise ConflictError(f"You already reviewed this {review_type.lower()}")

        review_id = await conn.fetchval("""
            INSERT INTO reviews (
                user_id, event_id, product_id, review_type, rating, comment,
                is_deleted, created_on, updated_on
            ) VALUES ($1, $2, $3, $4, $5, $6, false, NOW(), NOW())
            RETURNING id
        """, user_id, data.event_id, data.product_id, review_type, data.rating, data.comment)

        row = await conn.fetchrow(REVIEW_SELECT + " WHERE r.id = $1", review_id)

    logger.info(f"User {user_id[:8]} reviewed {review_type} {target_id} ({data.rating}/5)")
    return Review(**dict(row))


async def get_review(review_id: int) -> Optional[Review]:
    async with get_db_connection(use_transaction=False) as conn:
        row = await conn.fetchrow(REVIEW_SELECT + " WHERE r.id = $1 AND r.is_deleted = false", review_id)
        return Review(**dict(row)) if row else None


async def get_reviews_for(event_id: Optional[int] = None, product_id: Optional[int] = None,
                          limit: int = 50, offset: int = 0) -> List[Review]:
    column, value = ("r.event_id", event_id) if event_id is not None else ("r.product_id", product_id)
    async with get_db_connection(use_transaction=False) as conn:
        rows = await conn.fetch(REVIEW_SELECT + f"""
            WHERE {column} = $1 AND r.is_deleted = false
            ORDER BY r.created_on DESC
            LIMIT $2 OFFSET $3
        """, value, limit, offset)
        return [Review(**dict(row)) for row in rows]


async def get_rating_summary(event_id: Optional[int] = None, product_id: Optional[int] = None) -> RatingSummary:
    column, value = ("event_id", event_id) if event_id is not None else ("product_id", product_id)
    async with get_db_connection(use_transaction=False) as conn:
        row = await conn.fetchrow(f"""
            SELECT AVG(rating)::float AS average_rating, COUNT(*) AS count
            FROM reviews
            WHERE {column} = $1 AND is_deleted = false
        """, value)
        return RatingSummary(**dict(row)) if row else RatingSummary()


async def _owned_review(conn, review_id: int, user_id: str, allow_admin: bool = False):
    review = await conn.fetchrow(
        "SELECT id, user_id FROM reviews WHERE id = $1 AND is_deleted = false",
        review_id
    )
    if not review:
        raise NotFoundError("Review not found")
    if str(review['user_id']) != str(user_id) and not allow_admin:
        raise AuthorizationError("You can only modify your own reviews")
    return review


async def update_review(review_id: int, user_id: str, data: ReviewUpdate) -> Review:
    async with get_db_connection() as conn:
        await _owned_review(conn, review_id, user_id)

        update_fields = []
        params = []
        param_idx = 1
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            update_fields.append(f"{field} = ${param_idx}")
            params.append(value)
            param_idx += 1

        if update_fields:
            update_fields.append("updated_on = NOW()")
            params.append(review_id)
            await conn.execute(
                f"UPDATE reviews SET {', '.join(update_fields)} WHERE id = ${param_idx}",
                *params
            )

        row = await conn.fetchrow(REVIEW_SELECT + " WHERE r.id = $1", review_id)
        return Review(**dict(row))


async def delete_review(review_id: int, user_id: str, is_admin: bool) -> None:
    async with get_db_connection() as conn:
        await _owned_review(conn, review_id, user_id, allow_admin=is_admin)
        await conn.execute(
            "UPDATE reviews SET is_deleted = true, updated_on = NOW() WHERE id = $1",
            review_id
        )
    logger.info(f"Review {review_id} deleted by {user_id[:8]}")

import logging
from typing import Optional, List
from bookify.database import get_db_connection
from bookify.core.exceptions import ConflictError
from bookify.models.category import Category, CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)


async def get_categories() -> List[Category]:
    async with get_db_connection(use_transaction=False) as conn:
        rows = await conn.fetch("""
            SELECT id, name, created_on, updated_on
            FROM categories
            WHERE is_deleted = false
            ORDER BY name
        """)
        return [Category(**dict(row)) for row in rows]


async def get_category(category_id: int) -> Optional[Category]:
    async with get_db_connection(use_transaction=False) as conn:
        row = await conn.fetchrow("""
            SELECT id, name, created_on, updated_on
            FROM categories
            WHERE id = $1 AND is_deleted = false
        """, category_id)
        return Category(**dict(row)) if row else None


async def _ensure_unique_name(conn, name: str, exclude_id: Optional[int] = None):
    duplicate = await conn.fetchrow("""
        SELECT id FROM categories
        WHERE LOWER(name) = LOWER($1) AND is_deleted = false AND id <> COALESCE($2, -1)
    """, name, exclude_id)
    if duplicate:
        raise ConflictError(f"Category '{name}' already exists")


async def create_category(data: CategoryCreate) -> Category:
    async with get_db_connection() as conn:
        name = data.name.strip()
        await _ensure_unique_name(conn, name)

        row = await conn.fetchrow("""
            INSERT INTO categories (name, is_deleted, created_on, updated_on)
            VALUES ($1, false, NOW(), NOW())
            RETURNING id, name, created_on, updated_on
        """, name)

        logger.info(f"Created category: {row['id']} - {name}")
        return Category(**dict(row))


async def update_category(category_id: int, data: CategoryUpdate) -> Optional[Category]:
    async with get_db_connection() as conn:
        name = data.name.strip()
        await _ensure_unique_name(conn, name, category_id)

        row = await conn.fetchrow("""
            UPDATE categories SET name = $1, updated_on = NOW()
            WHERE id = $2 AND is_deleted = false
            RETURNING id, name, created_on, updated_on
        """, name, category_id)
        return Category(**dict(row)) if row else None


async def delete_category(category_id: int) -> bool:
    """Soft delete a category"""
    async with get_db_connection() as conn:
        result = await conn.execute("""
            UPDATE categories SET is_deleted = true, updated_on = NOW()
            WHERE id = $1 AND is_deleted = false
        """, category_id)

        deleted = result == "UPDATE 1"
        if deleted:
            logger.info(f"Soft deleted category: {category_id}")
        return deleted

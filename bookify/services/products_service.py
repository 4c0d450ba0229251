import logging
from typing import Optional, List
from bookify.database import get_db_connection
from bookify.core.exceptions import ValidationError, NotFoundError
from bookify.models.product import Product, ProductSummary, ProductCreate, ProductUpdate
from bookify.services import pricing_service
from bookify.services.organizations_service import ensure_org_access

logger = logging.getLogger(__name__)

PRODUCT_SELECT = """
    SELECT
        p.id, p.shop_id, p.store_id, p.name, p.description, p.price, p.discount,
        p.stock_quantity, p.quantity_sold, p.limit_per_user, p.points_earned_per_unit,
        p.image_url, p.created_on,
        COALESCE(so.name, sto.name) AS org_name,
        COALESCE(so.id, sto.id) AS org_id
    FROM products p
    LEFT JOIN shops sh ON sh.id = p.shop_id
    LEFT JOIN events ev ON ev.id = sh.event_id
    LEFT JOIN organizations so ON so.id = ev.org_id
    LEFT JOIN stores st ON st.id = p.store_id
    LEFT JOIN organizations sto ON sto.id = st.org_id
"""


def _with_pricing(row) -> dict:
    data = dict(row)
    data['remaining'] = pricing_service.remaining(data['stock_quantity'], data['quantity_sold'])
    data['final_price'] = pricing_service.apply_discount(data['price'], data['discount'])
    return data


def to_summary(row) -> ProductSummary:
    return ProductSummary(**_with_pricing(row))


async def get_products(
    shop_id: Optional[int] = None,
    store_id: Optional[int] = None,
    search: Optional[str] = None,
    in_stock: Optional[bool] = None,
    limit: int = 50,
    offset: int = 0
) -> List[Product]:
    async with get_db_connection(use_transaction=False) as conn:
        query = PRODUCT_SELECT + " WHERE p.is_deleted = false"
        params = []
        param_idx = 1

        if shop_id is not None:
            query += f" AND p.shop_id = ${param_idx}"
            params.append(shop_id)
            param_idx += 1

        if store_id is not None:
            query += f" AND p.store_id = ${param_idx}"
            params.append(store_id)
            param_idx += 1

        if search:
            query += f" AND p.name ILIKE ${param_idx}"
            params.append(f"%{search}%")
            param_idx += 1

        if in_stock is True:
            query += " AND p.stock_quantity > p.quantity_sold"
        elif in_stock is False:
            query += " AND p.stock_quantity <= p.quantity_sold"

        query += f" ORDER BY p.created_on DESC LIMIT ${param_idx} OFFSET ${param_idx + 1}"
        params.extend([limit, offset])

        rows = await conn.fetch(query, *params)
        return [Product(**_with_pricing(row)) for row in rows]


async def get_product(product_id: int) -> Optional[Product]:
    async with get_db_connection(use_transaction=False) as conn:
        row = await conn.fetchrow(PRODUCT_SELECT + " WHERE p.id = $1 AND p.is_deleted = false", product_id)
        if not row:
            return None

        data = _with_pricing(row)
        data['average_rating'] = await conn.fetchval("""
            SELECT AVG(rating)::float FROM reviews
            WHERE product_id = $1 AND is_deleted = false
        """, product_id)
        return Product(**data)


async def get_outlet_products(conn, shop_id: Optional[int] = None, store_id: Optional[int] = None) -> List[ProductSummary]:
    column, value = ("shop_id", shop_id) if shop_id is not None else ("store_id", store_id)
    rows = await conn.fetch(f"""
        SELECT id, name, price, discount, stock_quantity, quantity_sold, image_url
        FROM products
        WHERE {column} = $1 AND is_deleted = false
        ORDER BY name
    """, value)
    return [to_summary(row) for row in rows]


async def _outlet_org_id(conn, shop_id: Optional[int], store_id: Optional[int]) -> int:
    """Resolve the organization owning a shop or store"""
    if shop_id is not None:
        row = await conn.fetchrow("""
            SELECT ev.org_id FROM shops sh
            JOIN events ev ON ev.id = sh.event_id
            WHERE sh.id = $1 AND sh.is_deleted = false
        """, shop_id)
        if not row:
            raise ValidationError("Shop does not exist")
    else:
        row = await conn.fetchrow(
            "SELECT org_id FROM stores WHERE id = $1 AND is_deleted = false",
            store_id
        )
        if not row:
            raise ValidationError("Store does not exist")
    return row['org_id']


async def create_product(data: ProductCreate, image_url: str, user_id: str, is_admin: bool) -> Product:
    async with get_db_connection() as conn:
        org_id = await _outlet_org_id(conn, data.shop_id, data.store_id)
        await ensure_org_access(conn, org_id, user_id, is_admin)

        product_id = await conn.fetchval("""
            INSERT INTO products (
                shop_id, store_id, name, description, price, stock_quantity, quantity_sold,
                limit_per_user, discount, points_earned_per_unit, image_url,
                is_deleted, created_on, updated_on
            ) VALUES ($1, $2, $3, $4, $5, $6, 0, $7, $8, $9, $10, false, NOW(), NOW())
            RETURNING id
        """,
            data.shop_id,
            data.store_id,
            data.name,
            data.description,
            data.price,
            data.stock_quantity,
            data.limit_per_user,
            data.discount,
            data.points_earned_per_unit,
            image_url
        )

        logger.info(f"Created product {product_id} - {data.name}")

    return await get_product(product_id)


async def update_product(product_id: int, data: ProductUpdate, image_url: Optional[str],
                         user_id: str, is_admin: bool) -> Optional[Product]:
    async with get_db_connection() as conn:
        existing = await conn.fetchrow(
            "SELECT id, shop_id, store_id, quantity_sold FROM products WHERE id = $1 AND is_deleted = false",
            product_id
        )
        if not existing:
            return None

        org_id = await _outlet_org_id(conn, existing['shop_id'], existing['store_id'])
        await ensure_org_access(conn, org_id, user_id, is_admin)

        update_fields = []
        params = []
        param_idx = 1

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            if field == 'stock_quantity' and value < existing['quantity_sold']:
                raise ValidationError(
                    "stock_quantity cannot be lower than units already sold",
                    {"quantity_sold": existing['quantity_sold']}
                )
            update_fields.append(f"{field} = ${param_idx}")
            params.append(value)
            param_idx += 1

        if image_url:
            update_fields.append(f"image_url = ${param_idx}")
            params.append(image_url)
            param_idx += 1

        if update_fields:
            update_fields.append("updated_on = NOW()")
            params.append(product_id)
            await conn.execute(
                f"UPDATE products SET {', '.join(update_fields)} WHERE id = ${param_idx}",
                *params
            )
            logger.info(f"Updated product {product_id}")

    return await get_product(product_id)


async def delete_product(product_id: int) -> bool:
    async with get_db_connection() as conn:
        result = await conn.execute("""
            UPDATE products SET is_deleted = true, updated_on = NOW()
            WHERE id = $1 AND is_deleted = false
        """, product_id)

        deleted = result == "UPDATE 1"
        if deleted:
            logger.info(f"Soft deleted product: {product_id}")
        return deleted


async def ensure_product_exists(conn, product_id: int):
    product = await conn.fetchrow(
        "SELECT id FROM products WHERE id = $1 AND is_deleted = false",
        product_id
    )
    if not product:
        raise NotFoundError("Product not found")
    return product

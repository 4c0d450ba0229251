import logging
from decimal import Decimal
from bookify.database import get_db_connection
from bookify.core.exceptions import AuthorizationError, NotFoundError
from bookify.models.cart import Cart, CartItem, CartItemCreate
from bookify.services import inventory_service
from bookify.services.inventory_service import ITEM_NAME_SQL

logger = logging.getLogger(__name__)


async def get_or_create_cart_id(conn, user_id: str) -> int:
    cart_id = await conn.fetchval("SELECT id FROM carts WHERE user_id = $1", user_id)
    if cart_id is None:
        cart_id = await conn.fetchval("""
            INSERT INTO carts (user_id, created_on) VALUES ($1, NOW())
            ON CONFLICT (user_id) DO UPDATE SET user_id = EXCLUDED.user_id
            RETURNING id
        """, user_id)
    return cart_id


async def fetch_cart_lines(conn, cart_id: int):
    return await conn.fetch(f"""
        SELECT ci.id AS cart_item_id, ci.item_id, ci.item_type, ci.quantity, ci.unit_price,
               {ITEM_NAME_SQL} AS name
        FROM cart_items ci
        WHERE ci.cart_id = $1 AND ci.is_deleted = false
        ORDER BY ci.id
    """, cart_id)


async def _build_cart(conn, cart_id: int) -> Cart:
    rows = await fetch_cart_lines(conn, cart_id)

    items = []
    subtotal = Decimal("0")
    for row in rows:
        total = Decimal(str(row['unit_price'])) * row['quantity']
        subtotal += total
        items.append(CartItem(**dict(row, name=row['name'] or "Unavailable item"), total=total))

    return Cart(
        cart_id=cart_id,
        items=items,
        subtotal=subtotal,
        items_count=sum(item.quantity for item in items)
    )


async def get_cart(user_id: str) -> Cart:
    async with get_db_connection() as conn:
        cart_id = await get_or_create_cart_id(conn, user_id)
        return await _build_cart(conn, cart_id)


async def add_item(user_id: str, data: CartItemCreate) -> Cart:
    """Add an item, merging with an existing line for the same item"""
    async with get_db_connection() as conn:
        cart_id = await get_or_create_cart_id(conn, user_id)
        item = await inventory_service.load_item(conn, data.item_type, data.item_id)

        line = await conn.fetchrow("""
            SELECT id, quantity FROM cart_items
            WHERE cart_id = $1 AND item_type = $2 AND item_id = $3 AND is_deleted = false
        """, cart_id, data.item_type.value, data.item_id)

        new_quantity = data.quantity + (line['quantity'] if line else 0)
        held = await inventory_service.quantity_held_by_user(conn, user_id, data.item_type, data.item_id)
        inventory_service.ensure_available(item, new_quantity, held)

        price = inventory_service.unit_price(item)
        if line:
            await conn.execute("""
                UPDATE cart_items SET quantity = $1, unit_price = $2
                WHERE id = $3
            """, new_quantity, price, line['id'])
        else:
            await conn.execute("""
                INSERT INTO cart_items (cart_id, item_id, item_type, quantity, unit_price, is_deleted, created_on)
                VALUES ($1, $2, $3, $4, $5, false, NOW())
            """, cart_id, data.item_id, data.item_type.value, new_quantity, price)

        logger.info(f"User {user_id[:8]} cart {cart_id}: {data.item_type.value} {data.item_id} x{new_quantity}")
        return await _build_cart(conn, cart_id)


async def _owned_line(conn, user_id: str, cart_item_id: int):
    line = await conn.fetchrow("""
        SELECT ci.id, ci.item_id, ci.item_type, ci.quantity, c.user_id, c.id AS cart_id
        FROM cart_items ci
        JOIN carts c ON c.id = ci.cart_id
        WHERE ci.id = $1 AND ci.is_deleted = false
    """, cart_item_id)
    if not line:
        raise NotFoundError("Cart item not found")
    if str(line['user_id']) != str(user_id):
        raise AuthorizationError("This cart item belongs to another user")
    return line


async def update_item(user_id: str, cart_item_id: int, quantity: int) -> Cart:
    async with get_db_connection() as conn:
        line = await _owned_line(conn, user_id, cart_item_id)

        item = await inventory_service.load_item(conn, line['item_type'], line['item_id'])
        held = await inventory_service.quantity_held_by_user(conn, user_id, line['item_type'], line['item_id'])
        inventory_service.ensure_available(item, quantity, held)

        await conn.execute("""
            UPDATE cart_items SET quantity = $1, unit_price = $2
            WHERE id = $3
        """, quantity, inventory_service.unit_price(item), cart_item_id)

        return await _build_cart(conn, line['cart_id'])


async def remove_item(user_id: str, cart_item_id: int) -> None:
    async with get_db_connection() as conn:
        await _owned_line(conn, user_id, cart_item_id)
        await conn.execute(
            "UPDATE cart_items SET is_deleted = true WHERE id = $1",
            cart_item_id
        )
        logger.info(f"User {user_id[:8]} removed cart item {cart_item_id}")


async def clear_cart(user_id: str) -> None:
    async with get_db_connection() as conn:
        await conn.execute("""
            UPDATE cart_items SET is_deleted = true
            WHERE cart_id = (SELECT id FROM carts WHERE user_id = $1) AND is_deleted = false
        """, user_id)

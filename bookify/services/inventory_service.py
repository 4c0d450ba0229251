"""Availability guards for tickets and products: what is left, and what one user may still buy."""
import logging
from decimal import Decimal
from bookify.core.exceptions import InventoryError, NotFoundError
from bookify.models.cart import ItemType
from bookify.services import pricing_service

logger = logging.getLogger(__name__)

# Display name of a cart/order line, correlated on the outer "ci" alias
ITEM_NAME_SQL = """
    CASE WHEN ci.item_type = 'ticket' THEN (
        SELECT ev.title || ' - ' || t.ticket_type
        FROM tickets t JOIN events ev ON ev.id = t.event_id
        WHERE t.id = ci.item_id
    ) ELSE (
        SELECT p.name FROM products p WHERE p.id = ci.item_id
    ) END
"""


async def load_item(conn, item_type: ItemType, item_id: int, lock: bool = False) -> dict:
    """
    Load a purchasable item normalized to:
    name, price, discount, available, sold, limit_per_user, points_per_unit.
    With lock=True the row is locked until the surrounding transaction ends.
    """
    suffix = " FOR UPDATE" if lock else ""
    if ItemType(item_type) == ItemType.TICKET:
        row = await conn.fetchrow(f"""
            SELECT id, ticket_type AS name, price, discount,
                   quantity_available AS available, quantity_sold AS sold,
                   limit_per_user, points_earned_per_unit AS points_per_unit
            FROM tickets
            WHERE id = $1 AND is_deleted = false{suffix}
        """, item_id)
        label = "Ticket"
    else:
        row = await conn.fetchrow(f"""
            SELECT id, name, price, discount,
                   stock_quantity AS available, quantity_sold AS sold,
                   limit_per_user, points_earned_per_unit AS points_per_unit
            FROM products
            WHERE id = $1 AND is_deleted = false{suffix}
        """, item_id)
        label = "Product"

    if not row:
        raise NotFoundError(f"{label} not found")
    return dict(row)


def unit_price(item: dict) -> Decimal:
    return pricing_service.apply_discount(item['price'], item['discount'])


async def quantity_held_by_user(conn, user_id: str, item_type: ItemType, item_id: int) -> int:
    """Units of an item the user already holds in orders"""
    held = await conn.fetchval("""
        SELECT COALESCE(SUM(ci.quantity), 0)
        FROM cart_items ci
        JOIN orders o ON o.id = ci.order_id
        WHERE o.user_id = $1 AND ci.item_type = $2 AND ci.item_id = $3 AND ci.is_deleted = false
    """, user_id, ItemType(item_type).value, item_id)
    return int(held or 0)


def ensure_available(item: dict, quantity: int, already_held: int = 0):
    """Raise InventoryError when quantity exceeds what is left or the per-user limit"""
    left = pricing_service.remaining(item['available'], item['sold'])
    if quantity > left:
        raise InventoryError(
            f"Only {left} left for {item['name']}",
            {"item_id": item['id'], "remaining": left, "requested": quantity}
        )

    limit = item['limit_per_user'] or 0
    if limit and quantity + already_held > limit:
        raise InventoryError(
            f"Limit of {limit} per user reached for {item['name']}",
            {"item_id": item['id'], "limit_per_user": limit, "already_held": already_held, "requested": quantity}
        )


async def record_sale(conn, item_type: ItemType, item_id: int, quantity: int) -> dict:
    """Lock the item row, verify stock, and add quantity to quantity_sold"""
    item = await load_item(conn, item_type, item_id, lock=True)
    ensure_available(item, quantity)

    table = "tickets" if ItemType(item_type) == ItemType.TICKET else "products"
    await conn.execute(
        f"UPDATE {table} SET quantity_sold = quantity_sold + $1, updated_on = NOW() WHERE id = $2",
        quantity, item_id
    )
    logger.info(f"Recorded sale of {quantity} x {table[:-1]} {item_id}")
    return item

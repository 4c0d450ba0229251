import logging
from decimal import Decimal
from typing import Optional, List
from bookify.config import settings
from bookify.database import get_db_connection
from bookify.core.exceptions import ValidationError
from bookify.models.order import Order, OrderSummary, OrderItem, OrderPaymentInfo, OrderStatus
from bookify.models.reward import RedemptionStatus
from bookify.services import inventory_service, pricing_service
from bookify.services.cart_service import get_or_create_cart_id, fetch_cart_lines
from bookify.services.inventory_service import ITEM_NAME_SQL

logger = logging.getLogger(__name__)


def _amount_due(total, discount) -> Decimal:
    return max(Decimal(str(total)) - Decimal(str(discount or 0)), Decimal("0"))


async def checkout(user_id: str) -> Order:
    """Turn the caller's cart into an Unpaid order"""
    async with get_db_connection() as conn:
        cart_id = await get_or_create_cart_id(conn, user_id)
        lines = await fetch_cart_lines(conn, cart_id)
        if not lines:
            raise ValidationError("Cart is empty")

        total = Decimal("0")
        for line in lines:
            item = await inventory_service.load_item(conn, line['item_type'], line['item_id'])
            held = await inventory_service.quantity_held_by_user(conn, user_id, line['item_type'], line['item_id'])
            inventory_service.ensure_available(item, line['quantity'], held)
            total += Decimal(str(line['unit_price'])) * line['quantity']

        order_id = await conn.fetchval("""
            INSERT INTO orders (user_id, order_date, status, total_amount, discount_amount, updated_on)
            VALUES ($1, NOW(), $2, $3, 0, NOW())
            RETURNING id
        """, user_id, OrderStatus.UNPAID.value, total)

        await conn.execute("""
            UPDATE cart_items SET cart_id = NULL, order_id = $1
            WHERE cart_id = $2 AND is_deleted = false
        """, order_id, cart_id)

        # Oldest unused redemption pays for part of the order
        redemption = await conn.fetchrow("""
            SELECT id, points_spent FROM redemptions
            WHERE user_id = $1 AND status = $2
            ORDER BY redeemed_at ASC
            LIMIT 1
            FOR UPDATE
        """, user_id, RedemptionStatus.UNUSED.value)

        if redemption:
            discount = pricing_service.points_discount(redemption['points_spent'], settings.point_value, total)
            await conn.execute("""
                UPDATE orders SET redemption_id = $1, discount_amount = $2
                WHERE id = $3
            """, redemption['id'], discount, order_id)
            await conn.execute("""
                UPDATE redemptions SET status = $1, order_id = $2
                WHERE id = $3
            """, RedemptionStatus.APPLIED.value, order_id, redemption['id'])
            logger.info(f"Applied redemption {redemption['id']} to order {order_id}: -{discount}")

        logger.info(f"User {user_id[:8]} checked out order {order_id} ({len(lines)} lines, total {total})")
        return await _load_order(conn, order_id, user_id)


async def _load_order(conn, order_id: int, user_id: Optional[str] = None) -> Optional[Order]:
    query = """
        SELECT id, user_id, order_date, status, total_amount, discount_amount, redemption_id
        FROM orders WHERE id = $1
    """
    params = [order_id]
    if user_id is not None:
        query += " AND user_id = $2"
        params.append(user_id)

    row = await conn.fetchrow(query, *params)
    if not row:
        return None

    items = await conn.fetch(f"""
        SELECT ci.id, ci.item_id, ci.item_type, ci.quantity, ci.unit_price,
               {ITEM_NAME_SQL} AS name
        FROM cart_items ci
        WHERE ci.order_id = $1 AND ci.is_deleted = false
        ORDER BY ci.id
    """, order_id)

    payment = await conn.fetchrow("""
        SELECT id, payment_method, payment_reference, status
        FROM payments WHERE order_id = $1
    """, order_id)

    order_items = [
        OrderItem(**dict(item), total=Decimal(str(item['unit_price'])) * item['quantity'])
        for item in items
    ]

    data = dict(row)
    data['user_id'] = str(data['user_id'])
    return Order(
        **data,
        amount_due=_amount_due(data['total_amount'], data['discount_amount']),
        items=order_items,
        items_count=sum(i.quantity for i in order_items),
        payment=OrderPaymentInfo(**dict(payment)) if payment else None,
        payment_status=payment['status'] if payment else None
    )


async def get_orders(user_id: str, limit: int = 50, offset: int = 0) -> List[OrderSummary]:
    async with get_db_connection(use_transaction=False) as conn:
        rows = await conn.fetch("""
            SELECT
                o.id, o.order_date, o.status, o.total_amount, o.discount_amount,
                (SELECT COALESCE(SUM(ci.quantity), 0) FROM cart_items ci
                 WHERE ci.order_id = o.id AND ci.is_deleted = false) AS items_count,
                (SELECT p.status FROM payments p WHERE p.order_id = o.id) AS payment_status
            FROM orders o
            WHERE o.user_id = $1
            ORDER BY o.order_date DESC
            LIMIT $2 OFFSET $3
        """, user_id, limit, offset)

        return [
            OrderSummary(**dict(row), amount_due=_amount_due(row['total_amount'], row['discount_amount']))
            for row in rows
        ]


async def get_order(order_id: int, user_id: str) -> Optional[Order]:
    async with get_db_connection(use_transaction=False) as conn:
        return await _load_order(conn, order_id, user_id)


async def delete_order(order_id: int, user_id: str) -> bool:
    """Delete an undelivered order with its payment and items"""
    async with get_db_connection() as conn:
        order = await conn.fetchrow("""
            SELECT id, status, redemption_id FROM orders
            WHERE id = $1 AND user_id = $2
            FOR UPDATE
        """, order_id, user_id)
        if not order:
            return False

        if order['status'] == OrderStatus.DELIVERED.value:
            raise ValidationError("Delivered orders cannot be deleted")

        if order['redemption_id']:
            await conn.execute("""
                UPDATE redemptions SET status = $1, order_id = NULL
                WHERE id = $2
            """, RedemptionStatus.UNUSED.value, order['redemption_id'])

        await conn.execute("DELETE FROM payments WHERE order_id = $1", order_id)
        await conn.execute("DELETE FROM cart_items WHERE order_id = $1", order_id)
        await conn.execute("DELETE FROM orders WHERE id = $1", order_id)

    logger.info(f"User {user_id[:8]} deleted order {order_id}")
    return True


async def order_lines(conn, order_id: int):
    """Items of an order as (item_type, item_id, quantity) rows"""
    return await conn.fetch("""
        SELECT item_type, item_id, quantity FROM cart_items
        WHERE order_id = $1 AND is_deleted = false
        ORDER BY item_type, item_id
    """, order_id)

import logging
from decimal import Decimal
from typing import Optional, List
from bookify.config import settings
from bookify.database import get_db_connection
from bookify.core.exceptions import ValidationError, ConflictError, NotFoundError, AuthorizationError
from bookify.models.order import OrderStatus
from bookify.models.payment import (
    Payment, PaymentCreate, PaymentUpdate, PaymentStatus, PaymentAdminView, PaymentReviewResult
)
from bookify.models.reward import RedemptionStatus
from bookify.services import inventory_service, pricing_service
from bookify.services.orders_service import order_lines

logger = logging.getLogger(__name__)

PAYMENT_COLUMNS = "id, order_id, payment_method, payment_reference, status, created_on, updated_on"


async def get_payments(status: Optional[str] = None, limit: int = 50, offset: int = 0) -> List[PaymentAdminView]:
    """All payments for admin review, newest first"""
    async with get_db_connection(use_transaction=False) as conn:
        query = """
            SELECT
                p.id, p.order_id, p.payment_method, p.payment_reference, p.status,
                p.created_on, p.updated_on,
                o.user_id, u.username, o.status AS order_status, o.total_amount,
                GREATEST(o.total_amount - o.discount_amount, 0) AS amount_due
            FROM payments p
            JOIN orders o ON o.id = p.order_id
            JOIN users u ON u.id = o.user_id
        """
        params = []
        param_idx = 1

        if status:
            query += f" WHERE p.status = ${param_idx}"
            params.append(status)
            param_idx += 1

        query += f" ORDER BY p.created_on DESC LIMIT ${param_idx} OFFSET ${param_idx + 1}"
        params.extend([limit, offset])

        rows = await conn.fetch(query, *params)
        return [PaymentAdminView(**dict(row)) for row in rows]


async def create_payment(user_id: str, data: PaymentCreate) -> Payment:
    """Submit payment proof for an order, putting it under review"""
    async with get_db_connection() as conn:
        order = await conn.fetchrow("""
            SELECT id, status FROM orders
            WHERE id = $1 AND user_id = $2
            FOR UPDATE
        """, data.order_id, user_id)
        if not order:
            raise NotFoundError("Order not found")

        if order['status'] == OrderStatus.DELIVERED.value:
            raise ValidationError("Order is already delivered")
        if order['status'] == OrderStatus.UNDER_REVIEW.value:
            raise ValidationError("Order already has a payment under review")

        existing = await conn.fetchrow(
            "SELECT id FROM payments WHERE order_id = $1",
            data.order_id
        )
        if existing:
            raise ConflictError("Order already has a payment", {"payment_id": existing['id']})

        row = await conn.fetchrow(f"""
            INSERT INTO payments (order_id, payment_method, payment_reference, status, created_on, updated_on)
            VALUES ($1, $2, $3, $4, NOW(), NOW())
            RETURNING {PAYMENT_COLUMNS}
        """, data.order_id, data.payment_method, data.payment_reference, PaymentStatus.PENDING.value)

        await conn.execute(
            "UPDATE orders SET status = $1, updated_on = NOW() WHERE id = $2",
            OrderStatus.UNDER_REVIEW.value, data.order_id
        )

        logger.info(f"Payment {row['id']} submitted for order {data.order_id}")
        return Payment(**dict(row))


async def _owned_payment(conn, payment_id: int, user_id: str):
    payment = await conn.fetchrow("""
        SELECT p.id, p.order_id, o.user_id, o.status AS order_status
        FROM payments p
        JOIN orders o ON o.id = p.order_id
        WHERE p.id = $1
        FOR UPDATE OF p, o
    """, payment_id)
    if not payment:
        raise NotFoundError("Payment not found")
    if str(payment['user_id']) != str(user_id):
        raise AuthorizationError("This payment belongs to another user")
    if payment['order_status'] == OrderStatus.DELIVERED.value:
        raise ValidationError("Payment of a delivered order cannot be changed")
    return payment


async def update_payment(payment_id: int, user_id: str, data: PaymentUpdate) -> Payment:
    """Change payment details; the payment goes back to Pending review"""
    async with get_db_connection() as conn:
        payment = await _owned_payment(conn, payment_id, user_id)

        update_fields = []
        params = []
        param_idx = 1
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            update_fields.append(f"{field} = ${param_idx}")
            params.append(value)
            param_idx += 1

        update_fields.append(f"status = ${param_idx}")
        params.append(PaymentStatus.PENDING.value)
        param_idx += 1
        update_fields.append("updated_on = NOW()")
        params.append(payment_id)

        row = await conn.fetchrow(f"""
            UPDATE payments SET {', '.join(update_fields)}
            WHERE id = ${param_idx}
            RETURNING {PAYMENT_COLUMNS}
        """, *params)

        await conn.execute(
            "UPDATE orders SET status = $1, updated_on = NOW() WHERE id = $2",
            OrderStatus.UNDER_REVIEW.value, payment['order_id']
        )

        logger.info(f"Payment {payment_id} updated, back to review")
        return Payment(**dict(row))


async def delete_payment(payment_id: int, user_id: str) -> None:
    async with get_db_connection() as conn:
        payment = await _owned_payment(conn, payment_id, user_id)

        await conn.execute("DELETE FROM payments WHERE id = $1", payment_id)
        await conn.execute(
            "UPDATE orders SET status = $1, updated_on = NOW() WHERE id = $2",
            OrderStatus.UNPAID.value, payment['order_id']
        )

        logger.info(f"Payment {payment_id} deleted, order {payment['order_id']} unpaid")


async def review_payment(payment_id: int, status: str) -> PaymentReviewResult:
    """
    Admin decision on a payment.

    Valid: the order is delivered, every item's stock is checked and sold,
    the buyer earns loyalty points and any applied redemption is consumed.
    Declined: the order goes back to Unpaid.
    """
    try:
        decision = PaymentStatus(status)
    except ValueError:
        raise ValidationError("Status must be Valid or Declined")
    if decision == PaymentStatus.PENDING:
        raise ValidationError("Status must be Valid or Declined")

    async with get_db_connection() as conn:
        payment = await conn.fetchrow("""
            SELECT p.id, p.order_id, p.status, o.user_id, o.total_amount, o.discount_amount, o.redemption_id
            FROM payments p
            JOIN orders o ON o.id = p.order_id
            WHERE p.id = $1
            FOR UPDATE OF p, o
        """, payment_id)
        if not payment:
            raise NotFoundError("Payment not found")

        if payment['status'] == PaymentStatus.VALID.value:
            raise ValidationError("Payment has already been validated")

        order_id = payment['order_id']
        points_awarded = 0

        if decision == PaymentStatus.DECLINED:
            order_status = OrderStatus.UNPAID.value
        else:
            order_status = OrderStatus.DELIVERED.value

            bonus_points = 0
            for line in await order_lines(conn, order_id):
                item = await inventory_service.record_sale(conn, line['item_type'], line['item_id'], line['quantity'])
                bonus_points += (item['points_per_unit'] or 0) * line['quantity']

            paid = max(Decimal(str(payment['total_amount'])) - Decimal(str(payment['discount_amount'] or 0)), Decimal("0"))
            points_awarded = pricing_service.loyalty_points_for(paid, settings.loyalty_earn_rate, bonus_points)

            await conn.execute("""
                UPDATE users SET loyalty_points = loyalty_points + $1, updated_on = NOW()
                WHERE id = $2
            """, points_awarded, payment['user_id'])

            if payment['redemption_id']:
                await conn.execute(
                    "UPDATE redemptions SET status = $1 WHERE id = $2",
                    RedemptionStatus.USED.value, payment['redemption_id']
                )

        await conn.execute(
            "UPDATE payments SET status = $1, updated_on = NOW() WHERE id = $2",
            decision.value, payment_id
        )
        await conn.execute(
            "UPDATE orders SET status = $1, updated_on = NOW() WHERE id = $2",
            order_status, order_id
        )

    logger.info(f"Payment {payment_id} marked {decision.value}; order {order_id} -> {order_status}, +{points_awarded} points")
    return PaymentReviewResult(
        payment_id=payment_id,
        order_id=order_id,
        payment_status=decision,
        order_status=order_status,
        points_awarded=points_awarded
    )

import logging
from datetime import datetime, timezone
from typing import Optional, List
from bookify.database import get_db_connection
from bookify.core.exceptions import ValidationError, NotFoundError
from bookify.models.reward import (
    Reward, RewardCreate, RewardUpdate, Redemption, RedemptionResult, RedemptionStatus
)
from bookify.services.products_service import ensure_product_exists
from bookify.services.tickets_service import ensure_ticket_exists

logger = logging.getLogger(__name__)

REWARD_COLUMNS = """
    id, name, description, points_required, reward_type, discount, expire_date,
    status, item_product_id, item_ticket_id, created_on
"""


def _is_past(moment: Optional[datetime]) -> bool:
    if moment is None:
        return False
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment < datetime.now(timezone.utc)


async def get_rewards(active_only: bool = False) -> List[Reward]:
    async with get_db_connection(use_transaction=False) as conn:
        query = f"SELECT {REWARD_COLUMNS} FROM rewards WHERE is_deleted = false"
        if active_only:
            query += " AND status = true AND (expire_date IS NULL OR expire_date > NOW())"
        query += " ORDER BY points_required ASC"

        rows = await conn.fetch(query)
        return [Reward(**dict(row)) for row in rows]


async def get_reward(reward_id: int) -> Optional[Reward]:
    async with get_db_connection(use_transaction=False) as conn:
        row = await conn.fetchrow(
            f"SELECT {REWARD_COLUMNS} FROM rewards WHERE id = $1 AND is_deleted = false",
            reward_id
        )
        return Reward(**dict(row)) if row else None


async def get_available_rewards(user_id: str) -> List[Reward]:
    """Active, unexpired rewards the user has enough points for"""
    async with get_db_connection(use_transaction=False) as conn:
        rows = await conn.fetch(f"""
            SELECT {REWARD_COLUMNS} FROM rewards
            WHERE is_deleted = false
              AND status = true
              AND (expire_date IS NULL OR expire_date > NOW())
              AND points_required <= (SELECT loyalty_points FROM users WHERE id = $1)
            ORDER BY points_required ASC
        """, user_id)
        return [Reward(**dict(row)) for row in rows]


async def _ensure_item(conn, product_id: Optional[int], ticket_id: Optional[int]):
    if product_id is not None:
        await ensure_product_exists(conn, product_id)
    if ticket_id is not None:
        await ensure_ticket_exists(conn, ticket_id)


async def create_reward(data: RewardCreate) -> Reward:
    if _is_past(data.expire_date):
        raise ValidationError("Expire date cannot be in the past")

    async with get_db_connection() as conn:
        await _ensure_item(conn, data.item_product_id, data.item_ticket_id)

        row = await conn.fetchrow(f"""
            INSERT INTO rewards (
                name, description, points_required, reward_type, discount, expire_date,
                status, item_product_id, item_ticket_id, is_deleted, created_on, updated_on
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, false, NOW(), NOW())
            RETURNING {REWARD_COLUMNS}
        """,
            data.name,
            data.description,
            data.points_required,
            data.reward_type,
            data.discount,
            data.expire_date,
            data.status,
            data.item_product_id,
            data.item_ticket_id
        )

        logger.info(f"Created reward {row['id']} - {data.name}")
        return Reward(**dict(row))


async def update_reward(reward_id: int, data: RewardUpdate) -> Optional[Reward]:
    if _is_past(data.expire_date):
        raise ValidationError("Expire date cannot be in the past")

    async with get_db_connection() as conn:
        existing = await conn.fetchrow(
            "SELECT id FROM rewards WHERE id = $1 AND is_deleted = false",
            reward_id
        )
        if not existing:
            return None

        await _ensure_item(conn, data.item_product_id, data.item_ticket_id)

        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        # Switching the target item clears the other one
        if 'item_product_id' in update_data:
            update_data['item_ticket_id'] = None
        elif 'item_ticket_id' in update_data:
            update_data['item_product_id'] = None

        update_fields = []
        params = []
        param_idx = 1
        for field, value in update_data.items():
            update_fields.append(f"{field} = ${param_idx}")
            params.append(value)
            param_idx += 1

        if not update_fields:
            return await get_reward(reward_id)

        update_fields.append("updated_on = NOW()")
        params.append(reward_id)
        row = await conn.fetchrow(f"""
            UPDATE rewards SET {', '.join(update_fields)}
            WHERE id = ${param_idx}
            RETURNING {REWARD_COLUMNS}
        """, *params)

        logger.info(f"Updated reward {reward_id}")
        return Reward(**dict(row))


async def delete_reward(reward_id: int) -> bool:
    async with get_db_connection() as conn:
        result = await conn.execute("""
            UPDATE rewards SET is_deleted = true, updated_on = NOW()
            WHERE id = $1 AND is_deleted = false
        """, reward_id)

        deleted = result == "UPDATE 1"
        if deleted:
            logger.info(f"Soft deleted reward: {reward_id}")
        return deleted


# Redemptions

REDEMPTION_SELECT = """
    SELECT rd.id, rd.reward_id, rw.name AS reward_name, rw.reward_type,
           rd.points_spent, rd.status, rd.order_id, rd.redeemed_at, u.username
    FROM redemptions rd
    JOIN rewards rw ON rw.id = rd.reward_id
    JOIN users u ON u.id = rd.user_id
"""


async def redeem(user_id: str, reward_id: int) -> RedemptionResult:
    """Spend points on a reward; the redemption waits unused for the next checkout"""
    async with get_db_connection() as conn:
        reward = await conn.fetchrow("""
            SELECT id, name, points_required, status, expire_date
            FROM rewards WHERE id = $1 AND is_deleted = false
        """, reward_id)
        if not reward:
            raise NotFoundError("Reward not found")
        if not reward['status']:
            raise ValidationError("Reward is not active")
        if _is_past(reward['expire_date']):
            raise ValidationError("Reward has expired")

        points = await conn.fetchval(
            "SELECT loyalty_points FROM users WHERE id = $1 FOR UPDATE",
            user_id
        )
        if points is None:
            raise NotFoundError("User not found")

        cost = reward['points_required']
        if points < cost:
            raise ValidationError(
                "Not enough loyalty points",
                {"required": cost, "available": points}
            )

        await conn.execute(
            "UPDATE users SET loyalty_points = loyalty_points - $1, updated_on = NOW() WHERE id = $2",
            cost, user_id
        )
        redemption_id = await conn.fetchval("""
            INSERT INTO redemptions (user_id, reward_id, points_spent, status, redeemed_at)
            VALUES ($1, $2, $3, $4, NOW())
            RETURNING id
        """, user_id, reward_id, cost, RedemptionStatus.UNUSED.value)

        row = await conn.fetchrow(REDEMPTION_SELECT + " WHERE rd.id = $1", redemption_id)

    logger.info(f"User {user_id[:8]} redeemed reward {reward_id} for {cost} points")
    return RedemptionResult(redemption=Redemption(**dict(row)), remaining_points=points - cost)


async def get_user_redemptions(user_id: str) -> List[Redemption]:
    async with get_db_connection(use_transaction=False) as conn:
        rows = await conn.fetch(
            REDEMPTION_SELECT + " WHERE rd.user_id = $1 ORDER BY rd.redeemed_at DESC",
            user_id
        )
        return [Redemption(**dict(row)) for row in rows]


async def get_item_redemptions(product_id: Optional[int] = None, ticket_id: Optional[int] = None) -> List[Redemption]:
    """Redemptions of rewards that target a given product or ticket"""
    column, value = ("rw.item_product_id", product_id) if product_id is not None else ("rw.item_ticket_id", ticket_id)
    async with get_db_connection(use_transaction=False) as conn:
        rows = await conn.fetch(
            REDEMPTION_SELECT + f" WHERE {column} = $1 ORDER BY rd.redeemed_at DESC",
            value
        )
        return [Redemption(**dict(row)) for row in rows]

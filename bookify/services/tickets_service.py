import logging
from typing import Optional, List
from bookify.database import get_db_connection
from bookify.core.exceptions import ValidationError, NotFoundError
from bookify.models.ticket import Ticket, TicketCreate, TicketUpdate
from bookify.services import pricing_service
from bookify.services.events_service import ensure_event_exists
from bookify.services.organizations_service import ensure_org_access

logger = logging.getLogger(__name__)

TICKET_COLUMNS = """
    t.id, t.event_id, t.ticket_type, t.price, t.quantity_available, t.quantity_sold,
    t.limit_per_user, t.discount, t.is_refundable, t.points_earned_per_unit,
    t.seats_description, t.created_on
"""


def _to_ticket(row) -> Ticket:
    data = dict(row)
    data['remaining'] = pricing_service.remaining(data['quantity_available'], data['quantity_sold'])
    data['final_price'] = pricing_service.apply_discount(data['price'], data['discount'])
    return Ticket(**data)


async def get_event_tickets(event_id: int) -> List[Ticket]:
    async with get_db_connection(use_transaction=False) as conn:
        rows = await conn.fetch(f"""
            SELECT {TICKET_COLUMNS}
            FROM tickets t
            WHERE t.event_id = $1 AND t.is_deleted = false
            ORDER BY t.price ASC
        """, event_id)
        return [_to_ticket(row) for row in rows]


async def get_ticket(ticket_id: int) -> Optional[Ticket]:
    async with get_db_connection(use_transaction=False) as conn:
        row = await conn.fetchrow(f"""
            SELECT {TICKET_COLUMNS}
            FROM tickets t
            WHERE t.id = $1 AND t.is_deleted = false
        """, ticket_id)
        return _to_ticket(row) if row else None


async def create_ticket(data: TicketCreate, user_id: str, is_admin: bool) -> Ticket:
    async with get_db_connection() as conn:
        event = await ensure_event_exists(conn, data.event_id)
        await ensure_org_access(conn, event['org_id'], user_id, is_admin)

        row = await conn.fetchrow("""
            INSERT INTO tickets (
                event_id, ticket_type, price, quantity_available, quantity_sold,
                limit_per_user, discount, is_refundable, points_earned_per_unit,
                seats_description, is_deleted, created_on, updated_on
            ) VALUES ($1, $2, $3, $4, 0, $5, $6, $7, $8, $9, false, NOW(), NOW())
            RETURNING *
        """,
            data.event_id,
            data.ticket_type,
            data.price,
            data.quantity_available,
            data.limit_per_user,
            data.discount,
            data.is_refundable,
            data.points_earned_per_unit,
            data.seats_description
        )

        logger.info(f"Created ticket type {row['id']} ({data.ticket_type}) for event {data.event_id}")
        return _to_ticket(row)


async def update_ticket(ticket_id: int, data: TicketUpdate, user_id: str, is_admin: bool) -> Optional[Ticket]:
    """Partial update; numeric fields only apply when positive"""
    async with get_db_connection() as conn:
        existing = await conn.fetchrow("""
            SELECT t.id, t.quantity_sold, e.org_id
            FROM tickets t
            JOIN events e ON e.id = t.event_id
            WHERE t.id = $1 AND t.is_deleted = false
        """, ticket_id)
        if not existing:
            return None

        await ensure_org_access(conn, existing['org_id'], user_id, is_admin)

        update_fields = []
        params = []
        param_idx = 1

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            if field in ('quantity_available', 'price', 'limit_per_user', 'points_earned_per_unit') and value <= 0:
                continue
            if field == 'quantity_available' and value < existing['quantity_sold']:
                raise ValidationError(
                    "quantity_available cannot be lower than tickets already sold",
                    {"quantity_sold": existing['quantity_sold']}
                )
            update_fields.append(f"{field} = ${param_idx}")
            params.append(value)
            param_idx += 1

        if update_fields:
            update_fields.append("updated_on = NOW()")
            params.append(ticket_id)
            await conn.execute(
                f"UPDATE tickets SET {', '.join(update_fields)} WHERE id = ${param_idx}",
                *params
            )
            logger.info(f"Updated ticket {ticket_id}")

    return await get_ticket(ticket_id)


async def delete_ticket(ticket_id: int) -> bool:
    async with get_db_connection() as conn:
        result = await conn.execute("""
            UPDATE tickets SET is_deleted = true, updated_on = NOW()
            WHERE id = $1 AND is_deleted = false
        """, ticket_id)

        deleted = result == "UPDATE 1"
        if deleted:
            logger.info(f"Soft deleted ticket: {ticket_id}")
        return deleted


async def ensure_ticket_exists(conn, ticket_id: int):
    ticket = await conn.fetchrow(
        "SELECT id FROM tickets WHERE id = $1 AND is_deleted = false",
        ticket_id
    )
    if not ticket:
        raise NotFoundError("Ticket not found")
    return ticket

import logging
from typing import Optional, List
from bookify.database import get_db_connection
from bookify.core.exceptions import ValidationError, NotFoundError
from bookify.models.event import Event, EventSummary, EventCreate, EventUpdate, EventStatus
from bookify.services.organizations_service import ensure_org_access

logger = logging.getLogger(__name__)

EVENT_SUMMARY_COLUMNS = """
    e.id, e.title, e.event_date, e.location_name, e.image_url, e.status,
    e.org_id, o.name AS organization_name,
    e.category_id, c.name AS category_name,
    (SELECT MIN(t.price) FROM tickets t WHERE t.event_id = e.id AND t.is_deleted = false) AS min_price
"""


async def get_events(
    category_id: Optional[int] = None,
    org_id: Optional[int] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    upcoming: bool = False,
    limit: int = 50,
    offset: int = 0
) -> List[EventSummary]:
    """List non-deleted events"""
    async with get_db_connection(use_transaction=False) as conn:
        query = f"""
            SELECT {EVENT_SUMMARY_COLUMNS}
            FROM events e
            JOIN organizations o ON o.id = e.org_id
            JOIN categories c ON c.id = e.category_id
            WHERE e.is_deleted = false
        """
        params = []
        param_idx = 1

        if category_id is not None:
            query += f" AND e.category_id = ${param_idx}"
            params.append(category_id)
            param_idx += 1

        if org_id is not None:
            query += f" AND e.org_id = ${param_idx}"
            params.append(org_id)
            param_idx += 1

        if status:
            query += f" AND e.status = ${param_idx}"
            params.append(status)
            param_idx += 1

        if search:
            query += f" AND e.title ILIKE ${param_idx}"
            params.append(f"%{search}%")
            param_idx += 1

        if upcoming:
            query += " AND e.event_date >= NOW()"

        query += f" ORDER BY e.event_date ASC LIMIT ${param_idx} OFFSET ${param_idx + 1}"
        params.extend([limit, offset])

        rows = await conn.fetch(query, *params)
        return [EventSummary(**dict(row)) for row in rows]


async def get_event_by_id(event_id: int) -> Optional[Event]:
    async with get_db_connection(use_transaction=False) as conn:
        row = await conn.fetchrow(f"""
            SELECT
                {EVENT_SUMMARY_COLUMNS},
                e.description, e.location_address, e.capacity, e.age_restriction,
                e.created_on, e.updated_on,
                (SELECT COALESCE(SUM(t.quantity_sold), 0) FROM tickets t
                 WHERE t.event_id = e.id AND t.is_deleted = false) AS tickets_sold,
                (SELECT AVG(r.rating)::float FROM reviews r
                 WHERE r.event_id = e.id AND r.is_deleted = false) AS average_rating,
                (SELECT COUNT(*) FROM reviews r
                 WHERE r.event_id = e.id AND r.is_deleted = false) AS review_count
            FROM events e
            JOIN organizations o ON o.id = e.org_id
            JOIN categories c ON c.id = e.category_id
            WHERE e.id = $1 AND e.is_deleted = false
        """, event_id)

        return Event(**dict(row)) if row else None


async def _ensure_category(conn, category_id: int):
    category = await conn.fetchrow(
        "SELECT id FROM categories WHERE id = $1 AND is_deleted = false",
        category_id
    )
    if not category:
        raise ValidationError("Category does not exist")


async def create_event(data: EventCreate, image_url: str, user_id: str, is_admin: bool) -> int:
    """Create an event for an organization. Returns the new event id."""
    async with get_db_connection() as conn:
        org = await conn.fetchrow(
            "SELECT id FROM organizations WHERE id = $1 AND is_deleted = false",
            data.org_id
        )
        if not org:
            raise ValidationError("Organization does not exist")

        await _ensure_category(conn, data.category_id)
        await ensure_org_access(conn, data.org_id, user_id, is_admin)

        event_id = await conn.fetchval("""
            INSERT INTO events (
                org_id, category_id, title, description, location_name, location_address,
                event_date, image_url, capacity, age_restriction, status,
                is_deleted, created_on, updated_on
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, false, NOW(), NOW())
            RETURNING id
        """,
            data.org_id,
            data.category_id,
            data.title,
            data.description,
            data.location_name,
            data.location_address,
            data.event_date,
            image_url,
            data.capacity,
            data.age_restriction,
            EventStatus.ACTIVE.value
        )

        logger.info(f"Created event: {event_id} - {data.title} (org {data.org_id})")
        return event_id


async def update_event(event_id: int, data: EventUpdate, image_url: Optional[str],
                       user_id: str, is_admin: bool) -> Optional[Event]:
    """Partial update. Blank text is ignored; capacity and age restriction apply only when positive."""
    async with get_db_connection() as conn:
        existing = await conn.fetchrow(
            "SELECT id, org_id FROM events WHERE id = $1 AND is_deleted = false",
            event_id
        )
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
            if field in ('capacity', 'age_restriction') and value <= 0:
                continue
            if field == 'category_id':
                await _ensure_category(conn, value)
            if field == 'status':
                value = EventStatus(value).value
            update_fields.append(f"{field} = ${param_idx}")
            params.append(value)
            param_idx += 1

        if image_url:
            update_fields.append(f"image_url = ${param_idx}")
            params.append(image_url)
            param_idx += 1

        if update_fields:
            update_fields.append("updated_on = NOW()")
            params.append(event_id)
            await conn.execute(
                f"UPDATE events SET {', '.join(update_fields)} WHERE id = ${param_idx}",
                *params
            )
            logger.info(f"Updated event {event_id}")

    return await get_event_by_id(event_id)


async def delete_event(event_id: int) -> bool:
    """Soft delete an event and mark it inactive"""
    async with get_db_connection() as conn:
        result = await conn.execute("""
            UPDATE events
            SET is_deleted = true, status = $2, updated_on = NOW()
            WHERE id = $1 AND is_deleted = false
        """, event_id, EventStatus.INACTIVE.value)

        deleted = result == "UPDATE 1"
        if deleted:
            logger.info(f"Soft deleted event: {event_id}")
        return deleted


async def ensure_event_exists(conn, event_id: int) -> dict:
    event = await conn.fetchrow(
        "SELECT id, org_id, title FROM events WHERE id = $1 AND is_deleted = false",
        event_id
    )
    if not event:
        raise NotFoundError("Event not found")
    return event

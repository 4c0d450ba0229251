import logging
from typing import Optional, List
from bookify.database import get_db_connection
from bookify.core.exceptions import ConflictError, NotFoundError, AuthorizationError
from bookify.core.roles import Role
from bookify.models.organization import (
    Organization, OrganizationCreate, OrganizationUpdate, Organizer
)

logger = logging.getLogger(__name__)

ORG_SELECT = """
    SELECT
        o.id, o.name, o.description, o.contact_email, o.contact_phone, o.address,
        o.created_on, o.updated_on,
        (SELECT COUNT(*) FROM events e WHERE e.org_id = o.id AND e.is_deleted = false) AS events_count
    FROM organizations o
"""


async def ensure_org_access(conn, org_id: int, user_id: str, is_admin: bool):
    """Organizers may only act on organizations they belong to"""
    if is_admin:
        return
    member = await conn.fetchrow("""
        SELECT 1 FROM organization_organizers
        WHERE org_id = $1 AND user_id = $2 AND is_deleted = false
    """, org_id, user_id)
    if not member:
        raise AuthorizationError("You are not an organizer of this organization")


async def get_organizations(search: Optional[str] = None, limit: int = 50, offset: int = 0) -> List[Organization]:
    async with get_db_connection(use_transaction=False) as conn:
        query = ORG_SELECT + " WHERE o.is_deleted = false"
        params = []
        param_idx = 1

        if search:
            query += f" AND o.name ILIKE ${param_idx}"
            params.append(f"%{search}%")
            param_idx += 1

        query += f" ORDER BY o.name LIMIT ${param_idx} OFFSET ${param_idx + 1}"
        params.extend([limit, offset])

        rows = await conn.fetch(query, *params)
        return [Organization(**dict(row)) for row in rows]


async def get_organization(org_id: int) -> Optional[Organization]:
    async with get_db_connection(use_transaction=False) as conn:
        row = await conn.fetchrow(ORG_SELECT + " WHERE o.id = $1 AND o.is_deleted = false", org_id)
        return Organization(**dict(row)) if row else None


async def get_user_organizations(user_id: str) -> List[Organization]:
    async with get_db_connection(use_transaction=False) as conn:
        rows = await conn.fetch(ORG_SELECT + """
            JOIN organization_organizers oo ON oo.org_id = o.id
            WHERE oo.user_id = $1 AND oo.is_deleted = false AND o.is_deleted = false
            ORDER BY o.name
        """, user_id)
        return [Organization(**dict(row)) for row in rows]


async def _ensure_unique_name(conn, name: str, exclude_id: Optional[int] = None):
    duplicate = await conn.fetchrow("""
        SELECT id FROM organizations
        WHERE LOWER(name) = LOWER($1) AND id <> COALESCE($2, -1)
    """, name, exclude_id)
    if duplicate:
        raise ConflictError(f"Organization '{name}' already exists")


async def create_organization(data: OrganizationCreate) -> Organization:
    async with get_db_connection() as conn:
        await _ensure_unique_name(conn, data.name)

        row = await conn.fetchrow("""
            INSERT INTO organizations (
                name, description, contact_email, contact_phone, address,
                is_deleted, created_on, updated_on
            ) VALUES ($1, $2, $3, $4, $5, false, NOW(), NOW())
            RETURNING id, name, description, contact_email, contact_phone, address, created_on, updated_on
        """,
            data.name,
            data.description,
            data.contact_email,
            data.contact_phone,
            data.address
        )

        logger.info(f"Created organization: {row['id']} - {data.name}")
        return Organization(**dict(row))


async def update_organization(org_id: int, data: OrganizationUpdate) -> Optional[Organization]:
    async with get_db_connection() as conn:
        existing = await conn.fetchrow(
            "SELECT id FROM organizations WHERE id = $1 AND is_deleted = false",
            org_id
        )
        if not existing:
            return None

        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        if 'name' in update_data:
            await _ensure_unique_name(conn, update_data['name'], org_id)

        update_fields = []
        params = []
        param_idx = 1
        for field, value in update_data.items():
            update_fields.append(f"{field} = ${param_idx}")
            params.append(value)
            param_idx += 1

        if update_fields:
            update_fields.append("updated_on = NOW()")
            params.append(org_id)
            await conn.execute(
                f"UPDATE organizations SET {', '.join(update_fields)} WHERE id = ${param_idx}",
                *params
            )

    return await get_organization(org_id)


async def delete_organization(org_id: int) -> bool:
    async with get_db_connection() as conn:
        result = await conn.execute("""
            UPDATE organizations SET is_deleted = true, updated_on = NOW()
            WHERE id = $1 AND is_deleted = false
        """, org_id)

        deleted = result == "UPDATE 1"
        if deleted:
            logger.info(f"Soft deleted organization: {org_id}")
        return deleted


# Organizers

async def get_organizers(org_id: int) -> List[Organizer]:
    async with get_db_connection(use_transaction=False) as conn:
        rows = await conn.fetch("""
            SELECT oo.user_id, oo.org_id, u.username, u.email, u.name, oo.created_on
            FROM organization_organizers oo
            JOIN users u ON u.id = oo.user_id
            WHERE oo.org_id = $1 AND oo.is_deleted = false
            ORDER BY u.username
        """, org_id)
        return [Organizer(**dict(row)) for row in rows]


async def assign_organizer(org_id: int, user_id: str) -> None:
    """Link a user to an organization and grant them the Organizer role"""
    async with get_db_connection() as conn:
        org = await conn.fetchrow(
            "SELECT id FROM organizations WHERE id = $1 AND is_deleted = false",
            org_id
        )
        if not org:
            raise NotFoundError("Organization not found")

        user = await conn.fetchrow(
            "SELECT id FROM users WHERE id = $1 AND is_deleted = false",
            user_id
        )
        if not user:
            raise NotFoundError("User not found")

        await conn.execute("""
            INSERT INTO organization_organizers (user_id, org_id, is_deleted, created_on)
            VALUES ($1, $2, false, NOW())
            ON CONFLICT (user_id, org_id) DO UPDATE SET is_deleted = false
        """, user_id, org_id)

        await conn.execute(
            "INSERT INTO user_roles (user_id, role) VALUES ($1, $2) ON CONFLICT DO NOTHING",
            user_id, Role.ORGANIZER.value
        )

    logger.info(f"User {user_id[:8]} assigned as organizer of org {org_id}")


async def remove_organizer(org_id: int, user_id: str) -> bool:
    async with get_db_connection() as conn:
        result = await conn.execute("""
            UPDATE organization_organizers SET is_deleted = true
            WHERE org_id = $1 AND user_id = $2 AND is_deleted = false
        """, org_id, user_id)

        removed = result == "UPDATE 1"
        if removed:
            logger.info(f"User {user_id[:8]} removed from org {org_id}")
        return removed

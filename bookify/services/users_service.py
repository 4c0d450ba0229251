import logging
from typing import Optional, List
from bookify.database import get_db_connection
from bookify.core.exceptions import ValidationError, ConflictError, NotFoundError
from bookify.core.roles import Role, is_admin
from bookify.models.user import (
    AdminUserSummary, AdminUserDetail, AdminUserUpdate, UserStatistics
)

logger = logging.getLogger(__name__)

USER_SUMMARY_SELECT = """
    SELECT
        u.id, u.username, u.email, u.name, u.loyalty_points,
        u.is_deleted AS is_banned, u.email_confirmed, u.created_on,
        COALESCE(
            (SELECT array_agg(ur.role ORDER BY ur.role) FROM user_roles ur WHERE ur.user_id = u.id),
            ARRAY[]::varchar[]
        ) AS roles
    FROM users u
"""


def _summary(row) -> AdminUserSummary:
    data = dict(row)
    data['roles'] = list(data.get('roles') or [])
    return AdminUserSummary(**data)


async def list_users(
    search: Optional[str] = None,
    role: Optional[str] = None,
    is_banned: Optional[bool] = None,
    limit: int = 50,
    offset: int = 0
) -> List[AdminUserSummary]:
    async with get_db_connection(use_transaction=False) as conn:
        query = USER_SUMMARY_SELECT + " WHERE 1 = 1"
        params = []
        param_idx = 1

        if search:
            query += f"""
                AND (u.name ILIKE ${param_idx} OR u.username ILIKE ${param_idx} OR u.email ILIKE ${param_idx})
            """
            params.append(f"%{search}%")
            param_idx += 1

        if role:
            query += f" AND EXISTS (SELECT 1 FROM user_roles r WHERE r.user_id = u.id AND r.role = ${param_idx})"
            params.append(role)
            param_idx += 1

        if is_banned is not None:
            query += f" AND u.is_deleted = ${param_idx}"
            params.append(is_banned)
            param_idx += 1

        query += f" ORDER BY u.created_on DESC LIMIT ${param_idx} OFFSET ${param_idx + 1}"
        params.extend([limit, offset])

        rows = await conn.fetch(query, *params)
        return [_summary(row) for row in rows]


async def get_user(user_id: str) -> Optional[AdminUserDetail]:
    async with get_db_connection(use_transaction=False) as conn:
        row = await conn.fetchrow("""
            SELECT
                u.id, u.username, u.email, u.name, u.address, u.profile_picture,
                u.loyalty_points, u.is_deleted AS is_banned, u.email_confirmed, u.created_on,
                COALESCE(
                    (SELECT array_agg(ur.role ORDER BY ur.role) FROM user_roles ur WHERE ur.user_id = u.id),
                    ARRAY[]::varchar[]
                ) AS roles,
                (SELECT COUNT(*) FROM orders o WHERE o.user_id = u.id) AS orders_count,
                (SELECT COUNT(*) FROM reviews rv WHERE rv.user_id = u.id AND rv.is_deleted = false) AS reviews_count,
                (SELECT COUNT(*) FROM redemptions rd WHERE rd.user_id = u.id) AS redemptions_count
            FROM users u
            WHERE u.id = $1
        """, user_id)

        if not row:
            return None

        data = dict(row)
        data['roles'] = list(data.get('roles') or [])
        return AdminUserDetail(**data)


async def get_statistics() -> UserStatistics:
    async with get_db_connection(use_transaction=False) as conn:
        row = await conn.fetchrow("""
            SELECT
                COUNT(*) AS total_users,
                COUNT(*) FILTER (WHERE u.is_deleted = false) AS active_users,
                COUNT(*) FILTER (WHERE u.is_deleted = true) AS banned_users,
                COUNT(*) FILTER (WHERE EXISTS (
                    SELECT 1 FROM user_roles r WHERE r.user_id = u.id AND r.role = 'Admin'
                )) AS admins,
                COUNT(*) FILTER (WHERE EXISTS (
                    SELECT 1 FROM user_roles r WHERE r.user_id = u.id AND r.role = 'Organizer'
                )) AS organizers,
                COUNT(*) FILTER (WHERE NOT EXISTS (
                    SELECT 1 FROM user_roles r WHERE r.user_id = u.id AND r.role <> 'User'
                )) AS regular_users
            FROM users u
        """)
        return UserStatistics(**dict(row))


async def update_user(user_id: str, data: AdminUserUpdate) -> Optional[AdminUserDetail]:
    async with get_db_connection() as conn:
        existing = await conn.fetchrow("SELECT id FROM users WHERE id = $1", user_id)
        if not existing:
            return None

        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        if 'email' in update_data:
            taken = await conn.fetchrow(
                "SELECT id FROM users WHERE LOWER(email) = LOWER($1) AND id <> $2",
                update_data['email'], user_id
            )
            if taken:
                raise ConflictError("Email is already registered")

        if 'username' in update_data:
            taken = await conn.fetchrow(
                "SELECT id FROM users WHERE LOWER(username) = LOWER($1) AND id <> $2",
                update_data['username'], user_id
            )
            if taken:
                raise ConflictError("Username is already taken")

        update_fields = []
        params = []
        param_idx = 1
        for field, value in update_data.items():
            update_fields.append(f"{field} = ${param_idx}")
            params.append(value)
            param_idx += 1

        if update_fields:
            update_fields.append("updated_on = NOW()")
            params.append(user_id)
            await conn.execute(
                f"UPDATE users SET {', '.join(update_fields)} WHERE id = ${param_idx}",
                *params
            )
            logger.info(f"Admin updated user {user_id[:8]}: {list(update_data.keys())}")

    return await get_user(user_id)


async def _user_roles(conn, user_id: str) -> Optional[List[str]]:
    exists = await conn.fetchrow("SELECT id FROM users WHERE id = $1", user_id)
    if not exists:
        return None
    rows = await conn.fetch("SELECT role FROM user_roles WHERE user_id = $1", user_id)
    return [r['role'] for r in rows]


async def set_banned(user_id: str, banned: bool) -> bool:
    """Ban or unban a user. Admins cannot be banned."""
    async with get_db_connection() as conn:
        roles = await _user_roles(conn, user_id)
        if roles is None:
            return False

        if banned and is_admin(roles):
            raise ValidationError("Admin users cannot be banned")

        await conn.execute(
            "UPDATE users SET is_deleted = $1, updated_on = NOW() WHERE id = $2",
            banned, user_id
        )

    logger.info(f"User {user_id[:8]} {'banned' if banned else 'unbanned'}")
    return True


async def delete_user_permanently(user_id: str) -> bool:
    async with get_db_connection() as conn:
        roles = await _user_roles(conn, user_id)
        if roles is None:
            return False

        if is_admin(roles):
            raise ValidationError("Admin users cannot be deleted")

        await conn.execute("DELETE FROM users WHERE id = $1", user_id)

    logger.warning(f"User {user_id[:8]} permanently deleted")
    return True


# Roles

async def list_roles() -> List[dict]:
    async with get_db_connection(use_transaction=False) as conn:
        rows = await conn.fetch("""
            SELECT role AS name, COUNT(*) AS users_count
            FROM user_roles
            GROUP BY role
        """)
    counts = {row['name']: row['users_count'] for row in rows}
    return [{"name": role.value, "users_count": counts.get(role.value, 0)} for role in Role]


async def users_in_role(role: str) -> List[AdminUserSummary]:
    return await list_users(role=role, limit=1000)


async def assign_role(user_id: str, role: str) -> List[str]:
    async with get_db_connection() as conn:
        roles = await _user_roles(conn, user_id)
        if roles is None:
            raise NotFoundError("User not found")

        if role not in roles:
            await conn.execute(
                "INSERT INTO user_roles (user_id, role) VALUES ($1, $2) ON CONFLICT DO NOTHING",
                user_id, role
            )
            roles.append(role)
            logger.info(f"Role {role} assigned to user {user_id[:8]}")

    return sorted(roles)


async def remove_role(user_id: str, role: str) -> List[str]:
    async with get_db_connection() as conn:
        roles = await _user_roles(conn, user_id)
        if roles is None:
            raise NotFoundError("User not found")

        if role not in roles:
            raise ValidationError(f"User does not have role {role}")

        if len(roles) == 1:
            raise ValidationError("A user must keep at least one role")

        await conn.execute(
            "DELETE FROM user_roles WHERE user_id = $1 AND role = $2",
            user_id, role
        )
        roles.remove(role)
        logger.info(f"Role {role} removed from user {user_id[:8]}")

    return sorted(roles)

import logging
from typing import Optional, List, Tuple
from bookify.config import settings
from bookify.database import get_db_connection
from bookify.core.exceptions import (
    AuthenticationError, AuthorizationError, ValidationError, ConflictError, NotFoundError
)
from bookify.core.roles import Role
from bookify.core.security import (
    hash_password, verify_password, create_access_token, create_refresh_token,
    create_password_reset_token, create_email_confirmation_token,
    decode_refresh_token, decode_purpose_token,
    PASSWORD_RESET_PURPOSE, EMAIL_CONFIRMATION_PURPOSE
)
from bookify.models.user import RegisterData, ProfileUpdate, UserProfile
from bookify.services import email_service

logger = logging.getLogger(__name__)

USER_COLUMNS = """
    id, username, email, password_hash, name, address, profile_picture,
    loyalty_points, email_confirmed, is_deleted
"""


async def get_user_roles(conn, user_id: str) -> List[str]:
    rows = await conn.fetch(
        "SELECT role FROM user_roles WHERE user_id = $1 ORDER BY role",
        user_id
    )
    return [row['role'] for row in rows]


def _to_profile(row, roles: List[str]) -> UserProfile:
    data = dict(row)
    data.pop('password_hash', None)
    data.pop('is_deleted', None)
    return UserProfile(**data, roles=roles)


def issue_tokens(profile: UserProfile) -> Tuple[str, str]:
    """Return (access_token, refresh_token) for a user"""
    access_token = create_access_token(profile.id, profile.email, profile.username, profile.roles)
    refresh_token = create_refresh_token(profile.id)
    return access_token, refresh_token


async def get_profile(user_id: str) -> Optional[UserProfile]:
    async with get_db_connection(use_transaction=False) as conn:
        row = await conn.fetchrow(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = $1",
            user_id
        )
        if not row:
            return None
        roles = await get_user_roles(conn, user_id)
        return _to_profile(row, roles)


async def _ensure_unregistered(conn, email: str, username: str):
    existing = await conn.fetchrow(
        "SELECT email, username FROM users WHERE LOWER(email) = LOWER($1) OR LOWER(username) = LOWER($2)",
        email, username
    )
    if existing:
        if existing['email'].lower() == email.lower():
            raise ConflictError("Email is already registered")
        raise ConflictError("Username is already taken")


async def ensure_registration_available(email: str, username: str) -> None:
    """Raise ConflictError when the email or username is already in use"""
    async with get_db_connection(use_transaction=False) as conn:
        await _ensure_unregistered(conn, email, username)


async def register_user(data: RegisterData, profile_picture_url: str) -> UserProfile:
    """Create a user with the User role and an empty cart"""
    async with get_db_connection() as conn:
        await _ensure_unregistered(conn, data.email, data.username)

        email_confirmed = not settings.require_email_confirmation
        row = await conn.fetchrow(f"""
            INSERT INTO users (
                username, email, password_hash, name, address, profile_picture,
                loyalty_points, email_confirmed, is_deleted, created_on, updated_on
            ) VALUES ($1, $2, $3, $4, $5, $6, 0, $7, false, NOW(), NOW())
            RETURNING {USER_COLUMNS}
        """,
            data.username,
            data.email,
            hash_password(data.password),
            data.name,
            data.address,
            profile_picture_url,
            email_confirmed
        )
        user_id = str(row['id'])

        await conn.execute(
            "INSERT INTO user_roles (user_id, role) VALUES ($1, $2)",
            user_id, Role.USER.value
        )
        await conn.execute(
            "INSERT INTO carts (user_id, created_on) VALUES ($1, NOW())",
            user_id
        )

    logger.info(f"Registered user {user_id} ({data.username})")
    profile = _to_profile(row, [Role.USER.value])

    if not email_confirmed:
        token = create_email_confirmation_token(profile.id, profile.email)
        await email_service.send_confirmation_email(profile.email, profile.username, profile.id, token)

    return profile


async def authenticate(email: str, password: str) -> UserProfile:
    """Check credentials, returning the user profile"""
    async with get_db_connection(use_transaction=False) as conn:
        row = await conn.fetchrow(
            f"SELECT {USER_COLUMNS} FROM users WHERE LOWER(email) = LOWER($1)",
            email
        )
        if not row or not verify_password(password, row['password_hash']):
            raise AuthenticationError("Invalid email or password")

        if row['is_deleted']:
            raise AuthorizationError("This account has been banned")

        if settings.require_email_confirmation and not row['email_confirmed']:
            raise AuthenticationError(
                "Email not confirmed. Check your inbox for the confirmation link.",
                {"email_confirmation_required": True}
            )

        roles = await get_user_roles(conn, str(row['id']))

    logger.info(f"User {str(row['id'])[:8]} logged in")
    return _to_profile(row, roles)


async def refresh(refresh_token: Optional[str]) -> UserProfile:
    """Resolve a refresh token into a fresh user profile"""
    payload = decode_refresh_token(refresh_token) if refresh_token else None
    if not payload:
        raise AuthenticationError("Invalid or expired refresh token")

    async with get_db_connection(use_transaction=False) as conn:
        row = await conn.fetchrow(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = $1",
            payload['sub']
        )
        if not row or row['is_deleted']:
            raise AuthenticationError("Invalid or expired refresh token")
        roles = await get_user_roles(conn, payload['sub'])

    return _to_profile(row, roles)


async def change_password(user_id: str, current_password: str, new_password: str) -> None:
    async with get_db_connection() as conn:
        row = await conn.fetchrow(
            "SELECT password_hash FROM users WHERE id = $1",
            user_id
        )
        if not row:
            raise NotFoundError("User not found")
        if not verify_password(current_password, row['password_hash']):
            raise ValidationError("Current password is incorrect")

        await conn.execute(
            "UPDATE users SET password_hash = $1, updated_on = NOW() WHERE id = $2",
            hash_password(new_password), user_id
        )

    logger.info(f"Password changed for user {user_id[:8]}")


async def request_password_reset(email: str) -> bool:
    """Send a reset link when the account exists. Returns whether an email was sent."""
    async with get_db_connection(use_transaction=False) as conn:
        row = await conn.fetchrow(
            "SELECT id, username, email, is_deleted FROM users WHERE LOWER(email) = LOWER($1)",
            email
        )

    if not row or row['is_deleted']:
        logger.info("Password reset requested for unknown or banned account")
        return False

    token = create_password_reset_token(str(row['id']), row['email'])
    return await email_service.send_password_reset_email(row['email'], row['username'], token)


async def reset_password(token: str, new_password: str) -> None:
    payload = decode_purpose_token(token, PASSWORD_RESET_PURPOSE)
    if not payload:
        raise ValidationError("Invalid or expired reset token")

    async with get_db_connection() as conn:
        row = await conn.fetchrow(
            "SELECT id, email FROM users WHERE id = $1",
            payload['sub']
        )
        if not row or row['email'].lower() != (payload.get('email') or '').lower():
            raise ValidationError("Invalid or expired reset token")

        await conn.execute(
            "UPDATE users SET password_hash = $1, updated_on = NOW() WHERE id = $2",
            hash_password(new_password), payload['sub']
        )

    logger.info(f"Password reset for user {payload['sub'][:8]}")


async def confirm_email(user_id: str, token: str) -> UserProfile:
    payload = decode_purpose_token(token, EMAIL_CONFIRMATION_PURPOSE)
    if not payload or payload['sub'] != str(user_id):
        raise ValidationError("Invalid or expired confirmation token")

    async with get_db_connection() as conn:
        row = await conn.fetchrow(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = $1",
            user_id
        )
        if not row or row['email'].lower() != (payload.get('email') or '').lower():
            raise ValidationError("Invalid or expired confirmation token")
        if row['email_confirmed']:
            raise ValidationError("Email is already confirmed")

        row = await conn.fetchrow(f"""
            UPDATE users SET email_confirmed = true, updated_on = NOW()
            WHERE id = $1
            RETURNING {USER_COLUMNS}
        """, user_id)
        roles = await get_user_roles(conn, user_id)

    logger.info(f"Email confirmed for user {str(user_id)[:8]}")
    return _to_profile(row, roles)


async def resend_confirmation(email: str) -> bool:
    async with get_db_connection(use_transaction=False) as conn:
        row = await conn.fetchrow(
            "SELECT id, username, email, email_confirmed FROM users WHERE LOWER(email) = LOWER($1)",
            email
        )

    if not row:
        return False
    if row['email_confirmed']:
        raise ValidationError("Email is already confirmed")

    token = create_email_confirmation_token(str(row['id']), row['email'])
    return await email_service.send_confirmation_email(row['email'], row['username'], str(row['id']), token)


async def update_profile(user_id: str, data: ProfileUpdate, profile_picture_url: Optional[str] = None) -> UserProfile:
    """Update the caller's own profile; blank values are ignored"""
    async with get_db_connection() as conn:
        update_fields = []
        params = []
        param_idx = 1

        if data.username:
            taken = await conn.fetchrow(
                "SELECT id FROM users WHERE LOWER(username) = LOWER($1) AND id <> $2",
                data.username, user_id
            )
            if taken:
                raise ConflictError("Username is already taken")

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            update_fields.append(f"{field} = ${param_idx}")
            params.append(value)
            param_idx += 1

        if profile_picture_url:
            update_fields.append(f"profile_picture = ${param_idx}")
            params.append(profile_picture_url)
            param_idx += 1

        if update_fields:
            update_fields.append("updated_on = NOW()")
            params.append(user_id)
            row = await conn.fetchrow(f"""
                UPDATE users SET {', '.join(update_fields)}
                WHERE id = ${param_idx}
                RETURNING {USER_COLUMNS}
            """, *params)
        else:
            row = await conn.fetchrow(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = $1",
                user_id
            )

        if not row:
            raise NotFoundError("User not found")
        roles = await get_user_roles(conn, user_id)

    return _to_profile(row, roles)

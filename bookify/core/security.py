import jwt
import uuid
import bcrypt
import logging
from datetime import datetime, timedelta, timezone
from fastapi import Request, Response
from bookify.config import settings
from typing import Optional, List

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
REFRESH_COOKIE_NAME = "refreshToken"
PASSWORD_RESET_PURPOSE = "password-reset"
EMAIL_CONFIRMATION_PURPOSE = "email-confirmation"


def hash_password(password: str) -> str:
    """Hash a password with bcrypt"""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash or password over the bcrypt limit
        return False


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(user_id: str, email: str, username: str, roles: List[str]) -> str:
    """Create a short lived JWT carrying the user's roles"""
    payload = {
        "sub": str(user_id),
        "email": email,
        "name": username,
        "roles": list(roles),
        "jti": str(uuid.uuid4()),
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": _now(),
        "exp": _now() + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=ALGORITHM)


def create_refresh_token(user_id: str) -> str:
    payload = {
        "sub": str(user_id),
        "jti": str(uuid.uuid4()),
        "type": "refresh",
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": _now(),
        "exp": _now() + timedelta(days=settings.refresh_token_expire_days),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=ALGORITHM)


def create_purpose_token(user_id: str, email: str, purpose: str, expires_in: timedelta) -> str:
    """Create a single-purpose token (password reset, email confirmation)"""
    payload = {
        "sub": str(user_id),
        "email": email,
        "purpose": purpose,
        "iss": settings.jwt_issuer,
        "aud": purpose,
        "iat": _now(),
        "exp": _now() + expires_in,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=ALGORITHM)


def create_password_reset_token(user_id: str, email: str) -> str:
    return create_purpose_token(user_id, email, PASSWORD_RESET_PURPOSE, timedelta(hours=1))


def create_email_confirmation_token(user_id: str, email: str) -> str:
    return create_purpose_token(user_id, email, EMAIL_CONFIRMATION_PURPOSE, timedelta(days=7))


def decode_access_token(token: str) -> Optional[dict]:
    """Decode an access token, returning None when invalid or expired"""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[ALGORITHM],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Access token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid access token: {e}")
        return None

    if payload.get("type") == "refresh":
        return None
    return payload


def decode_refresh_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[ALGORITHM],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except jwt.InvalidTokenError:
        return None

    if payload.get("type") != "refresh":
        return None
    return payload


def decode_purpose_token(token: str, purpose: str) -> Optional[dict]:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[ALGORITHM],
            audience=purpose,
            issuer=settings.jwt_issuer,
        )
    except jwt.InvalidTokenError:
        return None

    if payload.get("purpose") != purpose:
        return None
    return payload


def get_bearer_token(request: Request) -> Optional[str]:
    """Extract the bearer token from the Authorization header"""
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def set_refresh_cookie(response: Response, refresh_token: str):
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=refresh_token,
        httponly=True,
        secure=not settings.is_development,
        samesite="none" if settings.is_production else "lax",
        max_age=settings.refresh_cookie_max_age_days * 24 * 60 * 60,
        path="/"
    )


def clear_refresh_cookie(response: Response):
    response.delete_cookie(REFRESH_COOKIE_NAME, path="/")

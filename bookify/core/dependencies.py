import logging
from typing import Callable, Iterable, List
from fastapi import Depends, Request
from bookify.core.middleware import get_session_context
from bookify.core.exceptions import AuthenticationError, AuthorizationError, ValidationError
from bookify.core.roles import (
    Role, normalize_role, is_admin, can_add_to_cart, can_manage_events, can_manage_users
)

logger = logging.getLogger(__name__)


class AuthenticatedUser:
    """
    The signed-in caller. Constructing it for an anonymous request raises
    AuthenticationError, so any route depending on it answers 401.
    """

    def __init__(self, request: Request):
        session = get_session_context(request)
        if not session.is_valid:
            raise AuthenticationError()

        self.user_id: str = session.user_id
        self.email = session.email
        self.username = session.username
        self.roles: List[str] = session.roles

    @property
    def is_admin(self) -> bool:
        return is_admin(self.roles)


def get_authenticated_user(request: Request) -> AuthenticatedUser:
    return AuthenticatedUser(request)


def canonical_role(role: str) -> str:
    """Role name from a request, canonically spelled; 400 when unknown"""
    try:
        return normalize_role(role)
    except ValueError as e:
        raise ValidationError(str(e))


def require_permission(permitted: Callable[[Iterable[str]], bool], needs: str):
    """Dependency factory: 403 unless permitted(caller roles) holds"""

    def check(user: AuthenticatedUser = Depends(get_authenticated_user)) -> AuthenticatedUser:
        if permitted(user.roles):
            return user
        logger.info(f"Denied {user.user_id[:8]} (roles {user.roles}, needs {needs})")
        raise AuthorizationError(f"Requires role: {needs}")

    return check


require_admin = require_permission(can_manage_users, Role.ADMIN.value)
require_organizer = require_permission(can_manage_events, f"{Role.ORGANIZER.value} or {Role.ADMIN.value}")
require_customer = require_permission(can_add_to_cart, Role.USER.value)

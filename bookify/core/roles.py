from enum import Enum
from typing import Iterable


class Role(str, Enum):
    USER = "User"
    ORGANIZER = "Organizer"
    ADMIN = "Admin"


def normalize_role(role: str) -> str:
    """Map a role name of any case to its canonical spelling, or raise ValueError"""
    for known in Role:
        if known.value.lower() == (role or "").strip().lower():
            return known.value
    raise ValueError(f"Unknown role: {role}")


def has_role(roles: Iterable[str], role: str) -> bool:
    wanted = role.lower()
    return any((r or "").lower() == wanted for r in roles)


def has_any_role(roles: Iterable[str], *wanted: str) -> bool:
    roles = list(roles)
    return any(has_role(roles, r) for r in wanted)


def is_user(roles: Iterable[str]) -> bool:
    return has_role(roles, Role.USER.value)


def is_admin(roles: Iterable[str]) -> bool:
    return has_role(roles, Role.ADMIN.value)


def can_add_to_cart(roles: Iterable[str]) -> bool:
    return is_user(roles)


def can_manage_events(roles: Iterable[str]) -> bool:
    return has_any_role(roles, Role.ORGANIZER.value, Role.ADMIN.value)


def can_manage_users(roles: Iterable[str]) -> bool:
    return is_admin(roles)

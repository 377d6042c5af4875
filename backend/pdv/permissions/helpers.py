# Overview: Utility functions for permission lookups and enforcement.

from __future__ import annotations

from .definitions import PERMISSION_DEFINITIONS, DEFAULT_ROLE_PERMISSIONS, ROLES
from ..errors import ForbiddenError


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_permissions_by_category(category):
    """Get all permissions in a category."""
    return [perm for perm in PERMISSION_DEFINITIONS if perm[3] == category]


def normalize_role(role) -> str | None:
    """Upper-case a role name; unknown roles map to None."""
    if role is None:
        return None
    value = str(role).strip().upper()
    return value if value in ROLES else None


def get_role_permissions(role) -> frozenset:
    return DEFAULT_ROLE_PERMISSIONS.get(normalize_role(role), frozenset())


def has_permission(identity, permission_code: str) -> bool:
    if identity is None:
        return False
    return permission_code in get_role_permissions(identity.role)


def require_permission(identity, permission_code: str) -> None:
    """
    Raise ForbiddenError unless the identity's role grants the permission.

    Used by services so the core enforces roles even when called outside HTTP.
    """
    if not has_permission(identity, permission_code):
        raise ForbiddenError(
            "Permission denied",
            details={
                "required_permission": permission_code,
                "role": getattr(identity, "role", None),
            },
        )

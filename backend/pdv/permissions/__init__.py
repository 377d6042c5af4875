# Overview: Permission system package.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    DEFAULT_ROLE_PERMISSIONS,
    ROLES,
    ROLE_ADMIN,
    ROLE_CASHIER,
    ROLE_STOCK_KEEPER,
    ROLE_SUPPORT,
)
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_role_permissions,
    has_permission,
    normalize_role,
    require_permission,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "ROLES",
    "ROLE_ADMIN",
    "ROLE_CASHIER",
    "ROLE_STOCK_KEEPER",
    "ROLE_SUPPORT",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_role_permissions",
    "has_permission",
    "normalize_role",
    "require_permission",
]

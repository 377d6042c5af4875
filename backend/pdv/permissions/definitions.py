# Overview: All permission definitions and the fixed role -> permission mapping.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


ROLE_ADMIN = "ADMIN"
ROLE_CASHIER = "CAIXA"
ROLE_STOCK_KEEPER = "ESTOQUISTA"
ROLE_SUPPORT = "SUPPORT"

ROLES = (ROLE_ADMIN, ROLE_CASHIER, ROLE_STOCK_KEEPER, ROLE_SUPPORT)


PERMISSION_DEFINITIONS = [
    (
        "VIEW_CATALOG",
        "View Catalog",
        "List active products with price and on-hand quantity",
        PermissionCategory.CATALOG,
    ),
    (
        "MANAGE_CATALOG",
        "Manage Catalog",
        "Create products and edit price, name, metadata and active flag",
        PermissionCategory.CATALOG,
    ),
    (
        "MANAGE_STOCK",
        "Manage Stock",
        "Record IN and ADJUST stock movements and read the stock ledger",
        PermissionCategory.INVENTORY,
    ),
    (
        "CREATE_SALE",
        "Create Sale",
        "Check out a cart against on-hand stock",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_REPORTS",
        "View Reports",
        "Sales summaries and every seller's sales",
        PermissionCategory.REPORTS,
    ),
]


# Roles are assigned by the identity provider; the mapping itself is fixed.
DEFAULT_ROLE_PERMISSIONS = {
    ROLE_ADMIN: frozenset(perm[0] for perm in PERMISSION_DEFINITIONS),
    ROLE_CASHIER: frozenset({"VIEW_CATALOG", "CREATE_SALE"}),
    ROLE_STOCK_KEEPER: frozenset({"VIEW_CATALOG", "MANAGE_STOCK"}),
    ROLE_SUPPORT: frozenset({"VIEW_CATALOG"}),
}

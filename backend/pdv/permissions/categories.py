# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    CATALOG = "CATALOG"
    INVENTORY = "INVENTORY"
    SALES = "SALES"
    REPORTS = "REPORTS"

    # Display order
    ALL = (CATALOG, INVENTORY, SALES, REPORTS)

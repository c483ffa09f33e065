# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    CATALOG = "CATALOG"
    ORDERS = "ORDERS"
    MARKETS = "MARKETS"
    USERS = "USERS"
    REPORTS = "REPORTS"


# Display order
CATEGORY_ORDER = (
    PermissionCategory.CATALOG,
    PermissionCategory.ORDERS,
    PermissionCategory.MARKETS,
    PermissionCategory.USERS,
    PermissionCategory.REPORTS,
)

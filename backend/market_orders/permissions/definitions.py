# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- CATALOG --

CATALOG_PERMISSIONS = [
    (
        "VIEW_CATALOG",
        "View Catalog",
        "Browse categories and items",
        PermissionCategory.CATALOG,
    ),
    (
        "MANAGE_CATALOG",
        "Manage Catalog",
        "Create, edit, archive and delete categories and items",
        PermissionCategory.CATALOG,
    ),
]


# -- ORDERS --

ORDER_PERMISSIONS = [
    (
        "CREATE_ORDER",
        "Create Order",
        "Check out a basket into an order",
        PermissionCategory.ORDERS,
    ),
    (
        "VIEW_ORDERS",
        "View Orders",
        "View order history (market owners see their own market only)",
        PermissionCategory.ORDERS,
    ),
    (
        "UPDATE_ORDER_STATUS",
        "Update Order Status",
        "Confirm, deliver or cancel orders",
        PermissionCategory.ORDERS,
    ),
]


# -- MARKETS --

MARKET_PERMISSIONS = [
    (
        "VIEW_MARKETS",
        "View Markets",
        "View market accounts and balances",
        PermissionCategory.MARKETS,
    ),
    (
        "CREATE_MARKET",
        "Create Market",
        "Register a new market account",
        PermissionCategory.MARKETS,
    ),
    (
        "MANAGE_MARKETS",
        "Manage Markets",
        "Edit and delete market accounts",
        PermissionCategory.MARKETS,
    ),
    (
        "ADJUST_BALANCE",
        "Adjust Balance",
        "Record payments and manual adjustments on a market balance",
        PermissionCategory.MARKETS,
    ),
    (
        "VIEW_LEDGER",
        "View Ledger",
        "View a market's ledger entries",
        PermissionCategory.MARKETS,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "MANAGE_USERS",
        "Manage Users",
        "Create and delete administrators and employees, reset PINs",
        PermissionCategory.USERS,
    ),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (
        "VIEW_REPORTS",
        "View Reports",
        "View sales reports and top-selling items",
        PermissionCategory.REPORTS,
    ),
]


PERMISSION_DEFINITIONS = (
    CATALOG_PERMISSIONS
    + ORDER_PERMISSIONS
    + MARKET_PERMISSIONS
    + USER_PERMISSIONS
    + REPORT_PERMISSIONS
)

# Overview: Permission system package.
# Re-exports all public APIs for imports from market_orders.permissions.

from .categories import CATEGORY_ORDER, PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    CATALOG_PERMISSIONS,
    ORDER_PERMISSIONS,
    MARKET_PERMISSIONS,
    USER_PERMISSIONS,
    REPORT_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS, STAFF_ROLES, Role
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    get_role_permissions,
    validate_permission_code,
)

__all__ = [
    "PermissionCategory",
    "CATEGORY_ORDER",
    "PERMISSION_DEFINITIONS",
    "CATALOG_PERMISSIONS",
    "ORDER_PERMISSIONS",
    "MARKET_PERMISSIONS",
    "USER_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "STAFF_ROLES",
    "Role",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "get_role_permissions",
    "validate_permission_code",
]

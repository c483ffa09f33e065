# Overview: Role enumeration and the static role -> permission table.

from __future__ import annotations

from enum import Enum

from .definitions import PERMISSION_DEFINITIONS


class Role(str, Enum):
    """
    Closed set of principal roles.

    Stored and serialized as the uppercase literal. Legacy data used
    lowercase literals ("admin", "employee"); normalize() is the only
    place those are accepted.
    """
    ADMIN = "ADMIN"
    EMPLOYEE = "EMPLOYEE"
    MARKET_OWNER = "MARKET_OWNER"

    @classmethod
    def normalize(cls, value) -> "Role":
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Invalid role: {value!r}")
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(f"Invalid role: {value!r}")


# Roles that are stored as User rows (PIN identities)
STAFF_ROLES = (Role.ADMIN, Role.EMPLOYEE)


DEFAULT_ROLE_PERMISSIONS = {
    Role.ADMIN: frozenset(perm[0] for perm in PERMISSION_DEFINITIONS),
    Role.EMPLOYEE: frozenset({
        "VIEW_CATALOG",
        "CREATE_ORDER",
        "VIEW_ORDERS",
        "VIEW_MARKETS",
        "CREATE_MARKET",
    }),
    Role.MARKET_OWNER: frozenset({
        "VIEW_CATALOG",
        "CREATE_ORDER",
        "VIEW_ORDERS",
    }),
}

# Overview: Service-layer operations for session; encapsulates token signing and validation.

"""
Signed Session Tokens

WHY: Every request carries a signed, time-limited token naming the
principal, its role and (for market owners) its market. The token is
signed with the server's SECRET_KEY; the secret never leaves the server.

SECURITY FEATURES:
- itsdangerous URL-safe timed signature (HMAC) over {principalId, role, marketId}
- Absolute expiry (SESSION_MAX_AGE_SECONDS, 7 days by default)
- Liveness check on every validation: tokens naming a deleted user or
  market are rejected, not trusted
- Role normalized once here and in the credential verifier; downstream
  code only ever sees Role members
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..extensions import db
from ..models import Market, User
from ..permissions import Role, get_role_permissions


SESSION_SALT = "market-orders-session"


@dataclass(frozen=True)
class AuthContext:
    """
    The authenticated principal for one request.

    Built once per request by the authorization gate and passed explicitly
    to every service call that needs to know who is acting.
    """
    principal_id: str
    role: Role
    market_id: str | None = None
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_market_owner(self) -> bool:
        return self.role is Role.MARKET_OWNER

    @property
    def permissions(self) -> frozenset:
        return get_role_permissions(self.role)

    def to_dict(self) -> dict:
        return {
            "id": self.principal_id,
            "name": self.name,
            "role": self.role.value,
            "marketId": self.market_id,
        }


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=SESSION_SALT)


def issue_session(context: AuthContext) -> str:
    """Sign {principalId, role, marketId?} into an opaque token string."""
    payload = {"principalId": context.principal_id, "role": context.role.value}
    if context.market_id is not None:
        payload["marketId"] = context.market_id
    return _serializer().dumps(payload)


def validate_session(token: str | None) -> AuthContext | None:
    """
    Validate token signature and age, then confirm the principal still exists.

    Returns None if:
    - Token is missing, malformed, tampered with or older than the max age
    - Role is not a known role
    - The referenced user (ADMIN/EMPLOYEE) or market (MARKET_OWNER) is gone
    - A user's stored role no longer matches the token
    """
    if not token:
        return None

    try:
        payload = _serializer().loads(token, max_age=current_app.config["SESSION_MAX_AGE_SECONDS"])
    except SignatureExpired:
        return None
    except BadSignature:
        return None

    if not isinstance(payload, dict):
        return None

    principal_id = payload.get("principalId")
    try:
        role = Role.normalize(payload.get("role"))
    except ValueError:
        return None
    if not isinstance(principal_id, str) or not principal_id:
        return None

    if role is Role.MARKET_OWNER:
        market_id = payload.get("marketId")
        if not market_id:
            return None
        market = db.session.get(Market, market_id)
        if market is None:
            return None
        return AuthContext(
            principal_id=market.id,
            role=Role.MARKET_OWNER,
            market_id=market.id,
            name=market.name,
        )

    user = db.session.get(User, principal_id)
    if user is None:
        return None

    # Stored role wins; a demoted admin's old token must not keep admin rights
    try:
        stored_role = Role.normalize(user.role)
    except ValueError:
        return None
    if stored_role is not role:
        return None

    return AuthContext(principal_id=user.id, role=stored_role, name=user.name)

# Overview: Service-layer operations for permission; role checks and security event logging.

"""
Permission Checking and Security Event Logging

WHY: Enforce role-based access control and create an audit trail.

DESIGN PRINCIPLES:
- Fail closed: deny by default, permissions come only from the static role table
- Log denials only: permission grants are not logged
- Authentication and authorization failures are logged with distinct
  event types even though the HTTP layer may present them alike
"""

from __future__ import annotations

from flask import current_app

from ..errors import AuthorizationFailure
from ..extensions import db
from ..models import SecurityEvent
from ..permissions import get_role_permissions
from ..time_utils import utcnow


def log_security_event(
    event_type: str,
    success: bool,
    principal_id: str | None = None,
    role: str | None = None,
    market_id: str | None = None,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - LOGIN_FAILED
    - LOGIN_SUCCEEDED
    - AUTHENTICATION_REQUIRED
    - SESSION_REJECTED
    - PERMISSION_DENIED

    Commits immediately; callers must not have pending business writes.
    """
    event = SecurityEvent(
        principal_id=principal_id,
        role=role,
        market_id=market_id,
        event_type=event_type,
        resource=resource[:128] if resource else resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent[:512] if user_agent else user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    log = current_app.logger.info if success else current_app.logger.warning
    log("security event %s principal=%s resource=%s reason=%s", event_type, principal_id, resource, reason)

    return event


def has_permission(context, permission_code: str) -> bool:
    return permission_code in get_role_permissions(context.role)


def require_permission(
    context,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require permission or raise AuthorizationFailure.

    Logs denial to security_events.
    """
    if has_permission(context, permission_code):
        return

    log_security_event(
        event_type="PERMISSION_DENIED",
        success=False,
        principal_id=context.principal_id,
        role=context.role.value,
        market_id=context.market_id,
        resource=resource,
        action=permission_code,
        reason=f"Role {context.role.value} lacks {permission_code}",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    raise AuthorizationFailure(
        "Permission denied",
        details={"required_permission": permission_code},
    )

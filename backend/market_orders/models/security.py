from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class SecurityEvent(db.Model):
    """
    Security event audit log.

    WHY: Track failed logins, rejected sessions and permission denials.
    Authentication and authorization failures look identical to an
    unauthenticated caller but are recorded here with distinct event types.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_principal_type", "principal_id", "event_type"),
        db.Index("ix_security_events_occurred", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Nullable for anonymous / pre-auth events
    principal_id = db.Column(db.String(36), nullable=True, index=True)
    role = db.Column(db.String(16), nullable=True)
    market_id = db.Column(db.String(36), nullable=True)

    # LOGIN_FAILED, LOGIN_SUCCEEDED, AUTHENTICATION_REQUIRED, SESSION_REJECTED, PERMISSION_DENIED
    event_type = db.Column(db.String(64), nullable=False, index=True)
    resource = db.Column(db.String(128), nullable=True)  # e.g., "/api/orders"
    action = db.Column(db.String(64), nullable=True)     # e.g., "POST", "CREATE_ORDER"

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "principalId": self.principal_id,
            "role": self.role,
            "marketId": self.market_id,
            "eventType": self.event_type,
            "resource": self.resource,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "ipAddress": self.ip_address,
            "occurredAt": to_utc_z(self.occurred_at),
        }

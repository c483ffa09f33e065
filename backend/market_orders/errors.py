# Overview: Error taxonomy shared by services and routes.

"""
Every failure the ordering backend reports deliberately is an OrderingError.

Routes translate these into the stable response shape
{"error": <message>, "details"?: {...}} using the class-level status code.
Anything else reaching a route is logged and surfaced as a generic 500.
"""

from __future__ import annotations


class OrderingError(Exception):
    """Base class for reportable failures."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class AuthenticationFailure(OrderingError):
    """Bad or missing credential / session."""
    status_code = 401


class AuthorizationFailure(OrderingError):
    """Valid session, insufficient role."""
    status_code = 403


class ValidationFailure(OrderingError):
    """Malformed or semantically invalid request."""
    status_code = 400


class NotFound(OrderingError):
    status_code = 404


class ConflictFailure(OrderingError):
    """Business rule conflict (duplicate PIN/phone, blocked delete, bad status transition)."""
    status_code = 409


class IntegrityFailure(OrderingError):
    """Transaction aborted because a downstream constraint failed."""
    status_code = 409


def internal_error_body(exc: Exception, expose_details: bool = False) -> dict:
    """Generic 500 body; exception text only in development mode."""
    body = {"error": "Internal server error"}
    if expose_details:
        body["details"] = {"message": str(exc)}
    return body

# Overview: Authorization gate decorators for API routes.

from functools import wraps
from flask import current_app, g, jsonify, request

from .errors import AuthorizationFailure
from .permissions import validate_permission_code
from .services import permission_service, session_service


ACCESS_DENIED = {"error": "Access denied"}


def get_session_token() -> str | None:
    """Session token from the http-only cookie, or a Bearer header as fallback."""
    token = request.cookies.get(current_app.config["SESSION_COOKIE_NAME"])
    if token:
        return token
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


def require_auth(f):
    """
    Require a valid session and build the request's AuthContext.

    Sets g.auth_context once per request; routes pass it explicitly to
    services.

    SECURITY: Returns 401 "Access denied" if:
    - No session cookie / Authorization header
    - Invalid, tampered or expired token
    - Referenced user or market no longer exists
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_session_token()

        if not token:
            permission_service.log_security_event(
                event_type="AUTHENTICATION_REQUIRED",
                success=False,
                resource=request.path,
                action=request.method,
                reason="No session token",
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
            return jsonify(ACCESS_DENIED), 401

        context = session_service.validate_session(token)

        if not context:
            permission_service.log_security_event(
                event_type="SESSION_REJECTED",
                success=False,
                resource=request.path,
                action=request.method,
                reason="Invalid, expired or stale session token",
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
            return jsonify(ACCESS_DENIED), 401

        g.auth_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a permission of the authenticated principal's role (403 otherwise)."""
    if not validate_permission_code(permission_code):
        raise ValueError(f"Unknown permission code: {permission_code}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            context = getattr(g, "auth_context", None)
            if context is None:
                return jsonify(ACCESS_DENIED), 401

            try:
                permission_service.require_permission(
                    context,
                    permission_code,
                    resource=request.path,
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                )
            except AuthorizationFailure as e:
                return jsonify(e.to_dict()), e.status_code

            return f(*args, **kwargs)

        return decorated_function
    return decorator

# Overview: Flask API routes for authentication; login, logout and the current principal.

# backend/market_orders/routes/auth.py
"""
Authentication routes.

SECURITY:
- One credential field: a 4-digit staff PIN or a 10-digit market phone number
- The session token only travels in an http-only, same-site=lax cookie
- Failed logins are recorded as LOGIN_FAILED security events
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import AuthenticationFailure, OrderingError
from ..services import auth_service, permission_service, session_service
from . import error_response, json_body, server_error

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _credential_from(payload: dict):
    for key in ("credential", "pin", "phoneNumber"):
        if payload.get(key) is not None:
            return payload[key]
    return None


def _clear_session_cookie(response):
    response.delete_cookie(
        current_app.config["SESSION_COOKIE_NAME"],
        path="/",
        httponly=True,
        samesite="Lax",
        secure=current_app.config["SESSION_COOKIE_SECURE"],
    )
    return response


@auth_bp.post("/login")
def login():
    """
    Exchange a PIN or phone number for a session cookie.

    Request body:
    {
        "credential": "1234"      (or "pin" / "phoneNumber")
    }

    Returns:
    - 200 {"user": {...}} with the session cookie set
    - 400 malformed credential
    - 401 "Invalid PIN" / "Invalid phone number"
    """
    try:
        payload = json_body()
        context = auth_service.authenticate(_credential_from(payload))
    except AuthenticationFailure as e:
        permission_service.log_security_event(
            event_type="LOGIN_FAILED",
            success=False,
            reason=e.message,
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        return error_response(e)
    except OrderingError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, "log in")

    permission_service.log_security_event(
        event_type="LOGIN_SUCCEEDED",
        success=True,
        principal_id=context.principal_id,
        role=context.role.value,
        market_id=context.market_id,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )

    response = jsonify({"user": context.to_dict()})
    response.set_cookie(
        current_app.config["SESSION_COOKIE_NAME"],
        session_service.issue_session(context),
        max_age=current_app.config["SESSION_MAX_AGE_SECONDS"],
        path="/",
        httponly=True,
        samesite="Lax",
        secure=current_app.config["SESSION_COOKIE_SECURE"],
    )
    return response, 200


@auth_bp.get("/me")
@require_auth
def me():
    """Current principal with its effective permissions."""
    context = g.auth_context
    return jsonify({
        "user": context.to_dict(),
        "permissions": sorted(context.permissions),
    }), 200


@auth_bp.post("/logout")
@auth_bp.delete("/login")
def logout():
    """
    Clear the session cookie.

    Tokens are stateless; logging out removes the cookie from this client.
    """
    return _clear_session_cookie(jsonify({"success": True})), 200

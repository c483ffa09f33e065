# Overview: Flask API routes for staff user administration.

# backend/market_orders/routes/users.py
"""
Staff user management (administrators only).

SECURITY: All routes require MANAGE_USERS. PIN hashes never leave the server.
"""
from flask import Blueprint, g, jsonify

from ..decorators import require_auth, require_permission
from ..errors import OrderingError
from ..permissions import (
    CATEGORY_ORDER,
    Role,
    get_permission_definition,
    get_permissions_by_category,
    get_role_permissions,
)
from ..services import auth_service
from . import error_response, json_body, server_error

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_permission("MANAGE_USERS")
def list_users():
    users = auth_service.list_users()
    return jsonify({"users": [u.to_dict() for u in users]}), 200


@users_bp.get("/permissions")
@require_auth
@require_permission("MANAGE_USERS")
def list_permissions():
    """Permission catalog grouped by category, with the roles that hold each code."""
    categories = {}
    for category in CATEGORY_ORDER:
        codes = [perm[0] for perm in get_permissions_by_category(category)]
        categories[category] = [
            dict(
                get_permission_definition(code),
                category=category,
                roles=[role.value for role in Role if code in get_role_permissions(role)],
            )
            for code in codes
        ]
    return jsonify({"categories": categories}), 200


@users_bp.post("")
@require_auth
@require_permission("MANAGE_USERS")
def create_user():
    """
    Create an administrator or employee.

    Request body:
    {
        "name": "Kasiyer 1",
        "role": "EMPLOYEE",     (any casing)
        "pin": "5678"
    }

    Returns 409 if the PIN is already used by another user.
    """
    try:
        payload = json_body()
        user = auth_service.create_user(
            name=payload.get("name"),
            role=payload.get("role"),
            pin=payload.get("pin"),
        )
        return jsonify({"user": user.to_dict()}), 201
    except OrderingError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, "create user")


@users_bp.put("/<user_id>/pin")
@require_auth
@require_permission("MANAGE_USERS")
def reset_pin(user_id: str):
    try:
        payload = json_body()
        user = auth_service.set_user_pin(user_id, payload.get("pin"))
        return jsonify({"user": user.to_dict()}), 200
    except OrderingError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, "reset user PIN")


@users_bp.delete("/<user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def delete_user(user_id: str):
    """Users with orders are kept for attribution (409)."""
    try:
        auth_service.delete_user(user_id, acting=g.auth_context)
        return jsonify({"success": True}), 200
    except OrderingError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, "delete user")

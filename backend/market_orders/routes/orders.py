# Overview: Flask API routes for checkout and order history.

# backend/market_orders/routes/orders.py
"""
Order routes.

SECURITY:
- Checkout requires CREATE_ORDER (every role)
- History requires VIEW_ORDERS; market owners only ever see their own market
- Status changes require UPDATE_ORDER_STATUS (administrators)

RETRIES: a client that may resend a checkout passes an Idempotency-Key header
(or "idempotencyKey" in the body). A replay returns the original order with
200 instead of 201 and does not charge the market again.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import OrderingError
from ..services import order_service
from ..validation import parse_positive_int
from . import error_response, json_body, server_error

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
@require_permission("VIEW_ORDERS")
def list_orders():
    """
    Query params:
    - marketId: str (optional, ignored for market owners)
    - status: PENDING | CONFIRMED | DELIVERED | CANCELLED (optional)
    - limit: int (optional, max 500)
    """
    try:
        limit = request.args.get("limit")
        orders = order_service.list_orders(
            g.auth_context,
            market_id=request.args.get("marketId"),
            status=request.args.get("status"),
            limit=parse_positive_int(limit, "limit") if limit is not None else None,
        )
        return jsonify({"orders": [o.to_dict() for o in orders]}), 200
    except OrderingError as e:
        return error_response(e)


@orders_bp.get("/<order_id>")
@require_auth
@require_permission("VIEW_ORDERS")
def get_order(order_id: str):
    try:
        order = order_service.get_order(g.auth_context, order_id)
        return jsonify({"order": order.to_dict()}), 200
    except OrderingError as e:
        return error_response(e)


@orders_bp.post("")
@require_auth
@require_permission("CREATE_ORDER")
def checkout():
    """
    Check out a basket.

    Request body:
    {
        "items": [{"itemId": "...", "quantity": 2, "unitPrice": "12.50"}],
        "marketId": "...",      (required for employees, implied for market owners)
        "note": "kapida odeme"
    }

    Returns:
    - 201 {"order": {...}} created
    - 200 {"order": {...}} idempotent replay
    - 400 invalid basket, 403 foreign market, 404 unknown item/market
    """
    try:
        payload = json_body()
        result = order_service.checkout(
            g.auth_context,
            payload.get("items"),
            market_id=payload.get("marketId"),
            note=payload.get("note"),
            idempotency_key=request.headers.get("Idempotency-Key") or payload.get("idempotencyKey"),
        )
    except OrderingError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, "create order")

    return jsonify({"order": result.order.to_dict()}), 201 if result.created else 200


@orders_bp.route("/<order_id>", methods=["PUT", "PATCH"])
@require_auth
@require_permission("UPDATE_ORDER_STATUS")
def update_order_status(order_id: str):
    """
    Request body:
    {
        "status": "CONFIRMED"
    }

    Returns 409 for a transition the status graph does not allow.
    """
    try:
        payload = json_body()
        order = order_service.update_status(g.auth_context, order_id, payload.get("status"))
        return jsonify({"order": order.to_dict()}), 200
    except OrderingError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, "update order status")

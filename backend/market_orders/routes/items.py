# Overview: Flask API routes for catalog items; parses input and returns JSON responses.

# backend/market_orders/routes/items.py
"""
Item routes.

SECURITY:
- Read operations require VIEW_CATALOG
- Write operations require MANAGE_CATALOG

Items with order history are archived on DELETE (202); there is no force path.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import OrderingError
from ..services import catalog_service
from ..services.catalog_service import OUTCOME_ARCHIVED
from . import error_response, json_body, query_flag, server_error

items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@items_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
def list_items():
    """
    Query params:
    - category_id: str (optional)
    - includeArchived: bool - honoured for administrators only
    """
    category_id = request.args.get("category_id") or request.args.get("categoryId")
    include_archived = g.auth_context.is_admin and query_flag("includeArchived", default=True)
    items = catalog_service.list_items(category_id=category_id, include_archived=include_archived)
    return jsonify({"items": [i.to_dict(include_category=True) for i in items]}), 200


@items_bp.get("/<item_id>")
@require_auth
@require_permission("VIEW_CATALOG")
def get_item(item_id: str):
    try:
        item = catalog_service.get_item(item_id)
        return jsonify({"item": item.to_dict(include_category=True)}), 200
    except OrderingError as e:
        return error_response(e)


@items_bp.post("")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_item():
    """
    Request body:
    {
        "categoryId": "...",
        "name": "Simit",
        "price": "12.50",
        "description": null,
        "imageUrl": "/uploads/simit.png"
    }
    """
    try:
        item = catalog_service.create_item(json_body())
        return jsonify({"item": item.to_dict(include_category=True)}), 201
    except OrderingError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, "create item")


@items_bp.put("/<item_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def update_item(item_id: str):
    try:
        item = catalog_service.update_item(item_id, json_body())
        return jsonify({"item": item.to_dict(include_category=True)}), 200
    except OrderingError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, "update item")


@items_bp.delete("/<item_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def delete_item(item_id: str):
    try:
        outcome = catalog_service.delete_item(item_id)
    except OrderingError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, "delete item")

    status = 202 if outcome.outcome == OUTCOME_ARCHIVED else 200
    return jsonify(outcome.to_dict()), status

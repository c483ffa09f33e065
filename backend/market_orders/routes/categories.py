# Overview: Flask API routes for catalog categories; parses input and returns JSON responses.

# backend/market_orders/routes/categories.py
"""
Category routes.

SECURITY:
- Read operations require VIEW_CATALOG
- Write operations require MANAGE_CATALOG

DELETE outcomes:
- 200 {"outcome": "DELETED"}        no order history
- 202 {"outcome": "ARCHIVED"}       items have order history, kept in place
- 200 {"outcome": "FORCE_DELETED"}  ?force=true removed the history too
"""
from flask import Blueprint, g, jsonify

from ..decorators import require_auth, require_permission
from ..errors import OrderingError
from ..services import catalog_service
from ..services.catalog_service import OUTCOME_ARCHIVED
from . import error_response, json_body, query_flag, server_error

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
def list_categories():
    """
    List categories, newest first.

    Query params:
    - includeArchived: bool - administrators default to true, everyone else
      only ever sees active categories
    """
    include_archived = g.auth_context.is_admin and query_flag("includeArchived", default=True)
    categories = catalog_service.list_categories(include_archived=include_archived)
    return jsonify({"categories": [c.to_dict() for c in categories]}), 200


@categories_bp.get("/<category_id>")
@require_auth
@require_permission("VIEW_CATALOG")
def get_category(category_id: str):
    try:
        category = catalog_service.get_category(category_id)
        return jsonify({"category": category.to_dict()}), 200
    except OrderingError as e:
        return error_response(e)


@categories_bp.get("/<category_id>/items")
@require_auth
@require_permission("VIEW_CATALOG")
def list_category_items(category_id: str):
    """Orderable items of a category (archived items and categories yield nothing)."""
    try:
        items = catalog_service.list_active_items(category_id)
        return jsonify({"items": [i.to_dict() for i in items]}), 200
    except OrderingError as e:
        return error_response(e)


@categories_bp.post("")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_category():
    try:
        category = catalog_service.create_category(json_body())
        return jsonify({"category": category.to_dict()}), 201
    except OrderingError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, "create category")


@categories_bp.put("/<category_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def update_category(category_id: str):
    try:
        category = catalog_service.update_category(category_id, json_body())
        return jsonify({"category": category.to_dict()}), 200
    except OrderingError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, "update category")


@categories_bp.delete("/<category_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def delete_category(category_id: str):
    try:
        outcome = catalog_service.delete_category(category_id, force=query_flag("force"))
    except OrderingError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, "delete category")

    status = 202 if outcome.outcome == OUTCOME_ARCHIVED else 200
    return jsonify(outcome.to_dict()), status

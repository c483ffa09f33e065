# Overview: Flask API routes for sales reporting; read-only.

# backend/market_orders/routes/reports.py
"""
Reporting routes (administrators, VIEW_REPORTS).

Dates are "YYYY-MM-DD" calendar days in UTC; omitted means today.
"""
from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import OrderingError
from ..services import reporting_service
from ..time_utils import parse_day
from ..validation import parse_positive_int
from . import error_response

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _report_day():
    try:
        return parse_day(request.args.get("date"))
    except ValueError:
        return None


@reports_bp.get("/sales")
@require_auth
@require_permission("VIEW_REPORTS")
def sales():
    day = _report_day()
    if day is None:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400
    return jsonify(reporting_service.sales_report(day)), 200


@reports_bp.get("/daily-items")
@require_auth
@require_permission("VIEW_REPORTS")
def daily_items():
    day = _report_day()
    if day is None:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400
    return jsonify(reporting_service.daily_item_counts(day)), 200


@reports_bp.get("/top-selling")
@require_auth
@require_permission("VIEW_REPORTS")
def top_selling():
    """
    Query params:
    - date: YYYY-MM-DD (optional; all time when omitted)
    - limit: int (optional, default 10)
    """
    day = None
    if request.args.get("date"):
        day = _report_day()
        if day is None:
            return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    try:
        limit = request.args.get("limit")
        limit = parse_positive_int(limit, "limit") if limit is not None else 10
    except OrderingError as e:
        return error_response(e)

    return jsonify({"items": reporting_service.top_selling(day=day, limit=limit)}), 200


@reports_bp.get("/overview")
@require_auth
@require_permission("VIEW_REPORTS")
def overview():
    return jsonify(reporting_service.overview()), 200

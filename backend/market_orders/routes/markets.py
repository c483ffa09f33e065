# Overview: Flask API routes for markets and their balance ledger.

# backend/market_orders/routes/markets.py
"""
Market account routes.

SECURITY:
- List/get require VIEW_MARKETS, create requires CREATE_MARKET
  (administrators and employees)
- Update/delete require MANAGE_MARKETS (administrators)
- Balance adjustments require ADJUST_BALANCE, ledger history VIEW_LEDGER

balance_due is read-only over the API; it changes through checkout charges
and the /balance endpoint, both of which write a ledger entry.
"""
from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import OrderingError
from ..services import ledger_service, market_service
from ..validation import parse_positive_int
from . import error_response, json_body, server_error

markets_bp = Blueprint("markets", __name__, url_prefix="/api/markets")


@markets_bp.get("")
@require_auth
@require_permission("VIEW_MARKETS")
def list_markets():
    markets = market_service.list_markets()
    return jsonify({"markets": [m.to_dict() for m in markets]}), 200


@markets_bp.get("/<market_id>")
@require_auth
@require_permission("VIEW_MARKETS")
def get_market(market_id: str):
    try:
        market = market_service.get_market(market_id)
        return jsonify({"market": market.to_dict()}), 200
    except OrderingError as e:
        return error_response(e)


@markets_bp.post("")
@require_auth
@require_permission("CREATE_MARKET")
def create_market():
    """
    Request body:
    {
        "name": "Yildiz Market",
        "phoneNumber": "5551234567",
        "description": null
    }

    New markets start with balanceDue 0. Returns 409 on a duplicate phone number.
    """
    try:
        market = market_service.create_market(json_body())
        return jsonify({"market": market.to_dict()}), 201
    except OrderingError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, "create market")


@markets_bp.put("/<market_id>")
@require_auth
@require_permission("MANAGE_MARKETS")
def update_market(market_id: str):
    try:
        market = market_service.update_market(market_id, json_body())
        return jsonify({"market": market.to_dict()}), 200
    except OrderingError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, "update market")


@markets_bp.delete("/<market_id>")
@require_auth
@require_permission("MANAGE_MARKETS")
def delete_market(market_id: str):
    try:
        market_service.delete_market(market_id)
        return jsonify({"success": True}), 200
    except OrderingError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, "delete market")


@markets_bp.post("/<market_id>/balance")
@require_auth
@require_permission("ADJUST_BALANCE")
def adjust_balance(market_id: str):
    """
    Record a payment or manual adjustment.

    Request body:
    {
        "amount": 150,          (whole currency units, >= 0)
        "type": "PAYMENT",      (PAYMENT decreases, MANUAL increases)
        "note": "cash"
    }
    """
    try:
        payload = json_body()
        snapshot = ledger_service.adjust_balance(
            market_id,
            payload.get("amount"),
            payload.get("type"),
            note=payload.get("note"),
        )
        return jsonify({"market": snapshot.to_dict()}), 200
    except OrderingError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, "adjust market balance")


@markets_bp.get("/<market_id>/ledger")
@require_auth
@require_permission("VIEW_LEDGER")
def market_ledger(market_id: str):
    """Newest ledger entries with the recomputed sum next to the stored balance."""
    try:
        limit = request.args.get("limit")
        limit = parse_positive_int(limit, "limit") if limit is not None else 100
        entries = ledger_service.list_entries(market_id, limit=limit)
        market = market_service.get_market(market_id)
        return jsonify({
            "market": market.to_dict(),
            "entries": [e.to_dict() for e in entries],
            "ledgerSum": ledger_service.ledger_sum(market_id),
            "balanceDue": market.balance_due,
        }), 200
    except OrderingError as e:
        return error_response(e)

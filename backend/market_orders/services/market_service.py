# backend/market_orders/services/market_service.py
"""
Market Service: customer accounts.

balance_due is never written here; it changes only through
ledger_service.apply_ledger_entry. Markets with ledger history or orders
are never hard-deleted.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictFailure, NotFound
from ..extensions import db
from ..models import Market, Order
from ..validation import ModelValidationPolicy, enforce_rules_market, validate_payload
from .ledger_service import has_ledger_history


MARKET_POLICY = ModelValidationPolicy(
    writable_fields={
        "name": "name",
        "phoneNumber": "phone_number",
        "description": "description",
    },
    required_on_create={"name", "phoneNumber"},
)


def _phone_taken(phone_number: str, exclude_market_id: str | None = None) -> bool:
    query = db.session.query(Market.id).filter(Market.phone_number == phone_number)
    if exclude_market_id is not None:
        query = query.filter(Market.id != exclude_market_id)
    return query.first() is not None


def list_markets() -> list[Market]:
    return db.session.query(Market).order_by(Market.name.asc(), Market.id.asc()).all()


def get_market(market_id: str) -> Market:
    market = db.session.get(Market, market_id)
    if market is None:
        raise NotFound("Market not found")
    return market


def create_market(payload: dict) -> Market:
    """Create a market with a zero balance. Phone numbers are unique."""
    patch = validate_payload(model=Market, payload=payload, policy=MARKET_POLICY, partial=False)
    enforce_rules_market(patch)

    if _phone_taken(patch["phone_number"]):
        raise ConflictFailure("Phone number already exists")

    market = Market(balance_due=0, **patch)
    db.session.add(market)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race on the unique phone index
        db.session.rollback()
        raise ConflictFailure("Phone number already exists")
    return market


def update_market(market_id: str, payload: dict) -> Market:
    market = get_market(market_id)
    patch = validate_payload(model=Market, payload=payload, policy=MARKET_POLICY, partial=True)
    enforce_rules_market(patch)

    if "phone_number" in patch and _phone_taken(patch["phone_number"], exclude_market_id=market.id):
        raise ConflictFailure("Phone number already exists")

    for key, value in patch.items():
        setattr(market, key, value)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictFailure("Phone number already exists")
    return market


def delete_market(market_id: str) -> None:
    """Hard delete only a market with no ledger entries and no orders."""
    market = get_market(market_id)

    order_count = db.session.query(Order).filter(Order.market_id == market.id).count()
    if has_ledger_history(market.id) or order_count:
        raise ConflictFailure(
            "Market has ledger history and cannot be deleted",
            details={"orderCount": order_count, "balanceDue": market.balance_due},
        )

    db.session.delete(market)
    db.session.commit()

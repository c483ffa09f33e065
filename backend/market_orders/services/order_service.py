"""
Order Engine: basket checkout and order status.

WHY: The checkout is the only path that creates orders. It turns a basket
into an Order, its OrderItems and, when a market is attached, a CHARGE on
the market ledger - all in one database transaction. Any failure rolls the
whole unit back; nothing is retried here. The caller owns the retry decision
(and can make it safe with an idempotency key).

Money:
- Unit prices and totals are Decimal with two places; no float arithmetic.
- The market charge is the order total rounded half-up to a whole unit.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import (
    AuthorizationFailure,
    ConflictFailure,
    IntegrityFailure,
    NotFound,
    ValidationFailure,
)
from ..extensions import db
from ..models import Item, LedgerEntryType, Market, Order, OrderItem, OrderStatus, User
from ..permissions import Role
from .concurrency import lock_for_update
from .ledger_service import apply_ledger_entry
from .session_service import AuthContext
from ..validation import CENT, parse_positive_int, parse_positive_money


MAX_IDEMPOTENCY_KEY_LENGTH = 128

# Largest order whose whole-unit charge still fits the INTEGER balance column
MAX_ORDER_TOTAL = Decimal("999999999.99")

# Administrators move orders forward or cancel them; terminal states stay put.
ALLOWED_STATUS_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


@dataclass(frozen=True)
class BasketLine:
    item_id: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price * self.quantity).quantize(CENT)


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    created: bool  # False when an idempotency key replayed an existing order


def parse_basket(items: Any) -> list[BasketLine]:
    """
    Validate basket lines. Rejects the whole basket on the first bad line.

    Each line: {"itemId": str, "quantity": positive int, "unitPrice": positive number}
    """
    if not isinstance(items, list):
        raise ValidationFailure("items must be a list")
    if not items:
        raise ValidationFailure("Order must contain at least one item")

    lines = []
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationFailure("Each item must be an object", details={"index": index})

        item_id = raw.get("itemId")
        if not isinstance(item_id, str) or not item_id.strip():
            raise ValidationFailure("itemId is required", details={"index": index})

        try:
            quantity = parse_positive_int(raw.get("quantity"), "quantity")
            unit_price = parse_positive_money(raw.get("unitPrice"), "unitPrice")
        except ValidationFailure as e:
            raise ValidationFailure(e.message, details={"index": index})

        line = BasketLine(item_id=item_id.strip(), quantity=quantity, unit_price=unit_price)
        if line.line_total > MAX_ORDER_TOTAL:
            raise ValidationFailure(f"Line total cannot exceed {MAX_ORDER_TOTAL}", details={"index": index})
        lines.append(line)

    if compute_total(lines) > MAX_ORDER_TOTAL:
        raise ValidationFailure(f"Order total cannot exceed {MAX_ORDER_TOTAL}")
    return lines


def compute_total(lines: list[BasketLine]) -> Decimal:
    return sum((line.line_total for line in lines), Decimal("0.00")).quantize(CENT)


def to_currency_units(amount: Decimal) -> int:
    """Round half-up to a whole currency unit for the market ledger."""
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _normalize_note(note: Any) -> str | None:
    if note is None:
        return None
    if not isinstance(note, str):
        raise ValidationFailure("note must be a string")
    note = note.strip()
    if len(note) > 255:
        raise ValidationFailure("note exceeds max length 255")
    return note or None


def _scoped_idempotency_key(context: AuthContext, key: Any) -> str | None:
    if key is None or key == "":
        return None
    if not isinstance(key, str) or len(key.strip()) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise ValidationFailure(f"Idempotency key must be a string of at most {MAX_IDEMPOTENCY_KEY_LENGTH} characters")
    return f"{context.role.value}:{context.principal_id}:{key.strip()}"


def _find_by_idempotency_key(scoped_key: str) -> Order | None:
    return db.session.query(Order).filter(Order.idempotency_key == scoped_key).first()


def _system_user_id() -> str:
    """
    User recorded on market-owner orders (market owners are not users).

    SYSTEM_USER_ID when configured, otherwise the oldest administrator,
    otherwise the oldest user.
    """
    configured = current_app.config.get("SYSTEM_USER_ID")
    if configured:
        if db.session.get(User, configured) is None:
            raise IntegrityFailure("Configured system user does not exist")
        return configured

    admin = (
        db.session.query(User)
        .filter(User.role == Role.ADMIN.value)
        .order_by(User.created_at.asc(), User.id.asc())
        .first()
    )
    if admin is not None:
        return admin.id

    anyone = db.session.query(User).order_by(User.created_at.asc(), User.id.asc()).first()
    if anyone is not None:
        current_app.logger.warning("No admin user found, using first available user for market order")
        return anyone.id

    raise IntegrityFailure("No users found to attribute market orders to")


def resolve_attribution(context: AuthContext, market_id: Any) -> tuple[str, str | None]:
    """
    Decide (user_id, market_id) for an order.

    - MARKET_OWNER: always their own market; naming another market is refused.
    - EMPLOYEE: must name a market.
    - ADMIN: market optional.
    """
    if market_id is not None and not isinstance(market_id, str):
        raise ValidationFailure("marketId must be a string")
    if isinstance(market_id, str):
        market_id = market_id.strip() or None

    if context.role is Role.MARKET_OWNER:
        if market_id is not None and market_id != context.market_id:
            raise AuthorizationFailure("Market owners can only order for their own market")
        if not context.market_id:
            raise ValidationFailure("Market ID is required for market owner orders")
        return _system_user_id(), context.market_id

    if context.role is Role.EMPLOYEE and market_id is None:
        raise ValidationFailure("Market ID is required for employee orders")

    return context.principal_id, market_id


def _load_catalog_items(lines: list[BasketLine]) -> None:
    item_ids = {line.item_id for line in lines}
    found = {
        item.id: item
        for item in db.session.query(Item).filter(Item.id.in_(item_ids))
    }

    missing = sorted(item_ids - set(found))
    if missing:
        raise NotFound("Item not found", details={"itemIds": missing})

    archived = sorted(item_id for item_id, item in found.items() if item.archived)
    if archived:
        raise ValidationFailure("Archived items cannot be ordered", details={"itemIds": archived})


def checkout(
    context: AuthContext,
    items: Any,
    market_id: Any = None,
    note: Any = None,
    idempotency_key: Any = None,
) -> CheckoutResult:
    """
    Turn a basket into a PENDING order in one transaction.

    1. Validate the basket (non-empty, positive quantities and prices).
    2. Resolve attribution (acting/system user, charged market).
    3. Compute the Decimal total from the submitted unit prices.
    4. Insert the Order, then one OrderItem per line with a recomputed total.
    5. If a market is attached, CHARGE it the rounded total via the ledger.
    6. Commit; on any failure roll everything back and re-raise.
    """
    lines = parse_basket(items)
    note = _normalize_note(note)
    scoped_key = _scoped_idempotency_key(context, idempotency_key)

    if scoped_key is not None:
        existing = _find_by_idempotency_key(scoped_key)
        if existing is not None:
            return CheckoutResult(order=existing, created=False)

    try:
        user_id, resolved_market_id = resolve_attribution(context, market_id)
        if resolved_market_id is not None and db.session.get(Market, resolved_market_id) is None:
            raise NotFound("Market not found", details={"marketId": resolved_market_id})
        _load_catalog_items(lines)

        total_price = compute_total(lines)

        order = Order(
            user_id=user_id,
            market_id=resolved_market_id,
            total_price=total_price,
            note=note,
            status=OrderStatus.PENDING.value,
            idempotency_key=scoped_key,
        )
        db.session.add(order)
        db.session.flush()

        for line in lines:
            db.session.add(OrderItem(
                order_id=order.id,
                item_id=line.item_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
            ))
        db.session.flush()

        if resolved_market_id is not None:
            apply_ledger_entry(
                resolved_market_id,
                to_currency_units(total_price),
                LedgerEntryType.CHARGE,
                note=f"Order {order.id[:8]}",
            )

        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        if scoped_key is not None:
            existing = _find_by_idempotency_key(scoped_key)
            if existing is not None:
                return CheckoutResult(order=existing, created=False)
        current_app.logger.warning("Checkout aborted by constraint violation: %s", e.orig)
        raise IntegrityFailure("Order could not be saved")
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Order %s checked out by %s %s: total=%s market=%s lines=%d",
        order.id, context.role.value, context.principal_id, total_price, resolved_market_id, len(lines),
    )
    return CheckoutResult(order=order, created=True)


def list_orders(
    context: AuthContext,
    market_id: str | None = None,
    status: str | None = None,
    limit: int | None = None,
) -> list[Order]:
    """Newest first. Market owners only ever see their own market's orders."""
    query = db.session.query(Order)

    if context.role is Role.MARKET_OWNER:
        query = query.filter(Order.market_id == context.market_id)
    elif market_id:
        query = query.filter(Order.market_id == market_id)

    if status:
        query = query.filter(Order.status == _order_status(status).value)

    query = query.order_by(Order.created_at.desc(), Order.id.asc())
    if limit is not None:
        query = query.limit(max(1, min(limit, 500)))
    return query.all()


def get_order(context: AuthContext, order_id: str) -> Order:
    order = db.session.get(Order, order_id)
    # Another market's order is reported as missing, not forbidden
    if order is None or (context.role is Role.MARKET_OWNER and order.market_id != context.market_id):
        raise NotFound("Order not found")
    return order


def _order_status(value: Any) -> OrderStatus:
    try:
        return OrderStatus(str(value).strip().upper())
    except ValueError:
        raise ValidationFailure(
            "status must be one of " + ", ".join(s.value for s in OrderStatus)
        )


def update_status(context: AuthContext, order_id: str, new_status: Any) -> Order:
    """
    Administrator-only status change along the allowed transition graph.

    Re-submitting the current status is a no-op. Cancelling does not touch
    the market ledger; credit for a cancelled order is recorded as a PAYMENT.
    """
    if not context.is_admin:
        raise AuthorizationFailure("Only administrators can update order status")

    target = _order_status(new_status)

    try:
        order = lock_for_update(db.session.query(Order).filter(Order.id == order_id)).first()
        if order is None:
            raise NotFound("Order not found")

        current = OrderStatus(order.status)
        if current is target:
            db.session.rollback()
            return order

        if target not in ALLOWED_STATUS_TRANSITIONS[current]:
            raise ConflictFailure(
                f"Cannot change order status from {current.value} to {target.value}",
                details={
                    "from": current.value,
                    "to": target.value,
                    "allowed": sorted(s.value for s in ALLOWED_STATUS_TRANSITIONS[current]),
                },
            )

        order.status = target.value
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Order %s status %s -> %s", order_id, current.value, target.value)
    return order

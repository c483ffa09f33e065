# Overview: Service-layer operations for the market ledger; balance mutations and their audit rows.

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy import case, func

from ..errors import IntegrityFailure, NotFound, ValidationFailure
from ..extensions import db
from ..models import LedgerEntryType, Market, MarketLedgerEntry
from ..validation import parse_non_negative_int
"""
Market Ledger Invariants (authoritative)

- Append-only: ledger entries are never updated or deleted.
- Every change to Market.balance_due is paired with exactly one ledger row,
  written in the same DB transaction. Nothing else writes balance_due.
- amount is a non-negative integer; the sign comes from the entry type
  (CHARGE/MANUAL add, PAYMENT subtracts), never from the caller.
- The balance change is a single SQL UPDATE ... SET balance_due = balance_due + :delta
  so concurrent entries for one market serialize on the row lock instead of
  losing updates.
- sum(signed amounts) == balance_due for every market, at all times.
"""


ADJUSTMENT_TYPES = (LedgerEntryType.PAYMENT, LedgerEntryType.MANUAL)


@dataclass(frozen=True)
class MarketSnapshot:
    id: str
    name: str
    balance_due: int

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "balanceDue": self.balance_due}


def _entry_type(value) -> LedgerEntryType:
    if isinstance(value, LedgerEntryType):
        return value
    try:
        return LedgerEntryType(str(value).strip().upper())
    except ValueError:
        raise ValidationFailure("type must be one of CHARGE, PAYMENT, MANUAL")


def signed_delta(amount: int, entry_type: LedgerEntryType) -> int:
    if entry_type is LedgerEntryType.PAYMENT:
        return -amount
    return amount


def apply_ledger_entry(
    market_id: str,
    amount,
    entry_type,
    note: str | None = None,
) -> MarketSnapshot:
    """
    Apply one balance change and record its ledger row.

    Runs inside the caller's transaction: flushes, never commits. The caller
    commits or rolls back the whole unit (e.g. together with an Order).

    Raises:
        ValidationFailure: negative/non-integer amount or unknown type
        IntegrityFailure: market does not exist (caller must roll back)
    """
    amount = parse_non_negative_int(amount, "amount")
    entry_type = _entry_type(entry_type)
    delta = signed_delta(amount, entry_type)

    updated = (
        db.session.query(Market)
        .filter(Market.id == market_id)
        .update({Market.balance_due: Market.balance_due + delta}, synchronize_session=False)
    )
    if updated != 1:
        current_app.logger.warning("Ledger entry aborted: market %s not found", market_id)
        raise IntegrityFailure("Market not found", details={"marketId": market_id})

    entry = MarketLedgerEntry(
        market_id=market_id,
        amount=amount,
        type=entry_type.value,
        note=note,
    )
    db.session.add(entry)
    db.session.flush()

    market = (
        db.session.query(Market)
        .populate_existing()
        .filter(Market.id == market_id)
        .one()
    )

    current_app.logger.info(
        "Ledger %s %s on market %s -> balance %s", entry_type.value, amount, market_id, market.balance_due
    )
    return MarketSnapshot(id=market.id, name=market.name, balance_due=market.balance_due)


def adjust_balance(market_id: str, amount, entry_type, note: str | None = None) -> MarketSnapshot:
    """
    Administrator payment / manual adjustment as its own transaction.

    CHARGE is reserved for checkout and rejected here.
    """
    entry_type = _entry_type(entry_type)
    if entry_type not in ADJUSTMENT_TYPES:
        raise ValidationFailure("type must be PAYMENT or MANUAL")
    if note is not None and not isinstance(note, str):
        raise ValidationFailure("note must be a string")
    if note is not None:
        note = note.strip() or None
        if note is not None and len(note) > 255:
            raise ValidationFailure("note exceeds max length 255")

    if db.session.get(Market, market_id) is None:
        raise NotFound("Market not found")

    try:
        snapshot = apply_ledger_entry(market_id, amount, entry_type, note=note)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return snapshot


def list_entries(market_id: str, limit: int = 100) -> list[MarketLedgerEntry]:
    if db.session.get(Market, market_id) is None:
        raise NotFound("Market not found")
    limit = max(1, min(limit, 500))
    return (
        db.session.query(MarketLedgerEntry)
        .filter(MarketLedgerEntry.market_id == market_id)
        .order_by(MarketLedgerEntry.created_at.desc(), MarketLedgerEntry.id.desc())
        .limit(limit)
        .all()
    )


def ledger_sum(market_id: str) -> int:
    """Signed sum of all ledger entries for a market."""
    signed = case(
        (MarketLedgerEntry.type == LedgerEntryType.PAYMENT.value, -MarketLedgerEntry.amount),
        else_=MarketLedgerEntry.amount,
    )
    total = (
        db.session.query(func.coalesce(func.sum(signed), 0))
        .filter(MarketLedgerEntry.market_id == market_id)
        .scalar()
    )
    return int(total or 0)


def has_ledger_history(market_id: str) -> bool:
    return (
        db.session.query(MarketLedgerEntry.id)
        .filter(MarketLedgerEntry.market_id == market_id)
        .first()
        is not None
    )


def find_balance_mismatches() -> list[dict]:
    """Markets whose stored balance disagrees with their ledger; empty when consistent."""
    mismatches = []
    for market in db.session.query(Market).order_by(Market.name.asc()):
        expected = ledger_sum(market.id)
        if expected != market.balance_due:
            mismatches.append({
                "marketId": market.id,
                "name": market.name,
                "balanceDue": market.balance_due,
                "ledgerSum": expected,
            })
    return mismatches

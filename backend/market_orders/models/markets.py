from __future__ import annotations

from enum import Enum

from ..extensions import db
from ..time_utils import to_utc_z
from ._ids import new_id


class LedgerEntryType(str, Enum):
    CHARGE = "CHARGE"
    PAYMENT = "PAYMENT"
    MANUAL = "MANUAL"


class Market(db.Model):
    """
    Customer account with a running balance.

    balance_due is a stored running total in whole currency units. It is only
    ever mutated by ledger_service.apply_ledger_entry, which pairs each change
    with exactly one MarketLedgerEntry row in the same transaction.

    The phone number doubles as the market owner's login credential.
    """
    __tablename__ = "markets"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=False)
    phone_number = db.Column(db.String(10), nullable=False, unique=True, index=True)
    description = db.Column(db.Text, nullable=True)
    balance_due = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Market id={self.id} name={self.name!r} balance_due={self.balance_due}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phoneNumber": self.phone_number,
            "description": self.description,
            "balanceDue": self.balance_due,
            "createdAt": to_utc_z(self.created_at),
        }


class MarketLedgerEntry(db.Model):
    """
    Append-only record of a balance-affecting event.

    amount is always non-negative; the sign comes from type:
    CHARGE and MANUAL increase balance_due, PAYMENT decreases it.

    IMMUTABLE: Never update or delete.
    """
    __tablename__ = "market_ledger_entries"
    __table_args__ = (
        db.CheckConstraint("amount >= 0", name="ck_market_ledger_amount_non_negative"),
        db.Index("ix_market_ledger_market_created", "market_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    market_id = db.Column(db.String(36), db.ForeignKey("markets.id"), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False)
    type = db.Column(db.String(16), nullable=False)
    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    market = db.relationship("Market", backref=db.backref("ledger_entries", lazy=True))

    @property
    def signed_amount(self) -> int:
        if self.type == LedgerEntryType.PAYMENT.value:
            return -self.amount
        return self.amount

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "marketId": self.market_id,
            "amount": self.amount,
            "signedAmount": self.signed_amount,
            "type": self.type,
            "note": self.note,
            "createdAt": to_utc_z(self.created_at),
        }

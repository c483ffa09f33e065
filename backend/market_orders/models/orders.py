from __future__ import annotations

from enum import Enum

from ..extensions import db
from ..time_utils import to_utc_z
from ._ids import new_id


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class Order(db.Model):
    """
    Checked-out basket.

    Created together with its OrderItems (and, for market orders, a CHARGE
    ledger entry) in one transaction by order_service.checkout. Immutable
    afterwards except for status.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_market_created", "market_id", "created_at"),
        db.Index("ix_orders_created", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    # Acting staff user, or the designated system user for market-owner orders
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    market_id = db.Column(db.String(36), db.ForeignKey("markets.id"), nullable=True, index=True)

    total_price = db.Column(db.Numeric(14, 2), nullable=False)
    note = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=OrderStatus.PENDING.value, index=True)

    # "<role>:<principal id>:<client key>"; unique so concurrent retries cannot both insert
    idempotency_key = db.Column(db.String(255), nullable=True, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    user = db.relationship("User", backref=db.backref("orders", lazy=True))
    market = db.relationship("Market", backref=db.backref("orders", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} status={self.status} total={self.total_price}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "userId": self.user_id,
            "marketId": self.market_id,
            "totalPrice": str(self.total_price),
            "note": self.note,
            "status": self.status,
            "createdAt": to_utc_z(self.created_at),
        }
        if self.user is not None:
            data["user"] = {"id": self.user.id, "name": self.user.name}
        if self.market is not None:
            data["market"] = {"id": self.market.id, "name": self.market.name}
        if include_items:
            data["orderItems"] = [line.to_dict() for line in self.order_items]
        return data


class OrderItem(db.Model):
    """
    Order line. unit_price is the price snapshot at checkout, decoupled from
    Item.price; line_total is always quantity * unit_price, computed server-side.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        db.Index("ix_order_items_item_created", "item_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(36), db.ForeignKey("orders.id"), nullable=False, index=True)
    item_id = db.Column(db.String(36), db.ForeignKey("items.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    line_total = db.Column(db.Numeric(14, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship(
        "Order",
        backref=db.backref("order_items", lazy=True, order_by="OrderItem.id"),
    )
    item = db.relationship("Item")

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "orderId": self.order_id,
            "itemId": self.item_id,
            "quantity": self.quantity,
            "unitPrice": str(self.unit_price),
            "lineTotal": str(self.line_total),
        }
        if self.item is not None:
            data["item"] = {
                "id": self.item.id,
                "name": self.item.name,
                "imageUrl": self.item.image_url,
            }
        return data

# Overview: Read-only report queries over committed orders; no writes happen here.

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..models import Category, Item, Order, OrderItem
from ..time_utils import day_bounds, utcnow


def _orders_between(start, end) -> list[Order]:
    return (
        db.session.query(Order)
        .filter(Order.created_at >= start, Order.created_at < end)
        .order_by(Order.created_at.desc(), Order.id.asc())
        .all()
    )


def sales_report(day: date) -> dict:
    """Revenue, order count and items sold for one calendar day (UTC)."""
    start, end = day_bounds(day)
    orders = _orders_between(start, end)

    total_revenue = sum((Decimal(o.total_price) for o in orders), Decimal("0.00"))
    items_sold = sum(line.quantity for o in orders for line in o.order_items)

    return {
        "date": day.isoformat(),
        "totalRevenue": str(total_revenue),
        "totalOrders": len(orders),
        "itemsSold": items_sold,
        "orders": [o.to_dict() for o in orders],
    }


def _item_quantities(start=None, end=None):
    query = (
        db.session.query(
            Item.id,
            Item.name,
            func.sum(OrderItem.quantity).label("total_quantity"),
            func.sum(OrderItem.line_total).label("total_revenue"),
        )
        .join(OrderItem, OrderItem.item_id == Item.id)
    )
    if start is not None:
        query = query.filter(OrderItem.created_at >= start, OrderItem.created_at < end)
    return (
        query.group_by(Item.id, Item.name)
        .order_by(func.sum(OrderItem.quantity).desc(), Item.name.asc())
    )


def daily_item_counts(day: date) -> dict:
    start, end = day_bounds(day)
    rows = _item_quantities(start, end).all()
    return {
        "date": day.isoformat(),
        "items": [
            {"itemId": item_id, "itemName": name, "totalQuantity": int(qty)}
            for item_id, name, qty, _revenue in rows
        ],
    }


def top_selling(day: date | None = None, limit: int = 10) -> list[dict]:
    """Items ranked by quantity sold, optionally restricted to one day."""
    limit = max(1, min(limit, 100))
    start = end = None
    if day is not None:
        start, end = day_bounds(day)

    rows = _item_quantities(start, end).limit(limit).all()
    if not rows:
        return []

    items = {
        item.id: item
        for item in db.session.query(Item).filter(Item.id.in_([row[0] for row in rows]))
    }
    categories = {
        c.id: c
        for c in db.session.query(Category).filter(
            Category.id.in_({item.category_id for item in items.values()})
        )
    }

    result = []
    for item_id, _name, qty, revenue in rows:
        item = items[item_id]
        category = categories.get(item.category_id)
        result.append({
            "item": {
                "id": item.id,
                "name": item.name,
                "price": str(item.price),
                "imageUrl": item.image_url,
                "category": {"id": category.id, "name": category.name} if category else None,
            },
            "totalQuantity": int(qty),
            "totalRevenue": str(Decimal(revenue).quantize(Decimal("0.01"))),
        })
    return result


def overview() -> dict:
    """Today's sales total, order count and best-selling item."""
    today = utcnow().date()
    report = sales_report(today)
    top = daily_item_counts(today)["items"]
    best = top[0] if top else None
    return {
        "totalSalesToday": report["totalRevenue"],
        "ordersToday": report["totalOrders"],
        "topSellingItem": {"name": best["itemName"], "quantity": best["totalQuantity"]} if best else None,
    }

# backend/market_orders/services/catalog_service.py
"""
Catalog Service: categories and items.

ARCHIVE OVER DELETE: order lines reference items, so an item (or a category
whose items) with order history is archived instead of deleted. Categories
additionally support an explicit force delete that cascades through the
order history in dependency order inside one transaction.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import exists, select

from ..errors import NotFound
from ..extensions import db
from ..models import Category, Item, Order, OrderItem
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_category,
    enforce_rules_item,
    validate_payload,
)


CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={
        "name": "name",
        "description": "description",
        "imageUrl": "image_url",
        "archived": "archived",
    },
    required_on_create={"name"},
)

ITEM_POLICY = ModelValidationPolicy(
    writable_fields={
        "categoryId": "category_id",
        "name": "name",
        "description": "description",
        "price": "price",
        "imageUrl": "image_url",
        "archived": "archived",
    },
    required_on_create={"categoryId", "name", "price"},
)

OUTCOME_DELETED = "DELETED"
OUTCOME_ARCHIVED = "ARCHIVED"
OUTCOME_FORCE_DELETED = "FORCE_DELETED"


@dataclass(frozen=True)
class DeleteOutcome:
    outcome: str
    message: str
    removed: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {"outcome": self.outcome, "message": self.message}
        if self.removed:
            data["removed"] = self.removed
        return data


# -- Categories --

def list_categories(include_archived: bool = True) -> list[Category]:
    query = db.session.query(Category)
    if not include_archived:
        query = query.filter(Category.archived.is_(False))
    return query.order_by(Category.created_at.desc(), Category.id.asc()).all()


def get_category(category_id: str) -> Category:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFound("Category not found")
    return category


def create_category(payload: dict) -> Category:
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
    enforce_rules_category(patch)

    category = Category(**patch)
    db.session.add(category)
    db.session.commit()
    return category


def update_category(category_id: str, payload: dict) -> Category:
    category = get_category(category_id)
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
    enforce_rules_category(patch)

    for key, value in patch.items():
        setattr(category, key, value)
    db.session.commit()
    return category


def count_category_order_lines(category_id: str) -> int:
    return (
        db.session.query(OrderItem)
        .join(Item, Item.id == OrderItem.item_id)
        .filter(Item.category_id == category_id)
        .count()
    )


def delete_category(category_id: str, force: bool = False) -> DeleteOutcome:
    """
    Delete a category, honouring its order history.

    - No order lines reference its items: hard delete (items go with it).
    - Referenced and not forced: archive, leave everything in place.
    - Referenced and forced: in one transaction delete the referencing order
      lines, then the orders left without lines, then the items, then the
      category. Ledger entries are append-only and stay untouched.
    """
    category = get_category(category_id)
    line_count = count_category_order_lines(category.id)

    if line_count and not force:
        category.archived = True
        db.session.commit()
        return DeleteOutcome(
            outcome=OUTCOME_ARCHIVED,
            message=(
                "Category archived because items have existing orders. "
                "To delete everything, call with ?force=true to remove related orders/items."
            ),
        )

    item_ids = select(Item.id).where(Item.category_id == category.id)

    try:
        removed = {}
        if line_count:
            affected_order_ids = [
                row[0]
                for row in db.session.query(OrderItem.order_id)
                .filter(OrderItem.item_id.in_(item_ids))
                .distinct()
            ]

            removed["orderItems"] = (
                db.session.query(OrderItem)
                .filter(OrderItem.item_id.in_(item_ids))
                .delete(synchronize_session="fetch")
            )

            orphaned = ~exists().where(OrderItem.order_id == Order.id)
            removed["orders"] = (
                db.session.query(Order)
                .filter(Order.id.in_(affected_order_ids), orphaned)
                .delete(synchronize_session="fetch")
            )

        removed["items"] = (
            db.session.query(Item)
            .filter(Item.category_id == category.id)
            .delete(synchronize_session="fetch")
        )
        db.session.query(Category).filter(Category.id == category.id).delete(synchronize_session="fetch")
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    if line_count:
        current_app.logger.info("Force-deleted category %s: %s", category_id, removed)
        return DeleteOutcome(
            outcome=OUTCOME_FORCE_DELETED,
            message="Category and related data deleted (force)",
            removed=removed,
        )
    return DeleteOutcome(outcome=OUTCOME_DELETED, message="Category deleted", removed=removed)


# -- Items --

def list_items(category_id: str | None = None, include_archived: bool = True) -> list[Item]:
    query = db.session.query(Item)
    if category_id:
        query = query.filter(Item.category_id == category_id)
    if not include_archived:
        query = query.filter(Item.archived.is_(False))
    return query.order_by(Item.created_at.desc(), Item.id.asc()).all()


def list_active_items(category_id: str) -> list[Item]:
    """
    Catalog read path used to build baskets: non-archived items of a
    non-archived category. Prices returned here are the ones checkout trusts.
    """
    category = get_category(category_id)
    if category.archived:
        return []
    return (
        db.session.query(Item)
        .filter(Item.category_id == category.id, Item.archived.is_(False))
        .order_by(Item.name.asc(), Item.id.asc())
        .all()
    )


def get_item(item_id: str) -> Item:
    item = db.session.get(Item, item_id)
    if item is None:
        raise NotFound("Item not found")
    return item


def create_item(payload: dict) -> Item:
    patch = validate_payload(model=Item, payload=payload, policy=ITEM_POLICY, partial=False)
    enforce_rules_item(patch)
    get_category(patch["category_id"])

    item = Item(**patch)
    db.session.add(item)
    db.session.commit()
    return item


def update_item(item_id: str, payload: dict) -> Item:
    item = get_item(item_id)
    patch = validate_payload(model=Item, payload=payload, policy=ITEM_POLICY, partial=True)
    enforce_rules_item(patch)
    if patch.get("category_id"):
        get_category(patch["category_id"])

    for key, value in patch.items():
        setattr(item, key, value)
    db.session.commit()
    return item


def delete_item(item_id: str) -> DeleteOutcome:
    """Archive an item with order history, otherwise hard delete it. No force path."""
    item = get_item(item_id)
    line_count = db.session.query(OrderItem).filter(OrderItem.item_id == item.id).count()

    if line_count:
        item.archived = True
        db.session.commit()
        return DeleteOutcome(outcome=OUTCOME_ARCHIVED, message="Item archived (had existing orders)")

    db.session.delete(item)
    db.session.commit()
    return DeleteOutcome(outcome=OUTCOME_DELETED, message="Item deleted")

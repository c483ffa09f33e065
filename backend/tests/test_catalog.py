# Overview: Pytest coverage for catalog CRUD and archive-over-delete behavior.

"""
Catalog Tests

Covers:
- Category/item create and update validation (price, image URL, unknown fields)
- Delete outcomes: DELETED, ARCHIVED, FORCE_DELETED
- Force delete removes dependent order lines and emptied orders, keeps ledger rows
- Archived items disappear from the orderable catalog
"""

from decimal import Decimal

import pytest

from conftest import basket_line
from market_orders.errors import NotFound, ValidationFailure
from market_orders.extensions import db
from market_orders.models import Category, Item, MarketLedgerEntry, Order, OrderItem
from market_orders.permissions import Role
from market_orders.services import catalog_service, order_service
from market_orders.services.catalog_service import (
    OUTCOME_ARCHIVED,
    OUTCOME_DELETED,
    OUTCOME_FORCE_DELETED,
)
from market_orders.services.session_service import AuthContext


def _order(user, items, market=None):
    context = AuthContext(principal_id=user.id, role=Role.ADMIN, name=user.name)
    return order_service.checkout(
        context,
        [basket_line(i) for i in items],
        market_id=market.id if market is not None else None,
    ).order


class TestCatalogValidation:

    def test_create_item(self, db_session, category):
        item = catalog_service.create_item({
            "categoryId": category.id,
            "name": "  Ayran ",
            "price": 7.5,
            "imageUrl": "https://cdn.example.com/ayran.png",
        })
        assert item.name == "Ayran"
        assert item.price == Decimal("7.50")
        assert item.archived is False

    @pytest.mark.parametrize("payload", [
        {"name": "Ayran", "price": "0"},
        {"name": "Ayran", "price": "-1"},
        {"name": "Ayran", "price": "1.999"},
        {"name": "Ayran", "price": "abc"},
        {"name": "Ayran", "price": "1e30"},
        {"name": "Ayran", "price": "-1e30"},
        {"name": "Ayran", "price": "10000000000"},
        {"name": "", "price": "1.00"},
        {"name": "Ayran"},
        {"name": "Ayran", "price": "1.00", "imageUrl": "ftp://x/y.png"},
        {"name": "Ayran", "price": "1.00", "stock": 4},
    ])
    def test_rejects_invalid_item(self, db_session, category, payload):
        with pytest.raises(ValidationFailure):
            catalog_service.create_item(dict(payload, categoryId=category.id))

    def test_item_needs_existing_category(self, db_session):
        with pytest.raises(NotFound):
            catalog_service.create_item({"categoryId": "missing", "name": "Ayran", "price": "1.00"})

    def test_blank_image_url_clears(self, db_session, category):
        catalog_service.update_category(category.id, {"imageUrl": "/uploads/bakery.png"})
        assert catalog_service.get_category(category.id).image_url == "/uploads/bakery.png"

        catalog_service.update_category(category.id, {"imageUrl": "  "})
        assert catalog_service.get_category(category.id).image_url is None

    def test_category_name_required(self, db_session):
        with pytest.raises(ValidationFailure):
            catalog_service.create_category({"description": "no name"})


class TestCategoryDelete:

    def test_unreferenced_category_is_deleted(self, db_session, category, item):
        outcome = catalog_service.delete_category(category.id)

        assert outcome.outcome == OUTCOME_DELETED
        assert db_session.query(Category).count() == 0
        assert db_session.query(Item).count() == 0

    def test_referenced_category_is_archived(self, db_session, admin_user, category, item):
        _order(admin_user, [item])

        outcome = catalog_service.delete_category(category.id)

        assert outcome.outcome == OUTCOME_ARCHIVED
        assert "?force=true" in outcome.message
        db_session.expire_all()
        assert db_session.get(Category, category.id).archived is True
        assert db_session.query(Item).count() == 1
        assert db_session.query(OrderItem).count() == 1

    def test_force_delete_cascades(self, db_session, admin_user, market, category, item):
        other_category = catalog_service.create_category({"name": "Drinks"})
        drink = catalog_service.create_item({"categoryId": other_category.id, "name": "Ayran", "price": "7.50"})

        only_bakery = _order(admin_user, [item], market=market)
        mixed = _order(admin_user, [item, drink])
        only_bakery_id, mixed_id = only_bakery.id, mixed.id

        outcome = catalog_service.delete_category(category.id, force=True)

        assert outcome.outcome == OUTCOME_FORCE_DELETED
        assert outcome.removed == {"orderItems": 2, "orders": 1, "items": 1}

        db_session.expire_all()
        assert db_session.get(Category, category.id) is None
        assert db_session.get(Order, only_bakery_id) is None
        # Order with lines from another category survives with its remaining line
        surviving = db_session.get(Order, mixed_id)
        assert [line.item_id for line in surviving.order_items] == [drink.id]
        # Ledger history is append-only
        assert db_session.query(MarketLedgerEntry).count() == 1

    def test_force_on_unreferenced_is_plain_delete(self, db_session, category, item):
        outcome = catalog_service.delete_category(category.id, force=True)
        assert outcome.outcome == OUTCOME_DELETED

    def test_missing_category(self, db_session):
        with pytest.raises(NotFound):
            catalog_service.delete_category("missing")


class TestItemDelete:

    def test_unreferenced_item_is_deleted(self, db_session, item):
        outcome = catalog_service.delete_item(item.id)
        assert outcome.outcome == OUTCOME_DELETED
        assert db_session.query(Item).count() == 0

    def test_referenced_item_is_archived(self, db_session, admin_user, item):
        _order(admin_user, [item])

        outcome = catalog_service.delete_item(item.id)

        assert outcome.outcome == OUTCOME_ARCHIVED
        assert outcome.message == "Item archived (had existing orders)"
        db_session.expire_all()
        assert db_session.get(Item, item.id).archived is True

    def test_archived_item_leaves_orderable_catalog(self, db_session, admin_user, category, item, second_item):
        _order(admin_user, [item])
        catalog_service.delete_item(item.id)

        assert [i.id for i in catalog_service.list_active_items(category.id)] == [second_item.id]
        assert {i.id for i in catalog_service.list_items(category_id=category.id)} == {item.id, second_item.id}


class TestCatalogRoutes:

    def test_create_and_update_item(self, admin_client, category):
        resp = admin_client.post("/api/items", json={"categoryId": category.id, "name": "Ayran", "price": "7.50"})
        assert resp.status_code == 201
        created = resp.get_json()["item"]
        assert created["price"] == "7.50"
        assert created["category"] == {"id": category.id, "name": "Bakery"}

        resp = admin_client.put(f"/api/items/{created['id']}", json={"price": "8.00"})
        assert resp.status_code == 200
        assert resp.get_json()["item"]["price"] == "8.00"

    def test_oversized_price_is_400(self, admin_client, category, db_session):
        resp = admin_client.post("/api/items", json={"categoryId": category.id, "name": "Ayran", "price": "1e30"})
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "price cannot exceed 9999999999.99"}
        assert db_session.query(Item).count() == 0

    def test_invalid_image_url_is_400(self, admin_client, category):
        resp = admin_client.post("/api/categories", json={"name": "Drinks", "imageUrl": "not a url"})
        assert resp.status_code == 400

    def test_delete_status_codes(self, admin_client, admin_user, category, item, second_item, db_session):
        _order(admin_user, [item])

        resp = admin_client.delete(f"/api/items/{item.id}")
        assert resp.status_code == 202
        assert resp.get_json()["outcome"] == "ARCHIVED"

        resp = admin_client.delete(f"/api/items/{second_item.id}")
        assert resp.status_code == 200
        assert resp.get_json()["outcome"] == "DELETED"

        resp = admin_client.delete(f"/api/categories/{category.id}")
        assert resp.status_code == 202

        resp = admin_client.delete(f"/api/categories/{category.id}?force=true")
        assert resp.status_code == 200
        assert resp.get_json()["outcome"] == "FORCE_DELETED"
        assert admin_client.get(f"/api/categories/{category.id}").status_code == 404

    def test_non_admins_never_see_archived(self, employee_client, admin_client, category, item):
        catalog_service.update_item(item.id, {"archived": True})
        catalog_service.create_category({"name": "Old", "archived": True})

        assert employee_client.get("/api/items").get_json()["items"] == []
        assert employee_client.get("/api/items?includeArchived=true").get_json()["items"] == []
        assert [c["name"] for c in employee_client.get("/api/categories").get_json()["categories"]] == ["Bakery"]

        assert len(admin_client.get("/api/items").get_json()["items"]) == 1
        assert len(admin_client.get("/api/categories").get_json()["categories"]) == 2
        assert len(admin_client.get("/api/categories?includeArchived=false").get_json()["categories"]) == 1

    def test_item_filter_by_category(self, admin_client, category, item):
        other = catalog_service.create_category({"name": "Drinks"})
        catalog_service.create_item({"categoryId": other.id, "name": "Ayran", "price": "7.50"})

        resp = admin_client.get(f"/api/items?category_id={category.id}")
        assert [i["id"] for i in resp.get_json()["items"]] == [item.id]

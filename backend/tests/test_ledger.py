# Overview: Pytest coverage for the market ledger and its balance invariant.

"""
Market Ledger Tests

The invariant under test: for every market, balance_due equals the signed
sum of its ledger entries, and every balance change wrote exactly one entry.
"""

import random
import threading

import pytest

from market_orders import create_app
from market_orders.errors import IntegrityFailure, NotFound, ValidationFailure
from market_orders.extensions import db
from market_orders.models import LedgerEntryType, Market, MarketLedgerEntry
from market_orders.services import ledger_service, market_service


def _reload(market_id):
    db.session.expire_all()
    return db.session.get(Market, market_id)


class TestApplyLedgerEntry:

    def test_charge_increases_balance(self, db_session, market):
        snapshot = ledger_service.apply_ledger_entry(market.id, 120, LedgerEntryType.CHARGE, note="Order 1")
        db_session.commit()

        assert snapshot.balance_due == 120
        assert _reload(market.id).balance_due == 120
        entry = db_session.query(MarketLedgerEntry).filter_by(market_id=market.id).one()
        assert entry.amount == 120
        assert entry.type == "CHARGE"
        assert entry.signed_amount == 120

    def test_payment_decreases_balance(self, db_session, market):
        ledger_service.apply_ledger_entry(market.id, 100, "CHARGE")
        ledger_service.apply_ledger_entry(market.id, 30, "payment")
        db_session.commit()

        assert _reload(market.id).balance_due == 70
        assert ledger_service.ledger_sum(market.id) == 70

    def test_balance_may_go_negative(self, db_session, market):
        ledger_service.apply_ledger_entry(market.id, 50, LedgerEntryType.PAYMENT)
        db_session.commit()
        assert _reload(market.id).balance_due == -50

    def test_unknown_market_raises_and_writes_nothing(self, db_session, market):
        with pytest.raises(IntegrityFailure):
            ledger_service.apply_ledger_entry("missing-market", 10, LedgerEntryType.CHARGE)
        db_session.rollback()

        assert db_session.query(MarketLedgerEntry).count() == 0

    @pytest.mark.parametrize("amount", [-1, 1.5, "abc", None, True, 10**25, "99999999999"])
    def test_rejects_bad_amounts(self, db_session, market, amount):
        with pytest.raises(ValidationFailure):
            ledger_service.apply_ledger_entry(market.id, amount, LedgerEntryType.CHARGE)

    def test_rejects_unknown_type(self, db_session, market):
        with pytest.raises(ValidationFailure):
            ledger_service.apply_ledger_entry(market.id, 10, "REFUND")

    def test_rollback_discards_balance_and_entry_together(self, db_session, market):
        ledger_service.apply_ledger_entry(market.id, 75, LedgerEntryType.CHARGE)
        db_session.rollback()

        assert _reload(market.id).balance_due == 0
        assert not ledger_service.has_ledger_history(market.id)


class TestLedgerInvariant:

    def test_random_sequence_keeps_sum_equal_to_balance(self, db_session, market, other_market):
        rng = random.Random(20240518)
        entry_count = 0
        for _ in range(200):
            target = rng.choice([market.id, other_market.id])
            entry_type = rng.choice(list(LedgerEntryType))
            ledger_service.apply_ledger_entry(target, rng.randint(0, 5000), entry_type)
            entry_count += 1
            if rng.random() < 0.3:
                db_session.commit()
        db_session.commit()

        for market_id in (market.id, other_market.id):
            assert _reload(market_id).balance_due == ledger_service.ledger_sum(market_id)
        assert db_session.query(MarketLedgerEntry).count() == entry_count
        assert ledger_service.find_balance_mismatches() == []

    def test_mismatch_is_reported(self, db_session, market):
        ledger_service.apply_ledger_entry(market.id, 40, LedgerEntryType.CHARGE)
        db_session.commit()

        # Simulate out-of-band corruption
        db_session.query(Market).filter_by(id=market.id).update({"balance_due": 41})
        db_session.commit()

        mismatches = ledger_service.find_balance_mismatches()
        assert mismatches == [{
            "marketId": market.id,
            "name": "Yildiz Market",
            "balanceDue": 41,
            "ledgerSum": 40,
        }]


class TestConcurrentEntries:
    """Concurrent writers on one market against a file-backed database."""

    @pytest.fixture
    def file_app(self, tmp_path):
        app = create_app({
            'TESTING': True,
            'SECRET_KEY': 'test-secret-key',
            'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'ledger.db'}",
            'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'timeout': 30, 'check_same_thread': False}},
            'PIN_HASH_ROUNDS': 4,
        })
        with app.app_context():
            db.create_all()
        yield app
        with app.app_context():
            db.session.remove()
            db.drop_all()
            db.engine.dispose()

    def test_no_lost_updates(self, file_app):
        with file_app.app_context():
            market_id = market_service.create_market({"name": "Yildiz Market", "phoneNumber": "5551234567"}).id

        errors = []
        lock = threading.Lock()
        plan = [(LedgerEntryType.CHARGE, 7)] * 15 + [(LedgerEntryType.PAYMENT, 3)] * 5

        def worker(entry_type, amount):
            with file_app.app_context():
                try:
                    ledger_service.apply_ledger_entry(market_id, amount, entry_type)
                    db.session.commit()
                except Exception as exc:
                    db.session.rollback()
                    with lock:
                        errors.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker, args=step) for step in plan]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        with file_app.app_context():
            market = db.session.get(Market, market_id)
            assert market.balance_due == 15 * 7 - 5 * 3
            assert market.balance_due == ledger_service.ledger_sum(market_id)
            assert db.session.query(MarketLedgerEntry).count() == len(plan)


class TestAdjustBalance:

    def test_payment(self, db_session, market):
        ledger_service.apply_ledger_entry(market.id, 500, LedgerEntryType.CHARGE)
        db_session.commit()

        snapshot = ledger_service.adjust_balance(market.id, 200, "PAYMENT", note="cash")
        assert snapshot.to_dict() == {"id": market.id, "name": "Yildiz Market", "balanceDue": 300}

        entries = ledger_service.list_entries(market.id)
        assert [e.type for e in entries][0] == "PAYMENT"
        assert entries[0].note == "cash"

    def test_manual_increases(self, db_session, market):
        snapshot = ledger_service.adjust_balance(market.id, 25, "MANUAL")
        assert snapshot.balance_due == 25

    def test_charge_is_reserved_for_checkout(self, db_session, market):
        with pytest.raises(ValidationFailure):
            ledger_service.adjust_balance(market.id, 25, "CHARGE")
        assert not ledger_service.has_ledger_history(market.id)

    def test_unknown_market(self, db_session):
        with pytest.raises(NotFound):
            ledger_service.adjust_balance("missing", 10, "PAYMENT")

    def test_note_too_long(self, db_session, market):
        with pytest.raises(ValidationFailure):
            ledger_service.adjust_balance(market.id, 10, "PAYMENT", note="x" * 256)


class TestBalanceRoutes:

    def test_admin_records_payment(self, admin_client, market, db_session):
        resp = admin_client.post(
            f"/api/markets/{market.id}/balance",
            json={"amount": 150, "type": "MANUAL", "note": "opening balance"},
        )
        assert resp.status_code == 200
        assert resp.get_json()["market"]["balanceDue"] == 150

        resp = admin_client.post(f"/api/markets/{market.id}/balance", json={"amount": 50, "type": "PAYMENT"})
        assert resp.get_json()["market"]["balanceDue"] == 100

        resp = admin_client.get(f"/api/markets/{market.id}/ledger")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["balanceDue"] == body["ledgerSum"] == 100
        assert [e["signedAmount"] for e in body["entries"]] == [-50, 150]

    def test_negative_amount_is_400(self, admin_client, market):
        resp = admin_client.post(f"/api/markets/{market.id}/balance", json={"amount": -5, "type": "PAYMENT"})
        assert resp.status_code == 400

    def test_unknown_market_is_404(self, admin_client, db_session):
        resp = admin_client.post("/api/markets/nope/balance", json={"amount": 5, "type": "PAYMENT"})
        assert resp.status_code == 404
        assert admin_client.get("/api/markets/nope/ledger").status_code == 404

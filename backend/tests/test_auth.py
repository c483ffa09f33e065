# Overview: Pytest coverage for credential verification, login routes and session tokens.

"""
Authentication Tests

Covers:
- PIN and phone-number authentication in the service layer
- Login/logout routes and the session cookie attributes
- Session token validation: tampering, expiry, stale principals
"""

import pytest

from conftest import ADMIN_PIN, EMPLOYEE_PIN, MARKET_PHONE, login
from market_orders.errors import AuthenticationFailure, ValidationFailure
from market_orders.extensions import db
from market_orders.models import SecurityEvent, User
from market_orders.permissions import Role
from market_orders.services import auth_service, market_service
from market_orders.services.session_service import AuthContext, issue_session, validate_session


class TestAuthenticate:
    """auth_service.authenticate resolves a credential to an AuthContext."""

    def test_admin_pin(self, db_session, admin_user):
        context = auth_service.authenticate(ADMIN_PIN)
        assert context.role is Role.ADMIN
        assert context.principal_id == admin_user.id
        assert context.market_id is None

    def test_employee_pin(self, db_session, admin_user, employee_user):
        context = auth_service.authenticate(EMPLOYEE_PIN)
        assert context.role is Role.EMPLOYEE
        assert context.principal_id == employee_user.id

    def test_unknown_pin(self, db_session, admin_user):
        with pytest.raises(AuthenticationFailure) as exc:
            auth_service.authenticate("9999")
        assert exc.value.message == "Invalid PIN"

    @pytest.mark.parametrize("credential", ["12345", "123", "abcd", "", None, 1234, "555123456"])
    def test_malformed_credential_is_a_format_error(self, db_session, admin_user, credential):
        with pytest.raises(ValidationFailure):
            auth_service.authenticate(credential)

    def test_market_phone(self, db_session, market):
        context = auth_service.authenticate(MARKET_PHONE)
        assert context.role is Role.MARKET_OWNER
        assert context.market_id == market.id
        assert context.principal_id == market.id
        assert context.name == "Yildiz Market"

    def test_unknown_phone(self, db_session, market):
        with pytest.raises(AuthenticationFailure) as exc:
            auth_service.authenticate("5550000000")
        assert exc.value.message == "Invalid phone number"

    def test_legacy_lowercase_role_is_normalized(self, db_session, admin_user):
        admin_user.role = "admin"
        db_session.commit()

        context = auth_service.authenticate(ADMIN_PIN)
        assert context.role is Role.ADMIN

    def test_pin_is_stored_hashed(self, db_session, admin_user):
        stored = db_session.get(User, admin_user.id)
        assert stored.pin_hash != ADMIN_PIN
        assert stored.pin_hash.startswith("$2")
        assert auth_service.verify_pin(ADMIN_PIN, stored.pin_hash)
        assert not auth_service.verify_pin("0000", stored.pin_hash)


class TestLoginRoutes:

    def test_login_sets_http_only_cookie(self, client, admin_user):
        resp = login(client, ADMIN_PIN)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["user"]["role"] == "ADMIN"
        assert body["user"]["id"] == admin_user.id
        assert "token" not in body

        cookie = next(h for h in resp.headers.getlist("Set-Cookie") if h.startswith("token="))
        assert "HttpOnly" in cookie
        assert "SameSite=Lax" in cookie
        assert "Max-Age=604800" in cookie
        assert "Path=/" in cookie

    def test_login_accepts_pin_field(self, client, admin_user):
        resp = client.post("/api/auth/login", json={"pin": ADMIN_PIN})
        assert resp.status_code == 200

    def test_login_accepts_phone_number_field(self, client, market):
        resp = client.post("/api/auth/login", json={"phoneNumber": MARKET_PHONE})
        assert resp.status_code == 200
        user = resp.get_json()["user"]
        assert user["role"] == "MARKET_OWNER"
        assert user["marketId"] == market.id

    def test_wrong_pin_is_401_and_logged(self, client, db_session, admin_user):
        resp = login(client, "9999")
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Invalid PIN"}
        assert not any(h.startswith("token=") for h in resp.headers.getlist("Set-Cookie"))

        db_session.expire_all()
        events = db_session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").all()
        assert len(events) == 1
        assert events[0].success is False

    def test_malformed_credential_is_400(self, client, admin_user):
        resp = login(client, "12345")
        assert resp.status_code == 400

    def test_missing_credential_is_400(self, client, admin_user):
        resp = client.post("/api/auth/login", json={})
        assert resp.status_code == 400

    def test_me_returns_principal_and_permissions(self, employee_client):
        resp = employee_client.get("/api/auth/me")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["user"]["role"] == "EMPLOYEE"
        assert "CREATE_MARKET" in body["permissions"]
        assert "MANAGE_CATALOG" not in body["permissions"]

    def test_logout_clears_cookie(self, admin_client):
        resp = admin_client.post("/api/auth/logout")
        assert resp.status_code == 200
        assert admin_client.get("/api/auth/me").status_code == 401

    def test_delete_login_clears_cookie(self, admin_client):
        resp = admin_client.delete("/api/auth/login")
        assert resp.status_code == 200
        assert admin_client.get("/api/auth/me").status_code == 401

    def test_bearer_header_is_accepted(self, client, admin_user):
        token = issue_session(AuthContext(principal_id=admin_user.id, role=Role.ADMIN))
        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.get_json()["user"]["id"] == admin_user.id


class TestSessionTokens:
    """session_service.validate_session rejects anything it cannot fully trust."""

    def test_round_trip(self, db_session, admin_user):
        token = issue_session(AuthContext(principal_id=admin_user.id, role=Role.ADMIN))
        context = validate_session(token)
        assert context.principal_id == admin_user.id
        assert context.role is Role.ADMIN
        assert context.name == "Admin"

    def test_market_owner_round_trip(self, db_session, market):
        token = issue_session(AuthContext(principal_id=market.id, role=Role.MARKET_OWNER, market_id=market.id))
        context = validate_session(token)
        assert context.role is Role.MARKET_OWNER
        assert context.market_id == market.id

    @pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c"])
    def test_garbage(self, db_session, token):
        assert validate_session(token) is None

    def test_tampered_token(self, db_session, admin_user):
        token = issue_session(AuthContext(principal_id=admin_user.id, role=Role.ADMIN))
        tampered = ("A" if token[0] != "A" else "B") + token[1:]
        assert validate_session(tampered) is None

    def test_token_signed_with_another_key(self, app, db_session, admin_user, monkeypatch):
        token = issue_session(AuthContext(principal_id=admin_user.id, role=Role.ADMIN))
        monkeypatch.setitem(app.config, "SECRET_KEY", "rotated-secret")
        assert validate_session(token) is None

    def test_expired_token(self, app, db_session, admin_user, monkeypatch):
        token = issue_session(AuthContext(principal_id=admin_user.id, role=Role.ADMIN))
        monkeypatch.setitem(app.config, "SESSION_MAX_AGE_SECONDS", -1)
        assert validate_session(token) is None

    def test_deleted_user(self, db_session, admin_user, employee_user):
        token = issue_session(AuthContext(principal_id=employee_user.id, role=Role.EMPLOYEE))
        auth_service.delete_user(employee_user.id)
        assert validate_session(token) is None

    def test_deleted_market(self, db_session, market):
        market_id = market.id
        token = issue_session(AuthContext(principal_id=market_id, role=Role.MARKET_OWNER, market_id=market_id))
        market_service.delete_market(market_id)
        assert validate_session(token) is None

    def test_demoted_user_token_is_rejected(self, db_session, admin_user, employee_user):
        token = issue_session(AuthContext(principal_id=employee_user.id, role=Role.ADMIN))
        assert validate_session(token) is None

    def test_rejected_session_is_logged(self, client, db_session):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Access denied"}

        db_session.expire_all()
        assert db_session.query(SecurityEvent).filter_by(event_type="SESSION_REJECTED").count() == 1

    def test_role_casing_does_not_matter_on_create(self, db_session):
        user = auth_service.create_user(name="Legacy", role="employee", pin="4321")
        assert db.session.get(User, user.id).role == "EMPLOYEE"

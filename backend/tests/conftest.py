"""
Pytest fixtures for market orders backend tests.

Provides test database setup, staff/market/catalog fixtures and logged-in
test clients for each role.
"""

import pytest

from market_orders import create_app
from market_orders.extensions import db
from market_orders.services import auth_service, catalog_service, market_service


ADMIN_PIN = "1234"
EMPLOYEE_PIN = "5678"
MARKET_PHONE = "5551234567"
OTHER_MARKET_PHONE = "5559876543"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'PIN_HASH_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin_user(db_session):
    return auth_service.create_user(name="Admin", role="ADMIN", pin=ADMIN_PIN)


@pytest.fixture(scope='function')
def employee_user(db_session):
    return auth_service.create_user(name="Employee", role="EMPLOYEE", pin=EMPLOYEE_PIN)


@pytest.fixture(scope='function')
def market(db_session):
    return market_service.create_market({"name": "Yildiz Market", "phoneNumber": MARKET_PHONE})


@pytest.fixture(scope='function')
def other_market(db_session):
    return market_service.create_market({"name": "Guven Bakkal", "phoneNumber": OTHER_MARKET_PHONE})


@pytest.fixture(scope='function')
def category(db_session):
    return catalog_service.create_category({"name": "Bakery"})


@pytest.fixture(scope='function')
def item(db_session, category):
    return catalog_service.create_item({"categoryId": category.id, "name": "Simit", "price": "12.50"})


@pytest.fixture(scope='function')
def second_item(db_session, category):
    return catalog_service.create_item({"categoryId": category.id, "name": "Pogaca", "price": "8.75"})


def login(client, credential: str):
    """Helper to log a test client in; the session cookie stays in its jar."""
    return client.post('/api/auth/login', json={'credential': credential})


def _logged_in_client(app, credential):
    test_client = app.test_client()
    resp = login(test_client, credential)
    assert resp.status_code == 200, resp.get_json()
    return test_client


@pytest.fixture(scope='function')
def admin_client(app, admin_user):
    return _logged_in_client(app, ADMIN_PIN)


@pytest.fixture(scope='function')
def employee_client(app, employee_user):
    return _logged_in_client(app, EMPLOYEE_PIN)


@pytest.fixture(scope='function')
def owner_client(app, admin_user, market):
    """Market owner session; an admin exists so market orders have a system user."""
    return _logged_in_client(app, MARKET_PHONE)


def basket_line(item, quantity=1, unit_price=None) -> dict:
    return {
        'itemId': item.id,
        'quantity': quantity,
        'unitPrice': str(unit_price if unit_price is not None else item.price),
    }

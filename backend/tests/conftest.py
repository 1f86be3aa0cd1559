"""
Pytest fixtures for bank portal backend tests.

Provides test database setup, user factories and logged-in test clients.
"""

import pytest
from bankportal import create_app
from bankportal.extensions import db
from bankportal.models import ROLE_CUSTOMER, ROLE_STAFF
from bankportal.services.auth_service import register_user


TEST_PASSWORD = "Secret123"

BASE_TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'BCRYPT_ROUNDS': 4,
    'AUTH_COOKIE_SECURE': False,
    'RATELIMIT_ENABLED': False,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(dict(BASE_TEST_CONFIG))

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


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
def client(app, db_session):
    """Create test client."""
    return app.test_client()


_counter = {"n": 0}


def make_user(role: str = ROLE_CUSTOMER, username: str | None = None, password: str = TEST_PASSWORD, **overrides):
    """Register a user with unique identifying fields."""
    _counter["n"] += 1
    n = _counter["n"]
    fields = {
        "username": username or f"{role}_{n}",
        "full_name": "Test User",
        "id_number": f"{900000 + n}",
        "account_number": f"{100000000 + n}",
        "password": password,
        "role": role,
    }
    fields.update(overrides)
    return register_user(**fields)


def registration_body(n: int, **overrides) -> dict:
    body = {
        "username": f"new_user_{n}",
        "fullName": "New User",
        "idNumber": f"{7000000 + n}",
        "accountNumber": f"{5500000 + n}",
        "password": TEST_PASSWORD,
    }
    body.update(overrides)
    return body


def login_customer(client, user, password: str = TEST_PASSWORD):
    return client.post('/api/auth/customer-login', json={
        'username': user.username,
        'accountNumber': user.account_number,
        'password': password,
    })


def login_staff(client, user, password: str = TEST_PASSWORD):
    return client.post('/api/auth/staff-login', json={
        'username': user.username,
        'password': password,
    })


@pytest.fixture(scope='function')
def customer(db_session):
    return make_user(ROLE_CUSTOMER)


@pytest.fixture(scope='function')
def staff(db_session):
    return make_user(ROLE_STAFF)


@pytest.fixture(scope='function')
def customer_client(app, customer):
    """Test client holding a customer session cookie."""
    client = app.test_client()
    response = login_customer(client, customer)
    assert response.status_code == 200
    return client


@pytest.fixture(scope='function')
def staff_client(app, staff):
    """Test client holding a staff session cookie."""
    client = app.test_client()
    response = login_staff(client, staff)
    assert response.status_code == 200
    return client


VALID_PAYMENT = {
    "amount": "150.00",
    "currency": "USD",
    "payeeAccount": "ABC1234567",
    "swiftCode": "ABCDUS33XXX",
}

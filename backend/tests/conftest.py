"""
Pytest fixtures for Craft Market backend tests.

Provides the app (in-memory SQLite, throwaway RSA key pair), a clean
database per test, captured outbound mail, and user/product factories.
"""

import pytest

from craftmarket import create_app
from craftmarket.cli import generate_key_pair
from craftmarket.extensions import db
from craftmarket.models import Product, User
from craftmarket.roles import Role, UserStatus
from craftmarket.services import credential_service, mail_service
from craftmarket.time_utils import utcnow


PASSWORD = "Str0ng!Pw"
TEST_BCRYPT_ROUNDS = 4


@pytest.fixture(scope='session')
def key_pair():
    """One RSA key pair for the whole run (generation is slow)."""
    return generate_key_pair()


@pytest.fixture(scope='session')
def app(key_pair):
    """Create application for testing."""
    private_pem, public_pem = key_pair
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'JWT_PRIVATE_KEY': private_pem,
        'JWT_PUBLIC_KEY': public_pem,
        'BCRYPT_ROUNDS': TEST_BCRYPT_ROUNDS,
        'RESEND_API_KEY': '',
        'FRONTEND_URL': 'http://localhost:3000',
        'CORS_ALLOWED_ORIGINS': 'http://localhost:3000',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def settings(app):
    return app.extensions["settings"]


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    db.session.rollback()
    # Clear all data but keep schema
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    # Cleanup after test
    db.session.rollback()


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    """Capture verification and reset mails instead of calling Resend."""
    sent = []

    def fake_verification(settings, email, name, otp):
        sent.append({"kind": "verification", "to": email, "otp": otp})
        return True, None

    def fake_reset(settings, email, name, user_id, token):
        sent.append({"kind": "password_reset", "to": email, "user_id": user_id, "token": token})
        return True, None

    monkeypatch.setattr(mail_service, "send_verification_email", fake_verification)
    monkeypatch.setattr(mail_service, "send_password_reset_email", fake_reset)
    return sent


@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory for verified users that skip the OTP flow."""
    counter = {"n": 0}

    def _make(email=None, role=Role.CUSTOMER, status=UserStatus.ACTIVE, password=PASSWORD, verified=True):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            username=f"user{n}",
            email=email or f"user{n}@example.com",
            mobile=f"0180000{n:04d}",
            full_name=f"User {n}",
            password_hash=credential_service.hash_password(password, rounds=TEST_BCRYPT_ROUNDS),
            role=Role(role).value,
            status=UserStatus(status).value,
            verified_at=utcnow() if verified else None,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def customer(make_user):
    return make_user(email="carol@example.com")


@pytest.fixture(scope='function')
def other_customer(make_user):
    return make_user(email="dave@example.com")


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user(email="admin@example.com", role=Role.ADMIN)


@pytest.fixture(scope='function')
def super_admin(make_user):
    return make_user(email="root@example.com", role=Role.SUPER_ADMIN)


@pytest.fixture(scope='function')
def customer_headers(client, customer):
    return auth_headers(get_auth_token(client, customer.email, PASSWORD))


@pytest.fixture(scope='function')
def other_customer_headers(client, other_customer):
    return auth_headers(get_auth_token(client, other_customer.email, PASSWORD))


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.email, PASSWORD))


@pytest.fixture(scope='function')
def super_admin_headers(client, super_admin):
    return auth_headers(get_auth_token(client, super_admin.email, PASSWORD))


@pytest.fixture(scope='function')
def make_product(db_session):
    def _make(name="Jute Basket", price_cents=1000, stock=10):
        product = Product(name=name, price_cents=price_cents, stock=stock)
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    return make_product()


def get_auth_token(client, email: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/v1/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json['result']['accessToken']
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}

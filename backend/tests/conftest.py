"""
Pytest fixtures for storefront backend tests.

Provides the app on an in-memory database, per-test table cleanup, users
with identities and bearer tokens, and a small product catalog.
"""

import pytest

from storefront import create_app
from storefront.extensions import db
from storefront.models import Product, User
from storefront.services import session_service
from storefront.services.permission_service import Identity
from storefront.services.settings_service import DEFAULT_SETTINGS


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ALLOW_OVERSELL': False,
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


def _make_user(db_session, username, role="user", status="verified"):
    user = User(username=username, role=role, status=status)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _make_user(db_session, "admin", role="admin")


@pytest.fixture(scope='function')
def shopper_user(db_session):
    """Verified end user."""
    return _make_user(db_session, "user1")


@pytest.fixture(scope='function')
def other_user(db_session):
    """Second verified end user, for owner-scoping checks."""
    return _make_user(db_session, "zooka")


@pytest.fixture(scope='function')
def unverified_user(db_session):
    return _make_user(db_session, "newcomer", status="pending_review")


@pytest.fixture(scope='function')
def guest_user(db_session):
    return _make_user(db_session, "visitor", role="guest")


@pytest.fixture(scope='function')
def admin(admin_user):
    return Identity.from_user(admin_user)


@pytest.fixture(scope='function')
def shopper(shopper_user):
    return Identity.from_user(shopper_user)


@pytest.fixture(scope='function')
def other(other_user):
    return Identity.from_user(other_user)


@pytest.fixture(scope='function')
def unverified(unverified_user):
    return Identity.from_user(unverified_user)


@pytest.fixture(scope='function')
def settings():
    return DEFAULT_SETTINGS


@pytest.fixture(scope='function')
def widget(db_session):
    """Standard Widget: 25.00, cost 15.00, 100 on hand."""
    product = Product(
        name="Standard Widget",
        price_cents=2500,
        cost_cents=1500,
        stock=100,
        barcode="123456",
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def gadget(db_session):
    """Premium Gadget: 120.00, cost 80.00, 50 on hand."""
    product = Product(
        name="Premium Gadget",
        price_cents=12000,
        cost_cents=8000,
        stock=50,
        barcode="789012",
        category="Electronics",
    )
    db_session.add(product)
    db_session.commit()
    return product


def issue_token(user) -> str:
    """Helper to get a bearer token for a user (identity provider handoff)."""
    _, token = session_service.create_session(user.id)
    return token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return auth_headers(issue_token(admin_user))


@pytest.fixture(scope='function')
def shopper_headers(shopper_user):
    return auth_headers(issue_token(shopper_user))


@pytest.fixture(scope='function')
def other_headers(other_user):
    return auth_headers(issue_token(other_user))


@pytest.fixture(scope='function')
def unverified_headers(unverified_user):
    return auth_headers(issue_token(unverified_user))


@pytest.fixture(scope='function')
def guest_headers(guest_user):
    return auth_headers(issue_token(guest_user))

"""
Pytest fixtures for Tillpoint backend tests.

Provides test database setup, users with session tokens, products and the
test client.
"""

import pytest

from tillpoint import create_app
from tillpoint.extensions import db
from tillpoint.models import Product, User
from tillpoint.services.auth_service import hash_password
from tillpoint.services import session_service

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'BCRYPT_ROUNDS': 4,
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


def _make_user(db_session, username, role):
    user = User(username=username, password_hash=hash_password(PASSWORD), role=role)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin(db_session):
    return _make_user(db_session, "admin", "admin")


@pytest.fixture(scope='function')
def cashier(db_session):
    return _make_user(db_session, "cashier", "cashier")


@pytest.fixture(scope='function')
def admin_headers(admin):
    _, token = session_service.create_session(admin)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope='function')
def cashier_headers(cashier):
    _, token = session_service.create_session(cashier)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(name, price_cents, quantity, barcode=None)."""
    def _make(name, price_cents=1000, quantity=10, barcode=None):
        product = Product(name=name, price_cents=price_cents, quantity=quantity, barcode=barcode)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def widget(make_product):
    """Price 250, stock 10."""
    return make_product("Widget", price_cents=250, quantity=10, barcode="W-001")


@pytest.fixture(scope='function')
def gadget(make_product):
    """Price 1000, stock 5."""
    return make_product("Gadget", price_cents=1000, quantity=5, barcode="G-001")

"""
Pytest fixtures for cart registry backend tests.

Provides an in-memory database app, per-test table cleanup, admin
credentials and small factories for registrations.
"""

from datetime import date

import pytest
from cart_registry import create_app
from cart_registry.extensions import db
from cart_registry.models import Cart, CartEvent, Registration
from cart_registry.services import cart_service
from cart_registry.services.commands import Customer, NewRegistrationCommand


ADMIN_SECRET = "test-admin-secret"
ADMIN_STATIC_KEY = "test-static-key"
ADMIN_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ADMIN_SECRET': ADMIN_SECRET,
        'ADMIN_STATIC_KEY': ADMIN_STATIC_KEY,
        'ADMIN_PASSWORD': ADMIN_PASSWORD,
        'EMAIL_HOST': '',
        'EMAIL_USER': '',
        'BASE_IMAGE_URL': 'https://img.example.com/carts',
        'TRANSACTION_ATTEMPTS': 3,
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
    """Fresh tables for each test."""
    with app.app_context():
        db.session.query(CartEvent).delete()
        db.session.query(Cart).delete()
        db.session.query(Registration).delete()
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def settings(app):
    return app.extensions["registry_settings"]


@pytest.fixture(scope='function')
def static_key_headers():
    return {"X-Admin-Key": ADMIN_STATIC_KEY}


@pytest.fixture(scope='function')
def new_sale(db_session, settings):
    """Factory: register a new sale and return the Registration."""
    def _make(
        serial="SN1",
        *,
        model="VERTX",
        name="Giulia Bianchi",
        email="giulia@example.it",
        purchase_date=date(2024, 1, 15),
        order_ref=None,
        warranty_months=None,
    ):
        command = NewRegistrationCommand(
            serial=serial,
            model=model,
            customer=Customer(name=name, email=email),
            location="Pro Shop Milano",
            purchase_date=purchase_date,
            order_ref=order_ref,
            warranty_months=warranty_months,
        )
        return cart_service.register_new_sale(command, settings=settings)

    return _make

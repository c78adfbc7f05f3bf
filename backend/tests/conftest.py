"""
Pytest fixtures for stockroom backend tests.

Provides the app against in-memory SQLite, the test client, a clean session
per test, seeded catalog rows and forwarded-identity headers.
"""

from decimal import Decimal

import pytest
from stockroom import create_app
from stockroom.extensions import db, get_document_store
from stockroom.models import ROLE_ADMIN, ROLE_USER
from stockroom.services import catalog_service, family_service, supplier_service, user_service
from stockroom.services.memory_store import MemoryDocumentStore


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DOCUMENT_STORE': 'sql',
        'STORE_WRITE_ATTEMPTS': 1,
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

        app.config['FAMILY_DELETE_POLICY'] = 'guard'
        app.config['PRICE_UPDATE_ALLOW_DISCOUNTS'] = False

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def sql_store(app, db_session):
    """SQL-backed document store bound to the test app."""
    return get_document_store()


@pytest.fixture(scope='function')
def memory_store():
    """Fresh in-memory document store (no app needed)."""
    return MemoryDocumentStore()


@pytest.fixture(scope='function')
def admin_user(sql_store):
    return user_service.create_user(
        sql_store,
        patch={"name": "Admin", "email": "admin@stockroom.local", "role": ROLE_ADMIN},
        user_id="admin",
    )


@pytest.fixture(scope='function')
def clerk_user(sql_store):
    return user_service.create_user(
        sql_store,
        patch={"name": "Clerk", "email": "clerk@stockroom.local", "role": ROLE_USER},
        user_id="clerk",
    )


@pytest.fixture(scope='function')
def supplier(sql_store):
    return supplier_service.create_supplier(sql_store, patch={"name": "Acme Wholesale"})


@pytest.fixture(scope='function')
def family(sql_store):
    return family_service.create_family(sql_store, name="Snacks")


@pytest.fixture(scope='function')
def product(sql_store, supplier, family):
    """Product with purchase 10.00, sale 15.00 and 5 units in stock."""
    return catalog_service.create_product(sql_store, patch={
        "name": "Crackers",
        "purchase_price": Decimal("10.00"),
        "sale_price": Decimal("15.00"),
        "stock": 5,
        "min_stock": 2,
        "barcode": "7790001000011",
        "supplier_id": supplier["id"],
        "family_id": family["id"],
    })


def user_headers(user_id: str) -> dict:
    """Helper to create forwarded-identity headers."""
    return {'X-User-Id': user_id}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return user_headers(admin_user["id"])


@pytest.fixture(scope='function')
def clerk_headers(clerk_user):
    return user_headers(clerk_user["id"])

"""
Pytest fixtures for kitchen backend tests.

Provides the in-memory test database, a recipe/pricing catalog that matches
the worked pricing example, users per role, and auth header helpers.
"""

from datetime import timedelta

import pytest

from kitchen import create_app
from kitchen.extensions import db, broadcaster
from kitchen.models import Customer, User
from kitchen.models.auth import ROLE_ADMIN, ROLE_EDITOR, ROLE_USER
from kitchen.services import (
    fixed_costs_service,
    inventory_service,
    pricing_service,
    products_service,
    session_service,
)
from kitchen.services.auth_service import hash_password
from kitchen.time_utils import to_utc_z, utcnow


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'BCRYPT_ROUNDS': 4,
        'NOTIFICATION_QUEUE_SIZE': 5,
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
        broadcaster.clear()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        broadcaster.clear()


def _make_user(db_session, name: str, email: str, role: str) -> User:
    user = User(name=name, email=email, password_hash=hash_password(PASSWORD), role=role)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _make_user(db_session, "Admin", "admin@kitchen.test", ROLE_ADMIN)


@pytest.fixture(scope='function')
def editor_user(db_session):
    return _make_user(db_session, "Editor", "editor@kitchen.test", ROLE_EDITOR)


@pytest.fixture(scope='function')
def plain_user(db_session):
    return _make_user(db_session, "Cook", "cook@kitchen.test", ROLE_USER)


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user: User) -> dict:
    _, token = session_service.create_session(user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return headers_for(admin_user)


@pytest.fixture(scope='function')
def editor_headers(editor_user):
    return headers_for(editor_user)


@pytest.fixture(scope='function')
def user_headers(plain_user):
    return headers_for(plain_user)


# ---------------------------------------------------------------------------
# Catalog: flour (kg) and eggs (un); bread uses 0.2 kg flour per unit and
# costs 0.60; cake uses 0.5 kg flour + 3 eggs and costs 3.00.
# ---------------------------------------------------------------------------

@pytest.fixture(scope='function')
def flour(db_session):
    raw = inventory_service.create_input({"name": "Flour", "stock_limit": 2})
    return inventory_service.create_inventory_item({
        "input_id": raw.id,
        "quantity": 10,
        "unit": "kg",
        "cost_per_unit": "3,00",
    })


@pytest.fixture(scope='function')
def eggs(db_session):
    raw = inventory_service.create_input({"name": "Eggs", "stock_limit": 6})
    return inventory_service.create_inventory_item({
        "input_id": raw.id,
        "quantity": 12,
        "unit": "un",
        "cost_per_unit": "0.50",
    })


@pytest.fixture(scope='function')
def bread(flour):
    return products_service.create_product({
        "name": "Bread",
        "ingredients": [{"inventory_item_id": flour.id, "quantity_per_yield": "0.2"}],
    })


@pytest.fixture(scope='function')
def cake(flour, eggs):
    return products_service.create_product({
        "name": "Cake",
        "ingredients": [
            {"inventory_item_id": flour.id, "quantity_per_yield": "0.5"},
            {"inventory_item_id": eggs.id, "quantity_per_yield": 3},
        ],
    })


@pytest.fixture(scope='function')
def fixed_costs(db_session):
    """500 of monthly overhead over 1000 sales: 0.50 per unit."""
    return fixed_costs_service.save_fixed_costs({
        "rent": 300,
        "taxes": 100,
        "utilities": 50,
        "marketing": 25,
        "accounting": 25,
        "expected_monthly_sales": 1000,
    })


@pytest.fixture(scope='function')
def bread_pricing(bread, fixed_costs):
    return pricing_service.create_pricing({
        "product_id": bread.id,
        "profit_margin_pct": 20,
        "platform_fee_pct": 10,
    })


@pytest.fixture(scope='function')
def cake_pricing(cake, fixed_costs):
    return pricing_service.create_pricing({
        "product_id": cake.id,
        "profit_margin_pct": 20,
        "platform_fee_pct": 10,
    })


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(
        name="Maria Silva",
        email="maria@example.com",
        phone="+55 11 99999-0000",
        address="Rua das Flores, 10",
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def due_date():
    return to_utc_z(utcnow() + timedelta(days=1))

"""
Pytest fixtures for tradebook backend tests.

Provides test database setup, entity factories, and test client.
"""

import pytest
from tradebook import create_app
from tradebook.extensions import db
from tradebook.models import Item, Customer, Supplier


ACTOR_ID = 7


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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
def actor_headers():
    """Headers identifying the acting user on write routes."""
    return {'X-Actor-Id': str(ACTOR_ID)}


@pytest.fixture(scope='function')
def make_item(db_session):
    """Factory: item whose opening stock is also its current stock."""
    counter = {'n': 0}

    def _make(stock: int = 10, cost_cents: int = 500, price_cents: int = 1000, **kwargs) -> Item:
        counter['n'] += 1
        item = Item(
            sku=kwargs.pop('sku', f"SKU-{counter['n']:03d}"),
            name=kwargs.pop('name', f"Item {counter['n']}"),
            opening_stock=stock,
            current_stock=stock,
            cost_price_cents=cost_cents,
            selling_price_cents=price_cents,
            **kwargs,
        )
        db_session.add(item)
        db_session.commit()
        return item

    return _make


@pytest.fixture(scope='function')
def customer(db_session):
    """Create an active customer with a zero balance."""
    c = Customer(name="Ahmed Hassan", phone="0911000000", current_balance_cents=0)
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def supplier(db_session):
    """Create an active supplier with a zero balance."""
    s = Supplier(name="Nile Wholesale", contact_person="Fatima Ali", current_balance_cents=0)
    db_session.add(s)
    db_session.commit()
    return s

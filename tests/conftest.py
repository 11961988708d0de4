import pytest
from datetime import timedelta
from flask import Flask

from catalog_inventory import create_app
from catalog_inventory.models import (
    db, Product, ProductVariation, InventoryItem, OutboxEvent, VariationType
)
from catalog_inventory.outbox import ExponentialBackoff, OutboxDispatcher
from catalog_inventory.repositories import CategoryRepository
from catalog_inventory.utils.clock import utcnow


class FakeClock:
    """Real UTC time shifted by a controllable offset"""

    def __init__(self):
        self.offset = timedelta(0)

    def __call__(self):
        return utcnow() + self.offset

    def advance(self, seconds):
        self.offset += timedelta(seconds=seconds)


@pytest.fixture(scope='session')
def app():
    """Create application for the tests."""
    app = create_app('testing')

    with app.app_context():
        # Create all database tables
        db.create_all()
        yield app
        # Clean up
        db.drop_all()


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def db_session(app):
    """Create a database session for a test, with the default categories seeded."""
    with app.app_context():
        db.create_all()
        CategoryRepository().seed_defaults()

        yield db.session

        # Clean up tables
        db.session.rollback()
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()


@pytest.fixture
def file_db_app(tmp_path):
    """Bare app on a file-backed SQLite database, so each app context gets its own connection."""
    race_app = Flask(__name__)
    race_app.config.update(
        TESTING=True,
        SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'inventory.db'}",
    )
    db.init_app(race_app)

    with race_app.app_context():
        db.create_all()
        CategoryRepository().seed_defaults()
        create_test_product(db.session, variations=[ProductVariation(id=5, image_urls=[])])

    yield race_app

    with race_app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def event_bus(app):
    return app.extensions['event_bus']


@pytest.fixture
def dispatcher(app, event_bus, clock):
    """Dispatcher over the app's consumers with a controllable clock and no jitter."""
    return OutboxDispatcher(
        event_bus.registry,
        worker_id='test-worker',
        batch_size=50,
        lease_seconds=30,
        max_attempts=3,
        backoff=ExponentialBackoff(base_seconds=1.0, cap_seconds=8.0, jitter=False),
        clock=clock,
        app=app
    )


# Helper functions for tests
def create_test_product(db_session, variations=None, **kwargs):
    """Create a product directly, without emitting events."""
    import uuid
    defaults = {
        'code': f'TEST-{str(uuid.uuid4())[:8]}',
        'title': 'Test Product',
        'variation_type': VariationType.NONE,
        'category_id': 1,
        'merchant_id': 1,
        'about': [],
    }
    defaults.update(kwargs)

    product = Product(**defaults)
    product.variations = variations if variations is not None else [ProductVariation(image_urls=[])]
    db_session.add(product)
    db_session.commit()
    return product


def create_test_inventory_item(db_session, variation, **kwargs):
    """Create a test inventory item with default values."""
    defaults = {
        'product_variation_id': variation.id,
        'country_code': 'US',
        'quantity': 0,
    }
    defaults.update(kwargs)

    item = InventoryItem(**defaults)
    db_session.add(item)
    db_session.commit()
    return item


def widget_payload(**overrides):
    payload = {
        'title': 'Widget',
        'code': 'W-1',
        'variationType': 'NONE',
        'categoryId': 1,
    }
    payload.update(overrides)
    return payload


def outbox_rows(status=None):
    query = OutboxEvent.query.order_by(OutboxEvent.id)
    if status is not None:
        query = query.filter_by(status=status)
    return query.all()


def inventory_pairs():
    """Set of (variation id, country) pairs currently stored"""
    return {(item.product_variation_id, item.country_code) for item in InventoryItem.query.all()}

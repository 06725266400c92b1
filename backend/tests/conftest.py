"""
Pytest fixtures for the minimarket backend tests.

Provides an app on in-memory SQLite, a test client, a controllable clock,
and a pure (Flask-free) state container with an in-memory Product Store.
"""

import itertools
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from minimarket import create_app
from minimarket.config import TestingConfig
from minimarket.extensions import db
from minimarket.models import Product
from minimarket.services.blob_store import MemoryBlobStore
from minimarket.services.product_cache import ProductCache
from minimarket.state import StateContainer
from minimarket.validation import RemoteStoreError


BASE_TIME = datetime(2024, 5, 10, 12, 0, 0)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = BASE_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeStore:
    """In-memory Product Store. Set `fail` to make every write raise RemoteStoreError."""

    def __init__(self, products=()):
        self.rows = {p.id: p for p in products}
        self.fail = False
        self.calls = []

    def _check(self):
        if self.fail:
            raise RemoteStoreError("store unavailable")

    def list(self):
        self._check()
        return sorted(self.rows.values(), key=lambda p: p.created_at, reverse=True)

    def get(self, product_id):
        return self.rows.get(product_id)

    def insert(self, product):
        self._check()
        self.rows[product.id] = product
        self.calls.append(("insert", product.id))
        return product

    def update(self, product):
        return self.update_many([product])[0]

    def update_many(self, products):
        self._check()
        for product in products:
            if product.id not in self.rows:
                raise RemoteStoreError("product not found")
        for product in products:
            self.rows[product.id] = product
        self.calls.append(("update_many", [p.id for p in products]))
        return list(products)

    def delete(self, product_id):
        self._check()
        if product_id not in self.rows:
            raise RemoteStoreError("product not found")
        del self.rows[product_id]
        self.calls.append(("delete", product_id))


# =============================================================================
# PURE DOMAIN FIXTURES
# =============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_product():
    """Factory for domain products with sensible defaults."""
    counter = itertools.count(1)

    def _make(**overrides):
        n = next(counter)
        fields = dict(
            id=f"p-{n}",
            code=f"C{n:03d}",
            name=f"Product {n}",
            description="",
            category="General",
            brand="",
            cost_price=Decimal("5.00"),
            sale_price=Decimal("8.00"),
            profit_percentage=Decimal("60.00"),
            current_stock=10,
            min_stock=2,
            max_stock=50,
            expiration_date=None,
            image_url=None,
            created_at=BASE_TIME,
            updated_at=BASE_TIME,
        )
        fields.update(overrides)
        return Product(**fields)

    return _make


@pytest.fixture
def audit_log():
    """Collects audit records in place of the database sink."""
    return []


@pytest.fixture
def container(clock, audit_log):
    """State container over a MemoryBlobStore, restored with the seed users."""
    c = StateContainer(
        MemoryBlobStore(),
        ProductCache(),
        clock=clock,
        audit_sink=lambda **record: audit_log.append(record),
    )
    c.restore()
    return c


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def stocked(container, store, make_product):
    """Put products into both the fake store and the container's cache."""
    def _stock(*products):
        for product in products:
            store.rows[product.id] = product
        container.products.load(list(container.products.snapshot()) + list(products))
        return products if len(products) > 1 else products[0]

    return _stock


# =============================================================================
# FLASK FIXTURES
# =============================================================================

@pytest.fixture
def app(clock):
    """Fresh app per test; the state container lives on the app."""
    app = create_app(TestingConfig)
    runtime = app.extensions["minimarket"]
    runtime.container.clock = clock

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

    runtime.close()


@pytest.fixture
def runtime(app):
    rt = app.extensions["minimarket"]
    rt.load()
    return rt


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def login(client):
    """Log in through the API and return the response JSON."""
    def _login(username="admin"):
        resp = client.post("/api/auth/login", json={"username": username, "password": "x"})
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()

    return _login

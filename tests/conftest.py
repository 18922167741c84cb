"""Pytest fixtures for storefront tests."""

import tempfile
from pathlib import Path

import pytest

from storefront.catalog import ProductCatalog
from storefront.cart import CartService
from storefront.document_store import DocumentStore
from storefront.models import Role, UserContext
from storefront.order_assembler import OrderAssembler
from storefront.order_lifecycle import OrderLifecycle
from storefront.order_store import OrderStore
from storefront.stock_ledger import StockLedger


class RecordingNotifier:
    """Keeps every notification in memory."""

    def __init__(self):
        self.sent = []

    def send(self, recipient, kind, payload):
        self.sent.append((recipient, kind, payload))


class FailingNotifier:
    """Raises on every send, like an unreachable mail provider."""

    def __init__(self):
        self.attempts = 0

    def send(self, recipient, kind, payload):
        self.attempts += 1
        raise ConnectionError("mail provider unreachable")


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_dir):
    """A fresh document store in a temporary directory."""
    return DocumentStore(temp_dir / "data")


@pytest.fixture
def ledger(store):
    return StockLedger(store)


@pytest.fixture
def catalog(store, ledger):
    return ProductCatalog(store, ledger)


@pytest.fixture
def carts(store):
    return CartService(store)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def assembler(store, ledger, notifier):
    return OrderAssembler(store, ledger, notifier)


@pytest.fixture
def lifecycle(store, ledger, notifier):
    return OrderLifecycle(store, ledger, notifier)


@pytest.fixture
def orders(store):
    return OrderStore(store)


@pytest.fixture
def alice():
    return UserContext(user_id="user-alice", email="alice@example.com", name="Alice")


@pytest.fixture
def bob():
    return UserContext(user_id="user-bob", email="bob@example.com", name="Bob")


@pytest.fixture
def admin():
    return UserContext(user_id="user-admin", email="ops@example.com", name="Ops", role=Role.ADMIN)


@pytest.fixture
def products(catalog):
    """Two products with five units each: A at 10.00 and B at 5.00."""
    product_a = catalog.add_product("Product A", "10.00", 5)
    product_b = catalog.add_product("Product B", "5.00", 5)
    return product_a, product_b

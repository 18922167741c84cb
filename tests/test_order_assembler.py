"""Tests for OrderAssembler.place_order."""

import threading
from decimal import Decimal

import pytest

from storefront.cart import CartService
from storefront.errors import (
    ConflictError,
    EmptyCartError,
    InsufficientStockError,
    ValidationError,
)
from storefront.models import OrderStatus
from storefront.notifications import NotificationKind
from storefront.order_assembler import OrderAssembler

from .conftest import FailingNotifier


def place(assembler, user):
    return assembler.place_order(user, "1 Main St, Springfield", "card")


class TestPlaceOrder:
    def test_places_order_and_updates_stock(self, assembler, carts, ledger, products, alice):
        product_a, product_b = products
        carts.add_item(alice.user_id, product_a.id, 2)
        carts.add_item(alice.user_id, product_b.id, 1)

        order = place(assembler, alice)

        assert order.total_amount == Decimal("25.00")
        assert order.status == OrderStatus.PENDING
        assert order.user_id == alice.user_id
        assert [(i.product_id, i.quantity, i.price) for i in order.items] == [
            (product_a.id, 2, Decimal("10.00")),
            (product_b.id, 1, Decimal("5.00")),
        ]
        assert ledger.available(product_a.id) == 3
        assert ledger.available(product_b.id) == 4
        assert carts.get_cart(alice.user_id).items == []

    def test_order_is_persisted(self, assembler, carts, orders, products, alice):
        product_a, _ = products
        carts.add_item(alice.user_id, product_a.id, 1)

        order = place(assembler, alice)

        stored = orders.get_order(order.id, alice.user_id)
        assert stored == order

    def test_stock_movements_reference_order(self, assembler, carts, ledger, products, alice):
        product_a, _ = products
        carts.add_item(alice.user_id, product_a.id, 2)

        order = place(assembler, alice)

        movements = ledger.movements(product_a.id)
        assert [(m.change, m.reason) for m in movements] == [(-2, f"order:{order.id}")]

    def test_uses_snapshot_price_not_catalog_price(self, assembler, carts, store, products, alice):
        product_a, _ = products
        carts.add_item(alice.user_id, product_a.id, 2)
        with store.transaction() as data:
            data["products"][product_a.id]["price"] = "99.00"

        order = place(assembler, alice)

        assert order.total_amount == Decimal("20.00")

    def test_sends_confirmation(self, assembler, carts, notifier, products, alice):
        product_a, _ = products
        carts.add_item(alice.user_id, product_a.id, 1)

        order = place(assembler, alice)

        assert len(notifier.sent) == 1
        recipient, kind, payload = notifier.sent[0]
        assert recipient == "alice@example.com"
        assert kind == NotificationKind.ORDER_CONFIRMATION
        assert payload["order_id"] == order.id
        assert payload["total_amount"] == "10.00"


class TestPlaceOrderFailures:
    def test_empty_cart(self, assembler, carts, alice):
        carts.get_cart(alice.user_id)

        with pytest.raises(EmptyCartError):
            place(assembler, alice)

    def test_no_cart_at_all(self, assembler, alice):
        with pytest.raises(EmptyCartError):
            place(assembler, alice)

    def test_insufficient_stock_leaves_everything_intact(
        self, assembler, carts, store, ledger, orders, products, alice
    ):
        product_a, _ = products
        carts.add_item(alice.user_id, product_a.id, 5)
        with store.transaction() as data:
            data["carts"][alice.user_id]["items"][0]["quantity"] = 6

        with pytest.raises(InsufficientStockError) as exc_info:
            place(assembler, alice)

        err = exc_info.value
        assert err.product_id == product_a.id
        assert err.requested == 6
        assert err.available == 5
        assert ledger.available(product_a.id) == 5
        assert carts.get_cart(alice.user_id).items[0].quantity == 6
        assert orders.all_orders() == ([], 0)

    def test_first_short_item_is_reported(self, assembler, carts, catalog, ledger, products, alice):
        product_a, product_b = products
        carts.add_item(alice.user_id, product_a.id, 3)
        carts.add_item(alice.user_id, product_b.id, 4)
        ledger.reserve(product_a.id, 4)
        ledger.reserve(product_b.id, 4)

        with pytest.raises(InsufficientStockError) as exc_info:
            place(assembler, alice)

        assert exc_info.value.product_id == product_a.id

    @pytest.mark.parametrize("address,payment", [("", "card"), ("1 Main St", "  ")])
    def test_blank_fields_rejected(self, assembler, carts, products, alice, address, payment):
        product_a, _ = products
        carts.add_item(alice.user_id, product_a.id, 1)

        with pytest.raises(ValidationError):
            assembler.place_order(alice, address, payment)

    def test_stock_race_inside_transaction_rolls_back(
        self, store, ledger, carts, orders, notifier, products, alice, monkeypatch
    ):
        """A pre-check that passes but loses the race at commit writes nothing."""
        product_a, product_b = products
        carts.add_item(alice.user_id, product_a.id, 2)
        carts.add_item(alice.user_id, product_b.id, 3)

        from storefront import order_assembler as module

        def stale_check(data, cart):
            # Another checkout takes B's stock after our pre-check passed.
            with store.transaction() as txn:
                txn["products"][product_b.id]["stock"] = 1

        monkeypatch.setattr(module, "verify_stock", stale_check)

        with pytest.raises(InsufficientStockError) as exc_info:
            OrderAssembler(store, ledger, notifier).place_order(alice, "addr", "card")

        assert exc_info.value.product_id == product_b.id
        assert ledger.available(product_a.id) == 5
        assert ledger.available(product_b.id) == 1
        assert len(carts.get_cart(alice.user_id).items) == 2
        assert orders.all_orders() == ([], 0)
        assert notifier.sent == []

    def test_cart_changed_during_checkout(self, store, ledger, carts, orders, products, alice, monkeypatch):
        product_a, product_b = products
        carts.add_item(alice.user_id, product_a.id, 1)

        from storefront import order_assembler as module

        def add_while_checking(data, cart):
            CartService(store).add_item(alice.user_id, product_b.id, 1)

        monkeypatch.setattr(module, "verify_stock", add_while_checking)

        with pytest.raises(ConflictError):
            OrderAssembler(store, ledger).place_order(alice, "addr", "card")

        assert orders.all_orders() == ([], 0)
        assert ledger.available(product_a.id) == 5

    def test_notification_failure_does_not_fail_order(self, store, ledger, carts, orders, products, alice):
        product_a, _ = products
        carts.add_item(alice.user_id, product_a.id, 1)
        failing = FailingNotifier()

        order = OrderAssembler(store, ledger, failing).place_order(alice, "addr", "card")

        assert failing.attempts == 1
        assert orders.get_order(order.id, alice.user_id).status == OrderStatus.PENDING
        assert ledger.available(product_a.id) == 4


class TestConcurrentCheckout:
    def test_last_unit_has_exactly_one_winner(self, store, catalog, carts, ledger, orders, alice, bob):
        product = catalog.add_product("Last One", "42.00", 1)
        carts.add_item(alice.user_id, product.id, 1)
        carts.add_item(bob.user_id, product.id, 1)

        barrier = threading.Barrier(2)
        outcomes = {}

        def checkout(user):
            assembler = OrderAssembler(store, ledger)
            barrier.wait()
            try:
                outcomes[user.user_id] = assembler.place_order(user, "addr", "card")
            except InsufficientStockError as e:
                outcomes[user.user_id] = e

        threads = [threading.Thread(target=checkout, args=(u,)) for u in (alice, bob)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        winners = [o for o in outcomes.values() if not isinstance(o, Exception)]
        losers = [o for o in outcomes.values() if isinstance(o, InsufficientStockError)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert ledger.available(product.id) == 0
        assert orders.all_orders()[1] == 1

        loser_id = next(uid for uid, o in outcomes.items() if isinstance(o, Exception))
        assert len(carts.get_cart(loser_id).items) == 1


class TestTotalsInvariant:
    def test_every_order_total_matches_items(self, assembler, catalog, carts, orders, alice, bob):
        pen = catalog.add_product("Pen", "1.99", 50)
        book = catalog.add_product("Book", "12.35", 50)
        for user, lines in ((alice, [(pen, 3), (book, 1)]), (bob, [(book, 2)]), (alice, [(pen, 7)])):
            for product, qty in lines:
                carts.add_item(user.user_id, product.id, qty)
            place(assembler, user)

        stored, _ = orders.all_orders()
        assert len(stored) == 3
        for order in stored:
            assert order.total_amount == sum(i.price * i.quantity for i in order.items)

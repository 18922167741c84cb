"""Tests for StockLedger."""

import random
import threading

import pytest

from storefront.errors import InsufficientStockError, ProductNotFoundError, ValidationError


class TestReserve:
    def test_reserve_decrements(self, ledger, products):
        product_a, _ = products

        remaining = ledger.reserve(product_a.id, 2)

        assert remaining == 3
        assert ledger.available(product_a.id) == 3

    def test_reserve_all_units(self, ledger, products):
        product_a, _ = products

        assert ledger.reserve(product_a.id, 5) == 0
        assert ledger.available(product_a.id) == 0

    def test_reserve_more_than_available_is_rejected(self, ledger, products):
        product_a, _ = products

        with pytest.raises(InsufficientStockError) as exc_info:
            ledger.reserve(product_a.id, 6)

        err = exc_info.value
        assert err.product_id == product_a.id
        assert err.requested == 6
        assert err.available == 5
        assert ledger.available(product_a.id) == 5
        assert ledger.movements(product_a.id) == []

    def test_reserve_unknown_product(self, ledger, products):
        with pytest.raises(ProductNotFoundError):
            ledger.reserve("missing", 1)

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
    def test_reserve_rejects_bad_quantity(self, ledger, products, quantity):
        product_a, _ = products

        with pytest.raises(ValidationError):
            ledger.reserve(product_a.id, quantity)
        assert ledger.available(product_a.id) == 5

    def test_reserve_inside_failed_transaction_rolls_back(self, store, ledger, products):
        product_a, product_b = products

        with pytest.raises(InsufficientStockError):
            with store.transaction() as data:
                ledger.reserve(product_a.id, 3, data=data)
                ledger.reserve(product_b.id, 9, data=data)

        assert ledger.available(product_a.id) == 5
        assert ledger.available(product_b.id) == 5


class TestRelease:
    def test_release_increments(self, ledger, products):
        product_a, _ = products

        assert ledger.release(product_a.id, 4) == 9

    def test_release_records_movement(self, ledger, products):
        product_a, _ = products

        ledger.reserve(product_a.id, 2, reason="order:o1")
        ledger.release(product_a.id, 2, reason="cancel:o1")

        movements = ledger.movements(product_a.id)
        assert [(m.change, m.reason) for m in movements] == [(-2, "order:o1"), (2, "cancel:o1")]


class TestStockInvariant:
    def test_random_sequence_never_goes_negative(self, ledger, products):
        product_a, _ = products
        rng = random.Random(1234)
        expected = 5

        for _ in range(200):
            quantity = rng.randint(1, 4)
            if rng.random() < 0.6:
                if quantity <= expected:
                    ledger.reserve(product_a.id, quantity)
                    expected -= quantity
                else:
                    with pytest.raises(InsufficientStockError):
                        ledger.reserve(product_a.id, quantity)
            else:
                ledger.release(product_a.id, quantity)
                expected += quantity

            assert ledger.available(product_a.id) == expected
            assert expected >= 0

    def test_concurrent_reserves_do_not_oversell(self, ledger, products):
        product_a, _ = products
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            try:
                ledger.reserve(product_a.id, 1)
                results.append("ok")
            except InsufficientStockError:
                results.append("short")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count("ok") == 5
        assert results.count("short") == 3
        assert ledger.available(product_a.id) == 0

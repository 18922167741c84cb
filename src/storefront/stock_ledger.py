"""Atomic stock accounting for catalog products."""

import logging
from typing import Any

from .document_store import DocumentStore
from .errors import InsufficientStockError, ProductNotFoundError, ValidationError
from .models import StockMovement, _utc_now

logger = logging.getLogger(__name__)


def check_quantity(quantity: int) -> None:
    """Reject anything that isn't a positive integer quantity."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity", "must be an integer")
    if quantity < 1:
        raise ValidationError("quantity", "must be positive")


class StockLedger:
    """
    Tracks per-product available quantity.

    Every mutation re-reads stock inside a store transaction and writes the
    new value in the same locked step, so callers never do their own
    read-modify-write. Pass ``data`` to join a transaction the caller already
    holds; the change then commits or rolls back with the caller's block.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def available(self, product_id: str) -> int:
        """
        Return the committed stock of a product.

        Raises:
            ProductNotFoundError: If the product doesn't exist.
        """
        product = self.store.snapshot()["products"].get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product["stock"]

    def reserve(
        self,
        product_id: str,
        quantity: int,
        data: dict[str, Any] | None = None,
        reason: str = "reserve",
    ) -> int:
        """
        Take ``quantity`` units out of stock if that many are available.

        Returns:
            The remaining stock.

        Raises:
            InsufficientStockError: If stock is lower than ``quantity``.
                Stock is left unchanged.
            ProductNotFoundError: If the product doesn't exist.
        """
        check_quantity(quantity)
        if data is not None:
            return self._apply(data, product_id, -quantity, reason)
        with self.store.transaction() as txn:
            return self._apply(txn, product_id, -quantity, reason)

    def release(
        self,
        product_id: str,
        quantity: int,
        data: dict[str, Any] | None = None,
        reason: str = "release",
    ) -> int:
        """Put ``quantity`` units back into stock. Returns the new stock."""
        check_quantity(quantity)
        if data is not None:
            return self._apply(data, product_id, quantity, reason)
        with self.store.transaction() as txn:
            return self._apply(txn, product_id, quantity, reason)

    def movements(self, product_id: str | None = None) -> list[StockMovement]:
        """List recorded stock movements, oldest first."""
        rows = self.store.snapshot()["stock_movements"]
        result = [StockMovement.from_dict(r) for r in rows]
        if product_id is not None:
            result = [m for m in result if m.product_id == product_id]
        return result

    def _apply(self, data: dict[str, Any], product_id: str, change: int, reason: str) -> int:
        product = data["products"].get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)

        current = product["stock"]
        new_stock = current + change
        if new_stock < 0:
            raise InsufficientStockError(
                product_id, requested=-change, available=current, title=product.get("title")
            )

        product["stock"] = new_stock
        product["updated_at"] = _utc_now()
        data["stock_movements"].append(
            StockMovement(product_id=product_id, change=change, reason=reason).to_dict()
        )
        logger.debug("Stock of %s: %d -> %d (%s)", product_id, current, new_stock, reason)
        return new_stock

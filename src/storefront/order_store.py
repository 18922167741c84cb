"""Owner-scoped order reads."""

from typing import Any

from .document_store import DocumentStore
from .errors import OrderNotFoundError, ValidationError
from .models import Order, OrderStatus

MAX_PAGE_SIZE = 100


def find_order(data: dict[str, Any], order_id: str, user_id: str | None = None) -> Order:
    """
    Look up an order in a store document.

    With ``user_id`` set, orders owned by someone else are reported as not
    found.

    Raises:
        OrderNotFoundError: If no matching order exists.
    """
    row = data["orders"].get(order_id)
    if row is None or (user_id is not None and row["user_id"] != user_id):
        raise OrderNotFoundError(order_id)
    return Order.from_dict(row)


class OrderStore:
    """Read accessors for orders."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def get_order(self, order_id: str, user_id: str) -> Order:
        """Get one of the user's orders by ID."""
        return find_order(self.store.snapshot(), order_id, user_id)

    def list_orders(self, user_id: str, page: int = 1, limit: int = 10) -> tuple[list[Order], int]:
        """
        List the user's orders, newest first.

        Returns:
            The requested page and the total number of orders the user has.
        """
        rows = [r for r in self.store.snapshot()["orders"].values() if r["user_id"] == user_id]
        return _newest_first_page(rows, page, limit)

    def all_orders(
        self, status: OrderStatus | None = None, page: int = 1, limit: int = 10
    ) -> tuple[list[Order], int]:
        """List every customer's orders, newest first, optionally by status."""
        rows = list(self.store.snapshot()["orders"].values())
        if status is not None:
            rows = [r for r in rows if r["status"] == OrderStatus(status).value]
        return _newest_first_page(rows, page, limit)


def _newest_first_page(rows: list[dict[str, Any]], page: int, limit: int) -> tuple[list[Order], int]:
    if page < 1:
        raise ValidationError("page", "must be at least 1")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError("limit", f"must be between 1 and {MAX_PAGE_SIZE}")

    # Orders are stored in insertion order, which breaks created_at ties.
    rows.reverse()
    rows.sort(key=lambda r: r["created_at"], reverse=True)
    start = (page - 1) * limit
    return [Order.from_dict(r) for r in rows[start:start + limit]], len(rows)

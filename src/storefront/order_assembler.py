"""Checkout: turn a user's cart into an order."""

import logging
from typing import Any

from .cart import load_cart, save_cart
from .document_store import DocumentStore
from .errors import (
    ConflictError,
    EmptyCartError,
    InsufficientStockError,
    ProductNotFoundError,
    ValidationError,
)
from .models import Cart, Order, UserContext
from .notifications import LoggingNotifier, NotificationKind, Notifier, notify_safely
from .stock_ledger import StockLedger

logger = logging.getLogger(__name__)


def require_text(field: str, value: str | None) -> str:
    """Strip a required free-text field and reject it if blank."""
    value = (value or "").strip()
    if not value:
        raise ValidationError(field, "is required")
    return value


def _cart_lines(cart: Cart) -> list[tuple[Any, ...]]:
    return [(i.id, i.product_id, i.quantity, i.price) for i in cart.items]


def verify_stock(data: dict[str, Any], cart: Cart) -> None:
    """
    Check every cart line against live stock.

    Raises:
        InsufficientStockError: For the first line asking for more than is
            in stock.
        ProductNotFoundError: If a line references a removed product.
    """
    for item in cart.items:
        product = data["products"].get(item.product_id)
        if product is None:
            raise ProductNotFoundError(item.product_id)
        if item.quantity > product["stock"]:
            raise InsufficientStockError(
                item.product_id,
                requested=item.quantity,
                available=product["stock"],
                title=product["title"],
            )


class OrderAssembler:
    """Validates a cart, reserves stock and materializes the order."""

    def __init__(
        self,
        store: DocumentStore,
        ledger: StockLedger | None = None,
        notifier: Notifier | None = None,
    ):
        self.store = store
        self.ledger = ledger or StockLedger(store)
        self.notifier = notifier or LoggingNotifier()

    def place_order(self, user: UserContext, shipping_address: str, payment_method: str) -> Order:
        """
        Place an order from the user's cart.

        The order, its items, every stock decrement and the emptied cart are
        committed in one transaction. If any product runs out between the
        pre-check and the commit, nothing is written.

        Raises:
            ValidationError: If shipping address or payment method is blank.
            EmptyCartError: If the cart has no items.
            InsufficientStockError: If any line exceeds live stock.
            ConflictError: If the cart changed while the order was being placed.
        """
        shipping_address = require_text("shipping_address", shipping_address)
        payment_method = require_text("payment_method", payment_method)

        data = self.store.snapshot()
        cart = load_cart(data, user.user_id)
        if cart is None or not cart.items:
            raise EmptyCartError(user.user_id)

        try:
            verify_stock(data, cart)
        except InsufficientStockError as e:
            logger.warning("Checkout rejected for %s: %s", user.user_id, e)
            raise

        order = Order.create(
            user.user_id,
            cart.items,
            shipping_address,
            payment_method,
            contact_email=user.email,
            contact_name=user.name,
        )

        try:
            with self.store.transaction() as txn:
                current = load_cart(txn, user.user_id)
                if current is None or _cart_lines(current) != _cart_lines(cart):
                    raise ConflictError("cart changed during checkout")

                for item in order.items:
                    self.ledger.reserve(
                        item.product_id, item.quantity, data=txn, reason=f"order:{order.id}"
                    )
                txn["orders"][order.id] = order.to_dict()

                current.items = []
                save_cart(txn, current)
        except InsufficientStockError as e:
            logger.warning("Checkout for %s lost a stock race: %s", user.user_id, e)
            raise

        logger.info(
            "Placed order %s for %s: %d item(s), total %s",
            order.id, user.user_id, len(order.items), order.total_amount,
        )

        notify_safely(
            self.notifier,
            user.email,
            NotificationKind.ORDER_CONFIRMATION,
            {
                "order_id": order.id,
                "name": user.name,
                "total_amount": str(order.total_amount),
                "items": [i.to_dict() for i in order.items],
            },
        )
        return order

"""Order status transitions: customer cancellation and fulfilment steps."""

import logging

from .document_store import DocumentStore
from .errors import InvalidTransitionError, PermissionDeniedError, ValidationError
from .models import (
    CANCELLABLE_STATUSES,
    FULFILMENT_FLOW,
    Order,
    OrderStatus,
    UserContext,
    _utc_now,
)
from .notifications import LoggingNotifier, NotificationKind, Notifier, notify_safely
from .order_store import find_order
from .stock_ledger import StockLedger

logger = logging.getLogger(__name__)


def can_advance(current: OrderStatus, target: OrderStatus) -> bool:
    """True if ``target`` is strictly later than ``current`` in fulfilment."""
    if current not in FULFILMENT_FLOW or target not in FULFILMENT_FLOW:
        return False
    return FULFILMENT_FLOW.index(target) > FULFILMENT_FLOW.index(current)


class OrderLifecycle:
    """Moves orders between statuses and returns stock on cancellation."""

    def __init__(
        self,
        store: DocumentStore,
        ledger: StockLedger | None = None,
        notifier: Notifier | None = None,
    ):
        self.store = store
        self.ledger = ledger or StockLedger(store)
        self.notifier = notifier or LoggingNotifier()

    def cancel_order(self, order_id: str, user: UserContext) -> Order:
        """
        Cancel one of the user's orders and put its items back in stock.

        The status change and every stock release commit together.

        Raises:
            OrderNotFoundError: If the user has no order with this ID.
            InvalidTransitionError: If the order is past PROCESSING or
                already cancelled.
        """
        with self.store.transaction() as data:
            order = find_order(data, order_id, user.user_id)
            if order.status not in CANCELLABLE_STATUSES:
                raise InvalidTransitionError(order_id, order.status.value, OrderStatus.CANCELLED.value)

            for item in order.items:
                self.ledger.release(item.product_id, item.quantity, data=data, reason=f"cancel:{order_id}")

            order.status = OrderStatus.CANCELLED
            order.updated_at = _utc_now()
            data["orders"][order_id] = order.to_dict()

        logger.info("Cancelled order %s for %s", order_id, user.user_id)
        self._notify_status(order, user.email or order.contact_email, user.name or order.contact_name)
        return order

    def advance_status(self, order_id: str, new_status: OrderStatus, actor: UserContext) -> Order:
        """
        Move an order forward through fulfilment (admin only).

        Raises:
            PermissionDeniedError: If the actor isn't an admin.
            OrderNotFoundError: If the order doesn't exist.
            InvalidTransitionError: If the move isn't forward, or targets
                CANCELLED.
            ValidationError: If ``new_status`` isn't a known status.
        """
        if not actor.is_admin:
            raise PermissionDeniedError("update order status", actor.role.value)
        try:
            new_status = OrderStatus(new_status)
        except ValueError:
            raise ValidationError("status", f"unknown status {new_status!r}")

        with self.store.transaction() as data:
            order = find_order(data, order_id)
            if not can_advance(order.status, new_status):
                raise InvalidTransitionError(order_id, order.status.value, new_status.value)
            previous = order.status
            order.status = new_status
            order.updated_at = _utc_now()
            data["orders"][order_id] = order.to_dict()

        logger.info(
            "Order %s moved %s -> %s by %s",
            order_id, previous.value, new_status.value, actor.user_id,
        )
        self._notify_status(order, order.contact_email, order.contact_name)
        return order

    def _notify_status(self, order: Order, email: str, name: str) -> None:
        notify_safely(
            self.notifier,
            email,
            NotificationKind.ORDER_STATUS_UPDATE,
            {"order_id": order.id, "name": name, "status": order.status.value},
        )

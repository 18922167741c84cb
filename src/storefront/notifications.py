"""Best-effort customer notifications for order events."""

import logging
from enum import Enum
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    ORDER_CONFIRMATION = "order_confirmation"
    ORDER_STATUS_UPDATE = "order_status_update"


def render_subject(kind: NotificationKind, payload: dict[str, Any]) -> str:
    """Build the email subject line for a notification."""
    order_id = payload.get("order_id", "")
    if kind == NotificationKind.ORDER_CONFIRMATION:
        return f"Order Confirmation #{order_id}"
    return f"Order Status Update #{order_id}"


class Notifier(Protocol):
    """Protocol for notification delivery backends.

    Implementations deliver one message per call and may raise on delivery
    failure; callers go through ``notify_safely``.
    """

    def send(self, recipient: str, kind: NotificationKind, payload: dict[str, Any]) -> None:
        """Deliver a notification to ``recipient``."""
        ...


class LoggingNotifier:
    """Writes notifications to the log instead of delivering them."""

    def send(self, recipient: str, kind: NotificationKind, payload: dict[str, Any]) -> None:
        subject = render_subject(kind, payload)
        if kind == NotificationKind.ORDER_STATUS_UPDATE:
            detail = f"status {payload.get('status')}"
        else:
            detail = f"total {payload.get('total_amount')}, {len(payload.get('items', []))} item(s)"
        logger.info("Email to %s: %s (%s)", recipient, subject, detail)


def notify_safely(
    notifier: Notifier,
    recipient: str,
    kind: NotificationKind,
    payload: dict[str, Any],
) -> bool:
    """
    Send a notification without letting delivery problems reach the caller.

    Returns True if the notifier accepted the message. Failures are logged
    and reported as False.
    """
    if not recipient:
        logger.warning("Skipping %s for order %s: no recipient", kind.value, payload.get("order_id"))
        return False
    try:
        notifier.send(recipient, kind, payload)
    except Exception:
        logger.exception("Failed to send %s to %s", kind.value, recipient)
        return False
    return True

"""Outbound notifications: reacts to Order events.

Emits order-created, order-status-changed and payment-confirmed to the
notification service. Delivery is fire-and-forget: a failing notifier is
logged and never fails the order operation that raised the event.
"""

import structlog
from protean.utils.mixins import handle

from commerce.domain import commerce
from commerce.notifications import get_notifier
from commerce.order.events import OrderCreated, OrderStatusChanged, PaymentConfirmed
from commerce.order.order import Order

logger = structlog.get_logger(__name__)


def _emit(event_type: str, payload: dict) -> None:
    try:
        get_notifier().send(event_type, payload)
    except Exception as exc:
        logger.warning(
            "Notification delivery failed",
            event_type=event_type,
            order_id=payload.get("order_id"),
            error=str(exc),
        )


@commerce.event_handler(part_of=Order)
class OrderNotificationsHandler:
    @handle(OrderCreated)
    def on_order_created(self, event: OrderCreated) -> None:
        _emit(
            "order_created",
            {
                "order_id": str(event.order_id),
                "order_number": event.order_number,
                "customer_id": str(event.customer_id),
                "total": event.total,
                "currency": event.currency,
                "payment_method": event.payment_method,
            },
        )

    @handle(OrderStatusChanged)
    def on_order_status_changed(self, event: OrderStatusChanged) -> None:
        _emit(
            "order_status_changed",
            {
                "order_id": str(event.order_id),
                "order_number": event.order_number,
                "customer_id": str(event.customer_id),
                "previous_status": event.previous_status,
                "new_status": event.new_status,
                "note": event.note,
            },
        )

    @handle(PaymentConfirmed)
    def on_payment_confirmed(self, event: PaymentConfirmed) -> None:
        _emit(
            "payment_confirmed",
            {
                "order_id": str(event.order_id),
                "order_number": event.order_number,
                "customer_id": str(event.customer_id),
                "transaction_id": event.transaction_id,
                "amount": event.amount,
                "currency": event.currency,
            },
        )

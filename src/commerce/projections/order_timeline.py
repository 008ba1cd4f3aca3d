"""Order timeline: append-only audit trail of all order events."""

import uuid
from datetime import UTC, datetime

from protean.core.projector import on
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.order.events import (
    OrderCancelled,
    OrderCreated,
    OrderRefunded,
    OrderStatusChanged,
    PaymentConfirmed,
    PaymentFailed,
    PaymentInitiated,
    PaymentRefunded,
    RefundOpened,
)
from commerce.order.order import Order


@commerce.projection
class OrderTimeline:
    entry_id = Identifier(identifier=True, required=True)
    order_id = Identifier(required=True)
    event_type = String(required=True)
    description = String(required=True)
    occurred_at = DateTime(required=True)
    event_metadata = Text()  # JSON: extra event data


def _add_entry(order_id, event_type, description, occurred_at, event_metadata=None):
    current_domain.repository_for(OrderTimeline).add(
        OrderTimeline(
            entry_id=str(uuid.uuid4()),
            order_id=order_id,
            event_type=event_type,
            description=description,
            occurred_at=occurred_at,
            event_metadata=event_metadata,
        )
    )


def timeline_for(order_id):
    """Timeline entries of one order, oldest first."""
    repo = current_domain.repository_for(OrderTimeline)
    entries = repo._dao.query.filter(order_id=str(order_id)).all().items
    return sorted(entries, key=lambda e: e.occurred_at)


@commerce.projector(projector_for=OrderTimeline, aggregates=[Order])
class OrderTimelineProjector:
    @on(OrderCreated)
    def on_order_created(self, event):
        _add_entry(
            event.order_id,
            "OrderCreated",
            f"Order {event.order_number} was created",
            event.created_at,
        )

    @on(OrderStatusChanged)
    def on_order_status_changed(self, event):
        description = f"Status changed from {event.previous_status} to {event.new_status}"
        if event.note:
            description = f"{description}: {event.note}"
        _add_entry(event.order_id, "OrderStatusChanged", description, event.changed_at)

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        _add_entry(
            event.order_id,
            "OrderCancelled",
            f"Cancelled by {event.actor}: {event.reason}",
            event.cancelled_at,
        )

    @on(OrderRefunded)
    def on_order_refunded(self, event):
        _add_entry(event.order_id, "OrderRefunded", f"Refunded {event.amount}", event.refunded_at)

    @on(PaymentInitiated)
    def on_payment_initiated(self, event):
        _add_entry(
            event.order_id,
            "PaymentInitiated",
            f"Payment initiated via {event.method} (transaction: {event.transaction_id})",
            datetime.now(UTC),
        )

    @on(PaymentConfirmed)
    def on_payment_confirmed(self, event):
        _add_entry(event.order_id, "PaymentConfirmed", f"Payment of {event.amount} received", event.paid_at)

    @on(PaymentFailed)
    def on_payment_failed(self, event):
        _add_entry(event.order_id, "PaymentFailed", f"Payment failed: {event.reason}", event.failed_at)

    @on(RefundOpened)
    def on_refund_opened(self, event):
        _add_entry(event.order_id, "RefundOpened", f"Refund of {event.amount} opened", event.opened_at)

    @on(PaymentRefunded)
    def on_payment_refunded(self, event):
        _add_entry(
            event.order_id,
            "PaymentRefunded",
            f"Refunded {event.amount} (payment {event.payment_status})",
            event.refunded_at,
        )

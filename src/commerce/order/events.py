"""Domain events for the Order aggregate.

Events are versioned facts raised by the aggregate and consumed by the
timeline projector and the notification handler.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from commerce.domain import commerce


@commerce.event(part_of="Order")
class OrderCreated:
    """A new order was created from a cart at checkout."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of line dicts
    payment_method = String(required=True)
    total = Float(required=True)
    currency = String(required=True)
    coupon_code = String()
    created_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderStatusChanged:
    """The order's fulfillment status moved forward."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    sequence = Integer(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    note = String()
    actor = String()
    changed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderCancelled:
    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    reason = String(required=True)
    actor = String(required=True)
    refund_opened = String()  # "true" / "false"
    cancelled_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderRefunded:
    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String()
    actor = String()
    refunded_at = DateTime(required=True)


@commerce.event(part_of="Order")
class PaymentInitiated:
    """The gateway accepted a payment request and returned a pending transaction."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    transaction_id = String(required=True)
    method = String(required=True)
    amount = Float(required=True)


@commerce.event(part_of="Order")
class PaymentConfirmed:
    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    transaction_id = String(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    method = String(required=True)
    paid_at = DateTime(required=True)


@commerce.event(part_of="Order")
class PaymentFailed:
    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    transaction_id = String()
    reason = String(required=True)
    failed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class RefundOpened:
    """A refund record was opened; money movement is left to the gateway."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    amount = Float(required=True)
    reason = String()
    opened_at = DateTime(required=True)


@commerce.event(part_of="Order")
class PaymentRefunded:
    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    amount = Float(required=True)
    refunded_total = Float(required=True)
    payment_status = String(required=True)
    reference = String()
    refunded_at = DateTime(required=True)

"""Order aggregate (CQRS): the immutable record created from a cart at checkout.

An Order carries two independent state machines:

Fulfillment status:
    PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED
    PENDING/CONFIRMED/PROCESSING → CANCELLED  (cancellation workflow only)
    DELIVERED → REFUNDED                      (refund workflow only)

Payment status:
    PENDING → PAID | FAILED
    PAID → REFUNDED | PARTIAL_REFUND
    PARTIAL_REFUND → REFUNDED

The two are coupled by one policy: an order paid by wallet transfer or card
cannot start processing until its payment is PAID. Cash-on-delivery orders
are exempt and settle at delivery.

Line items are written once by ``create()`` and never touched again. Every
accepted fulfillment transition appends a ``StatusChange`` to the history.
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from commerce.domain import commerce
from commerce.errors import InvalidStateTransition, NotCancellable
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


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIAL_REFUND = "partial_refund"


class PaymentMethod(Enum):
    WALLET_TRANSFER = "wallet_transfer"
    CARD = "card"
    CASH_ON_DELIVERY = "cash_on_delivery"


class RefundStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.REFUNDED: set(),  # Terminal
}

# Reachable only through cancel() / request_refund()
_WORKFLOW_STATES = {OrderStatus.CANCELLED, OrderStatus.REFUNDED}

_CANCELLABLE_STATES = {
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
}

_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED, PaymentStatus.PARTIAL_REFUND},
    PaymentStatus.PARTIAL_REFUND: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),
    PaymentStatus.REFUNDED: set(),
}

_PAYMENT_FIELDS = (
    "method",
    "status",
    "transaction_id",
    "amount",
    "refunded_amount",
    "currency",
    "paid_at",
    "failure_reason",
    "gateway_error",
)

_REFUND_FIELDS = ("status", "amount", "reason", "requested_at", "completed_at", "reference")


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@commerce.value_object(part_of="Order")
class Address:
    """A delivery or billing address captured at checkout time."""

    name = String(required=True, max_length=255)
    phone = String(required=True, max_length=30)
    address = String(required=True, max_length=500)
    city = String(required=True, max_length=100)
    county = String(max_length=100)
    postal_code = String(max_length=20)


@commerce.value_object(part_of="Order")
class OrderSummary:
    """Money summary locked at checkout."""

    subtotal = Float(default=0.0)
    discount = Float(default=0.0)
    shipping = Float(default=0.0)
    tax = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default="KES")


@commerce.value_object(part_of="Order")
class PaymentRecord:
    method = String(required=True, choices=PaymentMethod)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    transaction_id = String(max_length=255)
    amount = Float(default=0.0)
    refunded_amount = Float(default=0.0)
    currency = String(max_length=3, default="KES")
    paid_at = DateTime()
    failure_reason = String(max_length=500)
    gateway_error = String(max_length=500)


@commerce.value_object(part_of="Order")
class TrackingInfo:
    carrier = String(max_length=100)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=1000)
    estimated_delivery = String(max_length=10)  # ISO date string


@commerce.value_object(part_of="Order")
class CancellationRecord:
    reason = String(required=True, max_length=500)
    cancelled_by = String(required=True, max_length=50)
    cancelled_at = DateTime(required=True)


@commerce.value_object(part_of="Order")
class RefundRecord:
    """Refund tracking; settlement itself happens at the payment gateway."""

    status = String(choices=RefundStatus, default=RefundStatus.PENDING.value)
    amount = Float(required=True, min_value=0.0)
    reason = String(max_length=500)
    requested_at = DateTime()
    completed_at = DateTime()
    reference = String(max_length=255)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@commerce.entity(part_of="Order")
class OrderItem:
    """A line as it was bought. Written once at creation."""

    product_id = Identifier(required=True)
    variant = String(max_length=100, default="")
    name = String(required=True, max_length=255)
    sku = String(max_length=50)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    line_total = Float(required=True, min_value=0.0)
    image_url = String(max_length=1000)


@commerce.entity(part_of="Order")
class StatusChange:
    """One entry of the append-only status history."""

    sequence = Integer(required=True, min_value=1)
    status = String(required=True, choices=OrderStatus)
    note = String(max_length=500)
    actor = String(max_length=100, default="system")
    timestamp = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@commerce.aggregate
class Order:
    order_number = String(required=True, max_length=50, unique=True)
    customer_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(Address)
    billing_address = ValueObject(Address)
    summary = ValueObject(OrderSummary)
    coupons = Text()  # JSON list of the coupon snapshots applied at checkout
    notes = String(max_length=1000)
    payment = ValueObject(PaymentRecord)
    tracking = ValueObject(TrackingInfo)
    status_history = HasMany(StatusChange)
    cancellation = ValueObject(CancellationRecord)
    refund = ValueObject(RefundRecord)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def refunds_cannot_exceed_payment(self):
        if self.payment and (self.payment.refunded_amount or 0.0) > (self.payment.amount or 0.0) + 0.005:
            raise ValidationError({"payment": ["Refunded amount exceeds the amount paid"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        order_number,
        customer_id,
        lines,
        shipping_address,
        summary,
        payment_method,
        billing_address=None,
        coupons=None,
        notes=None,
        order_id=None,
        actor="customer",
    ):
        """Create a pending order.

        Args:
            lines: list of dicts with product_id, variant, name, sku,
                unit_price, quantity and optionally image_url.
            shipping_address: dict with name, phone, address, city, county.
            billing_address: same shape; defaults to the shipping address.
            summary: dict with subtotal, discount, shipping, tax, total, currency.
            coupons: the {code, kind, value} snapshots actually applied.
        """
        now = datetime.now(UTC)
        billing = billing_address or shipping_address

        order = cls(
            id=order_id or str(uuid4()),
            order_number=order_number,
            customer_id=str(customer_id),
            shipping_address=Address(**shipping_address),
            billing_address=Address(**billing),
            summary=OrderSummary(**summary),
            coupons=json.dumps(list(coupons or [])),
            notes=notes,
            payment=PaymentRecord(
                method=payment_method,
                status=PaymentStatus.PENDING.value,
                amount=summary["total"],
                refunded_amount=0.0,
                currency=summary.get("currency", "KES"),
            ),
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        for line in lines:
            order.add_items(
                OrderItem(
                    product_id=line["product_id"],
                    variant=line.get("variant") or "",
                    name=line["name"],
                    sku=line.get("sku"),
                    unit_price=line["unit_price"],
                    quantity=line["quantity"],
                    line_total=round(line["unit_price"] * line["quantity"], 2),
                    image_url=line.get("image_url"),
                )
            )
        order._append_history(OrderStatus.PENDING, "Order created", actor, now)

        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id),
                items=json.dumps(
                    [
                        {
                            "product_id": str(i.product_id),
                            "variant": i.variant,
                            "name": i.name,
                            "quantity": i.quantity,
                            "unit_price": i.unit_price,
                        }
                        for i in order.items
                    ]
                ),
                payment_method=payment_method,
                total=order.summary.total,
                currency=order.summary.currency,
                coupon_code=",".join(c["code"] for c in coupons or []) or None,
                created_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_cash_on_delivery(self):
        return self.payment.method == PaymentMethod.CASH_ON_DELIVERY.value

    def applied_coupons(self):
        return json.loads(self.coupons) if self.coupons else []

    def audit_trail(self):
        """Read-only copy of the status history, oldest first."""
        return [
            {
                "sequence": change.sequence,
                "status": change.status,
                "note": change.note,
                "actor": change.actor,
                "timestamp": change.timestamp,
            }
            for change in sorted(self.status_history or [], key=lambda c: c.sequence)
        ]

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidStateTransition(
                f"Cannot transition from {current.value} to {target_status.value}",
                order_id=str(self.id),
                current=current.value,
                target=target_status.value,
            )

    def _assert_payment_can_transition(self, target_status):
        current = PaymentStatus(self.payment.status)
        if target_status not in _PAYMENT_TRANSITIONS.get(current, set()):
            raise InvalidStateTransition(
                f"Cannot move payment from {current.value} to {target_status.value}",
                order_id=str(self.id),
                current=current.value,
                target=target_status.value,
            )

    def _append_history(self, status, note, actor, timestamp):
        self.add_status_history(
            StatusChange(
                sequence=len(self.status_history or []) + 1,
                status=status.value,
                note=note,
                actor=actor or "system",
                timestamp=timestamp,
            )
        )

    def _replace_payment(self, **changes):
        values = {name: getattr(self.payment, name) for name in _PAYMENT_FIELDS}
        values.update(changes)
        self.payment = PaymentRecord(**values)

    def _replace_refund(self, **changes):
        values = {name: getattr(self.refund, name) for name in _REFUND_FIELDS}
        values.update(changes)
        self.refund = RefundRecord(**values)

    def _change_status(self, target_status, note=None, actor=None):
        """Apply an already-validated fulfillment transition."""
        previous = self.status
        now = datetime.now(UTC)
        self.status = target_status.value
        self.updated_at = now
        self._append_history(target_status, note, actor, now)

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                sequence=len(self.status_history),
                previous_status=previous,
                new_status=target_status.value,
                note=note,
                actor=actor or "system",
                changed_at=now,
            )
        )
        return now

    def _open_refund(self, amount, reason, now):
        self.refund = RefundRecord(
            status=RefundStatus.PENDING.value,
            amount=round(amount, 2),
            reason=reason,
            requested_at=now,
        )
        self.raise_(
            RefundOpened(
                order_id=str(self.id),
                order_number=self.order_number,
                amount=round(amount, 2),
                reason=reason,
                opened_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Fulfillment transitions
    # -------------------------------------------------------------------
    def transition_to(self, target_status, note=None, actor=None):
        """Move forward along the fulfillment path.

        Cancelled and refunded are refused here; use ``cancel()`` and
        ``request_refund()`` so that stock and refund tracking follow the status.
        """
        target_status = OrderStatus(target_status)
        if target_status in _WORKFLOW_STATES:
            raise InvalidStateTransition(
                f"Orders move to {target_status.value} only through the cancellation/refund workflow",
                order_id=str(self.id),
                current=self.status,
                target=target_status.value,
            )
        self._assert_can_transition(target_status)

        if target_status == OrderStatus.PROCESSING and not self.is_cash_on_delivery:
            if self.payment.status != PaymentStatus.PAID.value:
                raise InvalidStateTransition(
                    f"Order cannot be processed while payment is {self.payment.status}",
                    order_id=str(self.id),
                    current=self.status,
                    target=target_status.value,
                    payment_status=self.payment.status,
                )

        now = self._change_status(target_status, note, actor)

        if target_status == OrderStatus.DELIVERED and self.is_cash_on_delivery:
            if self.payment.status == PaymentStatus.PENDING.value:
                self._mark_paid(f"cod-{self.order_number}", self.summary.total, now)

    def confirm(self, note=None, actor=None):
        self.transition_to(OrderStatus.CONFIRMED, note or "Order confirmed", actor)

    def start_processing(self, note=None, actor=None):
        self.transition_to(OrderStatus.PROCESSING, note or "Order is being processed", actor)

    def ship(
        self,
        carrier=None,
        tracking_number=None,
        tracking_url=None,
        estimated_delivery=None,
        note=None,
        actor=None,
    ):
        self._assert_can_transition(OrderStatus.SHIPPED)
        self.tracking = TrackingInfo(
            carrier=carrier,
            tracking_number=tracking_number,
            tracking_url=tracking_url,
            estimated_delivery=estimated_delivery,
        )
        self.transition_to(OrderStatus.SHIPPED, note or "Order shipped", actor)

    def deliver(self, note=None, actor=None):
        self.transition_to(OrderStatus.DELIVERED, note or "Order delivered", actor)

    # -------------------------------------------------------------------
    # Cancellation / refund
    # -------------------------------------------------------------------
    def cancel(self, reason, actor=None):
        """Cancel a not-yet-shipped order. Returns True if a refund was opened."""
        current = OrderStatus(self.status)
        if current not in _CANCELLABLE_STATES:
            raise NotCancellable(
                f"Order {self.order_number} cannot be cancelled in {current.value} status",
                order_id=str(self.id),
                status=current.value,
            )

        now = self._change_status(OrderStatus.CANCELLED, reason, actor)
        self.cancellation = CancellationRecord(
            reason=reason,
            cancelled_by=actor or "system",
            cancelled_at=now,
        )

        refund_opened = self.payment.status == PaymentStatus.PAID.value
        if refund_opened:
            self._open_refund(self.payment.amount, reason, now)

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                reason=reason,
                actor=actor or "system",
                refund_opened="true" if refund_opened else "false",
                cancelled_at=now,
            )
        )
        return refund_opened

    def request_refund(self, reason=None, actor=None, amount=None):
        """Refund a delivered order. Opens a pending refund record."""
        current = OrderStatus(self.status)
        if current != OrderStatus.DELIVERED:
            raise NotCancellable(
                f"Order {self.order_number} cannot be refunded in {current.value} status",
                order_id=str(self.id),
                status=current.value,
            )

        paid = (self.payment.amount or 0.0) - (self.payment.refunded_amount or 0.0)
        amount = paid if amount is None else amount
        if amount <= 0 or amount > paid + 0.005:
            raise ValidationError({"amount": [f"Refund amount must be between 0 and {paid:.2f}"]})

        now = self._change_status(OrderStatus.REFUNDED, reason or "Order refunded", actor)
        self._open_refund(amount, reason, now)

        self.raise_(
            OrderRefunded(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                amount=round(amount, 2),
                reason=reason,
                actor=actor or "system",
                refunded_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payment transitions
    # -------------------------------------------------------------------
    def record_payment_initiation(self, transaction_id):
        """Remember the gateway's pending transaction id."""
        self._replace_payment(transaction_id=transaction_id, gateway_error=None)
        self.updated_at = datetime.now(UTC)
        self.raise_(
            PaymentInitiated(
                order_id=str(self.id),
                transaction_id=transaction_id,
                method=self.payment.method,
                amount=self.payment.amount,
            )
        )

    def record_gateway_error(self, message):
        self._replace_payment(gateway_error=message)
        self.updated_at = datetime.now(UTC)

    def _mark_paid(self, transaction_id, amount, now):
        self._replace_payment(
            status=PaymentStatus.PAID.value,
            transaction_id=transaction_id,
            amount=round(amount, 2),
            paid_at=now,
            failure_reason=None,
            gateway_error=None,
        )
        self.updated_at = now
        self.raise_(
            PaymentConfirmed(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                transaction_id=transaction_id,
                amount=round(amount, 2),
                currency=self.payment.currency,
                method=self.payment.method,
                paid_at=now,
            )
        )

    def record_payment(self, transaction_id, amount=None):
        """Mark the payment paid.

        Idempotent per transaction id: a replay for the transaction that
        already paid this order changes nothing and returns False.
        """
        if OrderStatus(self.status) in _WORKFLOW_STATES:
            raise InvalidStateTransition(
                f"Payment cannot be recorded on a {self.status} order",
                order_id=str(self.id),
                current=self.status,
                target=PaymentStatus.PAID.value,
            )

        if self.payment.status != PaymentStatus.PENDING.value and self.payment.transaction_id == transaction_id:
            return False

        self._assert_payment_can_transition(PaymentStatus.PAID)

        expected = self.summary.total
        if amount is not None and abs(amount - expected) > 0.01:
            raise ValidationError({"amount": [f"Paid amount {amount:.2f} does not match order total {expected:.2f}"]})

        self._mark_paid(transaction_id, expected if amount is None else amount, datetime.now(UTC))
        return True

    def fail_payment(self, reason, transaction_id=None):
        """Mark the payment failed. Replays of the same failure are no-ops."""
        if (
            self.payment.status == PaymentStatus.FAILED.value
            and transaction_id is not None
            and self.payment.transaction_id == transaction_id
        ):
            return False

        if OrderStatus(self.status) in _WORKFLOW_STATES:
            raise InvalidStateTransition(
                f"Payment cannot fail on a {self.status} order",
                order_id=str(self.id),
                current=self.status,
                target=PaymentStatus.FAILED.value,
            )
        self._assert_payment_can_transition(PaymentStatus.FAILED)

        now = datetime.now(UTC)
        self._replace_payment(
            status=PaymentStatus.FAILED.value,
            transaction_id=transaction_id or self.payment.transaction_id,
            failure_reason=reason,
        )
        self.updated_at = now
        self.raise_(
            PaymentFailed(
                order_id=str(self.id),
                order_number=self.order_number,
                transaction_id=transaction_id,
                reason=reason,
                failed_at=now,
            )
        )
        return True

    def complete_refund(self, amount=None, reference=None):
        """Record money returned by the gateway against the open refund."""
        if self.refund is None:
            raise InvalidStateTransition(
                f"Order {self.order_number} has no refund to complete",
                order_id=str(self.id),
                current=self.payment.status,
            )
        if self.payment.status not in (PaymentStatus.PAID.value, PaymentStatus.PARTIAL_REFUND.value):
            raise InvalidStateTransition(
                f"Nothing to refund while payment is {self.payment.status}",
                order_id=str(self.id),
                current=self.payment.status,
            )

        refunded = self.payment.refunded_amount or 0.0
        remaining = round(min(self.refund.amount, self.payment.amount) - refunded, 2)
        if self.refund.status == RefundStatus.COMPLETED.value:
            remaining = round(self.payment.amount - refunded, 2)
        amount = remaining if amount is None else amount
        if amount <= 0 or amount > remaining + 0.005:
            raise ValidationError({"amount": [f"Refund amount must be between 0 and {remaining:.2f}"]})

        refunded_total = round(refunded + amount, 2)
        target = (
            PaymentStatus.REFUNDED
            if refunded_total >= self.payment.amount - 0.005
            else PaymentStatus.PARTIAL_REFUND
        )
        self._assert_payment_can_transition(target)

        now = datetime.now(UTC)
        self._replace_payment(status=target.value, refunded_amount=refunded_total)
        self._replace_refund(
            status=RefundStatus.COMPLETED.value,
            completed_at=now,
            reference=reference,
        )
        self.updated_at = now

        self.raise_(
            PaymentRefunded(
                order_id=str(self.id),
                order_number=self.order_number,
                amount=round(amount, 2),
                refunded_total=refunded_total,
                payment_status=target.value,
                reference=reference,
                refunded_at=now,
            )
        )

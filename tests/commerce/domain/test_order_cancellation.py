"""Tests for Order cancellation and refund eligibility."""

import pytest
from protean.exceptions import ValidationError

from commerce.errors import NotCancellable
from commerce.order.events import OrderCancelled, OrderRefunded, RefundOpened
from commerce.order.order import Order, OrderStatus, PaymentMethod, PaymentStatus, RefundRecord, RefundStatus

ADDRESS = {"name": "Jane", "phone": "+254700000001", "address": "12 Moi Avenue", "city": "Nairobi"}


def _make_order(payment_method=PaymentMethod.CARD.value):
    return Order.create(
        order_number="ORD17000000000000003",
        customer_id="cust-001",
        lines=[{"product_id": "P1", "name": "Kettle", "unit_price": 500.0, "quantity": 3}],
        shipping_address=ADDRESS,
        summary={"subtotal": 1500.0, "discount": 0.0, "shipping": 300.0, "tax": 240.0, "total": 2040.0},
        payment_method=payment_method,
    )


def _advance(order, *steps):
    for step in steps:
        getattr(order, step)()
    return order


class TestCancel:
    @pytest.mark.parametrize(
        "steps",
        [(), ("confirm",), ("confirm", "start_processing")],
        ids=["pending", "confirmed", "processing"],
    )
    def test_cancellable_states(self, steps):
        order = _make_order(payment_method=PaymentMethod.CASH_ON_DELIVERY.value)
        _advance(order, *steps)

        order.cancel(reason="Customer request", actor="customer")

        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation.reason == "Customer request"
        assert order.cancellation.cancelled_by == "customer"
        assert order.cancellation.cancelled_at is not None
        assert order.audit_trail()[-1]["status"] == "cancelled"

    def test_second_cancel_not_cancellable(self):
        order = _make_order()
        order.cancel(reason="First", actor="customer")
        history = order.audit_trail()

        with pytest.raises(NotCancellable):
            order.cancel(reason="Second", actor="customer")

        assert order.audit_trail() == history
        assert order.cancellation.reason == "First"

    @pytest.mark.parametrize(
        "steps",
        [("confirm", "start_processing", "ship"), ("confirm", "start_processing", "ship", "deliver")],
        ids=["shipped", "delivered"],
    )
    def test_shipped_and_delivered_not_cancellable(self, steps):
        order = _make_order(payment_method=PaymentMethod.CASH_ON_DELIVERY.value)
        _advance(order, *steps)
        with pytest.raises(NotCancellable) as exc:
            order.cancel(reason="Too late", actor="customer")
        assert exc.value.kind == "not_cancellable"

    def test_unpaid_cancel_opens_no_refund(self):
        order = _make_order()
        assert order.cancel(reason="No longer needed") is False
        assert order.refund is None
        assert isinstance(order._events[-1], OrderCancelled)

    def test_paid_cancel_opens_pending_refund(self):
        order = _make_order()
        order.record_payment("txn-001")

        assert order.cancel(reason="Out of budget", actor="customer") is True

        assert order.refund.status == RefundStatus.PENDING.value
        assert order.refund.amount == 2040.0
        assert order.payment.status == PaymentStatus.PAID.value
        assert any(isinstance(e, RefundOpened) for e in order._events)


class TestRefund:
    def _delivered(self):
        order = _make_order()
        order.record_payment("txn-001")
        return _advance(order, "confirm", "start_processing", "ship", "deliver")

    def test_refund_delivered_order(self):
        order = self._delivered()
        order.request_refund(reason="Broken on arrival", actor="admin")

        assert order.status == OrderStatus.REFUNDED.value
        assert order.refund.status == RefundStatus.PENDING.value
        assert order.refund.amount == 2040.0
        assert isinstance(order._events[-1], OrderRefunded)

    def test_refund_record_is_kept_on_the_order(self):
        order = self._delivered()
        order.request_refund(reason="Broken on arrival")

        assert isinstance(order.refund, RefundRecord)
        assert order.to_dict()["refund"]["status"] == RefundStatus.PENDING.value
        assert order.to_dict()["refund"]["reason"] == "Broken on arrival"

    def test_partial_refund_amount(self):
        order = self._delivered()
        order.request_refund(reason="One item broken", amount=680.0)
        assert order.refund.amount == 680.0

    def test_refund_amount_above_paid_rejected(self):
        order = self._delivered()
        with pytest.raises(ValidationError):
            order.request_refund(reason="Greedy", amount=9999.0)
        assert order.status == OrderStatus.DELIVERED.value

    def test_refund_requires_delivered(self):
        order = _make_order()
        with pytest.raises(NotCancellable):
            order.request_refund(reason="Not yet")

    def test_refunded_is_terminal(self):
        order = self._delivered()
        order.request_refund(reason="Broken")
        with pytest.raises(NotCancellable):
            order.request_refund(reason="Again")
        with pytest.raises(NotCancellable):
            order.cancel(reason="Too late")

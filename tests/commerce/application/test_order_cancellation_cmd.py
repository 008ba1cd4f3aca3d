"""Application tests for order cancellation and refunds via domain.process()."""

import pytest
from protean import current_domain

from commerce.errors import InvalidStateTransition, NotCancellable
from commerce.inventory.stock import StockRecord, stock_key
from commerce.order.cancellation import CancelOrder, RefundOrder
from commerce.order.fulfillment import ConfirmOrder, DeliverOrder, ShipOrder, StartProcessing
from commerce.order.order import Order, OrderStatus, PaymentStatus, RefundStatus
from commerce.order.payment import CompleteRefund, RecordPaymentCallback


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _available(product_id):
    return current_domain.repository_for(StockRecord).get(stock_key(product_id)).available


def _pay(order_id):
    order = _order(order_id)
    _process(RecordPaymentCallback(order_id=order_id, transaction_id=order.payment.transaction_id, status="paid"))


class TestCancelOrder:
    def test_cancel_restores_reserved_units(self, stock_product, fill_cart, place_order):
        stock_product("P1", quantity=5)
        fill_cart("cust-001", ("P1", 3))
        order_id = place_order()
        assert _available("P1") == 2

        _process(CancelOrder(order_id=order_id, reason="Changed my mind"))

        assert _available("P1") == 5
        order = _order(order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation.cancelled_by == "customer"

    def test_second_cancel_is_rejected_and_releases_nothing(self, stock_product, fill_cart, place_order):
        stock_product("P1", quantity=5)
        fill_cart("cust-001", ("P1", 3))
        order_id = place_order()
        _process(CancelOrder(order_id=order_id, reason="First"))

        with pytest.raises(NotCancellable):
            _process(CancelOrder(order_id=order_id, reason="Second"))

        assert _available("P1") == 5

    def test_cancel_confirmed_order(self, stock_product, fill_cart, place_order):
        stock_product("P1")
        fill_cart()
        order_id = place_order()
        _process(ConfirmOrder(order_id=order_id))

        _process(CancelOrder(order_id=order_id, reason="Out of budget"))
        assert _order(order_id).status == OrderStatus.CANCELLED.value

    def test_cancel_paid_order_opens_refund(self, stock_product, fill_cart, place_order):
        stock_product("P1")
        fill_cart()
        order_id = place_order()
        _pay(order_id)

        _process(CancelOrder(order_id=order_id, reason="Found it cheaper"))

        order = _order(order_id)
        assert order.refund.status == RefundStatus.PENDING.value
        assert order.refund.amount == order.summary.total

    def test_shipped_order_not_cancellable(self, stock_product, fill_cart, place_order):
        stock_product("P1")
        fill_cart()
        order_id = place_order(payment_method="cash_on_delivery")
        for command in (ConfirmOrder, StartProcessing, ShipOrder):
            _process(command(order_id=order_id))

        with pytest.raises(NotCancellable):
            _process(CancelOrder(order_id=order_id, reason="Too late"))

    def test_late_payment_after_cancel_rejected(self, stock_product, fill_cart, place_order):
        stock_product("P1")
        fill_cart()
        order_id = place_order()
        transaction_id = _order(order_id).payment.transaction_id
        _process(CancelOrder(order_id=order_id, reason="Changed my mind"))

        with pytest.raises(InvalidStateTransition):
            _process(RecordPaymentCallback(order_id=order_id, transaction_id=transaction_id, status="paid"))

        assert _order(order_id).payment.status == PaymentStatus.PENDING.value


class TestRefundOrder:
    def _delivered(self, stock_product, fill_cart, place_order):
        stock_product("P1", quantity=5)
        fill_cart()
        order_id = place_order()
        _pay(order_id)
        for command in (ConfirmOrder, StartProcessing, ShipOrder, DeliverOrder):
            _process(command(order_id=order_id))
        return order_id

    def test_refund_and_settle(self, stock_product, fill_cart, place_order):
        order_id = self._delivered(stock_product, fill_cart, place_order)

        _process(RefundOrder(order_id=order_id, reason="Arrived broken"))
        order = _order(order_id)
        assert order.status == OrderStatus.REFUNDED.value
        assert order.refund.status == RefundStatus.PENDING.value

        _process(CompleteRefund(order_id=order_id, reference="RF-100"))
        order = _order(order_id)
        assert order.payment.status == PaymentStatus.REFUNDED.value
        assert order.refund.status == RefundStatus.COMPLETED.value

    def test_refund_with_restock(self, stock_product, fill_cart, place_order):
        order_id = self._delivered(stock_product, fill_cart, place_order)
        assert _available("P1") == 3

        _process(RefundOrder(order_id=order_id, reason="Returned unopened", restock=True))

        assert _available("P1") == 5

    def test_refund_without_restock_leaves_stock(self, stock_product, fill_cart, place_order):
        order_id = self._delivered(stock_product, fill_cart, place_order)
        _process(RefundOrder(order_id=order_id, reason="Damaged in transit"))
        assert _available("P1") == 3

    def test_refund_undelivered_rejected(self, stock_product, fill_cart, place_order):
        stock_product("P1")
        fill_cart()
        order_id = place_order()
        with pytest.raises(NotCancellable):
            _process(RefundOrder(order_id=order_id, reason="Not yet"))

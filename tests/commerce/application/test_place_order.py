"""Application tests for order placement via domain.process()."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from commerce.cart.cart import ShoppingCart
from commerce.cart.coupons import ApplyCouponToCart
from commerce.errors import EmptyCart, InsufficientStock
from commerce.inventory.stock import StockRecord, stock_key
from commerce.order.order import Order, OrderStatus, PaymentStatus
from commerce.promotions.coupon import Coupon
from commerce.promotions.management import DefineCoupon


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _available(product_id):
    return current_domain.repository_for(StockRecord).get(stock_key(product_id)).available


class TestPlaceOrder:
    def test_reserves_stock_and_starts_pending(self, stock_product, fill_cart, place_order):
        stock_product("P1", price=500.0, quantity=5)
        fill_cart("cust-001", ("P1", 2))

        order = _order(place_order())

        assert order.status == OrderStatus.PENDING.value
        assert order.payment.status == PaymentStatus.PENDING.value
        assert _available("P1") == 3
        assert len(order.items) == 1
        assert order.items[0].quantity == 2
        assert order.items[0].unit_price == 500.0
        assert order.items[0].line_total == 1000.0

    def test_summary_from_pricing_policy(self, stock_product, fill_cart, place_order):
        stock_product("P1", price=500.0, quantity=5)
        fill_cart("cust-001", ("P1", 2))

        order = _order(place_order())

        assert order.summary.subtotal == 1000.0
        assert order.summary.shipping == 300.0
        assert order.summary.tax == 160.0
        assert order.summary.total == 1460.0
        assert order.payment.amount == 1460.0

    def test_order_number_and_history(self, stock_product, fill_cart, place_order):
        stock_product("P1")
        fill_cart()

        order = _order(place_order())

        assert order.order_number.startswith("ORD")
        trail = order.audit_trail()
        assert len(trail) == 1
        assert trail[0]["status"] == "pending"

    def test_cart_is_cleared(self, stock_product, fill_cart, place_order):
        stock_product("P1")
        fill_cart()
        place_order()
        assert current_domain.repository_for(ShoppingCart).get("cust-001").is_empty()

    def test_billing_defaults_to_shipping(self, stock_product, fill_cart, place_order):
        stock_product("P1")
        fill_cart()
        order = _order(place_order())
        assert order.billing_address.city == order.shipping_address.city

    def test_notes_kept(self, stock_product, fill_cart, place_order):
        stock_product("P1")
        fill_cart()
        order = _order(place_order(notes="Leave at the gate"))
        assert order.notes == "Leave at the gate"


class TestPlaceOrderRejections:
    def test_empty_cart(self, stock_product, place_order):
        with pytest.raises(EmptyCart):
            place_order()

    def test_cleared_cart(self, stock_product, fill_cart, place_order):
        stock_product("P1")
        fill_cart()
        place_order()
        with pytest.raises(EmptyCart):
            place_order()

    def test_missing_address(self, stock_product, fill_cart, place_order):
        stock_product("P1")
        fill_cart()
        with pytest.raises(ValidationError) as exc:
            place_order(shipping_address=None)
        assert "shipping_address" in exc.value.messages

    def test_incomplete_address(self, stock_product, fill_cart, place_order):
        stock_product("P1")
        fill_cart()
        with pytest.raises(ValidationError):
            place_order(shipping_address=json.dumps({"name": "Jane", "city": "Nairobi"}))

    def test_unknown_payment_method(self, stock_product, fill_cart, place_order):
        stock_product("P1")
        fill_cart()
        with pytest.raises(ValidationError) as exc:
            place_order(payment_method="barter")
        assert "payment_method" in exc.value.messages

    def test_rejection_leaves_stock_and_cart(self, stock_product, fill_cart, place_order):
        stock_product("P1", quantity=5)
        fill_cart()
        with pytest.raises(ValidationError):
            place_order(payment_method=None)
        assert _available("P1") == 5
        assert not current_domain.repository_for(ShoppingCart).get("cust-001").is_empty()


class TestStockContention:
    def test_second_order_for_last_unit_fails(self, stock_product, fill_cart, place_order):
        stock_product("P2", quantity=1)
        fill_cart("cust-001", ("P2", 1))
        fill_cart("cust-002", ("P2", 1))

        place_order("cust-001")
        with pytest.raises(InsufficientStock) as exc:
            place_order("cust-002")

        assert exc.value.lines[0]["product_id"] == "P2"
        assert _available("P2") == 0
        orders = current_domain.repository_for(Order)._dao.query.all().items
        assert len(orders) == 1

    def test_failing_line_leaves_other_lines_untouched(self, stock_product, fill_cart, place_order, catalogue):
        stock_product("P1", quantity=5)
        stock_product("P2", quantity=1)
        fill_cart("cust-001", ("P1", 2), ("P2", 1))
        fill_cart("cust-002", ("P2", 1))
        place_order("cust-002")

        with pytest.raises(InsufficientStock) as exc:
            place_order("cust-001")

        assert "Product P2" in exc.value.message
        assert _available("P1") == 5

    def test_product_withdrawn_after_add(self, stock_product, fill_cart, place_order, catalogue):
        stock_product("P1", name="Kettle")
        fill_cart()
        catalogue.deactivate("P1")

        with pytest.raises(InsufficientStock) as exc:
            place_order()
        assert "Kettle is no longer available" in exc.value.message

    def test_product_removed_from_catalogue(self, stock_product, fill_cart, place_order, catalogue):
        stock_product("P1", name="Kettle")
        fill_cart()
        catalogue.remove_product("P1")

        with pytest.raises(InsufficientStock) as exc:
            place_order()
        assert exc.value.lines[0]["available"] == 0
        assert _available("P1") == 5


class TestRepricing:
    def test_order_uses_current_catalogue_price(self, stock_product, fill_cart, place_order, catalogue):
        stock_product("P1", price=500.0)
        fill_cart()
        catalogue.set_price("P1", 550.0)

        order = _order(place_order())
        assert order.items[0].unit_price == 550.0
        assert order.summary.subtotal == 1100.0

    def test_placed_order_price_is_frozen(self, stock_product, fill_cart, place_order, catalogue):
        stock_product("P1", price=500.0)
        fill_cart()
        order_id = place_order()

        catalogue.set_price("P1", 900.0)

        order = _order(order_id)
        assert order.items[0].unit_price == 500.0
        assert order.summary.total == 1460.0


class TestCheckoutCoupons:
    def _define(self, code, **kwargs):
        kwargs.setdefault("kind", "percentage")
        kwargs.setdefault("value", 10.0)
        current_domain.process(DefineCoupon(code=code, **kwargs), asynchronous=False)

    def test_explicit_coupon_applied(self, stock_product, fill_cart, place_order):
        stock_product("P1", price=500.0)
        fill_cart()
        self._define("SAVE10")

        order = _order(place_order(coupon_code="SAVE10"))

        assert order.summary.discount == 100.0
        assert order.summary.total == 1360.0
        assert [c["code"] for c in order.applied_coupons()] == ["SAVE10"]

    def test_cart_coupon_carried_over(self, stock_product, fill_cart, place_order):
        stock_product("P1", price=500.0)
        fill_cart()
        self._define("FREESHIP", kind="free_shipping", value=0.0)
        current_domain.process(ApplyCouponToCart(customer_id="cust-001", coupon_code="FREESHIP"), asynchronous=False)

        order = _order(place_order())
        assert order.summary.discount == 300.0

    def test_coupon_expired_since_apply_is_dropped(self, stock_product, fill_cart, place_order):
        stock_product("P1", price=500.0)
        fill_cart()
        self._define("SAVE10")
        current_domain.process(ApplyCouponToCart(customer_id="cust-001", coupon_code="SAVE10"), asynchronous=False)

        repo = current_domain.repository_for(Coupon)
        coupon = repo.get("SAVE10")
        coupon.expires_at = datetime.now(UTC) - timedelta(minutes=1)
        repo.add(coupon)

        order = _order(place_order())
        assert order.summary.discount == 0.0
        assert order.applied_coupons() == []

    def test_unknown_coupon_ignored(self, stock_product, fill_cart, place_order):
        stock_product("P1", price=500.0)
        fill_cart()
        order = _order(place_order(coupon_code="NOPE"))
        assert order.summary.total == 1460.0


class TestPaymentInitiation:
    def test_gateway_called_with_order_number(self, stock_product, fill_cart, place_order, gateway):
        stock_product("P1")
        fill_cart()

        order = _order(place_order())

        assert len(gateway.calls) == 1
        call = gateway.calls[0]
        assert call["idempotency_key"] == order.order_number
        assert call["amount"] == order.summary.total
        assert call["payer_reference"] == "+254700000001"
        assert order.payment.transaction_id.startswith("fake_txn_")

    def test_gateway_failure_keeps_order_pending(self, stock_product, fill_cart, place_order, gateway):
        stock_product("P1", quantity=5)
        fill_cart()
        gateway.configure(should_succeed=False, failure_reason="Connection refused")

        order = _order(place_order())

        assert order.status == OrderStatus.PENDING.value
        assert order.payment.status == PaymentStatus.PENDING.value
        assert "Connection refused" in order.payment.gateway_error
        assert _available("P1") == 3

    def test_gateway_timeout_keeps_order_pending(self, stock_product, fill_cart, place_order, gateway, monkeypatch):
        monkeypatch.setenv("COMMERCE_GATEWAY_TIMEOUT", "0.05")
        stock_product("P1")
        fill_cart()
        gateway.configure(delay_seconds=0.5)

        order = _order(place_order())

        assert order.payment.status == PaymentStatus.PENDING.value
        assert "did not answer" in order.payment.gateway_error

    def test_cash_on_delivery_skips_gateway(self, stock_product, fill_cart, place_order, gateway):
        stock_product("P1")
        fill_cart()

        order = _order(place_order(payment_method="cash_on_delivery"))

        assert gateway.calls == []
        assert order.is_cash_on_delivery
        assert order.payment.status == PaymentStatus.PENDING.value

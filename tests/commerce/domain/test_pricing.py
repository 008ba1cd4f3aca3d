"""Tests for the cart/order pricing policy."""

import pytest

from commerce.cart.pricing import compute_summary, coupon_discount
from commerce.settings import CommerceSettings, get_settings

SETTINGS = CommerceSettings()


class TestComputeSummary:
    def test_empty_lines_are_all_zero(self):
        summary = compute_summary([], settings=SETTINGS)
        assert summary.subtotal == 0.0
        assert summary.shipping == 0.0
        assert summary.tax == 0.0
        assert summary.discount == 0.0
        assert summary.total == 0.0
        assert summary.item_count == 0

    def test_flat_shipping_below_threshold(self):
        summary = compute_summary([(500.0, 2)], settings=SETTINGS)
        assert summary.subtotal == 1000.0
        assert summary.shipping == 300.0
        assert summary.tax == 160.0
        assert summary.total == 1460.0

    def test_shipping_charged_at_threshold(self):
        summary = compute_summary([(2500.0, 2)], settings=SETTINGS)
        assert summary.subtotal == 5000.0
        assert summary.shipping == 300.0
        assert summary.total == 6100.0

    def test_free_shipping_above_threshold(self):
        summary = compute_summary([(2500.5, 2)], settings=SETTINGS)
        assert summary.subtotal == 5001.0
        assert summary.shipping == 0.0
        assert summary.total == 5801.16

    def test_counts_items_and_lines(self):
        summary = compute_summary([(100.0, 2), (50.0, 3)], settings=SETTINGS)
        assert summary.item_count == 5
        assert summary.unique_items == 2

    def test_total_identity_with_coupons(self):
        coupons = [{"code": "TEN", "kind": "percentage", "value": 10}]
        summary = compute_summary([(120.0, 3), (45.5, 2)], coupons, settings=SETTINGS)
        expected = round(summary.subtotal - summary.discount + summary.shipping + summary.tax, 2)
        assert summary.total == expected

    def test_currency_from_settings(self):
        summary = compute_summary([(1.0, 1)], settings=CommerceSettings(currency="USD"))
        assert summary.currency == "USD"

    def test_discount_capped_at_subtotal_plus_shipping(self):
        coupons = [
            {"code": "BIG", "kind": "fixed", "value": 900},
            {"code": "SHIP", "kind": "free_shipping", "value": 0},
            {"code": "HALF", "kind": "percentage", "value": 50},
        ]
        summary = compute_summary([(1000.0, 1)], coupons, settings=SETTINGS)
        assert summary.discount == 1300.0
        assert summary.total == summary.tax


class TestCouponDiscount:
    def test_percentage(self):
        assert coupon_discount({"kind": "percentage", "value": 15}, 1000.0, 300.0) == 150.0

    def test_fixed_never_exceeds_subtotal(self):
        assert coupon_discount({"kind": "fixed", "value": 800}, 500.0, 300.0) == 500.0

    def test_free_shipping_discounts_shipping(self):
        assert coupon_discount({"kind": "free_shipping", "value": 0}, 500.0, 300.0) == 300.0

    def test_unknown_kind_is_zero(self):
        assert coupon_discount({"kind": "mystery", "value": 99}, 500.0, 300.0) == 0.0


class TestSettings:
    def test_defaults(self):
        settings = get_settings()
        assert settings.tax_rate == 0.16
        assert settings.currency == "KES"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("COMMERCE_TAX_RATE", "0.1")
        monkeypatch.setenv("COMMERCE_SHIPPING_FEE", "0")
        settings = get_settings()
        assert settings.tax_rate == pytest.approx(0.1)
        assert compute_summary([(100.0, 1)], settings=settings).total == 110.0

"""Tests for order number generation."""

import re

import pytest

from commerce.order import numbering
from commerce.order.numbering import generate_order_number


class TestGenerateOrderNumber:
    def test_format(self):
        number = generate_order_number("ORD", is_taken=lambda _: False)
        assert re.fullmatch(r"ORD\d{13}\d{4}", number)

    def test_custom_prefix(self):
        assert generate_order_number("SHOP", is_taken=lambda _: False).startswith("SHOP")

    def test_retries_on_collision(self):
        seen = []

        def taken(candidate):
            seen.append(candidate)
            return len(seen) < 3

        number = generate_order_number("ORD", is_taken=taken)
        assert number == seen[-1]
        assert len(seen) == 3

    def test_gives_up_after_max_attempts(self):
        with pytest.raises(RuntimeError):
            generate_order_number("ORD", is_taken=lambda _: True)

    def test_many_numbers_are_distinct(self):
        issued = set()

        def taken(candidate):
            return candidate in issued

        for _ in range(200):
            issued.add(generate_order_number("ORD", is_taken=taken))
        assert len(issued) == 200

    def test_store_lookup_on_empty_store(self):
        assert numbering.order_number_taken("ORD0000000000000000000") is False

import json

import pytest
from protean import current_domain

from commerce.cart.items import AddToCart
from commerce.order.creation import PlaceOrder

ADDRESS = {
    "name": "Jane Wanjiku",
    "phone": "+254700000001",
    "address": "12 Moi Avenue",
    "city": "Nairobi",
    "county": "Nairobi",
    "postal_code": "00100",
}


@pytest.fixture()
def fill_cart():
    def _fill(customer_id="cust-001", *lines):
        for product_id, quantity in lines or (("P1", 2),):
            current_domain.process(
                AddToCart(customer_id=customer_id, product_id=product_id, quantity=quantity),
                asynchronous=False,
            )

    return _fill


@pytest.fixture()
def place_order():
    def _place(customer_id="cust-001", payment_method="wallet_transfer", **overrides):
        fields = {
            "customer_id": customer_id,
            "shipping_address": json.dumps(ADDRESS),
            "payment_method": payment_method,
        }
        fields.update(overrides)
        return current_domain.process(PlaceOrder(**fields), asynchronous=False)

    return _place

"""Order placement: command and handler (the order factory).

Checkout runs in one unit of work:

    1. the cart must hold at least one line
    2. shipping address and payment method are validated
    3. every line is re-priced from the catalogue and checked against stock
    4. the inventory guard reserves every line, or none
    5. coupons are re-validated; invalid ones are dropped without failing
    6. an order number is generated and the order persisted as pending
    7. the cart is cleared
    8. non-COD payments are started at the gateway, bounded by a timeout

A gateway failure in step 8 does not undo the order: stock is already
reserved, payment stays pending and a later callback settles it.
"""

import json
from uuid import uuid4

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.cart.cart import ShoppingCart
from commerce.cart.management import cart_for
from commerce.cart.pricing import compute_summary
from commerce.catalogue import get_catalogue
from commerce.domain import commerce
from commerce.errors import EmptyCart, ExternalServiceError, InsufficientStock
from commerce.gateway import initiate_with_timeout
from commerce.inventory.guard import InventoryGuard, StockLine
from commerce.order.numbering import generate_order_number
from commerce.order.order import Order, PaymentMethod
from commerce.promotions.management import find_coupon
from commerce.settings import get_settings
from commerce.utils.db import serialized

logger = structlog.get_logger(__name__)

_ADDRESS_FIELDS = ("name", "phone", "address", "city", "county", "postal_code")
_REQUIRED_ADDRESS_FIELDS = ("name", "phone", "address", "city")


@commerce.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    shipping_address = Text()  # JSON: address dict
    billing_address = Text()  # JSON: address dict, defaults to shipping
    payment_method = String(max_length=50)
    notes = String(max_length=1000)
    coupon_code = String(max_length=50)


def _decode(value):
    if value is None or value == "":
        return None
    return json.loads(value) if isinstance(value, str) else dict(value)


def _address(value, field_name, required):
    address = _decode(value)
    if address is None:
        if required:
            raise ValidationError({field_name: ["is required"]})
        return None

    missing = [name for name in _REQUIRED_ADDRESS_FIELDS if not address.get(name)]
    if missing:
        raise ValidationError({field_name: [f"Missing fields: {', '.join(missing)}"]})
    return {name: address.get(name) for name in _ADDRESS_FIELDS}


def _payment_method(value):
    if not value:
        raise ValidationError({"payment_method": ["is required"]})
    allowed = [m.value for m in PaymentMethod]
    if value not in allowed:
        raise ValidationError({"payment_method": [f"Must be one of {', '.join(allowed)}"]})
    return value


def _reprice(cart_lines):
    """Re-read every cart line from the catalogue.

    Returns ``(lines, failures)``: order lines at the current catalogue price,
    and one failure entry per line that can no longer be sold.
    """
    catalogue = get_catalogue()
    lines, failures = [], []
    for line in cart_lines:
        product = catalogue.get_product(line["product_id"])
        if product is None or not product.active or not product.has_variant(line["variant"]):
            failures.append(
                {
                    "product_id": line["product_id"],
                    "variant": line["variant"],
                    "name": line.get("name"),
                    "requested": line["quantity"],
                    "available": 0,
                    "reason": f"{line.get('name') or line['product_id']} is no longer available",
                }
            )
            continue

        current_price = product.unit_price(line["variant"])
        if current_price != line["unit_price"]:
            logger.info(
                "Cart price drifted, using catalogue price",
                product_id=line["product_id"],
                cart_price=line["unit_price"],
                catalogue_price=current_price,
            )
        lines.append(
            {
                "product_id": line["product_id"],
                "variant": line["variant"],
                "name": product.name,
                "sku": product.sku,
                "unit_price": current_price,
                "quantity": line["quantity"],
                "image_url": product.image_url or line.get("image_url"),
            }
        )
    return lines, failures


def _redeemable_coupons(codes, subtotal):
    """Snapshots of the coupons that are still valid; the rest are ignored."""
    snapshots = []
    for code in codes:
        coupon = find_coupon(code)
        if coupon is None or not coupon.is_redeemable(subtotal):
            logger.info("Ignoring coupon at checkout", coupon_code=code)
            continue
        snapshots.append(coupon.snapshot())
    return snapshots


@commerce.command_handler(part_of=Order)
class PlaceOrderHandler:
    @serialized
    @handle(PlaceOrder)
    def place_order(self, command):
        settings = get_settings()

        try:
            cart = cart_for(command.customer_id, create=False)
        except ObjectNotFoundError:
            cart = None
        if cart is None or cart.is_empty():
            raise EmptyCart("Cannot place an order from an empty cart", customer_id=str(command.customer_id))

        shipping_address = _address(command.shipping_address, "shipping_address", required=True)
        billing_address = _address(command.billing_address, "billing_address", required=False)
        payment_method = _payment_method(command.payment_method)

        lines, failures = _reprice(cart.snapshot())
        guard = InventoryGuard()
        stock_lines = [
            StockLine(
                product_id=line["product_id"],
                variant=line["variant"],
                quantity=line["quantity"],
                label=line["name"],
            )
            for line in lines
        ]
        failures += guard.shortfalls(stock_lines)
        if failures:
            raise InsufficientStock(
                "Stock issues found: " + ", ".join(f["reason"] for f in failures),
                lines=failures,
            )

        order_id = str(uuid4())
        guard.reserve_and_decrement(order_id, stock_lines)

        subtotal = round(sum(line["unit_price"] * line["quantity"] for line in lines), 2)
        codes = [command.coupon_code] if command.coupon_code else [c["code"] for c in cart.coupons()]
        coupons = _redeemable_coupons(codes, subtotal)
        summary = compute_summary(
            [(line["unit_price"], line["quantity"]) for line in lines],
            coupons,
            settings,
        )

        order = Order.create(
            order_id=order_id,
            order_number=generate_order_number(settings.order_number_prefix),
            customer_id=command.customer_id,
            lines=lines,
            shipping_address=shipping_address,
            billing_address=billing_address,
            summary={
                "subtotal": summary.subtotal,
                "discount": summary.discount,
                "shipping": summary.shipping,
                "tax": summary.tax,
                "total": summary.total,
                "currency": summary.currency,
            },
            payment_method=payment_method,
            coupons=coupons,
            notes=command.notes,
        )

        if payment_method != PaymentMethod.CASH_ON_DELIVERY.value:
            self._start_payment(order, shipping_address, settings)

        current_domain.repository_for(Order).add(order)

        cart.clear(reason=f"Checked out as {order.order_number}")
        current_domain.repository_for(ShoppingCart).add(cart)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=str(command.customer_id),
            total=order.summary.total,
            payment_method=payment_method,
        )
        return str(order.id)

    def _start_payment(self, order, shipping_address, settings):
        try:
            initiation = initiate_with_timeout(
                settings.gateway_timeout_seconds,
                method=order.payment.method,
                amount=order.summary.total,
                currency=order.summary.currency,
                payer_reference=shipping_address["phone"],
                idempotency_key=order.order_number,
            )
        except ExternalServiceError as exc:
            logger.warning(
                "Payment initiation failed, order left pending",
                order_id=str(order.id),
                order_number=order.order_number,
                error=exc.message,
            )
            order.record_gateway_error(exc.message)
            return

        order.record_payment_initiation(initiation.transaction_id)

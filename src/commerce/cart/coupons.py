"""Cart coupon management: commands and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.cart.cart import ShoppingCart
from commerce.cart.management import cart_for
from commerce.domain import commerce
from commerce.promotions.coupon import normalize_code
from commerce.promotions.management import find_coupon
from commerce.utils.db import serialized


@commerce.command(part_of="ShoppingCart")
class ApplyCouponToCart:
    """Apply a coupon code to a shopping cart."""

    customer_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=50)


@commerce.command(part_of="ShoppingCart")
class RemoveCouponFromCart:
    customer_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=50)


@commerce.command_handler(part_of=ShoppingCart)
class CartCouponHandler:
    @serialized
    @handle(ApplyCouponToCart)
    def apply_coupon(self, command):
        cart = cart_for(command.customer_id)

        coupon = find_coupon(command.coupon_code)
        if coupon is None:
            raise ValidationError({"coupon_code": ["Invalid coupon code"]})

        reason = coupon.rejection_reason(cart.summary().subtotal)
        if reason:
            raise ValidationError({"coupon_code": [reason]})

        cart.apply_coupon(coupon.snapshot())
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @serialized
    @handle(RemoveCouponFromCart)
    def remove_coupon(self, command):
        cart = cart_for(command.customer_id)
        cart.remove_coupon(normalize_code(command.coupon_code))
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

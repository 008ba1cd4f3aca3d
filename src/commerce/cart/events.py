"""Domain events for the ShoppingCart aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product variant was added to the cart (or its quantity increased)."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant = String()
    quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    unit_price = Float(required=True)


@commerce.event(part_of="ShoppingCart")
class CartQuantityUpdated:
    """The quantity of a cart line was changed."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant = String()
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@commerce.event(part_of="ShoppingCart")
class CartItemRemoved:
    """A line was removed from the cart."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant = String()


@commerce.event(part_of="ShoppingCart")
class CartCouponApplied:
    """A coupon was applied to the cart."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    coupon_code = String(required=True)


@commerce.event(part_of="ShoppingCart")
class CartCouponRemoved:
    """A coupon was taken off the cart."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    coupon_code = String(required=True)


@commerce.event(part_of="ShoppingCart")
class CartCleared:
    """Every item and coupon was removed (by the customer or after checkout)."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    reason = String()
    cleared_at = DateTime(required=True)

"""Shopping Cart aggregate (CQRS): the mutable basket a customer checks out.

There is one cart per customer (or anonymous session); the cart's identity is
the opaque customer identity handed over by the auth layer. Lines are keyed by
(product_id, variant): adding an existing key merges quantities.

The money summary is never stored. ``summary()`` recomputes it from the
current lines and coupon snapshots on every call, so it cannot go stale.

Stock is only checked here, never reserved: callers pass the currently
available quantity and the cart refuses to hold more than that.
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from commerce.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
)
from commerce.cart.pricing import compute_summary
from commerce.domain import commerce
from commerce.errors import InvalidQuantity, NotFound, OutOfStock


@commerce.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    variant = String(max_length=100, default="")
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    name = String(max_length=255)
    sku = String(max_length=50)
    image_url = String(max_length=1000)
    added_at = DateTime()
    updated_at = DateTime()

    @property
    def line_total(self):
        return round(self.unit_price * self.quantity, 2)

    def matches(self, product_id, variant=None):
        return str(self.product_id) == str(product_id) and (self.variant or "") == (variant or "")


def _check_quantity(quantity):
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
        raise InvalidQuantity(f"Quantity must be a positive whole number, got {quantity!r}", quantity=quantity)


@commerce.aggregate
class ShoppingCart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    applied_coupons = Text()  # JSON array of {code, kind, value} snapshots
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def lines_must_be_unique_per_product_variant(self):
        keys = [(str(i.product_id), i.variant or "") for i in (self.items or [])]
        if len(keys) != len(set(keys)):
            raise ValidationError({"items": ["Duplicate product/variant lines in cart"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(
            id=str(customer_id),
            customer_id=str(customer_id),
            applied_coupons=json.dumps([]),
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def find_item(self, product_id, variant=None):
        return next((i for i in (self.items or []) if i.matches(product_id, variant)), None)

    def coupons(self):
        return json.loads(self.applied_coupons) if self.applied_coupons else []

    def is_empty(self):
        return not self.items

    def summary(self):
        """Derived pricing of the current lines. Pure; recomputed on every call."""
        return compute_summary(
            [(item.unit_price, item.quantity) for item in (self.items or [])],
            self.coupons(),
        )

    def snapshot(self):
        """Plain copy of the lines, as handed to the order factory at checkout."""
        return [
            {
                "product_id": str(item.product_id),
                "variant": item.variant or "",
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "name": item.name,
                "sku": item.sku,
                "image_url": item.image_url,
            }
            for item in (self.items or [])
        ]

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity, unit_price, available, variant=None, name=None, sku=None, image_url=None):
        """Add a product variant, merging into an existing line with the same key."""
        _check_quantity(quantity)

        existing = self.find_item(product_id, variant)
        new_quantity = quantity + (existing.quantity if existing else 0)
        if new_quantity > available:
            raise OutOfStock(
                f"Only {available} units available",
                product_id=str(product_id),
                variant=variant or "",
                requested=new_quantity,
                available=available,
            )

        now = datetime.now(UTC)
        if existing:
            existing.quantity = new_quantity
            existing.updated_at = now
        else:
            self.add_items(
                CartItem(
                    product_id=product_id,
                    variant=variant or "",
                    quantity=quantity,
                    unit_price=unit_price,
                    name=name,
                    sku=sku,
                    image_url=image_url,
                    added_at=now,
                    updated_at=now,
                )
            )
        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                product_id=str(product_id),
                variant=variant or "",
                quantity=quantity,
                new_quantity=new_quantity,
                unit_price=existing.unit_price if existing else unit_price,
            )
        )

    def update_quantity(self, product_id, new_quantity, available, variant=None):
        """Set a line's quantity; zero or less removes the line."""
        if isinstance(new_quantity, bool) or not isinstance(new_quantity, int):
            raise InvalidQuantity(f"Quantity must be a whole number, got {new_quantity!r}", quantity=new_quantity)

        if new_quantity <= 0:
            self.remove_item(product_id, variant)
            return

        item = self.find_item(product_id, variant)
        if item is None:
            raise NotFound(
                f"Product {product_id} is not in the cart",
                product_id=str(product_id),
                variant=variant or "",
            )

        if new_quantity > available:
            raise OutOfStock(
                f"Only {available} units available",
                product_id=str(product_id),
                variant=variant or "",
                requested=new_quantity,
                available=available,
            )

        previous_quantity = item.quantity
        now = datetime.now(UTC)
        item.quantity = new_quantity
        item.updated_at = now
        self.updated_at = now

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                variant=variant or "",
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def remove_item(self, product_id, variant=None):
        """Remove a line. Removing a line that is not there is a no-op."""
        item = self.find_item(product_id, variant)
        if item is None:
            return

        self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                product_id=str(product_id),
                variant=variant or "",
            )
        )

    def clear(self, reason=None):
        """Empty the cart: every line and every coupon."""
        for item in list(self.items or []):
            self.remove_items(item)
        self.applied_coupons = json.dumps([])
        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                reason=reason,
                cleared_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Coupon management
    # -------------------------------------------------------------------
    def apply_coupon(self, coupon_snapshot):
        """Apply a coupon snapshot ({code, kind, value}); re-applying a code replaces it."""
        if self.is_empty():
            raise ValidationError({"cart": ["Cannot apply coupon to empty cart"]})

        code = coupon_snapshot["code"]
        coupons = [c for c in self.coupons() if c.get("code") != code]
        coupons.append(dict(coupon_snapshot))
        self.applied_coupons = json.dumps(coupons)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                coupon_code=code,
            )
        )

    def remove_coupon(self, code):
        coupons = self.coupons()
        remaining = [c for c in coupons if c.get("code") != code]
        if len(remaining) == len(coupons):
            return

        self.applied_coupons = json.dumps(remaining)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartCouponRemoved(
                cart_id=str(self.id),
                coupon_code=code,
            )
        )

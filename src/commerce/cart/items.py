"""Cart item management: commands and handler.

Adding a product re-reads it from the catalogue to capture the current unit
price and asks the inventory guard how many units are available; the cart
itself decides whether the requested quantity fits.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.cart.cart import ShoppingCart
from commerce.cart.management import cart_for
from commerce.catalogue import get_catalogue
from commerce.domain import commerce
from commerce.errors import NotFound
from commerce.inventory.guard import InventoryGuard
from commerce.utils.db import serialized


@commerce.command(part_of="ShoppingCart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant = String(max_length=100)
    quantity = Integer(required=True)


@commerce.command(part_of="ShoppingCart")
class UpdateCartQuantity:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant = String(max_length=100)
    new_quantity = Integer(required=True)


@commerce.command(part_of="ShoppingCart")
class RemoveFromCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant = String(max_length=100)


def _sellable_product(product_id, variant):
    product = get_catalogue().get_product(str(product_id))
    if product is None or not product.active:
        raise NotFound(f"Product {product_id} is not available", product_id=str(product_id))
    if not product.has_variant(variant or ""):
        raise ValidationError({"variant": [f"Unknown variant '{variant}' for product {product_id}"]})
    return product


@commerce.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @serialized
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = _sellable_product(command.product_id, command.variant)
        available = InventoryGuard().check_availability(command.product_id, command.variant)

        cart = cart_for(command.customer_id)
        cart.add_item(
            product_id=command.product_id,
            variant=command.variant,
            quantity=command.quantity,
            unit_price=product.unit_price(command.variant or ""),
            available=available,
            name=product.name,
            sku=product.sku,
            image_url=product.image_url,
        )
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @serialized
    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        cart = cart_for(command.customer_id)
        available = InventoryGuard().check_availability(command.product_id, command.variant)
        cart.update_quantity(
            product_id=command.product_id,
            variant=command.variant,
            new_quantity=command.new_quantity,
            available=available,
        )
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @serialized
    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = cart_for(command.customer_id)
        cart.remove_item(product_id=command.product_id, variant=command.variant)
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

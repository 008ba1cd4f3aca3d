"""Cart lifecycle: lookup helper, clear command and handler."""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from commerce.cart.cart import ShoppingCart
from commerce.domain import commerce
from commerce.utils.db import serialized


def cart_for(customer_id, create=True):
    """Load the customer's cart, starting an empty one on first use.

    With ``create=False`` a missing cart propagates ObjectNotFoundError.
    """
    repo = current_domain.repository_for(ShoppingCart)
    try:
        return repo.get(str(customer_id))
    except ObjectNotFoundError:
        if not create:
            raise
        return ShoppingCart.create(customer_id=customer_id)


@commerce.command(part_of="ShoppingCart")
class ClearCart:
    customer_id = Identifier(required=True)


@commerce.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @serialized
    @handle(ClearCart)
    def clear_cart(self, command):
        cart = cart_for(command.customer_id)
        cart.clear(reason="cleared by customer")
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

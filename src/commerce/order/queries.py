"""Order lookups shared by the command handlers and the API."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from commerce.errors import NotFound
from commerce.inventory.guard import StockLine
from commerce.order.order import Order


def load_order(order_id):
    try:
        return current_domain.repository_for(Order).get(str(order_id))
    except ObjectNotFoundError as exc:
        raise NotFound(f"Order {order_id} not found", order_id=str(order_id)) from exc


def find_by_number(order_number):
    order = current_domain.repository_for(Order).find_by_number(order_number)
    if order is None:
        raise NotFound(f"Order {order_number} not found", order_number=order_number)
    return order


def orders_for_customer(customer_id):
    """The customer's orders, newest first."""
    return current_domain.repository_for(Order).for_customer(customer_id)


def stock_lines_of(order):
    return [
        StockLine(
            product_id=str(item.product_id),
            variant=item.variant or "",
            quantity=item.quantity,
            label=item.name,
        )
        for item in order.items
    ]

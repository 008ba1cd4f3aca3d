"""Order lookups beyond fetch-by-id."""

from commerce.domain import commerce
from commerce.order.order import Order


@commerce.repository(part_of=Order)
class OrderRepository:
    def find_by_number(self, order_number):
        """The order carrying this customer-facing number, or None."""
        matches = self._dao.query.filter(order_number=order_number).limit(1).all().items
        return matches[0] if matches else None

    def for_customer(self, customer_id):
        """The customer's orders, newest first."""
        return self._dao.query.filter(customer_id=str(customer_id)).order_by("-created_at").all().items

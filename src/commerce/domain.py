"""Commerce bounded context: Shopping Cart and Order Lifecycle.

Handles the customer's cart (CQRS), stock reservation through the inventory
guard, order creation at checkout, and the order's fulfillment and payment
state machines through to completion, cancellation or refund.
"""

from protean.domain import Domain

from commerce.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

commerce = Domain(name="commerce")

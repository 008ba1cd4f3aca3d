"""Order cancellation and refund: commands, handler and workflow.

Cancellation is allowed while the order is pending, confirmed or processing.
The order's status guard runs before anything else, so reserved stock is
released exactly once: a second cancel fails with NotCancellable before the
inventory guard is touched.
"""

import structlog
from protean import handle
from protean.fields import Boolean, Float, Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.inventory.guard import InventoryGuard
from commerce.order.order import Order
from commerce.order.queries import load_order, stock_lines_of
from commerce.utils.db import serialized

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    actor = String(max_length=100, default="customer")


@commerce.command(part_of="Order")
class RefundOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)
    actor = String(max_length=100, default="admin")
    amount = Float()  # Optional, defaults to the amount paid
    restock = Boolean(default=False)


def cancel_order(order, reason, actor=None):
    """Cancel ``order`` and return its reserved stock."""
    refund_opened = order.cancel(reason=reason, actor=actor)
    released = InventoryGuard().release(order.id, stock_lines_of(order), reason=reason)

    logger.info(
        "Order cancelled",
        order_id=str(order.id),
        order_number=order.order_number,
        units_released=released,
        refund_opened=refund_opened,
    )
    return released


def refund_order(order, reason=None, actor=None, amount=None, restock=False):
    """Refund a delivered order, optionally putting the goods back on hand."""
    order.request_refund(reason=reason, actor=actor, amount=amount)
    if restock:
        InventoryGuard().restock(stock_lines_of(order), reference=f"refund {order.order_number}")

    logger.info(
        "Order refunded",
        order_id=str(order.id),
        order_number=order.order_number,
        amount=order.refund.amount,
        restocked=restock,
    )


@commerce.command_handler(part_of=Order)
class CancelOrderHandler:
    @serialized
    @handle(CancelOrder)
    def cancel_order(self, command):
        order = load_order(command.order_id)
        cancel_order(order, reason=command.reason, actor=command.actor)
        current_domain.repository_for(Order).add(order)
        return str(order.id)

    @serialized
    @handle(RefundOrder)
    def refund_order(self, command):
        order = load_order(command.order_id)
        refund_order(
            order,
            reason=command.reason,
            actor=command.actor,
            amount=command.amount,
            restock=bool(command.restock),
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)

"""Payment callbacks and refund settlement: commands and handler.

Gateway callbacks may arrive more than once and in any order relative to
admin actions. The Order aggregate makes a replayed "paid" callback for the
same transaction a no-op, and rejects callbacks for cancelled or refunded
orders with InvalidStateTransition.
"""

from enum import Enum

import structlog
from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.order.order import Order
from commerce.order.queries import load_order
from commerce.utils.db import serialized

logger = structlog.get_logger(__name__)


class CallbackStatus(Enum):
    PAID = "paid"
    FAILED = "failed"


@commerce.command(part_of="Order")
class RecordPaymentCallback:
    order_id = Identifier(required=True)
    transaction_id = String(required=True, max_length=255)
    status = String(required=True, choices=CallbackStatus)
    amount = Float()
    reason = String(max_length=500)


@commerce.command(part_of="Order")
class CompleteRefund:
    order_id = Identifier(required=True)
    amount = Float()  # Optional, defaults to the open refund's remainder
    reference = String(max_length=255)


@commerce.command_handler(part_of=Order)
class PaymentHandler:
    @serialized
    @handle(RecordPaymentCallback)
    def record_payment_callback(self, command):
        order = load_order(command.order_id)

        if command.status == CallbackStatus.PAID.value:
            applied = order.record_payment(command.transaction_id, amount=command.amount)
        else:
            applied = order.fail_payment(command.reason or "Payment failed", transaction_id=command.transaction_id)

        if not applied:
            logger.info(
                "Duplicate payment callback ignored",
                order_id=str(order.id),
                transaction_id=command.transaction_id,
            )
            return str(order.id)

        current_domain.repository_for(Order).add(order)
        logger.info(
            "Payment callback applied",
            order_id=str(order.id),
            transaction_id=command.transaction_id,
            payment_status=order.payment.status,
        )
        return str(order.id)

    @serialized
    @handle(CompleteRefund)
    def complete_refund(self, command):
        order = load_order(command.order_id)
        order.complete_refund(amount=command.amount, reference=command.reference)
        current_domain.repository_for(Order).add(order)
        return str(order.id)

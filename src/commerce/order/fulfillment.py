"""Order fulfillment transitions: commands and handler.

Shipping converts the order's stock reservations into on-hand decrements.
``UpdateOrderStatus`` is the generic admin entry point: it routes each target
status to the matching transition or workflow.
"""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.inventory.guard import InventoryGuard
from commerce.order.cancellation import cancel_order, refund_order
from commerce.order.order import Order, OrderStatus
from commerce.order.queries import load_order, stock_lines_of
from commerce.utils.db import serialized


@commerce.command(part_of="Order")
class ConfirmOrder:
    order_id = Identifier(required=True)
    note = String(max_length=500)
    actor = String(max_length=100, default="admin")


@commerce.command(part_of="Order")
class StartProcessing:
    order_id = Identifier(required=True)
    note = String(max_length=500)
    actor = String(max_length=100, default="admin")


@commerce.command(part_of="Order")
class ShipOrder:
    order_id = Identifier(required=True)
    carrier = String(max_length=100)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=1000)
    estimated_delivery = String(max_length=10)
    note = String(max_length=500)
    actor = String(max_length=100, default="admin")


@commerce.command(part_of="Order")
class DeliverOrder:
    order_id = Identifier(required=True)
    note = String(max_length=500)
    actor = String(max_length=100, default="admin")


@commerce.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    note = String(max_length=500)
    actor = String(max_length=100, default="admin")
    carrier = String(max_length=100)
    tracking_number = String(max_length=255)
    amount = Float()


def ship_order(order, note=None, actor=None, **tracking):
    order.ship(note=note, actor=actor, **tracking)
    InventoryGuard().commit(order.id, stock_lines_of(order))


@commerce.command_handler(part_of=Order)
class FulfillmentHandler:
    @serialized
    @handle(ConfirmOrder)
    def confirm_order(self, command):
        order = load_order(command.order_id)
        order.confirm(note=command.note, actor=command.actor)
        current_domain.repository_for(Order).add(order)
        return str(order.id)

    @serialized
    @handle(StartProcessing)
    def start_processing(self, command):
        order = load_order(command.order_id)
        order.start_processing(note=command.note, actor=command.actor)
        current_domain.repository_for(Order).add(order)
        return str(order.id)

    @serialized
    @handle(ShipOrder)
    def ship_order(self, command):
        order = load_order(command.order_id)
        ship_order(
            order,
            note=command.note,
            actor=command.actor,
            carrier=command.carrier,
            tracking_number=command.tracking_number,
            tracking_url=command.tracking_url,
            estimated_delivery=command.estimated_delivery,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)

    @serialized
    @handle(DeliverOrder)
    def deliver_order(self, command):
        order = load_order(command.order_id)
        order.deliver(note=command.note, actor=command.actor)
        current_domain.repository_for(Order).add(order)
        return str(order.id)

    @serialized
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        order = load_order(command.order_id)
        target = OrderStatus(command.status)

        if target == OrderStatus.CANCELLED:
            cancel_order(order, reason=command.note or "Cancelled by admin", actor=command.actor)
        elif target == OrderStatus.REFUNDED:
            refund_order(order, reason=command.note, actor=command.actor, amount=command.amount)
        elif target == OrderStatus.SHIPPED:
            ship_order(
                order,
                note=command.note,
                actor=command.actor,
                carrier=command.carrier,
                tracking_number=command.tracking_number,
            )
        else:
            order.transition_to(target, note=command.note, actor=command.actor)

        current_domain.repository_for(Order).add(order)
        return str(order.id)

"""Domain events for the StockRecord aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="StockRecord")
class StockInitialized:
    """A stock counter was created for a product variant."""

    __version__ = "v1"

    stock_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant = String()
    quantity = Integer(required=True)
    initialized_at = DateTime(required=True)


@commerce.event(part_of="StockRecord")
class StockReceived:
    """Goods were received into stock (purchase delivery or restock on refund)."""

    __version__ = "v1"

    stock_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    new_available = Integer(required=True)
    reference = String()
    received_at = DateTime(required=True)


@commerce.event(part_of="StockRecord")
class StockReserved:
    """Stock was reserved for an order at checkout."""

    __version__ = "v1"

    stock_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_available = Integer(required=True)
    new_available = Integer(required=True)
    reserved_at = DateTime(required=True)


@commerce.event(part_of="StockRecord")
class ReservationReleased:
    """An order's reservation was returned to available stock."""

    __version__ = "v1"

    stock_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_available = Integer(required=True)
    reason = String()
    released_at = DateTime(required=True)


@commerce.event(part_of="StockRecord")
class StockCommitted:
    """Reserved stock left the warehouse with a shipment."""

    __version__ = "v1"

    stock_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    committed_at = DateTime(required=True)

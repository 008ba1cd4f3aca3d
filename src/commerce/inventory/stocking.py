"""Stock administration: commands and handler."""

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.inventory.stock import StockRecord, stock_key
from commerce.utils.db import serialized


@commerce.command(part_of="StockRecord")
class InitializeStock:
    """Create the stock counter for a product variant."""

    product_id = Identifier(required=True)
    variant = String(max_length=100)
    quantity = Integer(required=True, min_value=0)


@commerce.command(part_of="StockRecord")
class ReceiveStock:
    """Add received goods to an existing counter."""

    product_id = Identifier(required=True)
    variant = String(max_length=100)
    quantity = Integer(required=True, min_value=1)
    reference = String(max_length=255)


@commerce.command_handler(part_of=StockRecord)
class StockingHandler:
    @serialized
    @handle(InitializeStock)
    def initialize_stock(self, command):
        repo = current_domain.repository_for(StockRecord)
        key = stock_key(command.product_id, command.variant)
        try:
            repo.get(key)
        except ObjectNotFoundError:
            record = StockRecord.create(
                product_id=command.product_id,
                variant=command.variant,
                quantity=command.quantity,
            )
            repo.add(record)
            return str(record.id)

        raise ValidationError({"product_id": [f"Stock for {key} is already initialized"]})

    @serialized
    @handle(ReceiveStock)
    def receive_stock(self, command):
        repo = current_domain.repository_for(StockRecord)
        record = repo.get(stock_key(command.product_id, command.variant))
        record.receive(command.quantity, reference=command.reference)
        repo.add(record)
        return str(record.id)

"""Inventory guard: the only writer of stock counters.

Checkout reserves every line of an order in one pass: all counters are read
and checked first, and only when every line fits are the reservations
written. The writes happen inside the caller's unit of work, which command
handlers run under the store's write lock (``commerce.utils.db.serialized``),
so a second checkout for the same units reads the committed reservation and
sees ``InsufficientStock``. Counters are also saved with the repository's
version check; a lost version race is reported the same way.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError
from protean.utils.globals import current_domain

from commerce.errors import InsufficientStock
from commerce.inventory.stock import StockRecord, stock_key

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StockLine:
    """One product/variant/quantity demand against inventory."""

    product_id: str
    quantity: int
    variant: str = ""
    label: str | None = None

    @property
    def key(self) -> str:
        return stock_key(self.product_id, self.variant)

    def describe(self) -> str:
        name = self.label or self.product_id
        return f"{name} ({self.variant})" if self.variant else name


def _load(key):
    try:
        return current_domain.repository_for(StockRecord).get(key)
    except ObjectNotFoundError:
        return None


def _merge(lines):
    """Collapse lines that target the same counter so demand is checked in total."""
    merged: dict[str, StockLine] = {}
    for line in lines:
        existing = merged.get(line.key)
        if existing is None:
            merged[line.key] = line
        else:
            merged[line.key] = StockLine(
                product_id=line.product_id,
                variant=line.variant,
                quantity=existing.quantity + line.quantity,
                label=existing.label or line.label,
            )
    return list(merged.values())


class InventoryGuard:
    def check_availability(self, product_id, variant=None, quantity=0):
        """Return how many units of the product variant can still be sold.

        Read-only; unknown products report 0. ``quantity`` is accepted for
        symmetry with callers that compare against it.
        """
        record = _load(stock_key(product_id, variant))
        return record.available if record is not None else 0

    def is_available(self, product_id, variant=None, quantity=1):
        return self.check_availability(product_id, variant) >= quantity

    def shortfalls(self, lines):
        """Describe every line that cannot be covered by current stock."""
        failures = []
        for line in _merge(lines):
            record = _load(line.key)
            available = record.available if record is not None else 0
            if available < line.quantity:
                failures.append(
                    {
                        "product_id": line.product_id,
                        "variant": line.variant,
                        "name": line.label,
                        "requested": line.quantity,
                        "available": available,
                        "reason": f"Only {available} units of {line.describe()} available (requested: {line.quantity})",
                    }
                )
        return failures

    def reserve_and_decrement(self, order_id, lines):
        """Reserve every line for ``order_id`` or none of them."""
        lines = _merge(lines)

        failures = self.shortfalls(lines)
        if failures:
            raise InsufficientStock(
                "Stock issues found: " + ", ".join(f["reason"] for f in failures),
                lines=failures,
            )

        repo = current_domain.repository_for(StockRecord)
        for line in lines:
            record = repo.get(line.key)
            record.reserve(order_id=order_id, quantity=line.quantity)
            try:
                repo.add(record)
            except ExpectedVersionError as exc:
                logger.warning(
                    "Concurrent stock update lost the race",
                    order_id=str(order_id),
                    stock_id=line.key,
                )
                raise InsufficientStock(
                    f"{line.describe()} was reserved by a concurrent order, please retry",
                    lines=[
                        {
                            "product_id": line.product_id,
                            "variant": line.variant,
                            "name": line.label,
                            "requested": line.quantity,
                            "available": None,
                            "reason": "concurrent update",
                        }
                    ],
                ) from exc

        logger.info(
            "Stock reserved",
            order_id=str(order_id),
            lines=len(lines),
        )

    def release(self, order_id, lines, reason=None):
        """Return the order's reservations to available stock. Returns units released."""
        repo = current_domain.repository_for(StockRecord)
        released = 0
        for line in _merge(lines):
            record = _load(line.key)
            if record is None:
                logger.warning("No stock record for released line", order_id=str(order_id), stock_id=line.key)
                continue
            units = record.release(order_id=order_id, reason=reason)
            if units:
                repo.add(record)
                released += units

        logger.info("Stock released", order_id=str(order_id), units=released)
        return released

    def commit(self, order_id, lines):
        """Convert the order's reservations into on-hand decrements at shipment."""
        repo = current_domain.repository_for(StockRecord)
        committed = 0
        for line in _merge(lines):
            record = _load(line.key)
            if record is None:
                continue
            units = record.commit(order_id=order_id)
            if units:
                repo.add(record)
                committed += units
        return committed

    def restock(self, lines, reference=None):
        """Put returned goods back on hand, creating counters that no longer exist."""
        repo = current_domain.repository_for(StockRecord)
        for line in _merge(lines):
            record = _load(line.key)
            if record is None:
                record = StockRecord.create(product_id=line.product_id, variant=line.variant, quantity=0)
            record.receive(line.quantity, reference=reference)
            repo.add(record)

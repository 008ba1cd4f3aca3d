"""StockRecord aggregate (CQRS): the inventory counter for one product variant.

Stock Level Model:
    quantity:  Physical count on hand
    reserved:  Held for orders that have not shipped yet
    available: quantity - reserved (what can still be sold)

Each order's hold is a Reservation entity, so releasing is naturally
idempotent: a reservation that is no longer active is skipped. Writes go
through the repository's optimistic version check, which is what serializes
concurrent checkouts against the same counter.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from commerce.domain import commerce
from commerce.errors import InsufficientStock
from commerce.inventory.events import (
    ReservationReleased,
    StockCommitted,
    StockInitialized,
    StockReceived,
    StockReserved,
)


class ReservationStatus(Enum):
    ACTIVE = "active"
    RELEASED = "released"
    COMMITTED = "committed"


def stock_key(product_id, variant=None):
    """Stable identity of a counter: ``"<product_id>::<variant>"``."""
    return f"{product_id}::{variant or ''}"


@commerce.entity(part_of="StockRecord")
class Reservation:
    order_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    status = String(choices=ReservationStatus, default=ReservationStatus.ACTIVE.value)
    reserved_at = DateTime(required=True)
    closed_at = DateTime()


@commerce.aggregate
class StockRecord:
    product_id = Identifier(required=True)
    variant = String(max_length=100, default="")
    quantity = Integer(default=0, min_value=0)
    reserved = Integer(default=0, min_value=0)
    reservations = HasMany(Reservation)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def reserved_cannot_exceed_quantity(self):
        if (self.reserved or 0) > (self.quantity or 0):
            raise ValidationError({"reserved": ["Reserved stock cannot exceed quantity on hand"]})

    @property
    def available(self):
        return (self.quantity or 0) - (self.reserved or 0)

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, product_id, variant=None, quantity=0):
        if quantity < 0:
            raise ValidationError({"quantity": ["Initial quantity cannot be negative"]})

        now = datetime.now(UTC)
        record = cls(
            id=stock_key(product_id, variant),
            product_id=product_id,
            variant=variant or "",
            quantity=quantity,
            reserved=0,
            created_at=now,
            updated_at=now,
        )
        record.raise_(
            StockInitialized(
                stock_id=str(record.id),
                product_id=str(product_id),
                variant=variant or "",
                quantity=quantity,
                initialized_at=now,
            )
        )
        return record

    def _active_reservation(self, order_id):
        return next(
            (
                r
                for r in (self.reservations or [])
                if str(r.order_id) == str(order_id) and r.status == ReservationStatus.ACTIVE.value
            ),
            None,
        )

    # -------------------------------------------------------------------
    # Receiving
    # -------------------------------------------------------------------
    def receive(self, quantity, reference=None):
        """Add goods to the quantity on hand."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        now = datetime.now(UTC)
        self.quantity = self.quantity + quantity
        self.updated_at = now

        self.raise_(
            StockReceived(
                stock_id=str(self.id),
                quantity=quantity,
                new_quantity=self.quantity,
                new_available=self.available,
                reference=reference,
                received_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Reservations
    # -------------------------------------------------------------------
    def reserve(self, order_id, quantity):
        """Hold ``quantity`` units for an order (conditional: available >= quantity)."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        previous_available = self.available
        if previous_available < quantity:
            raise InsufficientStock(
                f"Only {previous_available} units of {self.product_id} available (requested: {quantity})",
                lines=[
                    {
                        "product_id": str(self.product_id),
                        "variant": self.variant or "",
                        "requested": quantity,
                        "available": previous_available,
                        "reason": "insufficient stock",
                    }
                ],
            )

        now = datetime.now(UTC)
        self.add_reservations(
            Reservation(
                order_id=order_id,
                quantity=quantity,
                status=ReservationStatus.ACTIVE.value,
                reserved_at=now,
            )
        )
        self.reserved = self.reserved + quantity
        self.updated_at = now

        self.raise_(
            StockReserved(
                stock_id=str(self.id),
                order_id=str(order_id),
                quantity=quantity,
                previous_available=previous_available,
                new_available=self.available,
                reserved_at=now,
            )
        )

    def release(self, order_id, reason=None):
        """Return the order's active reservation to available stock.

        Returns the number of units released; 0 when there was nothing to release.
        """
        reservation = self._active_reservation(order_id)
        if reservation is None:
            return 0

        now = datetime.now(UTC)
        reservation.status = ReservationStatus.RELEASED.value
        reservation.closed_at = now
        self.reserved = self.reserved - reservation.quantity
        self.updated_at = now

        self.raise_(
            ReservationReleased(
                stock_id=str(self.id),
                order_id=str(order_id),
                quantity=reservation.quantity,
                new_available=self.available,
                reason=reason,
                released_at=now,
            )
        )
        return reservation.quantity

    def commit(self, order_id):
        """Turn the order's reservation into an on-hand decrement (goods shipped)."""
        reservation = self._active_reservation(order_id)
        if reservation is None:
            return 0

        now = datetime.now(UTC)
        reservation.status = ReservationStatus.COMMITTED.value
        reservation.closed_at = now
        # Reserved first, so quantity never dips below reserved mid-update
        self.reserved = self.reserved - reservation.quantity
        self.quantity = self.quantity - reservation.quantity
        self.updated_at = now

        self.raise_(
            StockCommitted(
                stock_id=str(self.id),
                order_id=str(order_id),
                quantity=reservation.quantity,
                new_quantity=self.quantity,
                committed_at=now,
            )
        )
        return reservation.quantity

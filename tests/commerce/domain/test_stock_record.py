"""Tests for the StockRecord aggregate: reservations, release, commit and receive."""

import pytest
from protean.exceptions import ValidationError

from commerce.errors import InsufficientStock
from commerce.inventory.events import ReservationReleased, StockCommitted, StockReserved
from commerce.inventory.stock import ReservationStatus, StockRecord, stock_key


def _make_stock(quantity=5, product_id="P1", variant=None):
    return StockRecord.create(product_id=product_id, variant=variant, quantity=quantity)


class TestStockKey:
    def test_without_variant(self):
        assert stock_key("P1") == "P1::"

    def test_with_variant(self):
        assert stock_key("P1", "XL") == "P1::XL"


class TestCreate:
    def test_initial_levels(self):
        record = _make_stock(quantity=5, variant="M")
        assert str(record.id) == "P1::M"
        assert record.quantity == 5
        assert record.reserved == 0
        assert record.available == 5

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValidationError):
            _make_stock(quantity=-1)


class TestReserve:
    def test_reserve_reduces_available(self):
        record = _make_stock(quantity=5)
        record.reserve(order_id="ord-1", quantity=2)

        assert record.available == 3
        assert record.reserved == 2
        assert record.quantity == 5
        assert isinstance(record._events[-1], StockReserved)

    def test_reserve_all_units(self):
        record = _make_stock(quantity=1)
        record.reserve(order_id="ord-1", quantity=1)
        assert record.available == 0

    def test_over_reservation_rejected_without_change(self):
        record = _make_stock(quantity=1)
        record.reserve(order_id="ord-1", quantity=1)

        with pytest.raises(InsufficientStock) as exc:
            record.reserve(order_id="ord-2", quantity=1)

        assert exc.value.lines[0]["available"] == 0
        assert record.available == 0
        assert record.reserved == 1


class TestRelease:
    def test_release_restores_available(self):
        record = _make_stock(quantity=5)
        record.reserve(order_id="ord-1", quantity=3)

        released = record.release(order_id="ord-1", reason="cancelled")

        assert released == 3
        assert record.available == 5
        assert isinstance(record._events[-1], ReservationReleased)

    def test_second_release_is_noop(self):
        record = _make_stock(quantity=5)
        record.reserve(order_id="ord-1", quantity=3)
        record.release(order_id="ord-1")

        assert record.release(order_id="ord-1") == 0
        assert record.available == 5

    def test_release_unknown_order_is_noop(self):
        record = _make_stock(quantity=5)
        assert record.release(order_id="ord-missing") == 0

    def test_release_only_touches_that_order(self):
        record = _make_stock(quantity=5)
        record.reserve(order_id="ord-1", quantity=2)
        record.reserve(order_id="ord-2", quantity=2)

        record.release(order_id="ord-1")

        assert record.reserved == 2
        assert record.available == 3


class TestCommit:
    def test_commit_decrements_on_hand(self):
        record = _make_stock(quantity=5)
        record.reserve(order_id="ord-1", quantity=2)

        assert record.commit(order_id="ord-1") == 2

        assert record.quantity == 3
        assert record.reserved == 0
        assert record.available == 3
        assert isinstance(record._events[-1], StockCommitted)
        statuses = {r.status for r in record.reservations}
        assert statuses == {ReservationStatus.COMMITTED.value}

    def test_committed_reservation_cannot_be_released(self):
        record = _make_stock(quantity=5)
        record.reserve(order_id="ord-1", quantity=2)
        record.commit(order_id="ord-1")

        assert record.release(order_id="ord-1") == 0
        assert record.quantity == 3


class TestReceive:
    def test_receive_adds_on_hand(self):
        record = _make_stock(quantity=1)
        record.receive(4, reference="PO-1")
        assert record.quantity == 5
        assert record.available == 5

    def test_receive_requires_positive_quantity(self):
        record = _make_stock(quantity=1)
        with pytest.raises(ValidationError):
            record.receive(0)

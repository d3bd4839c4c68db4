"""Tests for offers and offer pools."""

from __future__ import annotations

import math

import pytest

from macro_circuit.circuit.errors import InvalidArgumentError, ProtocolViolationError
from macro_circuit.circuit.period import Period
from macro_circuit.circuit.supply import OfferPool, Supply


def _pool(*lots: tuple[str, float, float]) -> OfferPool:
    return OfferPool(
        "firms",
        Period(0),
        [Supply(seller, price, quantity) for seller, price, quantity in lots],
    )


# ---------------------------------------------------------------------------
# Supply
# ---------------------------------------------------------------------------


class TestSupply:
    def test_value(self):
        assert Supply("f1", 2.5, 4.0).value == pytest.approx(10.0)

    def test_not_perishable_by_default(self):
        assert not Supply("f1", 1.0, 1.0).perishable

    def test_negative_price_rejected(self):
        with pytest.raises(InvalidArgumentError):
            Supply("f1", -1.0, 1.0)

    def test_nan_quantity_rejected(self):
        with pytest.raises(InvalidArgumentError):
            Supply("f1", 1.0, math.nan)

    def test_immutable(self):
        supply = Supply("f1", 1.0, 1.0)
        with pytest.raises(AttributeError):
            supply.quantity = 5.0  # type: ignore[misc]


# ---------------------------------------------------------------------------
# OfferPool
# ---------------------------------------------------------------------------


class TestOfferPool:
    def test_rejects_non_supply_entries(self):
        with pytest.raises(ProtocolViolationError):
            OfferPool("firms", Period(0), [("f1", 1.0, 1.0)])  # type: ignore[list-item]

    def test_empty_offers_are_not_live(self):
        pool = _pool(("f1", 1.0, 0.0), ("f2", 1.0, 3.0))
        assert len(pool) == 2
        assert pool.live_count == 1
        assert list(pool.live_indices()) == [1]

    def test_volume(self):
        pool = _pool(("f1", 2.0, 10.0), ("f2", 3.0, 5.0))
        assert pool.volume == pytest.approx(15.0)
        assert pool.live_volume == pytest.approx(15.0)

    def test_take_is_bounded_by_remaining(self):
        pool = _pool(("f1", 2.0, 10.0))
        allocation = pool.take(0, 25.0)
        assert allocation.quantity == pytest.approx(10.0)
        assert allocation.value == pytest.approx(20.0)
        assert pool.remaining(0) == 0.0
        assert pool.live_count == 0

    def test_partial_take(self):
        pool = _pool(("f1", 2.0, 10.0))
        pool.take(0, 4.0)
        assert pool.remaining(0) == pytest.approx(6.0)
        assert pool.sold(0) == pytest.approx(4.0)
        assert pool.live_count == 1

    def test_take_from_exhausted_entry(self):
        pool = _pool(("f1", 2.0, 1.0))
        pool.take(0, 1.0)
        assert pool.take(0, 1.0).quantity == 0.0

    def test_negative_take_rejected(self):
        pool = _pool(("f1", 2.0, 1.0))
        with pytest.raises(InvalidArgumentError):
            pool.take(0, -1.0)

    def test_quote_does_not_consume(self):
        pool = _pool(("f1", 2.0, 10.0))
        quote = pool.quote(0)
        assert quote.remaining == pytest.approx(10.0)
        assert quote.price == 2.0
        assert quote.seller_id == "f1"
        assert pool.remaining(0) == pytest.approx(10.0)

    def test_sales_by_seller(self):
        pool = _pool(("f1", 2.0, 10.0), ("f2", 3.0, 5.0), ("f1", 4.0, 1.0))
        pool.take(0, 5.0)
        pool.take(2, 1.0)
        sales = pool.sales_by_seller()
        assert sales["f1"] == pytest.approx((6.0, 14.0))
        assert sales["f2"] == (0.0, 0.0)
        assert pool.sales_volume == pytest.approx(6.0)
        assert pool.sales_value == pytest.approx(14.0)

    def test_discarded_pool_is_unusable(self):
        pool = _pool(("f1", 2.0, 10.0))
        pool.discard()
        assert pool.discarded
        with pytest.raises(ProtocolViolationError):
            _ = pool.live_count
        with pytest.raises(ProtocolViolationError):
            pool.take(0, 1.0)
        with pytest.raises(ProtocolViolationError):
            _ = pool.supplies

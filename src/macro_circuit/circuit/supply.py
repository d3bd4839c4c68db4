"""Offers published by supplier sectors and the pools that hold them.

A :class:`Supply` is immutable.  The :class:`OfferPool` owning it keeps the
remaining quantity per entry and is the only thing decremented when goods
are consumed.  Pools live for exactly one period and are discarded when it
ends.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from macro_circuit.circuit.errors import InvalidArgumentError, ProtocolViolationError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from macro_circuit.circuit.period import Period


@dataclass(frozen=True)
class Supply:
    """A seller's tradeable lot for the current period.

    Attributes:
        seller_id: Lookup key of the selling agent inside its sector.
        price: Unit price.
        quantity: Published quantity.
        perishable: Whether unsold units are lost at period end.
    """

    seller_id: str
    price: float
    quantity: float
    perishable: bool = False

    def __post_init__(self) -> None:
        if not math.isfinite(self.price) or self.price < 0:
            msg = f"supply price must be a non-negative number, got {self.price}"
            raise InvalidArgumentError(msg)
        if not math.isfinite(self.quantity) or self.quantity < 0:
            msg = f"supply quantity must be a non-negative number, got {self.quantity}"
            raise InvalidArgumentError(msg)

    @property
    def value(self) -> float:
        """Published quantity valued at the unit price."""
        return self.price * self.quantity


@dataclass(frozen=True)
class Quote:
    """A read-only view of one live offer, as seen by a consumer.

    Quotes are only valid during the period that produced them.

    Attributes:
        supply: The published offer.
        remaining: Quantity still available when the quote was taken.
        sector: Name of the publishing sector.
        index: Position of the offer in its pool.
        period: Period of the pool.
    """

    supply: Supply
    remaining: float
    sector: str
    index: int
    period: Period

    @property
    def price(self) -> float:
        return self.supply.price

    @property
    def seller_id(self) -> str:
        return self.supply.seller_id


@dataclass(frozen=True)
class Allocation:
    """Quantity taken from one offer by a single request."""

    supply: Supply
    quantity: float
    sector: str
    index: int

    @property
    def price(self) -> float:
        return self.supply.price

    @property
    def seller_id(self) -> str:
        return self.supply.seller_id

    @property
    def value(self) -> float:
        """Amount paid for the allocated quantity."""
        return self.quantity * self.supply.price


class OfferPool:
    """The live offers one sector published for one period.

    Entries keep their insertion order.  Exhausted entries leave the live
    set but keep their index, so quotes and allocations stay addressable.

    Args:
        sector: Name of the publishing sector.
        period: Period the offers belong to.
        supplies: Offers in publication order.
    """

    def __init__(self, sector: str, period: Period, supplies: Sequence[Supply]) -> None:
        for supply in supplies:
            if not isinstance(supply, Supply):
                msg = f"sector {sector!r} published {supply!r}, expected a Supply"
                raise ProtocolViolationError(msg, sector=sector, period=period)
        self.sector = sector
        self.period = period
        self._supplies: tuple[Supply, ...] = tuple(supplies)
        self._remaining = np.array([s.quantity for s in self._supplies], dtype=float)
        self._sold = np.zeros(len(self._supplies), dtype=float)
        # dict keeps insertion order and gives O(1) removal
        self._live: dict[int, None] = {
            i: None for i, s in enumerate(self._supplies) if s.quantity > 0
        }
        self._discarded = False

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._supplies)

    @property
    def discarded(self) -> bool:
        return self._discarded

    @property
    def supplies(self) -> tuple[Supply, ...]:
        self._check_open()
        return self._supplies

    @property
    def live_count(self) -> int:
        """Number of entries with quantity left."""
        self._check_open()
        return len(self._live)

    def live_indices(self) -> Iterator[int]:
        """Indices of live entries in insertion order."""
        self._check_open()
        return iter(list(self._live))

    def remaining(self, index: int) -> float:
        self._check_open()
        return float(self._remaining[index])

    def sold(self, index: int) -> float:
        self._check_open()
        return float(self._sold[index])

    @property
    def volume(self) -> float:
        """Total published quantity."""
        return float(sum(s.quantity for s in self._supplies))

    @property
    def live_volume(self) -> float:
        self._check_open()
        return float(self._remaining.sum())

    @property
    def sales_volume(self) -> float:
        self._check_open()
        return float(self._sold.sum())

    @property
    def sales_value(self) -> float:
        self._check_open()
        prices = np.array([s.price for s in self._supplies], dtype=float)
        return float((self._sold * prices).sum())

    def sales_by_seller(self) -> dict[str, tuple[float, float]]:
        """Aggregate ``(quantity, value)`` sold per seller id."""
        self._check_open()
        sales: dict[str, tuple[float, float]] = {}
        for supply, sold in zip(self._supplies, self._sold, strict=True):
            quantity, value = sales.get(supply.seller_id, (0.0, 0.0))
            sales[supply.seller_id] = (
                quantity + float(sold),
                value + float(sold) * supply.price,
            )
        return sales

    def quote(self, index: int) -> Quote:
        self._check_open()
        return Quote(
            supply=self._supplies[index],
            remaining=float(self._remaining[index]),
            sector=self.sector,
            index=index,
            period=self.period,
        )

    # ------------------------------------------------------------------
    # Consumption (driven by the matching engine)
    # ------------------------------------------------------------------

    def take(self, index: int, quantity: float) -> Allocation:
        """Consume up to *quantity* from entry *index*.

        The amount taken is bounded by the remaining quantity.  An entry
        that reaches zero leaves the live set.
        """
        self._check_open()
        if quantity < 0:
            msg = f"cannot take a negative quantity ({quantity})"
            raise InvalidArgumentError(msg)
        taken = min(quantity, float(self._remaining[index]))
        if taken > 0:
            self._remaining[index] -= taken
            self._sold[index] += taken
            if self._remaining[index] <= 0:
                self._remaining[index] = 0.0
                self._live.pop(index, None)
        return Allocation(
            supply=self._supplies[index],
            quantity=taken,
            sector=self.sector,
            index=index,
        )

    def discard(self) -> None:
        """Drop all entries.  Any later access raises."""
        self._discarded = True
        self._supplies = ()
        self._remaining = np.zeros(0, dtype=float)
        self._sold = np.zeros(0, dtype=float)
        self._live = {}

    def _check_open(self) -> None:
        if self._discarded:
            msg = f"offer pool of {self.sector!r} for {self.period} was discarded"
            raise ProtocolViolationError(msg, sector=self.sector, period=self.period)

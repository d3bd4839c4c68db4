"""Randomized, quantity-bounded matching of consumers to published offers.

The engine never runs a full combinatorial matching.  Instead each request
draws candidate offers at random from the live pools and allocates from
them until the requested quantity is met:

* When the live pools hold at most ``full_scan_threshold`` entries, the
  live entries are listed in insertion order and randomly permuted.
* Otherwise random indices are probed over all entries (live or not).
  Exhausted or already drawn entries count as misses and the draw stops
  after ``max_probe_failures`` consecutive misses.

Pools shrink as they are consumed, so a pool close to exhaustion falls
back to the scan automatically.  All draws come from the circuit's random
stream; with the same seed and request order the samples are identical.
"""

from __future__ import annotations

import logging
import math
from types import MappingProxyType
from typing import TYPE_CHECKING

import numpy as np

from macro_circuit.circuit.config import MatchingConfig
from macro_circuit.circuit.errors import (
    InvalidArgumentError,
    InvalidStateError,
    ProtocolViolationError,
)

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from macro_circuit.circuit.period import Period
    from macro_circuit.circuit.supply import Allocation, OfferPool, Quote

logger = logging.getLogger(__name__)


class MatchingEngine:
    """Samples live offers on behalf of consuming sectors.

    Attributes:
        config: Sampling thresholds.
    """

    def __init__(
        self,
        rng: np.random.Generator,
        config: MatchingConfig | None = None,
    ) -> None:
        self.config = config or MatchingConfig()
        self._rng = rng
        self._period: Period | None = None
        self._pools: dict[str, OfferPool] = {}

    # ------------------------------------------------------------------
    # Period lifecycle (driven by the circuit)
    # ------------------------------------------------------------------

    @property
    def period(self) -> Period | None:
        """The open period, or ``None`` between periods."""
        return self._period

    @property
    def pools(self) -> Mapping[str, OfferPool]:
        """Published pools keyed by sector name, in publication order."""
        return MappingProxyType(self._pools)

    def open(self, period: Period) -> None:
        """Start accepting publications for *period*."""
        if self._period is not None:
            msg = f"period {self._period} is still open"
            raise InvalidStateError(msg)
        self._period = period

    def publish(self, pool: OfferPool) -> None:
        """Make a sector's pool visible to consumers."""
        self._check_open()
        if pool.period != self._period:
            msg = (
                f"sector {pool.sector!r} published offers for {pool.period} "
                f"during {self._period}"
            )
            raise ProtocolViolationError(msg, sector=pool.sector, period=self._period)
        if pool.sector in self._pools:
            msg = f"sector {pool.sector!r} already published offers in {self._period}"
            raise ProtocolViolationError(msg, sector=pool.sector, period=self._period)
        self._pools[pool.sector] = pool
        logger.debug(
            "%s: %s published %d offers (volume %.3f)",
            self._period,
            pool.sector,
            len(pool),
            pool.volume,
        )

    def close(self) -> None:
        """Discard every pool of the open period."""
        for pool in self._pools.values():
            pool.discard()
        self._pools = {}
        self._period = None

    # ------------------------------------------------------------------
    # Consumer interface
    # ------------------------------------------------------------------

    def sample(
        self,
        quantity: float,
        *,
        supplier: str | None = None,
        max_offers: int | None = None,
    ) -> list[Allocation]:
        """Draw offers at random and consume up to *quantity* from them.

        Args:
            quantity: Total quantity wanted.
            supplier: Restrict the draw to one sector's pool.  ``None``
                draws from every published pool.
            max_offers: Maximum number of distinct offers to take from.

        Returns:
            Allocations in draw order.  Their quantities sum to at most
            *quantity*; the list is empty when nothing is left.

        Raises:
            InvalidArgumentError: If *quantity* or *max_offers* is negative.
        """
        self._check_open()
        needed = _check_quantity(quantity)
        if max_offers is not None:
            _check_count(max_offers, "max_offers")
            if max_offers == 0:
                return []
        allocations: list[Allocation] = []
        if needed <= 0:
            return allocations
        for pool, index in self._candidates(self._select(supplier)):
            allocation = pool.take(index, needed)
            if allocation.quantity <= 0:
                continue
            allocations.append(allocation)
            needed -= allocation.quantity
            if needed <= 0:
                break
            if max_offers is not None and len(allocations) >= max_offers:
                break
        return allocations

    def quote(self, n: int, *, supplier: str | None = None) -> list[Quote]:
        """Return up to *n* distinct live offers without consuming them.

        Consumers use quotes to apply their own policy (e.g. cheapest
        first) before calling :meth:`purchase`.
        """
        self._check_open()
        _check_count(n, "n")
        quotes: list[Quote] = []
        if n == 0:
            return quotes
        for pool, index in self._candidates(self._select(supplier)):
            quotes.append(pool.quote(index))
            if len(quotes) >= n:
                break
        return quotes

    def purchase(self, quote: Quote, quantity: float) -> Allocation:
        """Consume up to *quantity* from the offer behind *quote*.

        The allocation is bounded by what remains now, which may be less
        than the quote showed.

        Raises:
            ProtocolViolationError: If the quote belongs to another period.
        """
        self._check_open()
        wanted = _check_quantity(quantity)
        pool = self._pools.get(quote.sector)
        if quote.period != self._period or pool is None:
            msg = f"quote from {quote.period} used during {self._period}"
            raise ProtocolViolationError(msg, sector=quote.sector, period=self._period)
        return pool.take(quote.index, wanted)

    def live_count(self, supplier: str | None = None) -> int:
        """Number of live offers, optionally for one sector."""
        self._check_open()
        return sum(pool.live_count for pool in self._select(supplier))

    def live_volume(self, supplier: str | None = None) -> float:
        """Remaining quantity across live offers."""
        self._check_open()
        return sum(pool.live_volume for pool in self._select(supplier))

    # ------------------------------------------------------------------
    # Candidate drawing
    # ------------------------------------------------------------------

    def _select(self, supplier: str | None) -> list[OfferPool]:
        if supplier is None:
            return list(self._pools.values())
        pool = self._pools.get(supplier)
        return [pool] if pool is not None else []

    def _candidates(self, pools: list[OfferPool]) -> Iterator[tuple[OfferPool, int]]:
        live_total = sum(pool.live_count for pool in pools)
        if live_total == 0:
            return
        if live_total <= self.config.full_scan_threshold:
            yield from self._scan(pools)
        else:
            yield from self._probe(pools)

    def _scan(self, pools: list[OfferPool]) -> Iterator[tuple[OfferPool, int]]:
        live = [(pool, index) for pool in pools for index in pool.live_indices()]
        for k in self._rng.permutation(len(live)):
            pool, index = live[int(k)]
            if pool.remaining(index) > 0:
                yield pool, index

    def _probe(self, pools: list[OfferPool]) -> Iterator[tuple[OfferPool, int]]:
        offsets = np.cumsum([len(pool) for pool in pools])
        total = int(offsets[-1])
        seen: set[int] = set()
        misses = 0
        while misses < self.config.max_probe_failures:
            if all(pool.live_count == 0 for pool in pools):
                return
            k = int(self._rng.integers(total))
            if k in seen:
                misses += 1
                continue
            seen.add(k)
            slot = int(np.searchsorted(offsets, k, side="right"))
            pool = pools[slot]
            index = k - (int(offsets[slot - 1]) if slot else 0)
            if pool.remaining(index) <= 0:
                misses += 1
                continue
            misses = 0
            yield pool, index
        logger.debug("probe gave up after %d consecutive misses", misses)

    def _check_open(self) -> None:
        if self._period is None:
            msg = "no period is open on the matching engine"
            raise InvalidStateError(msg)


def _check_quantity(quantity: float) -> float:
    value = float(quantity)
    if math.isnan(value) or value < 0:
        msg = f"requested quantity must be non-negative, got {quantity}"
        raise InvalidArgumentError(msg)
    return value


def _check_count(n: int, name: str) -> None:
    if n < 0:
        msg = f"{name} must be non-negative, got {n}"
        raise InvalidArgumentError(msg)

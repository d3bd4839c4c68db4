"""Base sector class for the circuit.

A sector groups the agents sharing one economic role.  It declares the
phases it takes part in through :attr:`Sector.capabilities`, and the
circuit only calls the handlers a sector declared.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

from macro_circuit.circuit.errors import InvalidStateError, ProtocolViolationError
from macro_circuit.circuit.supply import OfferPool

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from typing import Any

    import numpy as np

    from macro_circuit.circuit.agents.base import BaseAgent
    from macro_circuit.circuit.matching import MatchingEngine
    from macro_circuit.circuit.period import Period
    from macro_circuit.circuit.supply import Supply


class Capability(enum.Enum):
    """Protocol phases a sector can take part in."""

    PUBLISHES_SUPPLY = "publishes_supply"
    CONSUMES_SUPPLY = "consumes_supply"
    SETTLES = "settles"


# handler a sector must override for each capability it declares
_HANDLERS: dict[Capability, str] = {
    Capability.PUBLISHES_SUPPLY: "offers",
    Capability.CONSUMES_SUPPLY: "consume",
    Capability.SETTLES: "settle",
}


class Sector(ABC):
    """Abstract base class for all sectors.

    Subclasses set :attr:`capabilities` and override the matching
    handlers: :meth:`offers` for suppliers, :meth:`consume` for consumers
    and :meth:`settle` for settling sectors.  :meth:`report` is required
    for every sector.

    Attributes:
        name: Unique sector name; prefixes every metric it reports.
        index: Registration order, assigned by the circuit.
    """

    capabilities: ClassVar[frozenset[Capability]] = frozenset()

    def __init__(self, name: str) -> None:
        self.name = name
        self.index: int | None = None
        self._rng: np.random.Generator | None = None
        self._pool: OfferPool | None = None
        self._published_in: Period | None = None

    def has(self, capability: Capability) -> bool:
        """Whether the sector declared *capability*."""
        return capability in self.capabilities

    def validate(self) -> None:
        """Check that every declared capability has a handler.

        Raises:
            ProtocolViolationError: If a handler is missing.
        """
        for capability in self.capabilities:
            handler = _HANDLERS[capability]
            if getattr(type(self), handler) is getattr(Sector, handler):
                msg = (
                    f"sector {self.name!r} declares {capability.value} "
                    f"but does not implement {handler}()"
                )
                raise ProtocolViolationError(msg, sector=self.name)

    def connect(self, sectors: Mapping[str, Sector]) -> None:  # noqa: B027
        """Resolve references to other sectors by name.

        Called by the factory once every configured sector exists.
        """

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, rng: np.random.Generator) -> None:
        """Accept the circuit's random stream and build the initial state."""
        self._rng = rng

    @property
    def rng(self) -> np.random.Generator:
        """The circuit's random stream, available once initialized."""
        if self._rng is None:
            msg = f"sector {self.name!r} has not been initialized"
            raise InvalidStateError(msg)
        return self._rng

    def open_period(self, period: Period) -> None:  # noqa: B027
        """Update internal agent state for a new period."""

    def end_period(self, period: Period) -> None:
        """Drop the period's offer pool."""
        self._pool = None

    # ------------------------------------------------------------------
    # Phase handlers
    # ------------------------------------------------------------------

    def publish_supply(self, period: Period) -> tuple[Supply, ...]:
        """Publish this period's offers.  Allowed once per period.

        Returns:
            The published offers, also available as :attr:`offer_pool`.

        Raises:
            ProtocolViolationError: On a second call in the same period, or
                when the sector does not publish supply.
        """
        if not self.has(Capability.PUBLISHES_SUPPLY):
            msg = f"sector {self.name!r} does not publish supply"
            raise ProtocolViolationError(msg, sector=self.name, period=period)
        if self._published_in == period:
            msg = f"sector {self.name!r} already published supply in {period}"
            raise ProtocolViolationError(msg, sector=self.name, period=period)
        self._published_in = period
        self._pool = OfferPool(self.name, period, tuple(self.offers(period)))
        return self._pool.supplies

    @property
    def offer_pool(self) -> OfferPool | None:
        """Pool published this period, or ``None``."""
        return self._pool

    def offers(self, period: Period) -> Iterable[Supply]:
        """Build the offers to publish.  Suppliers must override."""
        raise NotImplementedError

    def consume(self, period: Period, engine: MatchingEngine) -> None:
        """Buy from published offers.  Consumers must override."""
        raise NotImplementedError

    def settle(self, period: Period) -> None:
        """Resolve credit and default outcomes.  Settlers must override.

        May raise :class:`~macro_circuit.circuit.errors.AgentFailureError`
        after recovering failed agents locally.
        """
        raise NotImplementedError

    @abstractmethod
    def report(self, period: Period) -> Mapping[str, float]:
        """Return period metrics.  Must not change sector state."""

    def balance_sheet(self) -> Mapping[str, float]:
        """Aggregate balance-sheet lines (assets positive)."""
        return {}

    @property
    def agents(self) -> Sequence[BaseAgent]:
        """Agents owned by the sector, in creation order."""
        return ()

    def agent_states(self) -> list[dict[str, Any]]:
        """Snapshot of every agent, tagged with the sector name."""
        return [{"sector": self.name, **agent.get_state()} for agent in self.agents]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


def aggregate_balance_sheets(sheets: Iterable[Mapping[str, float]]) -> dict[str, float]:
    """Sum balance-sheet lines across agents, keeping first-seen line order."""
    total: dict[str, float] = {}
    for sheet in sheets:
        for line, value in sheet.items():
            total[line] = total.get(line, 0.0) + value
    return total

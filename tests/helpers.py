"""Minimal sectors used to exercise the circuit in isolation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from macro_circuit.circuit.config import CircuitConfig, MatchingConfig, SimulationConfig
from macro_circuit.circuit.errors import AgentFailureError
from macro_circuit.circuit.model import Circuit
from macro_circuit.circuit.sectors.base import Capability, Sector
from macro_circuit.circuit.supply import Supply

if TYPE_CHECKING:
    from macro_circuit.circuit.matching import MatchingEngine
    from macro_circuit.circuit.period import Period
    from macro_circuit.circuit.supply import Allocation, OfferPool


class StaticSupplier(Sector):
    """Publishes the same ``(quantity, price)`` lots every period.

    Seller ids carry the period step so consumers can check where an
    offer came from.
    """

    capabilities = frozenset({Capability.PUBLISHES_SUPPLY})

    def __init__(self, name: str, lots: list[tuple[float, float]]) -> None:
        super().__init__(name)
        self.lots = lots

    def offers(self, period: Period) -> list[Supply]:
        return [
            Supply(f"{self.name}-{period.step}-{i}", price, quantity)
            for i, (quantity, price) in enumerate(self.lots)
        ]

    def report(self, period: Period) -> dict[str, float]:
        return {"offered": sum(quantity for quantity, _ in self.lots)}


class SamplingConsumer(Sector):
    """Requests a fixed quantity from the engine every period."""

    capabilities = frozenset({Capability.CONSUMES_SUPPLY})

    def __init__(self, name: str, quantity: float, supplier: str | None = None) -> None:
        super().__init__(name)
        self.quantity = quantity
        self.supplier = supplier
        self.samples: list[tuple[Period, list[Allocation]]] = []
        self.pools: list[OfferPool] = []
        self.bought = 0.0

    def consume(self, period: Period, engine: MatchingEngine) -> None:
        allocations = engine.sample(self.quantity, supplier=self.supplier)
        self.samples.append((period, allocations))
        self.pools.extend(engine.pools.values())
        self.bought = sum(a.quantity for a in allocations)

    def report(self, period: Period) -> dict[str, float]:
        return {"bought": self.bought}


class FailingSettler(Sector):
    """Settles every period and fails in the chosen steps.

    Args:
        name: Sector name.
        fail_in: Steps in which :meth:`settle` raises.
        error: Exception to raise; an :class:`AgentFailureError` for
            ``agent_0`` by default.
    """

    capabilities = frozenset({Capability.SETTLES})

    def __init__(
        self,
        name: str,
        fail_in: frozenset[int] = frozenset(),
        error: Exception | None = None,
    ) -> None:
        super().__init__(name)
        self.fail_in = fail_in
        self.error = error
        self.cash = 100.0

    def settle(self, period: Period) -> None:
        self.cash += 1.0
        if period.step in self.fail_in:
            raise self.error or AgentFailureError(self.name, ["agent_0"], "insolvency")

    def report(self, period: Period) -> dict[str, float]:
        return {"cash": self.cash}

    def balance_sheet(self) -> dict[str, float]:
        return {"cash": self.cash}


class RecordingSector(Sector):
    """Takes part in every phase and logs each call into a shared list."""

    capabilities = frozenset(
        {Capability.PUBLISHES_SUPPLY, Capability.CONSUMES_SUPPLY, Capability.SETTLES}
    )

    def __init__(self, name: str, calls: list[tuple[str, str, int]]) -> None:
        super().__init__(name)
        self.calls = calls

    def open_period(self, period: Period) -> None:
        self.calls.append(("opening", self.name, period.step))

    def offers(self, period: Period) -> list[Supply]:
        self.calls.append(("publication", self.name, period.step))
        return [Supply(f"{self.name}-{period.step}", 1.0, 1.0)]

    def consume(self, period: Period, engine: MatchingEngine) -> None:
        self.calls.append(("consumption", self.name, period.step))

    def settle(self, period: Period) -> None:
        self.calls.append(("settlement", self.name, period.step))

    def report(self, period: Period) -> dict[str, float]:
        self.calls.append(("reporting", self.name, period.step))
        return {}


def make_circuit(
    *sectors: Sector,
    periods: int = 3,
    seed: int = 7,
    full_scan_threshold: int = 32,
) -> Circuit:
    """Build a circuit over *sectors* without any configured economy."""
    config = CircuitConfig(
        simulation=SimulationConfig(periods=periods, seed=seed),
        matching=MatchingConfig(full_scan_threshold=full_scan_threshold),
        sectors=(),
    )
    circuit = Circuit(config)
    for sector in sectors:
        circuit.register_sector(sector)
    return circuit

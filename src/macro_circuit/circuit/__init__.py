"""Simulation kernel for an agent-based macroeconomic circuit.

The kernel advances a simulated calendar one month per tick.  On each
tick every registered sector acts in a fixed phase order:

- opening: sectors update their agents for the new period
- publication: supplier sectors publish their offers
- consumption: consumer sectors sample offers through the matching engine
- settlement: credit and default outcomes are resolved
- reporting: sector metrics are appended to the time-series repository

External consumers read results through :meth:`Circuit.query_metric`,
:meth:`Circuit.list_metrics` and :meth:`Circuit.balance_sheet`, and
subscribe to lifecycle events on :attr:`Circuit.events`.
"""

from __future__ import annotations

from macro_circuit.circuit.config import CircuitConfig, SectorSpec, load_config
from macro_circuit.circuit.errors import (
    AgentFailureError,
    CircuitError,
    DuplicateWriteError,
    InvalidArgumentError,
    InvalidStateError,
    ProtocolViolationError,
    TerminalPeriodError,
    UnknownMetricError,
)
from macro_circuit.circuit.events import Event, EventBus, EventLog
from macro_circuit.circuit.factory import SECTOR_KINDS, build_sectors
from macro_circuit.circuit.matching import MatchingEngine
from macro_circuit.circuit.model import (
    AbortCause,
    Circuit,
    CircuitState,
    Marker,
    Phase,
    RunResult,
)
from macro_circuit.circuit.period import Clock, Period
from macro_circuit.circuit.sectors import Capability, Sector
from macro_circuit.circuit.supply import Allocation, OfferPool, Quote, Supply
from macro_circuit.circuit.timeseries import TimeSeriesRepository

__all__ = [
    "SECTOR_KINDS",
    "AbortCause",
    "AgentFailureError",
    "Allocation",
    "Capability",
    "Circuit",
    "CircuitConfig",
    "CircuitError",
    "CircuitState",
    "Clock",
    "DuplicateWriteError",
    "Event",
    "EventBus",
    "EventLog",
    "InvalidArgumentError",
    "InvalidStateError",
    "Marker",
    "MatchingEngine",
    "OfferPool",
    "Period",
    "Phase",
    "ProtocolViolationError",
    "Quote",
    "RunResult",
    "Sector",
    "SectorSpec",
    "Supply",
    "TerminalPeriodError",
    "TimeSeriesRepository",
    "UnknownMetricError",
    "agents",
    "build_sectors",
    "load_config",
    "sectors",
]

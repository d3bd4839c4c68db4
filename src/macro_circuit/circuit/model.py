"""Circuit orchestrator.

The :class:`Circuit` owns the clock, the ordered sector registry, the
shared random stream, the matching engine and the time-series repository.
Each tick drives every sector through the same phase sequence::

    opening -> publication -> consumption -> settlement -> reporting

Phase boundaries are global: every sector finishes a phase before any
sector starts the next one, so all offers are visible before anyone
consumes.  Reports are recorded under the period just completed, then the
clock advances.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

import numpy as np
import polars as pl

from macro_circuit.circuit.config import CircuitConfig, load_config
from macro_circuit.circuit.errors import (
    AgentFailureError,
    InvalidArgumentError,
    InvalidStateError,
    TerminalPeriodError,
)
from macro_circuit.circuit.events import (
    AgentFailed,
    EventBus,
    MarkerAdded,
    PeriodAdvanced,
    RunAborted,
    RunStarted,
    RunTerminated,
)
from macro_circuit.circuit.factory import build_sectors
from macro_circuit.circuit.matching import MatchingEngine
from macro_circuit.circuit.period import Clock, Period
from macro_circuit.circuit.sectors.base import Capability, Sector
from macro_circuit.circuit.timeseries import TimeSeriesRepository

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from pathlib import Path

logger = logging.getLogger(__name__)

#: Circuit-level metrics recorded every period, next to the sector metrics.
CIRCUIT_METRICS = (
    "total_supply_volume",
    "total_supply_value",
    "offer_count",
    "total_sales_volume",
    "total_sales_value",
    "unsold_volume",
    "average_price",
)


class CircuitState(enum.Enum):
    """Lifecycle states of a circuit."""

    INITIALIZING = "initializing"
    RUNNING = "running"
    TERMINAL = "terminal"
    ABORTED = "aborted"


class Phase(enum.Enum):
    """Stages at which a sector handler is called."""

    INITIALIZATION = "initialization"
    OPENING = "opening"
    PUBLICATION = "publication"
    CONSUMPTION = "consumption"
    SETTLEMENT = "settlement"
    REPORTING = "reporting"


@dataclass(frozen=True)
class AbortCause:
    """Why and where a run was aborted.

    Attributes:
        period: Period in which the run halted.
        reason: Human-readable cause.
        sector: Sector at fault, if any.
        phase: Phase at fault, if any.
        error: The exception that halted the run, if any.
    """

    period: Period
    reason: str
    sector: str | None = None
    phase: Phase | None = None
    error: BaseException | None = field(default=None, compare=False)

    def describe(self) -> str:
        where = [str(self.period)]
        if self.sector is not None:
            where.append(f"sector {self.sector}")
        if self.phase is not None:
            where.append(f"{self.phase.value} phase")
        return f"{self.reason} ({', '.join(where)})"


@dataclass(frozen=True)
class RunResult:
    """Outcome of :meth:`Circuit.run`.

    Attributes:
        status: :attr:`CircuitState.TERMINAL` or :attr:`CircuitState.ABORTED`.
        periods: Number of ticks completed.
        last_period: Last period whose reports were recorded.
        cause: Abort cause, when aborted.
    """

    status: CircuitState
    periods: int
    last_period: Period | None = None
    cause: AbortCause | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is CircuitState.TERMINAL


@dataclass(frozen=True)
class Marker:
    """A labelled point in simulated time."""

    period: Period
    label: str


class _PhaseFailure(Exception):
    """Carries a handler error out of a tick with its context."""

    def __init__(self, phase: Phase, sector: str | None, error: Exception) -> None:
        super().__init__(str(error))
        self.phase = phase
        self.sector = sector
        self.error = error


class Circuit:
    """The top-level simulation orchestrator.

    Usage::

        circuit = Circuit.from_config()
        result = circuit.run()
        circuit.query_metric("firms.average_price")

    Attributes:
        config: The circuit configuration.
        engine: Matching engine shared by all consuming sectors.
        events: Bus on which lifecycle events are published.
    """

    def __init__(
        self,
        config: CircuitConfig | None = None,
        *,
        events: EventBus | None = None,
    ) -> None:
        self.config = config or CircuitConfig()
        sim = self.config.simulation
        self._rng = np.random.default_rng(sim.seed)
        self._clock = Clock(
            horizon=sim.periods,
            start=Period(0, origin_year=sim.start_year, origin_month=sim.start_month),
        )
        self.engine = MatchingEngine(self._rng, self.config.matching)
        self.events = events if events is not None else EventBus()

        self._repository = TimeSeriesRepository()
        self._sectors: list[Sector] = []
        self._state = CircuitState.INITIALIZING
        self._ticks = 0
        self._last_period: Period | None = None
        self._abort_reason: str | None = None
        self._cause: AbortCause | None = None
        self._markers: list[Marker] = []
        self._balance_sheets: dict[int, Mapping[tuple[str, str], float]] = {}

    # ------------------------------------------------------------------
    # Factory methods
    # ------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        path: Path | None = None,
        *,
        config: CircuitConfig | None = None,
        events: EventBus | None = None,
    ) -> Circuit:
        """Create a circuit with every configured sector registered.

        Args:
            path: Path to configuration YAML.  Uses defaults when *None*.
            config: Already loaded configuration; overrides *path*.
            events: Bus to publish on; a new one is created when *None*.

        Returns:
            A :class:`Circuit` still in the initializing state.
        """
        config = config or load_config(path)
        circuit = cls(config, events=events)
        for sector in build_sectors(config.sectors):
            circuit.register_sector(sector)
        return circuit

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def sectors(self) -> tuple[Sector, ...]:
        """Registered sectors in registration order."""
        return tuple(self._sectors)

    @property
    def repository(self) -> TimeSeriesRepository:
        return self._repository

    @property
    def markers(self) -> tuple[Marker, ...]:
        return tuple(self._markers)

    @property
    def result(self) -> RunResult:
        """Status of the run so far."""
        return RunResult(
            status=self._state,
            periods=self._ticks,
            last_period=self._last_period,
            cause=self._cause,
        )

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def register_sector(self, sector: Sector) -> Sector:
        """Add *sector* at the end of the registry.

        Raises:
            InvalidStateError: If the circuit has left initialization.
            InvalidArgumentError: If *sector* is not a :class:`Sector` or
                its name is taken.
            ProtocolViolationError: If a declared capability has no
                handler.
        """
        if self._state is not CircuitState.INITIALIZING:
            msg = f"cannot register sectors while {self._state.value}"
            raise InvalidStateError(msg)
        if not isinstance(sector, Sector):
            msg = f"expected a Sector, got {type(sector).__name__}"
            raise InvalidArgumentError(msg)
        if any(s.name == sector.name for s in self._sectors):
            msg = f"a sector named {sector.name!r} is already registered"
            raise InvalidArgumentError(msg)
        sector.validate()
        sector.index = len(self._sectors)
        self._sectors.append(sector)
        logger.debug("registered sector %s at index %d", sector.name, sector.index)
        return sector

    def start(self) -> None:
        """Hand every sector the random stream and start running.

        A sector that fails to initialize aborts the run.
        """
        if self._state is not CircuitState.INITIALIZING:
            msg = f"cannot start while {self._state.value}"
            raise InvalidStateError(msg)
        period = self._clock.current()
        for sector in self._sectors:
            try:
                sector.initialize(self._rng)
            except Exception as exc:
                cause = self._cause_from(
                    period, Phase.INITIALIZATION, sector.name, exc
                )
                self._abort(cause)
                return
        self._state = CircuitState.RUNNING
        names = tuple(s.name for s in self._sectors)
        logger.info(
            "circuit started at %s with sectors %s (seed %s, horizon %s)",
            period,
            ", ".join(names),
            self.config.simulation.seed,
            self._clock.horizon,
        )
        self.events.publish(
            RunStarted(period, seed=self.config.simulation.seed, sectors=names)
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self, max_periods: int | None = None) -> RunResult:
        """Drive ticks until the run is terminal or aborted.

        Args:
            max_periods: Number of ticks to run at most from the current
                period.  Defaults to the configured horizon.

        Returns:
            A :class:`RunResult`.  Fatal sector errors are reported in
            :attr:`RunResult.cause`, not raised.
        """
        if self._state in (CircuitState.TERMINAL, CircuitState.ABORTED):
            msg = f"run already {self._state.value}"
            raise InvalidStateError(msg)
        if max_periods is not None and max_periods < 1:
            msg = f"max_periods must be at least 1, got {max_periods}"
            raise InvalidArgumentError(msg)
        if self._state is CircuitState.INITIALIZING:
            self.start()
        if max_periods is not None and self._state is CircuitState.RUNNING:
            self._clock.limit(self._clock.current().step + max_periods)
        while self._state is CircuitState.RUNNING:
            self.tick()
        return self.result

    def tick(self) -> CircuitState:
        """Execute one period and advance the clock.

        Returns:
            The state after the tick.

        Raises:
            InvalidStateError: If the circuit is not running.
        """
        if self._state is not CircuitState.RUNNING:
            msg = f"cannot tick while {self._state.value}"
            raise InvalidStateError(msg)
        period = self._clock.current()
        if self._abort_reason is not None:
            self._abort(AbortCause(period, self._abort_reason))
            return self._state

        try:
            self._execute(period)
        except _PhaseFailure as failure:
            self._abort(
                self._cause_from(period, failure.phase, failure.sector, failure.error)
            )
            return self._state

        self._ticks += 1
        self._last_period = period
        try:
            following = self._clock.advance()
        except TerminalPeriodError:
            self._state = CircuitState.TERMINAL
            logger.info(
                "circuit terminated after %d periods at %s", self._ticks, period
            )
            self.events.publish(RunTerminated(period, periods=self._ticks))
            return self._state
        logger.debug("advanced from %s to %s", period, following)
        self.events.publish(PeriodAdvanced(following, previous=period))
        return self._state

    def request_abort(self, reason: str = "abort requested") -> None:
        """Stop the run before the next tick.  A running tick completes."""
        if self._abort_reason is None:
            self._abort_reason = reason

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _execute(self, period: Period) -> None:
        self.engine.open(period)
        try:
            self._each(Phase.OPENING, self._sectors, lambda s: s.open_period(period))
            self._each(
                Phase.PUBLICATION,
                self._with(Capability.PUBLISHES_SUPPLY),
                lambda s: self._publish(s, period),
            )
            self._each(
                Phase.CONSUMPTION,
                self._with(Capability.CONSUMES_SUPPLY),
                lambda s: s.consume(period, self.engine),
            )
            failures = self._settle(period)
            self._report(period, failures)
        finally:
            for sector in self._sectors:
                sector.end_period(period)
            self.engine.close()

    def _with(self, capability: Capability) -> list[Sector]:
        return [s for s in self._sectors if s.has(capability)]

    @staticmethod
    def _each(
        phase: Phase,
        sectors: Iterable[Sector],
        action: Callable[[Sector], object],
    ) -> None:
        for sector in sectors:
            try:
                action(sector)
            except Exception as exc:
                raise _PhaseFailure(phase, sector.name, exc) from exc

    def _publish(self, sector: Sector, period: Period) -> None:
        sector.publish_supply(period)
        pool = sector.offer_pool
        if pool is not None:
            self.engine.publish(pool)

    def _settle(self, period: Period) -> dict[str, int]:
        failures: dict[str, int] = {}
        for sector in self._with(Capability.SETTLES):
            failures[sector.name] = 0
            try:
                sector.settle(period)
            except AgentFailureError as failure:
                failures[sector.name] = len(failure.agent_ids)
                logger.warning(
                    "%s: %d agent(s) failed in %s (%s)",
                    period,
                    len(failure.agent_ids),
                    sector.name,
                    failure.reason,
                )
                for agent_id in failure.agent_ids:
                    self.events.publish(
                        AgentFailed(
                            period,
                            sector=sector.name,
                            agent_id=agent_id,
                            reason=failure.reason,
                        )
                    )
            except Exception as exc:
                raise _PhaseFailure(Phase.SETTLEMENT, sector.name, exc) from exc
        return failures

    def _report(self, period: Period, failures: Mapping[str, int]) -> None:
        sheets: dict[tuple[str, str], float] = {}
        for sector in self._sectors:
            try:
                for name, value in sector.report(period).items():
                    self._repository.record(f"{sector.name}.{name}", period, value)
                if sector.name in failures:
                    self._repository.record(
                        f"{sector.name}.agent_failures", period, failures[sector.name]
                    )
                for line, value in sector.balance_sheet().items():
                    sheets[(sector.name, line)] = float(value)
            except Exception as exc:
                raise _PhaseFailure(Phase.REPORTING, sector.name, exc) from exc
        try:
            for name, value in self._circuit_metrics().items():
                self._repository.record(name, period, value)
        except Exception as exc:
            raise _PhaseFailure(Phase.REPORTING, None, exc) from exc
        self._balance_sheets[period.step] = MappingProxyType(sheets)

    def _circuit_metrics(self) -> dict[str, float]:
        pools = list(self.engine.pools.values())
        sales_volume = sum(pool.sales_volume for pool in pools)
        sales_value = sum(pool.sales_value for pool in pools)
        return {
            "total_supply_volume": sum(pool.volume for pool in pools),
            "total_supply_value": sum(
                supply.value for pool in pools for supply in pool.supplies
            ),
            "offer_count": sum(len(pool) for pool in pools),
            "total_sales_volume": sales_volume,
            "total_sales_value": sales_value,
            "unsold_volume": sum(pool.live_volume for pool in pools),
            "average_price": sales_value / sales_volume if sales_volume > 0 else 0.0,
        }

    def _cause_from(
        self,
        period: Period,
        phase: Phase,
        sector: str | None,
        error: Exception,
    ) -> AbortCause:
        return AbortCause(
            period,
            reason=f"{type(error).__name__}: {error}",
            sector=sector,
            phase=phase,
            error=error,
        )

    def _abort(self, cause: AbortCause) -> None:
        self._state = CircuitState.ABORTED
        self._cause = cause
        if cause.error is not None:
            logger.error("circuit aborted: %s", cause.describe(), exc_info=cause.error)
        else:
            logger.warning("circuit aborted: %s", cause.describe())
        self.events.publish(RunAborted(cause.period, cause=cause))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def current_period(self) -> Period:
        """The period the next tick will execute."""
        return self._clock.current()

    def query_metric(
        self,
        name: str,
        first: Period | int | None = None,
        last: Period | int | None = None,
    ) -> tuple[tuple[Period, float], ...]:
        """Recorded values of *name*, ordered by period.

        Args:
            name: Metric name, e.g. ``"firms.average_price"``.
            first: Earliest period to include (inclusive).
            last: Latest period to include (inclusive).
        """
        return self._repository.query(name, first, last)

    def list_metrics(self) -> frozenset[str]:
        return self._repository.list_metrics()

    def balance_sheet(
        self, period: Period | int | None = None
    ) -> Mapping[tuple[str, str], float]:
        """Aggregate balance-sheet lines keyed by ``(sector, line)``.

        Args:
            period: A recorded period.  The latest one when *None*.

        Returns:
            A read-only mapping; empty before the first tick completes.

        Raises:
            InvalidArgumentError: If *period* has no snapshot.
        """
        if period is None:
            if not self._balance_sheets:
                return MappingProxyType({})
            return self._balance_sheets[max(self._balance_sheets)]
        step = period if isinstance(period, int) else period.step
        try:
            return self._balance_sheets[step]
        except KeyError:
            msg = f"no balance sheet recorded for period {period}"
            raise InvalidArgumentError(msg) from None

    def agent_frame(self) -> pl.DataFrame:
        """Current state of every agent, one row per agent.

        Rows carry a ``sector`` column; columns a sector does not report
        are null for its agents.
        """
        frames = [
            pl.DataFrame(rows)
            for rows in (sector.agent_states() for sector in self._sectors)
            if rows
        ]
        if not frames:
            return pl.DataFrame()
        return pl.concat(frames, how="diagonal_relaxed")

    def add_marker(self, label: str) -> Marker:
        """Place a labelled marker on the current period."""
        marker = Marker(self._clock.current(), label)
        self._markers.append(marker)
        self.events.publish(MarkerAdded(marker.period, label=label))
        return marker

"""Exception hierarchy for the circuit kernel.

Only :class:`AgentFailureError` raised from a sector's settlement phase is
converted to data by the :class:`~macro_circuit.circuit.model.Circuit`.
Every other error raised from a phase handler aborts the run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from macro_circuit.circuit.period import Period


class CircuitError(Exception):
    """Base class for all errors raised by the circuit kernel."""


class ProtocolViolationError(CircuitError):
    """A sector broke the phase contract (e.g. published twice in a period).

    Attributes:
        sector: Name of the offending sector, when known.
        period: Period in which the violation happened, when known.
    """

    def __init__(
        self,
        message: str,
        *,
        sector: str | None = None,
        period: Period | None = None,
    ) -> None:
        super().__init__(message)
        self.sector = sector
        self.period = period


class InvalidStateError(CircuitError):
    """An operation was called outside the circuit state that permits it."""


class TerminalPeriodError(CircuitError):
    """The clock cannot advance past its configured horizon.

    This is the normal end of a run, not a failure.
    """

    def __init__(self, period: Period) -> None:
        super().__init__(f"horizon reached at period {period}")
        self.period = period


class AgentFailureError(CircuitError):
    """One or more agents inside a sector failed (e.g. bank insolvency).

    Raised from :meth:`Sector.settle`.  The owning sector has already
    recovered the agents locally; the circuit records the failures as a
    metric and as events and carries on with the period.

    Attributes:
        sector: Name of the sector owning the failed agents.
        agent_ids: Identifiers of the failed agents.
        reason: Short human-readable cause.
    """

    def __init__(
        self,
        sector: str,
        agent_ids: Iterable[str],
        reason: str = "failure",
    ) -> None:
        self.sector = sector
        self.agent_ids = tuple(agent_ids)
        self.reason = reason
        super().__init__(
            f"{len(self.agent_ids)} agent(s) failed in sector {sector!r}: {reason}"
        )


class InvalidArgumentError(CircuitError, ValueError):
    """A malformed request, e.g. a negative sample size."""


class DuplicateWriteError(CircuitError):
    """A second value was recorded for the same (metric, period) pair."""

    def __init__(self, metric: str, period: Period) -> None:
        super().__init__(f"metric {metric!r} already recorded for period {period}")
        self.metric = metric
        self.period = period


class UnknownMetricError(CircuitError, KeyError):
    """No series has been recorded under the requested name."""

    def __init__(self, metric: str) -> None:
        super().__init__(metric)
        self.metric = metric

    def __str__(self) -> str:
        return f"unknown metric {self.metric!r}"

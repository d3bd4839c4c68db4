"""Simulated calendar: periods and the clock that advances them.

A :class:`Period` is one calendar month.  Its year and month are derived
from the step index and the calendar origin, so two periods compare by
step alone.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from macro_circuit.circuit.errors import InvalidArgumentError, TerminalPeriodError


@dataclass(frozen=True, order=True)
class Period:
    """One simulated month.

    Attributes:
        step: Number of months elapsed since the origin (0 for the first
            period of a run).
        origin_year: Calendar year of step 0.
        origin_month: Calendar month (1-12) of step 0.
    """

    step: int
    origin_year: int = field(default=2000, compare=False)
    origin_month: int = field(default=1, compare=False)

    def __post_init__(self) -> None:
        if self.step < 0:
            msg = f"period step must be non-negative, got {self.step}"
            raise InvalidArgumentError(msg)
        if not 1 <= self.origin_month <= 12:
            msg = f"origin month must be in 1..12, got {self.origin_month}"
            raise InvalidArgumentError(msg)

    @property
    def _months(self) -> int:
        return self.origin_year * 12 + (self.origin_month - 1) + self.step

    @property
    def year(self) -> int:
        """Calendar year of this period."""
        return self._months // 12

    @property
    def month(self) -> int:
        """Calendar month (1-12) of this period."""
        return self._months % 12 + 1

    def next(self) -> Period:
        """Return the period one month later."""
        return Period(self.step + 1, self.origin_year, self.origin_month)

    def __sub__(self, other: Period) -> int:
        """Distance in months between two periods."""
        if not isinstance(other, Period):
            return NotImplemented
        return self._months - other._months

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


class Clock:
    """Monotonic simulated clock owned by the circuit.

    Args:
        horizon: Number of periods the run may cover; ``None`` means
            unbounded.  With a horizon of *N* the clock visits steps
            ``0 .. N-1`` and :meth:`advance` fails from step ``N-1``.
        start: First period.  Defaults to step 0 of January 2000.
    """

    def __init__(self, horizon: int | None = None, start: Period | None = None) -> None:
        if horizon is not None and horizon < 1:
            msg = f"horizon must be at least 1, got {horizon}"
            raise InvalidArgumentError(msg)
        self._current = start or Period(0)
        self._horizon = horizon

    @property
    def horizon(self) -> int | None:
        """Configured horizon in periods, or ``None`` when unbounded."""
        return self._horizon

    @property
    def horizon_reached(self) -> bool:
        """Whether the current period is the last one the horizon allows."""
        return self._horizon is not None and self._current.step + 1 >= self._horizon

    def current(self) -> Period:
        """Return the current period."""
        return self._current

    def advance(self) -> Period:
        """Move to the next period and return it.

        Raises:
            TerminalPeriodError: If the horizon has been reached.
        """
        if self.horizon_reached:
            raise TerminalPeriodError(self._current)
        self._current = self._current.next()
        return self._current

    def limit(self, horizon: int) -> None:
        """Shorten the horizon.  A limit can never extend the run.

        Args:
            horizon: New horizon, counted from step 0.  It may not fall
                before the current period.
        """
        if horizon <= self._current.step:
            msg = (
                f"horizon {horizon} would end before the current period "
                f"(step {self._current.step})"
            )
            raise InvalidArgumentError(msg)
        if self._horizon is None or horizon < self._horizon:
            self._horizon = horizon

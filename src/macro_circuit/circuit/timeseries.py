"""Append-only store of per-period metric values.

Each ``(metric, period)`` pair holds at most one value.  Writing it twice
is a scheduling bug and raises :class:`DuplicateWriteError`.  Queries
return tuples, so a result never changes after it is returned.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import polars as pl

from macro_circuit.circuit.errors import (
    DuplicateWriteError,
    InvalidArgumentError,
    UnknownMetricError,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from macro_circuit.circuit.period import Period


class TimeSeriesRepository:
    """Per-metric, per-period value store queried by name."""

    def __init__(self) -> None:
        self._series: dict[str, dict[int, float]] = {}
        self._periods: dict[int, Period] = {}

    def record(self, metric: str, period: Period, value: float) -> None:
        """Store *value* for *metric* in *period*.

        Raises:
            DuplicateWriteError: If the pair already has a value.
            InvalidArgumentError: If the name is empty or the value is not
                numeric.
        """
        if not isinstance(metric, str) or not metric:
            msg = f"metric name must be a non-empty string, got {metric!r}"
            raise InvalidArgumentError(msg)
        try:
            number = float(value)
        except (TypeError, ValueError) as exc:
            msg = f"value of {metric!r} must be numeric, got {value!r}"
            raise InvalidArgumentError(msg) from exc
        series = self._series.setdefault(metric, {})
        if period.step in series:
            raise DuplicateWriteError(metric, period)
        series[period.step] = number
        self._periods.setdefault(period.step, period)

    def query(
        self,
        metric: str,
        first: Period | int | None = None,
        last: Period | int | None = None,
    ) -> tuple[tuple[Period, float], ...]:
        """Return ``(period, value)`` pairs ordered by period.

        Args:
            metric: Series name.
            first: Earliest period to include (inclusive).
            last: Latest period to include (inclusive).

        Raises:
            UnknownMetricError: If nothing was recorded under *metric*.
        """
        series = self._series.get(metric)
        if series is None:
            raise UnknownMetricError(metric)
        lo = _step(first)
        hi = _step(last)
        return tuple(
            (self._periods[step], series[step])
            for step in sorted(series)
            if (lo is None or step >= lo) and (hi is None or step <= hi)
        )

    def latest(self, metric: str) -> tuple[Period, float] | None:
        """Most recent ``(period, value)`` of *metric*, or ``None`` if empty."""
        series = self._series.get(metric)
        if series is None:
            raise UnknownMetricError(metric)
        if not series:
            return None
        step = max(series)
        return self._periods[step], series[step]

    def list_metrics(self) -> frozenset[str]:
        """Names of every recorded series."""
        return frozenset(self._series)

    def periods(self) -> tuple[Period, ...]:
        """Every period with at least one value, in order."""
        return tuple(self._periods[step] for step in sorted(self._periods))

    def __contains__(self, metric: object) -> bool:
        return metric in self._series

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._series))

    def __len__(self) -> int:
        return len(self._series)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def to_frame(self, metrics: list[str] | None = None) -> pl.DataFrame:
        """Wide table with one row per period and one column per metric.

        Args:
            metrics: Columns to include; all metrics (sorted) by default.

        Returns:
            A :class:`polars.DataFrame` with ``period``, ``year`` and
            ``month`` columns followed by the metrics.  Missing values are
            null.
        """
        names = sorted(self._series) if metrics is None else list(metrics)
        for name in names:
            if name not in self._series:
                raise UnknownMetricError(name)
        periods = self.periods()
        columns: dict[str, list] = {
            "period": [p.step for p in periods],
            "year": [p.year for p in periods],
            "month": [p.month for p in periods],
        }
        for name in names:
            series = self._series[name]
            columns[name] = [_nullable(series.get(p.step)) for p in periods]
        schema = {"period": pl.Int64, "year": pl.Int64, "month": pl.Int64}
        schema.update({name: pl.Float64 for name in names})
        return pl.DataFrame(columns, schema=schema)


def _step(bound: Period | int | None) -> int | None:
    if bound is None or isinstance(bound, int):
        return bound
    return bound.step


def _nullable(value: float | None) -> float | None:
    if value is None or math.isnan(value):
        return None
    return value

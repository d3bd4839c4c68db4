"""Tests for periods and the simulated clock."""

from __future__ import annotations

import pytest

from macro_circuit.circuit.errors import InvalidArgumentError, TerminalPeriodError
from macro_circuit.circuit.period import Clock, Period

# ---------------------------------------------------------------------------
# Period
# ---------------------------------------------------------------------------


class TestPeriod:
    def test_calendar_fields_derive_from_step(self):
        p = Period(13)
        assert p.year == 2001
        assert p.month == 2
        assert str(p) == "2001-02"

    def test_origin(self):
        p = Period(0, origin_year=1999, origin_month=12)
        assert (p.year, p.month) == (1999, 12)
        assert (p.next().year, p.next().month) == (2000, 1)

    def test_next_is_one_month_later(self):
        p = Period(5)
        assert p.next().step == 6
        assert p.next() - p == 1

    def test_ordering_by_step(self):
        assert Period(1) < Period(2)
        assert max(Period(4), Period(2), Period(9)) == Period(9)
        assert sorted([Period(3), Period(0), Period(1)]) == [
            Period(0),
            Period(1),
            Period(3),
        ]

    def test_distance(self):
        assert Period(12) - Period(2) == 10
        assert Period(2) - Period(12) == -10

    def test_hashable(self):
        assert len({Period(1), Period(1), Period(2)}) == 2

    def test_immutable(self):
        p = Period(0)
        with pytest.raises(AttributeError):
            p.step = 3  # type: ignore[misc]

    def test_negative_step_rejected(self):
        with pytest.raises(InvalidArgumentError):
            Period(-1)

    def test_bad_origin_month_rejected(self):
        with pytest.raises(InvalidArgumentError):
            Period(0, origin_month=13)


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class TestClock:
    def test_starts_at_step_zero(self):
        assert Clock().current() == Period(0)

    def test_custom_start(self):
        clock = Clock(start=Period(0, origin_year=2020, origin_month=6))
        assert str(clock.current()) == "2020-06"

    def test_advance(self):
        clock = Clock()
        assert clock.advance() == Period(1)
        assert clock.current() == Period(1)

    def test_horizon_allows_n_periods(self):
        clock = Clock(horizon=3)
        clock.advance()
        clock.advance()
        assert clock.current().step == 2
        assert clock.horizon_reached
        with pytest.raises(TerminalPeriodError):
            clock.advance()
        assert clock.current().step == 2

    def test_horizon_of_one(self):
        clock = Clock(horizon=1)
        assert clock.horizon_reached
        with pytest.raises(TerminalPeriodError):
            clock.advance()

    def test_unbounded(self):
        clock = Clock()
        for _ in range(100):
            clock.advance()
        assert clock.current().step == 100
        assert not clock.horizon_reached

    def test_invalid_horizon(self):
        with pytest.raises(InvalidArgumentError):
            Clock(horizon=0)

    def test_limit_shortens(self):
        clock = Clock(horizon=10)
        clock.limit(2)
        assert clock.horizon == 2

    def test_limit_never_extends(self):
        clock = Clock(horizon=2)
        clock.limit(5)
        assert clock.horizon == 2

    def test_limit_on_unbounded_clock(self):
        clock = Clock()
        clock.limit(4)
        assert clock.horizon == 4

    def test_limit_before_current_rejected(self):
        clock = Clock()
        clock.advance()
        with pytest.raises(InvalidArgumentError):
            clock.limit(1)

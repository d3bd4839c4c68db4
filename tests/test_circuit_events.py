"""Tests for circuit events, the event bus and the event log."""

from __future__ import annotations

import logging

from macro_circuit.circuit.events import (
    AgentFailed,
    Event,
    EventBus,
    EventLog,
    MarkerAdded,
    PeriodAdvanced,
    RunStarted,
)
from macro_circuit.circuit.model import AbortCause, Phase
from macro_circuit.circuit.period import Period

# ---------------------------------------------------------------------------
# EventBus
# ---------------------------------------------------------------------------


class TestEventBus:
    def test_publish_to_all_subscribers(self):
        bus = EventBus()
        seen: list[Event] = []
        bus.subscribe(seen.append)
        bus.subscribe(seen.append)
        bus.publish(MarkerAdded(Period(0), label="x"))
        assert len(seen) == 2

    def test_filter_by_type(self):
        bus = EventBus()
        failures: list[Event] = []
        bus.subscribe(failures.append, AgentFailed)
        bus.publish(MarkerAdded(Period(0), label="x"))
        bus.publish(AgentFailed(Period(0), sector="banks", agent_id="bank_00"))
        assert [type(e) for e in failures] == [AgentFailed]

    def test_unsubscribe(self):
        bus = EventBus()
        seen: list[Event] = []
        unsubscribe = bus.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        bus.publish(MarkerAdded(Period(0), label="x"))
        assert seen == []
        assert len(bus) == 0

    def test_publish_without_subscribers(self):
        EventBus().publish(MarkerAdded(Period(0), label="x"))

    def test_failing_subscriber_is_logged_and_skipped(self, caplog):
        bus = EventBus()
        seen: list[Event] = []

        def broken(event: Event) -> None:
            msg = "observer bug"
            raise RuntimeError(msg)

        bus.subscribe(broken)
        bus.subscribe(seen.append)
        with caplog.at_level(logging.WARNING, logger="macro_circuit.circuit.events"):
            bus.publish(MarkerAdded(Period(0), label="x"))
        assert len(seen) == 1
        assert "failed on MarkerAdded" in caplog.text


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class TestDescribe:
    def test_agent_failed(self):
        event = AgentFailed(
            Period(2), sector="banks", agent_id="bank_01", reason="insolvency"
        )
        assert event.describe() == "Agent failure: banks/bank_01 (insolvency)"

    def test_run_started(self):
        event = RunStarted(Period(0), seed=3, sectors=("firms", "banks"))
        assert "seed 3" in event.describe()
        assert "firms, banks" in event.describe()

    def test_period_advanced(self):
        event = PeriodAdvanced(Period(1), previous=Period(0))
        assert event.describe() == "Period advanced from 2000-01"

    def test_abort_cause(self):
        cause = AbortCause(
            Period(4),
            reason="ValueError: boom",
            sector="firms",
            phase=Phase.SETTLEMENT,
        )
        assert cause.describe() == (
            "ValueError: boom (2000-05, sector firms, settlement phase)"
        )


# ---------------------------------------------------------------------------
# EventLog
# ---------------------------------------------------------------------------


class TestEventLog:
    def test_lines(self):
        log = EventLog()
        log(AgentFailed(Period(2), sector="banks", agent_id="bank_01", reason="x"))
        assert log.lines() == ["2000-03 Agent failure: banks/bank_01 (x)"]

    def test_bounded(self):
        log = EventLog(maxlen=3)
        for step in range(5):
            log(MarkerAdded(Period(step), label=str(step)))
        assert len(log) == 3
        assert [e.label for e in log.tail(10)] == ["2", "3", "4"]

    def test_tail(self):
        log = EventLog()
        for step in range(5):
            log(MarkerAdded(Period(step), label=str(step)))
        assert [e.label for e in log.tail(2)] == ["3", "4"]
        assert log.tail(0) == []
        assert len(log.lines(2)) == 2

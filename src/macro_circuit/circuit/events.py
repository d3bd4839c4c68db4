"""Notifications emitted by the circuit.

The circuit publishes events on an :class:`EventBus`; it never depends on
whether anyone listens.  A subscriber that raises is logged and skipped,
so observers cannot break a run.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from macro_circuit.circuit.model import AbortCause
    from macro_circuit.circuit.period import Period

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Event:
    """Base class of all circuit events.

    Attributes:
        period: Period the event refers to.
    """

    period: Period

    def describe(self) -> str:
        return self.__class__.__name__


@dataclass(frozen=True)
class RunStarted(Event):
    """The circuit left initialization."""

    seed: int | None = None
    sectors: tuple[str, ...] = ()

    def describe(self) -> str:
        return f"Run started (seed {self.seed}, sectors: {', '.join(self.sectors)})"


@dataclass(frozen=True)
class PeriodAdvanced(Event):
    """The clock moved from *previous* to :attr:`period`."""

    previous: Period | None = None

    def describe(self) -> str:
        return f"Period advanced from {self.previous}"


@dataclass(frozen=True)
class AgentFailed(Event):
    """An agent failed during settlement and was recovered by its sector."""

    sector: str = ""
    agent_id: str = ""
    reason: str = ""

    def describe(self) -> str:
        return f"Agent failure: {self.sector}/{self.agent_id} ({self.reason})"


@dataclass(frozen=True)
class RunTerminated(Event):
    """The run reached its horizon."""

    periods: int = 0

    def describe(self) -> str:
        return f"Run terminated after {self.periods} periods"


@dataclass(frozen=True)
class RunAborted(Event):
    """The run halted on a fatal error or an abort request."""

    cause: AbortCause | None = None

    def describe(self) -> str:
        if self.cause is None:
            return "Run aborted"
        return f"Run aborted: {self.cause.describe()}"


@dataclass(frozen=True)
class MarkerAdded(Event):
    """A labelled marker was placed on a period."""

    label: str = ""

    def describe(self) -> str:
        return f"Marker: {self.label}"


# ---------------------------------------------------------------------------
# Bus
# ---------------------------------------------------------------------------


class EventBus:
    """Synchronous publish/subscribe dispatcher."""

    def __init__(self) -> None:
        self._subscribers: list[tuple[type[Event], Callable[[Event], None]]] = []

    def subscribe(
        self,
        handler: Callable[[Event], None],
        event_type: type[Event] = Event,
    ) -> Callable[[], None]:
        """Call *handler* for every published event of *event_type*.

        Returns:
            A callable that removes the subscription.
        """
        entry = (event_type, handler)
        self._subscribers.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    def publish(self, event: Event) -> None:
        for event_type, handler in list(self._subscribers):
            if not isinstance(event, event_type):
                continue
            try:
                handler(event)
            except Exception:
                logger.warning(
                    "event subscriber %r failed on %s",
                    handler,
                    type(event).__name__,
                    exc_info=True,
                )

    def __len__(self) -> int:
        return len(self._subscribers)


class EventLog:
    """Bounded record of recent events, rendered as console lines.

    Instances are callable so they can be subscribed directly.
    """

    def __init__(self, maxlen: int | None = None) -> None:
        self.events: deque[Event] = deque(maxlen=maxlen)

    def __call__(self, event: Event) -> None:
        self.events.append(event)

    def tail(self, n: int = 200) -> list[Event]:
        if n <= 0:
            return []
        return list(self.events)[-n:]

    def lines(self, n: int | None = None) -> list[str]:
        """Console lines like ``2000-03 Agent failure: banks/bank_01 (...)``."""
        events = list(self.events) if n is None else self.tail(n)
        return [f"{event.period} {event.describe()}" for event in events]

    def __len__(self) -> int:
        return len(self.events)

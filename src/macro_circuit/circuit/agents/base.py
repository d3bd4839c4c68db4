"""Base agent class for the circuit's sectors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
from uuid import uuid4

if TYPE_CHECKING:
    from typing import Any


class BaseAgent(ABC):
    """Abstract base class for the agents a sector owns.

    Agents are never seen by the circuit directly.  Their sector drives
    them through the period phases and aggregates their state.

    Attributes:
        agent_id: Unique identifier, also used as seller id on offers.
        agent_type: Type of agent (e.g. 'firm', 'household', 'bank').
    """

    def __init__(self, agent_id: str | None = None) -> None:
        """Initialize the base agent.

        Args:
            agent_id: Optional unique identifier. If not provided, a UUID is generated.
        """
        self.agent_id = agent_id or str(uuid4())
        self.agent_type = self.__class__.__name__.lower()

    @abstractmethod
    def get_state(self) -> dict[str, Any]:
        """Return the current state of the agent.

        Returns:
            Dictionary containing agent attributes for logging/analysis.
        """

    @abstractmethod
    def balance_sheet(self) -> dict[str, float]:
        """Return balance-sheet lines, assets positive and liabilities negative."""

    def __repr__(self) -> str:
        """Return string representation of the agent."""
        return f"{self.__class__.__name__}(id={self.agent_id})"

"""Household agent for the circuit.

Households earn wages, spend out of income and savings, and keep the
rest as deposits.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from macro_circuit.circuit.agents.base import BaseAgent

if TYPE_CHECKING:
    from typing import Any


class Household(BaseAgent):
    """A household agent.

    Attributes:
        wealth: Accumulated savings (deposits).
        mpc: Marginal propensity to consume out of income.
        employed: Whether the household is employed.
        wage: Current wage.
        income: Income received this period.
        consumption: Value spent on goods this period.
        consumption_volume: Quantity of goods bought this period.
        unmet_demand: Budget left unspent because no offer was found.
    """

    def __init__(
        self,
        agent_id: str | None = None,
        *,
        wealth: float = 0.0,
        mpc: float = 0.8,
        employed: bool = False,
        wage: float = 0.0,
    ) -> None:
        super().__init__(agent_id)
        self.wealth = wealth
        self.mpc = mpc
        self.employed = employed
        self.wage = wage
        self.income: float = 0.0
        self.consumption: float = 0.0
        self.consumption_volume: float = 0.0
        self.unmet_demand: float = 0.0

    # ------------------------------------------------------------------
    # Period logic
    # ------------------------------------------------------------------

    def start_period(self) -> None:
        """Reset the period flows."""
        self.income = 0.0
        self.consumption = 0.0
        self.consumption_volume = 0.0
        self.unmet_demand = 0.0

    def receive_income(self) -> float:
        """Receive the wage if employed and add it to wealth."""
        self.income = self.wage if self.employed else 0.0
        self.wealth += self.income
        return self.income

    def consumption_budget(self, wealth_rate: float) -> float:
        """Spending planned out of income and a fraction of savings.

        The budget never exceeds what the household holds.
        """
        savings = max(self.wealth - self.income, 0.0)
        desired = self.mpc * self.income + wealth_rate * savings
        return max(0.0, min(desired, self.wealth))

    def spend(self, value: float, quantity: float) -> None:
        """Pay for goods bought."""
        self.wealth -= value
        self.consumption += value
        self.consumption_volume += quantity

    # ------------------------------------------------------------------
    # Employment
    # ------------------------------------------------------------------

    def become_employed(self, wage: float) -> None:
        """Transition to employment.

        Args:
            wage: The wage rate offered.
        """
        self.employed = True
        self.wage = wage

    # ------------------------------------------------------------------
    # State reporting
    # ------------------------------------------------------------------

    def get_state(self) -> dict[str, Any]:
        """Return a snapshot of the household's state."""
        return {
            "agent_id": self.agent_id,
            "agent_type": self.agent_type,
            "income": self.income,
            "wealth": self.wealth,
            "consumption": self.consumption,
            "consumption_volume": self.consumption_volume,
            "employed": self.employed,
            "wage": self.wage,
            "mpc": self.mpc,
        }

    def balance_sheet(self) -> dict[str, float]:
        return {"deposits": self.wealth}

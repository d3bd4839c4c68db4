"""Bank agent for the circuit.

Banks extend credit to firms, collect interest, absorb write-offs and
must keep their capital above a regulatory share of outstanding loans.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from macro_circuit.circuit.agents.base import BaseAgent

if TYPE_CHECKING:
    from typing import Any


class Bank(BaseAgent):
    """A bank agent.

    Attributes:
        capital: Bank equity / own funds.
        loans: Total outstanding loans.
        interest_rate: Rate charged per period on loans.
        capital_requirement: Minimum capital / loans ratio for new lending.
        interest_income: Interest collected this period.
        write_offs: Loan losses booked this period.
        profit: Net income of the last closed period.
        failures: Number of times the bank was found insolvent.
    """

    def __init__(
        self,
        agent_id: str | None = None,
        *,
        capital: float = 0.0,
        loans: float = 0.0,
        interest_rate: float = 0.01,
        capital_requirement: float = 0.08,
    ) -> None:
        super().__init__(agent_id)
        self.capital = capital
        self.loans = loans
        self.interest_rate = interest_rate
        self.capital_requirement = capital_requirement
        self.interest_income: float = 0.0
        self.write_offs: float = 0.0
        self.profit: float = 0.0
        self.failures: int = 0
        self._initial_capital = capital
        self._closed = False

    # ------------------------------------------------------------------
    # Regulatory ratios
    # ------------------------------------------------------------------

    @property
    def capital_ratio(self) -> float:
        """Capital adequacy ratio (capital / loans)."""
        if self.loans <= 0:
            return float("inf") if self.capital > 0 else 0.0
        return self.capital / self.loans

    def can_lend(self, amount: float) -> bool:
        """Whether a new loan of *amount* keeps the capital requirement met."""
        exposure = self.loans + amount
        if exposure <= 0:
            return True
        return self.capital / exposure >= self.capital_requirement

    @property
    def insolvent(self) -> bool:
        return self.capital < 0

    # ------------------------------------------------------------------
    # Period logic
    # ------------------------------------------------------------------

    def start_period(self) -> None:
        """Reset the period flows and reopen the books."""
        self.interest_income = 0.0
        self.write_offs = 0.0
        self._closed = False

    def extend_loan(self, amount: float) -> None:
        self.loans += amount

    def collect(self, interest: float, principal: float) -> None:
        """Book an interest payment and a principal repayment."""
        self.interest_income += interest
        self.loans = max(self.loans - principal, 0.0)
        if self._closed:
            self._book(interest)

    def write_off(self, amount: float, recovery_rate: float) -> float:
        """Write off a defaulted loan and return the loss booked."""
        loss = amount * (1 - recovery_rate)
        self.loans = max(self.loans - amount, 0.0)
        self.write_offs += loss
        if self._closed:
            self._book(-loss)
        return loss

    def close_books(self) -> float:
        """Move the period's profit into capital and return it.

        Flows booked after closing go straight to capital, so borrowers
        settling after their bank still count.  A loss booked that way is
        seen as insolvency when the books next close.
        """
        self.profit = self.interest_income - self.write_offs
        self.capital += self.profit
        self._closed = True
        return self.profit

    def _book(self, amount: float) -> None:
        self.profit += amount
        self.capital += amount

    def recapitalize(self) -> None:
        """Restore the initial capital after an insolvency."""
        self.failures += 1
        self.capital = self._initial_capital

    # ------------------------------------------------------------------
    # State reporting
    # ------------------------------------------------------------------

    def get_state(self) -> dict[str, Any]:
        """Return a snapshot of the bank's state."""
        return {
            "agent_id": self.agent_id,
            "agent_type": self.agent_type,
            "capital": self.capital,
            "loans": self.loans,
            "interest_rate": self.interest_rate,
            "capital_ratio": self.capital_ratio,
            "interest_income": self.interest_income,
            "write_offs": self.write_offs,
            "profit": self.profit,
            "failures": self.failures,
        }

    def balance_sheet(self) -> dict[str, float]:
        return {"loans": self.loans, "net_worth": -self.capital}

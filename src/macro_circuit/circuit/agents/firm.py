"""Firm agent for the circuit.

Firms hire a fixed workforce, produce to replenish a target inventory,
price at a markup over unit wage cost and publish their stock as an offer
every period.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from macro_circuit.circuit.agents.base import BaseAgent
from macro_circuit.circuit.supply import Supply

if TYPE_CHECKING:
    from typing import Any

    from macro_circuit.circuit.config import FirmSectorConfig

#: Share of outstanding debt repaid each period.
REPAYMENT_SHARE: float = 0.05


class Firm(BaseAgent):
    """A firm agent.

    Attributes:
        workers: Number of employees.
        productivity: Output per worker per period.
        wage: Wage per worker per period.
        markup: Current price markup over unit cost.
        cash: Liquid assets.
        debt: Outstanding bank loans.
        inventory: Stock of unsold goods.
        output: Quantity produced this period.
        offered: Quantity offered this period.
        sales: Quantity sold this period.
        revenue: Value of this period's sales.
        expected_sales: Adaptive sales expectation used to plan output.
        bankruptcies: Number of times the firm failed and restarted.
    """

    def __init__(
        self,
        agent_id: str | None = None,
        *,
        workers: int = 0,
        productivity: float = 1.0,
        wage: float = 0.0,
        markup: float = 0.2,
        cash: float = 0.0,
        debt: float = 0.0,
        inventory: float = 0.0,
        behavior: FirmSectorConfig | None = None,
    ) -> None:
        super().__init__(agent_id)
        self._behavior = behavior
        self.workers = workers
        self.productivity = productivity
        self.wage = wage
        self.markup = markup
        self.cash = cash
        self.debt = debt
        self.inventory = inventory

        self.output: float = 0.0
        self.offered: float = 0.0
        self.sales: float = 0.0
        self.revenue: float = 0.0
        self.expected_sales: float = self.capacity / (1 + self._target_ratio)
        self.bankruptcies: int = 0

    @property
    def _target_ratio(self) -> float:
        return self._behavior.inventory_target_ratio if self._behavior else 0.5

    # ------------------------------------------------------------------
    # Derived quantities
    # ------------------------------------------------------------------

    @property
    def capacity(self) -> float:
        """Maximum output per period."""
        return self.workers * self.productivity

    @property
    def wage_bill(self) -> float:
        return self.workers * self.wage

    @property
    def unit_cost(self) -> float:
        """Wage cost per unit of output."""
        return self.wage / max(self.productivity, 1e-9)

    @property
    def price(self) -> float:
        """Unit price as a markup over unit cost."""
        return self.unit_cost * (1 + self.markup)

    @property
    def equity(self) -> float:
        """Net worth with inventories valued at unit cost."""
        return self.cash + self.inventory * self.unit_cost - self.debt

    # ------------------------------------------------------------------
    # Period logic
    # ------------------------------------------------------------------

    def start_period(self) -> None:
        """Plan and carry out this period's production."""
        self.sales = 0.0
        self.revenue = 0.0
        self._plan_production()
        self._produce()

    def _plan_production(self) -> None:
        """Produce enough to cover expected sales plus the inventory target."""
        target_stock = self.expected_sales * (1 + self._target_ratio)
        desired = max(target_stock - self.inventory, 0.0)
        self.output = min(desired, self.capacity)

    def _produce(self) -> None:
        self.inventory += self.output

    def offer(self, perishable: bool = False) -> Supply | None:
        """Return an offer for the whole inventory, or ``None`` if empty."""
        self.offered = self.inventory
        if self.inventory <= 0:
            return None
        return Supply(
            seller_id=self.agent_id,
            price=self.price,
            quantity=self.inventory,
            perishable=perishable,
        )

    def record_sales(self, quantity: float, value: float) -> None:
        """Book the quantity sold from this period's offer."""
        self.inventory = max(self.inventory - quantity, 0.0)
        self.cash += value
        self.sales = quantity
        self.revenue = value
        self.expected_sales = 0.5 * self.expected_sales + 0.5 * quantity

    def pay_wages(self) -> float:
        """Pay the wage bill and return it."""
        self.cash -= self.wage_bill
        return self.wage_bill

    def service_debt(self, rate: float) -> tuple[float, float]:
        """Pay interest and the scheduled principal.

        Returns:
            ``(interest, principal)`` paid.
        """
        interest = self.debt * rate
        principal = self.debt * REPAYMENT_SHARE
        self.cash -= interest + principal
        self.debt -= principal
        return interest, principal

    def borrow(self, amount: float) -> None:
        self.cash += amount
        self.debt += amount

    # ------------------------------------------------------------------
    # Markup adaptation
    # ------------------------------------------------------------------

    def adapt_markup(self) -> None:
        """Adjust the markup from this period's sell-through.

        Selling more than the planned share of the offer is read as excess
        demand and raises the markup; selling less lowers it.
        """
        if self.offered <= 0:
            return
        speed = self._behavior.markup_adjustment_speed if self._behavior else 0.05
        planned_share = 1 / (1 + self._target_ratio)
        excess_demand = self.sales / self.offered - planned_share
        self.markup = max(0.01, self.markup + speed * excess_demand)

    # ------------------------------------------------------------------
    # Failure
    # ------------------------------------------------------------------

    @property
    def insolvent(self) -> bool:
        """Whether the firm could not cover its payments this period."""
        return self.cash < 0

    def restart(self) -> None:
        """Replace a failed firm by a fresh entrant in the same slot."""
        self.bankruptcies += 1
        self.cash = self._behavior.initial_cash if self._behavior else 0.0
        self.debt = 0.0
        self.inventory = 0.0
        self.markup = self._behavior.markup if self._behavior else 0.2
        self.expected_sales = self.capacity / (1 + self._target_ratio)

    # ------------------------------------------------------------------
    # State reporting
    # ------------------------------------------------------------------

    def get_state(self) -> dict[str, Any]:
        """Return a snapshot of the firm's state."""
        return {
            "agent_id": self.agent_id,
            "agent_type": self.agent_type,
            "workers": self.workers,
            "price": self.price,
            "markup": self.markup,
            "output": self.output,
            "inventory": self.inventory,
            "sales": self.sales,
            "revenue": self.revenue,
            "cash": self.cash,
            "debt": self.debt,
            "equity": self.equity,
            "bankruptcies": self.bankruptcies,
        }

    def balance_sheet(self) -> dict[str, float]:
        return {
            "cash": self.cash,
            "inventories": self.inventory * self.unit_cost,
            "loans": -self.debt,
        }

"""Firm sector.

Firms produce in the opening phase, publish their inventory as offers,
and in settlement book their sales, pay wages, service bank debt and
borrow to cover shortfalls.  A firm still short of cash after borrowing
defaults: its loan is written off, the firm restarts with fresh capital
and the sector reports it as an agent failure.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar

from macro_circuit.circuit.agents.firm import Firm
from macro_circuit.circuit.config import FirmSectorConfig
from macro_circuit.circuit.errors import AgentFailureError, InvalidArgumentError
from macro_circuit.circuit.sectors.banks import BankingSector
from macro_circuit.circuit.sectors.base import (
    Capability,
    Sector,
    aggregate_balance_sheets,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    import numpy as np

    from macro_circuit.circuit.period import Period
    from macro_circuit.circuit.supply import Supply

logger = logging.getLogger(__name__)


class FirmSector(Sector):
    """The sector of firms producing final goods.

    Attributes:
        firms: Firm agents in creation order.
        lender: Banking sector firms borrow from, if any.
        wage_bill: Wages paid this period.
        bankruptcies: Number of firms that failed this period.
    """

    capabilities: ClassVar[frozenset[Capability]] = frozenset(
        {Capability.PUBLISHES_SUPPLY, Capability.SETTLES}
    )

    def __init__(
        self,
        name: str = "firms",
        config: FirmSectorConfig | None = None,
        *,
        lender: BankingSector | None = None,
    ) -> None:
        super().__init__(name)
        self.config = config or FirmSectorConfig()
        self.lender = lender
        self.firms: list[Firm] = []
        self.wage_bill: float = 0.0
        self.bankruptcies: int = 0

    def connect(self, sectors: Mapping[str, Sector]) -> None:
        if self.config.lender is None:
            return
        lender = sectors.get(self.config.lender)
        if not isinstance(lender, BankingSector):
            msg = (
                f"sector {self.name!r} needs a banking sector named "
                f"{self.config.lender!r} as lender"
            )
            raise InvalidArgumentError(msg)
        self.lender = lender

    @property
    def jobs(self) -> int:
        """Total number of positions across firms."""
        return self.config.count * self.config.workers_per_firm

    @property
    def wage(self) -> float:
        """Wage paid per worker."""
        return self.config.wage

    # ------------------------------------------------------------------
    # Phase handlers
    # ------------------------------------------------------------------

    def initialize(self, rng: np.random.Generator) -> None:
        """Create the firms with slightly dispersed initial markups."""
        super().initialize(rng)
        cfg = self.config
        markups = cfg.markup * (1 + rng.normal(0.0, 0.05, size=cfg.count))
        self.firms = [
            Firm(
                agent_id=f"{self.name}_{i:04d}",
                workers=cfg.workers_per_firm,
                productivity=cfg.productivity,
                wage=cfg.wage,
                markup=max(float(markup), 0.01),
                cash=cfg.initial_cash,
                behavior=cfg,
            )
            for i, markup in enumerate(markups)
        ]

    def open_period(self, period: Period) -> None:
        self.wage_bill = 0.0
        self.bankruptcies = 0
        for firm in self.firms:
            firm.start_period()

    def offers(self, period: Period) -> list[Supply]:
        offers = []
        for firm in self.firms:
            offer = firm.offer(perishable=self.config.perishable)
            if offer is not None:
                offers.append(offer)
        return offers

    def settle(self, period: Period) -> None:
        """Book sales, pay wages, service debt and resolve defaults.

        Raises:
            AgentFailureError: Listing the firms that defaulted.
        """
        sales = self.offer_pool.sales_by_seller() if self.offer_pool else {}
        failed: list[str] = []
        for firm in self.firms:
            quantity, value = sales.get(firm.agent_id, (0.0, 0.0))
            firm.record_sales(quantity, value)
            if self.config.perishable:
                firm.inventory = 0.0
            self.wage_bill += firm.pay_wages()
            self._service_debt(firm)
            firm.adapt_markup()
            if firm.insolvent:
                failed.append(firm.agent_id)
                self._resolve_default(firm)
        self.bankruptcies = len(failed)
        if failed:
            raise AgentFailureError(self.name, failed, "bankruptcy")

    def _service_debt(self, firm: Firm) -> None:
        if self.lender is None:
            return
        if firm.debt > 0:
            rate = self.lender.interest_rate(firm.agent_id)
            interest, principal = firm.service_debt(rate)
            self.lender.collect(firm.agent_id, interest, principal)
        if firm.cash < 0:
            firm.borrow(self.lender.lend(firm.agent_id, -firm.cash))

    def _resolve_default(self, firm: Firm) -> None:
        logger.debug("%s defaults with debt %.2f", firm.agent_id, firm.debt)
        if self.lender is not None and firm.debt > 0:
            self.lender.write_off(firm.agent_id, firm.debt)
        firm.restart()

    def report(self, period: Period) -> dict[str, float]:
        n = len(self.firms)
        return {
            "production": sum(f.output for f in self.firms),
            "inventory_volume": sum(f.inventory for f in self.firms),
            "sales_volume": sum(f.sales for f in self.firms),
            "sales_value": sum(f.revenue for f in self.firms),
            "average_price": sum(f.price for f in self.firms) / n if n else 0.0,
            "average_markup": sum(f.markup for f in self.firms) / n if n else 0.0,
            "wage_bill": self.wage_bill,
            "debt": sum(f.debt for f in self.firms),
            "bankruptcies": float(self.bankruptcies),
        }

    @property
    def agents(self) -> list[Firm]:
        return self.firms

    def balance_sheet(self) -> Mapping[str, float]:
        return aggregate_balance_sheets(f.balance_sheet() for f in self.firms)

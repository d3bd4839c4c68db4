"""Household sector.

Employed households earn the firms' wage.  In the consumption phase each
household takes a few quotes from the matching engine and buys from the
cheapest first until its budget is spent or the quotes run out.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

import numpy as np

from macro_circuit.circuit.agents.household import Household
from macro_circuit.circuit.config import HouseholdSectorConfig
from macro_circuit.circuit.errors import InvalidArgumentError
from macro_circuit.circuit.sectors.base import (
    Capability,
    Sector,
    aggregate_balance_sheets,
)
from macro_circuit.circuit.sectors.firms import FirmSector

if TYPE_CHECKING:
    from collections.abc import Mapping

    from macro_circuit.circuit.matching import MatchingEngine
    from macro_circuit.circuit.period import Period


class HouseholdSector(Sector):
    """The household sector.

    Attributes:
        households: Household agents in creation order.
        employer: Firm sector providing jobs, if any.
    """

    capabilities: ClassVar[frozenset[Capability]] = frozenset(
        {Capability.CONSUMES_SUPPLY}
    )

    def __init__(
        self,
        name: str = "households",
        config: HouseholdSectorConfig | None = None,
        *,
        employer: FirmSector | None = None,
    ) -> None:
        super().__init__(name)
        self.config = config or HouseholdSectorConfig()
        self.employer = employer
        self.households: list[Household] = []

    def connect(self, sectors: Mapping[str, Sector]) -> None:
        if self.config.employer is None:
            return
        employer = sectors.get(self.config.employer)
        if not isinstance(employer, FirmSector):
            msg = (
                f"sector {self.name!r} needs a firm sector named "
                f"{self.config.employer!r} as employer"
            )
            raise InvalidArgumentError(msg)
        self.employer = employer

    # ------------------------------------------------------------------
    # Phase handlers
    # ------------------------------------------------------------------

    def initialize(self, rng: np.random.Generator) -> None:
        """Create households and fill the employer's jobs in order."""
        super().initialize(rng)
        cfg = self.config
        draws = rng.normal(cfg.mpc_mean, cfg.mpc_std, size=cfg.count)
        mpcs = np.clip(draws, 0.1, 0.99)
        self.households = [
            Household(
                agent_id=f"{self.name}_{i:05d}",
                wealth=cfg.initial_wealth,
                mpc=float(mpc),
            )
            for i, mpc in enumerate(mpcs)
        ]
        if self.employer is not None:
            for household in self.households[: self.employer.jobs]:
                household.become_employed(self.employer.wage)

    def open_period(self, period: Period) -> None:
        for household in self.households:
            household.start_period()

    def consume(self, period: Period, engine: MatchingEngine) -> None:
        """Spend each household's budget on the cheapest quoted offers."""
        for household in self.households:
            household.receive_income()
            budget = household.consumption_budget(
                self.config.wealth_consumption_rate
            )
            if budget <= 0:
                continue
            quotes = engine.quote(
                self.config.search_size, supplier=self.config.supplier
            )
            for quote in sorted(quotes, key=lambda q: q.price):
                if budget <= 0:
                    break
                if quote.price > 0:
                    wanted = budget / quote.price
                else:
                    wanted = quote.remaining
                allocation = engine.purchase(quote, wanted)
                household.spend(allocation.value, allocation.quantity)
                budget -= allocation.value
            household.unmet_demand = max(budget, 0.0)

    def report(self, period: Period) -> dict[str, float]:
        n = len(self.households)
        return {
            "income": sum(h.income for h in self.households),
            "consumption_value": sum(h.consumption for h in self.households),
            "consumption_volume": sum(
                h.consumption_volume for h in self.households
            ),
            "unmet_demand": sum(h.unmet_demand for h in self.households),
            "deposits": sum(h.wealth for h in self.households),
            "employment_rate": (
                sum(1 for h in self.households if h.employed) / n if n else 0.0
            ),
        }

    @property
    def agents(self) -> list[Household]:
        return self.households

    def balance_sheet(self) -> Mapping[str, float]:
        return aggregate_balance_sheets(h.balance_sheet() for h in self.households)

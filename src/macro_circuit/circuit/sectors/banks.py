"""Banking sector.

Banks lend to firms that run short of cash, collect interest and absorb
write-offs.  Firms reach their lender through :meth:`BankingSector.lend`,
:meth:`BankingSector.collect` and :meth:`BankingSector.write_off` during
their own settlement.  In settlement the banks close their books; an
insolvent bank is recapitalized and reported as an agent failure.  When
borrowers are registered after the banks, their payments and write-offs
reach a bank's capital directly and count toward the next period's
solvency check.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar

from macro_circuit.circuit.agents.bank import Bank
from macro_circuit.circuit.config import BankingSectorConfig
from macro_circuit.circuit.errors import AgentFailureError
from macro_circuit.circuit.sectors.base import (
    Capability,
    Sector,
    aggregate_balance_sheets,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from macro_circuit.circuit.period import Period

logger = logging.getLogger(__name__)


class BankingSector(Sector):
    """The banking sector.

    Attributes:
        banks: Bank agents in creation order.
        lending: New loans extended this period.
        defaults: Number of borrower defaults this period.
    """

    capabilities: ClassVar[frozenset[Capability]] = frozenset({Capability.SETTLES})

    def __init__(
        self,
        name: str = "banks",
        config: BankingSectorConfig | None = None,
    ) -> None:
        super().__init__(name)
        self.config = config or BankingSectorConfig()
        self.banks: list[Bank] = [
            Bank(
                agent_id=f"bank_{i:02d}",
                capital=self.config.capital,
                interest_rate=self.config.interest_rate,
                capital_requirement=self.config.capital_requirement,
            )
            for i in range(self.config.count)
        ]
        self.lending: float = 0.0
        self.defaults: int = 0
        self._lenders: dict[str, Bank] = {}

    # ------------------------------------------------------------------
    # Lending interface used by borrowing sectors
    # ------------------------------------------------------------------

    def interest_rate(self, borrower_id: str) -> float:
        """Rate charged to *borrower_id* (its lender's rate, if any)."""
        bank = self._lenders.get(borrower_id)
        return bank.interest_rate if bank else self.config.interest_rate

    def lend(self, borrower_id: str, amount: float) -> float:
        """Try to extend a loan and return the amount granted.

        A borrower keeps its first lender.  A new borrower goes to the
        best-capitalized bank able to lend (ties keep creation order).
        """
        if amount <= 0:
            return 0.0
        bank = self._lenders.get(borrower_id)
        if bank is None:
            candidates = [b for b in self.banks if b.can_lend(amount)]
            if not candidates:
                return 0.0
            bank = max(candidates, key=lambda b: b.capital_ratio)
        elif not bank.can_lend(amount):
            return 0.0
        bank.extend_loan(amount)
        self._lenders[borrower_id] = bank
        self.lending += amount
        return amount

    def collect(self, borrower_id: str, interest: float, principal: float) -> None:
        """Book a debt-service payment from *borrower_id*."""
        bank = self._lenders.get(borrower_id)
        if bank is not None:
            bank.collect(interest, principal)

    def write_off(self, borrower_id: str, amount: float) -> None:
        """Write off the loan of a defaulted borrower."""
        bank = self._lenders.pop(borrower_id, None)
        if bank is None:
            return
        loss = bank.write_off(amount, self.config.recovery_rate)
        self.defaults += 1
        logger.debug(
            "%s wrote off %.2f (loss %.2f) for %s",
            bank.agent_id,
            amount,
            loss,
            borrower_id,
        )

    # ------------------------------------------------------------------
    # Phase handlers
    # ------------------------------------------------------------------

    def open_period(self, period: Period) -> None:
        self.lending = 0.0
        self.defaults = 0
        for bank in self.banks:
            bank.start_period()

    def settle(self, period: Period) -> None:
        """Close every bank's books and recapitalize insolvent banks.

        Raises:
            AgentFailureError: Listing the banks found insolvent.
        """
        failed: list[str] = []
        for bank in self.banks:
            bank.close_books()
            if bank.insolvent:
                failed.append(bank.agent_id)
                bank.recapitalize()
        if failed:
            raise AgentFailureError(self.name, failed, "insolvency")

    def report(self, period: Period) -> dict[str, float]:
        return {
            "loans": sum(b.loans for b in self.banks),
            "capital": sum(b.capital for b in self.banks),
            "lending": self.lending,
            "interest_income": sum(b.interest_income for b in self.banks),
            "write_offs": sum(b.write_offs for b in self.banks),
            "defaults": float(self.defaults),
        }

    @property
    def agents(self) -> list[Bank]:
        return self.banks

    def balance_sheet(self) -> Mapping[str, float]:
        return aggregate_balance_sheets(b.balance_sheet() for b in self.banks)


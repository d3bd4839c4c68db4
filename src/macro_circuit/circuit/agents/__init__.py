"""Agent classes owned by the circuit's sectors."""

from __future__ import annotations

from macro_circuit.circuit.agents.bank import Bank
from macro_circuit.circuit.agents.base import BaseAgent
from macro_circuit.circuit.agents.firm import Firm
from macro_circuit.circuit.agents.household import Household

__all__ = [
    "Bank",
    "BaseAgent",
    "Firm",
    "Household",
]

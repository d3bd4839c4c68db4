"""Sectors driven by the circuit."""

from __future__ import annotations

from macro_circuit.circuit.sectors.banks import BankingSector
from macro_circuit.circuit.sectors.base import Capability, Sector
from macro_circuit.circuit.sectors.firms import FirmSector
from macro_circuit.circuit.sectors.households import HouseholdSector

__all__ = [
    "BankingSector",
    "Capability",
    "FirmSector",
    "HouseholdSector",
    "Sector",
]

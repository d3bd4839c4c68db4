"""Construction of sectors from configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from macro_circuit.circuit.errors import InvalidArgumentError
from macro_circuit.circuit.sectors.banks import BankingSector
from macro_circuit.circuit.sectors.firms import FirmSector
from macro_circuit.circuit.sectors.households import HouseholdSector

if TYPE_CHECKING:
    from collections.abc import Iterable

    from macro_circuit.circuit.config import SectorSpec
    from macro_circuit.circuit.sectors.base import Sector

#: Sector class used for each configured kind.
SECTOR_KINDS: dict[str, type[Sector]] = {
    "firms": FirmSector,
    "households": HouseholdSector,
    "banks": BankingSector,
}


def create_sector(spec: SectorSpec) -> Sector:
    """Instantiate the sector described by *spec*."""
    try:
        cls = SECTOR_KINDS[spec.kind]
    except KeyError:
        msg = f"unknown sector kind {spec.kind!r}"
        raise InvalidArgumentError(msg) from None
    return cls(spec.name, spec.params)


def build_sectors(specs: Iterable[SectorSpec]) -> list[Sector]:
    """Create every configured sector and resolve cross-references.

    Returns:
        Sectors in configuration order, ready to be registered.
    """
    sectors = [create_sector(spec) for spec in specs]
    by_name = {sector.name: sector for sector in sectors}
    if len(by_name) != len(sectors):
        msg = "sector names must be unique"
        raise InvalidArgumentError(msg)
    for sector in sectors:
        sector.connect(by_name)
    return sectors

"""Configuration loading and validation for the circuit."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import yaml

from macro_circuit.circuit.errors import InvalidArgumentError

if TYPE_CHECKING:
    from typing import Any

_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[3] / "config"


@dataclass(frozen=True)
class SimulationConfig:
    """Top-level run settings."""

    periods: int = 120
    seed: int = 42
    start_year: int = 2000
    start_month: int = 1

    def __post_init__(self) -> None:
        if self.periods < 1:
            msg = f"periods must be at least 1, got {self.periods}"
            raise InvalidArgumentError(msg)
        if not 1 <= self.start_month <= 12:
            msg = f"start_month must be in 1..12, got {self.start_month}"
            raise InvalidArgumentError(msg)


@dataclass(frozen=True)
class MatchingConfig:
    """Thresholds of the offer sampling strategy."""

    full_scan_threshold: int = 32
    max_probe_failures: int = 64

    def __post_init__(self) -> None:
        if self.full_scan_threshold < 0:
            msg = "full_scan_threshold must be non-negative"
            raise InvalidArgumentError(msg)
        if self.max_probe_failures < 1:
            msg = "max_probe_failures must be at least 1"
            raise InvalidArgumentError(msg)


@dataclass(frozen=True)
class FirmSectorConfig:
    """Parameters of the firm sector."""

    count: int = 20
    workers_per_firm: int = 10
    productivity: float = 10.0
    wage: float = 100.0
    markup: float = 0.2
    markup_adjustment_speed: float = 0.05
    inventory_target_ratio: float = 0.5
    initial_cash: float = 2_000.0
    perishable: bool = False
    lender: str | None = "banks"


@dataclass(frozen=True)
class HouseholdSectorConfig:
    """Parameters of the household sector."""

    count: int = 200
    mpc_mean: float = 0.85
    mpc_std: float = 0.05
    wealth_consumption_rate: float = 0.05
    initial_wealth: float = 500.0
    search_size: int = 4
    employer: str | None = "firms"
    supplier: str | None = None


@dataclass(frozen=True)
class BankingSectorConfig:
    """Parameters of the banking sector."""

    count: int = 3
    capital: float = 5_000.0
    interest_rate: float = 0.01
    capital_requirement: float = 0.08
    recovery_rate: float = 0.2


#: Parameter dataclass used for each built-in sector kind.
SECTOR_PARAMETERS: dict[str, type] = {
    "firms": FirmSectorConfig,
    "households": HouseholdSectorConfig,
    "banks": BankingSectorConfig,
}


@dataclass(frozen=True)
class SectorSpec:
    """One entry of the sector list, in registration order.

    Attributes:
        kind: Key into the sector factory (``firms``, ``households``,
            ``banks``).
        name: Unique sector name; defaults to the kind.
        params: Construction parameters for that kind.
    """

    kind: str
    name: str = ""
    params: Any = None

    def __post_init__(self) -> None:
        if self.kind not in SECTOR_PARAMETERS:
            msg = f"unknown sector kind {self.kind!r}"
            raise InvalidArgumentError(msg)
        if not self.name:
            object.__setattr__(self, "name", self.kind)
        if self.params is None:
            object.__setattr__(self, "params", SECTOR_PARAMETERS[self.kind]())


def _default_sectors() -> tuple[SectorSpec, ...]:
    return (
        SectorSpec(kind="firms"),
        SectorSpec(kind="households"),
        SectorSpec(kind="banks"),
    )


@dataclass(frozen=True)
class CircuitConfig:
    """Complete circuit configuration."""

    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    sectors: tuple[SectorSpec, ...] = field(default_factory=_default_sectors)


def _sector_spec(raw: dict[str, Any]) -> SectorSpec:
    """Build a :class:`SectorSpec` from one YAML list entry."""
    kind = raw.get("kind", "")
    if kind not in SECTOR_PARAMETERS:
        msg = f"unknown sector kind {kind!r}"
        raise InvalidArgumentError(msg)
    params = raw.get("params") or {}
    return SectorSpec(
        kind=kind,
        name=raw.get("name", kind),
        params=SECTOR_PARAMETERS[kind](**params),
    )


def load_config(path: Path | None = None) -> CircuitConfig:
    """Load circuit configuration from a YAML file.

    Args:
        path: Path to a YAML config file.  When *None* the default
              ``config/circuit.yml`` shipped with the package is used.

    Returns:
        A fully-populated :class:`CircuitConfig` instance.
    """
    if path is None:
        path = _DEFAULT_CONFIG_PATH / "circuit.yml"

    raw: dict[str, Any] = {}
    if path.exists():
        with path.open() as fh:
            loaded = yaml.safe_load(fh)
            if isinstance(loaded, dict):
                raw = loaded

    sectors_raw = raw.get("sectors")
    sectors = (
        tuple(_sector_spec(s) for s in sectors_raw)
        if isinstance(sectors_raw, list)
        else _default_sectors()
    )

    names = [s.name for s in sectors]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        msg = f"duplicate sector names: {', '.join(duplicates)}"
        raise InvalidArgumentError(msg)

    return CircuitConfig(
        simulation=SimulationConfig(**raw.get("simulation", {})),
        matching=MatchingConfig(**raw.get("matching", {})),
        sectors=sectors,
    )

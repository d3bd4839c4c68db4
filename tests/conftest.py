"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import pytest
import yaml

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path


@pytest.fixture(autouse=True)
def reset_typer_force_terminal() -> Generator[None]:
    """Reset typer.rich_utils.FORCE_TERMINAL before each test.

    When FORCE_COLOR=1 is set in CI, the first CLI ``--help`` invocation
    imports ``typer.rich_utils`` which sets the module-level constant
    ``FORCE_TERMINAL = True`` at import time.  Later tests that suppress
    colours via ``CliRunner(env={"FORCE_COLOR": None})`` patch
    ``os.environ`` too late, so Rich injects ANSI escape codes that split
    option names such as ``--halt-on-failure`` across several sequences.

    Resetting ``FORCE_TERMINAL`` to ``None`` makes each CLI invocation
    detect terminal capabilities from the patched environment instead.
    """
    ru = sys.modules.get("typer.rich_utils")
    old = ru.FORCE_TERMINAL if ru is not None else None
    if ru is not None:
        ru.FORCE_TERMINAL = None
    yield
    if ru is not None:
        ru.FORCE_TERMINAL = old


@pytest.fixture
def small_economy() -> dict:
    """A small firms/households/banks economy that runs quickly."""
    return {
        "simulation": {"periods": 4, "seed": 11, "start_year": 2010},
        "matching": {"full_scan_threshold": 4, "max_probe_failures": 16},
        "sectors": [
            {
                "kind": "firms",
                "name": "firms",
                "params": {"count": 5, "workers_per_firm": 4, "lender": "banks"},
            },
            {
                "kind": "households",
                "name": "households",
                "params": {"count": 25, "employer": "firms", "search_size": 3},
            },
            {"kind": "banks", "name": "banks", "params": {"count": 2}},
        ],
    }


@pytest.fixture
def small_config_file(tmp_path: Path, small_economy: dict) -> Path:
    path = tmp_path / "circuit.yml"
    path.write_text(yaml.dump(small_economy))
    return path

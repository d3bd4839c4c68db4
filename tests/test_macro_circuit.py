"""Tests for macro_circuit."""

from __future__ import annotations

from typing import TYPE_CHECKING

import polars as pl
from typer.testing import CliRunner

from macro_circuit import __version__
from macro_circuit.cli import app

if TYPE_CHECKING:
    from pathlib import Path

# NO_COLOR=1 prevents ANSI colour codes. FORCE_COLOR=None *deletes* the key
# from os.environ during each test invocation (Click CliRunner treats a None
# value as "unset this variable").
runner = CliRunner(env={"NO_COLOR": "1", "FORCE_COLOR": None})


def test_version() -> None:
    """Test that version is defined."""
    assert __version__ is not None
    assert isinstance(__version__, str)


def test_cli_version() -> None:
    """Test CLI version command."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_cli_help() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "run" in result.stdout
    assert "metrics" in result.stdout


def test_cli_run(small_config_file: Path) -> None:
    """Test the run command on a small economy."""
    result = runner.invoke(app, ["run", "--config", str(small_config_file)])
    assert result.exit_code == 0, result.output
    assert "Running 4 periods (seed 11, 3 sectors)" in result.stdout
    assert "Final period: 2010-04" in result.stdout
    assert "total_sales_volume" in result.stdout
    assert "Done. 4 periods simulated." in result.stdout


def test_cli_run_overrides(small_config_file: Path) -> None:
    result = runner.invoke(
        app, ["run", "-c", str(small_config_file), "--periods", "2", "--seed", "5"]
    )
    assert result.exit_code == 0, result.output
    assert "Running 2 periods (seed 5, 3 sectors)" in result.stdout
    assert "Done. 2 periods simulated." in result.stdout


def test_cli_run_writes_csv(small_config_file: Path, tmp_path: Path) -> None:
    output = tmp_path / "out" / "series.csv"
    result = runner.invoke(
        app, ["run", "-c", str(small_config_file), "--output", str(output)]
    )
    assert result.exit_code == 0, result.output
    assert output.is_file()
    frame = pl.read_csv(output)
    assert frame.height == 4
    assert frame.columns[:3] == ["period", "year", "month"]
    assert "firms.production" in frame.columns


def test_cli_run_writes_parquet(small_config_file: Path, tmp_path: Path) -> None:
    output = tmp_path / "series.parquet"
    result = runner.invoke(
        app, ["run", "-c", str(small_config_file), "-o", str(output)]
    )
    assert result.exit_code == 0, result.output
    assert pl.read_parquet(output).height == 4


def test_cli_run_writes_agents(small_config_file: Path, tmp_path: Path) -> None:
    path = tmp_path / "agents.csv"
    result = runner.invoke(
        app, ["run", "-c", str(small_config_file), "--agents", str(path)]
    )
    assert result.exit_code == 0, result.output
    assert "Wrote 32 agents" in result.stdout
    frame = pl.read_csv(path)
    assert frame.height == 32
    assert frame.columns[0] == "sector"


def test_cli_run_events(small_config_file: Path) -> None:
    result = runner.invoke(
        app, ["run", "-c", str(small_config_file), "--events"]
    )
    assert result.exit_code == 0, result.output
    assert "Run started (seed 11" in result.stdout


def test_cli_run_missing_config(tmp_path: Path) -> None:
    result = runner.invoke(app, ["run", "-c", str(tmp_path / "missing.yml")])
    assert result.exit_code == 1
    assert "is not a file" in result.output


def test_cli_run_invalid_periods(small_config_file: Path) -> None:
    result = runner.invoke(
        app, ["run", "-c", str(small_config_file), "--periods", "0"]
    )
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_cli_metrics(small_config_file: Path) -> None:
    result = runner.invoke(app, ["metrics", "-c", str(small_config_file)])
    assert result.exit_code == 0, result.output
    names = result.stdout.split()
    assert "total_supply_volume" in names
    assert "banks.agent_failures" in names
    assert names == sorted(names)

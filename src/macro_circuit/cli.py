"""Command-line interface for macro_circuit."""

import dataclasses
import logging
from pathlib import Path
from typing import Annotated

import typer

from macro_circuit import __version__

app = typer.Typer(
    name="macro_circuit",
    help="Agent-based macroeconomic circuit simulation",
    add_completion=False,
)

# Series printed in the run summary, when present.
SUMMARY_METRICS = (
    "total_supply_volume",
    "total_sales_volume",
    "average_price",
    "unsold_volume",
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"macro_circuit version: {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Agent-based macroeconomic circuit simulation."""


def _load(config: Path | None, periods: int | None, seed: int | None):
    from macro_circuit.circuit.config import load_config

    if config is not None and not config.is_file():
        typer.echo(f"Error: {config} is not a file.", err=True)
        raise typer.Exit(code=1)
    cfg = load_config(config)
    overrides = {}
    if periods is not None:
        overrides["periods"] = periods
    if seed is not None:
        overrides["seed"] = seed
    if overrides:
        cfg = dataclasses.replace(
            cfg, simulation=dataclasses.replace(cfg.simulation, **overrides)
        )
    return cfg


def _write(frame, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix == ".csv":
        frame.write_csv(path)
    else:
        frame.write_parquet(path)


@app.command()
def run(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="YAML configuration file. Uses config/circuit.yml when omitted.",
        ),
    ] = None,
    periods: Annotated[
        int | None,
        typer.Option("--periods", "-p", help="Number of periods to simulate."),
    ] = None,
    seed: Annotated[
        int | None,
        typer.Option("--seed", "-s", help="Random seed."),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Write all series to a .parquet or .csv file.",
        ),
    ] = None,
    agents: Annotated[
        Path | None,
        typer.Option(
            "--agents",
            help="Write final agent states to a .parquet or .csv file.",
        ),
    ] = None,
    halt_on_failure: Annotated[
        bool,
        typer.Option(
            "--halt-on-failure/--no-halt-on-failure",
            help="Stop after the first period in which a bank fails.",
        ),
    ] = False,
    show_events: Annotated[
        bool,
        typer.Option("--events/--no-events", help="Print the event log."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log progress to stderr."),
    ] = False,
) -> None:
    """Run the circuit and print a summary of the final period."""
    from macro_circuit.circuit import Circuit, EventLog
    from macro_circuit.circuit.events import AgentFailed
    from macro_circuit.circuit.sectors import BankingSector

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    try:
        cfg = _load(config, periods, seed)
        circuit = Circuit.from_config(config=cfg)
    except (TypeError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    log = EventLog(maxlen=1000)
    circuit.events.subscribe(log)
    if halt_on_failure:
        banks = {s.name for s in circuit.sectors if isinstance(s, BankingSector)}

        def halt(event: AgentFailed) -> None:
            if event.sector in banks:
                circuit.request_abort(f"bank failure: {event.agent_id}")

        circuit.events.subscribe(halt, AgentFailed)

    typer.echo(
        f"Running {cfg.simulation.periods} periods "
        f"(seed {cfg.simulation.seed}, {len(circuit.sectors)} sectors)..."
    )
    result = circuit.run()

    if show_events:
        for line in log.lines():
            typer.echo(line)

    if result.last_period is not None:
        typer.echo(f"Final period: {result.last_period}")
        for name in SUMMARY_METRICS:
            latest = circuit.repository.latest(name)
            if latest is not None:
                typer.echo(f"  {name}: {latest[1]:,.2f}")

    if output is not None:
        frame = circuit.repository.to_frame()
        _write(frame, output)
        typer.echo(f"Wrote {frame.height} periods x {frame.width} columns to {output}")

    if agents is not None:
        frame = circuit.agent_frame()
        _write(frame, agents)
        typer.echo(f"Wrote {frame.height} agents to {agents}")

    if not result.succeeded:
        cause = result.cause.describe() if result.cause else "unknown cause"
        typer.echo(f"Run aborted after {result.periods} periods: {cause}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Done. {result.periods} periods simulated.")


@app.command()
def metrics(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="YAML configuration file. Uses config/circuit.yml when omitted.",
        ),
    ] = None,
) -> None:
    """List the series a configured circuit records."""
    from macro_circuit.circuit import Circuit

    try:
        cfg = _load(config, periods=1, seed=None)
        circuit = Circuit.from_config(config=cfg)
    except (TypeError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    result = circuit.run()
    if not result.succeeded:
        cause = result.cause.describe() if result.cause else "unknown cause"
        typer.echo(f"Error: {cause}", err=True)
        raise typer.Exit(code=1)
    for name in sorted(circuit.list_metrics()):
        typer.echo(name)

"""Command-line interface for the micromagnetic engine.

Usage:
    micromag simulate config.json --time=1e-9
    micromag verify config.json
    micromag quantities
"""

from __future__ import annotations

import logging
import sys

import click

from micromag.errors import MicromagError

logger = logging.getLogger(__name__)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """micromag: finite-difference micromagnetic solver."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
@click.option("--time", "duration", type=float, default=None, help="Simulated time [s] (default: sim_time).")
@click.option("--steps", type=int, default=None, help="Run a fixed number of steps instead.")
@click.option("--output", "-o", type=str, default=None, help="Override output HDF5 filename.")
@click.option("--restart", type=click.Path(exists=True), default=None, help="Restart from checkpoint.")
@click.option("--checkpoint", type=str, default=None, help="Write a checkpoint when done.")
def simulate(
    config_file: str,
    duration: float | None,
    steps: int | None,
    output: str | None,
    restart: str | None,
    checkpoint: str | None,
) -> None:
    """Run a simulation from a configuration file."""
    from micromag.config import SimulationConfig
    from micromag.diagnostics.hdf5_writer import HDF5Writer
    from micromag.engine import Simulation

    click.echo(f"Loading config from {config_file}")
    config = SimulationConfig.from_file(config_file)

    if output:
        config.output.hdf5_filename = output

    try:
        sim = Simulation.from_config(config)
        sim.attach_writer(
            HDF5Writer(config.output.hdf5_filename, attrs={"config_json": config.to_json()})
        )

        if restart:
            click.echo(f"Restarting from checkpoint: {restart}")
            sim.load_checkpoint(restart)

        if steps is not None:
            summary = sim.steps(steps)
        else:
            summary = sim.run(duration if duration is not None else config.sim_time)

        if checkpoint:
            sim.save_checkpoint(checkpoint, config_json=config.to_json())
        sim.close()
    except MicromagError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        click.echo(f"Simulation aborted: {exc}", err=True)
        sys.exit(1)

    click.echo("\n--- Simulation Summary ---")
    for key, val in summary.items():
        if isinstance(val, float):
            click.echo(f"  {key}: {val:.6e}")
        else:
            click.echo(f"  {key}: {val}")


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
def verify(config_file: str) -> None:
    """Verify a configuration file is valid."""
    from micromag.config import SimulationConfig

    try:
        config = SimulationConfig.from_file(config_file)
        click.echo("Configuration is valid:")
        click.echo(f"  Grid: {config.mesh.grid_size}")
        click.echo(f"  Cell: {config.mesh.cell_size} m")
        click.echo(f"  Msat: {config.material.Msat:.3e} A/m, Aex: {config.material.Aex:.3e} J/m")
        click.echo(f"  alpha: {config.material.alpha}, demag: {config.material.enable_demag}")
        click.echo(f"  sim_time: {config.sim_time:.2e} s")
    except Exception as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)


@cli.command()
def quantities() -> None:
    """List the quantities available for tables and autosave."""
    from micromag.core.registry import QuantityName

    for key in QuantityName:
        click.echo(f"  {key.value}")


if __name__ == "__main__":
    cli()

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import numpy as np
import typer

from ..core.errors import ConfigurationError, ResourceError
from ..core.resources import describe_table
from ..core.table import ResourceLocator, StoredTable, parse_axis_spec
from ..examples.synthetic import FAMILY_KINDS, generate_snapshot, write_family_resources
from ..sdk.run import launch_from_config

app = typer.Typer(help="Imported-source packet launching utilities")
table_app = typer.Typer(help="Template table helpers")
snapshot_app = typer.Typer(help="Synthetic snapshot helpers")
app.add_typer(table_app, name="table")
app.add_typer(snapshot_app, name="snapshot")


def _configure_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric, format="[%(levelname)s] %(message)s")
    logging.getLogger("sedlaunch").setLevel(numeric)


@app.command("run")
def run(
    config: Path = typer.Argument(..., exists=True, readable=True, help="Path to YAML configuration file."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Override output path (.npz or .txt)."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Override random seed."),
    num_packets: Optional[int] = typer.Option(None, "--num-packets", "-n", min=0, help="Override number of packets."),
    bias: Optional[float] = typer.Option(None, "--bias", min=0.0, max=1.0, help="Override emission bias."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Launch packets from a snapshot as specified by a YAML config."""

    _configure_logging(log_level)
    if output is not None and output.suffix.lower() not in {".npz", ".txt"}:
        raise typer.BadParameter(f"Unsupported output extension '{output.suffix}'", param_hint="--output")
    try:
        result = launch_from_config(config, output=output, seed=seed, num_packets=num_packets, emission_bias=bias)
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc), param_hint="config") from exc
    except ResourceError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    stats = result.stats
    where = result.output_path if result.output_path is not None else "memory"
    typer.echo(
        f"Launched {stats['packets']} packets from {stats['entities']} entities "
        f"(L={stats['luminosity']:.6g} W) → {where}"
    )


@table_app.command("info")
def table_info(
    name: str = typer.Argument(..., help="Resource name or path of a table (.npz)."),
    axes: Optional[str] = typer.Option(None, "--axes", help="Expected axes, e.g. 'lambda(m),Z(1),t(yr)'."),
    quantity: str = typer.Option("Llambda(W/m)", "--quantity", help="Expected quantity, e.g. 'Llambda(W/m)'."),
    resources: List[Path] = typer.Option([], "--resources", "-r", help="Additional resource directories."),
) -> None:
    """Print the axes and value range of a stored table."""

    locator = ResourceLocator(resources)
    try:
        if axes is None:
            axes = _axes_from_resource(locator, name)
        table = StoredTable.open(name, axes, quantity, False, locator)
    except ResourceError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--axes") from exc
    for line in describe_table(table):
        typer.echo(line)


def _axes_from_resource(locator: ResourceLocator, name: str) -> str:
    path = locator.resolve(name)
    with np.load(path, allow_pickle=False) as data:
        if "axis_names" not in data.files or "axis_units" not in data.files:
            raise ResourceError(name, "missing axis metadata")
        spec = ",".join(f"{n}({u})" for n, u in zip(data["axis_names"], data["axis_units"]))
    parse_axis_spec(spec)
    return spec


@table_app.command("synth")
def table_synth(
    output: Path = typer.Argument(..., help="Output directory for the table resources."),
    family: List[str] = typer.Option([], "--family", "-f", help=f"Families to write ({', '.join(FAMILY_KINDS)}); all by default."),
) -> None:
    """Write synthetic template tables usable in place of the real resources."""

    for kind in family:
        if kind not in FAMILY_KINDS:
            raise typer.BadParameter(f"Unknown family '{kind}'", param_hint="--family")
    out = output.resolve()
    paths = write_family_resources(out, family or None)
    typer.echo(f"Wrote {len(paths)} tables to {out}")


@snapshot_app.command("generate")
def snapshot_generate(
    output: Path = typer.Argument(..., help="Output snapshot path (.npz)."),
    family: str = typer.Option("bpass", "--family", "-f", help="Family whose default parameter columns to fill."),
    count: int = typer.Option(100, "--count", "-n", min=1, help="Number of entities."),
    size_pc: float = typer.Option(1000.0, "--size-pc", help="Edge of the cube holding the entities (pc)."),
    velocity_kms: float = typer.Option(0.0, "--velocity-kms", help="Rotation speed (km/s)."),
    dispersion_kms: float = typer.Option(0.0, "--dispersion-kms", help="Velocity dispersion (km/s)."),
    bias: bool = typer.Option(False, "--bias/--no-bias", help="Include per-entity bias weights."),
    seed: int = typer.Option(0, "--seed", help="Random seed."),
) -> None:
    """Generate a random snapshot archive for trying out a family."""

    if family not in FAMILY_KINDS:
        raise typer.BadParameter(f"Unknown family '{family}'", param_hint="--family")
    out = output.resolve()
    generate_snapshot(family, count, seed, size_pc, velocity_kms, dispersion_kms, bias, path=out)
    typer.echo(f"Wrote {count} entities to {out}")


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()

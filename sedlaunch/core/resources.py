from __future__ import annotations
import pathlib
from typing import Sequence, Tuple

import numpy as np

from .table import AxisGrid, StoredTable, parse_axis_spec
from .utils import get_logger

_log = get_logger()


def write_table_resource(
    path: str | pathlib.Path,
    axes: Sequence[AxisGrid],
    values: np.ndarray,
    quantity: str,
    quantity_interp: str = "log",
) -> pathlib.Path:
    """Store a table in the ``.npz`` layout read by :meth:`StoredTable.open`.

    ``values`` must have shape ``(len(axes[0]), len(axes[1]), ...)``; it is
    stored flattened in C order. ``quantity`` is a ``"name(unit)"`` token.
    """
    path = pathlib.Path(path)
    if path.suffix != ".npz":
        path = path.with_name(path.name + ".npz")
    path.parent.mkdir(parents=True, exist_ok=True)
    (qname, qunit), = parse_axis_spec(quantity)
    values = np.asarray(values, dtype=np.float64)
    shape = tuple(len(a) for a in axes)
    if values.shape != shape:
        raise ValueError(f"Values have shape {values.shape}, axes imply {shape}")

    out = {
        "axis_names": np.array([a.name for a in axes]),
        "axis_units": np.array([a.unit for a in axes]),
        "axis_interp": np.array([a.interp for a in axes]),
        "quantity_name": np.array(qname),
        "quantity_unit": np.array(qunit),
        "quantity_interp": np.array(quantity_interp),
        "values": values.reshape(-1),
    }
    for k, axis in enumerate(axes):
        out[f"axis_{k}"] = np.asarray(axis.grid, dtype=np.float64)
    np.savez_compressed(path, **out)
    _log.info("Wrote table resource %s %s", path.name, shape)
    return path


def write_stored_table(path: str | pathlib.Path, table: StoredTable) -> pathlib.Path:
    return write_table_resource(
        path, table.axes, np.asarray(table.values),
        f"{table.quantity_name}({table.quantity_unit})", table.quantity_interp,
    )


def describe_table(table: StoredTable) -> Tuple[str, ...]:
    """Human-readable summary lines (one per axis plus the quantity)."""
    lines = []
    for k, axis in enumerate(table.axes):
        lo, hi = axis.range
        lines.append(f"axis {k}: {axis.name}({axis.unit}) n={len(axis)} [{lo:.6g}, {hi:.6g}] {axis.interp}")
    vals = np.asarray(table.values)
    lines.append(
        f"quantity: {table.quantity_name}({table.quantity_unit}) {table.quantity_interp} "
        f"min={float(vals.min()):.6g} max={float(vals.max()):.6g}"
    )
    return tuple(lines)

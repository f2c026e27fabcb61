from __future__ import annotations
import itertools
import os
import re
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .cdf import SpectralCdf
from .errors import ResourceError
from .numerics import cumulative_integral, can_use_loglog
from .utils import get_logger, intersect_ranges

_log = get_logger()

_SPEC_TOKEN = re.compile(r"^\s*([^()\s]+)\s*\(([^()]*)\)\s*$")

RESOURCE_ENV_VAR = "SEDLAUNCH_RESOURCES"


def parse_axis_spec(spec: str) -> List[Tuple[str, str]]:
    """Split ``"lambda(m),Z(1),t(yr)"`` into ``[("lambda", "m"), ("Z", "1"), ("t", "yr")]``."""
    out: List[Tuple[str, str]] = []
    for token in spec.split(","):
        m = _SPEC_TOKEN.match(token)
        if m is None:
            raise ValueError(f"Malformed axis specification token '{token}' in '{spec}'")
        out.append((m.group(1), m.group(2).strip()))
    return out


@dataclass(frozen=True)
class AxisGrid:
    """One table axis: strictly increasing sample points plus interpolation rule."""
    name: str
    unit: str
    grid: np.ndarray
    interp: str = "lin"          # "lin" or "log"

    def __post_init__(self) -> None:
        grid = np.asarray(self.grid, dtype=np.float64).reshape(-1)
        if grid.size == 0:
            raise ValueError(f"Axis '{self.name}' is empty")
        if grid.size > 1 and not np.all(np.diff(grid) > 0):
            raise ValueError(f"Axis '{self.name}' is not strictly increasing")
        if self.interp not in ("lin", "log"):
            raise ValueError(f"Axis '{self.name}' has unknown interpolation '{self.interp}'")
        grid.setflags(write=False)
        object.__setattr__(self, "grid", grid)

    def __len__(self) -> int:
        return len(self.grid)

    @property
    def log(self) -> bool:
        return self.interp == "log" and bool(self.grid[0] > 0)

    @property
    def range(self) -> Tuple[float, float]:
        return (float(self.grid[0]), float(self.grid[-1]))

    def bracket(self, x) -> Tuple[np.ndarray, np.ndarray]:
        """Lower node index and fraction toward the upper node for coordinate(s) ``x``.

        Coordinates are clamped to the axis domain.
        """
        g = self.grid
        x = np.clip(np.asarray(x, dtype=np.float64), g[0], g[-1])
        if len(g) == 1:
            return np.zeros(np.shape(x), dtype=np.int64), np.zeros(np.shape(x))
        i = np.clip(np.searchsorted(g, x, side="right") - 1, 0, len(g) - 2)
        lo, hi = g[i], g[i + 1]
        if self.log:
            f = (np.log(x) - np.log(lo)) / (np.log(hi) - np.log(lo))
        else:
            f = (x - lo) / (hi - lo)
        f = np.clip(f, 0.0, 1.0)
        # exact node hits must not pick up round-off from the log transform
        f = np.where(x == lo, 0.0, np.where(x == hi, 1.0, f))
        return i, f


class ResourceLocator:
    """Resolves table resource names to ``.npz`` files on a search path."""

    def __init__(self, paths: Sequence[str | Path] = ()) -> None:
        self.paths = [Path(p) for p in paths]

    def search_paths(self) -> List[Path]:
        out = list(self.paths)
        env = os.environ.get(RESOURCE_ENV_VAR, "")
        out.extend(Path(p) for p in env.split(os.pathsep) if p)
        return out

    def resolve(self, name: str) -> Path:
        candidates = [name] if name.endswith(".npz") else [name + ".npz", name]
        direct = Path(candidates[0])
        if direct.is_absolute() and direct.is_file():
            return direct
        for base in self.search_paths():
            for cand in candidates:
                path = base / cand
                if path.is_file():
                    return path
        if direct.is_file():
            return direct
        where = ", ".join(str(p) for p in self.search_paths()) or "<no search paths>"
        raise ResourceError(name, f"not found (searched {where})")


class StoredTable:
    """Immutable N-dimensional tabulated function.

    Axis 0 is the spectral (wavelength) axis; the remaining axes are
    parameters. Values are interpolated multilinearly, in log coordinate for
    log axes and in log value for log quantities whenever all contributing
    values are positive. Spectral coordinates outside the table yield zero;
    parameter coordinates are clamped to the table domain.
    """

    def __init__(
        self,
        axes: Sequence[AxisGrid],
        values: np.ndarray,
        quantity_name: str = "value",
        quantity_unit: str = "1",
        quantity_interp: str = "lin",
        name: str = "<memory>",
    ) -> None:
        if not axes:
            raise ValueError("A stored table needs at least one axis")
        self.axes: Tuple[AxisGrid, ...] = tuple(axes)
        self.name = name
        self.quantity_name = quantity_name
        self.quantity_unit = quantity_unit
        self.quantity_interp = quantity_interp
        shape = tuple(len(a) for a in self.axes)
        values = np.asarray(values, dtype=np.float64)
        if values.size != int(np.prod(shape)):
            raise ValueError(f"Value count {values.size} does not match axis lengths {shape}")
        self.values = values.reshape(shape).copy()
        self.values.setflags(write=False)

    # -- construction from resources --
    @classmethod
    def open(
        cls,
        name: str,
        axis_spec: str,
        value_spec: str,
        normalize: bool = False,
        locator: Optional[ResourceLocator] = None,
    ) -> "StoredTable":
        """Load a table resource and check it against the expected axes and quantity."""
        locator = locator or ResourceLocator()
        path = locator.resolve(name)
        expected_axes = parse_axis_spec(axis_spec)
        (expected_qname, expected_qunit), = parse_axis_spec(value_spec)

        try:
            with np.load(path, allow_pickle=False) as data:
                contents = {k: data[k] for k in data.files}
        except (OSError, ValueError, zipfile.BadZipFile) as exc:
            raise ResourceError(name, f"cannot be read ({exc})") from exc

        def entry(key: str) -> np.ndarray:
            if key not in contents:
                raise ResourceError(name, f"missing entry '{key}'")
            return contents[key]

        names = [str(s) for s in entry("axis_names")]
        units = [str(s) for s in entry("axis_units")]
        interps = [str(s) for s in entry("axis_interp")]
        if not (len(names) == len(units) == len(interps)):
            raise ResourceError(name, "axis metadata arrays differ in length")
        if len(names) != len(expected_axes):
            raise ResourceError(name, f"has {len(names)} axes, expected {len(expected_axes)}")
        axes: List[AxisGrid] = []
        for k, ((ename, eunit), aname, aunit, ainterp) in enumerate(zip(expected_axes, names, units, interps)):
            if aname != ename or aunit != eunit:
                raise ResourceError(name, f"axis {k} is '{aname}({aunit})', expected '{ename}({eunit})'")
            try:
                axes.append(AxisGrid(aname, aunit, entry(f"axis_{k}"), ainterp))
            except ValueError as exc:
                raise ResourceError(name, str(exc)) from exc

        qname = str(entry("quantity_name"))
        qunit = str(entry("quantity_unit"))
        qinterp = str(contents.get("quantity_interp", "lin"))
        if qname != expected_qname or qunit != expected_qunit:
            raise ResourceError(name, f"quantity is '{qname}({qunit})', expected '{expected_qname}({expected_qunit})'")

        values = entry("values")
        shape = tuple(len(a) for a in axes)
        if values.size != int(np.prod(shape)):
            raise ResourceError(name, f"value count {values.size} does not match axis lengths {shape}")
        values = np.asarray(values, dtype=np.float64).reshape(shape)
        if normalize:
            values = cls._normalize_slices(axes[0], values, qinterp)

        table = cls(axes, values, qname, qunit, qinterp, name=name)
        _log.info("Opened table %s %s (%s)", name, shape, path.name)
        return table

    @staticmethod
    def _normalize_slices(axis: AxisGrid, values: np.ndarray, qinterp: str) -> np.ndarray:
        flat = values.reshape(len(axis), -1).copy()
        loglog = axis.log and qinterp == "log"
        for j in range(flat.shape[1]):
            col = flat[:, j]
            total = cumulative_integral(axis.grid, col, loglog and can_use_loglog(axis.grid, col))[-1]
            if total > 0:
                flat[:, j] = col / total
        return flat.reshape(values.shape)

    # -- introspection --
    @property
    def ndim(self) -> int:
        return len(self.axes)

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.values.shape

    @property
    def log_values(self) -> bool:
        return self.quantity_interp == "log"

    def axis_range(self, axis: int = 0) -> Tuple[float, float]:
        return self.axes[axis].range

    # -- interpolation --
    def _corners(self, params: Sequence[float]) -> List[Tuple[Tuple[int, ...], float]]:
        if len(params) != self.ndim - 1:
            raise ValueError(f"Table '{self.name}' expects {self.ndim - 1} parameters, got {len(params)}")
        per_axis = []
        for axis, x in zip(self.axes[1:], params):
            i, f = axis.bracket(x)
            i, f = int(i), float(f)
            options = []
            if f < 1.0:
                options.append((i, 1.0 - f))
            if f > 0.0:
                options.append((min(i + 1, len(axis) - 1), f))
            per_axis.append(options)
        corners = []
        for combo in itertools.product(*per_axis):
            idx = tuple(c[0] for c in combo)
            w = float(np.prod([c[1] for c in combo])) if combo else 1.0
            corners.append((idx, w))
        return corners

    def _combine(self, stacked: np.ndarray, weights: np.ndarray) -> np.ndarray:
        """Weighted combination of corner rows ``stacked`` (ncorners, n)."""
        if len(weights) == 1:
            return stacked[0].copy()
        linear = np.tensordot(weights, stacked, axes=1)
        if not self.log_values:
            return linear
        positive = np.all(stacked > 0, axis=0)
        with np.errstate(divide="ignore"):
            logv = np.tensordot(weights, np.log(np.where(stacked > 0, stacked, 1.0)), axes=1)
        return np.where(positive, np.exp(logv), linear)

    def _rows(self, rows: np.ndarray, params: Sequence[float]) -> np.ndarray:
        corners = self._corners(params)
        stacked = np.stack([self.values[(rows,) + idx] for idx, _ in corners])
        weights = np.array([w for _, w in corners])
        return self._combine(stacked, weights)

    def _interp_spectral(self, x: np.ndarray, xgrid: np.ndarray, ygrid: np.ndarray) -> np.ndarray:
        axis = self.axes[0]
        if len(xgrid) == 1:
            return np.full(np.shape(x), ygrid[0])
        i = np.clip(np.searchsorted(xgrid, x, side="right") - 1, 0, len(xgrid) - 2)
        x1, x2 = xgrid[i], xgrid[i + 1]
        y1, y2 = ygrid[i], ygrid[i + 1]
        if axis.log:
            f = (np.log(x) - np.log(x1)) / (np.log(x2) - np.log(x1))
        else:
            f = (x - x1) / (x2 - x1)
        y = y1 + f * (y2 - y1)
        if self.log_values:
            both = (y1 > 0) & (y2 > 0)
            s1 = np.where(both, y1, 1.0)
            s2 = np.where(both, y2, 1.0)
            y = np.where(both, s1 * np.power(s2 / s1, f), y)
        return np.where(x == x1, y1, np.where(x == x2, y2, y))

    def evaluate(self, x0: float, *params: float) -> float:
        """Interpolated value at spectral coordinate ``x0`` and the given parameters."""
        lo, hi = self.axes[0].range
        if not (lo <= x0 <= hi):
            return 0.0
        grid = self.axes[0].grid
        if len(grid) == 1:
            return float(self._rows(np.array([0]), params)[0])
        i = int(np.clip(np.searchsorted(grid, x0, side="right") - 1, 0, len(grid) - 2))
        rows = np.array([i, i + 1])
        y = self._rows(rows, params)
        return float(self._interp_spectral(np.array([x0]), grid[rows], y)[0])

    __call__ = evaluate

    def spectrum(self, *params: float) -> np.ndarray:
        """Values on the native spectral grid at fixed parameters."""
        return self._rows(np.arange(len(self.axes[0])), params)

    def cdf(self, wavelength_range: Tuple[float, float], *params: float) -> SpectralCdf:
        """Normalized distribution over ``wavelength_range`` clipped to the spectral axis.

        The sample points are the native spectral nodes strictly inside the
        clipped range plus its two end points. ``total`` on the result is the
        un-normalized integral over the range.
        """
        axis = self.axes[0]
        xmin, xmax = intersect_ranges((float(wavelength_range[0]), float(wavelength_range[1])), axis.range)
        if not xmax > xmin:
            return SpectralCdf.empty()
        grid = axis.grid
        lo = int(np.clip(np.searchsorted(grid, xmin, side="right") - 1, 0, len(grid) - 1))
        hi = int(np.clip(np.searchsorted(grid, xmax, side="left"), 0, len(grid) - 1))
        rows = np.arange(lo, hi + 1)
        native = self._rows(rows, params)
        inside = grid[rows]
        inside = inside[(inside > xmin) & (inside < xmax)]
        lambdav = np.concatenate(([xmin], inside, [xmax]))
        pv = self._interp_spectral(lambdav, grid[rows], native)
        return SpectralCdf.from_density(lambdav, pv, loglog=axis.log and self.log_values)

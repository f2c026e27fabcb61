from __future__ import annotations
import pathlib
from typing import Mapping, Optional, Protocol, Sequence

import numpy as np

from ..core.errors import ConfigurationError
from ..core.units import to_si
from ..core.utils import get_logger

_log = get_logger()


class Snapshot(Protocol):
    """Per-entity data consumed by an imported source.

    Positions, velocities and dispersions are SI. Parameter columns are raw
    values in :attr:`parameter_units` (``None`` means the family's default
    import units).
    """
    has_velocity: bool
    has_velocity_dispersion: bool
    has_bias: bool
    parameter_units: Optional[Sequence[str]]

    def count(self) -> int: ...
    def position(self, m: int) -> np.ndarray: ...
    def parameters(self, m: int) -> np.ndarray: ...
    def velocity(self, m: int) -> np.ndarray: ...
    def velocity_dispersion(self, m: int) -> float: ...
    def bias(self, m: int) -> float: ...


class ColumnSnapshot:
    """Snapshot held as column arrays."""

    def __init__(
        self,
        positions: np.ndarray,
        parameters: np.ndarray,
        velocities: Optional[np.ndarray] = None,
        dispersions: Optional[np.ndarray] = None,
        bias: Optional[np.ndarray] = None,
        parameter_units: Optional[Sequence[str]] = None,
    ) -> None:
        self._positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        n = self._positions.shape[0]
        params = np.asarray(parameters, dtype=np.float64)
        if params.ndim == 1:
            params = params.reshape(n, -1) if n else params.reshape(0, 0)
        if params.shape[0] != n:
            raise ValueError(f"{params.shape[0]} parameter rows for {n} positions")
        self._parameters = params
        self._velocities = None
        if velocities is not None:
            self._velocities = np.asarray(velocities, dtype=np.float64).reshape(-1, 3)
            if self._velocities.shape[0] != n:
                raise ValueError(f"{self._velocities.shape[0]} velocities for {n} positions")
        self._dispersions = None
        if dispersions is not None:
            self._dispersions = np.asarray(dispersions, dtype=np.float64).reshape(-1)
            if self._dispersions.shape[0] != n:
                raise ValueError(f"{self._dispersions.shape[0]} dispersions for {n} positions")
        self._bias = None
        if bias is not None:
            self._bias = np.asarray(bias, dtype=np.float64).reshape(-1)
            if self._bias.shape[0] != n:
                raise ValueError(f"{self._bias.shape[0]} bias weights for {n} positions")
            if np.any(self._bias < 0):
                raise ValueError("Bias weights must be non-negative")
        if parameter_units is not None and len(parameter_units) != params.shape[1]:
            raise ValueError(f"{len(parameter_units)} parameter units for {params.shape[1]} columns")
        self.parameter_units = None if parameter_units is None else list(parameter_units)

    @classmethod
    def from_npz(
        cls,
        path: str | pathlib.Path,
        position_unit: str = "pc",
        velocity_unit: str = "km/s",
        parameter_units: Optional[Sequence[str]] = None,
    ) -> "ColumnSnapshot":
        """Load columns ``position``, ``parameters`` and optional ``velocity``,
        ``dispersion`` and ``bias`` from an ``.npz`` archive."""
        with np.load(path) as data:
            cols: Mapping[str, np.ndarray] = {k: np.array(data[k]) for k in data.files}
        for key in ("position", "parameters"):
            if key not in cols:
                raise ConfigurationError(f"Snapshot archive {path} lacks column '{key}'")
        vel = cols.get("velocity")
        disp = cols.get("dispersion")
        try:
            snap = cls(
                positions=to_si(cols["position"], position_unit),
                parameters=cols["parameters"],
                velocities=None if vel is None else to_si(vel, velocity_unit),
                dispersions=None if disp is None else to_si(disp, velocity_unit),
                bias=cols.get("bias"),
                parameter_units=parameter_units,
            )
        except ValueError as exc:
            raise ConfigurationError(f"Malformed snapshot archive {path}: {exc}") from exc
        _log.info("Loaded snapshot %s with %d entities", pathlib.Path(path).name, snap.count())
        return snap

    @property
    def has_velocity(self) -> bool:
        return self._velocities is not None

    @property
    def has_velocity_dispersion(self) -> bool:
        return self._dispersions is not None

    @property
    def has_bias(self) -> bool:
        return self._bias is not None

    def count(self) -> int:
        return self._positions.shape[0]

    def position(self, m: int) -> np.ndarray:
        return self._positions[m]

    def parameters(self, m: int) -> np.ndarray:
        return self._parameters[m]

    def velocity(self, m: int) -> np.ndarray:
        return self._velocities[m]

    def velocity_dispersion(self, m: int) -> float:
        return float(self._dispersions[m])

    def bias(self, m: int) -> float:
        return float(self._bias[m])

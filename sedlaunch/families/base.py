from __future__ import annotations
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from ..core.cdf import SpectralCdf
from ..core.table import StoredTable


@dataclass(frozen=True)
class SnapshotParameter:
    """Meaning and default import unit of one parameter vector slot."""
    description: str
    quantity: str = "dimensionless"
    default_unit: str = "1"

    @staticmethod
    def initial_mass() -> "SnapshotParameter":
        return SnapshotParameter("initial mass", "mass", "Msun")

    @staticmethod
    def metallicity() -> "SnapshotParameter":
        return SnapshotParameter("metallicity")

    @staticmethod
    def age() -> "SnapshotParameter":
        return SnapshotParameter("age", "time", "yr")

    @staticmethod
    def custom(description: str, quantity: str = "dimensionless", default_unit: str = "1") -> "SnapshotParameter":
        return SnapshotParameter(description, quantity, default_unit)


class SEDFamily:
    """A parameterized family of spectra.

    ``parameters`` passed to the query functions are SI values in the order
    declared by :meth:`parameter_info`. Passing a vector of another length or
    order is a caller error and is not checked.
    """
    name: str = "base"

    def parameter_info(self) -> List[SnapshotParameter]:  # pragma: no cover - abstract
        raise NotImplementedError

    def intrinsic_wavelength_range(self) -> Tuple[float, float]:  # pragma: no cover - abstract
        raise NotImplementedError

    def specific_luminosity(self, wavelength: float, parameters: Sequence[float]) -> float:  # pragma: no cover - abstract
        raise NotImplementedError

    def cdf(self, wavelength_range: Tuple[float, float], parameters: Sequence[float]) -> SpectralCdf:  # pragma: no cover - abstract
        raise NotImplementedError

    @property
    def num_parameters(self) -> int:
        return len(self.parameter_info())

    def luminosity(self, wavelength_range: Tuple[float, float], parameters: Sequence[float]) -> float:
        """Bolometric luminosity over ``wavelength_range``."""
        return self.cdf(wavelength_range, parameters).total


class TableSEDFamily(SEDFamily):
    """Family backed by stored tables.

    Subclasses map a parameter vector to the table to query, the table
    coordinates and the external scale factor (mass, rate or scaling).
    """

    def _select(self, parameters: Sequence[float]) -> Tuple[StoredTable, float, Tuple[float, ...]]:  # pragma: no cover - abstract
        raise NotImplementedError

    def _table(self) -> StoredTable:  # pragma: no cover - abstract
        raise NotImplementedError

    def intrinsic_wavelength_range(self) -> Tuple[float, float]:
        return self._table().axis_range(0)

    def specific_luminosity(self, wavelength: float, parameters: Sequence[float]) -> float:
        table, scale, args = self._select(parameters)
        return scale * table(float(wavelength), *args)

    def cdf(self, wavelength_range: Tuple[float, float], parameters: Sequence[float]) -> SpectralCdf:
        table, scale, args = self._select(parameters)
        return table.cdf(wavelength_range, *args).scaled(scale)

    def spectrum(self, parameters: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
        """Native wavelength grid and scaled specific luminosity on it."""
        table, scale, args = self._select(parameters)
        return np.asarray(table.axes[0].grid), scale * table.spectrum(*args)

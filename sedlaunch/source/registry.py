from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ..core.errors import ConfigurationError
from ..core.units import unit_factor
from ..core.utils import get_logger, intersect_ranges
from ..families.base import SEDFamily
from .snapshot import Snapshot

_log = get_logger()


def parameter_factors(snapshot: Snapshot, family: SEDFamily) -> np.ndarray:
    """Per-column factors converting the snapshot's raw parameters to SI."""
    units = snapshot.parameter_units
    if units is None:
        units = [p.default_unit for p in family.parameter_info()]
    if len(units) != family.num_parameters:
        raise ConfigurationError(
            f"Family '{family.name}' takes {family.num_parameters} parameters, got {len(units)} units"
        )
    return np.array([unit_factor(u) for u in units], dtype=np.float64)


@dataclass(frozen=True)
class EmissionRegistry:
    """SI parameter vectors and bolometric luminosities of all entities."""
    parameters: np.ndarray          # (M, K) SI
    luminosities: np.ndarray        # (M,) W, over the primary range
    wavelength_range: Tuple[float, float]

    def __post_init__(self) -> None:
        self.parameters.setflags(write=False)
        self.luminosities.setflags(write=False)

    @classmethod
    def build(cls, snapshot: Snapshot, family: SEDFamily, wavelength_range: Tuple[float, float]) -> "EmissionRegistry":
        M = snapshot.count()
        if M == 0:
            raise ConfigurationError("Snapshot holds no entities")
        factors = parameter_factors(snapshot, family)
        rng = intersect_ranges(tuple(wavelength_range), family.intrinsic_wavelength_range())

        params = np.empty((M, len(factors)), dtype=np.float64)
        lum = np.zeros(M, dtype=np.float64)
        for m in range(M):
            raw = np.asarray(snapshot.parameters(m), dtype=np.float64)
            if raw.shape != factors.shape:
                raise ConfigurationError(
                    f"Entity {m} has {raw.size} parameters, family '{family.name}' takes {factors.size}"
                )
            params[m] = raw * factors
            if rng[1] > rng[0]:
                lum[m] = family.cdf(rng, params[m]).total

        reg = cls(params, lum, rng)
        dark = int(np.count_nonzero(lum <= 0))
        if dark:
            _log.warning("%d of %d entities emit no luminosity in [%g, %g] m", dark, M, rng[0], rng[1])
        _log.info("Registered %d entities, L=%.6g W", M, reg.total_luminosity)
        return reg

    @property
    def count(self) -> int:
        return self.luminosities.shape[0]

    @property
    def total_luminosity(self) -> float:
        return float(self.luminosities.sum())

    @property
    def fractions(self) -> np.ndarray:
        """Normalized luminosities Lv; all zeros when nothing emits."""
        total = self.total_luminosity
        if total <= 0:
            return np.zeros_like(self.luminosities)
        return self.luminosities / total

from __future__ import annotations
from typing import Optional, Sequence, Tuple

import numpy as np

from ..core.cdf import SpectralCdf
from ..core.errors import ConfigurationError
from ..core.table import ResourceLocator
from ..core.units import MSUN, YEAR
from ..core.utils import intersect_ranges
from .base import SEDFamily
from .bpass import BpassChabrier100SEDFamily
from .fsps import FSPSVarIMFSEDFamily


class FamilySED:
    """A single spectrum picked from a family with fixed parameters.

    The family is queried with an arbitrary mass scaling of one unit, so
    only the spectral shape is meaningful; luminosities are normalized by the
    caller.
    """

    def __init__(self, family: SEDFamily, parameters: Sequence[float]) -> None:
        self.family = family
        self.parameters = np.asarray(parameters, dtype=np.float64)
        self.parameters.setflags(write=False)

    def intrinsic_wavelength_range(self) -> Tuple[float, float]:
        return self.family.intrinsic_wavelength_range()

    def specific_luminosity(self, wavelength: float) -> float:
        return self.family.specific_luminosity(wavelength, self.parameters)

    def cdf(self, wavelength_range: Optional[Tuple[float, float]] = None) -> SpectralCdf:
        rng = self.intrinsic_wavelength_range()
        if wavelength_range is not None:
            rng = intersect_ranges(tuple(wavelength_range), rng)
        return self.family.cdf(rng, self.parameters)

    def normalized_specific_luminosity(self, wavelength: float, wavelength_range: Optional[Tuple[float, float]] = None) -> float:
        """Specific luminosity divided by the integral over ``wavelength_range``."""
        total = self.cdf(wavelength_range).total
        if total <= 0:
            return 0.0
        return self.specific_luminosity(wavelength) / total

    def generate_wavelength(self, random, wavelength_range: Optional[Tuple[float, float]] = None) -> float:
        return float(self.cdf(wavelength_range).sample(random.uniform()))


def _check_range(value: float, lo: float, hi: float, what: str) -> float:
    value = float(value)
    if not (lo <= value <= hi):
        raise ConfigurationError(f"{what} {value:g} outside [{lo:g}, {hi:g}]")
    return value


class BpassChabrier100SED(FamilySED):
    """BPASS single stellar population (Chabrier IMF up to 100 Msun) of given metallicity and age."""

    def __init__(self, metallicity: float = 0.02, age_yr: float = 5e9, locator: Optional[ResourceLocator] = None) -> None:
        Z = _check_range(metallicity, 1e-5, 0.04, "metallicity")
        age = _check_range(age_yr, 1e6, 1e11, "age (yr)")
        # one solar mass in SI so the family scaling is unity
        super().__init__(BpassChabrier100SEDFamily(locator), [MSUN, Z, age * YEAR])


class FSPSVarIMFSED(FamilySED):
    """FSPS single stellar population with variable IMF slope."""

    def __init__(
        self,
        metallicity: float = 0.02,
        imf_slope: float = 2.3,
        age_yr: float = 5e9,
        locator: Optional[ResourceLocator] = None,
    ) -> None:
        Z = _check_range(metallicity, 1e-5, 0.04, "metallicity")
        age = _check_range(age_yr, 1e5, 1e11, "age (yr)")
        super().__init__(FSPSVarIMFSEDFamily(locator), [MSUN, Z, float(imf_slope), age * YEAR])

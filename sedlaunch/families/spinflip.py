from __future__ import annotations
import math
from typing import List, Sequence, Tuple

import numpy as np

from ..core.cdf import SpectralCdf
from ..core.numerics import build_linear_grid
from ..core.units import C, LAMBDA_SPIN_FLIP
from ..core.utils import intersect_ranges
from .base import SEDFamily, SnapshotParameter

NUM_WAVELENGTHS_PER_DISPERSION = 100
# beyond this many dispersions from the centre the profile is below double precision
PROFILE_HALF_WIDTH = 10.0


def unit_gaussian(x):
    return np.exp(-0.5 * np.square(x)) / math.sqrt(2.0 * math.pi)


class SpinFlipSEDFamily(SEDFamily):
    """Gaussian line profiles around the 21 cm spin-flip wavelength.

    Parameters: bolometric line luminosity and velocity dispersion ``s``.
    With ``v = (lambda - lambda_sf) / lambda_sf * c`` the spectrum is
    ``L_v(v) = L / (s sqrt(2 pi)) exp(-v^2 / 2 s^2)``, i.e. a Gaussian in
    wavelength with dispersion ``s lambda_sf / c``. The intrinsic range is
    +-3% around the centre (about +-9 dispersions for s = 1000 km/s).
    """
    name = "spinflip"

    def parameter_info(self) -> List[SnapshotParameter]:
        return [
            SnapshotParameter.custom("line luminosity", "bolluminosity", "W"),
            SnapshotParameter.custom("dispersion", "velocity", "km/s"),
        ]

    def intrinsic_wavelength_range(self) -> Tuple[float, float]:
        return (LAMBDA_SPIN_FLIP * (1.0 - 0.03), LAMBDA_SPIN_FLIP * (1.0 + 0.03))

    @staticmethod
    def _line(parameters: Sequence[float]) -> Tuple[float, float, float]:
        L = float(parameters[0])
        s = float(parameters[1])
        return L, LAMBDA_SPIN_FLIP, s * LAMBDA_SPIN_FLIP / C

    def specific_luminosity(self, wavelength: float, parameters: Sequence[float]) -> float:
        lo, hi = self.intrinsic_wavelength_range()
        if not (lo <= wavelength <= hi):
            return 0.0
        L, center, sigma = self._line(parameters)
        if sigma <= 0:
            return 0.0
        return float(L * unit_gaussian((wavelength - center) / sigma) / sigma)

    def cdf(self, wavelength_range: Tuple[float, float], parameters: Sequence[float]) -> SpectralCdf:
        L, center, sigma = self._line(parameters)
        if sigma <= 0 or L <= 0:
            return SpectralCdf.empty()
        wmin, wmax = intersect_ranges(tuple(wavelength_range), self.intrinsic_wavelength_range())
        wmin, wmax = intersect_ranges((wmin, wmax), (center - PROFILE_HALF_WIDTH * sigma, center + PROFILE_HALF_WIDTH * sigma))
        if not wmax > wmin:
            return SpectralCdf.empty()
        n = int(NUM_WAVELENGTHS_PER_DISPERSION * (wmax - wmin) / sigma)
        lambdav = build_linear_grid(wmin, wmax, n)
        pv = L * unit_gaussian((lambdav - center) / sigma) / sigma
        return SpectralCdf.from_density(lambdav, pv, loglog=False)

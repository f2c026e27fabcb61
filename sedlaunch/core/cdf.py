from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np

from . import numerics


@dataclass(frozen=True)
class SpectralCdf:
    """Normalized spectral distribution over a wavelength sub-range.

    ``total`` is the un-normalized integral of the density over
    ``wavelengths`` (a luminosity when the density is a specific luminosity).
    A degenerate distribution (zero width or zero power) has empty arrays and
    a total of zero.
    """
    wavelengths: np.ndarray              # (n,)
    pdf: np.ndarray                      # (n,) normalized to unit integral
    cdf: np.ndarray                      # (n,) non-decreasing, cdf[-1] == 1
    total: float = 0.0
    loglog: bool = False

    @staticmethod
    def empty() -> "SpectralCdf":
        z = np.zeros(0, dtype=np.float64)
        return SpectralCdf(wavelengths=z, pdf=z, cdf=z, total=0.0)

    @staticmethod
    def from_density(wavelengths: np.ndarray, density: np.ndarray, loglog: bool = False) -> "SpectralCdf":
        wavelengths = np.asarray(wavelengths, dtype=np.float64)
        density = np.asarray(density, dtype=np.float64)
        loglog = loglog and numerics.can_use_loglog(wavelengths, density)
        pdf, cdf, total = numerics.normalized_cdf(wavelengths, density, loglog)
        if total <= 0.0:
            return SpectralCdf.empty()
        return SpectralCdf(wavelengths=wavelengths, pdf=pdf, cdf=cdf, total=total, loglog=loglog)

    @property
    def degenerate(self) -> bool:
        return self.total <= 0.0 or len(self.cdf) < 2

    @property
    def range(self) -> Optional[Tuple[float, float]]:
        if len(self.wavelengths) == 0:
            return None
        return (float(self.wavelengths[0]), float(self.wavelengths[-1]))

    def scaled(self, factor: float) -> "SpectralCdf":
        """Same distribution with the total multiplied by ``factor``."""
        total = self.total * float(factor)
        if self.degenerate or not total > 0.0:
            return SpectralCdf.empty()
        return SpectralCdf(self.wavelengths, self.pdf, self.cdf, total, self.loglog)

    def sample(self, u):
        """Wavelength(s) for uniform deviate(s) ``u`` in [0, 1)."""
        if self.degenerate:
            raise ValueError("Cannot sample from a degenerate spectral distribution")
        return numerics.sample_cdf(self.wavelengths, self.pdf, self.cdf, u, self.loglog)

from __future__ import annotations
import threading
from typing import Optional, Tuple

import numpy as np

from ..core.cdf import SpectralCdf
from ..core.errors import ConfigurationError
from ..families.base import SEDFamily
from .allocation import Allocation
from .packet import PhotonPacket
from .random import Random
from .registry import EmissionRegistry
from .snapshot import Snapshot


class ImportedSource:
    """Primary source made of many entities imported from a snapshot.

    Usage: construct once, call :meth:`prepare_for_launch` for a segment of
    history indices, then :meth:`launch` for every index of that segment.
    ``launch`` may run concurrently from several threads provided each
    thread passes its own random source.
    """

    def __init__(
        self,
        snapshot: Snapshot,
        family: SEDFamily,
        wavelength_range: Tuple[float, float],
        import_velocity: bool = False,
        import_velocity_dispersion: bool = False,
        import_bias: bool = False,
    ) -> None:
        lo, hi = (float(w) for w in wavelength_range)
        if not (0 < lo < hi):
            raise ConfigurationError(f"Invalid wavelength range [{lo:g}, {hi:g}] m")
        if import_velocity and not snapshot.has_velocity:
            raise ConfigurationError("Velocity import requested but the snapshot has no velocities")
        if import_velocity_dispersion and not snapshot.has_velocity_dispersion:
            raise ConfigurationError("Dispersion import requested but the snapshot has no dispersions")
        if import_velocity_dispersion and not import_velocity:
            raise ConfigurationError("Velocity dispersion import requires velocity import")
        if import_bias and not snapshot.has_bias:
            raise ConfigurationError("Bias import requested but the snapshot has no bias weights")

        self.snapshot = snapshot
        self.family = family
        self.wavelength_range = (lo, hi)
        self.import_velocity = import_velocity
        self.import_velocity_dispersion = import_velocity_dispersion
        self.import_bias = import_bias
        self.registry = EmissionRegistry.build(snapshot, family, self.wavelength_range)
        self.allocation: Optional[Allocation] = None
        self._local = threading.local()

    def luminosity(self) -> float:
        """Bolometric luminosity over the primary wavelength range."""
        return self.registry.total_luminosity

    def specific_luminosity(self, wavelength: float) -> float:
        lo, hi = self.wavelength_range
        if not (lo <= wavelength <= hi):
            return 0.0
        return float(sum(
            self.family.specific_luminosity(wavelength, self.registry.parameters[m])
            for m in range(self.registry.count)
        ))

    def prepare_for_launch(self, bias: float, first_index: int, num_indices: int) -> Allocation:
        bias_weights = None
        if self.import_bias:
            bias_weights = np.array([self.snapshot.bias(m) for m in range(self.registry.count)])
        # replaced as a whole so concurrent readers never see a partial update
        self.allocation = Allocation.prepare(
            self.registry.fractions, bias, first_index, num_indices, bias_weights
        )
        return self.allocation

    def entity_cdf(self, m: int) -> SpectralCdf:
        """Normalized spectrum of entity ``m``; the last one is cached per thread."""
        local = self._local
        if getattr(local, "entity", None) != m:
            local.cdf = self.family.cdf(self.registry.wavelength_range, self.registry.parameters[m])
            local.entity = m
        return local.cdf

    def _velocity(self, m: int, random: Random) -> Optional[np.ndarray]:
        if not self.import_velocity:
            return None
        v = np.array(self.snapshot.velocity(m), dtype=np.float64)
        if self.import_velocity_dispersion:
            sigma = self.snapshot.velocity_dispersion(m)
            if sigma > 0:
                v += sigma * np.array([random.gauss(), random.gauss(), random.gauss()])
        return v

    def launch(self, packet: PhotonPacket, history_index: int, luminosity: float, random: Random) -> PhotonPacket:
        """Fill ``packet`` with the emission for ``history_index``.

        ``luminosity`` is the requested packet luminosity before the bias
        compensation factor is applied.
        """
        alloc = self.allocation
        if alloc is None:
            raise RuntimeError("prepare_for_launch must be called before launch")
        m = alloc.locate(history_index)

        cdf = self.entity_cdf(m)
        if cdf.degenerate:
            lo, hi = self.wavelength_range
            wavelength = lo + (hi - lo) * random.uniform()
            weight = 0.0
        else:
            wavelength = float(cdf.sample(random.uniform()))
            weight = luminosity * alloc.weight(m)

        direction = random.direction()
        packet.launch(
            history_index, wavelength, weight,
            position=self.snapshot.position(m),
            direction=direction,
            velocity=self._velocity(m, random),
            entity=m,
        )
        return packet

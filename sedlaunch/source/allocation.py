"""Distribution of a contiguous history-index segment over emitting entities.

With emission bias ``xi`` the launch weights are a mix of the luminosity
fractions and a uniform (or user-weighted) distribution::

    w_m = (1 - xi) Lv[m] + xi / M
    Wv  = w / sum(w)

Each entity receives an integer share of the segment; packets launched by
entity ``m`` carry ``Lv[m] / Wv[m]`` times the requested luminosity so that
the expected luminosity per entity is independent of ``xi``.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..core.errors import ConfigurationError
from ..core.utils import get_logger

_log = get_logger()


def largest_remainder(weights: np.ndarray, total: int) -> np.ndarray:
    """Integer apportionment of ``total`` proportional to ``weights`` (summing to one).

    Each share is ``floor(w * total)``; the remaining units go to the largest
    fractional parts, lower index first on ties.
    """
    quotas = np.asarray(weights, dtype=np.float64) * total
    counts = np.floor(quotas).astype(np.int64)
    left = int(total - counts.sum())
    if left > 0:
        order = np.argsort(-(quotas - counts), kind="stable")
        counts[order[:left]] += 1
    return counts


@dataclass(frozen=True)
class Allocation:
    fractions: np.ndarray       # Lv
    weights: np.ndarray         # Wv
    boundaries: np.ndarray      # Iv, M + 1 entries
    bias: float

    @classmethod
    def prepare(
        cls,
        fractions: np.ndarray,
        bias: float,
        first_index: int,
        num_indices: int,
        bias_weights: Optional[np.ndarray] = None,
    ) -> "Allocation":
        Lv = np.array(fractions, dtype=np.float64)
        M = Lv.shape[0]
        if M == 0:
            raise ValueError("Cannot allocate indices over zero entities")
        if not 0.0 <= bias <= 1.0:
            raise ValueError(f"Emission bias {bias} outside [0, 1]")
        if num_indices < 0 or first_index < 0:
            raise ValueError("Index segment must be non-negative")

        if bias_weights is None:
            spread = np.full(M, 1.0 / M)
        else:
            b = np.asarray(bias_weights, dtype=np.float64)
            bsum = float(b.sum())
            if b.shape != Lv.shape or np.any(b < 0) or bsum <= 0:
                raise ValueError("Bias weights must be non-negative with positive sum, one per entity")
            spread = b / bsum
        w = (1.0 - bias) * Lv + bias * spread
        wsum = float(w.sum())
        # nothing emits and no bias: spread indices evenly, weights stay zero
        Wv = w / wsum if wsum > 0 else np.full(M, 1.0 / M)
        starved = np.flatnonzero((Wv <= 0) & (Lv > 0))
        if starved.size:
            raise ConfigurationError(
                f"{starved.size} emitting entities have zero launch weight (first: {int(starved[0])}); "
                "give them a positive bias weight or lower the emission bias"
            )

        counts = largest_remainder(Wv, int(num_indices))
        Iv = np.empty(M + 1, dtype=np.int64)
        Iv[0] = first_index
        np.cumsum(counts, out=Iv[1:])
        Iv[1:] += first_index

        for arr in (Lv, Wv, Iv):
            arr.setflags(write=False)
        _log.info("Allocated %d indices over %d entities (bias %.3g)", num_indices, M, bias)
        return cls(Lv, Wv, Iv, float(bias))

    @property
    def count(self) -> int:
        return self.fractions.shape[0]

    @property
    def first_index(self) -> int:
        return int(self.boundaries[0])

    @property
    def num_indices(self) -> int:
        return int(self.boundaries[-1] - self.boundaries[0])

    @property
    def counts(self) -> np.ndarray:
        return np.diff(self.boundaries)

    def locate(self, history_index: int) -> int:
        """Entity ``m`` with ``Iv[m] <= h < Iv[m+1]``."""
        h = int(history_index)
        if not self.boundaries[0] <= h < self.boundaries[-1]:
            raise IndexError(
                f"History index {h} outside [{self.boundaries[0]}, {self.boundaries[-1]})"
            )
        return int(np.searchsorted(self.boundaries, h, side="right")) - 1

    def weight(self, m: int) -> float:
        """Luminosity compensation factor ``Lv[m] / Wv[m]``."""
        Wm = self.weights[m]
        if Wm <= 0:
            return 0.0
        return float(self.fractions[m] / Wm)

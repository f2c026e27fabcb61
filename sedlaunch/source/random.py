from __future__ import annotations
from typing import List, Optional, Protocol
import numpy as np


class Random(Protocol):
    def uniform(self) -> float: ...
    def gauss(self) -> float: ...
    def direction(self) -> np.ndarray: ...


class NumpyRandom:
    """Random source over a :class:`numpy.random.Generator`.

    A generator is not safe for concurrent use; give each worker thread its
    own instance (see :meth:`spawn`).
    """

    def __init__(self, rng: Optional[np.random.Generator | int] = None) -> None:
        if isinstance(rng, np.random.Generator):
            self.rng = rng
        else:
            self.rng = np.random.default_rng(rng)

    @staticmethod
    def spawn(seed: Optional[int], n: int) -> List["NumpyRandom"]:
        """``n`` statistically independent streams derived from one seed."""
        children = np.random.SeedSequence(seed).spawn(n)
        return [NumpyRandom(np.random.default_rng(s)) for s in children]

    def uniform(self) -> float:
        return float(self.rng.random())

    def gauss(self) -> float:
        return float(self.rng.standard_normal())

    def direction(self) -> np.ndarray:
        """Isotropically distributed unit vector."""
        cos_t = 2.0 * self.rng.random() - 1.0
        sin_t = np.sqrt(max(0.0, 1.0 - cos_t * cos_t))
        phi = 2.0 * np.pi * self.rng.random()
        return np.array([sin_t * np.cos(phi), sin_t * np.sin(phi), cos_t], dtype=np.float64)

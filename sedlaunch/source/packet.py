from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Sequence
import numpy as np

from ..core.units import C


def doppler_shifted_wavelength(wavelength: float, direction: np.ndarray, velocity: Optional[np.ndarray]) -> float:
    """Wavelength seen in the rest frame for emission by a source moving with ``velocity``.

    First-order shift: motion toward the propagation direction blueshifts.
    """
    if velocity is None:
        return wavelength
    return wavelength * (1.0 - float(np.dot(direction, velocity)) / C)


@dataclass
class PhotonPacket:
    """Caller-owned packet state filled in by a source launch."""
    history_index: int = -1
    entity: int = -1
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    direction: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 1.0]))
    wavelength: float = 0.0                  # after Doppler shift
    emission_wavelength: float = 0.0         # in the emitter's frame
    weight: float = 0.0                      # luminosity carried (W)
    velocity: Optional[np.ndarray] = None    # emitter velocity, None when at rest

    def launch(
        self,
        history_index: int,
        wavelength: float,
        weight: float,
        position: np.ndarray,
        direction: np.ndarray,
        velocity: Optional[np.ndarray] = None,
        entity: int = -1,
    ) -> None:
        self.history_index = int(history_index)
        self.entity = int(entity)
        self.position = np.asarray(position, dtype=np.float64)
        self.direction = np.asarray(direction, dtype=np.float64)
        self.velocity = None if velocity is None else np.asarray(velocity, dtype=np.float64)
        self.emission_wavelength = float(wavelength)
        self.wavelength = doppler_shifted_wavelength(float(wavelength), self.direction, self.velocity)
        self.weight = float(weight)


@dataclass
class PacketBatch:
    """A batch of launched packets stored column-wise."""
    history_index: np.ndarray            # (N,)
    entity: np.ndarray                   # (N,)
    position: np.ndarray                 # (N, 3)
    direction: np.ndarray                # (N, 3)
    wavelength: np.ndarray               # (N,)
    weight: np.ndarray                   # (N,)

    def __post_init__(self) -> None:
        n = len(self.history_index)
        for name in ("entity", "wavelength", "weight"):
            v = getattr(self, name)
            if len(v) != n:
                raise ValueError(f"Column '{name}' length {len(v)} != {n}")
        for name in ("position", "direction"):
            v = getattr(self, name)
            if v.shape != (n, 3):
                raise ValueError(f"Column '{name}' shape {v.shape} != ({n}, 3)")

    def __len__(self) -> int:
        return len(self.history_index)

    @staticmethod
    def from_packets(packets: Sequence[PhotonPacket]) -> "PacketBatch":
        n = len(packets)
        return PacketBatch(
            history_index=np.fromiter((p.history_index for p in packets), dtype=np.int64, count=n),
            entity=np.fromiter((p.entity for p in packets), dtype=np.int64, count=n),
            position=np.array([p.position for p in packets], dtype=np.float64).reshape(n, 3),
            direction=np.array([p.direction for p in packets], dtype=np.float64).reshape(n, 3),
            wavelength=np.fromiter((p.wavelength for p in packets), dtype=np.float64, count=n),
            weight=np.fromiter((p.weight for p in packets), dtype=np.float64, count=n),
        )

    @staticmethod
    def concatenate(batches: List["PacketBatch"]) -> "PacketBatch":
        if not batches:
            return PacketBatch.from_packets([])
        return PacketBatch(
            history_index=np.concatenate([b.history_index for b in batches]),
            entity=np.concatenate([b.entity for b in batches]),
            position=np.vstack([b.position for b in batches]),
            direction=np.vstack([b.direction for b in batches]),
            wavelength=np.concatenate([b.wavelength for b in batches]),
            weight=np.concatenate([b.weight for b in batches]),
        )

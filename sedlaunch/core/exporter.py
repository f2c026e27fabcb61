from __future__ import annotations
import pathlib
from typing import List

import numpy as np

from ..source.packet import PacketBatch
from .utils import get_logger

_log = get_logger()

_COLUMNS = ("history_index", "entity", "position", "direction", "wavelength", "weight")


class NpzPacketWriter:
    """Buffers packet batches and writes them as one ``.npz`` archive on close."""

    def __init__(self, path: str | pathlib.Path) -> None:
        self.path = path
        self._batches: List[PacketBatch] = []

    def write_batch(self, batch: PacketBatch) -> None:
        self._batches.append(batch)

    def close(self) -> None:
        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        merged = PacketBatch.concatenate(self._batches)
        np.savez_compressed(path, **{k: getattr(merged, k) for k in _COLUMNS})
        _log.info("Wrote %d packets to %s", len(merged), path.name)
        self._batches.clear()


class TextPacketWriter:
    """Plain-text column file, one packet per line."""

    def __init__(self, path: str | pathlib.Path) -> None:
        self.path = path
        self._batches: List[PacketBatch] = []

    def write_batch(self, batch: PacketBatch) -> None:
        self._batches.append(batch)

    def close(self) -> None:
        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        b = PacketBatch.concatenate(self._batches)
        with open(path, "w", encoding="utf-8") as f:
            f.write("# history_index entity x(m) y(m) z(m) kx ky kz wavelength(m) weight(W)\n")
            for i in range(len(b)):
                x, y, z = b.position[i]
                kx, ky, kz = b.direction[i]
                f.write(
                    f"{int(b.history_index[i])} {int(b.entity[i])} {x:.9g} {y:.9g} {z:.9g} "
                    f"{kx:.9g} {ky:.9g} {kz:.9g} {b.wavelength[i]:.9g} {b.weight[i]:.9g}\n"
                )
        self._batches.clear()


class MemoryPacketWriter:
    """Keeps launched batches in memory; used by the SDK when no output path is given."""

    def __init__(self) -> None:
        self.batches: List[PacketBatch] = []
        self.closed = False

    def write_batch(self, batch: PacketBatch) -> None:
        self.batches.append(batch)

    def close(self) -> None:
        self.closed = True

    def result(self) -> PacketBatch:
        return PacketBatch.concatenate(self.batches)

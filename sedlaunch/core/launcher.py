from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np

from ..source.imported import ImportedSource
from ..source.packet import PacketBatch, PhotonPacket
from ..source.random import NumpyRandom
from .utils import get_logger

_log = get_logger()


@dataclass
class LauncherConfig:
    chunk_size: int = 4096
    workers: int = 1


class Launcher:
    """Drives an :class:`ImportedSource` over a segment of history indices.

    The segment is cut into chunks that are launched on a thread pool, each
    chunk with its own random stream spawned from ``seed``; batches are
    handed to the writer in index order, so output depends only on the seed
    and the chunk size, not on the number of workers.
    """

    def __init__(self, source: ImportedSource, cfg: Optional[LauncherConfig] = None) -> None:
        self.source = source
        self.cfg = cfg or LauncherConfig()

    def _chunks(self, first_index: int, num_packets: int) -> List[Tuple[int, int]]:
        limit = int(self.cfg.chunk_size or 0)
        stop = first_index + num_packets
        if limit <= 0 or num_packets <= limit:
            return [(first_index, stop)] if num_packets > 0 else []
        return [(start, min(start + limit, stop)) for start in range(first_index, stop, limit)]

    def _launch_chunk(self, bounds: Tuple[int, int], luminosity: float, random: NumpyRandom) -> PacketBatch:
        start, stop = bounds
        packets = []
        for h in range(start, stop):
            packets.append(self.source.launch(PhotonPacket(), h, luminosity, random))
        return PacketBatch.from_packets(packets)

    def iter_batches(
        self,
        num_packets: int,
        bias: float = 0.5,
        first_index: int = 0,
        luminosity: Optional[float] = None,
        seed: Optional[int] = None,
    ) -> Iterable[PacketBatch]:
        """Prepare the source for the segment and yield launched batches in order."""
        if num_packets < 0:
            raise ValueError("num_packets must be non-negative")
        self.source.prepare_for_launch(bias, first_index, num_packets)
        if luminosity is None:
            luminosity = self.source.luminosity() / num_packets if num_packets else 0.0
        chunks = self._chunks(first_index, num_packets)
        if not chunks:
            return
        streams = NumpyRandom.spawn(seed, len(chunks))
        workers = max(1, int(self.cfg.workers or 1))
        if workers == 1:
            for bounds, rng in zip(chunks, streams):
                yield self._launch_chunk(bounds, luminosity, rng)
            return
        with ThreadPoolExecutor(max_workers=workers) as pool:
            yield from pool.map(lambda args: self._launch_chunk(args[0], luminosity, args[1]), zip(chunks, streams))

    def run_to_writer(self, writer, num_packets: int, **kwargs: Any) -> Dict[str, Any]:
        """Launch ``num_packets`` packets and stream them to ``writer``.

        Returns run statistics.
        """
        total = 0
        launched = 0.0
        per_entity = np.zeros(self.source.registry.count, dtype=np.float64)
        for batch in self.iter_batches(num_packets, **kwargs):
            writer.write_batch(batch)
            total += len(batch)
            launched += float(batch.weight.sum())
            per_entity += np.bincount(batch.entity, weights=batch.weight, minlength=per_entity.size)
        writer.close()
        stats = {
            "packets": total,
            "entities": self.source.registry.count,
            "luminosity": self.source.luminosity(),
            "launched_luminosity": launched,
            "entity_luminosity": per_entity,
        }
        _log.info("Launcher finished: %d packets carrying %.6g W", total, launched)
        return stats

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..config import LaunchScenarioConfig, load_config
from ..config.schema import OutputConfig
from ..core.exporter import MemoryPacketWriter
from ..runtime.builders import (
    build_family,
    build_launcher,
    build_snapshot,
    build_source,
    build_writer,
)
from ..source.packet import PacketBatch


@dataclass(frozen=True)
class LaunchRunResult:
    """Summary of a launch run driven by a configuration file."""

    stats: Dict[str, Any]
    output_path: Optional[Path]
    config: LaunchScenarioConfig
    packets: Optional[PacketBatch] = None


def launch_from_config(
    config: Union[str, Path, LaunchScenarioConfig],
    *,
    output: Optional[Path] = None,
    seed: Optional[int] = None,
    num_packets: Optional[int] = None,
    emission_bias: Optional[float] = None,
) -> LaunchRunResult:
    """Launch photon packets from a snapshot described by a configuration.

    Parameters
    ----------
    config:
        Path to a YAML file or a pre-loaded :class:`~sedlaunch.config.schema.LaunchScenarioConfig`.
    output:
        Optional override for the packet file. ``.npz`` or ``.txt``. When
        neither this nor the configuration names an output, packets are
        returned in memory on the result.
    seed:
        Optional RNG seed. Falls back to the value in the config or ``12345``.
    num_packets, emission_bias:
        Optional overrides of the ``launch`` section.

    Returns
    -------
    LaunchRunResult
        Run statistics, the resolved output path, the configuration used and,
        for in-memory runs, the launched packets.
    """

    cfg = load_config(config) if not isinstance(config, LaunchScenarioConfig) else config.model_copy(deep=True)

    if num_packets is not None:
        cfg.launch.num_packets = int(num_packets)
    if emission_bias is not None:
        if not 0.0 <= emission_bias <= 1.0:
            raise ValueError("emission_bias must be within [0, 1]")
        cfg.launch.emission_bias = float(emission_bias)
    if output is not None:
        out_path = Path(output).resolve()
        ext = out_path.suffix.lower()
        if ext not in {".npz", ".txt"}:
            raise ValueError(f"Unsupported output extension '{ext}'")
        cfg.output = OutputConfig(path=out_path, format=ext.lstrip("."))

    family = build_family(cfg)
    snapshot = build_snapshot(cfg)
    source = build_source(cfg, family, snapshot)
    launcher = build_launcher(cfg, source)
    writer = build_writer(cfg)
    memory = None
    if writer is None:
        memory = writer = MemoryPacketWriter()

    run_seed = seed if seed is not None else (cfg.seed if cfg.seed is not None else 12345)
    stats = launcher.run_to_writer(
        writer,
        cfg.launch.num_packets,
        bias=cfg.launch.emission_bias,
        first_index=cfg.launch.first_index,
        luminosity=cfg.launch.luminosity,
        seed=run_seed,
    )

    return LaunchRunResult(
        stats=stats,
        output_path=None if cfg.output is None else Path(cfg.output.path),
        config=cfg,
        packets=None if memory is None else memory.result(),
    )

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from ..core.errors import ConfigurationError


class ResourcesConfig(BaseModel):
    paths: List[Path] = Field(default_factory=list)


class BpassFamilyConfig(BaseModel):
    kind: Literal["bpass"]


class FspsFamilyConfig(BaseModel):
    kind: Literal["fsps"]


class ToddlersFamilyConfig(BaseModel):
    kind: Literal["toddlers"]
    sed_mode: Literal["cloud", "sfr_normalized"] = "sfr_normalized"
    stellar_template: Literal["sb99_kroupa100_sin", "bpass_chab100_bin", "bpass_chab300_bin"] = "sb99_kroupa100_sin"
    include_dust: bool = True
    resolution: Literal["low", "high"] = "low"
    sfr_period: Literal[10, 30] = 10


class ToddlersSfrFamilyConfig(BaseModel):
    kind: Literal["toddlers_sfr"]
    stellar_template: Literal["SB99", "BPASS"] = "SB99"
    imf: Literal["kroupa100", "chab100", "chab300"] = "kroupa100"
    star_type: Literal["sin", "bin"] = "sin"
    dust: bool = True
    resolution: Literal["low", "high"] = "low"


class SpinFlipFamilyConfig(BaseModel):
    kind: Literal["spinflip"]


FamilyConfig = Annotated[
    Union[BpassFamilyConfig, FspsFamilyConfig, ToddlersFamilyConfig, ToddlersSfrFamilyConfig, SpinFlipFamilyConfig],
    Field(discriminator="kind"),
]


class SnapshotUnitsConfig(BaseModel):
    position: str = "pc"
    velocity: str = "km/s"
    parameters: Optional[List[str]] = None


class SnapshotConfig(BaseModel):
    path: Path
    units: SnapshotUnitsConfig = SnapshotUnitsConfig()


class SourceConfig(BaseModel):
    wavelength_range_um: tuple[float, float] = (0.09, 100.0)
    import_velocity: bool = False
    import_velocity_dispersion: bool = False
    import_bias: bool = False

    @model_validator(mode="after")
    def _check_range(self) -> "SourceConfig":
        lo, hi = self.wavelength_range_um
        if not (0 < lo < hi):
            raise ValueError("wavelength_range_um must satisfy 0 < min < max")
        if self.import_velocity_dispersion and not self.import_velocity:
            raise ValueError("import_velocity_dispersion requires import_velocity")
        return self


class LaunchConfig(BaseModel):
    num_packets: int = Field(10_000, ge=0)
    emission_bias: float = Field(0.5, ge=0.0, le=1.0)
    first_index: int = Field(0, ge=0)
    luminosity: Optional[float] = Field(None, gt=0.0)
    chunk_size: int = Field(4096, ge=1)
    workers: int = Field(1, ge=1)


class OutputConfig(BaseModel):
    path: Path
    format: Optional[Literal["npz", "txt"]] = None

    @model_validator(mode="after")
    def _infer_format(self) -> "OutputConfig":
        suffix = self.path.suffix.lower().lstrip(".")
        if self.format is None:
            self.format = "txt" if suffix == "txt" else "npz"
        elif suffix in ("npz", "txt") and suffix != self.format:
            raise ValueError(f"Output format '{self.format}' does not match path suffix '.{suffix}'")
        return self


class LaunchScenarioConfig(BaseModel):
    resources: ResourcesConfig = ResourcesConfig()
    family: FamilyConfig
    snapshot: SnapshotConfig
    source: SourceConfig = SourceConfig()
    launch: LaunchConfig = LaunchConfig()
    output: Optional[OutputConfig] = None
    seed: Optional[int] = None


def _resolve(base: Path, p: Path) -> Path:
    return p if p.is_absolute() else (base / p).resolve()


def load_config(path: str | Path) -> LaunchScenarioConfig:
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration root must be a mapping.")
    try:
        cfg = LaunchScenarioConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration {path.name}:\n{exc}") from exc
    base = path.parent
    cfg.resources.paths = [_resolve(base, p) for p in cfg.resources.paths]
    cfg.snapshot.path = _resolve(base, cfg.snapshot.path)
    if cfg.output is not None:
        cfg.output.path = _resolve(base, cfg.output.path)
    return cfg


def dump_config(cfg: LaunchScenarioConfig) -> Dict:
    """Plain mapping suitable for ``yaml.safe_dump``."""
    return cfg.model_dump(mode="json")

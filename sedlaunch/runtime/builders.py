from __future__ import annotations

from typing import Optional

from ..config import LaunchScenarioConfig
from ..core.exporter import NpzPacketWriter, TextPacketWriter
from ..core.launcher import Launcher, LauncherConfig
from ..core.table import ResourceLocator
from ..core.units import unit_factor
from ..families.base import SEDFamily
from ..families.bpass import BpassChabrier100SEDFamily
from ..families.fsps import FSPSVarIMFSEDFamily
from ..families.spinflip import SpinFlipSEDFamily
from ..families.toddlers import ToddlersSEDFamily, ToddlersSFRNormalizedSEDFamily
from ..source.imported import ImportedSource
from ..source.snapshot import ColumnSnapshot


def build_locator(cfg: LaunchScenarioConfig) -> ResourceLocator:
    return ResourceLocator(cfg.resources.paths)


def build_family(cfg: LaunchScenarioConfig, locator: Optional[ResourceLocator] = None) -> SEDFamily:
    fam_cfg = cfg.family
    locator = locator or build_locator(cfg)
    if fam_cfg.kind == "bpass":
        return BpassChabrier100SEDFamily(locator)
    if fam_cfg.kind == "fsps":
        return FSPSVarIMFSEDFamily(locator)
    if fam_cfg.kind == "toddlers":
        return ToddlersSEDFamily(
            sed_mode=fam_cfg.sed_mode,
            stellar_template=fam_cfg.stellar_template,
            include_dust=fam_cfg.include_dust,
            resolution=fam_cfg.resolution,
            sfr_period=fam_cfg.sfr_period,
            locator=locator,
        )
    if fam_cfg.kind == "toddlers_sfr":
        return ToddlersSFRNormalizedSEDFamily(
            stellar_template=fam_cfg.stellar_template,
            imf=fam_cfg.imf,
            star_type=fam_cfg.star_type,
            dust=fam_cfg.dust,
            resolution=fam_cfg.resolution,
            locator=locator,
        )
    if fam_cfg.kind == "spinflip":
        return SpinFlipSEDFamily()
    raise ValueError(f"Unsupported family kind: {fam_cfg.kind}")


def build_snapshot(cfg: LaunchScenarioConfig) -> ColumnSnapshot:
    units = cfg.snapshot.units
    return ColumnSnapshot.from_npz(
        cfg.snapshot.path,
        position_unit=units.position,
        velocity_unit=units.velocity,
        parameter_units=units.parameters,
    )


def build_source(cfg: LaunchScenarioConfig, family: SEDFamily, snapshot: ColumnSnapshot) -> ImportedSource:
    um = unit_factor("micron")
    lo, hi = cfg.source.wavelength_range_um
    return ImportedSource(
        snapshot,
        family,
        (lo * um, hi * um),
        import_velocity=cfg.source.import_velocity,
        import_velocity_dispersion=cfg.source.import_velocity_dispersion,
        import_bias=cfg.source.import_bias,
    )


def build_launcher(cfg: LaunchScenarioConfig, source: ImportedSource) -> Launcher:
    return Launcher(source, LauncherConfig(chunk_size=cfg.launch.chunk_size, workers=cfg.launch.workers))


def build_writer(cfg: LaunchScenarioConfig):
    out_cfg = cfg.output
    if out_cfg is None:
        return None
    if out_cfg.format == "npz":
        return NpzPacketWriter(out_cfg.path)
    if out_cfg.format == "txt":
        return TextPacketWriter(out_cfg.path)
    raise ValueError(f"Unsupported output format: {out_cfg.format}")

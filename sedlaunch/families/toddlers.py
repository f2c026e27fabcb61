"""Star-forming region templates from the TODDLERS model suite.

TODDLERS follows the spherical evolution of a gas cloud around a young
stellar cluster (winds, supernovae, radiation pressure, gravity, including
recollapse and subsequent generations of star formation) and post-processes
it with Cloudy. Two families are provided:

``ToddlersSEDFamily``
    Either individual clouds with explicit time evolution (``cloud`` mode,
    6-D table on time, Z, SFE, cloud density and cloud mass), or templates
    pre-integrated over time and cloud mass spectrum and scaled by the star
    formation rate (``sfr_normalized`` mode, 4-D table on Z, SFE and cloud
    density). The SFR averaging period is 10 or 30 Myr.

``ToddlersSFRNormalizedSEDFamily``
    The SFR-normalized templates selected by stellar template, IMF and
    star type separately. Only the combinations that were actually computed
    are accepted.

Resolution ``low`` tabulates continuum and lines at R=300; ``high`` adds
selected lines as R=5e4 Gaussian profiles on top of the low-resolution
continuum. With dust excluded the incident stellar continuum is used.
"""

from __future__ import annotations

from typing import List, Literal, Optional, Sequence, Tuple, get_args

from ..core.errors import ConfigurationError
from ..core.table import ResourceLocator, StoredTable
from ..core.units import MSUN, YEAR
from ..core.utils import get_logger
from .base import SnapshotParameter, TableSEDFamily

_log = get_logger()

SedMode = Literal["cloud", "sfr_normalized"]
StellarTemplate = Literal["sb99_kroupa100_sin", "bpass_chab100_bin", "bpass_chab300_bin"]
Resolution = Literal["low", "high"]
SfrPeriod = Literal[10, 30]

_TEMPLATE_SUFFIX = {
    "sb99_kroupa100_sin": "SB99_kroupa100_sin",
    "bpass_chab100_bin": "BPASS_chab100_bin",
    "bpass_chab300_bin": "BPASS_chab300_bin",
}

CLOUD_AXES = "lambda(m),time(Myr),Z(1),SFE(1),n_cl(1/cm3),M_cl(Msun)"
SFR_AXES = "lambda(m),Z(1),SFE(1),n_cl(1/cm3)"
QUANTITY = "Llambda(W/m)"


def _check(value, allowed, what: str) -> None:
    if value not in allowed:
        raise ConfigurationError(f"Unsupported {what} '{value}' (expected one of {list(allowed)})")


def toddlers_resource_name(
    sed_mode: SedMode = "sfr_normalized",
    stellar_template: StellarTemplate = "sb99_kroupa100_sin",
    include_dust: bool = True,
    resolution: Resolution = "low",
    sfr_period: SfrPeriod = 10,
) -> str:
    suffix = "Cloud_" if sed_mode == "cloud" else "SFRNormalized_"
    suffix += _TEMPLATE_SUFFIX[stellar_template] + "_"
    suffix += "Dust_" if include_dust else "noDust_"
    suffix += "lr" if resolution == "low" else "hr"
    if sed_mode == "sfr_normalized":
        suffix += f"_{sfr_period}Myr"
    return "ToddlersSEDFamily_" + suffix


def toddlers_sfr_resource_name(
    stellar_template: str = "SB99",
    imf: str = "kroupa100",
    star_type: str = "sin",
    dust: bool = True,
    resolution: Resolution = "low",
) -> str:
    suffix = f"{stellar_template}_{imf}_{star_type}_"
    if not dust:
        suffix += "noDust_"
    suffix += "lr" if resolution == "low" else "hr"
    return "ToddlersSFRNormalizedSEDFamily_" + suffix


class ToddlersSEDFamily(TableSEDFamily):
    name = "toddlers"

    def __init__(
        self,
        sed_mode: SedMode = "sfr_normalized",
        stellar_template: StellarTemplate = "sb99_kroupa100_sin",
        include_dust: bool = True,
        resolution: Resolution = "low",
        sfr_period: SfrPeriod = 10,
        locator: Optional[ResourceLocator] = None,
    ) -> None:
        _check(sed_mode, get_args(SedMode), "SED mode")
        _check(stellar_template, get_args(StellarTemplate), "stellar template")
        _check(resolution, get_args(Resolution), "resolution")
        _check(sfr_period, get_args(SfrPeriod), "SFR period")
        self.sed_mode = sed_mode
        self.stellar_template = stellar_template
        self.include_dust = bool(include_dust)
        self.resolution = resolution
        self.sfr_period = sfr_period
        _log.debug("TODDLERS templates: %s", self.resource_name())
        if sed_mode == "cloud":
            self.table = StoredTable.open(self.resource_name(), CLOUD_AXES, QUANTITY, False, locator)
        else:
            self.table = StoredTable.open(self.resource_name(), SFR_AXES, QUANTITY, False, locator)

    def resource_name(self) -> str:
        return toddlers_resource_name(
            self.sed_mode, self.stellar_template, self.include_dust, self.resolution, self.sfr_period
        )

    def parameter_info(self) -> List[SnapshotParameter]:
        if self.sed_mode == "cloud":
            return [
                SnapshotParameter.age(),
                SnapshotParameter.metallicity(),
                SnapshotParameter.custom("star formation efficiency"),
                SnapshotParameter.custom("cloud number density", "numbervolumedensity", "1/cm3"),
                SnapshotParameter.custom("mass", "mass", "Msun"),
                SnapshotParameter.custom("scaling"),
            ]
        return [
            SnapshotParameter.metallicity(),
            SnapshotParameter.custom("star formation efficiency"),
            SnapshotParameter.custom("cloud number density", "numbervolumedensity", "1/cm3"),
            SnapshotParameter.custom("star formation rate", "massrate", "Msun/yr"),
        ]

    def _table(self) -> StoredTable:
        return self.table

    def _select(self, parameters: Sequence[float]) -> Tuple[StoredTable, float, Tuple[float, ...]]:
        if self.sed_mode == "cloud":
            age = parameters[0] / (1e6 * YEAR)      # s -> Myr
            Z = parameters[1]
            sfe = parameters[2]
            n_cl = parameters[3] / 1e6              # 1/m3 -> 1/cm3
            M_cl = parameters[4] / MSUN
            scaling = parameters[5]
            return self.table, scaling, (age, Z, sfe, n_cl, M_cl)
        Z = parameters[0]
        sfe = parameters[1]
        n_cl = parameters[2] / 1e6
        sfr = parameters[3] / MSUN * YEAR            # kg/s -> Msun/yr
        return self.table, sfr, (Z, sfe, n_cl)


# valid (template, imf, star type) combinations of the SFR-normalized grid
_VALID_COMBINATIONS = {
    ("SB99", "kroupa100", "sin"),
    ("BPASS", "chab100", "bin"),
    ("BPASS", "chab300", "bin"),
}


class ToddlersSFRNormalizedSEDFamily(TableSEDFamily):
    name = "toddlers_sfr"

    def __init__(
        self,
        stellar_template: Literal["SB99", "BPASS"] = "SB99",
        imf: Literal["kroupa100", "chab100", "chab300"] = "kroupa100",
        star_type: Literal["sin", "bin"] = "sin",
        dust: bool = True,
        resolution: Resolution = "low",
        locator: Optional[ResourceLocator] = None,
    ) -> None:
        _check(resolution, get_args(Resolution), "resolution")
        self.stellar_template = stellar_template
        self.imf = imf
        self.star_type = star_type
        self.dust = bool(dust)
        self.resolution = resolution
        self.validate_configuration()
        self.table = StoredTable.open(self.resource_name(), SFR_AXES, QUANTITY, False, locator)

    def validate_configuration(self) -> None:
        combo = (self.stellar_template, self.imf, self.star_type)
        if combo not in _VALID_COMBINATIONS:
            valid = ", ".join("/".join(c) for c in sorted(_VALID_COMBINATIONS))
            raise ConfigurationError(
                f"No TODDLERS templates for stellar template '{combo[0]}' with IMF '{combo[1]}' "
                f"and star type '{combo[2]}' (valid: {valid})"
            )

    def resource_name(self) -> str:
        return toddlers_sfr_resource_name(self.stellar_template, self.imf, self.star_type, self.dust, self.resolution)

    def parameter_info(self) -> List[SnapshotParameter]:
        return [
            SnapshotParameter.metallicity(),
            SnapshotParameter.custom("star formation efficiency"),
            SnapshotParameter.custom("cloud number density", "numbervolumedensity", "1/cm3"),
            SnapshotParameter.custom("star formation rate", "massrate", "Msun/yr"),
        ]

    def _table(self) -> StoredTable:
        return self.table

    def _select(self, parameters: Sequence[float]) -> Tuple[StoredTable, float, Tuple[float, ...]]:
        Z = parameters[0]
        sfe = parameters[1]
        n_cl = parameters[2] / 1e6
        sfr = parameters[3] / MSUN * YEAR
        return self.table, sfr, (Z, sfe, n_cl)

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional

import numpy as np
from scipy import constants

from ..core.resources import write_table_resource
from ..core.table import AxisGrid
from ..core.units import LSUN
from ..families.bpass import BpassChabrier100SEDFamily
from ..families.fsps import FSPSVarIMFSEDFamily
from ..families.toddlers import toddlers_resource_name, toddlers_sfr_resource_name

QUANTITY = "Llambda(W/m)"
FAMILY_KINDS = ("bpass", "fsps", "toddlers", "toddlers_cloud", "toddlers_sfr", "spinflip")


def wavelength_axis(n: int = 120, lo_um: float = 0.09, hi_um: float = 100.0) -> AxisGrid:
    grid = np.geomspace(lo_um * 1e-6, hi_um * 1e-6, n)
    return AxisGrid("lambda", "m", grid, "log")


def planck_shape(wavelength: np.ndarray, temperature: float) -> np.ndarray:
    """``pi B_lambda / (sigma T^4)``: a blackbody normalized to unit bolometric integral."""
    h, c, k = constants.h, constants.c, constants.k
    lam = np.asarray(wavelength, dtype=np.float64)
    with np.errstate(over="ignore"):
        b = 2.0 * h * c**2 / lam**5 / np.expm1(h * c / (lam * k * temperature))
    return np.pi * b / (constants.Stefan_Boltzmann * temperature**4)


def _population_temperature(age_yr: float, Z: float) -> float:
    # young populations are hot; metal-rich ones slightly cooler
    return 4000.0 + 36000.0 * (1e6 / max(age_yr, 1e6)) ** 0.35 * (1.0 - 5.0 * Z)


def _population_luminosity(age_yr: float) -> float:
    """Bolometric luminosity per solar mass (W)."""
    return 1e3 * LSUN * (max(age_yr, 1e6) / 1e6) ** -0.8


def bpass_values(lam: AxisGrid, Z: AxisGrid, t: AxisGrid) -> np.ndarray:
    out = np.empty((len(lam), len(Z), len(t)))
    for j, z in enumerate(Z.grid):
        for k, age in enumerate(t.grid):
            out[:, j, k] = _population_luminosity(age) * planck_shape(lam.grid, _population_temperature(age, z))
    return out


def make_bpass_table(directory: str | Path) -> Path:
    lam = wavelength_axis()
    Z = AxisGrid("Z", "1", [1e-5, 1e-3, 0.01, 0.02, 0.04], "log")
    t = AxisGrid("t", "yr", np.geomspace(1e6, 1e11, 11), "log")
    return write_table_resource(
        Path(directory) / BpassChabrier100SEDFamily.RESOURCE, [lam, Z, t], bpass_values(lam, Z, t), QUANTITY
    )


def make_fsps_table(directory: str | Path) -> Path:
    lam = wavelength_axis()
    Z = AxisGrid("Z", "1", [1e-4, 0.004, 0.02, 0.04], "log")
    alpha = AxisGrid("alpha", "1", [1.3, 2.3, 3.3], "lin")
    t = AxisGrid("t", "yr", np.geomspace(1e5, 1e11, 13), "log")
    base = bpass_values(lam, Z, t)
    # steeper IMF slopes have fewer massive stars
    tilt = np.exp(-0.4 * (alpha.grid - 2.3))
    values = base[:, :, None, :] * tilt[None, None, :, None]
    return write_table_resource(
        Path(directory) / FSPSVarIMFSEDFamily.RESOURCE, [lam, Z, alpha, t], values, QUANTITY
    )


def _region_shape(lam: np.ndarray, Z: float, sfe: float, n_cl: float) -> np.ndarray:
    """Hot stars plus a cold dust bump, normalized to unit bolometric integral."""
    dust = min(0.9, 0.3 + 10.0 * Z + 0.1 * np.log10(n_cl))
    return (1.0 - dust) * planck_shape(lam, 30000.0 * (1.0 + sfe)) + dust * planck_shape(lam, 40.0)


def make_toddlers_sfr_table(directory: str | Path, name: Optional[str] = None) -> Path:
    lam = wavelength_axis()
    Z = AxisGrid("Z", "1", [0.001, 0.004, 0.008, 0.02, 0.04], "lin")
    sfe = AxisGrid("SFE", "1", [0.01, 0.025, 0.05, 0.1], "lin")
    n_cl = AxisGrid("n_cl", "1/cm3", [10.0, 40.0, 160.0, 640.0, 2560.0], "log")
    values = np.empty((len(lam), len(Z), len(sfe), len(n_cl)))
    for a, z in enumerate(Z.grid):
        for b, e in enumerate(sfe.grid):
            for d, n in enumerate(n_cl.grid):
                # luminosity per unit star formation rate (1 Msun/yr)
                values[:, a, b, d] = 1e9 * LSUN * (1.0 + e) * _region_shape(lam.grid, z, e, n)
    name = name or toddlers_resource_name("sfr_normalized")
    return write_table_resource(Path(directory) / name, [lam, Z, sfe, n_cl], values, QUANTITY)


def make_toddlers_cloud_table(directory: str | Path, name: Optional[str] = None) -> Path:
    lam = wavelength_axis(60)
    time = AxisGrid("time", "Myr", [0.1, 1.0, 3.0, 10.0, 30.0], "log")
    Z = AxisGrid("Z", "1", [0.004, 0.02], "lin")
    sfe = AxisGrid("SFE", "1", [0.025, 0.1], "lin")
    n_cl = AxisGrid("n_cl", "1/cm3", [20.0, 320.0], "log")
    M_cl = AxisGrid("M_cl", "Msun", [1e5, 1e6, 1e7], "log")
    shape = tuple(len(a) for a in (lam, time, Z, sfe, n_cl, M_cl))
    values = np.empty(shape)
    for i, age in enumerate(time.grid):
        for a, z in enumerate(Z.grid):
            for b, e in enumerate(sfe.grid):
                for d, n in enumerate(n_cl.grid):
                    for g, m in enumerate(M_cl.grid):
                        lum = e * m * _population_luminosity(age * 1e6)
                        values[:, i, a, b, d, g] = lum * _region_shape(lam.grid, z, e, n)
    name = name or toddlers_resource_name("cloud")
    return write_table_resource(Path(directory) / name, [lam, time, Z, sfe, n_cl, M_cl], values, QUANTITY)


def write_family_resources(directory: str | Path, kinds: Optional[Iterable[str]] = None) -> List[Path]:
    """Write synthetic tables for the given family kinds (all by default).

    ``spinflip`` is analytic and needs no table.
    """
    directory = Path(directory)
    kinds = list(kinds) if kinds is not None else list(FAMILY_KINDS)
    paths: List[Path] = []
    for kind in kinds:
        if kind == "bpass":
            paths.append(make_bpass_table(directory))
        elif kind == "fsps":
            paths.append(make_fsps_table(directory))
        elif kind == "toddlers":
            paths.append(make_toddlers_sfr_table(directory))
        elif kind == "toddlers_cloud":
            paths.append(make_toddlers_cloud_table(directory))
        elif kind == "toddlers_sfr":
            paths.append(make_toddlers_sfr_table(directory, toddlers_sfr_resource_name()))
        elif kind == "spinflip":
            continue
        else:
            raise ValueError(f"Unknown synthetic family '{kind}'. Expected one of: {', '.join(FAMILY_KINDS)}")
    return paths


def _loguniform(rng: np.random.Generator, lo: float, hi: float, n: int) -> np.ndarray:
    return np.exp(rng.uniform(np.log(lo), np.log(hi), n))


def snapshot_parameters(kind: str, n: int, rng: np.random.Generator) -> np.ndarray:
    """Random parameter columns in each family's default import units."""
    if kind == "bpass":
        cols = [_loguniform(rng, 1e4, 1e6, n), rng.uniform(0.001, 0.03, n), _loguniform(rng, 1e6, 1e10, n)]
    elif kind == "fsps":
        cols = [
            _loguniform(rng, 1e4, 1e6, n), rng.uniform(0.001, 0.03, n),
            rng.uniform(1.5, 3.0, n), _loguniform(rng, 1e6, 1e10, n),
        ]
    elif kind in ("toddlers", "toddlers_sfr"):
        cols = [
            rng.uniform(0.002, 0.03, n), rng.uniform(0.01, 0.1, n),
            _loguniform(rng, 10.0, 2000.0, n), _loguniform(rng, 0.01, 1.0, n),
        ]
    elif kind == "toddlers_cloud":
        cols = [
            _loguniform(rng, 1e5, 3e7, n), rng.uniform(0.004, 0.02, n), rng.uniform(0.025, 0.1, n),
            _loguniform(rng, 20.0, 320.0, n), _loguniform(rng, 1e5, 1e7, n), np.ones(n),
        ]
    elif kind == "spinflip":
        cols = [_loguniform(rng, 1e20, 1e25, n), rng.uniform(5.0, 50.0, n)]
    else:
        raise ValueError(f"Unknown synthetic family '{kind}'. Expected one of: {', '.join(FAMILY_KINDS)}")
    return np.column_stack(cols)


def generate_snapshot(
    kind: str = "bpass",
    n: int = 100,
    seed: int = 0,
    size_pc: float = 1000.0,
    velocity_kms: float = 0.0,
    dispersion_kms: float = 0.0,
    bias: bool = False,
    path: Optional[str | Path] = None,
) -> Dict[str, np.ndarray]:
    """Random entities in a cube of ``size_pc``, with columns in pc, km/s and default units.

    Velocities are written when ``velocity_kms`` or ``dispersion_kms`` is
    non-zero (a solid-body rotation about z); when ``path`` is given the
    columns are also saved as an ``.npz`` snapshot archive.
    """
    rng = np.random.default_rng(seed)
    cols: Dict[str, np.ndarray] = {
        "position": rng.uniform(-size_pc / 2.0, size_pc / 2.0, (n, 3)),
        "parameters": snapshot_parameters(kind, n, rng),
    }
    if velocity_kms or dispersion_kms:
        pos = cols["position"]
        r = np.maximum(np.hypot(pos[:, 0], pos[:, 1]), 1e-9)
        cols["velocity"] = velocity_kms * np.column_stack([-pos[:, 1] / r, pos[:, 0] / r, np.zeros(n)])
    if dispersion_kms:
        cols["dispersion"] = np.full(n, float(dispersion_kms))
    if bias:
        cols["bias"] = rng.uniform(0.5, 1.5, n)
    if path is not None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        np.savez_compressed(path, **cols)
    return cols


def power_law_luminosities(n: int, slope: float = -2.0, lo: float = 1.0, hi: float = 1e4, seed: int = 0) -> np.ndarray:
    """Luminosities drawn from ``dN/dL ~ L^slope`` between ``lo`` and ``hi``."""
    rng = np.random.default_rng(seed)
    u = rng.random(n)
    a = slope + 1.0
    if a == 0:
        return lo * (hi / lo) ** u
    return (lo**a + u * (hi**a - lo**a)) ** (1.0 / a)


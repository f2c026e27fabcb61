"""Physical constants and unit conversion to SI.

All parameter vectors and wavelengths inside the package are SI; families
convert back to the units their tables are tabulated in.
"""

from __future__ import annotations

from typing import Dict

import numpy as np
from scipy import constants as _sc

from .errors import ConfigurationError

C = _sc.c                      # m/s
YEAR = _sc.Julian_year         # s
PARSEC = _sc.parsec            # m
MSUN = 1.98840987e30           # kg
LSUN = 3.828e26                # W
LAMBDA_SPIN_FLIP = 0.211061140542   # m, 21 cm hyperfine line
LAMBDA_LYA = 1.215668e-7            # m

_FACTORS: Dict[str, float] = {
    "1": 1.0,
    # length / wavelength
    "m": 1.0,
    "cm": 1e-2,
    "mm": 1e-3,
    "micron": 1e-6,
    "um": 1e-6,
    "nm": 1e-9,
    "Angstrom": 1e-10,
    "pc": PARSEC,
    "kpc": 1e3 * PARSEC,
    "Mpc": 1e6 * PARSEC,
    # mass
    "kg": 1.0,
    "g": 1e-3,
    "Msun": MSUN,
    # time
    "s": 1.0,
    "yr": YEAR,
    "Myr": 1e6 * YEAR,
    "Gyr": 1e9 * YEAR,
    # number density
    "1/m3": 1.0,
    "1/cm3": 1e6,
    # mass rate
    "kg/s": 1.0,
    "Msun/yr": MSUN / YEAR,
    # power
    "W": 1.0,
    "erg/s": 1e-7,
    "Lsun": LSUN,
    # velocity
    "m/s": 1.0,
    "km/s": 1e3,
    # specific luminosity
    "W/m": 1.0,
    "W/micron": 1e6,
    "erg/s/Angstrom": 1e-7 / 1e-10,
}


def unit_factor(unit: str) -> float:
    """Multiplicative factor converting a value in ``unit`` to SI."""
    try:
        return _FACTORS[unit.strip()]
    except KeyError:
        raise ConfigurationError(f"Unknown unit '{unit}' (known: {', '.join(known_units())})") from None


def to_si(value, unit: str):
    return np.asarray(value, dtype=np.float64) * unit_factor(unit) if np.ndim(value) else float(value) * unit_factor(unit)


def known_units() -> list[str]:
    return sorted(_FACTORS)

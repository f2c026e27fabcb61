"""Grid construction, cumulative distributions and inverse-CDF sampling.

The cumulative distributions built here are integrals of a piecewise
function through the sample points: piecewise linear in linear space
(trapezoid rule) or piecewise power law in log-log space. Sampling inverts
exactly the same piecewise function, so the drawn values follow the
distribution whose integral was reported.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
from scipy.integrate import cumulative_trapezoid

# exponents closer than this to -1 use the logarithmic limit of the power law
_POWER_LAW_EPS = 1e-10


def build_linear_grid(xmin: float, xmax: float, n: int) -> np.ndarray:
    """Grid of ``n`` equal bins, i.e. ``n + 1`` points including both ends."""
    n = max(int(n), 1)
    return np.linspace(xmin, xmax, n + 1, dtype=np.float64)


def build_log_grid(xmin: float, xmax: float, n: int) -> np.ndarray:
    n = max(int(n), 1)
    return np.geomspace(xmin, xmax, n + 1, dtype=np.float64)


def locate_clip(xv: np.ndarray, x):
    """Bin index ``i`` with ``xv[i] <= x < xv[i+1]``, clipped to ``[0, len(xv) - 2]``."""
    i = np.searchsorted(xv, x, side="right") - 1
    return np.clip(i, 0, max(len(xv) - 2, 0))


def _power_law_segments(xv: np.ndarray, pv: np.ndarray) -> np.ndarray:
    x1, x2 = xv[:-1], xv[1:]
    p1, p2 = pv[:-1], pv[1:]
    lnx = np.log(x2 / x1)
    alpha = np.log(p2 / p1) / lnx
    a1 = alpha + 1.0
    near = np.abs(a1) < _POWER_LAW_EPS
    safe_a1 = np.where(near, 1.0, a1)
    general = p1 * x1 * (np.power(x2 / x1, safe_a1) - 1.0) / safe_a1
    return np.where(near, p1 * x1 * lnx, general)


def can_use_loglog(xv: np.ndarray, pv: np.ndarray) -> bool:
    return bool(len(xv) > 0 and np.all(xv > 0) and np.all(pv > 0))


def cumulative_integral(xv: np.ndarray, pv: np.ndarray, loglog: bool = False) -> np.ndarray:
    """Running integral of ``pv`` over ``xv``, starting at zero."""
    if len(xv) < 2:
        return np.zeros(len(xv), dtype=np.float64)
    if loglog:
        return np.concatenate(([0.0], np.cumsum(_power_law_segments(xv, pv))))
    return cumulative_trapezoid(pv, xv, initial=0.0)


def normalized_cdf(xv: np.ndarray, pv: np.ndarray, loglog: bool = False) -> Tuple[np.ndarray, np.ndarray, float]:
    """Normalize a tabulated density and build its cumulative distribution.

    Returns ``(pdf, cdf, total)`` where ``total`` is the un-normalized
    integral. When the total is not positive, the density has no mass to
    normalize and empty arrays are returned with a total of zero.
    """
    xv = np.asarray(xv, dtype=np.float64)
    pv = np.asarray(pv, dtype=np.float64)
    if loglog and not can_use_loglog(xv, pv):
        loglog = False
    Pv = cumulative_integral(xv, pv, loglog)
    total = float(Pv[-1]) if len(Pv) else 0.0
    if not np.isfinite(total) or total <= 0.0:
        empty = np.zeros(0, dtype=np.float64)
        return empty, empty, 0.0
    pdf = pv / total
    cdf = Pv / total
    cdf[-1] = 1.0
    # guard against round-off producing tiny decreases
    np.maximum.accumulate(cdf, out=cdf)
    return pdf, cdf, total


def sample_cdf(xv: np.ndarray, pv: np.ndarray, Pv: np.ndarray, u, loglog: bool = False):
    """Map uniform deviate(s) ``u`` in [0, 1) through the inverse cumulative distribution.

    ``pv`` and ``Pv`` must be the normalized density and cumulative
    distribution returned by :func:`normalized_cdf` for the same ``loglog``
    setting.
    """
    scalar = np.ndim(u) == 0
    u = np.atleast_1d(np.asarray(u, dtype=np.float64))
    i = locate_clip(Pv, u)
    x1, x2 = xv[i], xv[i + 1]
    p1, p2 = pv[i], pv[i + 1]
    P1, P2 = Pv[i], Pv[i + 1]
    t = u - P1
    dP = P2 - P1

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        frac = np.where(dP > 0, t / dP, 0.0)
        fallback = x1 + (x2 - x1) * frac
        if loglog:
            alpha = np.log(p2 / p1) / np.log(x2 / x1)
            a1 = alpha + 1.0
            near = np.abs(a1) < _POWER_LAW_EPS
            safe_a1 = np.where(near, 1.0, a1)
            base = 1.0 + t * safe_a1 / (p1 * x1)
            general = x1 * np.power(np.maximum(base, 0.0), 1.0 / safe_a1)
            x = np.where(near, x1 * np.exp(t / (p1 * x1)), general)
        else:
            slope = (p2 - p1) / (x2 - x1)
            denom = p1 + np.sqrt(np.maximum(p1 * p1 + 2.0 * slope * t, 0.0))
            x = np.where(denom > 0, x1 + 2.0 * t / denom, fallback)
        x = np.where(np.isfinite(x), x, fallback)
    x = np.clip(x, x1, x2)
    return float(x[0]) if scalar else x

"""
Interval computation from draws.

Both methods take draws already sorted along axis 0, shape (n, k), so
that one sort per summary serves every confidence level:
- percentile: the (1-c)/2 and 1-(1-c)/2 empirical quantiles
- hdi: the narrowest window of ceil(c * n) consecutive sorted draws
"""

from __future__ import annotations

import math
from typing import Iterable

import numpy as np
from numpy.typing import NDArray


def percentile_intervals(
    sorted_draws: NDArray,
    levels: Iterable[float],
) -> dict[float, NDArray]:
    """
    Percentile intervals for each level.

    Quantiles use linear interpolation between order statistics (numpy's
    default 'linear' method, R type 7).

    Returns:
        Dict mapping level to an array of shape (k, 2).
    """
    result = {}
    for c in levels:
        alpha = 1.0 - c
        ci = np.empty((sorted_draws.shape[1], 2), dtype=np.float64)
        ci[:, 0] = _sorted_quantile(sorted_draws, alpha / 2.0)
        ci[:, 1] = _sorted_quantile(sorted_draws, 1.0 - alpha / 2.0)
        result[c] = ci
    return result


def hdi_intervals(
    sorted_draws: NDArray,
    levels: Iterable[float],
) -> dict[float, NDArray]:
    """
    Highest-density intervals for each level.

    For each term, slides a window of m = ceil(c * n) sorted draws and
    keeps the narrowest; ties go to the lowest window.

    Returns:
        Dict mapping level to an array of shape (k, 2).
    """
    n, k = sorted_draws.shape
    result = {}
    for c in levels:
        m = hdi_window(c, n)
        widths = sorted_draws[m - 1:] - sorted_draws[:n - m + 1]   # (n-m+1, k)
        start = np.argmin(widths, axis=0)
        cols = np.arange(k)
        ci = np.empty((k, 2), dtype=np.float64)
        ci[:, 0] = sorted_draws[start, cols]
        ci[:, 1] = sorted_draws[start + m - 1, cols]
        result[c] = ci
    return result


def _sorted_quantile(sorted_draws: NDArray, q: float) -> NDArray:
    n = sorted_draws.shape[0]
    h = (n - 1) * q
    lo = int(math.floor(h))
    hi = min(lo + 1, n - 1)
    frac = h - lo
    return sorted_draws[lo] + frac * (sorted_draws[hi] - sorted_draws[lo])


def hdi_window(c: float, n: int) -> int:
    """ceil(c * n) clipped to [1, n], ignoring float noise in the product."""
    return min(max(math.ceil(round(c * n, 9)), 1), n)

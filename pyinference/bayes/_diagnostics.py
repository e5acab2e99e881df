"""
Convergence diagnostics for MCMC draws.

Thin wrappers over arviz for draws shaped (chains, draws) of one
parameter: rank-normalized split R-hat and bulk effective sample size.
Draws too short or too flat to diagnose give NaN rather than an arviz
warning.

References:
    Vehtari, A., et al. (2021). Rank-normalization, folding, and
    localization: an improved R-hat. Bayesian Analysis 16(2).
"""

import arviz as az
import numpy as np
from numpy.typing import NDArray

MIN_DRAWS = 4


def rhat(x: NDArray) -> float:
    """
    Rank-normalized split R̂.

    Returns NaN with fewer than MIN_DRAWS draws per chain, non-finite
    draws, or draws that never move.
    """
    x = _chains(x)
    if not _diagnosable(x):
        return float('nan')
    return float(az.rhat(x, method='rank'))


def ess(x: NDArray) -> float:
    """Bulk effective sample size, NaN under the same conditions as rhat()."""
    x = _chains(x)
    if not _diagnosable(x):
        return float('nan')
    return float(az.ess(x, method='bulk'))


def _chains(x: NDArray) -> NDArray:
    return np.atleast_2d(np.asarray(x, dtype=np.float64))


def _diagnosable(x: NDArray) -> bool:
    return bool(
        x.shape[1] >= MIN_DRAWS
        and np.all(np.isfinite(x))
        and np.ptp(x) > 0.0
    )

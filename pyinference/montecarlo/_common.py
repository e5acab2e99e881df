"""
Common data structures for bootstrap resampling.

BootParams is the parameter payload wrapped by Result[P] and exposed
through BootstrapSolution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class BootParams:
    """
    Parameter payload for bootstrap results.

    - t0: coefficients of the apparent fit (None without one)
    - t: coefficients of successful replicates (k rows, p columns),
      in replicate order
    - dispersions: dispersion of each successful replicate (k,)
    - replicate_index: original replicate number of each row of t
    - failures: (replicate number, reason) for every failed replicate
    - bias: mean(t) - t0 (NaN without an apparent fit)
    - se: sd(t)
    """
    t0: NDArray[np.floating[Any]] | None       # shape (p,)
    t: NDArray[np.floating[Any]]               # shape (k, p)
    dispersions: NDArray[np.floating[Any]]     # shape (k,)
    replicate_index: NDArray[np.integer[Any]]  # shape (k,)
    times: int
    failures: tuple[tuple[int, str], ...]
    bias: NDArray[np.floating[Any]]            # shape (p,)
    se: NDArray[np.floating[Any]]              # shape (p,)

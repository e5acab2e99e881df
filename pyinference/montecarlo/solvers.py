"""
Solver dispatch for bootstrap resampling.

This module provides the bootstrap() function (public API).
"""

from __future__ import annotations

import warnings
from typing import Any

from pyinference.core.exceptions import ResamplingError
from pyinference.core.compute.random import SeedLike
from pyinference.core.compute.tolerances import (
    CONDITION_THRESHOLD,
    IRLS_MAX_ITER,
    IRLS_TOL,
    MAX_FAILURE_RATE,
)
from pyinference.design.formula import ModelSpec
from pyinference.regression.families import Family
from pyinference.montecarlo.design import BootstrapDesign
from pyinference.montecarlo.solution import BootstrapSolution
from pyinference.montecarlo.backends.cpu import CPUBootstrapBackend


def bootstrap(
    data: Any,
    spec: ModelSpec | str,
    family: str | Family | None = None,
    times: int = 1000,
    *,
    apparent: bool = True,
    seed: SeedLike = None,
    n_jobs: int = 1,
    max_failure_rate: float = MAX_FAILURE_RATE,
    tol: float = IRLS_TOL,
    max_iter: int = IRLS_MAX_ITER,
    max_condition: float = CONDITION_THRESHOLD,
) -> BootstrapSolution:
    """
    Nonparametric (case) bootstrap of a GLM.

    Draws `times` samples of n rows with replacement, refits the model on
    each with the full-table encoding and collects the coefficient vectors.

    Args:
        data: Observation table
        spec: ModelSpec or formula string
        family: Overrides the specification's family
        times: Number of replicates
        apparent: Also fit the full table and keep it as reference
        seed: Seed or generator; results depend on the seed only, not n_jobs
        n_jobs: Worker threads for replicate fits
        max_failure_rate: Abort when more than this share of replicates fail
        tol, max_iter, max_condition: Passed to every fit

    Returns:
        BootstrapSolution with replicates, bias and standard errors

    Raises:
        ResamplingError: Failure rate above max_failure_rate
        ConvergenceError, CollinearityError: The apparent fit itself failed

    Warns:
        RuntimeWarning: Some replicates failed but within the threshold

    Example:
        >>> boot = bootstrap(df, "y ~ x", times=500, seed=1)
        >>> boot.se
    """
    design = BootstrapDesign.for_bootstrap(
        data, spec, family, times,
        apparent=apparent,
        seed=seed,
        n_jobs=n_jobs,
        max_failure_rate=max_failure_rate,
        tol=tol,
        max_iter=max_iter,
        max_condition=max_condition,
    )

    result, apparent_fit = CPUBootstrapBackend().solve(design)

    n_failed = len(result.params.failures)
    if n_failed / design.times > design.max_failure_rate:
        reasons = sorted({reason.split(':')[0] for _, reason in result.params.failures})
        raise ResamplingError(
            f"{n_failed} of {design.times} bootstrap replicates failed "
            f"({', '.join(reasons)}), above the tolerated rate "
            f"{design.max_failure_rate:.0%}",
            n_failed=n_failed,
            times=design.times,
            max_failure_rate=design.max_failure_rate,
        )
    for message in result.warnings:
        warnings.warn(message, RuntimeWarning, stacklevel=2)

    return BootstrapSolution(_result=result, _design=design, _apparent=apparent_fit)

"""
Design class for bootstrap resampling of GLM fits.

BootstrapDesign encapsulates all inputs needed by the backend to perform
resampling. Immutable, validated at construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pyinference.core.exceptions import ValidationError
from pyinference.core.validation import check_positive_int, check_probability
from pyinference.core.compute.random import SeedLike
from pyinference.core.compute.tolerances import (
    CONDITION_THRESHOLD,
    IRLS_MAX_ITER,
    IRLS_TOL,
    MAX_FAILURE_RATE,
)
from pyinference.design.design import DesignMatrix, build_design
from pyinference.design.formula import ModelSpec
from pyinference.regression.families import Family, resolve_family


@dataclass(frozen=True)
class BootstrapDesign:
    """
    Frozen design for bootstrap resampling.

    Attributes:
        design: Encoded design of the full table; replicates reuse its encoding
        family: GLM family refitted on every replicate
        times: Number of bootstrap replicates
        apparent: Whether the fit to the full table is computed as reference
        seed: Seed or generator for the row indices
        n_jobs: Worker threads for replicate fits (1 = inline)
        max_failure_rate: Largest tolerated share of failed replicates
        tol, max_iter, max_condition: Passed to every fit
    """
    design: DesignMatrix
    family: Family
    times: int
    apparent: bool
    seed: SeedLike
    n_jobs: int
    max_failure_rate: float
    tol: float
    max_iter: int
    max_condition: float

    @classmethod
    def for_bootstrap(
        cls,
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
    ) -> BootstrapDesign:
        """
        Create a bootstrap design with validation.

        The table is encoded once here; categorical levels and
        standardization parameters come from the full table.

        Raises:
            ValidationError: If inputs are invalid
            MissingDataError: If referenced columns are absent or incomplete
        """
        family_name = family.name if isinstance(family, Family) else family
        design = build_design(data, spec, family=family_name)
        family_impl = resolve_family(family if family is not None else design.family)

        times = check_positive_int(times, 'times')
        max_failure_rate = check_probability(max_failure_rate, 'max_failure_rate', inclusive=True)
        if n_jobs == 0:
            raise ValidationError("n_jobs: must be non-zero")

        return cls(
            design=design,
            family=family_impl,
            times=times,
            apparent=bool(apparent),
            seed=seed,
            n_jobs=n_jobs,
            max_failure_rate=max_failure_rate,
            tol=tol,
            max_iter=max_iter,
            max_condition=max_condition,
        )

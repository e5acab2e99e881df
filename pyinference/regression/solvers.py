"""
Solver dispatch for regression.

This module provides the fit() and glm() functions (public API) and
backend selection.
"""

from __future__ import annotations

from typing import Any, Iterable

from numpy.typing import ArrayLike

from pyinference.core.exceptions import ValidationError
from pyinference.core.validation import check_binary, check_positive_int
from pyinference.core.compute.tolerances import (
    CONDITION_THRESHOLD,
    IRLS_MAX_ITER,
    IRLS_TOL,
)
from pyinference.design.design import DesignMatrix, build_design
from pyinference.design.formula import ModelSpec
from pyinference.regression.families import Family, resolve_family
from pyinference.regression.solution import GLMSolution
from pyinference.regression.backends.cpu import CPUQRBackend
from pyinference.regression.backends.cpu_glm import CPUIRLSBackend


def fit(
    X: DesignMatrix | ArrayLike,
    y: ArrayLike | None = None,
    *,
    family: str | Family | None = None,
    tol: float = IRLS_TOL,
    max_iter: int = IRLS_MAX_ITER,
    max_condition: float = CONDITION_THRESHOLD,
) -> GLMSolution:
    """
    Fit a generalized linear model by maximum likelihood.

    Gaussian models with the identity link are solved directly by QR
    least squares; every other family/link goes through IRLS.

    This is the primary public API for frequentist fits. All input
    validation, backend selection, and result wrapping happens here.

    Args:
        X: A DesignMatrix (from build_design), or a design matrix (n x p)
            as any array-like; the caller supplies the intercept column
        y: Response vector (n,); required when X is an array, must be
            omitted when X is a DesignMatrix
        family: 'gaussian', 'binomial' or a Family instance. Defaults to
            the family of the DesignMatrix specification, else 'gaussian'
        tol: IRLS convergence tolerance on max |Δβ|
        max_iter: Maximum IRLS iterations
        max_condition: Largest acceptable condition number of the
            (weighted) design matrix

    Returns:
        GLMSolution with coefficients, Wald inference and fit statistics

    Raises:
        ValidationError: If inputs are invalid
        DimensionError: If X and y have inconsistent dimensions
        CollinearityError: If the design is rank-deficient or ill-conditioned
        ConvergenceError: If IRLS does not converge within max_iter

    Example:
        >>> import numpy as np
        >>> from pyinference.regression import fit
        >>>
        >>> X = np.column_stack([np.ones(100), np.random.randn(100, 2)])
        >>> y = X @ [1, 2, 3] + np.random.randn(100) * 0.1
        >>>
        >>> result = fit(X, y)
        >>> print(result.coefficients)
        >>> print(result.summary())
    """
    # === Input Validation ===
    design = _as_design(X, y)
    family_impl = resolve_family(family or design.family or 'gaussian')
    if family_impl.name == 'binomial':
        check_binary(design.y, 'y')
    if tol <= 0:
        raise ValidationError(f"tol: must be positive, got {tol}")
    check_positive_int(max_iter, 'max_iter')

    # === Select Backend and Solve ===
    if family_impl.name == 'gaussian' and family_impl.link.name == 'identity':
        result = CPUQRBackend().solve(design, family_impl, max_condition=max_condition)
    else:
        result = CPUIRLSBackend().solve(
            design, family_impl,
            tol=tol, max_iter=max_iter, max_condition=max_condition,
        )

    # === Wrap and Return ===
    return GLMSolution(_result=result, _design=design, _family=family_impl)


def glm(
    formula: str | ModelSpec,
    data: Any,
    *,
    family: str | None = None,
    standardize: bool | Iterable[str] = (),
    tol: float = IRLS_TOL,
    max_iter: int = IRLS_MAX_ITER,
    max_condition: float = CONDITION_THRESHOLD,
) -> GLMSolution:
    """
    Fit a GLM from a formula and an observation table.

    Args:
        formula: "response ~ terms" string or a ModelSpec
        data: Observation table (DataFrame, mapping of columns, row mappings)
        family: 'gaussian' or 'binomial'; for a ModelSpec defaults to its
            own family, for a string to 'gaussian'
        standardize: Predictors to standardize (formula strings only)

    Example:
        >>> fit = glm("win ~ kills + deaths", matches, family="binomial")
        >>> fit.coef_table()["kills"]["estimate"]
    """
    if isinstance(formula, str):
        spec = ModelSpec.from_formula(
            formula, family=family or 'gaussian', standardize=standardize
        )
    else:
        if standardize:
            raise ValidationError(
                "standardize: pass standardization through the ModelSpec"
            )
        spec = formula if family is None else formula.with_family(family)

    design = build_design(data, spec)
    return fit(design, tol=tol, max_iter=max_iter, max_condition=max_condition)


def _as_design(X: DesignMatrix | ArrayLike, y: ArrayLike | None) -> DesignMatrix:
    if isinstance(X, DesignMatrix):
        if y is not None:
            raise ValidationError(
                "y: must be omitted when X is a DesignMatrix (it carries its response)"
            )
        return X
    if y is None:
        raise ValidationError("y: required when X is an array")
    return DesignMatrix.from_arrays(X, y)

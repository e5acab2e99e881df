"""
Generalized linear models.

Public API:
    fit(X, y=None, ...) -> GLMSolution
    glm(formula, data, ...) -> GLMSolution

Gaussian (identity link) models are solved by QR least squares and
Binomial (logit link) models by IRLS. Every solve checks the rank and
condition number of the (weighted) design matrix.

Example:
    >>> from pyinference.regression import glm
    >>> result = glm("y ~ x + g", data)
    >>> print(result.coefficients)
    >>> print(result.summary())
"""

from pyinference.regression.families import (
    Family,
    Gaussian,
    Binomial,
    Link,
    IdentityLink,
    LogitLink,
    resolve_family,
)
from pyinference.regression.solution import GLMSolution, GLMParams
from pyinference.regression.solvers import fit, glm

__all__ = [
    "fit",
    "glm",
    "GLMSolution",
    "GLMParams",
    "Family",
    "Gaussian",
    "Binomial",
    "Link",
    "IdentityLink",
    "LogitLink",
    "resolve_family",
]

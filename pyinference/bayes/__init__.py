"""
Bayesian generalized linear models.

Public API:
    fit_bayes(X, y=None, ...) -> BayesSolution
    bayes_glm(formula, data, ...) -> BayesSolution

The posterior is sampled by Hamiltonian Monte Carlo with warm-up
adaptation of the step size and a diagonal mass matrix. Chains run on
independent generators spawned from `seed` and may run in parallel.
"""

from pyinference.bayes.priors import (
    Prior,
    Normal,
    StudentT,
    Cauchy,
    Exponential,
    Flat,
    PriorSpec,
    ResolvedPriors,
)
from pyinference.bayes.solution import BayesSolution, BayesParams
from pyinference.bayes.solvers import fit_bayes, bayes_glm

__all__ = [
    "fit_bayes",
    "bayes_glm",
    "BayesSolution",
    "BayesParams",
    "Prior",
    "Normal",
    "StudentT",
    "Cauchy",
    "Exponential",
    "Flat",
    "PriorSpec",
    "ResolvedPriors",
]

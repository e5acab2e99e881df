"""
Solver dispatch for Bayesian GLMs.

This module provides the fit_bayes() and bayes_glm() functions (public API).
"""

from __future__ import annotations

import warnings
from typing import Any, Iterable

import numpy as np
from numpy.typing import ArrayLike

from pyinference.core.exceptions import ValidationError
from pyinference.core.result import Result
from pyinference.core.validation import check_binary, check_positive_int, check_probability
from pyinference.core.compute.parallel import run_tasks
from pyinference.core.compute.random import SeedLike, spawn_rngs
from pyinference.core.compute.timing import Timer
from pyinference.design.design import DesignMatrix, build_design
from pyinference.design.formula import ModelSpec
from pyinference.regression.families import Family, resolve_family
from pyinference.regression.solvers import _as_design
from pyinference.bayes.priors import PriorSpec
from pyinference.bayes.solution import BayesParams, BayesSolution
from pyinference.bayes._posterior import LogPosterior
from pyinference.bayes._hmc import HMCSampler
from pyinference.bayes._diagnostics import ess, rhat

# Diagnostic levels that trigger a RuntimeWarning
RHAT_WARN = 1.05
ESS_WARN = 100.0


def fit_bayes(
    X: DesignMatrix | ArrayLike,
    y: ArrayLike | None = None,
    *,
    family: str | Family | None = None,
    priors: PriorSpec | None = None,
    chains: int = 4,
    draws: int = 1000,
    warmup: int = 1000,
    seed: SeedLike = None,
    n_jobs: int = 1,
    target_accept: float = 0.8,
    max_leapfrog: int = 16,
) -> BayesSolution:
    """
    Sample the posterior of a GLM by Hamiltonian Monte Carlo.

    Args:
        X: A DesignMatrix, or a design matrix (n x p) as any array-like
        y: Response vector; required when X is an array
        family: 'gaussian' or 'binomial' (defaults as in regression.fit)
        priors: PriorSpec; defaults to the specification's priors, else
            the weakly informative defaults
        chains: Independent chains, each on its own spawned generator
        draws: Post-warm-up draws per chain
        warmup: Warm-up (adaptation) iterations per chain, discarded
        seed: Seed or generator; the same seed gives the same draws
            whatever n_jobs is
        n_jobs: Chains run in parallel on a thread pool when != 1
        target_accept: Target acceptance probability for step size adaptation
        max_leapfrog: Upper bound of leapfrog steps per transition

    Returns:
        BayesSolution with draws, posterior means and diagnostics

    Warns:
        RuntimeWarning: Divergent transitions, R̂ > 1.05 or ESS < 100
    """
    timer = Timer()
    timer.start()

    # === Input Validation ===
    design = _as_design(X, y)
    family_impl = resolve_family(family or design.family or 'gaussian')
    if family_impl.name == 'binomial':
        check_binary(design.y, 'y')
    if not family_impl.is_canonical:
        raise ValidationError(
            f"family: Bayesian fits support canonical links only, got {family_impl!r}"
        )
    chains = check_positive_int(chains, 'chains')
    draws = check_positive_int(draws, 'draws')
    if isinstance(warmup, bool) or int(warmup) != warmup or warmup < 0:
        raise ValidationError(f"warmup: must be a non-negative integer, got {warmup!r}")
    target_accept = check_probability(target_accept, 'target_accept')
    max_leapfrog = check_positive_int(max_leapfrog, 'max_leapfrog')

    if priors is None and design.info is not None:
        priors = design.info.spec.priors
    if priors is None:
        priors = PriorSpec()
    resolved = priors.resolve(design, family_impl)

    # === Sample ===
    posterior = LogPosterior(design.X, design.y, family_impl.name, resolved)
    sampler = HMCSampler(
        posterior, posterior.dim,
        target_accept=target_accept, max_leapfrog=max_leapfrog,
    )

    def run_chain(rng: np.random.Generator):
        theta0 = posterior.initial_point(rng)
        return sampler.sample(theta0, draws=draws, warmup=int(warmup), rng=rng)

    with timer.section('sampling'):
        results = run_tasks(run_chain, spawn_rngs(seed, chains), n_jobs=n_jobs)

    # === Assemble and Diagnose ===
    with timer.section('diagnostics'):
        theta = np.stack([r.draws for r in results])       # (chains, draws, dim)
        p = design.p
        beta = theta[:, :, :p]
        sigma = np.exp(theta[:, :, p]) if posterior.has_sigma else None

        params = BayesParams(
            draws=beta,
            sigma_draws=sigma,
            rhat=np.array([rhat(beta[:, :, j]) for j in range(p)]),
            ess=np.array([ess(beta[:, :, j]) for j in range(p)]),
            sigma_rhat=rhat(sigma) if sigma is not None else float('nan'),
            sigma_ess=ess(sigma) if sigma is not None else float('nan'),
            accept_rate=np.array([r.accept_rate for r in results]),
            n_divergent=np.array([r.n_divergent for r in results]),
            step_size=np.array([r.step_size for r in results]),
        )

    timer.stop()

    messages = _diagnostic_messages(params, design.column_names)
    for message in messages:
        warnings.warn(message, RuntimeWarning, stacklevel=2)

    result = Result(
        params=params,
        info={
            'method': 'hmc',
            'chains': chains,
            'draws': draws,
            'warmup': int(warmup),
            'target_accept': target_accept,
            'max_leapfrog': max_leapfrog,
        },
        timing=timer.result(),
        backend_name='cpu_hmc',
        warnings=tuple(messages),
    )
    return BayesSolution(
        _result=result, _design=design, _family=family_impl, _priors=resolved,
    )


def bayes_glm(
    formula: str | ModelSpec,
    data: Any,
    *,
    family: str | None = None,
    priors: PriorSpec | None = None,
    standardize: bool | Iterable[str] = (),
    **sampler_options: Any,
) -> BayesSolution:
    """
    Bayesian GLM from a formula and an observation table.

    Keyword arguments other than family, priors and standardize are passed
    to fit_bayes() (chains, draws, warmup, seed, n_jobs, target_accept).

    Example:
        >>> post = bayes_glm("win ~ kills", matches, family="binomial", seed=1)
        >>> post.coefficients
    """
    if isinstance(formula, str):
        spec = ModelSpec.from_formula(
            formula, family=family or 'gaussian', standardize=standardize, priors=priors,
        )
    else:
        if standardize:
            raise ValidationError(
                "standardize: pass standardization through the ModelSpec"
            )
        spec = formula if family is None else formula.with_family(family)

    design = build_design(data, spec)
    return fit_bayes(design, priors=priors, **sampler_options)


def _diagnostic_messages(params: BayesParams, names: tuple[str, ...]) -> list[str]:
    messages = []
    n_div = int(np.sum(params.n_divergent))
    if n_div > 0:
        messages.append(
            f"{n_div} divergent transitions after warm-up; "
            f"consider a higher target_accept or a reparameterization"
        )
    bad_rhat = [n for n, r in zip(names, params.rhat) if r > RHAT_WARN]
    if bad_rhat:
        messages.append(
            f"R-hat above {RHAT_WARN} for {bad_rhat}; chains have not mixed"
        )
    low_ess = [n for n, e in zip(names, params.ess) if e < ESS_WARN]
    if low_ess:
        messages.append(
            f"effective sample size below {ESS_WARN:.0f} for {low_ess}; "
            f"run more draws"
        )
    return messages

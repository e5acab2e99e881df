"""
Bayesian GLM solution types.

Contains the parameter payload and user-facing solution wrapper.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from pyinference.core.result import Result

if TYPE_CHECKING:
    from pyinference.bayes.priors import ResolvedPriors
    from pyinference.design.design import DesignMatrix
    from pyinference.regression.families import Family


@dataclass(frozen=True)
class BayesParams:
    """
    Parameter payload for a sampled posterior.

    Attributes:
        draws: Coefficient draws (chains, draws, p), in sampling order
        sigma_draws: Residual sd draws (chains, draws) for Gaussian models
        rhat: Split R̂ per coefficient
        ess: Effective sample size per coefficient
        sigma_rhat, sigma_ess: The same for σ (NaN for Binomial models)
        accept_rate: Mean acceptance probability per chain
        n_divergent: Divergent post-warm-up transitions per chain
        step_size: Adapted step size per chain
    """
    draws: NDArray[np.floating[Any]]
    sigma_draws: NDArray[np.floating[Any]] | None
    rhat: NDArray[np.floating[Any]]
    ess: NDArray[np.floating[Any]]
    sigma_rhat: float
    sigma_ess: float
    accept_rate: NDArray[np.floating[Any]]
    n_divergent: NDArray[np.integer[Any]]
    step_size: NDArray[np.floating[Any]]


@dataclass
class BayesSolution:
    """
    User-facing posterior sample.

    Draws are kept in chain order so that diagnostics and downstream
    summaries are reproducible for a given seed.
    """
    _result: Result[BayesParams]
    _design: 'DesignMatrix'
    _family: 'Family'
    _priors: 'ResolvedPriors'

    # === Draws ===

    @property
    def draws(self) -> NDArray[np.floating[Any]]:
        """Coefficient draws, shape (chains, draws, p)."""
        return self._result.params.draws

    @property
    def flat_draws(self) -> NDArray[np.floating[Any]]:
        """Chains concatenated in order, shape (chains * draws, p)."""
        d = self.draws
        return d.reshape(-1, d.shape[2])

    @property
    def sigma_draws(self) -> NDArray[np.floating[Any]] | None:
        """Residual sd draws (chains, draws) for Gaussian models, else None."""
        return self._result.params.sigma_draws

    @property
    def flat_sigma_draws(self) -> NDArray[np.floating[Any]] | None:
        s = self.sigma_draws
        return None if s is None else s.reshape(-1)

    @property
    def chains(self) -> int:
        return self.draws.shape[0]

    @property
    def n_draws(self) -> int:
        """Post-warm-up draws per chain."""
        return self.draws.shape[1]

    @property
    def coefficients(self) -> NDArray[np.floating[Any]]:
        """Posterior mean of each coefficient."""
        return self.flat_draws.mean(axis=0)

    @property
    def posterior_sd(self) -> NDArray[np.floating[Any]]:
        return self.flat_draws.std(axis=0, ddof=1)

    @property
    def term_names(self) -> tuple[str, ...]:
        return self._design.column_names

    # === Diagnostics ===

    @property
    def rhat(self) -> NDArray[np.floating[Any]]:
        return self._result.params.rhat

    @property
    def ess(self) -> NDArray[np.floating[Any]]:
        return self._result.params.ess

    @property
    def n_divergent(self) -> int:
        """Total divergent post-warm-up transitions over all chains."""
        return int(np.sum(self._result.params.n_divergent))

    @property
    def accept_rate(self) -> float:
        """Mean acceptance probability over all chains."""
        return float(np.mean(self._result.params.accept_rate))

    # === Provenance ===

    @property
    def family(self) -> 'Family':
        return self._family

    @property
    def design(self) -> 'DesignMatrix':
        return self._design

    @property
    def priors(self) -> 'ResolvedPriors':
        return self._priors

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """Posterior mean, sd, central 95% interval and diagnostics per term."""
        flat = self.flat_draws
        lo, hi = np.quantile(flat, [0.025, 0.975], axis=0)
        names = list(self.term_names)
        means = list(self.coefficients)
        sds = list(self.posterior_sd)
        los, his = list(lo), list(hi)
        rhats, esss = list(self.rhat), list(self.ess)
        if self.sigma_draws is not None:
            s = self.flat_sigma_draws
            names.append('sigma')
            means.append(float(s.mean()))
            sds.append(float(s.std(ddof=1)))
            s_lo, s_hi = np.quantile(s, [0.025, 0.975])
            los.append(s_lo)
            his.append(s_hi)
            rhats.append(self._result.params.sigma_rhat)
            esss.append(self._result.params.sigma_ess)

        width = max([len(n) for n in names] + [8])
        lines = [
            f"Bayesian GLM ({self._family.name}, link={self._family.link.name})",
            "=" * (width + 56),
            f"Observations: {self._design.n}",
            f"Chains: {self.chains}, draws per chain: {self.n_draws}",
            "",
            f"{'':<{width}} {'Mean':>10} {'SD':>9} {'2.5%':>10} {'97.5%':>10} "
            f"{'Rhat':>6} {'ESS':>7}",
            "-" * (width + 56),
        ]
        for name, m, sd, a, b, r, e in zip(names, means, sds, los, his, rhats, esss):
            lines.append(
                f"{name:<{width}} {m:10.4f} {sd:9.4f} {a:10.4f} {b:10.4f} "
                f"{r:6.3f} {e:7.0f}"
            )
        lines.extend([
            "-" * (width + 56),
            f"Divergent transitions: {self.n_divergent}",
            f"Mean acceptance: {self.accept_rate:.3f}",
            f"Backend: {self.backend_name}",
        ])
        if self.timing:
            lines.append(f"Time: {self.timing.get('total_seconds', 0):.4f}s")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"BayesSolution(family={self._family.name!r}, chains={self.chains}, "
            f"draws={self.n_draws}, p={self._design.p})"
        )

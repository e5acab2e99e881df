"""
Log-posterior densities for Bayesian GLMs.

The sampler works on an unconstrained parameter vector θ:
    Gaussian: θ = (β, log σ)
    Binomial: θ = β

σ is sampled on the log scale; the log-Jacobian log σ of that change of
variables is added to the density.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.special import expit

from pyinference.bayes.priors import ResolvedPriors

_LOG_2PI = float(np.log(2.0 * np.pi))


class LogPosterior:
    """
    Unnormalized log-posterior with gradient.

    Calling the object with θ returns (log p(θ | y), ∇ log p(θ | y)).
    """

    def __init__(
        self,
        X: NDArray,
        y: NDArray,
        family_name: str,
        priors: ResolvedPriors,
    ):
        self.X = X
        self.y = y
        self.family_name = family_name
        self.priors = priors
        self.p = X.shape[1]
        self.has_sigma = family_name == 'gaussian'

    @property
    def dim(self) -> int:
        return self.p + (1 if self.has_sigma else 0)

    def __call__(self, theta: NDArray) -> tuple[float, NDArray]:
        if self.has_sigma:
            return self._gaussian(theta)
        return self._binomial(theta)

    def _gaussian(self, theta: NDArray) -> tuple[float, NDArray]:
        beta, log_sigma = theta[:self.p], theta[self.p]
        sigma = np.exp(log_sigma)
        n = self.y.shape[0]

        r = self.y - self.X @ beta
        rss = float(r @ r)
        inv_var = 1.0 / (sigma * sigma)

        ll = -n * log_sigma - 0.5 * rss * inv_var - 0.5 * n * _LOG_2PI
        grad_beta = self.X.T @ r * inv_var
        grad_log_sigma = -n + rss * inv_var

        aux = self.priors.auxiliary
        sigma_arr = np.array([sigma])
        lp = ll + self.priors.logpdf_beta(beta) + aux.logpdf(sigma_arr) + log_sigma
        grad_beta = grad_beta + self.priors.grad_beta(beta)
        # d/d(log σ) of log p(σ) + log σ
        grad_log_sigma += float(aux.grad(sigma_arr)[0]) * sigma + 1.0

        grad = np.empty(self.p + 1, dtype=np.float64)
        grad[:self.p] = grad_beta
        grad[self.p] = grad_log_sigma
        return float(lp), grad

    def _binomial(self, theta: NDArray) -> tuple[float, NDArray]:
        eta = self.X @ theta
        # log(1 + e^η) without overflow
        ll = float(np.sum(self.y * eta - np.logaddexp(0.0, eta)))
        grad = self.X.T @ (self.y - expit(eta))

        lp = ll + self.priors.logpdf_beta(theta)
        return float(lp), grad + self.priors.grad_beta(theta)

    def initial_point(self, rng: np.random.Generator, jitter: float = 0.1) -> NDArray:
        """
        Least squares starting values with small random jitter.

        Gaussian: β from lstsq on y, log σ from the residual sd.
        Binomial: β from lstsq on logit((y + 0.5) / 2).
        """
        if self.has_sigma:
            target = self.y
        else:
            mu = (self.y + 0.5) / 2.0
            target = np.log(mu / (1.0 - mu))
        beta, *_ = np.linalg.lstsq(self.X, target, rcond=None)
        theta = beta
        if self.has_sigma:
            resid_sd = float(np.std(self.y - self.X @ beta))
            theta = np.append(beta, np.log(max(resid_sd, 1e-3)))
        return theta + jitter * rng.uniform(-1.0, 1.0, size=theta.shape)

"""
Hamiltonian Monte Carlo with warm-up adaptation.

One chain per call. The sampler proposes by simulating Hamiltonian
dynamics with the leapfrog integrator for a jittered number of steps and
accepts with the Metropolis probability min(1, exp(H0 - H1)).

Warm-up (discarded) adapts:
    - the step size by dual averaging towards the target acceptance
      probability (Hoffman & Gelman 2014, Algorithm 5)
    - a diagonal inverse mass matrix from the sample variance of draws in
      two successive windows, regularized towards 1e-3 as in Stan

A transition whose energy error exceeds DIVERGENCE_THRESHOLD, or whose
trajectory leaves the region of finite density, is divergent and rejected.

References:
    Neal, R. M. (2011). MCMC using Hamiltonian dynamics. Handbook of
    Markov Chain Monte Carlo, ch. 5.
    Hoffman, M. D., & Gelman, A. (2014). The No-U-Turn Sampler. JMLR 15.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import numpy as np
from numpy.typing import NDArray

from pyinference.core.exceptions import NumericalError
from pyinference.core.compute.tolerances import DIVERGENCE_THRESHOLD

LogDensity = Callable[[NDArray], tuple[float, NDArray]]


@dataclass(frozen=True)
class ChainResult:
    """
    Output of one chain.

    Attributes:
        draws: Post-warm-up draws (n_draws, dim)
        accept_stats: Metropolis acceptance probability of each draw
        divergent: Divergence flag of each post-warm-up transition
        step_size: Adapted step size
        inv_mass: Adapted diagonal inverse mass matrix
    """
    draws: NDArray[np.floating[Any]]
    accept_stats: NDArray[np.floating[Any]]
    divergent: NDArray[np.bool_]
    step_size: float
    inv_mass: NDArray[np.floating[Any]]

    @property
    def accept_rate(self) -> float:
        return float(np.mean(self.accept_stats)) if len(self.accept_stats) else float('nan')

    @property
    def n_divergent(self) -> int:
        return int(np.sum(self.divergent))


class DualAveraging:
    """Step size adaptation by Nesterov dual averaging."""

    def __init__(
        self,
        initial_step: float,
        target_accept: float,
        gamma: float = 0.05,
        t0: float = 10.0,
        kappa: float = 0.75,
    ):
        self.mu = np.log(10.0 * initial_step)
        self.target = target_accept
        self.gamma = gamma
        self.t0 = t0
        self.kappa = kappa
        self.m = 0
        self.h_bar = 0.0
        self.log_step = np.log(initial_step)
        self.log_step_bar = 0.0

    def update(self, accept_prob: float) -> float:
        """Record one acceptance probability; return the next step size."""
        self.m += 1
        w = 1.0 / (self.m + self.t0)
        self.h_bar = (1.0 - w) * self.h_bar + w * (self.target - accept_prob)
        self.log_step = self.mu - np.sqrt(self.m) / self.gamma * self.h_bar
        eta = self.m ** (-self.kappa)
        self.log_step_bar = eta * self.log_step + (1.0 - eta) * self.log_step_bar
        return float(np.exp(self.log_step))

    @property
    def final_step(self) -> float:
        return float(np.exp(self.log_step_bar))


class HMCSampler:
    """
    Static-trajectory HMC for a differentiable log density.

    Args:
        log_density: θ -> (log p(θ), ∇ log p(θ))
        dim: Dimension of θ
        target_accept: Target mean acceptance probability during warm-up
        max_leapfrog: Upper bound of the jittered number of leapfrog steps;
            each transition uses a uniform count in [max_leapfrog // 2, max_leapfrog]
    """

    def __init__(
        self,
        log_density: LogDensity,
        dim: int,
        *,
        target_accept: float = 0.8,
        max_leapfrog: int = 16,
    ):
        self.log_density = log_density
        self.dim = dim
        self.target_accept = target_accept
        self.max_leapfrog = max_leapfrog

    # === Public ===

    def sample(
        self,
        theta0: NDArray,
        draws: int,
        warmup: int,
        rng: np.random.Generator,
    ) -> ChainResult:
        """Run warm-up then collect `draws` post-warm-up draws."""
        theta = np.asarray(theta0, dtype=np.float64).copy()
        logp, grad = self.log_density(theta)
        if not np.isfinite(logp):
            raise NumericalError("initial point has non-finite log density")

        inv_mass = np.ones(self.dim, dtype=np.float64)
        step = self._initial_step(theta, logp, grad, inv_mass, rng)
        adapter = DualAveraging(step, self.target_accept)
        windows = _adaptation_windows(warmup)
        window_draws: list[NDArray] = []

        for it in range(warmup):
            theta, logp, grad, accept_prob, _ = self._transition(
                theta, logp, grad, step, inv_mass, rng
            )
            step = adapter.update(accept_prob)

            if windows and windows[0][0] <= it < windows[0][1]:
                window_draws.append(theta)
            if windows and it == windows[0][1] - 1:
                inv_mass = _regularized_variance(np.asarray(window_draws))
                window_draws = []
                windows.pop(0)
                step = self._initial_step(theta, logp, grad, inv_mass, rng)
                adapter = DualAveraging(step, self.target_accept)

        if warmup > 0:
            step = adapter.final_step

        out = np.empty((draws, self.dim), dtype=np.float64)
        accept_stats = np.empty(draws, dtype=np.float64)
        divergent = np.zeros(draws, dtype=bool)
        for i in range(draws):
            theta, logp, grad, accept_stats[i], divergent[i] = self._transition(
                theta, logp, grad, step, inv_mass, rng
            )
            out[i] = theta

        return ChainResult(
            draws=out,
            accept_stats=accept_stats,
            divergent=divergent,
            step_size=float(step),
            inv_mass=inv_mass,
        )

    # === Internals ===

    def _leapfrog(self, theta, r, grad, step, inv_mass, n_steps):
        logp = -np.inf
        # far-out trajectories overflow; they are caught as divergences
        with np.errstate(over='ignore', invalid='ignore', divide='ignore'):
            r = r + 0.5 * step * grad
            for i in range(n_steps):
                theta = theta + step * inv_mass * r
                logp, grad = self.log_density(theta)
                if not np.isfinite(logp):
                    break
                if i < n_steps - 1:
                    r = r + step * grad
            r = r + 0.5 * step * grad
        return theta, r, logp, grad

    def _transition(self, theta, logp, grad, step, inv_mass, rng):
        r0 = rng.standard_normal(self.dim) / np.sqrt(inv_mass)
        h0 = -logp + 0.5 * float(np.sum(inv_mass * r0 ** 2))

        n_steps = int(rng.integers(max(1, self.max_leapfrog // 2), self.max_leapfrog + 1))
        theta1, r1, logp1, grad1 = self._leapfrog(theta, r0, grad, step, inv_mass, n_steps)

        with np.errstate(over='ignore', invalid='ignore'):
            h1 = -logp1 + 0.5 * float(np.sum(inv_mass * r1 ** 2))
        delta = h1 - h0
        if not np.isfinite(delta):
            delta = np.inf

        divergent = delta > DIVERGENCE_THRESHOLD
        accept_prob = 0.0 if divergent else float(min(1.0, np.exp(-delta)))

        if rng.random() < accept_prob:
            return theta1, logp1, grad1, accept_prob, divergent
        return theta, logp, grad, accept_prob, divergent

    def _initial_step(self, theta, logp, grad, inv_mass, rng) -> float:
        """Double or halve the step until the one-step acceptance crosses 1/2."""
        step = 1.0

        def accept(eps: float) -> float:
            r0 = rng.standard_normal(self.dim) / np.sqrt(inv_mass)
            h0 = -logp + 0.5 * float(np.sum(inv_mass * r0 ** 2))
            _, r1, logp1, _ = self._leapfrog(theta, r0, grad, eps, inv_mass, 1)
            with np.errstate(over='ignore', invalid='ignore'):
                h1 = -logp1 + 0.5 * float(np.sum(inv_mass * r1 ** 2))
            delta = h0 - h1
            return float(np.exp(min(delta, 0.0))) if np.isfinite(delta) else 0.0

        direction = 1.0 if accept(step) > 0.5 else -1.0
        for _ in range(50):
            a = accept(step)
            if direction > 0 and a <= 0.5:
                break
            if direction < 0 and a > 0.5:
                break
            step *= 2.0 ** direction
        return step


def _adaptation_windows(warmup: int) -> list[tuple[int, int]]:
    """Two mass-matrix windows between a 15% initial and 10% terminal buffer."""
    if warmup < 20:
        return []
    start = int(0.15 * warmup)
    end = warmup - int(0.1 * warmup)
    middle = start + (end - start) // 3
    return [(start, middle), (middle, end)]


def _regularized_variance(draws: NDArray) -> NDArray:
    n = draws.shape[0]
    var = np.var(draws, axis=0, ddof=1) if n > 1 else np.ones(draws.shape[1])
    return (n / (n + 5.0)) * var + 1e-3 * (5.0 / (n + 5.0))

"""
Prior distributions for Bayesian GLMs.

Each prior provides its log-density and gradient with respect to the
parameter, vectorized over arrays of parameters. Location and scale may
be arrays broadcasting against the parameter vector, which is how
autoscaled per-coefficient priors are represented.

PriorSpec bundles the three priors of a model:
    coefficients: every non-intercept coefficient
    intercept: the intercept coefficient
    auxiliary: the Gaussian residual standard deviation σ (ignored for
        the Binomial family)

Defaults are weakly informative (rstanarm):
    coefficients ~ normal(0, 2.5), intercept ~ normal(0, 2.5),
    σ ~ exponential(1)
With autoscale=True the scales adapt to the data; see PriorSpec.resolve().

References:
    Gelman, A., Jakulin, A., Pittau, M. G., & Su, Y.-S. (2008). A weakly
    informative default prior distribution for logistic and other
    regression models. Annals of Applied Statistics, 2(4), 1360-1383.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray
from scipy.special import gammaln

from pyinference.core.exceptions import ValidationError

if TYPE_CHECKING:
    from pyinference.design.design import DesignMatrix
    from pyinference.regression.families import Family


_LOG_2PI = float(np.log(2.0 * np.pi))


class Prior(ABC):
    """Abstract prior distribution."""

    @abstractmethod
    def logpdf(self, x: NDArray) -> float:
        """Total log-density of the parameter values."""
        ...

    @abstractmethod
    def grad(self, x: NDArray) -> NDArray:
        """Gradient of logpdf with respect to x."""
        ...

    @abstractmethod
    def rescaled(self, factor: float | NDArray, shift: float = 0.0) -> Prior:
        """Prior with its scale multiplied by factor and location moved by shift."""
        ...


# =====================================================================
# Location-scale priors
# =====================================================================

@dataclass(frozen=True)
class Normal(Prior):
    """Normal(location, scale)."""
    location: float | NDArray = 0.0
    scale: float | NDArray = 2.5

    def __post_init__(self) -> None:
        _check_scale(self.scale, 'Normal')

    def logpdf(self, x: NDArray) -> float:
        z = (x - self.location) / self.scale
        return float(np.sum(
            -0.5 * z ** 2 - np.log(self.scale) - 0.5 * _LOG_2PI
            + np.zeros_like(x)
        ))

    def grad(self, x: NDArray) -> NDArray:
        return -(x - self.location) / np.square(self.scale)

    def rescaled(self, factor: float | NDArray, shift: float = 0.0) -> Normal:
        return replace(self, location=self.location + shift, scale=self.scale * factor)


@dataclass(frozen=True)
class StudentT(Prior):
    """Student-t(df, location, scale)."""
    df: float = 3.0
    location: float | NDArray = 0.0
    scale: float | NDArray = 2.5

    def __post_init__(self) -> None:
        if not self.df > 0:
            raise ValidationError(f"{type(self).__name__}: df must be positive, got {self.df}")
        _check_scale(self.scale, type(self).__name__)

    def logpdf(self, x: NDArray) -> float:
        nu = self.df
        z = (x - self.location) / self.scale
        log_norm = (
            gammaln((nu + 1.0) / 2.0) - gammaln(nu / 2.0)
            - 0.5 * np.log(nu * np.pi) - np.log(self.scale)
        )
        return float(np.sum(
            log_norm - (nu + 1.0) / 2.0 * np.log1p(z ** 2 / nu) + np.zeros_like(x)
        ))

    def grad(self, x: NDArray) -> NDArray:
        nu = self.df
        d = x - self.location
        s2 = np.square(self.scale)
        return -(nu + 1.0) * d / (nu * s2 + d ** 2)

    def rescaled(self, factor: float | NDArray, shift: float = 0.0) -> StudentT:
        return replace(self, location=self.location + shift, scale=self.scale * factor)


@dataclass(frozen=True)
class Cauchy(StudentT):
    """Cauchy(location, scale): Student-t with one degree of freedom."""
    df: float = field(default=1.0, init=False)
    location: float | NDArray = 0.0
    scale: float | NDArray = 2.5


# =====================================================================
# Positive-support and improper priors
# =====================================================================

@dataclass(frozen=True)
class Exponential(Prior):
    """Exponential(rate) on a positive parameter (mean 1/rate)."""
    rate: float = 1.0

    def __post_init__(self) -> None:
        if not self.rate > 0:
            raise ValidationError(f"Exponential: rate must be positive, got {self.rate}")

    def logpdf(self, x: NDArray) -> float:
        return float(np.sum(np.log(self.rate) - self.rate * x))

    def grad(self, x: NDArray) -> NDArray:
        return np.full_like(x, -self.rate, dtype=np.float64)

    def rescaled(self, factor: float | NDArray, shift: float = 0.0) -> Exponential:
        return replace(self, rate=self.rate / factor)


@dataclass(frozen=True)
class Flat(Prior):
    """Improper uniform prior; the posterior is the likelihood."""

    def logpdf(self, x: NDArray) -> float:
        return 0.0

    def grad(self, x: NDArray) -> NDArray:
        return np.zeros_like(x, dtype=np.float64)

    def rescaled(self, factor: float | NDArray, shift: float = 0.0) -> Flat:
        return self


# =====================================================================
# Model priors
# =====================================================================

@dataclass(frozen=True)
class PriorSpec:
    """
    Priors of a Bayesian GLM.

    Attributes:
        coefficients: Prior on each non-intercept coefficient
        intercept: Prior on the intercept
        auxiliary: Prior on the Gaussian residual sd σ (must have
            positive support: Exponential or Flat)
        autoscale: Adapt prior scales to the data (see resolve())
    """
    coefficients: Prior = field(default_factory=lambda: Normal(0.0, 2.5))
    intercept: Prior = field(default_factory=lambda: Normal(0.0, 2.5))
    auxiliary: Prior = field(default_factory=lambda: Exponential(1.0))
    autoscale: bool = True

    def __post_init__(self) -> None:
        for name in ('coefficients', 'intercept', 'auxiliary'):
            if not isinstance(getattr(self, name), Prior):
                raise ValidationError(
                    f"{name}: expected a Prior, got {type(getattr(self, name)).__name__}"
                )
        if not isinstance(self.auxiliary, (Exponential, Flat)):
            raise ValidationError(
                f"auxiliary: σ needs a positive-support prior (Exponential or Flat), "
                f"got {type(self.auxiliary).__name__}"
            )

    def resolve(self, design: 'DesignMatrix', family: 'Family') -> ResolvedPriors:
        """
        Fix the priors for one design.

        With autoscale, for a Gaussian response with sample sd s_y and mean
        m_y: coefficient scales are multiplied by s_y / sd(x_j), the
        intercept scale by s_y with its location moved by m_y, and the
        exponential rate on σ divided by s_y. For a Binomial response only
        the 1/sd(x_j) factor applies. Predictors with two distinct values
        (indicators) are not rescaled.
        """
        X, y = design.X, design.y
        intercept_index = _intercept_index(X)

        coef = self.coefficients
        intercept = self.intercept
        auxiliary = self.auxiliary

        if self.autoscale:
            gaussian = family.name == 'gaussian'
            sd_y = float(np.std(y, ddof=1)) if gaussian and len(y) > 1 else 1.0
            if not sd_y > 0:
                sd_y = 1.0
            mean_y = float(np.mean(y)) if gaussian else 0.0

            factors = np.ones(design.p, dtype=np.float64)
            for j in range(design.p):
                if j == intercept_index:
                    continue
                column = X[:, j]
                if len(np.unique(column)) > 2:
                    factors[j] = 1.0 / float(np.std(column, ddof=1))
            coef = coef.rescaled(sd_y * factors)
            intercept = intercept.rescaled(sd_y, shift=mean_y)
            if gaussian:
                auxiliary = auxiliary.rescaled(sd_y)

        return ResolvedPriors(
            coefficients=coef,
            intercept=intercept,
            auxiliary=auxiliary if family.name == 'gaussian' else None,
            intercept_index=intercept_index,
            p=design.p,
        )


@dataclass(frozen=True)
class ResolvedPriors:
    """Priors fixed to a design; evaluates the log prior of β (and σ)."""
    coefficients: Prior
    intercept: Prior
    auxiliary: Prior | None
    intercept_index: int | None
    p: int

    def _coef_mask(self) -> NDArray[np.bool_]:
        mask = np.ones(self.p, dtype=bool)
        if self.intercept_index is not None:
            mask[self.intercept_index] = False
        return mask

    def logpdf_beta(self, beta: NDArray) -> float:
        total = self.coefficients.logpdf(_masked(self.coefficients, beta, self._coef_mask()))
        if self.intercept_index is not None:
            total += self.intercept.logpdf(beta[self.intercept_index:self.intercept_index + 1])
        return total

    def grad_beta(self, beta: NDArray) -> NDArray:
        g = self.coefficients.grad(beta)
        if self.intercept_index is not None:
            j = self.intercept_index
            g = np.array(g, dtype=np.float64, copy=True)
            g[j] = self.intercept.grad(beta[j:j + 1])[0]
        return g


def _masked(prior: Prior, beta: NDArray, mask: NDArray[np.bool_]) -> NDArray:
    """β with masked-out entries pinned at the prior location (constant density)."""
    if mask.all():
        return beta
    location = getattr(prior, "location", 0.0)
    return np.where(mask, beta, location)


def _intercept_index(X: NDArray) -> int | None:
    ones = np.flatnonzero(np.all(X == 1.0, axis=0)) if X.shape[0] else np.array([])
    return int(ones[0]) if len(ones) else None


def _check_scale(scale: Any, name: str) -> None:
    if not np.all(np.asarray(scale) > 0):
        raise ValidationError(f"{name}: scale must be positive, got {scale}")

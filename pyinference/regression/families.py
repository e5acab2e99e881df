"""
GLM family and link function specifications.

Each Family defines:
- A variance function V(μ) relating variance to the mean
- A default link function g(μ) mapping the mean to the linear predictor
- A deviance function for assessing model fit
- A log-likelihood function for AIC and for posterior sampling
- An initialization function for IRLS starting values
- A sampler for simulated responses (posterior predictive draws)

Each Link defines:
- g(μ) → η  (link)
- g⁻¹(η) → μ  (inverse link)
- dμ/dη  (derivative of inverse link, for IRLS weights)

References:
    McCullagh, P., & Nelder, J. A. (1989). Generalized Linear Models (2nd ed.)
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
from numpy.typing import NDArray
from scipy.special import expit


# =====================================================================
# Link functions
# =====================================================================

class Link(ABC):
    """Abstract link function g(μ) mapping mean to linear predictor."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def link(self, mu: NDArray) -> NDArray:
        """g(μ) → η."""
        ...

    @abstractmethod
    def linkinv(self, eta: NDArray) -> NDArray:
        """g⁻¹(η) → μ."""
        ...

    @abstractmethod
    def mu_eta(self, eta: NDArray) -> NDArray:
        """dμ/dη = (g⁻¹)'(η)."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class IdentityLink(Link):
    """Identity link: g(μ) = μ. Default for Gaussian family."""

    @property
    def name(self) -> str:
        return 'identity'

    def link(self, mu: NDArray) -> NDArray:
        return np.array(mu, dtype=np.float64, copy=True)

    def linkinv(self, eta: NDArray) -> NDArray:
        return np.array(eta, dtype=np.float64, copy=True)

    def mu_eta(self, eta: NDArray) -> NDArray:
        return np.ones_like(eta, dtype=np.float64)


class LogitLink(Link):
    """Logit link: g(μ) = log(μ/(1-μ)). Default for Binomial family."""

    @property
    def name(self) -> str:
        return 'logit'

    def link(self, mu: NDArray) -> NDArray:
        mu = np.clip(mu, 1e-10, 1 - 1e-10)
        return np.log(mu / (1 - mu))

    def linkinv(self, eta: NDArray) -> NDArray:
        return expit(eta)

    def mu_eta(self, eta: NDArray) -> NDArray:
        p = expit(eta)
        return np.maximum(p * (1.0 - p), 1e-10)


_LINK_CLASSES: dict[str, type[Link]] = {
    'identity': IdentityLink,
    'logit': LogitLink,
}


def _resolve_link(link: str | Link | None, default: Link) -> Link:
    """Resolve a link argument to a Link instance."""
    if link is None:
        return default
    if isinstance(link, Link):
        return link
    if isinstance(link, str):
        cls = _LINK_CLASSES.get(link.lower())
        if cls is None:
            valid = ', '.join(sorted(_LINK_CLASSES.keys()))
            raise ValueError(f"Unknown link: {link!r}. Valid links: {valid}")
        return cls()
    raise TypeError(f"link must be str or Link, got {type(link).__name__}")


# =====================================================================
# Family base class
# =====================================================================

class Family(ABC):
    """
    GLM family specification.

    Defines the relationship between the mean and variance of the
    response distribution, along with a link function.
    """

    def __init__(self, link: str | Link | None = None):
        self._link = _resolve_link(link, self._default_link())

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def _default_link(self) -> Link:
        ...

    @property
    def link(self) -> Link:
        return self._link

    @property
    def is_canonical(self) -> bool:
        """Whether the link is the family's canonical link."""
        return self._link.name == self._default_link().name

    @abstractmethod
    def variance(self, mu: NDArray) -> NDArray:
        """Variance function V(μ)."""
        ...

    @abstractmethod
    def deviance(self, y: NDArray, mu: NDArray, wt: NDArray) -> float:
        """Total deviance: 2 * Σ wt_i * d(y_i, μ_i)."""
        ...

    @abstractmethod
    def initialize(self, y: NDArray) -> NDArray:
        """Initial μ for IRLS, inside the valid range of the link."""
        ...

    @property
    def dispersion_is_fixed(self) -> bool:
        """True when φ is known a priori (Binomial: φ = 1)."""
        return False

    @abstractmethod
    def log_likelihood(
        self, y: NDArray, mu: NDArray, wt: NDArray, dispersion: float
    ) -> float:
        """Log-likelihood of y given μ (and φ where estimated)."""
        ...

    @abstractmethod
    def sample(
        self, mu: NDArray, dispersion: float | NDArray, rng: np.random.Generator
    ) -> NDArray:
        """Draw simulated responses with mean μ."""
        ...

    def aic(
        self, y: NDArray, mu: NDArray, wt: NDArray,
        rank: int, dispersion: float
    ) -> float:
        """AIC = -2 * loglik + 2 * rank."""
        ll = self.log_likelihood(y, mu, wt, dispersion)
        return -2.0 * ll + 2.0 * rank

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(link={self._link.name!r})"


# =====================================================================
# Concrete families
# =====================================================================

class Gaussian(Family):
    """Gaussian (Normal) family. Default link: identity.

    V(μ) = 1
    Deviance = Σ wt_i * (y_i - μ_i)²  (= RSS for identity link)
    """

    @property
    def name(self) -> str:
        return 'gaussian'

    def _default_link(self) -> Link:
        return IdentityLink()

    def variance(self, mu: NDArray) -> NDArray:
        return np.ones_like(mu)

    def initialize(self, y: NDArray) -> NDArray:
        return y.copy()

    def deviance(self, y: NDArray, mu: NDArray, wt: NDArray) -> float:
        return float(np.sum(wt * (y - mu) ** 2))

    def log_likelihood(
        self, y: NDArray, mu: NDArray, wt: NDArray, dispersion: float
    ) -> float:
        # -n/2 * log(2πσ²) - RSS/(2σ²) for unit weights
        n = float(np.sum(wt > 0))
        rss = float(np.sum(wt * (y - mu) ** 2))
        return -0.5 * (rss / dispersion + n * np.log(2 * np.pi * dispersion))

    def aic(
        self, y: NDArray, mu: NDArray, wt: NDArray,
        rank: int, dispersion: float
    ) -> float:
        """AIC with the MLE dispersion RSS/n, counting σ² as a parameter.

            AIC = -2 * loglik(σ²_mle) + 2 * (rank + 1)
        """
        n = float(np.sum(wt > 0))
        rss = float(np.sum(wt * (y - mu) ** 2))
        sigma_mle_sq = rss / n
        if sigma_mle_sq <= 0:
            return float('-inf')
        ll = -0.5 * (n + n * np.log(2 * np.pi * sigma_mle_sq))
        return -2.0 * ll + 2.0 + 2.0 * rank

    def sample(
        self, mu: NDArray, dispersion: float | NDArray, rng: np.random.Generator
    ) -> NDArray:
        sigma = np.sqrt(dispersion)
        return mu + sigma * rng.standard_normal(np.shape(mu))


class Binomial(Family):
    """Binomial family for binary responses. Default link: logit.

    V(μ) = μ(1-μ)
    Deviance = 2 * Σ wt_i * [y_i log(y_i/μ_i) + (1-y_i) log((1-y_i)/(1-μ_i))]
    """

    @property
    def name(self) -> str:
        return 'binomial'

    def _default_link(self) -> Link:
        return LogitLink()

    def variance(self, mu: NDArray) -> NDArray:
        mu = np.clip(mu, 1e-10, 1 - 1e-10)
        return mu * (1.0 - mu)

    def initialize(self, y: NDArray) -> NDArray:
        # (y + 0.5) / 2 keeps every starting mean strictly inside (0, 1)
        return (y + 0.5) / 2.0

    def deviance(self, y: NDArray, mu: NDArray, wt: NDArray) -> float:
        mu = np.clip(mu, 1e-10, 1 - 1e-10)
        # 0*log(0) = 0; np.where evaluates both branches
        with np.errstate(divide='ignore', invalid='ignore'):
            term1 = np.where(y > 0, y * np.log(y / mu), 0.0)
            term2 = np.where(y < 1, (1 - y) * np.log((1 - y) / (1 - mu)), 0.0)
        return 2.0 * float(np.sum(wt * (term1 + term2)))

    def log_likelihood(
        self, y: NDArray, mu: NDArray, wt: NDArray, dispersion: float
    ) -> float:
        mu = np.clip(mu, 1e-10, 1 - 1e-10)
        return float(np.sum(wt * (y * np.log(mu) + (1 - y) * np.log(1 - mu))))

    def sample(
        self, mu: NDArray, dispersion: float | NDArray, rng: np.random.Generator
    ) -> NDArray:
        return (rng.random(np.shape(mu)) < mu).astype(np.float64)

    @property
    def dispersion_is_fixed(self) -> bool:
        return True


# =====================================================================
# Family name → class mapping + resolver
# =====================================================================

_FAMILY_CLASSES: dict[str, type[Family]] = {
    'gaussian': Gaussian,
    'normal': Gaussian,
    'binomial': Binomial,
    'logistic': Binomial,
}


def resolve_family(family: str | Family) -> Family:
    """Resolve a family argument to a Family instance.

    Args:
        family: Either a string name ('gaussian', 'binomial')
                or a Family instance (passed through).

    Raises:
        ValueError: If string name is not recognized.
        TypeError: If argument is neither string nor Family.
    """
    if isinstance(family, Family):
        return family
    if isinstance(family, str):
        cls = _FAMILY_CLASSES.get(family.lower())
        if cls is None:
            valid = ', '.join(sorted(('gaussian', 'binomial')))
            raise ValueError(
                f"Unknown family: {family!r}. Valid families: {valid}"
            )
        return cls()
    raise TypeError(f"family must be str or Family, got {type(family).__name__}")

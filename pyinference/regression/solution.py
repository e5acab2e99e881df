"""
Regression solution types.

Contains the parameter payload and user-facing solution wrapper.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pyinference.core.result import Result
from pyinference.core.validation import check_probability

if TYPE_CHECKING:
    from pyinference.design.design import DesignMatrix
    from pyinference.regression.families import Family


@dataclass(frozen=True)
class GLMParams:
    """
    Parameter payload for a GLM fit (OLS is the Gaussian-identity case).

    This is the immutable data computed by backends.
    """
    coefficients: NDArray[np.floating[Any]]
    unscaled_cov: NDArray[np.floating[Any]]
    fitted_values: NDArray[np.floating[Any]]
    linear_predictor: NDArray[np.floating[Any]]
    residuals: NDArray[np.floating[Any]]
    deviance: float
    null_deviance: float
    aic: float
    log_likelihood: float
    dispersion: float
    rank: int
    df_residual: int
    df_null: int
    n_iter: int
    family_name: str
    link_name: str


@dataclass
class GLMSolution:
    """
    User-facing GLM results.

    Wraps the backend Result and provides convenient accessors for
    coefficients, Wald inference and fit statistics. Gaussian fits use
    t statistics on df_residual degrees of freedom; Binomial fits use z.
    """
    _result: Result[GLMParams]
    _design: 'DesignMatrix'
    _family: 'Family'

    # Cached computations
    _standard_errors: NDArray[np.floating[Any]] | None = None

    # === Coefficients ===

    @property
    def coefficients(self) -> NDArray[np.floating[Any]]:
        return self._result.params.coefficients

    @property
    def term_names(self) -> tuple[str, ...]:
        """Design column names, one per coefficient."""
        return self._design.column_names

    @property
    def vcov(self) -> NDArray[np.floating[Any]]:
        """Estimated covariance of the coefficients: φ (X'WX)⁻¹."""
        return self.dispersion * self._result.params.unscaled_cov

    @property
    def standard_errors(self) -> NDArray[np.floating[Any]]:
        """
        Standard errors of coefficients.

        SE(β) = sqrt(diag(φ (X'WX)⁻¹)); NaN for a saturated Gaussian fit.
        """
        if self._standard_errors is None:
            self._standard_errors = np.sqrt(np.diag(self.vcov))
        return self._standard_errors

    @property
    def statistic_name(self) -> str:
        return 'z' if self._family.dispersion_is_fixed else 't'

    @property
    def statistics(self) -> NDArray[np.floating[Any]]:
        """Wald statistics β / SE(β)."""
        with np.errstate(divide='ignore', invalid='ignore'):
            return self.coefficients / self.standard_errors

    @property
    def p_values(self) -> NDArray[np.floating[Any]]:
        """Two-sided Wald p-values."""
        stat = np.abs(self.statistics)
        if self.statistic_name == 'z':
            return 2.0 * stats.norm.sf(stat)
        return 2.0 * stats.t.sf(stat, self.df_residual)

    def conf_int(self, level: float = 0.95) -> NDArray[np.floating[Any]]:
        """
        Wald confidence intervals, shape (p, 2).

        Uses t quantiles for Gaussian fits and normal quantiles otherwise.
        """
        level = check_probability(level, 'level')
        alpha = 1.0 - level
        if self.statistic_name == 'z':
            q = stats.norm.ppf(1.0 - alpha / 2.0)
        else:
            q = stats.t.ppf(1.0 - alpha / 2.0, self.df_residual)
        half = q * self.standard_errors
        return np.column_stack([self.coefficients - half, self.coefficients + half])

    def coef_table(self) -> dict[str, dict[str, float]]:
        """Mapping term -> {estimate, se, statistic, p_value}."""
        return {
            name: {
                'estimate': float(b),
                'se': float(se),
                'statistic': float(s),
                'p_value': float(pv),
            }
            for name, b, se, s, pv in zip(
                self.term_names, self.coefficients, self.standard_errors,
                self.statistics, self.p_values,
            )
        }

    # === Fit statistics ===

    @property
    def fitted_values(self) -> NDArray[np.floating[Any]]:
        """Fitted means μ̂ on the response scale."""
        return self._result.params.fitted_values

    @property
    def linear_predictor(self) -> NDArray[np.floating[Any]]:
        return self._result.params.linear_predictor

    @property
    def residuals(self) -> NDArray[np.floating[Any]]:
        """Response residuals y - μ̂."""
        return self._result.params.residuals

    @property
    def dispersion(self) -> float:
        """φ: 1 for Binomial, RSS / (n - p) for Gaussian."""
        return self._result.params.dispersion

    @property
    def deviance(self) -> float:
        return self._result.params.deviance

    @property
    def null_deviance(self) -> float:
        return self._result.params.null_deviance

    @property
    def aic(self) -> float:
        return self._result.params.aic

    @property
    def log_likelihood(self) -> float:
        return self._result.params.log_likelihood

    @property
    def rank(self) -> int:
        return self._result.params.rank

    @property
    def df_residual(self) -> int:
        return self._result.params.df_residual

    @property
    def n_iter(self) -> int:
        """IRLS iterations (1 for a direct least squares solve)."""
        return self._result.params.n_iter

    # === Provenance ===

    @property
    def family(self) -> 'Family':
        return self._family

    @property
    def design(self) -> 'DesignMatrix':
        return self._design

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

    def summary(self, level: float = 0.95) -> str:
        """Generate R-style summary output."""
        params = self._result.params
        stat = self.statistic_name
        ci = self.conf_int(level)
        pct = f"{level:.0%}"
        width = max([len(n) for n in self.term_names] + [8])
        rule = "-" * (width + 60)

        lines = [
            f"Generalized Linear Model ({params.family_name}, link={params.link_name})",
            "=" * (width + 60),
            f"Observations: {self._design.n}",
            f"Coefficients: {self._design.p}",
            f"Dispersion: {self.dispersion:.6g}",
            "",
            f"{'':<{width}} {'Estimate':>12} {'Std.Error':>11} {stat + ' value':>9} "
            f"{'Pr(>|' + stat + '|)':>10} {pct + ' CI':>14}",
            rule,
        ]
        for j, name in enumerate(self.term_names):
            lines.append(
                f"{name:<{width}} {self.coefficients[j]:12.6f} "
                f"{self.standard_errors[j]:11.6f} {self.statistics[j]:9.3f} "
                f"{_format_p(self.p_values[j]):>10} "
                f"[{ci[j, 0]:.3f}, {ci[j, 1]:.3f}]"
            )
        lines.extend([
            rule,
            f"Null deviance: {self.null_deviance:.4f} on {params.df_null} DF",
            f"Residual deviance: {self.deviance:.4f} on {self.df_residual} DF",
            f"AIC: {self.aic:.4f}",
            f"Iterations: {self.n_iter}",
            f"Backend: {self.backend_name}",
        ])
        if self.timing:
            lines.append(f"Time: {self.timing.get('total_seconds', 0):.4f}s")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"GLMSolution(family={self._family.name!r}, n={self._design.n}, "
            f"p={self._design.p}, deviance={self.deviance:.4f})"
        )


def _format_p(p: float) -> str:
    if np.isnan(p):
        return "NA"
    if p < 2e-16:
        return "<2e-16"
    return f"{p:.4g}"

"""
Predictions from fitted models.

New rows are encoded with the DesignInfo captured at fit time, so they
get exactly the training columns: the same indicator columns and
reference levels, the same standardization parameters. Rows with unseen
categorical levels raise SchemaMismatchError.

Point fits (GLMSolution) give one prediction per row with a link-scale
standard error. Draw-based fits (BayesSolution, BootstrapSolution) give
one prediction per draw per row.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence, Union

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pyinference.core.exceptions import ValidationError
from pyinference.core.table import as_table
from pyinference.core.validation import check_array, check_finite, check_probability
from pyinference.core.compute.random import SeedLike, make_rng
from pyinference.bayes.solution import BayesSolution
from pyinference.montecarlo.solution import BootstrapSolution
from pyinference.regression.solution import GLMSolution
from pyinference.inference._intervals import percentile_intervals

Fit = Union[GLMSolution, BayesSolution, BootstrapSolution]

TYPES = ('response', 'link')


@dataclass(frozen=True)
class Prediction:
    """
    Predictions for a set of rows.

    Attributes:
        values: Point prediction per row (n,). For draw-based fits, the
            mean over draws (bootstrap: the apparent fit's prediction when
            there is one)
        draws: Predictions per draw (n_draws, n), or None for point fits
        se: Link-scale standard error per row (point fits only)
        type: 'response', 'link' or 'outcome' (posterior predictive)
        source: The fit that produced the predictions
        labels: Optional row labels (e.g. the grid of marginal_predictions)
        linear_predictor: Link-scale point prediction (point fits only)
    """
    values: NDArray[np.floating[Any]]
    draws: NDArray[np.floating[Any]] | None
    se: NDArray[np.floating[Any]] | None
    type: str
    source: Any
    labels: tuple[Any, ...] | None = None
    linear_predictor: NDArray[np.floating[Any]] | None = None

    def __len__(self) -> int:
        return len(self.values)

    def interval(self, level: float = 0.95) -> NDArray[np.floating[Any]]:
        """
        Interval per row, shape (n, 2).

        Draw-based predictions use percentile intervals of the draws. Point
        predictions use a Wald interval on the link scale (t quantiles for
        Gaussian fits), mapped through the inverse link for type='response'.
        """
        level = check_probability(level, 'level')
        if self.draws is not None:
            return percentile_intervals(np.sort(self.draws, axis=0), [level])[level]
        if self.se is None:
            raise ValidationError("interval: these predictions carry no uncertainty")

        fit: GLMSolution = self.source
        alpha = 1.0 - level
        if fit.statistic_name == 'z':
            q = stats.norm.ppf(1.0 - alpha / 2.0)
        else:
            q = stats.t.ppf(1.0 - alpha / 2.0, fit.df_residual)

        eta = self.linear_predictor
        lo, hi = eta - q * self.se, eta + q * self.se
        if self.type == 'response':
            lo, hi = fit.family.link.linkinv(lo), fit.family.link.linkinv(hi)
        return np.column_stack([lo, hi])


def predict(fit: Fit, new_data: Any, *, type: str = 'response') -> Prediction:
    """
    Predict for new rows.

    Args:
        fit: GLMSolution, BayesSolution or BootstrapSolution
        new_data: Observation table with the predictor columns; for fits
            on array designs, a matrix with the design's columns
        type: 'response' (inverse link applied) or 'link'

    Raises:
        SchemaMismatchError: Missing column or unseen level in new_data
        MissingDataError: Predictor values missing in new_data
    """
    if type not in TYPES:
        raise ValidationError(f"type: must be one of {TYPES}, got {type!r}")
    X = _encode(fit, new_data)
    link = fit.family.link

    if isinstance(fit, GLMSolution):
        eta = X @ fit.coefficients
        se = np.sqrt(np.sum((X @ fit.vcov) * X, axis=1))
        values = link.linkinv(eta) if type == 'response' else eta
        return Prediction(
            values=values, draws=None, se=se, type=type, source=fit,
            linear_predictor=eta,
        )

    coef_draws = _coefficient_draws(fit)
    eta_draws = coef_draws @ X.T                               # (n_draws, n)
    draws = link.linkinv(eta_draws) if type == 'response' else eta_draws

    if isinstance(fit, BootstrapSolution) and fit.apparent_coefficients is not None:
        eta = X @ fit.apparent_coefficients
        values = link.linkinv(eta) if type == 'response' else eta
    else:
        values = draws.mean(axis=0)
    return Prediction(values=values, draws=draws, se=None, type=type, source=fit)


def posterior_predict(
    fit: BayesSolution | BootstrapSolution,
    new_data: Any,
    *,
    seed: SeedLike = None,
) -> Prediction:
    """
    Simulate outcomes for new rows, one per draw per row.

    Each draw's mean is passed through the likelihood: Gaussian noise with
    that draw's σ (bootstrap: the replicate's dispersion), or Bernoulli
    draws for Binomial models.
    """
    if not isinstance(fit, (BayesSolution, BootstrapSolution)):
        raise ValidationError(
            f"fit: posterior_predict needs draws (BayesSolution or "
            f"BootstrapSolution), got {type(fit).__name__}"
        )
    rng = make_rng(seed)
    mu = predict(fit, new_data, type='response').draws           # (n_draws, n)

    if isinstance(fit, BayesSolution):
        sigma = fit.flat_sigma_draws
        dispersion = (sigma ** 2)[:, None] if sigma is not None else 1.0
    else:
        dispersion = fit.dispersions[:, None]

    outcomes = fit.family.sample(mu, dispersion, rng)
    return Prediction(
        values=outcomes.mean(axis=0),
        draws=outcomes,
        se=None,
        type='outcome',
        source=fit,
    )


def marginal_predictions(
    fit: Fit,
    data: Any,
    variable: str,
    values: Sequence[Any],
    *,
    type: str = 'response',
) -> Prediction:
    """
    Average prediction over the rows of `data` with `variable` set to each value.

    For draw-based fits the average is taken within each draw, so the
    result carries one averaged prediction per draw per value.

    Returns:
        Prediction with one row per entry of `values` (labels = values)
    """
    info = fit.design.info
    if info is None:
        raise ValidationError("marginal_predictions needs a fit built from a table")
    if variable not in info.spec.predictors:
        raise ValidationError(
            f"variable: {variable!r} is not a predictor of the model "
            f"{list(info.spec.predictors)}"
        )
    values = list(values)
    if not values:
        raise ValidationError("values: at least one value is required")

    table = as_table(data)
    means, draw_means = [], []
    for v in values:
        counterfactual = table.copy()
        counterfactual[variable] = v
        pred = predict(fit, counterfactual, type=type)
        means.append(float(np.mean(pred.values)))
        if pred.draws is not None:
            draw_means.append(pred.draws.mean(axis=1))

    return Prediction(
        values=np.array(means),
        draws=np.column_stack(draw_means) if draw_means else None,
        se=None,
        type=type,
        source=fit,
        labels=tuple(values),
    )


# =====================================================================
# Helpers
# =====================================================================

def _encode(fit: Fit, new_data: Any) -> NDArray[np.floating[Any]]:
    if not isinstance(fit, (GLMSolution, BayesSolution, BootstrapSolution)):
        raise ValidationError(
            f"fit: expected GLMSolution, BayesSolution or BootstrapSolution, "
            f"got {type(fit).__name__}"
        )
    design = fit.design
    if design.info is not None:
        return design.info.transform(new_data)

    X = check_array(new_data, 'new_data')
    if X.ndim == 1:
        X = X.reshape(1, -1)
    if X.ndim != 2 or X.shape[1] != design.p:
        raise ValidationError(
            f"new_data: expected a matrix with {design.p} columns, got shape {X.shape}"
        )
    check_finite(X, 'new_data')
    return X


def _coefficient_draws(fit: BayesSolution | BootstrapSolution) -> NDArray:
    if isinstance(fit, BayesSolution):
        return fit.flat_draws
    if fit.replicates.shape[0] == 0:
        raise ValidationError("fit: bootstrap has no successful replicates")
    return fit.replicates

"""
Inference summaries of coefficient distributions.

summarize() reduces bootstrap replicates, posterior draws or a raw draw
matrix to a point estimate and one interval per confidence level for
each term.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pyinference.core.exceptions import ValidationError
from pyinference.core.validation import check_array, check_finite, check_probability
from pyinference.bayes.solution import BayesSolution
from pyinference.montecarlo.solution import BootstrapSolution
from pyinference.inference._intervals import hdi_intervals, percentile_intervals

METHODS = ('percentile', 'hdi')


@dataclass(frozen=True)
class InferenceSummary:
    """
    Point estimates and intervals per term.

    Attributes:
        terms: Term names in order
        estimates: Point estimate per term (k,)
        intervals: Level -> (k, 2) array of [lower, upper]
        method: 'percentile' or 'hdi'
        source: 'bootstrap', 'bayes' or 'draws'
        n_draws: Number of draws the summary is based on
    """
    terms: tuple[str, ...]
    estimates: NDArray[np.floating[Any]]
    intervals: dict[float, NDArray[np.floating[Any]]]
    method: str
    source: str
    n_draws: int

    @property
    def levels(self) -> tuple[float, ...]:
        return tuple(self.intervals)

    def _level(self, level: float | None) -> float:
        if level is None:
            return self.levels[0]
        for known in self.levels:
            if np.isclose(known, level):
                return known
        raise ValidationError(
            f"level: {level} was not computed; available levels {list(self.levels)}"
        )

    def _index(self, term: str) -> int:
        try:
            return self.terms.index(term)
        except ValueError:
            raise ValidationError(
                f"term: unknown term {term!r}; known terms {list(self.terms)}"
            ) from None

    def __getitem__(self, term: str) -> dict[str, Any]:
        """{'estimate': float, 'intervals': {level: (lower, upper)}} for one term."""
        j = self._index(term)
        return {
            'estimate': float(self.estimates[j]),
            'intervals': {
                c: (float(ci[j, 0]), float(ci[j, 1])) for c, ci in self.intervals.items()
            },
        }

    def as_dict(self, level: float | None = None) -> dict[str, tuple[float, float, float]]:
        """Mapping term -> (estimate, lower, upper) at one level (default: the first)."""
        ci = self.intervals[self._level(level)]
        return {
            term: (float(self.estimates[j]), float(ci[j, 0]), float(ci[j, 1]))
            for j, term in enumerate(self.terms)
        }

    def excludes_zero(self, level: float | None = None) -> dict[str, bool]:
        """Whether each term's interval lies strictly on one side of zero."""
        ci = self.intervals[self._level(level)]
        return {
            term: bool(ci[j, 0] > 0.0 or ci[j, 1] < 0.0)
            for j, term in enumerate(self.terms)
        }

    def to_frame(self) -> pd.DataFrame:
        """Long table: one row per (term, level) with estimate, lower, upper."""
        rows = []
        for c, ci in self.intervals.items():
            for j, term in enumerate(self.terms):
                rows.append({
                    'term': term,
                    'level': c,
                    'estimate': float(self.estimates[j]),
                    'lower': float(ci[j, 0]),
                    'upper': float(ci[j, 1]),
                })
        return pd.DataFrame(rows, columns=['term', 'level', 'estimate', 'lower', 'upper'])

    def summary(self) -> str:
        width = max([len(t) for t in self.terms] + [8])
        header = f"{'':<{width}} {'Estimate':>12}" + "".join(
            f" {f'{c:.0%} lower':>12} {f'{c:.0%} upper':>12}" for c in self.levels
        )
        lines = [
            f"Inference summary ({self.method}, {self.source}, {self.n_draws} draws)",
            header,
            "-" * len(header),
        ]
        for j, term in enumerate(self.terms):
            cells = "".join(
                f" {ci[j, 0]:12.5f} {ci[j, 1]:12.5f}" for ci in self.intervals.values()
            )
            lines.append(f"{term:<{width}} {self.estimates[j]:12.5f}{cells}")
        return "\n".join(lines)


def summarize(
    source: BootstrapSolution | BayesSolution | Any,
    conf_levels: float | Iterable[float] = 0.95,
    *,
    method: str = 'percentile',
    terms: Sequence[str] | None = None,
) -> InferenceSummary:
    """
    Summarize a coefficient distribution.

    Args:
        source: BootstrapSolution, BayesSolution, or an array of draws
            (n, k) (a 1-D array is a single term)
        conf_levels: One level or several, each in (0, 1)
        method: 'percentile' or 'hdi'
        terms: For solutions, the subset of terms to report; for arrays,
            the term names (default x0, x1, ...)

    Point estimates are the apparent fit's coefficients for a bootstrap
    (the replicate mean when there is no apparent fit) and the mean of
    the draws otherwise. Bayesian Gaussian fits also report 'sigma'.

    Example:
        >>> s = summarize(boot, [0.5, 0.89, 0.95], method="hdi")
        >>> s.as_dict(0.89)["kills"]
        (0.41, 0.22, 0.63)
    """
    if method not in METHODS:
        raise ValidationError(f"method: must be one of {METHODS}, got {method!r}")
    levels = _levels(conf_levels)

    if isinstance(source, BootstrapSolution):
        draws = source.replicates
        names = source.term_names
        if source.apparent_coefficients is not None:
            estimates = source.apparent_coefficients
        else:
            estimates = draws.mean(axis=0) if len(draws) else np.full(len(names), np.nan)
        kind = 'bootstrap'
    elif isinstance(source, BayesSolution):
        draws = source.flat_draws
        names = source.term_names
        if source.flat_sigma_draws is not None:
            draws = np.column_stack([draws, source.flat_sigma_draws])
            names = names + ('sigma',)
        estimates = draws.mean(axis=0)
        kind = 'bayes'
    else:
        draws = check_array(source, 'draws')
        if draws.ndim == 1:
            draws = draws.reshape(-1, 1)
        if draws.ndim != 2:
            raise ValidationError(f"draws: expected a 1-D or 2-D array, got {draws.ndim}-D")
        check_finite(draws, 'draws')
        names = tuple(terms) if terms is not None else tuple(
            f"x{j}" for j in range(draws.shape[1])
        )
        if len(names) != draws.shape[1]:
            raise ValidationError(
                f"terms: expected {draws.shape[1]} names, got {len(names)}"
            )
        estimates = draws.mean(axis=0)
        kind = 'draws'
        terms = None

    if draws.shape[0] == 0:
        raise ValidationError("source holds no draws to summarize")

    if terms is not None:
        missing = [t for t in terms if t not in names]
        if missing:
            raise ValidationError(f"terms: unknown terms {missing}; known terms {list(names)}")
        cols = [names.index(t) for t in terms]
        draws, estimates, names = draws[:, cols], estimates[cols], tuple(terms)

    sorted_draws = np.sort(draws, axis=0)
    compute = hdi_intervals if method == 'hdi' else percentile_intervals

    return InferenceSummary(
        terms=tuple(names),
        estimates=np.asarray(estimates, dtype=np.float64),
        intervals=compute(sorted_draws, levels),
        method=method,
        source=kind,
        n_draws=draws.shape[0],
    )


def _levels(conf_levels: float | Iterable[float]) -> tuple[float, ...]:
    if np.isscalar(conf_levels):
        conf_levels = [conf_levels]
    levels: list[float] = []
    for c in conf_levels:
        c = check_probability(c, 'conf_levels')
        if c not in levels:
            levels.append(c)
    if not levels:
        raise ValidationError("conf_levels: at least one level is required")
    return tuple(levels)

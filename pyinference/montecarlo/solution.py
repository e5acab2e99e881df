"""
Solution wrapper for bootstrap results.

BootstrapSolution wraps Result[BootParams] and provides convenient
accessors and R-style summary output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from pyinference.core.result import Result
from pyinference.montecarlo._common import BootParams

if TYPE_CHECKING:
    from pyinference.design.design import DesignMatrix
    from pyinference.montecarlo.design import BootstrapDesign
    from pyinference.regression.families import Family
    from pyinference.regression.solution import GLMSolution


@dataclass
class BootstrapSolution:
    """
    User-facing bootstrap results.

    Matches R's boot object output: original (apparent) coefficients,
    replicate matrix, bias and SE, plus the tally of failed replicates.
    """
    _result: Result[BootParams]
    _design: 'BootstrapDesign'
    _apparent: 'GLMSolution | None' = None

    # --- Replicates ---

    @property
    def replicates(self) -> NDArray[np.floating[Any]]:
        """Coefficients of successful replicates, shape (k, p), replicate order."""
        return self._result.params.t

    @property
    def dispersions(self) -> NDArray[np.floating[Any]]:
        """Dispersion of each successful replicate, shape (k,)."""
        return self._result.params.dispersions

    @property
    def replicate_index(self) -> NDArray[np.integer[Any]]:
        """Replicate number of each row of `replicates`."""
        return self._result.params.replicate_index

    @property
    def apparent(self) -> 'GLMSolution | None':
        """Fit to the full table, or None when apparent=False."""
        return self._apparent

    @property
    def apparent_coefficients(self) -> NDArray[np.floating[Any]] | None:
        return self._result.params.t0

    @property
    def times(self) -> int:
        """Number of replicates attempted."""
        return self._result.params.times

    @property
    def n_failed(self) -> int:
        return len(self._result.params.failures)

    @property
    def failures(self) -> tuple[tuple[int, str], ...]:
        """(replicate number, reason) for each dropped replicate."""
        return self._result.params.failures

    @property
    def bias(self) -> NDArray[np.floating[Any]]:
        """Bootstrap bias estimate: mean(replicates) - apparent, shape (p,)."""
        return self._result.params.bias

    @property
    def se(self) -> NDArray[np.floating[Any]]:
        """Bootstrap standard error: sd(replicates), shape (p,)."""
        return self._result.params.se

    @property
    def term_names(self) -> tuple[str, ...]:
        return self._design.design.column_names

    # --- Metadata ---

    @property
    def design(self) -> 'DesignMatrix':
        return self._design.design

    @property
    def family(self) -> 'Family':
        return self._design.family

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

    # --- Display ---

    def summary(self) -> str:
        """
        R-style print.boot output.

        Produces:
            ORDINARY NONPARAMETRIC BOOTSTRAP

            Bootstrap Statistics :
                          original       bias    std. error
            Intercept     5.12345    0.01234     0.56789
            x             3.45678   -0.00567     0.34567
        """
        names = self.term_names
        width = max([len(n) for n in names] + [8])
        t0 = self.apparent_coefficients
        lines = [
            "",
            "ORDINARY NONPARAMETRIC BOOTSTRAP",
            "",
            f"Model: {self._design.design.info.spec if self._design.design.info else 'array design'}"
            f" ({self.family.name})",
            f"Replicates: {self.times} ({self.n_failed} failed)",
            "",
            "Bootstrap Statistics :",
            f"{'':<{width}} {'original':>14s} {'bias':>14s} {'std. error':>14s}",
        ]
        for j, name in enumerate(names):
            original = f"{t0[j]:14.5f}" if t0 is not None else f"{'NA':>14s}"
            lines.append(
                f"{name:<{width}} {original} {self.bias[j]:14.5f} {self.se[j]:14.5f}"
            )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"BootstrapSolution(times={self.times}, k={self.replicates.shape[0]}, "
            f"n_failed={self.n_failed}, backend={self.backend_name!r})"
        )

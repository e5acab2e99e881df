"""
CPU backend for bootstrap resampling of GLM fits.

All row indices are drawn up front from the seeded generator, one row of
`times x n` per replicate, so the replicate set depends only on the seed
and never on how the fits are scheduled across workers.
"""

from __future__ import annotations

import numpy as np

from pyinference.core.result import Result
from pyinference.core.exceptions import CollinearityError, ConvergenceError
from pyinference.core.compute.timing import Timer
from pyinference.core.compute.random import make_rng
from pyinference.core.compute.parallel import run_tasks
from pyinference.regression.solvers import fit
from pyinference.montecarlo._common import BootParams
from pyinference.montecarlo.design import BootstrapDesign


class CPUBootstrapBackend:
    """
    CPU backend for case resampling.

    Each replicate refits the model on n rows drawn with replacement,
    encoded with the full-table encoding. Replicates whose fit raises
    ConvergenceError or CollinearityError are dropped and recorded.
    """

    @property
    def name(self) -> str:
        return 'cpu_bootstrap'

    def solve(self, design: BootstrapDesign):
        """Run the bootstrap; return (Result[BootParams], apparent fit or None)."""
        timer = Timer()
        timer.start()

        full = design.design
        n, p = full.n, full.p
        rng = make_rng(design.seed)

        with timer.section('resample_indices'):
            indices = rng.integers(0, n, size=(design.times, n))

        apparent = None
        if design.apparent:
            with timer.section('apparent_fit'):
                apparent = self._fit(design, full)

        def replicate(b: int):
            try:
                solution = self._fit(design, full.take(indices[b]))
            except (ConvergenceError, CollinearityError) as e:
                return b, None, f"{type(e).__name__}: {e}"
            return b, solution, None

        with timer.section('bootstrap_replicates'):
            outcomes = run_tasks(replicate, range(design.times), n_jobs=design.n_jobs)

        with timer.section('summary_statistics'):
            ok = [(b, s) for b, s, _ in outcomes if s is not None]
            failures = tuple((b, reason) for b, s, reason in outcomes if s is None)

            if ok:
                t = np.array([s.coefficients for _, s in ok])
                dispersions = np.array([s.dispersion for _, s in ok])
            else:
                t = np.empty((0, p), dtype=np.float64)
                dispersions = np.empty(0, dtype=np.float64)
            replicate_index = np.array([b for b, _ in ok], dtype=np.intp)

            t0 = apparent.coefficients if apparent is not None else None
            k = t.shape[0]
            with np.errstate(invalid='ignore'):
                mean_t = t.mean(axis=0) if k else np.full(p, np.nan)
                se = t.std(axis=0, ddof=1) if k > 1 else np.full(p, np.nan)
            bias = mean_t - t0 if t0 is not None else np.full(p, np.nan)

        timer.stop()

        warnings_list: list[str] = []
        if failures:
            warnings_list.append(
                f"{len(failures)} of {design.times} bootstrap replicates failed "
                f"and were dropped"
            )

        params = BootParams(
            t0=t0,
            t=t,
            dispersions=dispersions,
            replicate_index=replicate_index,
            times=design.times,
            failures=failures,
            bias=bias,
            se=se,
        )

        result = Result(
            params=params,
            info={
                'n': n,
                'p': p,
                'family': design.family.name,
                'n_failed': len(failures),
                'apparent': design.apparent,
            },
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(warnings_list),
        )
        return result, apparent

    @staticmethod
    def _fit(design: BootstrapDesign, dm):
        return fit(
            dm,
            family=design.family,
            tol=design.tol,
            max_iter=design.max_iter,
            max_condition=design.max_condition,
        )

"""
CPU backend for Generalized Linear Models via IRLS.

Implements Iteratively Reweighted Least Squares (Fisher scoring) after
R's glm.fit(). Each iteration solves a weighted least squares problem via
QR on the transformed system √W·X, √W·z, with the same rank and condition
checks as the direct solve.

Algorithm:
    Initialize: μ = family.initialize(y), η = link(μ)
    For iteration 1..max_iter:
        dμ/dη = link.mu_eta(η)
        V(μ) = family.variance(μ)
        z = η + (y - μ) / dμ_dη              # working response
        w = (dμ/dη)² / V(μ)                  # working weights
        Solve WLS: min_β || √w·z - √w·X·β ||²  via QR
        η = X @ β, μ = linkinv(η)
        Check: max |β - β_old| < tol

A fit that has not met the criterion after max_iter iterations raises
ConvergenceError; no best-guess coefficients are returned.
"""

from typing import Any

import numpy as np
from numpy.typing import NDArray

from pyinference.core.result import Result
from pyinference.core.exceptions import ConvergenceError
from pyinference.core.compute.timing import Timer
from pyinference.core.compute.tolerances import (
    CONDITION_THRESHOLD,
    IRLS_MAX_ITER,
    IRLS_TOL,
)
from pyinference.core.compute.linalg.qr import qr_solve, unscaled_covariance
from pyinference.design.design import DesignMatrix
from pyinference.regression.families import Family
from pyinference.regression.solution import GLMParams


class CPUIRLSBackend:
    """CPU backend using IRLS with QR inner solve.

    - Convergence criterion: max |Δβ| < tol
    - Defaults: tol=1e-8, max_iter=25
    - Standard errors from the weighted QR of the final iteration
    """

    @property
    def name(self) -> str:
        return 'cpu_irls'

    def solve(
        self,
        design: DesignMatrix,
        family: Family,
        tol: float = IRLS_TOL,
        max_iter: int = IRLS_MAX_ITER,
        max_condition: float = CONDITION_THRESHOLD,
    ) -> Result[GLMParams]:
        """Run IRLS to fit the GLM.

        Args:
            design: DesignMatrix with X and y
            family: GLM family specification
            tol: Convergence tolerance on the largest coefficient change
            max_iter: Maximum IRLS iterations
            max_condition: Largest acceptable condition number of √W·X

        Returns:
            Result[GLMParams] with coefficients, deviance, residuals, etc.

        Raises:
            ConvergenceError: Criterion not met within max_iter iterations
            CollinearityError: Weighted design rank-deficient or ill-conditioned
        """
        timer = Timer()
        timer.start()

        X, y = design.X, design.y
        n = design.n
        link = family.link

        # Prior weights (unit weights; the design has one row per observation)
        wt = np.ones(n, dtype=np.float64)

        with timer.section('initialize'):
            mu = family.initialize(y)
            eta = link.link(mu)

        converged = False
        beta_old: NDArray | None = None
        change = float('inf')

        with timer.section('irls'):
            for iteration in range(1, max_iter + 1):
                mu_eta_val = link.mu_eta(eta)
                var_mu = family.variance(mu)

                z = eta + (y - mu) / mu_eta_val
                w = np.maximum(wt * (mu_eta_val ** 2) / var_mu, 1e-30)

                sqrt_w = np.sqrt(w)
                coefficients, qr_result = qr_solve(
                    X * sqrt_w[:, np.newaxis],
                    z * sqrt_w,
                    max_condition=max_condition,
                    matrix_name='weighted X',
                )

                eta = X @ coefficients
                mu = link.linkinv(eta)

                if not np.all(np.isfinite(coefficients)):
                    raise ConvergenceError(
                        f"IRLS produced non-finite coefficients at iteration {iteration}",
                        iterations=iteration,
                        final_change=change,
                        reason='non_finite',
                        threshold=tol,
                    )

                if beta_old is not None:
                    change = float(np.max(np.abs(coefficients - beta_old)))
                    if change < tol:
                        converged = True
                        break
                beta_old = coefficients

        dev = family.deviance(y, mu, wt)

        if not converged:
            reason = 'separation' if _separated(family, y, eta, dev) else 'max_iterations'
            raise ConvergenceError(
                f"IRLS did not converge in {max_iter} iterations "
                f"(max coefficient change {change:.3g}, tol {tol:.3g}, "
                f"deviance {dev:.6g})",
                iterations=max_iter,
                final_change=change,
                reason=reason,
                threshold=tol,
            )

        with timer.section('statistics'):
            rank = qr_result.rank
            df_residual = n - rank
            if family.dispersion_is_fixed:
                dispersion = 1.0
            else:
                dispersion = dev / df_residual if df_residual > 0 else float('nan')

            aic = family.aic(y, mu, wt, rank, dispersion)
            extra = 0 if family.dispersion_is_fixed else 1
            log_likelihood = -0.5 * (aic - 2.0 * (rank + extra))
            unscaled_cov = unscaled_covariance(qr_result.R)
            null_dev = null_deviance(X, y, wt, family)

        timer.stop()

        params = GLMParams(
            coefficients=coefficients,
            unscaled_cov=unscaled_cov,
            fitted_values=mu,
            linear_predictor=eta,
            residuals=y - mu,
            deviance=dev,
            null_deviance=null_dev,
            aic=aic,
            log_likelihood=log_likelihood,
            dispersion=dispersion,
            rank=rank,
            df_residual=df_residual,
            df_null=n - 1 if has_intercept(X) else n,
            n_iter=iteration,
            family_name=family.name,
            link_name=link.name,
        )

        info: dict[str, Any] = {
            'method': 'irls_qr',
            'rank': rank,
            'condition_number': qr_result.condition_number,
            'converged': True,
            'iterations': iteration,
            'final_change': change,
        }

        return Result(
            params=params,
            info=info,
            timing=timer.result(),
            backend_name=self.name,
            warnings=(),
        )


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def has_intercept(X: NDArray) -> bool:
    """True if some column of X is identically one."""
    return bool(X.shape[0] > 0 and np.any(np.all(X == 1.0, axis=0)))


def null_deviance(X: NDArray, y: NDArray, wt: NDArray, family: Family) -> float:
    """Deviance of the intercept-only model.

    With an intercept the null model's fitted mean is the weighted mean
    of y (the MLE under a canonical link); without one it is linkinv(0),
    as in R's glm.fit().
    """
    if has_intercept(X):
        mu_null = np.full_like(y, np.sum(wt * y) / np.sum(wt))
    else:
        mu_null = family.link.linkinv(np.zeros_like(y))
    return family.deviance(y, mu_null, wt)


def _separated(family, y, eta, dev) -> bool:
    """
    True when the maximum likelihood estimate does not exist.

    A linear predictor that puts every 1 above zero and every 0 below it
    separates the classes; a vanishing deviance means the fit
    interpolates the data.
    """
    if dev < 1e-6:
        return True
    if family.name != 'binomial':
        return False
    return bool(np.all((eta > 0.0) == (y > 0.5)))

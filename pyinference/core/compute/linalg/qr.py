"""
QR decomposition and least squares.

All coefficient solves in the library go through qr_solve(): OLS solves
it once, IRLS once per iteration on the weighted system. The solve
refuses rank-deficient or ill-conditioned matrices instead of returning
unstable coefficients.
"""

from dataclasses import dataclass
from typing import Any, Literal

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import solve_triangular

from pyinference.core.exceptions import CollinearityError
from pyinference.core.compute.tolerances import CONDITION_THRESHOLD


@dataclass(frozen=True)
class QRResult:
    """
    Result of QR decomposition.

    Attributes:
        Q: Orthogonal matrix (n x k where k = min(n, p) for reduced mode)
        R: Upper triangular matrix (k x p)
        rank: Numerical rank determined from R diagonal
        condition_number: 2-norm condition number of R (equal to that of X)
    """
    Q: NDArray[np.floating[Any]]
    R: NDArray[np.floating[Any]]
    rank: int
    condition_number: float


def qr_cpu(
    X: NDArray[np.floating[Any]],
    mode: Literal['reduced', 'complete'] = 'reduced'
) -> QRResult:
    """
    QR decomposition using LAPACK (via NumPy).

    Args:
        X: Matrix to decompose (n x p)
        mode: 'reduced' for economy QR, 'complete' for full QR

    Returns:
        QRResult with Q, R, numerical rank and condition number
    """
    Q, R = np.linalg.qr(X, mode=mode)

    # Numerical rank from R diagonal
    diag_R = np.abs(np.diag(R))
    if len(diag_R) > 0 and diag_R.max() > 0:
        tol = max(X.shape) * np.finfo(X.dtype).eps * diag_R.max()
        rank = int(np.sum(diag_R > tol))
    else:
        rank = 0

    p = X.shape[1]
    if rank < p or X.shape[0] < p:
        condition_number = float('inf')
    else:
        condition_number = float(np.linalg.cond(R[:p, :p]))

    return QRResult(Q=Q, R=R, rank=rank, condition_number=condition_number)


def qr_solve(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
    *,
    max_condition: float = CONDITION_THRESHOLD,
    matrix_name: str = 'X',
) -> tuple[NDArray[np.floating[Any]], QRResult]:
    """
    Solve least squares via QR decomposition.

    Solves min_β ||y - Xβ||² as:
        X = QR
        β = R⁻¹ Q'y

    Args:
        X: Design matrix (n x p), must have n >= p
        y: Response vector (n,)
        max_condition: Largest acceptable condition number of X
        matrix_name: Name used in error messages

    Returns:
        (β, QRResult)

    Raises:
        CollinearityError: If X is rank-deficient or cond(X) > max_condition
    """
    n, p = X.shape
    if n < p:
        raise CollinearityError(
            f"{matrix_name} has fewer rows ({n}) than columns ({p}); "
            f"coefficients are not identifiable.",
            matrix_name=matrix_name,
            rank=n,
            expected_rank=p,
        )

    qr_result = qr_cpu(X, mode='reduced')

    if qr_result.rank < p:
        raise CollinearityError(
            f"{matrix_name} is rank-deficient: rank={qr_result.rank}, expected={p}. "
            f"This indicates perfect multicollinearity.",
            matrix_name=matrix_name,
            condition_number=qr_result.condition_number,
            rank=qr_result.rank,
            expected_rank=p,
            threshold=max_condition,
        )

    if qr_result.condition_number > max_condition:
        raise CollinearityError(
            f"{matrix_name} is ill-conditioned: condition number "
            f"{qr_result.condition_number:.3g} exceeds {max_condition:.3g}.",
            matrix_name=matrix_name,
            condition_number=qr_result.condition_number,
            rank=qr_result.rank,
            expected_rank=p,
            threshold=max_condition,
        )

    Qty = qr_result.Q.T @ y
    beta = solve_triangular(qr_result.R[:p, :p], Qty[:p], lower=False)

    return beta, qr_result


def unscaled_covariance(R: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
    """
    (X'X)⁻¹ from the triangular factor of X.

    Since X'X = R'R, (X'X)⁻¹ = R⁻¹ R⁻ᵀ.
    """
    p = R.shape[1]
    R_inv = solve_triangular(R[:p, :p], np.eye(p), lower=False)
    return R_inv @ R_inv.T

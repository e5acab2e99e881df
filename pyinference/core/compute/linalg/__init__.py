"""
Linear algebra kernels.

    qr: QR decomposition, guarded least squares and (X'X)⁻¹
"""

from pyinference.core.compute.linalg.qr import (
    QRResult,
    qr_cpu,
    qr_solve,
    unscaled_covariance,
)

__all__ = [
    "QRResult",
    "qr_cpu",
    "qr_solve",
    "unscaled_covariance",
]

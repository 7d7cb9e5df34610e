"""
Linear algebra kernels for pyregkit.

All functions follow these conventions:
    - NumPy/SciPy (LAPACK under the hood)
    - Each decomposition returns a structured result dataclass
    - Errors are raised immediately with clear messages

Submodules:
    qr: Column-pivoted QR decomposition, rank checks and least squares
"""

from pyregkit.core.compute.linalg.qr import (
    QRResult,
    check_full_rank,
    hat_diagonal,
    qr_decompose,
    qr_solve,
    unscaled_covariance,
)

__all__ = [
    "QRResult",
    "check_full_rank",
    "hat_diagonal",
    "qr_decompose",
    "qr_solve",
    "unscaled_covariance",
]

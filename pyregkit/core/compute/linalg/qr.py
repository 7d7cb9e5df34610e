"""
Pivoted QR decomposition and least-squares solve.

Column-pivoted QR (LAPACK geqp3 via SciPy) orders the columns by
decreasing contribution, so the numerical rank can be read off the
diagonal of R and the aliased columns identified by the pivot. Used by
OLS, every IRLS iteration, and rank checks for Cox covariates.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy import linalg

from pyregkit.core.exceptions import SingularMatrixError


@dataclass(frozen=True)
class QRResult:
    """
    Result of a pivoted QR decomposition X[:, pivot] = Q R.

    Attributes:
        Q: Orthonormal columns (n x k, k = min(n, p))
        R: Upper triangular factor (k x p), columns in pivot order
        pivot: Column permutation applied to X
        rank: Numerical rank determined from the R diagonal
    """
    Q: NDArray[np.floating[Any]]
    R: NDArray[np.floating[Any]]
    pivot: NDArray[np.intp]
    rank: int

    @property
    def aliased(self) -> NDArray[np.intp]:
        """Original column indices that fall beyond the numerical rank."""
        return np.sort(self.pivot[self.rank:])


def qr_decompose(X: NDArray[np.floating[Any]]) -> QRResult:
    """
    Economy-size column-pivoted QR decomposition.

    The rank tolerance matches LAPACK's dgelsy convention:
    max(n, p) * eps * |R[0, 0]|.

    Args:
        X: Matrix to decompose (n x p)

    Returns:
        QRResult with Q, R, pivot, and numerical rank
    """
    Q, R, pivot = linalg.qr(X, mode='economic', pivoting=True)

    diag_R = np.abs(np.diag(R))
    if len(diag_R) > 0 and diag_R[0] > 0:
        tol = max(X.shape) * np.finfo(np.float64).eps * diag_R[0]
        rank = int(np.sum(diag_R > tol))
    else:
        rank = 0

    return QRResult(Q=Q, R=R, pivot=pivot, rank=rank)


def check_full_rank(
    qr: QRResult,
    p: int,
    *,
    matrix_name: str = 'X',
    column_names: tuple[str, ...] | None = None,
) -> None:
    """
    Raise SingularMatrixError unless the decomposition has full column rank.

    Args:
        qr: Decomposition to check
        p: Number of columns the matrix should span
        matrix_name: Name used in the error message
        column_names: Optional labels used to report aliased columns

    Raises:
        SingularMatrixError: If qr.rank < p
    """
    if qr.rank >= p:
        return

    aliased_idx = qr.aliased
    if column_names is not None:
        aliased = tuple(column_names[i] for i in aliased_idx)
    else:
        aliased = tuple(f"column {i}" for i in aliased_idx)

    raise SingularMatrixError(
        f"{matrix_name} is rank-deficient: rank={qr.rank}, expected={p}. "
        f"This indicates perfect multicollinearity "
        f"(aliased: {', '.join(aliased)}).",
        matrix_name=matrix_name,
        rank=qr.rank,
        expected_rank=p,
        aliased=aliased,
    )


def qr_solve(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
    *,
    column_names: tuple[str, ...] | None = None,
) -> tuple[NDArray[np.floating[Any]], QRResult]:
    """
    Solve least squares min ||y - Xβ||² via pivoted QR.

    The solution is computed as:
        X P = Q R
        β[P] = R⁻¹ Q'y

    Args:
        X: Design matrix (n x p), must have n >= p
        y: Response vector (n,)
        column_names: Optional labels used if X is rank-deficient

    Returns:
        (beta, qr_result) with beta in the original column order

    Raises:
        SingularMatrixError: If X is rank-deficient
    """
    n, p = X.shape
    qr = qr_decompose(X)
    check_full_rank(qr, p, column_names=column_names)

    Qty = qr.Q.T @ y
    beta_pivoted = linalg.solve_triangular(qr.R[:p, :p], Qty[:p], lower=False)

    beta = np.empty(p, dtype=np.float64)
    beta[qr.pivot] = beta_pivoted
    return beta, qr


def unscaled_covariance(qr: QRResult) -> NDArray[np.floating[Any]]:
    """
    (X'X)⁻¹ recovered from a full-rank pivoted QR of X.

    With X P = Q R, (X'X)⁻¹ = P R⁻¹ R⁻ᵀ Pᵀ.
    """
    p = qr.R.shape[1]
    R_inv = linalg.solve_triangular(qr.R[:p, :p], np.eye(p), lower=False)
    cov_pivoted = R_inv @ R_inv.T

    cov = np.empty((p, p), dtype=np.float64)
    cov[np.ix_(qr.pivot, qr.pivot)] = cov_pivoted
    return cov


def hat_diagonal(qr: QRResult) -> NDArray[np.floating[Any]]:
    """Leverage values diag(X (X'X)⁻¹ X') = row sums of Q² over the rank."""
    Q = qr.Q[:, :qr.rank]
    return np.einsum('ij,ij->i', Q, Q)

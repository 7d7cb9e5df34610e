"""
Damped Newton-Raphson for concave log-likelihoods.

Shared by the multinomial, ordinal and Cox fitters. The objective returns
the log-likelihood, its gradient (score) and the observed information
(negative Hessian) at a parameter vector; each iteration solves

    I(θ) δ = U(θ),    θ_new = θ + t δ

halving t until the log-likelihood does not decrease and the candidate is
feasible (e.g. ordered cut points). Convergence is declared when the
max-abs coefficient update falls below tol.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import numpy as np
from numpy.typing import NDArray
from scipy import linalg

from pyregkit.core.exceptions import (
    ConvergenceError,
    NotPositiveDefiniteError,
    SingularMatrixError,
)

Objective = Callable[
    [NDArray[np.floating[Any]]],
    tuple[float, NDArray[np.floating[Any]], NDArray[np.floating[Any]]],
]


@dataclass(frozen=True)
class NewtonResult:
    """Converged Newton-Raphson state."""
    params: NDArray[np.floating[Any]]
    log_likelihood: float
    score: NDArray[np.floating[Any]]
    information: NDArray[np.floating[Any]]
    n_iter: int
    final_change: float


def invert_information(
    information: NDArray[np.floating[Any]],
    matrix_name: str = 'information matrix',
) -> NDArray[np.floating[Any]]:
    """
    Invert a symmetric information matrix.

    Raises:
        NotPositiveDefiniteError: If the matrix has a clearly negative eigenvalue
        SingularMatrixError: If the matrix is singular to working precision
    """
    p = information.shape[0]
    if p == 0:
        return np.zeros((0, 0), dtype=np.float64)

    sym = 0.5 * (information + information.T)
    eigvals = np.linalg.eigvalsh(sym)
    max_eig = float(np.max(np.abs(eigvals)))
    min_eig = float(eigvals[0])
    threshold = p * np.finfo(np.float64).eps * max(max_eig, 1.0) * 1e3

    if min_eig < -threshold:
        raise NotPositiveDefiniteError(
            f"{matrix_name} is not positive definite (smallest eigenvalue {min_eig:.3e})",
            matrix_name=matrix_name,
            min_eigenvalue=min_eig,
        )

    if min_eig <= threshold:
        cond = max_eig / min_eig if min_eig > 0 else float('inf')
        raise SingularMatrixError(
            f"{matrix_name} is singular (smallest eigenvalue {min_eig:.3e}); "
            f"the model is not identifiable from these data.",
            matrix_name=matrix_name,
            condition_number=cond,
        )

    c, lower = linalg.cho_factor(sym)
    return linalg.cho_solve((c, lower), np.eye(p))


def newton_raphson(
    objective: Objective,
    x0: NDArray[np.floating[Any]],
    *,
    tol: float,
    max_iter: int,
    feasible: Callable[[NDArray[np.floating[Any]]], bool] | None = None,
    max_step: float | None = None,
    max_halvings: int = 30,
    matrix_name: str = 'information matrix',
) -> NewtonResult:
    """
    Maximize a concave log-likelihood by damped Newton-Raphson.

    Args:
        objective: θ -> (loglik, score, information)
        x0: Starting parameter vector
        tol: Convergence threshold on max|θ_new - θ|
        max_iter: Maximum Newton iterations
        feasible: Optional predicate a candidate must satisfy
        max_step: Optional cap on max|δ| per iteration (keeps exp() finite)
        max_halvings: Step-halving attempts before giving up
        matrix_name: Name used when the information matrix is singular

    Returns:
        NewtonResult at the converged parameters

    Raises:
        SingularMatrixError: If the information matrix becomes singular
        ConvergenceError: If max_iter is reached or no ascent step exists
    """
    x = np.asarray(x0, dtype=np.float64).copy()
    loglik, score, info = objective(x)
    change = float('inf')

    for iteration in range(1, max_iter + 1):
        step = invert_information(info, matrix_name) @ score

        if max_step is not None:
            biggest = float(np.max(np.abs(step))) if step.size else 0.0
            if biggest > max_step:
                step = step * (max_step / biggest)

        slack = 1e-10 * (abs(loglik) + 1.0)
        scale = 1.0
        for _ in range(max_halvings):
            candidate = x + scale * step
            if feasible is None or feasible(candidate):
                ll_new, score_new, info_new = objective(candidate)
                if np.isfinite(ll_new) and ll_new >= loglik - slack:
                    break
            scale *= 0.5
        else:
            raise ConvergenceError(
                f"Newton-Raphson could not find an ascent step at iteration "
                f"{iteration} (log-likelihood={loglik:.6f})",
                iterations=iteration,
                final_change=change,
                reason='step_halving',
                threshold=tol,
            )

        change = float(np.max(np.abs(candidate - x))) if x.size else 0.0
        x, loglik, score, info = candidate, ll_new, score_new, info_new

        if change < tol:
            return NewtonResult(
                params=x,
                log_likelihood=float(loglik),
                score=score,
                information=info,
                n_iter=iteration,
                final_change=change,
            )

    raise ConvergenceError(
        f"Newton-Raphson did not converge in {max_iter} iterations "
        f"(last coefficient change {change:.3e}, tolerance {tol:.1e})",
        iterations=max_iter,
        final_change=change,
        reason='max_iterations',
        threshold=tol,
    )

"""
Baseline-category multinomial logistic regression.

For K outcome levels with reference level b, each non-baseline level k
has its own coefficient vector B_k:

    log P(Y=k | x) / P(Y=b | x) = x'B_k

The (K-1)·p coefficients are estimated jointly by Newton-Raphson on the
multinomial log-likelihood with analytic score and information:

    U_k     = Σ_i (y_ik − π_ik) x_i
    I_{k,l} = Σ_i π_ik (δ_kl − π_il) x_i x_i'
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.special import logsumexp

from pyregkit.core.compute.optimization.newton import (
    invert_information,
    newton_raphson,
)
from pyregkit.categorical._common import MultinomialParams

# Caps a single Newton step so exp(η) stays finite on near-separated data
_MAX_STEP = 10.0


def _linear_predictors(
    B_flat: NDArray, X: NDArray, others: NDArray, K: int,
) -> NDArray:
    """(n, K) linear predictors with zeros in the baseline column."""
    n, p = X.shape
    eta = np.zeros((n, K), dtype=np.float64)
    eta[:, others] = X @ B_flat.reshape(len(others), p).T
    return eta


def multinomial_fit(
    X: NDArray,
    codes: NDArray,
    levels: tuple[str, ...],
    baseline: int,
    *,
    tol: float,
    max_iter: int,
) -> MultinomialParams:
    """Fit the multinomial logit model.

    Args:
        X: (n, p) design matrix, full column rank (checked by the caller)
        codes: (n,) integer outcome codes in 0..K-1, every level observed
        levels: K level labels
        baseline: index of the reference level
        tol: Convergence tolerance on max|Δθ|
        max_iter: Maximum Newton iterations

    Raises:
        SingularMatrixError: If the information matrix is singular
        ConvergenceError: If Newton-Raphson does not converge
    """
    n, p = X.shape
    K = len(levels)
    others = np.array([k for k in range(K) if k != baseline], dtype=np.intp)
    m = len(others)

    Y = np.zeros((n, K), dtype=np.float64)
    Y[np.arange(n), codes] = 1.0
    Y_others = Y[:, others]

    def objective(theta: NDArray):
        eta = _linear_predictors(theta, X, others, K)
        lse = logsumexp(eta, axis=1)
        loglik = float(np.sum(eta[np.arange(n), codes] - lse))

        P = np.exp(eta - lse[:, np.newaxis])[:, others]
        score = ((Y_others - P).T @ X).ravel()

        # W_ikl = π_ik δ_kl − π_ik π_il
        W = -P[:, :, np.newaxis] * P[:, np.newaxis, :]
        W[:, np.arange(m), np.arange(m)] += P
        info = np.einsum('ikl,ia,ib->kalb', W, X, X).reshape(m * p, m * p)
        return loglik, score, info

    result = newton_raphson(
        objective,
        np.zeros(m * p, dtype=np.float64),
        tol=tol,
        max_iter=max_iter,
        max_step=_MAX_STEP,
        matrix_name='multinomial information matrix',
    )

    eta = _linear_predictors(result.params, X, others, K)
    probs = np.exp(eta - logsumexp(eta, axis=1)[:, np.newaxis])

    counts = np.bincount(codes, minlength=K).astype(np.float64)
    null_ll = float(np.sum(counts * np.log(counts / n)))

    return MultinomialParams(
        coefficients=result.params.reshape(m, p),
        covariance=invert_information(result.information, 'multinomial information matrix'),
        fitted_probabilities=probs,
        levels=levels,
        baseline=baseline,
        log_likelihood=result.log_likelihood,
        null_log_likelihood=null_ll,
        n_observations=n,
        n_iter=result.n_iter,
        final_change=result.final_change,
    )

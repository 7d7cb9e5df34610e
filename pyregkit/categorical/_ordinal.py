"""
Proportional-odds (cumulative logit) model.

For K ordered levels with K-1 increasing cut points α and one shared
slope vector β (no intercept column):

    logit P(Y ≤ k | x) = α_k − x'β,    k = 0..K-2

so P(Y = k | x) = F(α_k − η) − F(α_{k−1} − η) with α_{−1} = −∞,
α_{K−1} = +∞, η = x'β and F the logistic CDF.

Parameters are packed θ = [β, α]. Newton-Raphson uses analytic first and
second derivatives of log P(Y = y_i); a step that would break the cut
point ordering is halved until the thresholds are increasing again.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.special import expit, logit

from pyregkit.core.compute.optimization.newton import (
    invert_information,
    newton_raphson,
)
from pyregkit.categorical._common import OrdinalParams

_MAX_STEP = 10.0


def _cdf_terms(z: NDArray, valid: NDArray) -> tuple[NDArray, NDArray, NDArray]:
    """F(z), f(z), f'(z) for the logistic CDF, with the boundary cut points
    at ±∞ represented by `valid == False`."""
    F = expit(np.where(valid, z, 0.0))
    f = F * (1.0 - F)
    h = f * (1.0 - 2.0 * F)
    return F, np.where(valid, f, 0.0), np.where(valid, h, 0.0)


def _category_probabilities(eta: NDArray, alpha: NDArray) -> NDArray:
    """(n, K) category probabilities."""
    cum = expit(alpha[np.newaxis, :] - eta[:, np.newaxis])
    n = eta.shape[0]
    upper = np.hstack([cum, np.ones((n, 1))])
    lower = np.hstack([np.zeros((n, 1)), cum])
    return upper - lower


def ordinal_fit(
    X: NDArray,
    codes: NDArray,
    levels: tuple[str, ...],
    *,
    tol: float,
    max_iter: int,
) -> OrdinalParams:
    """Fit the proportional-odds model.

    Args:
        X: (n, p) design without an intercept column
        codes: (n,) ordered outcome codes in 0..K-1, every level observed
        levels: K ordered level labels (K ≥ 3, checked by the caller)
        tol: Convergence tolerance on max|Δθ|
        max_iter: Maximum Newton iterations

    Raises:
        SingularMatrixError: If the information matrix is singular
        ConvergenceError: If Newton-Raphson does not converge
    """
    n, p = X.shape
    K = len(levels)
    q = K - 1
    rows = np.arange(n)

    # Per observation: upper cut index k (absent for the top level) and
    # lower cut index k-1 (absent for the bottom level)
    has_upper = codes < q
    has_lower = codes > 0
    up_idx = np.minimum(codes, q - 1)
    lo_idx = np.maximum(codes - 1, 0)

    def split(theta: NDArray) -> tuple[NDArray, NDArray]:
        return theta[:p], theta[p:]

    def objective(theta: NDArray):
        beta, alpha = split(theta)
        eta = X @ beta

        F_u, g_u, h_u = _cdf_terms(alpha[up_idx] - eta, has_upper)
        F_l, g_l, h_l = _cdf_terms(alpha[lo_idx] - eta, has_lower)
        F_u = np.where(has_upper, F_u, 1.0)
        F_l = np.where(has_lower, F_l, 0.0)
        prob = F_u - F_l
        if np.any(prob <= 0.0):
            return -np.inf, np.zeros_like(theta), np.eye(len(theta))

        loglik = float(np.sum(np.log(prob)))
        A = (g_u - g_l) / prob

        # Score
        score_beta = -X.T @ A
        score_alpha = (
            np.bincount(up_idx[has_upper], weights=(g_u / prob)[has_upper], minlength=q)
            - np.bincount(lo_idx[has_lower], weights=(g_l / prob)[has_lower], minlength=q)
        )

        # Hessian of Σ log P(Y = y_i)
        H = np.zeros((p + q, p + q), dtype=np.float64)
        H[:p, :p] = (X * ((h_u - h_l) / prob - A ** 2)[:, np.newaxis]).T @ X

        c_u = -h_u / prob + g_u * A / prob
        c_l = h_l / prob - g_l * A / prob
        C = np.zeros((n, q), dtype=np.float64)
        np.add.at(C, (rows[has_upper], up_idx[has_upper]), c_u[has_upper])
        np.add.at(C, (rows[has_lower], lo_idx[has_lower]), c_l[has_lower])
        H[:p, p:] = X.T @ C
        H[p:, :p] = H[:p, p:].T

        H_aa = np.zeros((q, q), dtype=np.float64)
        d_u = h_u / prob - (g_u / prob) ** 2
        d_l = -h_l / prob - (g_l / prob) ** 2
        np.add.at(H_aa, (up_idx[has_upper], up_idx[has_upper]), d_u[has_upper])
        np.add.at(H_aa, (lo_idx[has_lower], lo_idx[has_lower]), d_l[has_lower])
        both = has_upper & has_lower
        cross = (g_u * g_l / prob ** 2)[both]
        np.add.at(H_aa, (up_idx[both], lo_idx[both]), cross)
        np.add.at(H_aa, (lo_idx[both], up_idx[both]), cross)
        H[p:, p:] = H_aa

        return loglik, np.concatenate([score_beta, score_alpha]), -H

    def increasing_cutpoints(theta: NDArray) -> bool:
        return bool(np.all(np.diff(split(theta)[1]) > 0))

    # Start from the thresholds-only MLE: α_k = logit of cumulative proportions
    counts = np.bincount(codes, minlength=K).astype(np.float64)
    cum_prop = np.cumsum(counts)[:-1] / n
    alpha0 = logit(cum_prop)
    theta0 = np.concatenate([np.zeros(p), alpha0])

    result = newton_raphson(
        objective,
        theta0,
        tol=tol,
        max_iter=max_iter,
        feasible=increasing_cutpoints,
        max_step=_MAX_STEP,
        matrix_name='ordinal information matrix',
    )

    beta, alpha = split(result.params)
    null_ll = float(np.sum(counts * np.log(counts / n)))

    return OrdinalParams(
        coefficients=beta,
        cutpoints=alpha,
        covariance=invert_information(result.information, 'ordinal information matrix'),
        fitted_probabilities=_category_probabilities(X @ beta, alpha),
        levels=levels,
        log_likelihood=result.log_likelihood,
        null_log_likelihood=null_ll,
        n_observations=n,
        n_iter=result.n_iter,
        final_change=result.final_change,
    )

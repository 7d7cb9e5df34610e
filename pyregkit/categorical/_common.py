"""
Parameter payloads for categorical-outcome models.

Each dataclass is a frozen payload carried inside a Result[P] envelope.
"""

from __future__ import annotations

from dataclasses import dataclass

from numpy.typing import NDArray


@dataclass(frozen=True)
class MultinomialParams:
    """Baseline-category multinomial logit parameters.

    Matches the output of R's nnet::multinom().
    """

    coefficients: NDArray        # (K-1, p) log-odds vs baseline, one row per level
    covariance: NDArray          # ((K-1)p, (K-1)p) inverse information, row-major
    fitted_probabilities: NDArray  # (n, K) P(Y = k | x), columns in level order
    levels: tuple[str, ...]      # all outcome levels
    baseline: int                # index of the reference level
    log_likelihood: float
    null_log_likelihood: float   # intercept-only model (marginal proportions)
    n_observations: int
    n_iter: int
    final_change: float


@dataclass(frozen=True)
class OrdinalParams:
    """Proportional-odds (cumulative logit) model parameters.

    logit P(Y ≤ k | x) = α_k − xβ, matching R's MASS::polr().
    """

    coefficients: NDArray        # (p,) shared slopes β
    cutpoints: NDArray           # (K-1,) increasing thresholds α
    covariance: NDArray          # (p+K-1, p+K-1) inverse information, [β, α] order
    fitted_probabilities: NDArray  # (n, K)
    levels: tuple[str, ...]
    log_likelihood: float
    null_log_likelihood: float   # thresholds only
    n_observations: int
    n_iter: int
    final_change: float

"""
Likelihood-based goodness-of-fit summaries.

    AIC = 2k − 2ℓ
    BIC = k·log(n) − 2ℓ

k is model.n_parameters, which counts the residual variance for linear
and Gaussian models. n is the number of observations, except for Cox
models where it is the number of events (R's BIC for coxph).
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from pyregkit.core.protocols import FittedModel
from pyregkit.regression.solution import LinearSolution
from pyregkit.survival.solution import CoxSolution


@dataclass(frozen=True)
class GoodnessOfFit:
    """Information criteria, plus R² for linear models."""
    n: int
    k: int
    log_likelihood: float
    aic: float
    bic: float
    r_squared: float | None = None
    adj_r_squared: float | None = None

    def __repr__(self) -> str:
        parts = [
            f"n={self.n}", f"k={self.k}",
            f"logLik={self.log_likelihood:.4f}",
            f"AIC={self.aic:.4f}", f"BIC={self.bic:.4f}",
        ]
        if self.r_squared is not None:
            parts.append(f"R2={self.r_squared:.4f}")
            parts.append(f"adjR2={self.adj_r_squared:.4f}")
        return f"GoodnessOfFit({', '.join(parts)})"


def goodness_of_fit(model: FittedModel) -> GoodnessOfFit:
    """AIC, BIC and (linear models only) R² and adjusted R²."""
    ll = float(model.log_likelihood)
    k = int(model.n_parameters)
    n = model.n_events if isinstance(model, CoxSolution) else model.n_observations

    r2 = adj = None
    if isinstance(model, LinearSolution):
        r2 = model.r_squared
        adj = model.adjusted_r_squared

    return GoodnessOfFit(
        n=int(n),
        k=k,
        log_likelihood=ll,
        aic=2.0 * k - 2.0 * ll,
        bic=k * float(np.log(n)) - 2.0 * ll,
        r_squared=r2,
        adj_r_squared=adj,
    )

"""
Residual and influence diagnostics for linear models.

    standardized residual  r_i = e_i / (s √(1 − h_i))
    Cook's distance        D_i = r_i² h_i / (p (1 − h_i))

with s the residual standard error, h_i the hat diagonal and p the rank.
Matches R's rstandard() and cooks.distance() on an lm fit.

The pair methods are the hand-off to plotting code: this module never
renders anything.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pyregkit.core.exceptions import ValidationError
from pyregkit.core.protocols import FittedModel
from pyregkit.regression.solution import LinearSolution


@dataclass(frozen=True)
class Diagnostics:
    """Per-observation diagnostics, aligned with row_index."""
    fitted_values: NDArray
    residuals: NDArray
    leverage: NDArray
    standardized_residuals: NDArray
    cooks_distance: NDArray
    row_index: NDArray

    def residual_pairs(self) -> list[tuple[float, float]]:
        """(fitted value, standardized residual) per observation."""
        return [
            (float(f), float(r))
            for f, r in zip(self.fitted_values, self.standardized_residuals)
        ]

    def cooks_pairs(self) -> list[tuple[int, float]]:
        """(source row, Cook's distance) per observation."""
        return [
            (int(i), float(d))
            for i, d in zip(self.row_index, self.cooks_distance)
        ]

    def qq_pairs(self) -> list[tuple[float, float]]:
        """(theoretical normal quantile, sorted standardized residual).

        Observations with leverage 1 have no standardized residual and
        are left out.
        """
        sample = np.sort(self.standardized_residuals[np.isfinite(self.standardized_residuals)])
        theoretical = stats.norm.ppf(ppoints(len(sample)))
        return [(float(t), float(s)) for t, s in zip(theoretical, sample)]


def ppoints(n: int) -> NDArray:
    """R's ppoints(n): (i − a)/(n + 1 − 2a), a = 3/8 if n ≤ 10 else 1/2."""
    if n <= 0:
        return np.empty(0)
    a = 3.0 / 8.0 if n <= 10 else 0.5
    i = np.arange(1, n + 1, dtype=np.float64)
    return (i - a) / (n + 1 - 2 * a)


def diagnostics(model: FittedModel) -> Diagnostics:
    """
    Leverage, standardized residuals and Cook's distance.

    Raises:
        ValidationError: If model is not a linear (OLS) fit
    """
    if not isinstance(model, LinearSolution):
        raise ValidationError(
            f"diagnostics are defined for linear models only, got a "
            f"{model.model_kind!r} model"
        )

    e = model.residuals
    h = model.leverage
    # Rounding can leave an exact-fit point just below 1 (R: lm.influence)
    h = np.where(h > 1.0 - 10 * np.finfo(np.float64).eps, 1.0, h)
    s = model.residual_std_error
    p = model.rank

    with np.errstate(divide='ignore', invalid='ignore'):
        standardized = e / (s * np.sqrt(1.0 - h))
        cooks = standardized ** 2 * h / (p * (1.0 - h))
    standardized = np.where(np.isfinite(standardized), standardized, np.nan)
    cooks = np.where(np.isfinite(cooks), cooks, np.nan)

    return Diagnostics(
        fitted_values=model.fitted_values,
        residuals=e,
        leverage=h,
        standardized_residuals=standardized,
        cooks_distance=cooks,
        row_index=model.row_index,
    )

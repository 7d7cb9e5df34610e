"""
Regression solution types.

Contains the parameter payloads computed by backends and the user-facing
solution wrappers. Both wrappers satisfy the FittedModel protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pyregkit.core.protocols import ModelKind
from pyregkit.core.result import Result
from pyregkit.regression.design import RegressionDesign
from pyregkit.regression.families import Family


def _ratio(num: NDArray, den: NDArray) -> NDArray:
    with np.errstate(divide='ignore', invalid='ignore'):
        out = num / den
    return np.where(np.isfinite(out), out, np.nan)


def _coefficient_lines(
    names: tuple[str, ...],
    coef: NDArray,
    se: NDArray,
    stat: NDArray,
    pval: NDArray,
    stat_name: str,
) -> list[str]:
    width = max([len(n) for n in names] + [8])
    p_header = f"Pr(>|{stat_name}|)"
    lines = [
        f"{'':<{width}} {'Estimate':>12} {'Std.Error':>12} {stat_name + ' value':>9} {p_header:>10}",
    ]
    for name, b, s, t, pv in zip(names, coef, se, stat, pval):
        lines.append(f"{name:<{width}} {b:12.6f} {s:12.6f} {t:9.3f} {pv:10.4g}")
    return lines


# =====================================================================
# Linear regression
# =====================================================================

@dataclass(frozen=True)
class LinearParams:
    """
    Parameter payload for linear regression.

    This is the immutable data computed by backends.
    """
    coefficients: NDArray[np.floating[Any]]
    residuals: NDArray[np.floating[Any]]
    fitted_values: NDArray[np.floating[Any]]
    rss: float
    tss: float
    rank: int
    df_residual: int
    unscaled_covariance: NDArray[np.floating[Any]]
    leverage: NDArray[np.floating[Any]]


@dataclass(frozen=True)
class LinearSolution:
    """
    User-facing linear regression results.

    Wraps the backend Result and provides accessors for all outputs
    including standard errors, t statistics and p-values.
    """
    _result: Result[LinearParams]
    _design: RegressionDesign

    # === FittedModel protocol ===

    @property
    def model_kind(self) -> ModelKind:
        return 'linear'

    @property
    def estimates(self) -> NDArray[np.floating[Any]]:
        return self.coefficients

    @property
    def vcov(self) -> NDArray[np.floating[Any]]:
        """σ² (X'X)⁻¹."""
        return self.sigma ** 2 * self._result.params.unscaled_covariance

    @property
    def term_labels(self) -> tuple[str, ...]:
        return self._design.column_names

    @property
    def df_residual(self) -> int:
        return self._result.params.df_residual

    @property
    def log_likelihood(self) -> float:
        """Gaussian log-likelihood at the MLE σ² = RSS/n."""
        n = self.n_observations
        return float(-0.5 * n * (np.log(2 * np.pi * self.rss / n) + 1.0))

    @property
    def n_observations(self) -> int:
        return self._design.n

    @property
    def n_parameters(self) -> int:
        """Coefficients plus the residual variance."""
        return self.rank + 1

    @property
    def row_index(self) -> NDArray[np.intp]:
        return self._design.row_index

    # === Estimates ===

    @property
    def coefficients(self) -> NDArray[np.floating[Any]]:
        return self._result.params.coefficients

    @property
    def standard_errors(self) -> NDArray[np.floating[Any]]:
        """SE(β) = sqrt(diag(σ² (X'X)⁻¹))."""
        if self.df_residual <= 0:
            return np.full(len(self.coefficients), np.nan)
        return np.sqrt(np.diag(self.vcov))

    @property
    def t_statistics(self) -> NDArray[np.floating[Any]]:
        return _ratio(self.coefficients, self.standard_errors)

    @property
    def p_values(self) -> NDArray[np.floating[Any]]:
        """Two-sided p-values from Student-t on df_residual."""
        if self.df_residual <= 0:
            return np.full(len(self.coefficients), np.nan)
        return 2.0 * stats.t.sf(np.abs(self.t_statistics), self.df_residual)

    # === Fit ===

    @property
    def residuals(self) -> NDArray[np.floating[Any]]:
        return self._result.params.residuals

    @property
    def fitted_values(self) -> NDArray[np.floating[Any]]:
        return self._result.params.fitted_values

    @property
    def leverage(self) -> NDArray[np.floating[Any]]:
        """Diagonal of the hat matrix."""
        return self._result.params.leverage

    @property
    def rss(self) -> float:
        return self._result.params.rss

    @property
    def tss(self) -> float:
        """Total sum of squares (about the mean when an intercept is present)."""
        return self._result.params.tss

    @property
    def r_squared(self) -> float:
        if self.tss == 0:
            return 1.0 if self.rss == 0 else 0.0
        return 1.0 - (self.rss / self.tss)

    @property
    def adjusted_r_squared(self) -> float:
        n = self.n_observations
        p = self.rank
        if n - p <= 0 or self.tss == 0:
            return self.r_squared
        # R: n - 1 with an intercept, n without
        n_ref = n - 1 if self._design.has_intercept else n
        return 1.0 - (1.0 - self.r_squared) * n_ref / (n - p)

    @property
    def residual_std_error(self) -> float:
        df = self.df_residual
        if df <= 0:
            return 0.0
        return float(np.sqrt(self.rss / df))

    @property
    def sigma(self) -> float:
        return self.residual_std_error

    @property
    def rank(self) -> int:
        return self._result.params.rank

    @property
    def design(self) -> RegressionDesign:
        return self._design

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """Generate R-style summary output."""
        lines = [
            "Linear Regression Results",
            "=" * 60,
            f"Observations: {self.n_observations}",
            f"Predictors: {self._design.p}",
            f"Rank: {self.rank}",
            "",
            "Coefficients:",
        ]
        lines.extend(_coefficient_lines(
            self.term_labels, self.coefficients, self.standard_errors,
            self.t_statistics, self.p_values, 't',
        ))
        lines.extend([
            "",
            f"Residual standard error: {self.residual_std_error:.6f} on {self.df_residual} DF",
            f"R-squared: {self.r_squared:.6f}, Adj. R-squared: {self.adjusted_r_squared:.6f}",
        ])
        if self.info.get('n_dropped'):
            lines.append(f"({self.info['n_dropped']} observations deleted due to missingness)")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"LinearSolution(n={self.n_observations}, p={self._design.p}, "
            f"rank={self.rank}, r_squared={self.r_squared:.4f})"
        )


# =====================================================================
# Generalized linear models
# =====================================================================

@dataclass(frozen=True)
class GLMParams:
    """
    Parameter payload for a GLM fitted by IRLS.

    Attributes:
        unscaled_covariance: (X'WX)⁻¹ at convergence (inverse Fisher
            information for unit dispersion)
    """
    coefficients: NDArray[np.floating[Any]]
    fitted_values: NDArray[np.floating[Any]]
    linear_predictor: NDArray[np.floating[Any]]
    residuals_working: NDArray[np.floating[Any]]
    residuals_deviance: NDArray[np.floating[Any]]
    residuals_pearson: NDArray[np.floating[Any]]
    residuals_response: NDArray[np.floating[Any]]
    deviance: float
    null_deviance: float
    log_likelihood: float
    aic: float
    dispersion: float
    rank: int
    df_residual: int
    df_null: int
    n_iter: int
    unscaled_covariance: NDArray[np.floating[Any]]
    family_name: str
    link_name: str


@dataclass(frozen=True)
class GLMSolution:
    """
    User-facing GLM results.

    Inference is Wald-based: z statistics for fixed-dispersion families
    (binomial, poisson), t statistics on df_residual for gaussian.
    """
    _result: Result[GLMParams]
    _design: RegressionDesign
    _family: Family

    # === FittedModel protocol ===

    @property
    def model_kind(self) -> ModelKind:
        return self._family.name  # type: ignore[return-value]

    @property
    def estimates(self) -> NDArray[np.floating[Any]]:
        return self.coefficients

    @property
    def vcov(self) -> NDArray[np.floating[Any]]:
        """Dispersion × inverse Fisher information."""
        return self.dispersion * self._result.params.unscaled_covariance

    @property
    def term_labels(self) -> tuple[str, ...]:
        return self._design.column_names

    @property
    def df_residual(self) -> int | None:
        """Residual df when the dispersion is estimated, else None (z-based)."""
        if self._family.dispersion_is_fixed:
            return None
        return self._result.params.df_residual

    @property
    def log_likelihood(self) -> float:
        return self._result.params.log_likelihood

    @property
    def n_observations(self) -> int:
        return self._design.n

    @property
    def n_parameters(self) -> int:
        return self.rank + self._family.n_extra_parameters()

    @property
    def row_index(self) -> NDArray[np.intp]:
        return self._design.row_index

    # === Estimates ===

    @property
    def coefficients(self) -> NDArray[np.floating[Any]]:
        return self._result.params.coefficients

    @property
    def standard_errors(self) -> NDArray[np.floating[Any]]:
        return np.sqrt(np.diag(self.vcov))

    @property
    def test_statistics(self) -> NDArray[np.floating[Any]]:
        """Wald z (or t for gaussian) statistics."""
        return _ratio(self.coefficients, self.standard_errors)

    @property
    def p_values(self) -> NDArray[np.floating[Any]]:
        stat = np.abs(self.test_statistics)
        df = self.df_residual
        if df is None:
            return 2.0 * stats.norm.sf(stat)
        if df <= 0:
            return np.full(len(stat), np.nan)
        return 2.0 * stats.t.sf(stat, df)

    # === Fit ===

    @property
    def fitted_values(self) -> NDArray[np.floating[Any]]:
        """Fitted means μ."""
        return self._result.params.fitted_values

    @property
    def linear_predictor(self) -> NDArray[np.floating[Any]]:
        return self._result.params.linear_predictor

    @property
    def residuals(self) -> NDArray[np.floating[Any]]:
        """Deviance residuals (R's default residual type)."""
        return self._result.params.residuals_deviance

    @property
    def residuals_deviance(self) -> NDArray[np.floating[Any]]:
        return self._result.params.residuals_deviance

    @property
    def residuals_pearson(self) -> NDArray[np.floating[Any]]:
        return self._result.params.residuals_pearson

    @property
    def residuals_response(self) -> NDArray[np.floating[Any]]:
        return self._result.params.residuals_response

    @property
    def residuals_working(self) -> NDArray[np.floating[Any]]:
        return self._result.params.residuals_working

    @property
    def deviance(self) -> float:
        return self._result.params.deviance

    @property
    def null_deviance(self) -> float:
        return self._result.params.null_deviance

    @property
    def aic(self) -> float:
        return self._result.params.aic

    @property
    def dispersion(self) -> float:
        return self._result.params.dispersion

    @property
    def rank(self) -> int:
        return self._result.params.rank

    @property
    def df_null(self) -> int:
        return self._result.params.df_null

    @property
    def n_iter(self) -> int:
        return self._result.params.n_iter

    @property
    def family(self) -> Family:
        return self._family

    @property
    def design(self) -> RegressionDesign:
        return self._design

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """Generate R-style summary output."""
        params = self._result.params
        stat_name = 'z' if self.df_residual is None else 't'
        lines = [
            "Generalized Linear Model Results",
            "=" * 60,
            f"Family: {params.family_name}, Link: {params.link_name}",
            f"Observations: {self.n_observations}",
            "",
            "Coefficients:",
        ]
        lines.extend(_coefficient_lines(
            self.term_labels, self.coefficients, self.standard_errors,
            self.test_statistics, self.p_values, stat_name,
        ))
        lines.extend([
            "",
            f"(Dispersion parameter taken to be {self.dispersion:.6g})",
            f"    Null deviance: {self.null_deviance:.4f} on {self.df_null} degrees of freedom",
            f"Residual deviance: {self.deviance:.4f} on {params.df_residual} degrees of freedom",
            f"AIC: {self.aic:.4f}",
            f"Number of Fisher Scoring iterations: {self.n_iter}",
        ])
        if self.info.get('n_dropped'):
            lines.append(f"({self.info['n_dropped']} observations deleted due to missingness)")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"GLMSolution(family={self._family.name!r}, n={self.n_observations}, "
            f"p={self._design.p}, deviance={self.deviance:.4f})"
        )

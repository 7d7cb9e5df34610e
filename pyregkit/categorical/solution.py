"""
Solution classes for categorical-outcome models.

Both wrap a Result envelope, expose convenient accessors and satisfy the
FittedModel protocol with a flat parameter vector:

    multinomial: [B_k for each non-baseline level k], labelled "level:column"
    ordinal:     [β, α], slopes labelled by column, cut points "lo|hi"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pyregkit.core.protocols import ModelKind
from pyregkit.core.result import Result, freeze_arrays
from pyregkit.categorical._common import MultinomialParams, OrdinalParams


def _wald(estimates: NDArray, se: NDArray) -> tuple[NDArray, NDArray]:
    with np.errstate(divide='ignore', invalid='ignore'):
        z = estimates / se
    z = np.where(np.isfinite(z), z, np.nan)
    return z, 2.0 * stats.norm.sf(np.abs(z))


@dataclass(frozen=True)
class MultinomialSolution:
    """Multinomial logistic regression results.

    Matches the coefficient layout of R's nnet::multinom(): one row of
    log-odds coefficients per non-baseline outcome level.
    """

    _result: Result[MultinomialParams]
    _column_names: tuple[str, ...]
    _row_index: NDArray[np.intp]

    def __post_init__(self) -> None:
        freeze_arrays(self)

    # === FittedModel protocol ===

    @property
    def model_kind(self) -> ModelKind:
        return 'multinomial'

    @property
    def estimates(self) -> NDArray:
        return self._result.params.coefficients.ravel()

    @property
    def vcov(self) -> NDArray:
        return self._result.params.covariance

    @property
    def term_labels(self) -> tuple[str, ...]:
        return tuple(
            f"{level}:{col}"
            for level in self.response_levels
            for col in self._column_names
        )

    @property
    def df_residual(self) -> None:
        return None

    @property
    def log_likelihood(self) -> float:
        return self._result.params.log_likelihood

    @property
    def n_observations(self) -> int:
        return self._result.params.n_observations

    @property
    def n_parameters(self) -> int:
        return self.estimates.size

    @property
    def row_index(self) -> NDArray[np.intp]:
        return self._row_index

    # === Accessors ===

    @property
    def levels(self) -> tuple[str, ...]:
        """All outcome levels in order."""
        return self._result.params.levels

    @property
    def baseline(self) -> str:
        return self.levels[self._result.params.baseline]

    @property
    def response_levels(self) -> tuple[str, ...]:
        """Non-baseline levels, one per coefficient row."""
        return tuple(lv for lv in self.levels if lv != self.baseline)

    @property
    def column_names(self) -> tuple[str, ...]:
        return self._column_names

    @property
    def coefficients(self) -> NDArray:
        """(K-1, p) log-odds of each level vs the baseline."""
        return self._result.params.coefficients

    @property
    def standard_errors(self) -> NDArray:
        return np.sqrt(np.diag(self.vcov)).reshape(self.coefficients.shape)

    @property
    def z_statistics(self) -> NDArray:
        return _wald(self.coefficients, self.standard_errors)[0]

    @property
    def p_values(self) -> NDArray:
        return _wald(self.coefficients, self.standard_errors)[1]

    @property
    def fitted_probabilities(self) -> NDArray:
        """(n, K) fitted P(Y = level | x), columns in `levels` order."""
        return self._result.params.fitted_probabilities

    def coefficient(self, level: str, column: str) -> float:
        """Log-odds coefficient of `column` for `level` vs the baseline
        (0.0 when `level` is the baseline)."""
        if level == self.baseline:
            return 0.0
        i = self.response_levels.index(level)
        j = self._column_names.index(column)
        return float(self.coefficients[i, j])

    @property
    def null_log_likelihood(self) -> float:
        return self._result.params.null_log_likelihood

    @property
    def deviance(self) -> float:
        return -2.0 * self.log_likelihood

    @property
    def n_iter(self) -> int:
        return self._result.params.n_iter

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
        lines = [
            "Multinomial Logistic Regression",
            "=" * 60,
            f"Outcome levels: {', '.join(self.levels)} (baseline: {self.baseline})",
            f"n = {self.n_observations}, iterations = {self.n_iter}",
            f"Log-likelihood: {self.log_likelihood:.4f}",
            f"Residual deviance: {self.deviance:.4f}",
            "",
        ]
        coef, se, pv = self.coefficients, self.standard_errors, self.p_values
        for i, level in enumerate(self.response_levels):
            lines.append(f"{level} vs {self.baseline}:")
            for j, col in enumerate(self._column_names):
                lines.append(
                    f"  {col:<24} {coef[i, j]:12.6f} {se[i, j]:12.6f} {pv[i, j]:10.4g}"
                )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"MultinomialSolution(levels={len(self.levels)}, "
            f"baseline={self.baseline!r}, n={self.n_observations})"
        )


@dataclass(frozen=True)
class OrdinalSolution:
    """Proportional-odds model results.

    Sign convention follows R's MASS::polr(): logit P(Y ≤ k) = α_k − x'β,
    so a positive β shifts mass toward higher levels.
    """

    _result: Result[OrdinalParams]
    _column_names: tuple[str, ...]
    _row_index: NDArray[np.intp]

    def __post_init__(self) -> None:
        freeze_arrays(self)

    # === FittedModel protocol ===

    @property
    def model_kind(self) -> ModelKind:
        return 'ordinal'

    @property
    def estimates(self) -> NDArray:
        return np.concatenate([self.coefficients, self.cutpoints])

    @property
    def vcov(self) -> NDArray:
        return self._result.params.covariance

    @property
    def term_labels(self) -> tuple[str, ...]:
        return self._column_names + self.cutpoint_labels

    @property
    def df_residual(self) -> None:
        return None

    @property
    def log_likelihood(self) -> float:
        return self._result.params.log_likelihood

    @property
    def n_observations(self) -> int:
        return self._result.params.n_observations

    @property
    def n_parameters(self) -> int:
        return self.estimates.size

    @property
    def row_index(self) -> NDArray[np.intp]:
        return self._row_index

    # === Accessors ===

    @property
    def levels(self) -> tuple[str, ...]:
        return self._result.params.levels

    @property
    def column_names(self) -> tuple[str, ...]:
        return self._column_names

    @property
    def coefficients(self) -> NDArray:
        """Shared slopes β."""
        return self._result.params.coefficients

    @property
    def cutpoints(self) -> NDArray:
        """Increasing thresholds α."""
        return self._result.params.cutpoints

    @property
    def cutpoint_labels(self) -> tuple[str, ...]:
        lv = self.levels
        return tuple(f"{lv[k]}|{lv[k + 1]}" for k in range(len(lv) - 1))

    @property
    def standard_errors(self) -> NDArray:
        """Standard errors in [β, α] order."""
        return np.sqrt(np.diag(self.vcov))

    @property
    def z_statistics(self) -> NDArray:
        return _wald(self.estimates, self.standard_errors)[0]

    @property
    def p_values(self) -> NDArray:
        return _wald(self.estimates, self.standard_errors)[1]

    @property
    def fitted_probabilities(self) -> NDArray:
        return self._result.params.fitted_probabilities

    @property
    def null_log_likelihood(self) -> float:
        return self._result.params.null_log_likelihood

    @property
    def deviance(self) -> float:
        return -2.0 * self.log_likelihood

    @property
    def n_iter(self) -> int:
        return self._result.params.n_iter

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
        lines = [
            "Proportional Odds Logistic Regression",
            "=" * 60,
            f"Levels: {' < '.join(self.levels)}",
            f"n = {self.n_observations}, iterations = {self.n_iter}",
            f"Residual deviance: {self.deviance:.4f}",
            "",
            "Coefficients:",
        ]
        se, pv = self.standard_errors, self.p_values
        for label, est, s, p in zip(self.term_labels, self.estimates, se, pv):
            lines.append(f"  {label:<24} {est:12.6f} {s:12.6f} {p:10.4g}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"OrdinalSolution(levels={len(self.levels)}, "
            f"p={len(self.coefficients)}, n={self.n_observations})"
        )

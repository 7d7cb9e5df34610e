"""
Core protocols for pyregkit.

These define structural interfaces shared across model families. We use
Protocol (structural typing) rather than ABC (nominal typing) so each
family keeps its own solution class while the reporting layer can consume
any of them.

Design Principles:
    - Minimal contracts: prescribe only what reporting truly needs
    - Flat parameter vectors: multi-equation models (multinomial, ordinal)
      flatten their parameters so one coefficient table fits every family
"""

from typing import Protocol, Any, Literal, runtime_checkable

import numpy as np
from numpy.typing import NDArray

ModelKind = Literal[
    'linear', 'gaussian', 'binomial', 'poisson',
    'multinomial', 'ordinal', 'cox',
]


@runtime_checkable
class FittedModel(Protocol):
    """
    Read-only view of a fitted model consumed by the reporting layer.

    Every solution class (LinearSolution, GLMSolution, MultinomialSolution,
    OrdinalSolution, CoxSolution) satisfies this protocol.
    """

    @property
    def model_kind(self) -> ModelKind:
        """Tag identifying the model family."""
        ...

    @property
    def estimates(self) -> NDArray[np.floating[Any]]:
        """Flat parameter vector (one entry per reported parameter)."""
        ...

    @property
    def vcov(self) -> NDArray[np.floating[Any]]:
        """Estimated covariance matrix matching `estimates`."""
        ...

    @property
    def term_labels(self) -> tuple[str, ...]:
        """Human-readable label for each entry of `estimates`."""
        ...

    @property
    def df_residual(self) -> int | None:
        """Residual degrees of freedom, or None for normal-theory inference."""
        ...

    @property
    def log_likelihood(self) -> float:
        """Maximized (partial) log-likelihood."""
        ...

    @property
    def n_observations(self) -> int:
        """Number of observations used in the fit."""
        ...

    @property
    def n_parameters(self) -> int:
        """Number of estimated parameters counted by AIC/BIC."""
        ...

    @property
    def row_index(self) -> NDArray[np.intp]:
        """Source-frame row of each observation used in the fit."""
        ...

"""
Generic result container for all pyregkit fits.

The Result class provides a standardized envelope that every model family
uses. This enables shared tooling for timing, warnings and reporting while
allowing each family to define its own parameter structure.

Design decisions:
    - Generic over parameter payload P for type safety
    - info dict for flexible metadata (converged, iterations, n_dropped)
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True): a fitted model is never mutated once returned;
      the array fields of the payload are made read-only on construction
"""

from dataclasses import dataclass, field, fields, is_dataclass
from typing import TypeVar, Generic, Any

import numpy as np

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for a model fit.

    Type Parameters:
        P: The family-specific parameter payload type

    Attributes:
        params: Family-specific parameters (coefficients, covariance, etc.)
        info: Structured metadata (method, convergence, dropped rows)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the routine that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> # Direct method (no convergence notion)
        >>> Result(
        ...     params=LinearParams(...),
        ...     info={'method': 'qr', 'rank': 5},
        ...     timing={'total_seconds': 0.01},
        ...     backend_name='cpu_qr'
        ... )

        >>> # Iterative method
        >>> Result(
        ...     params=GLMParams(...),
        ...     info={'method': 'irls_qr', 'iterations': 6},
        ...     timing={'total_seconds': 0.02, 'irls': 0.018},
        ...     backend_name='cpu_irls'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if is_dataclass(self.params):
            freeze_arrays(self.params)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)


def freeze_arrays(obj: Any) -> None:
    """Mark every ndarray field of a dataclass instance read-only."""
    for f in fields(obj):
        value = getattr(obj, f.name)
        if isinstance(value, np.ndarray):
            value.setflags(write=False)

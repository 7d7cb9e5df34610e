"""
Regression Design.

RegressionDesign holds a validated X, y pair plus the labelling a fitted
model needs for reporting. It is built either from raw arrays or from a
formula-built DesignMatrix; backends only ever see this type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyregkit.core.exceptions import ValidationError
from pyregkit.core.result import freeze_arrays
from pyregkit.core.validation import (
    check_1d,
    check_2d,
    check_array,
    check_consistent_length,
    check_finite,
    check_min_samples,
)
from pyregkit.formula.design import DesignMatrix


@dataclass(frozen=True)
class RegressionDesign:
    """
    Regression design matrix specification.

    Immutable after construction.

    Construction:
        RegressionDesign.from_arrays(X, y)                   # raw arrays
        RegressionDesign.from_arrays(X, y, offset=log_t)     # with offset
        RegressionDesign.from_matrix(design_matrix)          # from a formula
    """
    X: NDArray[np.floating[Any]]
    y: NDArray[np.floating[Any]]
    column_names: tuple[str, ...]
    row_index: NDArray[np.intp]
    has_intercept: bool
    offset: NDArray[np.floating[Any]] | None = None
    n_dropped: int = 0
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        freeze_arrays(self)

    @classmethod
    def from_arrays(
        cls,
        X: ArrayLike,
        y: ArrayLike,
        *,
        column_names: tuple[str, ...] | list[str] | None = None,
        offset: ArrayLike | None = None,
    ) -> RegressionDesign:
        """
        Build a design directly from arrays.

        A 1D X is treated as a single column. The intercept, if any, must
        already be a column of X; it is detected as a column of ones.

        Raises:
            ValidationError: On non-numeric or non-finite input
            DimensionError: On shape mismatches or n < p
        """
        X_arr = check_array(X, 'X')
        y_arr = check_array(y, 'y')

        if X_arr.ndim == 1:
            X_arr = X_arr.reshape(-1, 1)
        if y_arr.ndim == 2 and y_arr.shape[1] == 1:
            y_arr = y_arr.ravel()

        check_2d(X_arr, 'X')
        check_1d(y_arr, 'y')
        check_finite(X_arr, 'X')
        check_finite(y_arr, 'y')
        check_consistent_length(X_arr, y_arr, names=('X', 'y'))
        check_min_samples(X_arr, X_arr.shape[1], 'X')

        p = X_arr.shape[1]
        if column_names is None:
            names = tuple(f"x{j}" for j in range(p))
        else:
            names = tuple(str(c) for c in column_names)
            if len(names) != p:
                raise ValidationError(
                    f"column_names: expected {p} names, got {len(names)}"
                )

        offset_arr = None
        if offset is not None:
            offset_arr = check_array(offset, 'offset')
            check_1d(offset_arr, 'offset')
            check_finite(offset_arr, 'offset')
            check_consistent_length(y_arr, offset_arr, names=('y', 'offset'))

        has_intercept = bool(np.any(np.all(X_arr == 1.0, axis=0)))

        return cls(
            X=X_arr,
            y=y_arr,
            column_names=names,
            row_index=np.arange(X_arr.shape[0], dtype=np.intp),
            has_intercept=has_intercept,
            offset=offset_arr,
        )

    @classmethod
    def from_matrix(
        cls,
        design: DesignMatrix,
        *,
        y: NDArray[np.floating[Any]] | None = None,
        offset: NDArray[np.floating[Any]] | None = None,
    ) -> RegressionDesign:
        """
        Build a design from a formula-built DesignMatrix.

        Args:
            design: Output of build_design
            y: Replacement numeric response (e.g. a recoded binary factor)
            offset: Offset aligned with the rows of `design`
        """
        response = design.require_response() if y is None else y
        if design.response_is_categorical and y is None:
            raise ValidationError(
                f"response {design.response_name!r} is categorical; "
                f"expected a numeric response"
            )
        y_arr = np.asarray(response, dtype=np.float64)
        check_finite(y_arr, 'y')

        return cls(
            X=design.X,
            y=y_arr,
            column_names=design.column_names,
            row_index=design.row_index,
            has_intercept=design.has_intercept,
            offset=offset,
            n_dropped=design.n_dropped,
            warnings=design.warnings,
        )

    # === Properties ===

    @property
    def n(self) -> int:
        """Number of observations."""
        return self.X.shape[0]

    @property
    def p(self) -> int:
        """Number of columns of X."""
        return self.X.shape[1]

    def offset_or_zero(self) -> NDArray[np.floating[Any]]:
        if self.offset is None:
            return np.zeros(self.n, dtype=np.float64)
        return self.offset

    def drop_column(self, j: int, value: float) -> RegressionDesign:
        """
        Design with column j removed and fixed at `value` through the offset.

        Used to profile one coefficient.
        """
        keep = [k for k in range(self.p) if k != j]
        return RegressionDesign(
            X=self.X[:, keep],
            y=self.y,
            column_names=tuple(self.column_names[k] for k in keep),
            row_index=self.row_index,
            has_intercept=bool(np.any(np.all(self.X[:, keep] == 1.0, axis=0))),
            offset=self.offset_or_zero() + value * self.X[:, j],
        )

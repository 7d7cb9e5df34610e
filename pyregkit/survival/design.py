"""
SurvivalDesign: immutable container for time-to-event data.

Wraps time, event indicator, optional covariates, and optional strata.
Validates inputs at construction time; all downstream code trusts clean data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyregkit.core.exceptions import SchemaError, ValidationError
from pyregkit.core.result import freeze_arrays
from pyregkit.core.validation import (
    check_2d,
    check_array,
    check_binary,
    check_consistent_length,
    check_finite,
    check_min_samples,
)


@dataclass(frozen=True)
class SurvivalDesign:
    """Immutable survival data container.

    Parameters
    ----------
    time : NDArray
        Time to event or censoring. Non-negative.
    event : NDArray
        Event indicator: 1 = event observed, 0 = censored.
    X : NDArray or None
        Covariate matrix (n, p), no intercept. None for KM / log-rank.
    strata : NDArray or None
        Group labels for stratified curves and the log-rank test.
    column_names : tuple of str
        Labels for the columns of X.
    row_index : NDArray
        Source-frame row of each observation.
    """

    time: NDArray
    event: NDArray
    X: NDArray | None = None
    strata: NDArray | None = None
    column_names: tuple[str, ...] = ()
    row_index: NDArray | None = None
    n_dropped: int = 0
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        freeze_arrays(self)

    @classmethod
    def for_survival(
        cls,
        time: ArrayLike,
        event: ArrayLike,
        X: ArrayLike | None = None,
        *,
        strata: ArrayLike | None = None,
        column_names: Sequence[str] | None = None,
        row_index: NDArray | None = None,
        n_dropped: int = 0,
        warnings: tuple[str, ...] = (),
    ) -> SurvivalDesign:
        """Create and validate survival data.

        Raises
        ------
        ValidationError
            If time is negative or non-finite, or lengths disagree.
        SchemaError
            If event holds anything other than 0 and 1.
        """
        time_arr = check_array(time, 'time').ravel()
        event_arr = check_array(event, 'event').ravel()
        check_min_samples(time_arr, 1, 'time')
        check_consistent_length(time_arr, event_arr, names=('time', 'event'))
        check_finite(time_arr, 'time')

        if np.any(time_arr < 0):
            raise ValidationError(
                f"time: must be non-negative, got minimum {float(time_arr.min())}"
            )
        try:
            check_binary(event_arr, 'event')
        except ValidationError as e:
            raise SchemaError(str(e), column='event') from e

        n = len(time_arr)

        X_arr = None
        names: tuple[str, ...] = ()
        if X is not None:
            X_arr = check_array(X, 'X')
            if X_arr.ndim == 1:
                X_arr = X_arr.reshape(-1, 1)
            check_2d(X_arr, 'X')
            check_finite(X_arr, 'X')
            check_consistent_length(time_arr, X_arr, names=('time', 'X'))
            p = X_arr.shape[1]
            if column_names is None:
                names = tuple(f"x{j}" for j in range(p))
            else:
                names = tuple(str(c) for c in column_names)
                if len(names) != p:
                    raise ValidationError(
                        f"column_names: expected {p} names, got {len(names)}"
                    )

        strata_arr = None
        if strata is not None:
            strata_arr = np.array(strata).ravel()
            if len(strata_arr) != n:
                raise ValidationError(
                    f"strata must have {n} elements to match time, "
                    f"got {len(strata_arr)}"
                )

        if row_index is None:
            row_index = np.arange(n, dtype=np.intp)

        return cls(
            time=time_arr,
            event=event_arr,
            X=X_arr,
            strata=strata_arr,
            column_names=names,
            row_index=row_index,
            n_dropped=n_dropped,
            warnings=tuple(warnings),
        )

    @property
    def n(self) -> int:
        """Number of observations."""
        return len(self.time)

    @property
    def p(self) -> int | None:
        """Number of covariates (None if no covariates)."""
        return self.X.shape[1] if self.X is not None else None

    @property
    def n_events(self) -> int:
        """Number of observed events."""
        return int(np.sum(self.event))

"""
Public API for categorical-outcome models.

    multinomial(formula, data, baseline=None) → MultinomialSolution
    fit_multinomial(X, y, levels, baseline=0) → MultinomialSolution
    ordinal(formula, data) → OrdinalSolution
    fit_ordinal(X, y, levels) → OrdinalSolution

Each function validates inputs, checks the design for full rank,
runs the Newton-Raphson fit and wraps the Result in a Solution.
"""

from __future__ import annotations

import warnings
from typing import Any, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyregkit.core.compute.linalg.qr import check_full_rank, qr_decompose
from pyregkit.core.compute.timing import Timer
from pyregkit.core.exceptions import FormulaError, OrderingError, ValidationError
from pyregkit.core.result import Result
from pyregkit.core.validation import (
    check_1d,
    check_2d,
    check_array,
    check_consistent_length,
    check_finite,
    check_iteration_control,
    check_min_samples,
)
from pyregkit.categorical._multinomial import multinomial_fit
from pyregkit.categorical._ordinal import ordinal_fit
from pyregkit.categorical.solution import MultinomialSolution, OrdinalSolution
from pyregkit.formula.design import DesignMatrix, build_design
from pyregkit.formula.formula import Formula
from pyregkit.frame.frame import as_frame


# =====================================================================
# Multinomial
# =====================================================================

def multinomial(
    formula: str | Formula,
    data: Any,
    *,
    baseline: str | None = None,
    tol: float = 1e-8,
    max_iter: int = 100,
) -> MultinomialSolution:
    """Multinomial logistic regression from a formula.

    Matches R's nnet::multinom(formula, data).

    Parameters
    ----------
    formula : str or Formula
        e.g. "diet ~ age + sex". The response is categorical (a numeric
        response is treated as categorical with sorted distinct values).
    data : Frame, mapping or pandas DataFrame
    baseline : str or None
        Reference outcome level; defaults to the first level.
    tol : float
        Convergence tolerance on the max-abs coefficient change.
    max_iter : int
        Maximum Newton-Raphson iterations.

    Returns
    -------
    MultinomialSolution
    """
    check_iteration_control(tol, max_iter)
    design = build_design(as_frame(data), formula)
    codes, levels = _categorical_response(design)

    if baseline is None:
        base = 0
    elif str(baseline) in levels:
        base = levels.index(str(baseline))
    else:
        raise FormulaError(
            f"baseline {baseline!r} is not a level of {design.response_name!r} {levels}",
            term=design.response_name,
        )

    return _multinomial(
        design.X, codes, levels, base, design.column_names, design.row_index,
        tol=tol, max_iter=max_iter,
        n_dropped=design.n_dropped, notes=design.warnings,
    )


def fit_multinomial(
    X: ArrayLike,
    y: ArrayLike,
    levels: Sequence[str] | None = None,
    *,
    baseline: int | str = 0,
    column_names: Sequence[str] | None = None,
    tol: float = 1e-8,
    max_iter: int = 100,
) -> MultinomialSolution:
    """Multinomial logistic regression on arrays.

    Parameters
    ----------
    X : array-like
        (n, p) design matrix, including an intercept column if wanted.
    y : array-like
        (n,) integer outcome codes 0..K-1.
    levels : sequence of str or None
        Level labels; defaults to the codes as strings.
    baseline : int or str
        Reference level, by index or label.
    """
    check_iteration_control(tol, max_iter)
    X_arr, names = _check_design(X, column_names)
    codes, level_tuple = _check_codes(y, levels, X_arr.shape[0])

    if isinstance(baseline, str):
        if baseline not in level_tuple:
            raise ValidationError(f"baseline {baseline!r} is not one of {level_tuple}")
        base = level_tuple.index(baseline)
    else:
        base = int(baseline)
        if not 0 <= base < len(level_tuple):
            raise ValidationError(
                f"baseline index must be in [0, {len(level_tuple) - 1}], got {baseline}"
            )

    return _multinomial(
        X_arr, codes, level_tuple, base, names,
        np.arange(X_arr.shape[0], dtype=np.intp),
        tol=tol, max_iter=max_iter,
    )


def _multinomial(
    X: NDArray,
    codes: NDArray,
    levels: tuple[str, ...],
    baseline: int,
    column_names: tuple[str, ...],
    row_index: NDArray,
    *,
    tol: float,
    max_iter: int,
    n_dropped: int = 0,
    notes: tuple[str, ...] = (),
) -> MultinomialSolution:
    if len(levels) < 2:
        raise ValidationError(
            f"multinomial outcome needs at least 2 levels, got {len(levels)}"
        )
    _check_all_levels_observed(codes, levels)

    timer = Timer()
    timer.start()

    with timer.section('rank_check'):
        check_full_rank(qr_decompose(X), X.shape[1], column_names=column_names)

    with timer.section('newton'):
        params = multinomial_fit(X, codes, levels, baseline, tol=tol, max_iter=max_iter)

    timer.stop()

    result = Result(
        params=params,
        info={
            'method': 'newton',
            'iterations': params.n_iter,
            'final_change': params.final_change,
            'converged': True,
            'n_dropped': n_dropped,
        },
        timing=timer.result(),
        backend_name='cpu_newton',
        warnings=notes,
    )
    return MultinomialSolution(
        _result=result, _column_names=column_names, _row_index=row_index,
    )


# =====================================================================
# Ordinal
# =====================================================================

def ordinal(
    formula: str | Formula,
    data: Any,
    *,
    tol: float = 1e-8,
    max_iter: int = 100,
) -> OrdinalSolution:
    """Proportional-odds logistic regression from a formula.

    Matches R's MASS::polr(formula, data). The design never contains an
    intercept: the cut points play that role.

    Parameters
    ----------
    formula : str or Formula
        e.g. "rating ~ price + brand". The response should be an ordered
        categorical column; an unordered one is used in its level order
        with a warning, a numeric one in increasing value order.
    data : Frame, mapping or pandas DataFrame

    Raises
    ------
    OrderingError
        If the outcome has fewer than 3 observed levels.
    """
    check_iteration_control(tol, max_iter)
    design = build_design(as_frame(data), formula, intercept=False)
    codes, levels = _categorical_response(design)

    notes = list(design.warnings)
    if design.response_is_categorical and not design.response_ordered:
        msg = (
            f"response {design.response_name!r} is not flagged as ordered; "
            f"using its level order {levels}"
        )
        warnings.warn(msg, UserWarning, stacklevel=2)
        notes.append(msg)

    return _ordinal(
        design.X, codes, levels, design.column_names, design.row_index,
        tol=tol, max_iter=max_iter,
        n_dropped=design.n_dropped, notes=tuple(notes),
    )


def fit_ordinal(
    X: ArrayLike,
    y: ArrayLike,
    levels: Sequence[str] | None = None,
    *,
    column_names: Sequence[str] | None = None,
    tol: float = 1e-8,
    max_iter: int = 100,
) -> OrdinalSolution:
    """Proportional-odds logistic regression on arrays.

    Parameters
    ----------
    X : array-like
        (n, p) design matrix WITHOUT an intercept column.
    y : array-like
        (n,) ordered integer outcome codes 0..K-1.
    levels : sequence of str or None
        Ordered level labels; defaults to the codes as strings.
    """
    check_iteration_control(tol, max_iter)
    X_arr, names = _check_design(X, column_names)
    codes, level_tuple = _check_codes(y, levels, X_arr.shape[0])
    return _ordinal(
        X_arr, codes, level_tuple, names,
        np.arange(X_arr.shape[0], dtype=np.intp),
        tol=tol, max_iter=max_iter,
    )


def _ordinal(
    X: NDArray,
    codes: NDArray,
    levels: tuple[str, ...],
    column_names: tuple[str, ...],
    row_index: NDArray,
    *,
    tol: float,
    max_iter: int,
    n_dropped: int = 0,
    notes: tuple[str, ...] = (),
) -> OrdinalSolution:
    if len(levels) < 3:
        raise OrderingError(
            f"ordinal outcome needs at least 3 ordered levels, got {len(levels)} "
            f"{levels}; use a binomial GLM for two levels",
            n_levels=len(levels),
        )
    _check_all_levels_observed(codes, levels)

    timer = Timer()
    timer.start()

    # A constant column would be aliased with the cut points
    with timer.section('rank_check'):
        n = X.shape[0]
        X_aug = np.column_stack([np.ones(n), X])
        check_full_rank(
            qr_decompose(X_aug), X_aug.shape[1],
            column_names=('(cut points)',) + column_names,
        )

    with timer.section('newton'):
        params = ordinal_fit(X, codes, levels, tol=tol, max_iter=max_iter)

    timer.stop()

    result = Result(
        params=params,
        info={
            'method': 'newton',
            'iterations': params.n_iter,
            'final_change': params.final_change,
            'converged': True,
            'n_dropped': n_dropped,
        },
        timing=timer.result(),
        backend_name='cpu_newton',
        warnings=notes,
    )
    return OrdinalSolution(
        _result=result, _column_names=column_names, _row_index=row_index,
    )


# =====================================================================
# Validation helpers
# =====================================================================

def _categorical_response(design: DesignMatrix) -> tuple[NDArray, tuple[str, ...]]:
    """Outcome codes and levels; a numeric response uses sorted distinct values."""
    y = design.require_response()
    if design.response_is_categorical:
        return y.astype(np.intp), design.response_levels

    values, codes = np.unique(y, return_inverse=True)
    levels = tuple(str(int(v)) if float(v).is_integer() else repr(float(v)) for v in values)
    return codes.astype(np.intp), levels


def _check_design(
    X: ArrayLike,
    column_names: Sequence[str] | None,
) -> tuple[NDArray, tuple[str, ...]]:
    X_arr = check_array(X, 'X')
    if X_arr.ndim == 1:
        X_arr = X_arr.reshape(-1, 1)
    check_2d(X_arr, 'X')
    check_finite(X_arr, 'X')
    p = X_arr.shape[1]
    if column_names is None:
        return X_arr, tuple(f"x{j}" for j in range(p))
    names = tuple(str(c) for c in column_names)
    if len(names) != p:
        raise ValidationError(f"column_names: expected {p} names, got {len(names)}")
    return X_arr, names


def _check_codes(
    y: ArrayLike,
    levels: Sequence[str] | None,
    n: int,
) -> tuple[NDArray, tuple[str, ...]]:
    y_arr = check_array(y, 'y')
    check_1d(y_arr, 'y')
    check_min_samples(y_arr, 1, 'y')
    check_finite(y_arr, 'y')
    check_consistent_length(np.empty(n), y_arr, names=('X', 'y'))
    if np.any(y_arr != np.round(y_arr)) or np.any(y_arr < 0):
        raise ValidationError("y: outcome codes must be non-negative integers")
    codes = y_arr.astype(np.intp)

    if levels is None:
        level_tuple = tuple(str(k) for k in range(int(codes.max()) + 1))
    else:
        level_tuple = tuple(str(lv) for lv in levels)
        if codes.max() >= len(level_tuple):
            raise ValidationError(
                f"y: code {int(codes.max())} has no label among {len(level_tuple)} levels"
            )
    return codes, level_tuple


def _check_all_levels_observed(codes: NDArray, levels: tuple[str, ...]) -> None:
    counts = np.bincount(codes, minlength=len(levels))
    empty = [levels[k] for k in np.flatnonzero(counts == 0)]
    if empty:
        raise ValidationError(f"outcome levels with no observations: {empty}")

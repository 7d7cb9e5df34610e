"""
Design matrix construction from a Frame and a Formula.

Handles the translation from typed columns to a numeric model matrix:

    - Numeric main effect: the column itself
    - Categorical main effect: treatment (dummy) coding, k-1 indicator
      columns named `col[T.level]`, baseline = first level
    - Interaction: element-wise product of every pair of constituent
      columns (num x num: 1 column; cat x num: k-1; cat x cat: (k-1)(m-1))
    - Intercept: a leading column of ones named 'Intercept'

Rows missing any referenced column are dropped (listwise deletion) before
encoding; levels that no longer occur are dropped with them, as R's
model.frame does. Rank deficiency is left to the fitters.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Any, Iterable

import numpy as np
from numpy.typing import NDArray

from pyregkit.core.exceptions import FormulaError
from pyregkit.core.result import freeze_arrays
from pyregkit.formula.formula import Formula, Term
from pyregkit.frame.columns import CategoricalColumn, MISSING_CODE
from pyregkit.frame.frame import Frame

INTERCEPT = 'Intercept'


@dataclass(frozen=True)
class DesignMatrix:
    """
    Encoded design matrix with the metadata fitters and reports need.

    Attributes:
        X: (n, p) float64 model matrix
        y: response (float64 values, or int level codes for a categorical
            response), None for a one-sided formula
        row_index: original observation id of each row of X
        column_names: label of each column of X
        term_slices: term label -> column slice in X
        response_name: response column name, or None
        response_levels: level labels when the response is categorical
        response_ordered: whether the categorical response is ordered
        has_intercept: whether column 0 is the intercept
        n_dropped: rows removed because of missing values
        data: the retained rows of the input frame (for auxiliary columns)
        warnings: non-fatal issues raised while building
    """
    X: NDArray[np.floating[Any]]
    y: NDArray[Any] | None
    row_index: NDArray[np.intp]
    column_names: tuple[str, ...]
    term_slices: dict[str, slice]
    response_name: str | None
    response_levels: tuple[str, ...] | None
    response_ordered: bool
    has_intercept: bool
    n_dropped: int
    data: Frame
    warnings: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        freeze_arrays(self)

    @property
    def n(self) -> int:
        return self.X.shape[0]

    @property
    def p(self) -> int:
        return self.X.shape[1]

    @property
    def response_is_categorical(self) -> bool:
        return self.response_levels is not None

    def require_response(self) -> NDArray[Any]:
        """The response array; FormulaError for one-sided formulas."""
        if self.y is None:
            raise FormulaError("formula has no response (left-hand side of '~')")
        return self.y


def build_design(
    frame: Frame,
    formula: Formula | str,
    *,
    intercept: bool | None = None,
    extra_columns: Iterable[str] = (),
) -> DesignMatrix:
    """
    Build a treatment-coded design matrix.

    Args:
        frame: Source data
        formula: Formula or formula text
        intercept: Override the formula's intercept flag (the ordinal and
            Cox fitters force False)
        extra_columns: Further columns that must be non-missing in every
            retained row (e.g. survival time and event)

    Returns:
        DesignMatrix

    Raises:
        FormulaError: For absent columns, invalid baselines, single-level
            factors, or fewer rows than columns
    """
    if isinstance(formula, str):
        formula = Formula.parse(formula)
    use_intercept = formula.intercept if intercept is None else bool(intercept)

    extra = tuple(c for c in extra_columns if c not in formula.columns)
    needed = formula.columns + extra
    for name in needed:
        if name not in frame:
            raise FormulaError(
                f"column {name!r} not found in data. Available: {list(frame.names)}",
                term=name,
            )

    frame = _apply_baselines(frame, formula)

    complete = frame.select(needed).drop_missing()
    n_dropped = frame.n_rows - complete.n_rows
    notes: list[str] = []
    if n_dropped > 0:
        msg = f"{n_dropped} row(s) with missing values dropped from the model"
        warnings.warn(msg, UserWarning, stacklevel=3)
        notes.append(msg)

    # Encode each predictor once; interactions reuse the encodings
    encoded: dict[str, tuple[NDArray[np.floating[Any]], list[str]]] = {}
    for name in formula.predictors:
        encoded[name] = _encode(complete, name, formula.baselines.get(name))

    n = complete.n_rows
    blocks: list[NDArray[np.floating[Any]]] = []
    names: list[str] = []
    term_slices: dict[str, slice] = {}
    offset = 0

    if use_intercept:
        blocks.append(np.ones((n, 1), dtype=np.float64))
        names.append(INTERCEPT)
        term_slices[INTERCEPT] = slice(0, 1)
        offset = 1

    for term in formula.terms:
        block, labels = _term_columns(term, encoded)
        blocks.append(block)
        names.extend(labels)
        term_slices[term.label] = slice(offset, offset + block.shape[1])
        offset += block.shape[1]

    X = np.hstack(blocks) if blocks else np.empty((n, 0), dtype=np.float64)
    if X.shape[1] == 0:
        raise FormulaError(f"formula {str(formula)!r} produces an empty design")
    if n < X.shape[1]:
        raise FormulaError(
            f"design has fewer rows ({n}) than columns ({X.shape[1]}) "
            f"after dropping missing values"
        )

    y, levels, ordered = _response(complete, formula.response)

    return DesignMatrix(
        X=X,
        y=y,
        row_index=complete.row_index,
        column_names=tuple(names),
        term_slices=term_slices,
        response_name=formula.response,
        response_levels=levels,
        response_ordered=ordered,
        has_intercept=use_intercept,
        n_dropped=n_dropped,
        data=complete,
        warnings=tuple(notes),
    )


def _apply_baselines(frame: Frame, formula: Formula) -> Frame:
    for name, baseline in formula.baselines.items():
        if name not in frame:
            raise FormulaError(f"baseline given for unknown column {name!r}", term=name)
        if not frame.is_categorical(name):
            raise FormulaError(
                f"baseline given for numeric column {name!r}; "
                f"convert it with Frame.as_categorical first",
                term=name,
            )
        levels = frame.categorical(name).levels
        if str(baseline) not in levels:
            raise FormulaError(
                f"baseline {baseline!r} is not a level of {name!r} {levels}",
                term=name,
            )
        frame = frame.relevel(name, str(baseline))
    return frame


def _used_levels(column: CategoricalColumn) -> CategoricalColumn:
    """Drop levels with no remaining observations, keeping level order."""
    present = np.zeros(column.n_levels, dtype=bool)
    present[column.codes[column.codes != MISSING_CODE]] = True
    if present.all():
        return column
    remap = np.full(column.n_levels + 1, MISSING_CODE, dtype=np.intp)
    remap[np.flatnonzero(present)] = np.arange(int(present.sum()))
    levels = tuple(lv for lv, keep in zip(column.levels, present) if keep)
    return CategoricalColumn(remap[column.codes], levels, column.ordered)


def _encode(
    frame: Frame,
    name: str,
    baseline: str | None,
) -> tuple[NDArray[np.floating[Any]], list[str]]:
    """Encode one column as (n, k) float columns plus their labels."""
    if not frame.is_categorical(name):
        return frame.numeric(name).reshape(-1, 1).astype(np.float64), [name]

    column = _used_levels(frame.categorical(name))
    if baseline is not None and column.levels[0] != str(baseline):
        raise FormulaError(
            f"baseline {baseline!r} of {name!r} has no complete observations",
            term=name,
        )
    if column.n_levels < 2:
        raise FormulaError(
            f"factor {name!r} has fewer than 2 observed levels {column.levels}",
            term=name,
        )

    contrasts = column.levels[1:]
    X = np.zeros((len(column), len(contrasts)), dtype=np.float64)
    for j in range(len(contrasts)):
        X[:, j] = (column.codes == j + 1).astype(np.float64)
    return X, [f"{name}[T.{level}]" for level in contrasts]


def _term_columns(
    term: Term,
    encoded: dict[str, tuple[NDArray[np.floating[Any]], list[str]]],
) -> tuple[NDArray[np.floating[Any]], list[str]]:
    """Columns of a main effect, or all pairwise products for an interaction."""
    if term.order == 1:
        return encoded[term.factors[0]]

    X_a, names_a = encoded[term.factors[0]]
    X_b, names_b = encoded[term.factors[1]]
    n = X_a.shape[0]
    X_int = np.empty((n, X_a.shape[1] * X_b.shape[1]), dtype=np.float64)
    labels: list[str] = []

    col = 0
    for i in range(X_a.shape[1]):
        for j in range(X_b.shape[1]):
            X_int[:, col] = X_a[:, i] * X_b[:, j]
            labels.append(f"{names_a[i]}:{names_b[j]}")
            col += 1

    return X_int, labels


def _response(
    frame: Frame,
    name: str | None,
) -> tuple[NDArray[Any] | None, tuple[str, ...] | None, bool]:
    if name is None:
        return None, None, False
    if frame.is_categorical(name):
        column = _used_levels(frame.categorical(name))
        return column.codes.copy(), column.levels, column.ordered
    return frame.numeric(name).astype(np.float64), None, False

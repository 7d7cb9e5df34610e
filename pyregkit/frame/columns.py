"""
Typed columns for the in-memory frame.

Two column kinds exist:
    NumericColumn: float64 values, NaN marks a missing value
    CategoricalColumn: integer codes into an ordered tuple of level labels,
        code -1 marks a missing value

Both are immutable: their arrays are copied on construction and flagged
read-only, so a column can be shared between frames (and threads) freely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Union

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyregkit.core.exceptions import SchemaError

MISSING_CODE = -1


def _readonly(array: NDArray) -> NDArray:
    array.setflags(write=False)
    return array


def _is_missing_label(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and np.isnan(value):
        return True
    # pandas.NA / NaT compare unequal to themselves or raise
    try:
        return bool(value != value)
    except (TypeError, ValueError):
        return True


@dataclass(frozen=True, eq=False)
class NumericColumn:
    """Numeric column; NaN is the missing marker."""
    values: NDArray[np.floating[Any]]

    def __post_init__(self) -> None:
        try:
            values = np.array(self.values, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise SchemaError(f"numeric column: cannot convert to float: {e}") from e
        if values.ndim != 1:
            raise SchemaError(
                f"numeric column: expected 1D values, got shape {values.shape}"
            )
        object.__setattr__(self, 'values', _readonly(values))

    kind = 'numeric'

    def __len__(self) -> int:
        return len(self.values)

    @property
    def missing(self) -> NDArray[np.bool_]:
        return np.isnan(self.values)

    def take(self, indices: NDArray[np.intp]) -> NumericColumn:
        return NumericColumn(self.values[indices])

    def __repr__(self) -> str:
        return f"NumericColumn(n={len(self)}, missing={int(self.missing.sum())})"


@dataclass(frozen=True, eq=False)
class CategoricalColumn:
    """
    Categorical column stored as level codes.

    Attributes:
        codes: int array, index into `levels`, -1 where missing
        levels: ordered level labels; the first level is the default baseline
        ordered: whether the level order is meaningful (ordinal outcomes)
    """
    codes: NDArray[np.intp]
    levels: tuple[str, ...]
    ordered: bool = False

    def __post_init__(self) -> None:
        codes = np.array(self.codes, dtype=np.intp)
        if codes.ndim != 1:
            raise SchemaError(
                f"categorical column: expected 1D codes, got shape {codes.shape}"
            )
        levels = tuple(str(level) for level in self.levels)
        if len(set(levels)) != len(levels):
            raise SchemaError(f"categorical column: duplicate levels in {levels}")
        if codes.size and (codes.min() < MISSING_CODE or codes.max() >= len(levels)):
            raise SchemaError(
                f"categorical column: codes must lie in [-1, {len(levels) - 1}], "
                f"got range [{codes.min()}, {codes.max()}]"
            )
        object.__setattr__(self, 'codes', _readonly(codes))
        object.__setattr__(self, 'levels', levels)
        object.__setattr__(self, 'ordered', bool(self.ordered))

    kind = 'categorical'

    @classmethod
    def from_values(
        cls,
        values: Iterable[Any],
        levels: Iterable[Any] | None = None,
        ordered: bool = False,
    ) -> CategoricalColumn:
        """
        Encode raw labels.

        Labels are compared as strings. None/NaN become missing. When
        `levels` is omitted the sorted set of observed labels is used.

        Raises:
            SchemaError: If a label is not one of the given levels
        """
        raw = list(values)
        missing = [_is_missing_label(v) for v in raw]
        labels = ['' if m else str(v) for v, m in zip(raw, missing)]

        if levels is None:
            level_tuple = tuple(sorted({lab for lab, m in zip(labels, missing) if not m}))
        else:
            level_tuple = tuple(str(level) for level in levels)

        lookup = {level: i for i, level in enumerate(level_tuple)}
        codes = np.full(len(raw), MISSING_CODE, dtype=np.intp)
        for i, (lab, m) in enumerate(zip(labels, missing)):
            if m:
                continue
            if lab not in lookup:
                raise SchemaError(
                    f"categorical column: value {lab!r} is not one of the levels {level_tuple}"
                )
            codes[i] = lookup[lab]

        return cls(codes=codes, levels=level_tuple, ordered=ordered)

    def __len__(self) -> int:
        return len(self.codes)

    @property
    def n_levels(self) -> int:
        return len(self.levels)

    @property
    def missing(self) -> NDArray[np.bool_]:
        return self.codes == MISSING_CODE

    def labels(self) -> NDArray[np.object_]:
        """Level labels per row (None where missing)."""
        lookup = np.array(self.levels + (None,), dtype=object)
        return lookup[self.codes]

    def take(self, indices: NDArray[np.intp]) -> CategoricalColumn:
        return CategoricalColumn(self.codes[indices], self.levels, self.ordered)

    def reorder(self, levels: Iterable[Any]) -> CategoricalColumn:
        """
        Return the same labels under a new level order.

        Raises:
            SchemaError: If `levels` is not a permutation of the current levels
        """
        new_levels = tuple(str(level) for level in levels)
        if sorted(new_levels) != sorted(self.levels):
            raise SchemaError(
                f"categorical column: {new_levels} is not a permutation of {self.levels}"
            )
        position = {level: i for i, level in enumerate(new_levels)}
        remap = np.array([position[level] for level in self.levels] + [MISSING_CODE],
                         dtype=np.intp)
        return CategoricalColumn(remap[self.codes], new_levels, self.ordered)

    def __repr__(self) -> str:
        return (
            f"CategoricalColumn(n={len(self)}, levels={self.levels}, "
            f"ordered={self.ordered}, missing={int(self.missing.sum())})"
        )


Column = Union[NumericColumn, CategoricalColumn]


def as_column(values: Column | ArrayLike) -> Column:
    """
    Coerce raw values into a column.

    Columns pass through unchanged. Numeric and boolean arrays become
    NumericColumn; anything else (strings, objects) becomes a
    CategoricalColumn with sorted levels.
    """
    if isinstance(values, (NumericColumn, CategoricalColumn)):
        return values

    array = np.asarray(values)
    if array.ndim != 1:
        raise SchemaError(f"column values must be 1D, got shape {array.shape}")
    if array.dtype == np.bool_:
        return NumericColumn(array.astype(np.float64))
    if np.issubdtype(array.dtype, np.number):
        return NumericColumn(array)
    return CategoricalColumn.from_values(array.tolist())

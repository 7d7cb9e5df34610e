"""
Frame: immutable table of named, typed columns.

Frame is the "I have data" abstraction. It doesn't know which model will
consume it; it provides typed column access, row filtering and missing
value handling. Every transformation returns a new Frame, so a fitted
model's row indices always refer to a stable row ordering.

Usage:
    from pyregkit.frame import Frame

    frame = Frame.from_dict(
        {'bmi': bmi, 'sex': sex, 'smoker': smoker},
        categorical=['smoker'],
    )
    frame = Frame.from_pandas(df)

    frame = frame.relevel('sex', 'female')
    complete = frame.drop_missing(['bmi', 'sex'])
    complete.row_index   # original observation ids of the retained rows
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Iterator, Mapping, TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyregkit.core.exceptions import SchemaError
from pyregkit.frame.columns import (
    CategoricalColumn,
    Column,
    NumericColumn,
    as_column,
)

if TYPE_CHECKING:
    import pandas as pd


class Frame:
    """
    Immutable ordered set of equal-length columns.

    Construct directly from a mapping of name -> column/array, or through
    the from_dict / from_pandas factories.

    Attributes:
        row_index: original observation id of each row; follows the rows
            through select/filter/drop_missing
    """

    __slots__ = ('_columns', '_row_index', '_n')

    def __init__(
        self,
        columns: Mapping[str, Column | ArrayLike],
        *,
        row_index: ArrayLike | None = None,
    ) -> None:
        converted: dict[str, Column] = {}
        for name, values in columns.items():
            if not isinstance(name, str):
                raise SchemaError(f"column names must be str, got {name!r}")
            try:
                converted[name] = as_column(values)
            except SchemaError as e:
                raise SchemaError(f"column {name!r}: {e}", column=name) from e

        lengths = {name: len(col) for name, col in converted.items()}
        if len(set(lengths.values())) > 1:
            details = ", ".join(f"{name}={n}" for name, n in lengths.items())
            raise SchemaError(f"columns must have equal length, got {details}")

        n = next(iter(lengths.values())) if lengths else 0
        if row_index is None:
            index = np.arange(n, dtype=np.intp)
        else:
            index = np.array(row_index, dtype=np.intp)
            if index.shape != (n,):
                raise SchemaError(
                    f"row_index must have shape ({n},), got {index.shape}"
                )
        index.setflags(write=False)

        self._columns = converted
        self._row_index = index
        self._n = n

    # === Factory Methods ===

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, ArrayLike],
        *,
        categorical: Iterable[str] = (),
        ordered: Mapping[str, Iterable[Any]] | None = None,
    ) -> Frame:
        """
        Build a frame from raw arrays.

        Args:
            data: {name: 1D values}
            categorical: names to force to categorical even if numeric
                (e.g. 0/1 coded survey answers)
            ordered: {name: level order} for ordered categorical columns

        Raises:
            SchemaError: On unequal lengths or invalid values
        """
        ordered = dict(ordered or {})
        forced = set(categorical)
        columns: dict[str, Column | ArrayLike] = {}
        for name, values in data.items():
            if name in ordered:
                columns[name] = CategoricalColumn.from_values(
                    _labels(values), levels=ordered[name], ordered=True,
                )
            elif name in forced:
                columns[name] = CategoricalColumn.from_values(_labels(values))
            else:
                columns[name] = values
        return cls(columns)

    @classmethod
    def from_pandas(cls, df: 'pd.DataFrame') -> Frame:
        """
        Build a frame from a pandas DataFrame.

        pandas Categorical columns keep their category order and ordered
        flag; numeric and boolean columns become numeric; everything else
        becomes categorical with sorted levels. The DataFrame index is not
        carried over: row ids are positional.
        """
        import pandas as pd

        columns: dict[str, Column] = {}
        for name in df.columns:
            series = df[name]
            if isinstance(series.dtype, pd.CategoricalDtype):
                columns[str(name)] = CategoricalColumn(
                    codes=series.cat.codes.to_numpy(dtype=np.intp),
                    levels=tuple(str(c) for c in series.cat.categories),
                    ordered=bool(series.cat.ordered),
                )
            elif pd.api.types.is_bool_dtype(series.dtype) or pd.api.types.is_numeric_dtype(series.dtype):
                columns[str(name)] = NumericColumn(
                    series.to_numpy(dtype=np.float64, na_value=np.nan)
                )
            else:
                columns[str(name)] = CategoricalColumn.from_values(series.tolist())
        return cls(columns)

    # === Access ===

    @property
    def n_rows(self) -> int:
        return self._n

    def __len__(self) -> int:
        return self._n

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._columns)

    @property
    def row_index(self) -> NDArray[np.intp]:
        return self._row_index

    def __contains__(self, name: object) -> bool:
        return name in self._columns

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __getitem__(self, name: str) -> Column:
        """
        Access a column by name.

        Raises:
            SchemaError: If the column does not exist, listing available names
        """
        if name not in self._columns:
            raise SchemaError(
                f"Frame has no column {name!r}. Available: {list(self._columns)}",
                column=name,
            )
        return self._columns[name]

    def is_categorical(self, name: str) -> bool:
        return isinstance(self[name], CategoricalColumn)

    def numeric(self, name: str) -> NDArray[np.floating[Any]]:
        """Values of a numeric column."""
        column = self[name]
        if not isinstance(column, NumericColumn):
            raise SchemaError(f"column {name!r} is categorical, expected numeric", column=name)
        return column.values

    def categorical(self, name: str) -> CategoricalColumn:
        """A categorical column."""
        column = self[name]
        if not isinstance(column, CategoricalColumn):
            raise SchemaError(f"column {name!r} is numeric, expected categorical", column=name)
        return column

    # === Row operations ===

    def _take(self, indices: NDArray[np.intp]) -> Frame:
        return Frame(
            {name: col.take(indices) for name, col in self._columns.items()},
            row_index=self._row_index[indices],
        )

    def select(self, names: Iterable[str]) -> Frame:
        """New frame with only the named columns, in the given order."""
        names = list(names)
        return Frame({name: self[name] for name in names}, row_index=self._row_index)

    def filter(self, condition: ArrayLike | Callable[[Frame], ArrayLike]) -> Frame:
        """
        New frame keeping rows where the condition holds.

        Args:
            condition: boolean mask of length n_rows, or a callable
                receiving this frame and returning such a mask

        Raises:
            SchemaError: If the mask has the wrong shape or dtype
        """
        mask = condition(self) if callable(condition) else condition
        mask = np.asarray(mask)
        if mask.dtype != np.bool_ or mask.shape != (self._n,):
            raise SchemaError(
                f"filter mask must be boolean with shape ({self._n},), "
                f"got dtype {mask.dtype} and shape {mask.shape}"
            )
        return self._take(np.flatnonzero(mask))

    def missing_mask(self, names: Iterable[str] | None = None) -> NDArray[np.bool_]:
        """Row-wise flag: True where any of the named columns is missing."""
        names = self.names if names is None else list(names)
        mask = np.zeros(self._n, dtype=bool)
        for name in names:
            mask |= self[name].missing
        return mask

    def drop_missing(self, names: Iterable[str] | None = None) -> Frame:
        """New frame retaining rows where every named column is non-missing."""
        return self._take(np.flatnonzero(~self.missing_mask(names)))

    # === Column transformations (each returns a new frame) ===

    def with_column(self, name: str, values: Column | ArrayLike) -> Frame:
        """New frame with a column added or replaced."""
        columns: dict[str, Column | ArrayLike] = dict(self._columns)
        columns[name] = values
        return Frame(columns, row_index=self._row_index)

    def as_categorical(
        self,
        name: str,
        levels: Iterable[Any] | None = None,
        ordered: bool = False,
    ) -> Frame:
        """
        Retype a column as categorical.

        Numeric values are labelled by their shortest repr (1.0 -> '1').
        An existing categorical column is reordered to `levels` and its
        ordered flag updated.
        """
        column = self[name]
        if isinstance(column, CategoricalColumn):
            new = column.reorder(levels) if levels is not None else column
            new = CategoricalColumn(new.codes, new.levels, ordered)
        else:
            values = column.values
            labels = [None if np.isnan(v) else _format_number(v) for v in values]
            if levels is None:
                uniques = np.unique(values[~np.isnan(values)])
                levels = [_format_number(v) for v in uniques]
            new = CategoricalColumn.from_values(labels, levels=levels, ordered=ordered)
        return self.with_column(name, new)

    def as_numeric(self, name: str) -> Frame:
        """
        Retype a categorical column as numeric by parsing its labels.

        Raises:
            SchemaError: If a label is not a number
        """
        column = self[name]
        if isinstance(column, NumericColumn):
            return self
        try:
            parsed = np.array([float(level) for level in column.levels] + [np.nan])
        except ValueError as e:
            raise SchemaError(f"column {name!r}: labels are not numeric: {e}", column=name) from e
        return self.with_column(name, NumericColumn(parsed[column.codes]))

    def relevel(self, name: str, baseline: str) -> Frame:
        """
        New frame whose categorical column `name` has `baseline` first.

        Raises:
            SchemaError: If the column is numeric or baseline is not a level
        """
        column = self.categorical(name)
        baseline = str(baseline)
        if baseline not in column.levels:
            raise SchemaError(
                f"column {name!r}: baseline {baseline!r} is not one of {column.levels}",
                column=name,
            )
        order = (baseline,) + tuple(level for level in column.levels if level != baseline)
        return self.with_column(name, column.reorder(order))

    # === Export ===

    def to_pandas(self) -> 'pd.DataFrame':
        """Export to pandas; categorical columns become pandas Categoricals."""
        import pandas as pd

        data: dict[str, Any] = {}
        for name, column in self._columns.items():
            if isinstance(column, CategoricalColumn):
                data[name] = pd.Categorical.from_codes(
                    column.codes, categories=list(column.levels), ordered=column.ordered,
                )
            else:
                data[name] = column.values.copy()
        return pd.DataFrame(data, index=pd.Index(self._row_index, name='row'))

    def __repr__(self) -> str:
        kinds = ", ".join(f"{name}:{col.kind}" for name, col in self._columns.items())
        return f"Frame(n_rows={self._n}, columns=[{kinds}])"


def as_frame(data: Any) -> Frame:
    """
    Accept a Frame, a {name: values} mapping or a pandas DataFrame.

    Raises:
        SchemaError: If `data` is none of these
    """
    if isinstance(data, Frame):
        return data
    if isinstance(data, Mapping):
        return Frame.from_dict(data)
    if hasattr(data, 'columns') and hasattr(data, 'dtypes'):
        return Frame.from_pandas(data)
    raise SchemaError(
        f"data must be a Frame, a mapping of columns or a pandas DataFrame, "
        f"got {type(data).__name__}"
    )


def _labels(values: ArrayLike) -> list[Any]:
    array = np.asarray(values)
    if np.issubdtype(array.dtype, np.floating):
        return [None if np.isnan(v) else _format_number(v) for v in array]
    return array.tolist()


def _format_number(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)

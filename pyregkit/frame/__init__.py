"""
In-memory tabular data for model fitting.

Provides an immutable Frame of typed columns (numeric or categorical),
row filtering, missing-value handling and pandas interop.
"""

from pyregkit.frame.columns import (
    MISSING_CODE,
    CategoricalColumn,
    Column,
    NumericColumn,
    as_column,
)
from pyregkit.frame.frame import Frame, as_frame

__all__ = [
    "Frame",
    "Column",
    "NumericColumn",
    "CategoricalColumn",
    "MISSING_CODE",
    "as_column",
    "as_frame",
]

"""
Core infrastructure for pyregkit.

This module provides shared abstractions, utilities, and numeric
infrastructure used by all model families (regression, categorical,
survival) and the reporting layer.

Key components:
    protocols: FittedModel protocol, ModelKind
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Timing, pivoted QR, Newton-Raphson
"""

from pyregkit.core.protocols import FittedModel, ModelKind
from pyregkit.core.result import Result
from pyregkit.core.exceptions import (
    PyRegKitError,
    ValidationError,
    DimensionError,
    SchemaError,
    FormulaError,
    OrderingError,
    NumericalError,
    SingularMatrixError,
    NotPositiveDefiniteError,
    ConvergenceError,
)

__all__ = [
    # Protocols
    "FittedModel",
    "ModelKind",
    # Result
    "Result",
    # Exceptions
    "PyRegKitError",
    "ValidationError",
    "DimensionError",
    "SchemaError",
    "FormulaError",
    "OrderingError",
    "NumericalError",
    "SingularMatrixError",
    "NotPositiveDefiniteError",
    "ConvergenceError",
]

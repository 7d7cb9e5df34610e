"""
Exception hierarchy for pyregkit.

All exceptions inherit from PyRegKitError to allow catching any
library-specific error. Domain-specific exceptions inherit from the
appropriate base class here.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""


class PyRegKitError(Exception):
    """Base exception for all pyregkit errors."""
    pass


class ValidationError(PyRegKitError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when array shapes don't match expected dimensions or
    when multiple arrays have inconsistent shapes.
    """
    pass


class SchemaError(ValidationError):
    """
    Tabular data is malformed.

    Raised when frame columns have unequal lengths, an unknown column is
    requested, or a column has the wrong semantic type for an operation.

    Attributes:
        column: Name of the offending column, if known
    """

    def __init__(self, message: str, column: str | None = None):
        super().__init__(message)
        self.column = column


class FormulaError(ValidationError):
    """
    Model formula is invalid for the data it is applied to.

    Raised when a formula references absent columns, names an unknown
    baseline level, or produces a degenerate design (fewer rows than
    columns).

    Attributes:
        term: The offending term or column name, if known
    """

    def __init__(self, message: str, term: str | None = None):
        super().__init__(message)
        self.term = term


class OrderingError(ValidationError):
    """
    Ordinal outcome does not have enough ordered levels.

    Attributes:
        n_levels: Number of levels observed in the outcome
    """

    def __init__(self, message: str, n_levels: int | None = None):
        super().__init__(message)
        self.n_levels = n_levels


class NumericalError(PyRegKitError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    pass


class SingularMatrixError(NumericalError):
    """
    Matrix is singular or nearly singular.

    Raised when a matrix operation requires invertibility but the matrix
    is singular or numerically rank-deficient.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        condition_number: Estimated condition number, if available
        rank: Numerical rank, if computed
        expected_rank: Expected rank (typically the number of columns)
        aliased: Names of columns found to be linearly dependent, if known
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        condition_number: float | None = None,
        rank: int | None = None,
        expected_rank: int | None = None,
        aliased: tuple[str, ...] | None = None,
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.condition_number = condition_number
        self.rank = rank
        self.expected_rank = expected_rank
        self.aliased = aliased


class NotPositiveDefiniteError(NumericalError):
    """
    Matrix is not positive definite.

    Raised when an information matrix must be inverted to obtain a
    covariance but fails to be positive definite.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        min_eigenvalue: Minimum eigenvalue, if computed
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        min_eigenvalue: float | None = None
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.min_eigenvalue = min_eigenvalue


class ConvergenceError(PyRegKitError):
    """
    Iterative algorithm failed to converge.

    Raised when an iterative optimization method (IRLS, Newton-Raphson)
    fails to bring the coefficient update below tolerance within the
    maximum number of iterations.

    Attributes:
        iterations: Number of iterations completed
        final_change: Max absolute coefficient change at the last iteration
        reason: Why convergence failed (e.g., 'max_iterations', 'diverging')
        threshold: The convergence threshold that was not met
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        final_change: float | None = None,
        reason: str | None = None,
        threshold: float | None = None
    ):
        super().__init__(message)
        self.iterations = iterations
        self.final_change = final_change
        self.reason = reason
        self.threshold = threshold

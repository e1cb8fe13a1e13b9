"""
Exception hierarchy for PyAnova.

All exceptions inherit from PyAnovaError so callers can catch any
library-specific error. Configuration errors (bad ANOVA type, unsupported
random-effect structure) are ValidationErrors; factorization failures are
NumericalErrors.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Raised synchronously at the point of detection, never retried
"""


class PyAnovaError(Exception):
    """Base exception for all PyAnova errors."""
    pass


class ValidationError(PyAnovaError):
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


class InvalidAnovaType(ValidationError):
    """
    Requested sums-of-squares type is not one of 1, 2, 3.

    Attributes:
        ss_type: The rejected value
    """

    def __init__(self, message: str, ss_type: object = None):
        super().__init__(message)
        self.ss_type = ss_type


class UnsupportedAnovaType(ValidationError):
    """
    Sums-of-squares type is valid but not available for this model.

    Type II tables are not defined for mixed models.

    Attributes:
        ss_type: The rejected value
    """

    def __init__(self, message: str, ss_type: int | None = None):
        super().__init__(message)
        self.ss_type = ss_type


class MultipleRandomFactorsUnsupported(ValidationError):
    """
    More than one random-effect grouping factor was supplied.

    Attributes:
        n_factors: Number of grouping factors supplied
    """

    def __init__(self, message: str, n_factors: int | None = None):
        super().__init__(message)
        self.n_factors = n_factors


class NumericalError(PyAnovaError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    pass


class NotPositiveDefiniteError(NumericalError):
    """
    Matrix is not positive definite.

    Raised when an operation requires a positive definite matrix
    (e.g., Cholesky decomposition) but the matrix fails this requirement.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        min_pivot: Smallest Cholesky pivot encountered, if available
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        min_pivot: float | None = None
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.min_pivot = min_pivot


class SingularDesignError(NotPositiveDefiniteError):
    """
    The normal-equations matrix X'X of a design subset is not positive definite.

    Raised only by the exact (non-pivoted) factorization. Pass
    allow_rank_deficient=True to solve on the aliased subspace instead.

    Attributes:
        rank: Numerical rank detected, if computed
        expected_rank: Number of columns in the subset
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = "X'X",
        min_pivot: float | None = None,
        rank: int | None = None,
        expected_rank: int | None = None
    ):
        super().__init__(message, matrix_name=matrix_name, min_pivot=min_pivot)
        self.rank = rank
        self.expected_rank = expected_rank

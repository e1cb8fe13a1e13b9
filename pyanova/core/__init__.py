"""
Core infrastructure for PyAnova.

Shared abstractions used by the ANOVA engine.

Key components:
    protocols: DataSource, Backend protocols
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Timing, tolerances, factorization kernels
"""

from pyanova.core.protocols import DataSource, Backend
from pyanova.core.result import Result
from pyanova.core.exceptions import (
    PyAnovaError,
    ValidationError,
    DimensionError,
    InvalidAnovaType,
    UnsupportedAnovaType,
    MultipleRandomFactorsUnsupported,
    NumericalError,
    NotPositiveDefiniteError,
    SingularDesignError,
)

__all__ = [
    # Protocols
    "DataSource",
    "Backend",
    # Result
    "Result",
    # Exceptions
    "PyAnovaError",
    "ValidationError",
    "DimensionError",
    "InvalidAnovaType",
    "UnsupportedAnovaType",
    "MultipleRandomFactorsUnsupported",
    "NumericalError",
    "NotPositiveDefiniteError",
    "SingularDesignError",
]

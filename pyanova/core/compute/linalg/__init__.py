"""
Linear algebra kernels for PyAnova.

All functions use NumPy/SciPy (LAPACK under the hood), return structured
frozen dataclasses, and raise immediately with clear messages.

Submodules:
    cholesky: Exact and pivoted Cholesky factorization of equilibrated X'X
"""

from pyanova.core.compute.linalg.cholesky import (
    ExactCholesky,
    PivotedCholesky,
    Factorization,
    cholesky_exact,
    cholesky_pivoted,
    equilibrate,
)

__all__ = [
    "ExactCholesky",
    "PivotedCholesky",
    "Factorization",
    "cholesky_exact",
    "cholesky_pivoted",
    "equilibrate",
]

"""
Shared compute infrastructure for PyAnova.

Submodules:
    timing: Execution timing utilities
    tolerances: Numerical tolerance tiers and the rank-detection tolerance
    linalg: Factorization kernels (exact and pivoted Cholesky)
"""

from pyanova.core.compute.timing import Timer

__all__ = [
    "Timer",
]

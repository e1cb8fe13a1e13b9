"""
ANOVA computation backends.

    CPUCholeskyBackend   fixed-effects Type I/II/III tables
    CPUMixedBackend      two-stratum mixed-model tables
"""

from pyanova.anova.backends.cpu import CPUCholeskyBackend, CPUMixedBackend

__all__ = [
    "CPUCholeskyBackend",
    "CPUMixedBackend",
]

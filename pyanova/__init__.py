"""
PyAnova: analysis-of-variance tables for fitted linear and mixed models.

Partitions the variance explained by a fitted model into per-term sums of
squares under the Type I (sequential), Type II (marginal) and Type III
(orthogonal) conventions, and derives degrees of freedom, F statistics and
p-values.

Submodules:
    anova: fixed-effects and mixed-model ANOVA tables
    core: exceptions, result envelope, validation, numeric kernels
"""

__version__ = "0.1.0"

from pyanova import anova

__all__ = [
    "__version__",
    "anova",
]

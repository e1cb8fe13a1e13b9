"""
Common data types for ANOVA.

Contains the frozen parameter payloads that go inside Result[P] envelopes.
Each payload is a plain data container without computation.

Table columns are parallel arrays whose last entry (fixed effects) or last
two entries (mixed models) are residual rows. Residual F statistics and
p-values are NaN.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class AnovaTableRow:
    """One row of an ANOVA table (one term or residuals)."""
    term: str
    df: int
    sum_sq: float
    mean_sq: float
    f_value: float      # NaN for residual rows
    p_value: float      # NaN for residual rows


@dataclass(frozen=True)
class AnovaParams:
    """
    Parameter payload for a fixed-effects ANOVA table.

    Produced by anova_lm(). Length of every column is n_terms + 1.
    """
    terms: tuple[str, ...]
    ss: NDArray[np.floating[Any]]
    df: NDArray[np.int64]
    mean_sq: NDArray[np.floating[Any]]
    fstat: NDArray[np.floating[Any]]
    pvalue: NDArray[np.floating[Any]]
    ss_type: int                      # 1, 2, or 3
    n_obs: int


@dataclass(frozen=True)
class MixedAnovaParams:
    """
    Parameter payload for a linear mixed-model ANOVA table.

    Produced by anova_lme(). Term rows are followed by the between-subject
    residual row and the within-subject residual row.
    """
    terms: tuple[str, ...]
    ss: NDArray[np.floating[Any]]
    df: NDArray[np.int64]
    mean_sq: NDArray[np.floating[Any]]
    fstat: NDArray[np.floating[Any]]
    pvalue: NDArray[np.floating[Any]]
    between: tuple[bool, ...]         # one per term row
    ss_type: int                      # 1 or 3
    n_obs: int
    n_groups: int                     # clusters of the random factor
    n_cells: int                      # between-subject cells
    group_name: str

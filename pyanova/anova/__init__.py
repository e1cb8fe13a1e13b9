"""
Analysis of Variance (ANOVA) for fitted models.

Public API:
    anova_lm(X, y, assign, ...) -> AnovaSolution             # Type I/II/III
    anova_lme(X, assign, groups, ...) -> MixedAnovaSolution  # Type I/III, mixed model
    fit_subset(X, y, mask, ...) -> SubsetFit                 # SS kernel
    ss(X, y, mask, ...) -> float
    ColumnMask, TermAssignment, term_df, selectcoef
"""

from pyanova.anova.solvers import anova_lm, anova_lme
from pyanova.anova.solution import AnovaSolution, MixedAnovaSolution
from pyanova.anova._assign import ColumnMask, TermAssignment, selectcoef, term_df
from pyanova.anova._ss import SubsetFit, fit_subset, ss

__all__ = [
    "anova_lm",
    "anova_lme",
    "AnovaSolution",
    "MixedAnovaSolution",
    "ColumnMask",
    "TermAssignment",
    "selectcoef",
    "term_df",
    "SubsetFit",
    "fit_subset",
    "ss",
]

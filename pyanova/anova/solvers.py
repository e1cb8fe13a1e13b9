"""
ANOVA solver dispatch.

Public API:
    anova_lm(X, y, assign, ...) -> AnovaSolution
    anova_lme(X, assign, groups, ...) -> MixedAnovaSolution
"""

from typing import Sequence

from numpy.typing import ArrayLike

from pyanova.anova._mixed import check_mixed_type
from pyanova.anova._ss import check_ss_type
from pyanova.anova.backends.cpu import CPUCholeskyBackend, CPUMixedBackend
from pyanova.anova.design import AnovaDesign, MixedAnovaDesign
from pyanova.anova.solution import AnovaSolution, MixedAnovaSolution


def anova_lm(
    X: ArrayLike,
    y: ArrayLike,
    assign: ArrayLike,
    *,
    term_names: Sequence[str] | None = None,
    ss_type: int = 1,
    allow_rank_deficient: bool = False,
    n_jobs: int = 1,
) -> AnovaSolution:
    """
    Analysis of variance for a linear model.

    Each term's sum of squares comes from least-squares fits of y on column
    subsets of X, so no fitted model object is needed.

    Args:
        X: Design matrix (n, p). Include a column of ones as term 1 to
            model an intercept; start `assign` at 2 for a model without one.
        y: Response (n,)
        assign: 1-based term id per column of X, non-decreasing
        term_names: Optional name per term. Interactions are written 'A:B'
            and define which terms contain which for Type II.
        ss_type: Type of sums of squares (1, 2, or 3). Default 1.
            Type I: sequential (order-dependent)
            Type II: marginal, respects marginality
            Type III: each term last
        allow_rank_deficient: Use a pivoted Cholesky factorization that
            tolerates collinear columns. Default False: a singular X'X
            raises SingularDesignError.
        n_jobs: Threads used for the SS evaluations (-1 for all cores)

    Returns:
        AnovaSolution with one row per term plus the residual row

    Raises:
        InvalidAnovaType: If ss_type is not 1, 2 or 3
        SingularDesignError: If X'X of a column subset is singular and
            allow_rank_deficient is False

    Examples:
        >>> X = np.column_stack([np.ones(n), dummies_a, x])
        >>> result = anova_lm(X, y, [1, 2, 2, 3],
        ...                   term_names=['Intercept', 'A', 'x'], ss_type=3)
        >>> print(result.summary())
        >>> result.pvalue[1]  # p-value of term A
    """
    check_ss_type(ss_type)
    design = AnovaDesign.for_lm(X, y, assign, term_names=term_names)

    backend = CPUCholeskyBackend(
        ss_type=ss_type,
        allow_rank_deficient=allow_rank_deficient,
        n_jobs=n_jobs,
    )
    result = backend.solve(design)

    return AnovaSolution(_result=result)


def anova_lme(
    X: ArrayLike,
    assign: ArrayLike,
    groups: dict[str, ArrayLike],
    *,
    coefficients: ArrayLike,
    vcov: ArrayLike,
    residuals: ArrayLike,
    sigma_sq: float,
    reml: bool = True,
    term_names: Sequence[str] | None = None,
    ss_type: int = 1,
    between: Sequence[int] | None = None,
    adjust_sigma: bool = True,
) -> MixedAnovaSolution:
    """
    Analysis of variance for a linear mixed model with one grouping factor.

    Consumes the quantities of an already fitted model; fitting is left to
    the caller.

    Args:
        X: Fixed-effects design matrix (n, p)
        assign: 1-based term id per column of X
        groups: {name: cluster labels}, e.g. {'subject': subject_ids}.
            Exactly one grouping factor (random intercept design).
        coefficients: Fixed-effect estimates β̂ (p,)
        vcov: Covariance matrix of β̂ (p, p)
        residuals: Model residuals (n,)
        sigma_sq: Residual variance estimate σ̂²
        reml: Whether the model was fitted by REML. Default True.
        term_names: Optional name per term
        ss_type: 1 (sequential) or 3 (each term last). Default 1.
        between: 1-based term ids to force into the between-subject stratum
        adjust_sigma: For ML fits, rescale to the REML residual variance.
            Default True.

    Returns:
        MixedAnovaSolution with term rows followed by the between-subject
        and within-subject residual rows

    Raises:
        InvalidAnovaType: If ss_type is not 1, 2 or 3
        UnsupportedAnovaType: If ss_type is 2
        MultipleRandomFactorsUnsupported: If groups has more than one factor

    Examples:
        >>> result = anova_lme(X, [1, 2, 3], {'subject': subj},
        ...                    coefficients=beta, vcov=vcov,
        ...                    residuals=resid, sigma_sq=s2,
        ...                    term_names=['Intercept', 'group', 'time'])
        >>> result.between   # (False, True, False)
    """
    check_mixed_type(ss_type)
    design = MixedAnovaDesign.for_lme(
        X, assign, groups,
        coefficients=coefficients,
        vcov=vcov,
        residuals=residuals,
        sigma_sq=sigma_sq,
        reml=reml,
        term_names=term_names,
    )

    backend = CPUMixedBackend(
        ss_type=ss_type,
        between=between,
        adjust_sigma=adjust_sigma,
    )
    result = backend.solve(design)

    return MixedAnovaSolution(_result=result)

"""
ANOVA for linear mixed models with a single random grouping factor.

Fixed-effect tests are built from the fitted fixed-effect estimates β̂ and
their covariance Σ = Var(β̂). With inv(Σ) = LL' (L lower triangular), the
whitened effects fs = L'β̂ have identity covariance:

    Type I:   F_k = Σ fs[cols_k]² / df_k            (sequential, as lme4)
    Type III: F_k = ||P_k fs||² / df_k = β̂_k' Σ_kk⁻¹ β̂_k / df_k
              where P_k projects onto the columns of L⁻¹ belonging to k

Terms are split into strata by the random grouping factor:

    between-subject  constant within every cluster, tested against the
                     between-subject residual (df = groups - cells)
    within-subject   varies inside some cluster, tested against the
                     within-subject residual (df = n - between df - p)

The intercept is always tested in the within stratum.
"""

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy import linalg as sp_linalg

from pyanova.core.compute.timing import Timer
from pyanova.core.exceptions import (
    NotPositiveDefiniteError,
    UnsupportedAnovaType,
    ValidationError,
)
from pyanova.anova._assign import TermAssignment
from pyanova.anova._common import MixedAnovaParams
from pyanova.anova._ss import check_ss_type
from pyanova.anova._table import f_pvalue, mean_squares


RESIDUALS_BETWEEN = 'Residuals (between)'
RESIDUALS_WITHIN = 'Residuals (within)'


@dataclass(frozen=True)
class WhitenedEffects:
    """
    Decorrelated fixed effects.

    Attributes:
        L: Lower triangular whitening matrix, L L' = inv(Σ) (possibly rescaled)
        fs: Whitened effects L'β̂
    """
    L: NDArray[np.floating[Any]]
    fs: NDArray[np.floating[Any]]


def check_mixed_type(ss_type: int) -> None:
    """
    Raises:
        InvalidAnovaType: If ss_type is not 1, 2 or 3
        UnsupportedAnovaType: If ss_type is 2
    """
    check_ss_type(ss_type)
    if ss_type == 2:
        raise UnsupportedAnovaType(
            "Type II ANOVA is not supported for mixed models; use ss_type=1 or 3",
            ss_type=ss_type,
        )


def incidence_matrix(labels: ArrayLike) -> tuple[NDArray[np.bool_], list[str]]:
    """
    Observation-by-cluster incidence matrix of a grouping factor.

    Args:
        labels: Cluster label per observation

    Returns:
        (Z, levels): Z[i, g] is True when observation i is in cluster g;
        levels are the sorted cluster labels
    """
    labels_str = np.array([str(v) for v in np.asarray(labels)])
    levels, codes = np.unique(labels_str, return_inverse=True)
    Z = np.zeros((len(labels_str), len(levels)), dtype=bool)
    Z[np.arange(len(labels_str)), codes] = True
    return Z, [str(level) for level in levels]


def whiten(
    vcov: NDArray[np.floating[Any]],
    beta: NDArray[np.floating[Any]],
    n_obs: int,
    reml: bool,
    adjust_sigma: bool = True,
) -> WhitenedEffects:
    """
    Decorrelate the fixed effects.

    For an ML fit with adjust_sigma, L is divided by sqrt(n / (n - p)) so
    the statistics use the REML-scale residual variance.

    Raises:
        NotPositiveDefiniteError: If vcov is not positive definite
    """
    p = len(beta)
    try:
        inv_vcov = sp_linalg.cho_solve(sp_linalg.cho_factor(vcov), np.eye(p))
        inv_vcov = (inv_vcov + inv_vcov.T) / 2.0
        L = np.linalg.cholesky(inv_vcov)
    except np.linalg.LinAlgError as e:
        raise NotPositiveDefiniteError(
            f"vcov: fixed-effect covariance matrix is not positive definite: {e}",
            matrix_name='vcov',
        ) from e

    if not reml and adjust_sigma:
        L = L / np.sqrt(n_obs / (n_obs - p))

    return WhitenedEffects(L=L, fs=L.T @ beta)


def classify_between(
    X: NDArray[np.floating[Any]],
    assignment: TermAssignment,
    Z: NDArray[np.bool_],
) -> NDArray[np.bool_]:
    """
    Flag each term as between-subject (True) or within-subject (False).

    A term is within-subject as soon as one of its columns takes more than
    one value inside some cluster. Term 1 is always within-subject.

    Returns:
        Boolean array of length n_terms
    """
    between = np.ones(assignment.n_terms, dtype=bool)
    select = np.arange(assignment.n_columns)

    for g in range(Z.shape[1]):
        if select.size == 0:
            break
        rows = X[Z[:, g]][:, select]
        if rows.shape[0] < 2:
            continue
        varying = np.ptp(rows, axis=0) > 0
        for term_id in np.unique(assignment.assign[select][varying]):
            between[term_id - 1] = False
        select = select[between[assignment.assign[select] - 1]]

    between[0] = False
    return between


def is_coded_term(X: NDArray[np.floating[Any]], cols: NDArray[np.intp]) -> bool:
    """Whether a term's columns are factor codes (every value in {-1, 0, 1})."""
    return bool(np.all(np.isin(X[:, cols], (-1.0, 0.0, 1.0))))


def count_cells(
    X: NDArray[np.floating[Any]],
    assignment: TermAssignment,
    between: NDArray[np.bool_],
) -> int:
    """
    Number of between-subject cells.

    Factor-coded between-subject terms (indicator, sum-to-zero) span the
    distinct rows of their columns; for crossed factors this is the
    product of their level counts. Every other between-subject term, such
    as a subject-level covariate, adds its df.
    """
    coded: list[NDArray[np.intp]] = []
    n_covariate = 0
    for term_id in np.flatnonzero(between) + 1:
        cols = assignment.columns(int(term_id))
        if cols.size == 0:
            continue
        if is_coded_term(X, cols):
            coded.append(cols)
        else:
            n_covariate += cols.size

    if not coded:
        return 1 + n_covariate
    cells = np.unique(X[:, np.concatenate(coded)], axis=0).shape[0]
    return int(cells) + n_covariate


def mixed_statistics(
    whitened: WhitenedEffects,
    assignment: TermAssignment,
    term_ids: Sequence[int],
    df_terms: NDArray[np.int64],
    ss_type: int,
) -> NDArray[np.floating[Any]]:
    """
    F statistics of the fixed-effect terms.

    Type I sums squared whitened effects over each term's columns. Type III
    first projects the whitened effects onto the span of the term's columns
    of L⁻¹, which removes the contribution of every other term.
    """
    fs = whitened.fs
    fstat = np.full(len(term_ids), np.nan)

    if ss_type == 3:
        p = len(fs)
        L_inv = sp_linalg.solve_triangular(whitened.L, np.eye(p), lower=True)

    for row, term_id in enumerate(term_ids):
        cols = assignment.columns(term_id)
        df = df_terms[row]
        if df == 0:
            continue
        if ss_type == 1:
            wald = float(np.sum(fs[cols] ** 2))
        else:
            Q, _ = np.linalg.qr(L_inv[:, cols])
            wald = float(np.sum((Q.T @ fs) ** 2))
        fstat[row] = wald / df

    return fstat


def compute_mixed_table(
    X: NDArray[np.floating[Any]],
    assignment: TermAssignment,
    term_names: Sequence[str],
    beta: NDArray[np.floating[Any]],
    vcov: NDArray[np.floating[Any]],
    residuals: NDArray[np.floating[Any]],
    sigma_sq: float,
    groups: ArrayLike,
    group_name: str,
    *,
    ss_type: int = 1,
    reml: bool = True,
    between: Sequence[int] | None = None,
    adjust_sigma: bool = True,
    timer: Timer,
) -> tuple[MixedAnovaParams, list[str]]:
    """
    Build the two-stratum ANOVA table of a linear mixed model.

    Args:
        X: Fixed-effects design matrix (n x p)
        assignment: Column-to-term mapping of X
        term_names: Name per term
        beta: Fixed-effect estimates (p,)
        vcov: Covariance matrix of beta (p x p)
        residuals: Model residuals (n,)
        sigma_sq: Residual variance estimate
        groups: Cluster label per observation
        group_name: Name of the grouping factor
        ss_type: 1 or 3
        reml: Whether the model was fitted by REML
        between: 1-based term ids forced into the between stratum
        adjust_sigma: Rescale ML fits to REML variance scale
        timer: Timer receiving the 'whiten', 'classify' and 'statistics' sections

    Returns:
        (params, warnings)
    """
    check_mixed_type(ss_type)
    n_obs, p = X.shape

    with timer.section('whiten'):
        whitened = whiten(vcov, beta, n_obs, reml, adjust_sigma)

    with timer.section('classify'):
        Z, _ = incidence_matrix(groups)
        n_groups = Z.shape[1]
        btw = classify_between(X, assignment, Z)
        if between is not None:
            forced = np.asarray(list(between), dtype=np.int64)
            if forced.size and (forced.min() < 1 or forced.max() > assignment.n_terms):
                raise ValidationError(
                    f"between: term ids must be in 1..{assignment.n_terms}, "
                    f"got {forced.tolist()}"
                )
            if not assignment.first_term_empty and np.any(forced == 1):
                raise ValidationError(
                    "between: term 1 (intercept) is always tested within subjects"
                )
            btw[forced - 1] = True
        n_cells = count_cells(X, assignment, btw)

    with timer.section('statistics'):
        first = 2 if assignment.first_term_empty else 1
        term_ids = list(range(first, assignment.n_terms + 1))
        df_terms = assignment.df[first - 1:]
        btw_rows = btw[first - 1:]

        df_between = n_groups - n_cells
        df_within = n_obs - df_between - p
        ss_between = float(residuals @ residuals)
        ss_within = float(sigma_sq) * df_within

        fstat_terms = mixed_statistics(whitened, assignment, term_ids, df_terms, ss_type)

        with np.errstate(divide='ignore', invalid='ignore'):
            ss_terms = np.where(
                btw_rows,
                fstat_terms * ss_between * df_terms / df_between,
                fstat_terms * float(sigma_sq) * df_terms,
            )
        pvalue_terms = f_pvalue(
            fstat_terms, df_terms, np.where(btw_rows, df_between, df_within),
        )

    ss = np.append(ss_terms, [ss_between, ss_within])
    df = np.append(df_terms, [df_between, df_within]).astype(np.int64)

    warnings: list[str] = []
    if df_between <= 0:
        warnings.append(
            f"Between-subject residual df is {df_between}; between-subject "
            f"terms have NaN p-values"
        )
    if df_within <= 0:
        warnings.append(f"Within-subject residual df is {df_within}")

    names = [term_names[k - 1] for k in term_ids]
    params = MixedAnovaParams(
        terms=tuple(names) + (RESIDUALS_BETWEEN, RESIDUALS_WITHIN),
        ss=ss,
        df=df,
        mean_sq=mean_squares(ss, df),
        fstat=np.append(fstat_terms, [np.nan, np.nan]),
        pvalue=np.append(pvalue_terms, [np.nan, np.nan]),
        between=tuple(bool(b) for b in btw_rows),
        ss_type=ss_type,
        n_obs=n_obs,
        n_groups=n_groups,
        n_cells=n_cells,
        group_name=group_name,
    )
    return params, warnings

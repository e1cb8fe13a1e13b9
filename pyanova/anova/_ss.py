"""
Sums of squares computation for ANOVA.

Every SS type is a sequence of restricted least-squares fits of y on a
subset of the design columns, differenced against each other. One
restricted fit is one call to the SS kernel:

    fit_subset(X, y, mask)  ->  β = (X_m'X_m)⁻¹ X_m'y,  SS = β'X_m'y

The kernel factorizes X_m'X_m with an exact Cholesky (fails on singular
X'X) or a pivoted Cholesky (solves on the non-aliased columns and zeroes
the rest). Differences are taken on residual sums of squares, which equal
the differences of explained SS but lose less precision.

Type I (Sequential):
    SS(term k) = RSS(terms 1..k-1) - RSS(terms 1..k).

Type II (Marginal, respects marginality):
    SS(k) = RSS(S \\ k) - RSS(S), S = terms that do not contain k.
    Term 1 is adjusted for every other term.

Type III (Each term last):
    SS(k) = RSS(all terms but k) - RSS(full).
"""

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray

from pyanova.core.compute.linalg.cholesky import cholesky_exact, cholesky_pivoted
from pyanova.core.exceptions import InvalidAnovaType
from pyanova.anova._assign import ColumnMask, TermAssignment, selectcoef


@dataclass(frozen=True)
class SubsetFit:
    """
    Restricted least-squares fit on the columns of one ColumnMask.

    Attributes:
        coefficients: β for the kept columns, in column order; aliased
            coefficients are exactly zero on the rank-deficient path
        ss: Explained sum of squares β'X'y
        rss: Residual sum of squares ||y - Xβ||²
        rank: Numerical rank of the kept columns
        n_columns: Number of kept columns
    """
    coefficients: NDArray[np.floating[Any]]
    ss: float
    rss: float
    rank: int
    n_columns: int


def fit_subset(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
    mask: ColumnMask,
    allow_rank_deficient: bool = False,
) -> SubsetFit:
    """
    Solve the least-squares problem restricted to the columns in `mask`.

    X and y are only read. The restricted design and the coefficient
    vector are allocated per call, so concurrent calls share nothing
    mutable.

    Args:
        X: Design matrix (n x p)
        y: Response (n,)
        mask: Columns to retain
        allow_rank_deficient: Use the pivoted factorization

    Returns:
        SubsetFit

    Raises:
        SingularDesignError: If X_m'X_m is singular and
            allow_rank_deficient is False
    """
    X_m = X[:, mask.keep]
    p = X_m.shape[1]
    if p == 0:
        return SubsetFit(
            coefficients=np.zeros(0, dtype=np.float64),
            ss=0.0,
            rss=float(y @ y),
            rank=0,
            n_columns=0,
        )

    XtX = X_m.T @ X_m
    Xty = X_m.T @ y
    if allow_rank_deficient:
        factorization = cholesky_pivoted(XtX)
    else:
        factorization = cholesky_exact(XtX)

    beta = factorization.solve(Xty)
    resid = y - X_m @ beta
    return SubsetFit(
        coefficients=beta,
        ss=float(beta @ Xty),
        rss=float(resid @ resid),
        rank=factorization.rank,
        n_columns=p,
    )


def ss(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
    mask: ColumnMask,
    allow_rank_deficient: bool = False,
) -> float:
    """Explained sum of squares of the restricted fit."""
    return fit_subset(X, y, mask, allow_rank_deficient).ss


# =====================================================================
# Decomposition
# =====================================================================


@dataclass(frozen=True)
class SSDecomposition:
    """
    Per-term sums of squares before table assembly.

    Attributes:
        ss: SS for terms 1..K (zero-width terms included)
        rss: Residual SS of the full model
        rank: Numerical rank of the full design
        n_evaluations: Number of distinct kernel evaluations
    """
    ss: NDArray[np.floating[Any]]
    rss: float
    rank: int
    n_evaluations: int


def _n_workers(n_jobs: int) -> int:
    if n_jobs == -1:
        return os.cpu_count() or 1
    if n_jobs < 1:
        raise ValueError(f"n_jobs must be a positive integer or -1, got {n_jobs}")
    return n_jobs


def _evaluate(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
    assignment: TermAssignment,
    term_sets: Sequence[frozenset[int]],
    allow_rank_deficient: bool,
    n_jobs: int,
) -> dict[frozenset[int], SubsetFit]:
    """Fit each distinct term set once, optionally on a thread pool."""
    unique = list(dict.fromkeys(term_sets))
    masks = [ColumnMask.including(assignment, terms) for terms in unique]

    def run(mask: ColumnMask) -> SubsetFit:
        return fit_subset(X, y, mask, allow_rank_deficient)

    workers = _n_workers(n_jobs)
    if workers == 1 or len(masks) < 2:
        fits = [run(mask) for mask in masks]
    else:
        with ThreadPoolExecutor(max_workers=min(workers, len(masks))) as pool:
            fits = list(pool.map(run, masks))

    return dict(zip(unique, fits))


def compute_ss_type1(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
    assignment: TermAssignment,
    *,
    allow_rank_deficient: bool = False,
    n_jobs: int = 1,
) -> SSDecomposition:
    """
    Type I (Sequential) Sums of Squares.

    Terms enter in assignment order. SS(term k) is the drop in RSS when
    term k joins terms 1..k-1. Order-dependent for unbalanced designs;
    the term SS and the residual SS add up to y'y.
    """
    K = assignment.n_terms
    nested = [frozenset(range(1, k + 1)) for k in range(1, K + 1)]
    fits = _evaluate(X, y, assignment, nested, allow_rank_deficient, n_jobs)

    rss = np.array([float(y @ y)] + [fits[s].rss for s in nested])
    full = fits[nested[-1]]
    return SSDecomposition(
        ss=rss[:-1] - rss[1:],
        rss=full.rss,
        rank=full.rank,
        n_evaluations=len(fits),
    )


def compute_ss_type2(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
    assignment: TermAssignment,
    factors: Sequence[frozenset[str]],
    *,
    allow_rank_deficient: bool = False,
    n_jobs: int = 1,
) -> SSDecomposition:
    """
    Type II (Marginal) Sums of Squares.

    For term k, S = every term that does not contain k (see selectcoef).
    SS(k) = RSS(S without k) - RSS(S). Terms containing k (A:B when
    testing A) are absent from both fits. Term 1 is tested against the
    full model: SS(1) = RSS(all but 1) - RSS(full).

    This matches R's car::Anova(type="II") for hierarchical models.
    """
    K = assignment.n_terms
    full = frozenset(range(1, K + 1))

    pairs: list[tuple[frozenset[int], frozenset[int]]] = [(full - {1}, full)]
    for term_id in range(2, K + 1):
        kept = selectcoef(factors, term_id)
        pairs.append((kept - {term_id}, kept))

    term_sets = [full] + [s for pair in pairs for s in pair]
    fits = _evaluate(X, y, assignment, term_sets, allow_rank_deficient, n_jobs)

    ss_terms = np.array([fits[reduced].rss - fits[augmented].rss
                         for reduced, augmented in pairs])
    return SSDecomposition(
        ss=ss_terms,
        rss=fits[full].rss,
        rank=fits[full].rank,
        n_evaluations=len(fits),
    )


def compute_ss_type3(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
    assignment: TermAssignment,
    *,
    allow_rank_deficient: bool = False,
    n_jobs: int = 1,
) -> SSDecomposition:
    """
    Type III Sums of Squares.

    SS(term) = RSS(full minus just that term) - RSS(full). Each term is
    tested as if it were the last one added, so the result does not depend
    on term order. Meaningful main effects in the presence of interactions
    require sum-to-zero coded factors.
    """
    K = assignment.n_terms
    full = frozenset(range(1, K + 1))
    reduced = [full - {k} for k in range(1, K + 1)]
    fits = _evaluate(X, y, assignment, [full] + reduced, allow_rank_deficient, n_jobs)

    rss_full = fits[full].rss
    return SSDecomposition(
        ss=np.array([fits[s].rss - rss_full for s in reduced]),
        rss=rss_full,
        rank=fits[full].rank,
        n_evaluations=len(fits),
    )


def check_ss_type(ss_type: int) -> None:
    """
    Raises:
        InvalidAnovaType: If ss_type is not 1, 2 or 3
    """
    if ss_type not in (1, 2, 3) or isinstance(ss_type, bool):
        raise InvalidAnovaType(f"ss_type must be 1, 2, or 3, got {ss_type!r}", ss_type=ss_type)


def decompose(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
    assignment: TermAssignment,
    ss_type: int,
    factors: Sequence[frozenset[str]],
    *,
    allow_rank_deficient: bool = False,
    n_jobs: int = 1,
) -> SSDecomposition:
    """
    Dispatch to the correct SS computation.

    Raises:
        InvalidAnovaType: If ss_type is not 1, 2 or 3
    """
    check_ss_type(ss_type)
    if ss_type == 1:
        return compute_ss_type1(
            X, y, assignment,
            allow_rank_deficient=allow_rank_deficient, n_jobs=n_jobs,
        )
    elif ss_type == 2:
        return compute_ss_type2(
            X, y, assignment, factors,
            allow_rank_deficient=allow_rank_deficient, n_jobs=n_jobs,
        )
    elif ss_type == 3:
        return compute_ss_type3(
            X, y, assignment,
            allow_rank_deficient=allow_rank_deficient, n_jobs=n_jobs,
        )

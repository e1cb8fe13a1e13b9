"""
ANOVA table assembly.

Turns per-term sums of squares and degrees of freedom into the parallel
table columns: mean squares, F statistics against an error stratum, and
upper-tail p-values of the F distribution. Degenerate strata (zero df,
zero error mean square) yield NaN, never an exception.
"""

from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray
from scipy import stats as sp_stats

from pyanova.anova._assign import TermAssignment
from pyanova.anova._common import AnovaParams
from pyanova.anova._ss import SSDecomposition


RESIDUALS = 'Residuals'


def mean_squares(
    ss: NDArray[np.floating[Any]],
    df: NDArray[np.int64],
) -> NDArray[np.floating[Any]]:
    """SS / df elementwise; NaN where df is zero."""
    ss = np.asarray(ss, dtype=np.float64)
    df = np.asarray(df, dtype=np.float64)
    out = np.full(ss.shape, np.nan)
    np.divide(ss, df, out=out, where=df > 0)
    return out


def f_pvalue(
    fstat: NDArray[np.floating[Any]],
    df: NDArray[np.int64],
    df_error: NDArray[np.int64] | int,
) -> NDArray[np.floating[Any]]:
    """Upper-tail F probability of |fstat|; NaN for NaN F or a zero df."""
    fstat = np.asarray(fstat, dtype=np.float64)
    df = np.broadcast_to(np.asarray(df, dtype=np.float64), fstat.shape)
    df_error = np.broadcast_to(np.asarray(df_error, dtype=np.float64), fstat.shape)

    pvalue = np.full(fstat.shape, np.nan)
    valid = np.isfinite(fstat) & (df > 0) & (df_error > 0)
    if np.any(valid):
        pvalue[valid] = sp_stats.f.sf(np.abs(fstat[valid]), df[valid], df_error[valid])
    return pvalue


def f_test(
    mean_sq: NDArray[np.floating[Any]],
    df: NDArray[np.int64],
    ms_error: NDArray[np.floating[Any]] | float,
    df_error: NDArray[np.int64] | int,
) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
    """
    F statistics and p-values for terms tested against error strata.

    Args:
        mean_sq: Term mean squares
        df: Term degrees of freedom
        ms_error: Error mean square (scalar or one per term)
        df_error: Error degrees of freedom (scalar or one per term)

    Returns:
        (fstat, pvalue); NaN wherever the error mean square is not positive
        or a df is zero
    """
    mean_sq = np.asarray(mean_sq, dtype=np.float64)
    ms_error = np.broadcast_to(np.asarray(ms_error, dtype=np.float64), mean_sq.shape)
    df = np.asarray(df, dtype=np.float64)
    df_error = np.broadcast_to(np.asarray(df_error, dtype=np.float64), mean_sq.shape)

    fstat = np.full(mean_sq.shape, np.nan)
    valid = (ms_error > 0) & np.isfinite(ms_error) & (df > 0) & (df_error > 0)
    np.divide(mean_sq, ms_error, out=fstat, where=valid)
    return fstat, f_pvalue(fstat, df, df_error)


def assemble_fixed_table(
    decomposition: SSDecomposition,
    assignment: TermAssignment,
    term_names: Sequence[str],
    n_obs: int,
    ss_type: int,
) -> tuple[AnovaParams, list[str]]:
    """
    Package an SS decomposition as an AnovaParams table.

    The residual df is n minus the column count of all terms. When term 1
    has no columns (no intercept) its row is dropped.

    Returns:
        (params, warnings) where warnings lists non-fatal numeric issues
    """
    df_terms = assignment.df
    ss_terms = decomposition.ss
    names = list(term_names)
    if assignment.first_term_empty:
        df_terms = df_terms[1:]
        ss_terms = ss_terms[1:]
        names = names[1:]

    df_resid = n_obs - int(assignment.df.sum())
    ss = np.append(ss_terms, decomposition.rss)
    df = np.append(df_terms, df_resid).astype(np.int64)
    mean_sq = mean_squares(ss, df)

    fstat, pvalue = f_test(mean_sq[:-1], df[:-1], mean_sq[-1], df_resid)
    fstat = np.append(fstat, np.nan)
    pvalue = np.append(pvalue, np.nan)

    warnings: list[str] = []
    if df_resid <= 0:
        warnings.append(
            f"Residual df is {df_resid}; F statistics and p-values are NaN"
        )
    elif not mean_sq[-1] > 0:
        warnings.append(
            "Residual mean square is zero (exact fit); F statistics and p-values are NaN"
        )

    params = AnovaParams(
        terms=tuple(names) + (RESIDUALS,),
        ss=ss,
        df=df,
        mean_sq=mean_sq,
        fstat=fstat,
        pvalue=pvalue,
        ss_type=ss_type,
        n_obs=n_obs,
    )
    return params, warnings

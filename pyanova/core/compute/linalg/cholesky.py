"""
Cholesky factorizations of normal-equations matrices.

Two factorizations share one interface:

    ExactCholesky      A = U'U, fails on a matrix that is not positive definite
    PivotedCholesky    P'AP = U'U with numerical rank r; rank-deficient
                       systems are solved on the leading r x r block and the
                       trailing p - r coefficients are set to exactly zero

Both factor the equilibrated matrix D⁻¹AD⁻¹ with D = sqrt(diag(A)), so rank
decisions and pivot checks do not depend on the units of the columns of X.
Both expose `rank` and `solve(rhs)`, so callers never branch on which one
they hold.
"""

from dataclasses import dataclass
from typing import Any, Union

import numpy as np
from numpy.typing import NDArray
from scipy import linalg as sp_linalg
from scipy.linalg import lapack

from pyanova.core.compute.tolerances import RANK_TOLERANCE
from pyanova.core.exceptions import NumericalError, SingularDesignError


@dataclass(frozen=True)
class ExactCholesky:
    """
    Non-pivoted Cholesky factor of a positive definite matrix.

    Attributes:
        factor: Upper triangular U with D⁻¹AD⁻¹ = U'U (p x p)
        scale: Equilibration D = sqrt(diag(A)) (length p)
    """
    factor: NDArray[np.floating[Any]]
    scale: NDArray[np.floating[Any]]

    @property
    def rank(self) -> int:
        return self.factor.shape[0]

    def solve(self, rhs: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
        """Solve A x = rhs. Returns a freshly allocated vector."""
        if self.rank == 0:
            return np.zeros(0, dtype=np.float64)
        z = sp_linalg.cho_solve((self.factor, False), rhs / self.scale, check_finite=False)
        return z / self.scale


@dataclass(frozen=True)
class PivotedCholesky:
    """
    Pivoted Cholesky factor of a positive semi-definite matrix.

    Attributes:
        factor: Upper triangular U (r x r) of the leading block of P'D⁻¹AD⁻¹P
        pivot: Column order used by the factorization (0-based, length p)
        rank: Numerical rank r detected with the pivot tolerance
        scale: Equilibration D = sqrt(diag(A)), 1 for all-zero columns
    """
    factor: NDArray[np.floating[Any]]
    pivot: NDArray[np.intp]
    rank: int
    scale: NDArray[np.floating[Any]]

    @property
    def size(self) -> int:
        return len(self.pivot)

    def solve(self, rhs: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
        """
        Solve A x = rhs on the non-aliased subspace.

        The right-hand side is permuted into pivot order, the leading
        r x r system is solved, the remaining p - r entries are zero, and
        the permutation is inverted to restore the original column order.
        """
        r = self.rank
        scaled = rhs / self.scale
        permuted = np.zeros(self.size, dtype=np.float64)
        if r > 0:
            permuted[:r] = sp_linalg.cho_solve(
                (self.factor, False), scaled[self.pivot[:r]], check_finite=False,
            )
        x = np.empty(self.size, dtype=np.float64)
        x[self.pivot] = permuted
        return x / self.scale


Factorization = Union[ExactCholesky, PivotedCholesky]


def equilibrate(
    A: NDArray[np.floating[Any]],
) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
    """
    Rescale a symmetric PSD matrix to unit diagonal.

    Returns:
        (D⁻¹AD⁻¹, D) with D = sqrt(diag(A)); zero diagonal entries keep
        D = 1 so an all-zero column stays zero
    """
    scale = np.sqrt(np.clip(np.diag(A), 0.0, None))
    scale = np.where(scale > 0, scale, 1.0)
    return A / np.outer(scale, scale), scale


def cholesky_exact(
    A: NDArray[np.floating[Any]],
    rtol: float = RANK_TOLERANCE,
) -> ExactCholesky:
    """
    Non-pivoted Cholesky factorization.

    Args:
        A: Symmetric matrix (p x p), typically X'X
        rtol: Pivots of the equilibrated matrix at or below rtol are
            treated as zero

    Returns:
        ExactCholesky

    Raises:
        SingularDesignError: If A is not numerically positive definite
    """
    p = A.shape[0]
    if p == 0:
        return ExactCholesky(
            factor=np.zeros((0, 0), dtype=np.float64),
            scale=np.ones(0, dtype=np.float64),
        )

    A_eq, scale = equilibrate(A)
    try:
        U = sp_linalg.cholesky(A_eq, lower=False, check_finite=False)
    except np.linalg.LinAlgError as e:
        raise SingularDesignError(
            f"X'X is not positive definite ({p} columns): {e}. "
            f"Use allow_rank_deficient=True for collinear designs.",
            expected_rank=p,
        ) from e

    min_pivot = float(np.min(np.diag(U) ** 2))
    if min_pivot <= rtol:
        raise SingularDesignError(
            f"X'X is numerically singular: smallest relative pivot {min_pivot:.3e} "
            f"for {p} columns. Use allow_rank_deficient=True for collinear designs.",
            min_pivot=min_pivot,
            expected_rank=p,
        )

    return ExactCholesky(factor=U, scale=scale)


def cholesky_pivoted(
    A: NDArray[np.floating[Any]],
    rtol: float = RANK_TOLERANCE,
) -> PivotedCholesky:
    """
    Pivoted Cholesky factorization via LAPACK ?pstrf.

    Args:
        A: Symmetric positive semi-definite matrix (p x p)
        rtol: Factorization of the equilibrated matrix stops when the
            largest remaining pivot is at or below rtol; the step count is
            the rank

    Returns:
        PivotedCholesky with the leading rank x rank factor

    Raises:
        NumericalError: If LAPACK reports an illegal argument
    """
    p = A.shape[0]
    if p == 0:
        return PivotedCholesky(
            factor=np.zeros((0, 0), dtype=np.float64),
            pivot=np.zeros(0, dtype=np.intp),
            rank=0,
            scale=np.ones(0, dtype=np.float64),
        )

    A_eq, scale = equilibrate(A)
    c, piv, rank, info = lapack.dpstrf(
        np.array(A_eq, dtype=np.float64, order='F'), tol=rtol, lower=0,
    )
    if info < 0:
        raise NumericalError(f"dpstrf: illegal value in argument {-info}")

    # info > 0 only signals rank deficiency, which is the point of pivoting
    rank = int(rank)
    U = np.triu(c[:rank, :rank])
    return PivotedCholesky(
        factor=U,
        pivot=np.asarray(piv, dtype=np.intp) - 1,
        rank=rank,
        scale=scale,
    )

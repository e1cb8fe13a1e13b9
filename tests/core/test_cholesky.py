"""
Tests for the exact and pivoted Cholesky factorizations.

Validates:
    - Exact factorization solves SPD systems and rejects singular ones
    - Pivoted factorization detects numerical rank
    - Rank-deficient solves zero the aliased entries and satisfy A x = b
      for b in the range of A
    - Pivot vector is a 0-based permutation
    - Rank decisions do not depend on the units of the columns
"""

import numpy as np
import pytest

from pyanova.core.compute.linalg import (
    ExactCholesky,
    PivotedCholesky,
    cholesky_exact,
    cholesky_pivoted,
    equilibrate,
)
from pyanova.core.compute.tolerances import CPU_FP64
from pyanova.core.exceptions import SingularDesignError


@pytest.fixture
def spd_matrix(rng):
    B = rng.standard_normal((20, 5))
    return B.T @ B


@pytest.fixture
def psd_rank3(rng):
    """5 x 5 positive semi-definite matrix of rank 3."""
    B = rng.standard_normal((5, 3))
    return B @ B.T


# ═══════════════════════════════════════════════════════════════════════
# Exact
# ═══════════════════════════════════════════════════════════════════════


class TestExactCholesky:

    def test_solve_matches_numpy(self, spd_matrix, rng):
        b = rng.standard_normal(5)
        chol = cholesky_exact(spd_matrix)
        assert isinstance(chol, ExactCholesky)
        assert chol.rank == 5
        np.testing.assert_allclose(
            chol.solve(b), np.linalg.solve(spd_matrix, b),
            rtol=CPU_FP64.rtol * 1e3, atol=CPU_FP64.atol,
        )

    def test_factor_reconstructs(self, spd_matrix):
        chol = cholesky_exact(spd_matrix)
        U, d = chol.factor, chol.scale
        np.testing.assert_allclose(np.outer(d, d) * (U.T @ U), spd_matrix,
                                   rtol=CPU_FP64.rtol * 1e3)
        np.testing.assert_allclose(np.diag(U.T @ U), 1.0, rtol=1e-12)

    def test_singular_raises(self, psd_rank3):
        with pytest.raises(SingularDesignError) as exc_info:
            cholesky_exact(psd_rank3)
        assert exc_info.value.expected_rank == 5
        assert "allow_rank_deficient" in str(exc_info.value)

    def test_empty_matrix(self):
        chol = cholesky_exact(np.zeros((0, 0)))
        assert chol.rank == 0
        assert chol.solve(np.zeros(0)).shape == (0,)


# ═══════════════════════════════════════════════════════════════════════
# Pivoted
# ═══════════════════════════════════════════════════════════════════════


class TestPivotedCholesky:

    def test_full_rank_matches_exact(self, spd_matrix, rng):
        b = rng.standard_normal(5)
        chol = cholesky_pivoted(spd_matrix)
        assert isinstance(chol, PivotedCholesky)
        assert chol.rank == 5
        np.testing.assert_allclose(
            chol.solve(b), cholesky_exact(spd_matrix).solve(b), rtol=1e-8,
        )

    def test_pivot_is_zero_based_permutation(self, spd_matrix):
        chol = cholesky_pivoted(spd_matrix)
        np.testing.assert_array_equal(np.sort(chol.pivot), np.arange(5))

    def test_detects_rank(self, psd_rank3):
        chol = cholesky_pivoted(psd_rank3)
        assert chol.rank == 3
        assert chol.size == 5
        assert chol.factor.shape == (3, 3)

    def test_aliased_entries_exactly_zero(self, psd_rank3, rng):
        b = psd_rank3 @ rng.standard_normal(5)
        x = cholesky_pivoted(psd_rank3).solve(b)
        assert np.count_nonzero(x == 0.0) == 2

    def test_solution_consistent(self, psd_rank3, rng):
        b = psd_rank3 @ rng.standard_normal(5)
        x = cholesky_pivoted(psd_rank3).solve(b)
        np.testing.assert_allclose(psd_rank3 @ x, b, rtol=1e-6, atol=1e-8)



# ═══════════════════════════════════════════════════════════════════════
# Column scale
# ═══════════════════════════════════════════════════════════════════════


@pytest.fixture
def badly_scaled(rng):
    """Full-rank X'X whose columns differ in scale by up to 1e9."""
    X = rng.standard_normal((40, 4)) * np.array([1.0, 1e-6, 1e3, 1.0])
    X[:, 0] = 1.0
    return X.T @ X


class TestColumnScale:

    def test_equilibrated_unit_diagonal(self, badly_scaled):
        A_eq, d = equilibrate(badly_scaled)
        np.testing.assert_allclose(np.diag(A_eq), 1.0)
        np.testing.assert_allclose(d ** 2, np.diag(badly_scaled))

    def test_zero_column_keeps_unit_scale(self):
        A = np.diag([4.0, 0.0])
        A_eq, d = equilibrate(A)
        np.testing.assert_array_equal(d, [2.0, 1.0])
        np.testing.assert_array_equal(A_eq, np.diag([1.0, 0.0]))

    def test_exact_accepts_small_scale_column(self, badly_scaled, rng):
        x_true = rng.standard_normal(4) * np.array([1.0, 1e6, 1e-3, 1.0])
        x = cholesky_exact(badly_scaled).solve(badly_scaled @ x_true)
        np.testing.assert_allclose(x, x_true, rtol=1e-6)

    def test_pivoted_full_rank_on_small_scale_column(self, badly_scaled, rng):
        chol = cholesky_pivoted(badly_scaled)
        assert chol.rank == 4
        x_true = rng.standard_normal(4) * np.array([1.0, 1e6, 1e-3, 1.0])
        np.testing.assert_allclose(chol.solve(badly_scaled @ x_true), x_true, rtol=1e-6)

    def test_rank_invariant_to_rescaling(self, psd_rank3):
        d = np.array([1e-6, 1.0, 1e4, 1.0, 1e-3])
        assert cholesky_pivoted(psd_rank3 * np.outer(d, d)).rank == 3

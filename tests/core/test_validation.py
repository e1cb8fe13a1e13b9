"""
Tests for input validators.

Validates:
    - check_array promotes integers and booleans, rejects non-numeric data
    - check_finite, check_ndim, check_square, check_symmetric
    - check_consistent_length and check_min_samples
"""

import numpy as np
import pytest

from pyanova.core.exceptions import DimensionError, ValidationError
from pyanova.core.validation import (
    check_array,
    check_consistent_length,
    check_finite,
    check_min_samples,
    check_ndim,
    check_square,
    check_symmetric,
)


# ═══════════════════════════════════════════════════════════════════════
# check_array
# ═══════════════════════════════════════════════════════════════════════


class TestCheckArray:

    def test_list_of_ints_becomes_float(self):
        result = check_array([1, 2, 3], "x")
        assert result.dtype == np.float64
        np.testing.assert_array_equal(result, [1.0, 2.0, 3.0])

    def test_bool_promoted_to_float(self):
        result = check_array(np.array([True, False]), "x")
        assert result.dtype == np.float64

    def test_float32_preserved(self):
        result = check_array(np.zeros(3, dtype=np.float32), "x")
        assert result.dtype == np.float32

    def test_strings_rejected(self):
        with pytest.raises(ValidationError, match="x: non-numeric"):
            check_array(np.array(["a", "b"]), "x")

    def test_mixed_types_rejected(self):
        with pytest.raises(ValidationError, match="object dtype"):
            check_array(np.array([1, "a", None], dtype=object), "x")


# ═══════════════════════════════════════════════════════════════════════
# Shape and value checks
# ═══════════════════════════════════════════════════════════════════════


class TestCheckFinite:

    def test_finite_passes(self):
        check_finite(np.array([1.0, 2.0]), "x")

    def test_nan_reported(self):
        with pytest.raises(ValidationError, match="1 NaN, 0 Inf"):
            check_finite(np.array([1.0, np.nan]), "x")

    def test_inf_reported(self):
        with pytest.raises(ValidationError, match="0 NaN, 2 Inf"):
            check_finite(np.array([np.inf, -np.inf]), "x")


class TestCheckNdim:

    def test_wrong_ndim(self):
        with pytest.raises(DimensionError, match="expected 2D"):
            check_ndim(np.zeros(3), 2, "X")


class TestCheckSquare:

    def test_square_passes(self):
        check_square(np.eye(3), 3, "vcov")

    def test_wrong_size(self):
        with pytest.raises(DimensionError, match=r"expected shape \(4, 4\)"):
            check_square(np.eye(3), 4, "vcov")

    def test_not_square(self):
        with pytest.raises(DimensionError):
            check_square(np.zeros((3, 2)), 3, "vcov")


class TestCheckSymmetric:

    def test_symmetric_passes(self):
        A = np.array([[2.0, 0.5], [0.5, 1.0]])
        check_symmetric(A, "vcov")

    def test_rounding_noise_tolerated(self):
        A = np.array([[2.0, 0.5], [0.5 + 1e-14, 1.0]])
        check_symmetric(A, "vcov")

    def test_asymmetric_rejected(self):
        A = np.array([[2.0, 0.5], [0.4, 1.0]])
        with pytest.raises(ValidationError, match="not symmetric"):
            check_symmetric(A, "vcov")


class TestCheckConsistentLength:

    def test_consistent(self):
        check_consistent_length(np.zeros((5, 2)), np.zeros(5), names=("X", "y"))

    def test_inconsistent(self):
        with pytest.raises(DimensionError, match="X=5, y=4"):
            check_consistent_length(np.zeros((5, 2)), np.zeros(4), names=("X", "y"))

    def test_names_must_match_arrays(self):
        with pytest.raises(ValueError):
            check_consistent_length(np.zeros(5), np.zeros(5), names=("X",))


class TestCheckMinSamples:

    def test_enough(self):
        check_min_samples(np.zeros(2), 2, "y")

    def test_too_few(self):
        with pytest.raises(ValidationError, match="at least 2 samples, got 1"):
            check_min_samples(np.zeros(1), 2, "y")

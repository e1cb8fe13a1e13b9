"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def simple_regression_data(rng):
    """Intercept + two continuous predictors, one term each."""
    n = 50
    x1 = rng.standard_normal(n)
    x2 = rng.standard_normal(n)
    X = np.column_stack([np.ones(n), x1, x2])
    y = 1.0 + 2.0 * x1 - 0.5 * x2 + rng.standard_normal(n) * 0.5
    assign = np.array([1, 2, 3])
    return X, y, assign


@pytest.fixture
def collinear_data(rng):
    """Integer-valued design with x3 = x1 + x2 exactly."""
    n = 40
    x1 = rng.integers(0, 10, n).astype(float)
    x2 = rng.integers(0, 10, n).astype(float)
    x3 = x1 + x2  # Perfect collinearity
    X = np.column_stack([np.ones(n), x1, x2, x3])
    y = 3.0 + x1 - x2 + rng.standard_normal(n)
    assign = np.array([1, 2, 3, 4])
    return X, y, assign

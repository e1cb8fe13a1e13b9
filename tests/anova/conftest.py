"""
Shared fixtures for ANOVA tests.

Design matrices are built with treatment coding (first level dropped) and
an intercept column as term 1. Mixed-model fixtures are fitted by GLS with
known variance components, which gives exact β̂, Var(β̂) and residuals.
"""

import numpy as np
import pytest


def treatment_columns(labels):
    """k-1 indicator columns, first sorted level is the baseline."""
    labels = np.asarray(labels)
    levels = sorted(set(labels.tolist()))
    return np.column_stack([(labels == level).astype(float) for level in levels[1:]])


def interaction(X_a, X_b):
    """Element-wise products of every column pair."""
    return np.column_stack([X_a[:, i] * X_b[:, j]
                            for i in range(X_a.shape[1])
                            for j in range(X_b.shape[1])])


def gls_fit(X, y, subject, sigma_sq, tau_sq):
    """
    Random-intercept GLS fit with known variances.

    Returns the quantities anova_lme() consumes: β̂, Var(β̂), conditional
    residuals y - Xβ̂ - Zb̂ and σ².
    """
    levels, codes = np.unique(subject, return_inverse=True)
    n = len(y)
    Z = np.zeros((n, len(levels)))
    Z[np.arange(n), codes] = 1.0

    V = sigma_sq * np.eye(n) + tau_sq * Z @ Z.T
    V_inv = np.linalg.inv(V)
    XtVX = X.T @ V_inv @ X
    vcov = np.linalg.inv(XtVX)
    vcov = (vcov + vcov.T) / 2.0
    beta = vcov @ X.T @ V_inv @ y
    b = tau_sq * Z.T @ V_inv @ (y - X @ beta)
    residuals = y - X @ beta - Z @ b
    return {
        'coefficients': beta,
        'vcov': vcov,
        'residuals': residuals,
        'sigma_sq': sigma_sq,
    }


# =====================================================================
# Fixed-effects fixtures
# =====================================================================


@pytest.fixture
def oneway_balanced():
    """3-group balanced design (n=10 each), clear group differences."""
    rng = np.random.default_rng(42)
    n_per_group = 10
    y = np.concatenate([
        rng.normal(10.0, 2.0, n_per_group),
        rng.normal(15.0, 2.0, n_per_group),
        rng.normal(20.0, 2.0, n_per_group),
    ])
    group = np.array(['A'] * n_per_group + ['B'] * n_per_group + ['C'] * n_per_group)
    X = np.column_stack([np.ones(len(y)), treatment_columns(group)])
    return {
        'X': X, 'y': y, 'group': group,
        'assign': np.array([1, 2, 2]),
        'term_names': ['Intercept', 'group'],
    }


@pytest.fixture
def twoway_balanced():
    """2x3 balanced factorial with interaction, 10 per cell."""
    rng = np.random.default_rng(7)
    a = np.repeat(['low', 'high'], 30)
    b = np.tile(np.repeat(['X', 'Y', 'Z'], 10), 2)
    mean = 10.0 + 5.0 * (a == 'high') + 3.0 * (b == 'Y') + 6.0 * (b == 'Z')
    y = mean + rng.normal(0, 2.0, 60)
    X_a = treatment_columns(a)
    X_b = treatment_columns(b)
    X = np.column_stack([np.ones(60), X_a, X_b, interaction(X_a, X_b)])
    return {
        'X': X, 'y': y,
        'assign': np.array([1, 2, 3, 3, 4, 4]),
        'term_names': ['Intercept', 'A', 'B', 'A:B'],
    }


@pytest.fixture
def twoway_unbalanced():
    """2x2 unbalanced factorial with interaction."""
    rng = np.random.default_rng(55)
    cells = {
        ('A', 'X'): (10.0, 8),
        ('A', 'Y'): (15.0, 12),
        ('B', 'X'): (12.0, 14),
        ('B', 'Y'): (18.0, 10),
    }
    y_list, f1, f2 = [], [], []
    for (a, b), (mean, n) in cells.items():
        y_list.append(rng.normal(mean, 2.0, n))
        f1.extend([a] * n)
        f2.extend([b] * n)
    y = np.concatenate(y_list)
    X_1 = treatment_columns(f1)
    X_2 = treatment_columns(f2)
    X = np.column_stack([np.ones(len(y)), X_1, X_2, X_1 * X_2])
    return {
        'X': X, 'y': y,
        'assign': np.array([1, 2, 3, 4]),
        'term_names': ['Intercept', 'F1', 'F2', 'F1:F2'],
    }


@pytest.fixture
def ancova_data():
    """One 3-level factor + one covariate, unequal group sizes."""
    rng = np.random.default_rng(42)
    sizes = {'control': 12, 'drug_A': 15, 'drug_B': 9}
    y_list, group, cov = [], [], []
    for (level, n), base in zip(sizes.items(), [10.0, 15.0, 18.0]):
        x = rng.uniform(20, 60, n)
        y_list.append(base + 0.1 * x + rng.normal(0, 2, n))
        group.extend([level] * n)
        cov.append(x)
    y = np.concatenate(y_list)
    x = np.concatenate(cov)
    X_g = treatment_columns(group)
    return {
        'y': y, 'X_group': X_g, 'x': x,
        'X': np.column_stack([np.ones(len(y)), X_g, x]),
        'assign': np.array([1, 2, 2, 3]),
        'term_names': ['Intercept', 'group', 'x'],
    }


# =====================================================================
# Mixed-model fixtures
# =====================================================================


@pytest.fixture
def mixed_between_within():
    """
    20 subjects x 6 occasions. Two-level between-subject factor (10
    subjects each) and a continuous within-subject covariate.
    """
    rng = np.random.default_rng(2024)
    n_subjects, n_occasions = 20, 6
    sigma_sq, tau_sq = 1.0, 4.0

    subject = np.repeat([f"S{i:02d}" for i in range(n_subjects)], n_occasions)
    treat = np.repeat((np.arange(n_subjects) >= 10).astype(float), n_occasions)
    time = np.tile(np.arange(n_occasions, dtype=float), n_subjects)
    subj_effect = np.repeat(rng.normal(0, np.sqrt(tau_sq), n_subjects), n_occasions)
    y = (10.0 + 2.0 * treat + 0.5 * time + subj_effect
         + rng.normal(0, np.sqrt(sigma_sq), len(subject)))

    X = np.column_stack([np.ones(len(y)), treat, time])
    fit = gls_fit(X, y, subject, sigma_sq, tau_sq)
    return {
        'X': X, 'y': y, 'subject': subject,
        'assign': np.array([1, 2, 3]),
        'term_names': ['Intercept', 'group', 'time'],
        'n_subjects': n_subjects,
        **fit,
    }


@pytest.fixture
def mixed_two_between():
    """
    24 subjects x 4 occasions. Two crossed 2-level between-subject
    factors (6 subjects per cell) and a 4-level within-subject factor.
    """
    rng = np.random.default_rng(99)
    n_subjects, n_occasions = 24, 4
    sigma_sq, tau_sq = 2.0, 3.0

    subj_idx = np.arange(n_subjects)
    subject = np.repeat([f"S{i:02d}" for i in subj_idx], n_occasions)
    a = np.repeat(np.where(subj_idx % 2 == 0, 'a1', 'a2'), n_occasions)
    b = np.repeat(np.where((subj_idx // 2) % 2 == 0, 'b1', 'b2'), n_occasions)
    cond = np.tile([f"c{j}" for j in range(n_occasions)], n_subjects)

    X_a = treatment_columns(a)
    X_b = treatment_columns(b)
    X_c = treatment_columns(cond)
    X = np.column_stack([np.ones(len(subject)), X_a, X_b, X_c])
    beta_true = np.array([5.0, 1.0, -1.0, 0.5, 1.0, 1.5])
    y = (X @ beta_true
         + np.repeat(rng.normal(0, np.sqrt(tau_sq), n_subjects), n_occasions)
         + rng.normal(0, np.sqrt(sigma_sq), len(subject)))

    fit = gls_fit(X, y, subject, sigma_sq, tau_sq)
    return {
        'X': X, 'y': y, 'subject': subject,
        'assign': np.array([1, 2, 3, 4, 4, 4]),
        'term_names': ['Intercept', 'A', 'B', 'cond'],
        'n_subjects': n_subjects,
        **fit,
    }


@pytest.fixture
def mixed_subject_covariate():
    """
    12 subjects x 4 occasions. Two-level between-subject factor, a
    continuous subject-level covariate (age) and a within-subject time.
    """
    rng = np.random.default_rng(314)
    n_subjects, n_occasions = 12, 4
    sigma_sq, tau_sq = 1.0, 2.0

    subject = np.repeat([f"S{i:02d}" for i in range(n_subjects)], n_occasions)
    treat = np.repeat((np.arange(n_subjects) % 2).astype(float), n_occasions)
    age = np.repeat(rng.uniform(20, 60, n_subjects), n_occasions)
    time = np.tile(np.arange(n_occasions, dtype=float), n_subjects)
    y = (5.0 + 1.5 * treat + 0.05 * age + 0.3 * time
         + np.repeat(rng.normal(0, np.sqrt(tau_sq), n_subjects), n_occasions)
         + rng.normal(0, np.sqrt(sigma_sq), len(subject)))

    X = np.column_stack([np.ones(len(y)), treat, age, time])
    fit = gls_fit(X, y, subject, sigma_sq, tau_sq)
    X_age = X[:, [0, 2, 3]]
    age_only = {
        'X': X_age, 'y': y, 'subject': subject,
        'assign': np.array([1, 2, 3]),
        'term_names': ['Intercept', 'age', 'time'],
        'n_subjects': n_subjects,
        **gls_fit(X_age, y, subject, sigma_sq, tau_sq),
    }
    return {
        'X': X, 'y': y, 'subject': subject,
        'assign': np.array([1, 2, 3, 4]),
        'term_names': ['Intercept', 'group', 'age', 'time'],
        'n_subjects': n_subjects,
        'age_only': age_only,
        **fit,
    }

"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np
import pandas as pd


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def simple_regression_data(rng):
    """Simple regression dataset for basic tests."""
    n, p = 100, 3
    X = rng.standard_normal((n, p))
    beta_true = np.array([1.0, -2.0, 0.5])
    y = X @ beta_true + rng.standard_normal(n) * 0.1
    return X, y, beta_true


@pytest.fixture
def collinear_data(rng):
    """Dataset with perfect collinearity (should fail)."""
    n = 100
    x1 = rng.standard_normal(n)
    x2 = rng.standard_normal(n)
    x3 = x1 + x2  # Perfect collinearity
    X = np.column_stack([x1, x2, x3])
    y = rng.standard_normal(n)
    return X, y


@pytest.fixture
def linear_table(rng):
    """y = 1 + 2x + noise, with a three-level group shifting the mean."""
    n = 200
    x = rng.standard_normal(n)
    g = rng.choice(['a', 'b', 'c'], size=n)
    shift = np.select([g == 'b', g == 'c'], [0.5, -1.0], 0.0)
    y = 1.0 + 2.0 * x + shift + rng.standard_normal(n) * 0.5
    return pd.DataFrame({'y': y, 'x': x, 'g': g})


@pytest.fixture
def logistic_table(rng):
    """Binary outcome with logit P(win) = -0.5 + 1.2 * kills."""
    n = 400
    kills = rng.standard_normal(n)
    side = rng.choice(['blue', 'red'], size=n)
    p = 1.0 / (1.0 + np.exp(-(-0.5 + 1.2 * kills)))
    win = (rng.random(n) < p).astype(int)
    return pd.DataFrame({'win': win, 'kills': kills, 'side': side})

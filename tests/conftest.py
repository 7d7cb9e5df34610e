"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np

from pyregkit.frame import Frame


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
def mixed_frame(rng):
    """Frame with numeric, categorical and missing values.

    Rows 3 and 7 carry a missing value (one numeric, one categorical).
    """
    n = 40
    x = rng.standard_normal(n)
    x[3] = np.nan
    group = np.array(["a", "b", "c", "d"] * 10, dtype=object)
    group[7] = None
    y = 1.0 + 2.0 * np.nan_to_num(x) + rng.standard_normal(n) * 0.5
    return Frame.from_dict(
        {"y": y, "x": x, "group": group},
        categorical=("group",),
    )


@pytest.fixture
def logistic_data(rng):
    """Binary outcome with a known logit-linear signal."""
    n = 500
    x = rng.standard_normal(n)
    eta = -0.5 + 1.2 * x
    y = (rng.uniform(size=n) < 1.0 / (1.0 + np.exp(-eta))).astype(np.float64)
    return {"y": y, "x": x}


@pytest.fixture
def count_data(rng):
    """Poisson counts with exposure."""
    n = 300
    x = rng.uniform(-1, 1, size=n)
    exposure = rng.uniform(0.5, 2.0, size=n)
    mu = exposure * np.exp(0.3 + 0.8 * x)
    y = rng.poisson(mu).astype(np.float64)
    return {"y": y, "x": x, "log_exposure": np.log(exposure)}


@pytest.fixture
def survival_data(rng):
    """Right-censored exponential survival times with one covariate."""
    n = 120
    x = rng.standard_normal(n)
    group = np.where(rng.uniform(size=n) < 0.5, "control", "treated")
    rate = np.exp(0.7 * x + np.where(group == "treated", -0.5, 0.0))
    t_event = rng.exponential(1.0 / rate)
    t_cens = rng.exponential(2.0, size=n)
    time = np.minimum(t_event, t_cens)
    event = (t_event <= t_cens).astype(np.float64)
    return {"time": time, "event": event, "x": x, "group": group}

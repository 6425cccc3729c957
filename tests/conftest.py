"""Shared fixtures for the test suite.

Provides small synthetic series generated from known processes, so that
estimates can be checked against the true parameters without data files.
"""

import numpy as np
import pandas as pd
import pytest


def _simulate_ar1(phi: float, delta: float, n: int, seed: int = 42, burn: int = 200) -> np.ndarray:
    rng = np.random.default_rng(seed)
    noise = rng.normal(0.0, 1.0, n + burn)
    y = np.zeros(n + burn)
    y[0] = delta / (1.0 - phi)
    for t in range(1, n + burn):
        y[t] = delta + phi * y[t - 1] + noise[t]
    return y[burn:]


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def small_series():
    """Ten observations with a known random-walk forecast."""
    return np.array([1.0, 3.0, 4.0, 2.0, 5.0, 7.0, 9.0, 8.0, 6.0, 3.0])


@pytest.fixture
def ar1_series():
    """Long AR(1) sample: y_t = 2 + 0.6 y_{t-1} + e_t (mean 5)."""
    return _simulate_ar1(phi=0.6, delta=2.0, n=2000)


@pytest.fixture
def short_ar1_series():
    """AR(1) sample short enough for quick multi-horizon sweeps."""
    return _simulate_ar1(phi=0.7, delta=1.0, n=120, seed=7)


@pytest.fixture
def random_walk_series(rng):
    """Integrated noise with drift, for differenced models."""
    return np.cumsum(0.5 + rng.normal(0.0, 1.0, 300))


@pytest.fixture
def seasonal_series(rng):
    """Weekly seasonal pattern plus noise, with a datetime index."""
    n = 210
    t = np.arange(n)
    values = 10.0 + 3.0 * np.sin(2 * np.pi * t / 7) + rng.normal(0.0, 0.3, n)
    dates = pd.date_range("2024-01-01", periods=n, freq="D")
    return pd.Series(values, index=dates)


@pytest.fixture
def exog_series(rng):
    """Series driven by the lag of one exogenous column."""
    n = 300
    x = rng.uniform(0.0, 2.0, n)
    y = np.zeros(n)
    noise = rng.normal(0.0, 0.1, n)
    for t in range(1, n):
        y[t] = 1.0 + 0.5 * y[t - 1] + 2.0 * x[t - 1] + noise[t]
    return y, pd.DataFrame({"feature1": x})

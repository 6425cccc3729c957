"""Autocorrelation analysis, kept separate from the models that use it."""

import numpy as np
from typing import Tuple

from .errors import ConfigurationError


def acf(y, max_lag: int) -> np.ndarray:
    """
    Sample autocorrelation function.

    Args:
        y: Series
        max_lag: Largest lag

    Returns:
        rho: Array of length max_lag + 1 with rho[0] = 1
    """
    y = np.asarray(y, dtype=float)
    if not 0 <= max_lag < len(y):
        raise ConfigurationError(f"max_lag must be between 0 and {len(y) - 1}, got {max_lag}.")
    x = y - y.mean()
    c0 = np.dot(x, x)
    if c0 == 0:
        rho = np.zeros(max_lag + 1)
        rho[0] = 1.0
        return rho
    return np.array([np.dot(x[k:], x[:len(x) - k]) / c0 for k in range(max_lag + 1)])


def durbin_levinson(rho: np.ndarray, p: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Solve the Yule-Walker equations by the Durbin-Levinson recursion.

    Args:
        rho: Autocorrelations with rho[0] = 1, at least p + 1 values
        p: AR order

    Returns:
        phi: AR(p) coefficients, lag 1 first
        pacf: Partial autocorrelations for lags 0..p (pacf[0] = 1)
    """
    phi = np.zeros(p)
    pacf = np.ones(p + 1)
    v = 1.0
    for k in range(1, p + 1):
        if v <= 0:
            pacf[k:] = 0.0
            break
        a = (rho[k] - np.dot(phi[:k - 1], rho[k - 1:0:-1])) / v
        phi[:k - 1] = phi[:k - 1] - a * phi[:k - 1][::-1]
        phi[k - 1] = a
        pacf[k] = a
        v *= 1.0 - a * a
    return phi, pacf


def pacf(y, max_lag: int) -> np.ndarray:
    """Sample partial autocorrelation function for lags 0..max_lag."""
    return durbin_levinson(acf(y, max_lag), max_lag)[1]


def yule_walker(y, p: int) -> np.ndarray:
    """Yule-Walker estimate of the AR(p) coefficients of a series."""
    if p == 0:
        return np.zeros(0)
    return durbin_levinson(acf(y, p), p)[0]

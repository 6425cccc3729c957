"""
Stateless series transforms used to build forecasting models.

Differencing removes trend and seasonality before AR/MA terms are fitted,
and its inverse maps working-scale forecasts back to the original scale.
The column builders assemble the predictor matrices used by the
regression forecasters: deterministic trend terms, endogenous lags and
exogenous lags. All lag builders index rows by absolute time, so row `t`
only holds values observed strictly before `t`.
"""

import numpy as np
import pandas as pd
from typing import List, Optional, Sequence, Tuple

from .errors import ConfigurationError


DIFFERENCE_ORDERS = (0, 1, 2)


def as_series(y, name: str = "y", min_length: int = 2) -> np.ndarray:
    """
    Convert a series to a 1-D float array and check that it is usable.

    Args:
        y: Array-like or `pandas.Series` of observations
        name: Name used in error messages
        min_length: Minimum number of observations

    Returns:
        y: 1-D `numpy.ndarray` of dtype float, a copy of the input

    Raises:
        ConfigurationError: If the series is not 1-D, too short or not finite
    """
    if isinstance(y, pd.DataFrame):
        if y.shape[1] != 1:
            raise ConfigurationError(f"{name} must be a single column, got {y.shape[1]} columns.")
        y = y.iloc[:, 0]
    arr = np.array(y, dtype=float)
    if arr.ndim != 1:
        raise ConfigurationError(f"{name} must be one-dimensional, got shape {arr.shape}.")
    if len(arr) < min_length:
        raise ConfigurationError(f"{name} must have at least {min_length} values, got {len(arr)}.")
    if not np.all(np.isfinite(arr)):
        raise ConfigurationError(f"{name} contains NaN or infinite values.")
    return arr


def as_exogenous(exog, n_rows: int) -> Optional[np.ndarray]:
    """
    Convert exogenous variables to a 2-D float array with one column per variable.

    Returns None when `exog` is None. Missing values are allowed (they are
    backfilled when lag columns are built); the row count must match `n_rows`.
    The result is a copy of the input.
    """
    if exog is None:
        return None
    arr = np.array(exog, dtype=float)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise ConfigurationError(f"exog must be two-dimensional, got shape {arr.shape}.")
    if arr.shape[0] != n_rows:
        raise ConfigurationError(
            f"Dimensions in endog ({n_rows}) and exog ({arr.shape[0]}) do not match."
        )
    return arr


def _check_order(d: int, name: str = "d"):
    if isinstance(d, bool) or not isinstance(d, (int, np.integer)) or d not in DIFFERENCE_ORDERS:
        raise ConfigurationError(f"Differencing order {name} must be one of {DIFFERENCE_ORDERS}, got {d!r}.")


def _check_period(period: int):
    if isinstance(period, bool) or not isinstance(period, (int, np.integer)) or period < 1:
        raise ConfigurationError(f"Seasonal period must be a positive integer, got {period!r}.")


def difference(y, d: int = 1) -> Tuple[np.ndarray, np.ndarray]:
    """
    Apply the first difference `v[t] = y[t+1] - y[t]` d times.

    Args:
        y: Series to difference
        d: Differencing order (0, 1 or 2)

    Returns:
        v: Differenced series with `len(y) - d` values
        seeds: The d leading observations `y[:d]` needed to invert the transform
    """
    _check_order(d)
    y = np.asarray(y, dtype=float)
    if len(y) <= d:
        raise ConfigurationError(f"Series of length {len(y)} is too short to difference {d} times.")
    return np.diff(y, n=d), y[:d].copy()


def undifference(v, seeds) -> np.ndarray:
    """
    Invert `difference`: `undifference(*difference(y, d))` reproduces y.

    Args:
        v: Differenced series
        seeds: Leading observations returned by `difference`

    Returns:
        y: Series on the original scale with `len(v) + len(seeds)` values
    """
    seeds = np.asarray(seeds, dtype=float)
    _check_order(len(seeds), "len(seeds)")
    x = np.asarray(v, dtype=float)
    # first value of each intermediate level, recovered from the seeds
    heads = [np.diff(seeds, n=k)[0] for k in range(len(seeds))]
    for head in reversed(heads):
        x = np.concatenate([[head], head + np.cumsum(x)])
    return x


def seasonal_difference(y, period: int, D: int = 1) -> Tuple[np.ndarray, np.ndarray]:
    """
    Apply the seasonal difference `v[t] = y[t+s] - y[t]` D times.

    Args:
        y: Series to difference
        period: Seasonal period s
        D: Seasonal differencing order (0, 1 or 2)

    Returns:
        v: Differenced series with `len(y) - D*s` values
        seeds: Array of shape (D, s) holding the first s values of each level
    """
    _check_order(D, "D")
    _check_period(period)
    x = np.asarray(y, dtype=float)
    if len(x) <= D * period:
        raise ConfigurationError(
            f"Series of length {len(x)} is too short for {D} seasonal differences of period {period}."
        )
    seeds = []
    for _ in range(D):
        seeds.append(x[:period].copy())
        x = x[period:] - x[:-period]
    return x, np.array(seeds).reshape(D, period)


def seasonal_undifference(v, seeds, period: int) -> np.ndarray:
    """Invert `seasonal_difference`."""
    _check_period(period)
    seeds = np.asarray(seeds, dtype=float).reshape(-1, period)
    x = np.asarray(v, dtype=float)
    for head in seeds[::-1]:
        out = np.empty(len(x) + period)
        out[:period] = head
        for i in range(len(x)):
            out[i + period] = out[i] + x[i]
        x = out
    return x


def difference_levels(y, d: int = 0, D: int = 0, period: int = 1) -> Tuple[List[np.ndarray], List[int]]:
    """
    Build every intermediate level of simple-then-seasonal differencing.

    Each level is aligned with the original time index: level k has the same
    length as y, and entry t holds the level's value at time t (NaN while
    the level is not yet defined).

    Args:
        y: Series to difference
        d: Simple differencing order (0, 1 or 2)
        D: Seasonal differencing order (0, 1 or 2)
        period: Seasonal period (only used when D > 0)

    Returns:
        levels: `[y, ..., z]`, with `d + D + 1` arrays, the last being the working series
        lags: The lag used to go from `levels[k]` to `levels[k+1]`
    """
    _check_order(d)
    _check_order(D, "D")
    if D > 0:
        _check_period(period)
    lags = [1] * d + [period] * D
    y = np.asarray(y, dtype=float)
    if len(y) <= sum(lags):
        raise ConfigurationError(
            f"Series of length {len(y)} is too short for differencing with lags {lags}."
        )
    levels = [y.copy()]
    for lag in lags:
        prev = levels[-1]
        nxt = np.full(len(y), np.nan)
        nxt[lag:] = prev[lag:] - prev[:-lag]
        levels.append(nxt)
    return levels, lags


def trend_columns(n_rows: int, spec: int = 1, wavelength: float = 7.0, scale: Optional[int] = None) -> np.ndarray:
    """
    Deterministic trend terms, functions of the time index only.

    Column k is included when `spec > k`:
        0: constant 1
        1: linear t/m
        2: quadratic ((t - m/2) / (m/2))^2
        3: sin(2 pi t / wavelength)
        4: cos(2 pi t / wavelength)

    Args:
        n_rows: Number of time points (rows)
        spec: Number of trend columns (0 to 5)
        wavelength: Period of the sine/cosine terms
        scale: Series length m used to scale the linear and quadratic terms
            (default: n_rows). Rows beyond m keep the same scaling.

    Returns:
        trend: Array of shape (n_rows, spec)
    """
    if spec not in range(6):
        raise ConfigurationError(f"Trend code spec must be between 0 and 5, got {spec}.")
    if spec >= 4 and wavelength <= 0:
        raise ConfigurationError(f"Wavelength must be positive, got {wavelength}.")
    m = float(scale if scale is not None else n_rows)
    t = np.arange(n_rows, dtype=float)
    half = m / 2.0
    columns = [
        np.ones(n_rows),
        t / m,
        ((t - half) / half) ** 2,
        np.sin(2 * np.pi * t / wavelength) if spec >= 4 else None,
        np.cos(2 * np.pi * t / wavelength) if spec >= 5 else None,
    ]
    if spec == 0:
        return np.empty((n_rows, 0))
    return np.column_stack(columns[:spec])


def lagged_columns(y, lags: Sequence[int], n_rows: Optional[int] = None) -> np.ndarray:
    """
    Row t holds `[y[t - lags[0]], y[t - lags[1]], ...]`.

    Indices below 0 are clamped to `y[0]`; indices at or beyond `len(y)`
    (values not observed yet) are NaN.

    Args:
        y: Series
        lags: Positive lag offsets
        n_rows: Number of rows (default: len(y)); may exceed len(y)

    Returns:
        columns: Array of shape (n_rows, len(lags))
    """
    y = np.asarray(y, dtype=float)
    m = len(y)
    n_rows = m if n_rows is None else n_rows
    lags = np.asarray(lags, dtype=int)
    if np.any(lags < 1):
        raise ConfigurationError(f"Lags must be positive, got {lags.tolist()}.")
    idx = np.arange(n_rows)[:, None] - lags[None, :]
    idx = np.maximum(idx, 0)
    out = np.full(idx.shape, np.nan)
    observed = idx < m
    out[observed] = y[idx[observed]]
    return out


def lag_columns(y, p: int, n_rows: Optional[int] = None) -> np.ndarray:
    """Row t holds `[y[t-1], y[t-2], ..., y[t-p]]`, clamping indices below 0 to `y[0]`."""
    return lagged_columns(y, range(1, p + 1), n_rows)


def seasonal_lag_columns(y, period: int, order: int, n_rows: Optional[int] = None) -> np.ndarray:
    """Row t holds `[y[t-s], y[t-2s], ..., y[t-order*s]]`."""
    _check_period(period)
    return lagged_columns(y, [period * k for k in range(1, order + 1)], n_rows)


def moving_average_weights(q: int, u: float = 1.0) -> np.ndarray:
    """
    Weights for a q-point weighted moving average, oldest value first.

    `u` slides between flat weights (0.0) and linear weights (1.0); the
    newest value always carries the largest weight.
    """
    if q < 1:
        raise ConfigurationError(f"Moving average window q must be at least 1, got {q}.")
    linear = np.arange(1, q + 1, dtype=float)
    linear /= linear.sum()
    flat = np.full(q, 1.0 / q)
    return u * linear + (1.0 - u) * flat


def backcast(y, i: int = 0, q: int = 2, u: float = 1.0) -> float:
    """
    Estimate the value just before position i from the q values starting at i.

    The window `y[i:i+q]` is averaged with the weighted moving average
    weights, the value closest to position i weighted most.
    """
    window = np.asarray(y, dtype=float)[i:i + q]
    if len(window) == 0:
        raise ConfigurationError(f"No values available to backcast before position {i}.")
    w = moving_average_weights(len(window), u)
    return float(np.dot(w, window[::-1]))


def backfill(x, q: int = 2, u: float = 1.0) -> np.ndarray:
    """
    Replace leading zero or missing entries by backward extrapolation.

    Working backwards from the first non-zero observed value, each leading
    entry is replaced by the backcast of the values that follow it.

    Args:
        x: Exogenous series
        q: Backcast window length
        u: Backcast weighting slider

    Returns:
        x: Backfilled copy
    """
    x = np.array(x, dtype=float)
    present = np.flatnonzero(np.isfinite(x) & (x != 0.0))
    if len(present) == 0:
        return np.nan_to_num(x, nan=0.0)
    first = present[0]
    for k in range(first - 1, -1, -1):
        x[k] = backcast(x, k + 1, q, u)
    return x


def fill_exogenous(x) -> np.ndarray:
    """
    Gap-free copy of an exogenous column.

    Missing values after the first observation are carried forward from the
    previous one; the leading missing or zero entries are then backfilled.
    """
    return backfill(pd.Series(x, dtype=float).ffill().to_numpy())


def exogenous_lag_columns(x, q: int, n_rows: Optional[int] = None) -> np.ndarray:
    """Row t holds `[x[t-1], ..., x[t-q]]` for a gap-filled exogenous column."""
    return lagged_columns(fill_exogenous(x), range(1, q + 1), n_rows)

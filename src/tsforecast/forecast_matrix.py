"""
The forecast matrix: every forecast of a model, indexed by time and horizon.

Layout (row = absolute time):

    column 0        actual value y[r] (NaN for rows beyond the series)
    column h        forecast for time r made h steps earlier, i.e. from origin r - h
    last column     the time index r

With m observations and maximum horizon H the matrix has m + H rows and
H + 2 columns. For a fixed origin t the forecasts `yf[t+1, 1], yf[t+2, 2],
..., yf[t+H, H]` lie on a diagonal and are filled by a single recursive
sweep: the forecast at horizon h may read the actual values up to t and the
same-origin forecasts at horizons below h, never an actual value after t.

Cells with no valid origin (origin before the first origin, or after the
last observation) keep the NaN sentinel and are excluded from scoring.
"""

import logging

import numpy as np
import pandas as pd
from typing import Callable, Optional

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def slant(values: np.ndarray) -> np.ndarray:
    """
    Re-index a time-layout matrix so that each row is one forecast origin.

    Row t of the result holds the actual value y[t] in column 0, the
    forecasts `yf[t+h, h]` made from origin t in column h, and t in the
    last column. Cells of the time layout with no origin (row < h) have
    no place in the origin layout; they are sentinels by construction.

    Args:
        values: Array of shape (n, H + 2) in the time layout

    Returns:
        slanted: Array of the same shape in the origin layout
    """
    n, width = values.shape
    out = np.full_like(values, np.nan, dtype=float)
    out[:, 0] = values[:, 0]
    for h in range(1, width - 1):
        out[:n - h, h] = values[h:, h]
    out[:, -1] = np.arange(n)
    return out


def unslant(values: np.ndarray) -> np.ndarray:
    """Inverse of `slant`: return from the origin layout to the time layout."""
    n, width = values.shape
    out = np.full_like(values, np.nan, dtype=float)
    out[:, 0] = values[:, 0]
    for h in range(1, width - 1):
        out[h:, h] = values[:n - h, h]
    out[:, -1] = np.arange(n)
    return out


class ForecastMatrix:
    """
    Pre-sized buffer holding actual values and multi-horizon forecasts.

    Each model owns its own matrix; the only writes are `set(t, h, value)`
    (one cell `yf[t+h, h]`) performed by the model's forecasting sweep.

    Attributes:
        m: Number of observations
        horizon: Maximum horizon H
        first_origin: Earliest origin a forecast can be made from
        values: Underlying array of shape (m + H, H + 2)
    """

    def __init__(self, y, horizon: int, first_origin: int = 0):
        """
        Allocate the matrix and seed column 0 with the actual series.

        Args:
            y: Observed series (length m)
            horizon: Maximum horizon H (at least 1)
            first_origin: Earliest valid origin (default: 0)
        """
        if horizon < 1:
            raise ConfigurationError(f"Horizon must be at least 1, got {horizon}.")
        y = np.asarray(y, dtype=float)
        self.m = len(y)
        if not 0 <= first_origin < self.m:
            raise ConfigurationError(
                f"First origin {first_origin} must lie within the series of length {self.m}."
            )
        self.horizon = horizon
        self.first_origin = first_origin
        self.values = np.full((self.m + horizon, horizon + 2), np.nan)
        self.values[:self.m, 0] = y
        self.values[:, -1] = np.arange(self.m + horizon)

    @property
    def actual(self) -> np.ndarray:
        """The observed series (column 0 of the in-range rows)."""
        return self.values[:self.m, 0]

    @property
    def origins(self) -> range:
        return range(self.first_origin, self.m)

    def _check(self, t: int, h: int):
        if not 1 <= h <= self.horizon:
            raise ConfigurationError(f"Horizon h={h} must be between 1 and {self.horizon}.")
        if t not in self.origins:
            raise ConfigurationError(
                f"Origin t={t} must be between {self.first_origin} and {self.m - 1}."
            )

    def get(self, t: int, h: int) -> float:
        """Forecast for time t+h made from origin t."""
        self._check(t, h)
        return self.values[t + h, h]

    def set(self, t: int, h: int, value: float):
        """Record the forecast for time t+h made from origin t."""
        self._check(t, h)
        self.values[t + h, h] = value

    def known(self, t: int, tau: int) -> float:
        """
        Value of time tau as seen from origin t.

        The actual value when tau <= t, otherwise the forecast of tau made
        from origin t (horizon tau - t), which must already be recorded.
        """
        if tau <= t:
            return self.values[tau, 0]
        return self.values[tau, tau - t]

    def origin_row(self, t: int, h: Optional[int] = None) -> np.ndarray:
        """Forecasts `[yf[t+1, 1], ..., yf[t+h, h]]` from origin t (default h = H)."""
        h = self.horizon if h is None else h
        steps = np.arange(1, h + 1)
        return self.values[t + steps, steps]

    def column(self, h: int) -> np.ndarray:
        """All h-step-ahead forecasts, indexed by target time."""
        return self.values[:, h]

    def valid_rows(self, h: int, skip: int = 0) -> range:
        """
        In-sample rows that hold both an actual value and an h-step forecast.

        Rows before `skip` are dropped first, then rows with no valid origin.
        """
        return range(max(skip, self.first_origin + h), self.m)

    def forecast_all(self, step: Callable[[int, int], float]) -> "ForecastMatrix":
        """
        Fill every forecastable cell by diagonal recursion.

        For h = 1..H and every origin t, `step(t, h)` returns the forecast
        for time t+h. By the time it is called, all cells of horizons below h
        are filled, so the step may read them through `known`.

        Args:
            step: Function of (origin, horizon) returning one forecast

        Returns:
            self
        """
        for h in range(1, self.horizon + 1):
            for t in self.origins:
                self.values[t + h, h] = step(t, h)
            logger.debug("Filled horizon %d for %d origins", h, len(self.origins))
        return self

    def slanted(self) -> np.ndarray:
        """Copy of the matrix in the origin layout (see `slant`)."""
        return slant(self.values)

    def to_frame(self) -> pd.DataFrame:
        """Return the matrix as a `pandas.DataFrame` with columns actual, h1..hH, time."""
        columns = ["actual"] + [f"h{h}" for h in range(1, self.horizon + 1)] + ["time"]
        df = pd.DataFrame(self.values, columns=columns)
        df["time"] = df["time"].astype(int)
        return df

    def __repr__(self):
        return f"ForecastMatrix(m={self.m}, horizon={self.horizon}, first_origin={self.first_origin})"

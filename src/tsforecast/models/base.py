"""Base interface for forecasting models."""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from ..errors import ConfigurationError, ModelStateError
from ..evaluation import QOF_NAMES, diagnose
from ..forecast_matrix import ForecastMatrix
from ..hyperparameters import HyperParameterSet
from ..transforms import as_exogenous, as_series

logger = logging.getLogger(__name__)


class Forecaster(ABC):
    """
    Base class for forecasting models.

    A model is built from a horizon and hyperparameters, trained on a
    series, and then produces forecasts from any origin t for horizons
    1..H. Subclasses supply two pieces:

        _fit(y, exog)      estimate parameters
        _step(t, h, yf)    forecast time t+h from origin t, reading only the
                           actual values up to t and the same-origin forecasts
                           for horizons below h (via `yf.known`)

    Everything else (one-step prediction, the error trace, the diagonal
    sweep over the forecast matrix, scoring) is shared.

    Attributes:
        horizon: Maximum forecasting horizon H
        hparams: Validated `HyperParameterSet`
        skip: Rows before this index are left out of every QoF computation
        e: One-step residuals of the series being evaluated, e[t+1] set by
            the prediction from origin t (0.0 where no prediction exists)
    """

    name = "Forecaster"
    DEFAULTS = HyperParameterSet([])

    def __init__(self, horizon: int = 1, hparams=None, skip: int = 2):
        """
        Create a model.

        Args:
            horizon: Maximum forecasting horizon H. Default: 1.
            hparams: Hyperparameter overrides (dict or `HyperParameterSet`).
                Unknown names are rejected. Default: the class defaults.
            skip: Number of leading rows excluded from quality-of-fit
                computations. Use 0 (or the training size for a train/test
                split) when earlier history makes the first rows forecastable.
                Default: 2.
        """
        if isinstance(horizon, bool) or not isinstance(horizon, (int, np.integer)) or horizon < 1:
            raise ConfigurationError(f"Horizon must be an integer of at least 1, got {horizon!r}.")
        if isinstance(skip, bool) or not isinstance(skip, (int, np.integer)) or skip < 0:
            raise ConfigurationError(f"skip must be a non-negative integer, got {skip!r}.")
        self.horizon = int(horizon)
        self.skip = int(skip)
        self.hparams = self.DEFAULTS.updated(hparams)
        self.e: Optional[np.ndarray] = None

        self._trained = False
        self._y: Optional[np.ndarray] = None
        self._exog: Optional[np.ndarray] = None
        self._yf: Optional[ForecastMatrix] = None      # matrix of the series being evaluated
        self._eval_y: Optional[np.ndarray] = None
        self._yf_all: Optional[ForecastMatrix] = None  # matrix filled by forecast_all()

    @property
    def first_origin(self) -> int:
        """Earliest time a forecast can be made from."""
        return 0

    @property
    def n_params(self) -> int:
        """Number of fitted parameters, used as the model degrees of freedom."""
        return 0

    @abstractmethod
    def _fit(self, y: np.ndarray, exog: Optional[np.ndarray]):
        """
        Estimate model parameters from a validated series.

        Args:
            y: Endogenous series
            exog: Exogenous variables of shape (len(y), n_features), or None
        """
        pass

    @abstractmethod
    def _step(self, t: int, h: int, yf: ForecastMatrix) -> float:
        """
        Forecast time t+h from origin t.

        Args:
            t: Origin
            h: Horizon (1..H)
            yf: Forecast matrix of the series being evaluated, with all
                same-origin forecasts below horizon h already recorded

        Returns:
            forecast: Forecast of y[t+h]
        """
        pass

    def _prepare(self, y: np.ndarray, exog: Optional[np.ndarray], yf: ForecastMatrix):
        """Build per-series state (lag matrices, working series) before forecasting a series."""
        pass

    def _check_trained(self, method: str):
        if not self._trained:
            raise ModelStateError(
                f"Model must be trained before calling {method}(). Call train() first."
            )

    def _check_origin(self, t: int, yf: ForecastMatrix):
        if t not in yf.origins:
            raise ConfigurationError(
                f"Origin t={t!r} must be between {yf.first_origin} and {yf.m - 1}."
            )

    def _check_horizon(self, h: int):
        if isinstance(h, bool) or not isinstance(h, (int, np.integer)) or not 1 <= h <= self.horizon:
            raise ConfigurationError(f"Horizon h={h!r} must be between 1 and {self.horizon}.")

    def train(self, y, exog=None) -> "Forecaster":
        """
        Fit model parameters to observed data.
        Returns the trained model.

        After training, the one-step predictions and the error trace of the
        training series are available (`predict_all`, `test`).

        Args:
            y: Endogenous series (array-like or `pandas.Series`)
            exog: Exogenous variables (array-like or `pandas.DataFrame`),
                one row per observation. Default: None.
        """
        y = as_series(y, min_length=self.first_origin + 2)
        exog = as_exogenous(exog, len(y))
        self._fit(y, exog)
        self._y, self._exog = y, exog
        self._trained = True
        self._yf_all = None
        self._evaluate(y, exog)
        logger.info("Trained %r on %d observations", self, len(y))
        return self

    def _evaluate(self, y: np.ndarray, exog: Optional[np.ndarray]) -> ForecastMatrix:
        """Allocate a fresh forecast matrix for a series and fill its one-step column."""
        yf = ForecastMatrix(y, self.horizon, self.first_origin)
        self.e = np.zeros(len(y))
        self._prepare(y, exog, yf)
        for t in yf.origins:
            yf.set(t, 1, self._one_step(t, 1, yf))
        self._yf, self._eval_y = yf, y
        return yf

    def _matrix_for(self, y, exog, method: str) -> ForecastMatrix:
        self._check_trained(method)
        if y is None:
            y, exog = self._y, self._exog
        if y is self._eval_y and self._yf is not None:
            return self._yf
        y = as_series(y, min_length=self.first_origin + 2)
        return self._evaluate(y, as_exogenous(exog, len(y)))

    def _one_step(self, t: int, h: int, yf: ForecastMatrix) -> float:
        value = float(self._step(t, h, yf))
        if h == 1 and t + 1 < yf.m:
            self.e[t + 1] = yf.actual[t + 1] - value
        return value

    def predict(self, t: int, y=None, exog=None) -> float:
        """
        Forecast y[t+1] from origin t using values observed up to t.

        As a side effect the residual e[t+1] is updated when y[t+1] is observed.

        Args:
            t: Origin
            y: Series to predict on. Default: the training series.
            exog: Exogenous variables matching y. Default: the training exog.

        Returns:
            prediction: One-step-ahead forecast
        """
        yf = self._matrix_for(y, exog, "predict")
        self._check_origin(t, yf)
        value = self._one_step(t, 1, yf)
        yf.set(t, 1, value)
        return value

    def predict_all(self, y=None, exog=None) -> np.ndarray:
        """
        One-step predictions for every time point of a series.

        Returns:
            yp: Array aligned with y; entry r is the forecast of y[r] from
                origin r-1, NaN where no origin exists
        """
        yf = self._matrix_for(y, exog, "predict_all")
        return yf.column(1)[:yf.m].copy()

    def forecast(self, t: int, h: Optional[int] = None, y=None, exog=None) -> np.ndarray:
        """
        Make forecasts for horizons 1..h from origin t.

        The forecasts are recorded on the diagonal of the forecast matrix,
        each horizon using the lower-horizon forecasts in place of the
        unobserved future.

        Args:
            t: Origin (the last observed time used)
            h: Number of steps ahead. Default: the model horizon.
            y: Series to forecast. Default: the training series.
            exog: Exogenous variables matching y. Default: the training exog.

        Returns:
            forecasts: Array of shape (h,), entry k-1 forecasting y[t+k]

        Example:
            # Forecast past the end of the training data
            model.train(y_train)
            model.forecast(len(y_train) - 1, h=6)
        """
        yf = self._matrix_for(y, exog, "forecast")
        h = self.horizon if h is None else h
        self._check_horizon(h)
        self._check_origin(t, yf)
        forecasts = np.zeros(h)
        for k in range(1, h + 1):
            value = self._one_step(t, k, yf)
            yf.set(t, k, value)
            forecasts[k - 1] = value
        return forecasts

    def forecast_all(self, y=None, exog=None) -> ForecastMatrix:
        """
        Forecast every horizon from every origin of a series.

        Args:
            y: Series to forecast. Default: the training series.
            exog: Exogenous variables matching y. Default: the training exog.

        Returns:
            yf: The filled `ForecastMatrix`
        """
        self._check_trained("forecast_all")
        if y is None:
            y, exog = self._y, self._exog
        else:
            y = as_series(y, min_length=self.first_origin + 2)
            exog = as_exogenous(exog, len(y))
        yf = ForecastMatrix(y, self.horizon, self.first_origin)
        self.e = np.zeros(len(y))
        self._prepare(y, exog, yf)
        yf.forecast_all(lambda t, h: self._one_step(t, h, yf))
        self._yf, self._eval_y, self._yf_all = yf, y, yf
        logger.debug("Forecast %d origins for horizons 1..%d with %r", len(yf.origins), self.horizon, self)
        return yf

    @property
    def forecast_matrix(self) -> ForecastMatrix:
        if self._yf_all is None:
            raise ModelStateError("No forecast matrix yet. Call forecast_all() first.")
        return self._yf_all

    def _score(self, yf: ForecastMatrix, h: int, skip: Optional[int]) -> Tuple[np.ndarray, pd.Series]:
        rows = yf.valid_rows(h, self.skip if skip is None else skip)
        y = yf.actual[rows.start:rows.stop]
        yp = yf.column(h)[rows.start:rows.stop].copy()
        qof = diagnose(y, yp, dfm=self.n_params)
        logger.debug("%r h=%d: %s", self, h, qof[["r_sq", "smape"]].to_dict())
        return yp, qof

    def test(self, y=None, exog=None, skip: Optional[int] = None) -> Tuple[np.ndarray, pd.Series]:
        """
        Score the one-step predictions against the actual values.

        Args:
            y: Series to score on. Default: the training series.
            exog: Exogenous variables matching y.
            skip: Rows before this index are not scored. Default: `self.skip`.

        Returns:
            yp: Scored predictions, aligned with y[max(skip, first_origin + 1):]
            qof: Quality-of-fit report (see `evaluation.QOF_NAMES`)
        """
        yf = self._matrix_for(y, exog, "test")
        return self._score(yf, 1, skip)

    def test_f(self, h: int, skip: Optional[int] = None) -> Tuple[np.ndarray, pd.Series]:
        """
        Score the h-step forecasts of the last `forecast_all` call.

        Returns:
            yfh: Scored h-step forecasts, aligned with y[max(skip, first_origin + h):]
            qof: Quality-of-fit report
        """
        self._check_trained("test_f")
        self._check_horizon(h)
        return self._score(self.forecast_matrix, h, skip)

    def diagnose_all(self, skip: Optional[int] = None) -> pd.DataFrame:
        """Quality-of-fit report for every horizon (rows: QoF names, columns: h1..hH)."""
        self._check_trained("diagnose_all")
        reports = {f"h{h}": self.test_f(h, skip)[1] for h in range(1, self.horizon + 1)}
        return pd.DataFrame(reports, index=list(QOF_NAMES))

    def get_params(self) -> dict:
        """Fitted parameters by name."""
        self._check_trained("get_params")
        return {}

    def __repr__(self):
        hp = ", ".join(f"{k}={v}" for k, v in self.hparams.items())
        return f"{self.name}({hp})" if hp else f"{self.name}()"

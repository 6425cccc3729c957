"""Baseline forecasters: random walks, moving averages and simple exponential smoothing."""

import logging

import numpy as np
from scipy.optimize import minimize_scalar

from .base import Forecaster
from ..hyperparameters import HyperParameter, HyperParameterSet
from ..transforms import moving_average_weights

logger = logging.getLogger(__name__)


class RandomWalk(Forecaster):
    """
    Random walk: the forecast for every horizon is the last observed value.

        y_{t+h} = y_t
    """

    name = "RandomWalk"

    def _fit(self, y, exog):
        pass

    def _step(self, t, h, yf):
        # carry the previous horizon's forecast down the diagonal
        return yf.known(t, t + h - 1)


class RandomWalkS(RandomWalk):
    """
    Random walk with a slope adjustment on the one-step forecast.

        y_{t+1} = y_t + sw * (y_t - y_{t-1})

    Longer horizons repeat the one-step forecast.
    """

    name = "RandomWalkS"
    DEFAULTS = HyperParameterSet([HyperParameter("sw", 0.1, 0.0, 1.0)])

    def _step(self, t, h, yf):
        if h > 1:
            return yf.known(t, t + h - 1)
        y = yf.actual
        return y[t] + self.hparams["sw"] * (y[t] - y[max(t - 1, 0)])


class WeightedMovingAverage(Forecaster):
    """
    Weighted mean of the last q values (linear weights blended with flat weights by u).

    Beyond one step ahead, forecasts already made from the same origin
    slide into the window in place of unobserved values.
    """

    name = "WeightedMovingAverage"
    DEFAULTS = HyperParameterSet([
        HyperParameter("q", 2, 1),
        HyperParameter("u", 1.0, 0.0, 1.0),
    ])

    def __init__(self, horizon: int = 1, hparams=None, skip: int = 2):
        super().__init__(horizon, hparams, skip)
        self.weights = moving_average_weights(self.hparams["q"], self._slider())

    def _slider(self) -> float:
        return self.hparams["u"]

    def _fit(self, y, exog):
        pass

    def _step(self, t, h, yf):
        q = len(self.weights)
        # oldest first, matching the weight order
        window = [yf.known(t, max(t + h - k, 0)) for k in range(q, 0, -1)]
        return float(np.dot(self.weights, window))

    def get_params(self):
        self._check_trained("get_params")
        return {"weights": self.weights.copy()}


class SimpleMovingAverage(WeightedMovingAverage):
    """Mean of the last q values."""

    name = "SimpleMovingAverage"
    DEFAULTS = HyperParameterSet([HyperParameter("q", 3, 1)])

    def _slider(self) -> float:
        return 0.0


class SimpleExpSmoothing(Forecaster):
    """
    Simple exponential smoothing.

        s_0 = y_0
        s_{t+1} = alpha * y_t + (1 - alpha) * s_t

    The forecast from origin t is s_{t+1} for every horizon. When
    `optimize` is set, alpha is chosen in [0, 1] to minimize the one-step
    sum of squared errors on the training series.
    """

    name = "SimpleExpSmoothing"
    DEFAULTS = HyperParameterSet([HyperParameter("alpha", 0.9, 0.0, 1.0)])

    def __init__(self, horizon: int = 1, hparams=None, skip: int = 2, optimize: bool = True):
        super().__init__(horizon, hparams, skip)
        self.optimize = optimize
        self.alpha = self.hparams["alpha"]
        self._level = None

    @property
    def n_params(self):
        return 1 if self.optimize else 0

    @staticmethod
    def smooth(y: np.ndarray, alpha: float) -> np.ndarray:
        """Smoothed levels s_0..s_m of a series of length m."""
        s = np.empty(len(y) + 1)
        s[0] = y[0]
        for t in range(len(y)):
            s[t + 1] = alpha * y[t] + (1 - alpha) * s[t]
        return s

    def _fit(self, y, exog):
        if self.optimize:
            res = minimize_scalar(
                lambda a: np.sum((y[1:] - self.smooth(y, a)[1:len(y)])**2),
                bounds=(0.0, 1.0),
                method="bounded",
            )
            self.alpha = float(res.x)
            logger.debug("Optimized alpha=%.4f (sse=%.6g)", self.alpha, res.fun)

    def _prepare(self, y, exog, yf):
        self._level = self.smooth(y, self.alpha)

    def _step(self, t, h, yf):
        if h > 1:
            return yf.known(t, t + h - 1)
        return self._level[t + 1]

    def get_params(self):
        self._check_trained("get_params")
        return {"alpha": self.alpha}

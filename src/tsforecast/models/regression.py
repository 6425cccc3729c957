"""
Regression forecasters: autoregressive models fitted by least squares on lag features.

A feature row for target time r holds deterministic trend terms, lagged
values of the series y[r-k], for the Quad models those lags raised to a
power, and for ARX lagged exogenous values.
Training regresses y[r] on row r. Forecasting h steps ahead from origin t
reuses row t+h, but any lag k < h points after the origin: the `forge`
step replaces those entries with the model's own forecasts from origin t
(endogenous lags) or with the hide policy (exogenous lags), so no value
observed after the origin is ever read.

Two multi-horizon strategies are provided:

    RECURSIVE  (ARY, SARY, ARX, ARYQuad, ARXQuad): one regression, applied horizon by horizon through forge
    DIRECT     (ARYDirect, ARXDirect, ARXQuadDirect): one regression per horizon, all fed the row known at the origin
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import numpy as np
from sklearn.linear_model import LinearRegression, Ridge

from .arima import HIDE_POLICIES
from .base import Forecaster
from ..errors import ConfigurationError, NumericalError
from ..hyperparameters import HyperParameter, HyperParameterSet
from ..transforms import exogenous_lag_columns, lagged_columns, trend_columns

logger = logging.getLogger(__name__)


def make_regressor(lam: float = 0.0):
    """
    Least-squares solver for the lag features.

    Trend columns supply the intercept, so the solver fits none.

    Args:
        lam: Ridge penalty. 0.0 gives ordinary least squares.
    """
    if lam > 0:
        return Ridge(alpha=lam, fit_intercept=False)
    return LinearRegression(fit_intercept=False)


class Forge(ABC):
    """
    Feature layout of a regression forecaster and the substitution of unobserved values.
    """

    @abstractmethod
    def build(self, y: np.ndarray, exog: Optional[np.ndarray], n_rows: int, scale: int) -> np.ndarray:
        """
        Feature matrix whose row r is built from observed values before time r.

        Args:
            y: Endogenous series (length m)
            exog: Exogenous variables of shape (m, n_exog), or None
            n_rows: Number of rows (m + H to cover forecasts past the series)
            scale: Length of the training series, used to scale the trend

        Returns:
            X: Array of shape (n_rows, n_features); entries needing values
                after the series are NaN
        """
        pass

    @abstractmethod
    def forge(self, past_row: np.ndarray, forecast_row: np.ndarray, h: int) -> np.ndarray:
        """
        Features for forecasting h steps ahead from origin t.

        Args:
            past_row: Row t+h of the feature matrix
            forecast_row: Forecasts from origin t for horizons 1..h-1
            h: Horizon

        Returns:
            x: Feature vector using only values known at the origin and the
                forecasts in `forecast_row`
        """
        pass


class LagForge(Forge):
    """
    Trend terms followed by endogenous lags and, optionally, the lags raised to a power.

    Attributes:
        spec: Number of trend columns (see `transforms.trend_columns`)
        wavelength: Period of the sine/cosine trend terms
        lags: Endogenous lags, in column order
        power: Exponent of the powered lag columns, or None for none.
            Non-integer powers of negative values are NaN.
    """

    def __init__(self, spec: int = 1, wavelength: float = 7.0, lags: Sequence[int] = (1,),
                 power: Optional[float] = None):
        self.spec = spec
        self.wavelength = wavelength
        self.lags = list(lags)
        self.power = power

    @property
    def n_endog(self) -> int:
        """Trend, lag and powered lag columns."""
        n_powered = len(self.lags) if self.power is not None else 0
        return self.spec + len(self.lags) + n_powered

    @property
    def n_features(self) -> int:
        return self.n_endog

    def build(self, y, exog, n_rows, scale):
        if exog is not None:
            raise ConfigurationError("This model does not use exogenous variables.")
        lagged = lagged_columns(y, self.lags, n_rows)
        blocks = [trend_columns(n_rows, self.spec, self.wavelength, scale), lagged]
        if self.power is not None:
            blocks.append(np.power(lagged, self.power))
        return np.hstack(blocks)

    def _forge_endogenous(self, x: np.ndarray, forecast_row: np.ndarray, h: int):
        n_lags = len(self.lags)
        for i, k in enumerate(self.lags):
            if k < h:
                # y[t+h-k] is the (h-k)-step forecast from the same origin
                value = forecast_row[h - k - 1]
                x[self.spec + i] = value
                if self.power is not None:
                    x[self.spec + n_lags + i] = np.power(value, self.power)

    def forge(self, past_row, forecast_row, h):
        x = np.array(past_row, dtype=float)
        self._forge_endogenous(x, forecast_row, h)
        return x

    def __repr__(self):
        power = "" if self.power is None else f", power={self.power}"
        return f"{type(self).__name__}(spec={self.spec}, lags={self.lags}{power})"


class ExogenousLagForge(LagForge):
    """
    Endogenous features of `LagForge`, exogenous lags 1..q per column and optional cross terms.

    Exogenous lags that fall after the origin are hidden:
        "last": the newest exogenous value known at the origin (the lag-h
                column when q >= h, otherwise 0.0)
        "zero": 0.0
    Forecasts degrade with the horizon, since future exogenous values are
    never forecast.

    Cross terms y[r-k] * x_j[r-k] are added for lags k present in both
    the endogenous and exogenous lag sets.
    """

    def __init__(self, spec: int = 1, wavelength: float = 7.0, lags: Sequence[int] = (1,),
                 q: int = 1, cross: bool = False, hide: str = "last", power: Optional[float] = None):
        super().__init__(spec, wavelength, lags, power)
        if hide not in HIDE_POLICIES:
            raise ConfigurationError(f"Unknown hide policy '{hide}'. Valid policies: {HIDE_POLICIES}.")
        self.q = q
        self.cross = cross
        self.hide = hide
        self.n_exog: Optional[int] = None

    @property
    def cross_lags(self) -> List[int]:
        return [k for k in range(1, self.q + 1) if k in self.lags] if self.cross else []

    @property
    def n_features(self) -> int:
        n_exog = self.n_exog or 0
        return super().n_features + n_exog * (self.q + len(self.cross_lags))

    def _exog_col(self, j: int, k: int) -> int:
        return self.n_endog + j * self.q + (k - 1)

    def _cross_col(self, j: int, i: int) -> int:
        return self.n_endog + self.n_exog * self.q + j * len(self.cross_lags) + i

    def build(self, y, exog, n_rows, scale):
        if exog is None:
            raise ConfigurationError("This model requires exogenous variables (exog).")
        if self.n_exog is None:
            self.n_exog = exog.shape[1]
        elif exog.shape[1] != self.n_exog:
            raise ConfigurationError(f"Expected {self.n_exog} exogenous columns, got {exog.shape[1]}.")

        endog = super().build(y, None, n_rows, scale)
        blocks = [endog] + [exogenous_lag_columns(exog[:, j], self.q, n_rows) for j in range(self.n_exog)]
        for j in range(self.n_exog):
            if self.cross_lags:
                ylag = endog[:, [self.spec + self.lags.index(k) for k in self.cross_lags]]
                xlag = blocks[1 + j][:, [k - 1 for k in self.cross_lags]]
                blocks.append(ylag * xlag)
        return np.hstack(blocks)

    def forge(self, past_row, forecast_row, h):
        x = super().forge(past_row, forecast_row, h)
        for j in range(self.n_exog):
            if self.hide == "last" and self.q >= h:
                last = past_row[self._exog_col(j, h)]
            else:
                last = 0.0
            for k in range(1, min(h, self.q + 1)):
                x[self._exog_col(j, k)] = last
            for i, k in enumerate(self.cross_lags):
                ycol = self.spec + self.lags.index(k)
                x[self._cross_col(j, i)] = x[ycol] * x[self._exog_col(j, k)]
        return x


def _endogenous_lags(hparams: HyperParameterSet) -> List[int]:
    lags = set(range(1, hparams["p"] + 1))
    if "sp" in hparams:
        lags.update(hparams["sp"] * k for k in range(1, hparams["ps"] + 1))
    return sorted(lags)


class RegressionForecaster(Forecaster):
    """
    Recursive regression forecaster: one least-squares fit, forged features per horizon.

    Attributes:
        forge: `Forge` strategy defining the features
        regressor: Scikit-learn compatible regression model (fit/predict with
            coef_ and intercept_ attributes)
    """

    name = "RegressionForecaster"
    DEFAULTS = HyperParameterSet([
        HyperParameter("p", 1, 1),
        HyperParameter("spec", 1, 0, 5),
        HyperParameter("lwave", 7.0, 1e-9),
        HyperParameter("nneg", 0, 0, 1),
        HyperParameter("lambda", 0.0, 0.0),
    ])

    def __init__(self, horizon: int = 1, hparams=None, skip: int = 2,
                 forge: Optional[Forge] = None, regressor=None, hide: str = "last"):
        """
        Create a regression forecaster.

        Args:
            horizon: Maximum forecasting horizon. Default: 1.
            hparams: Hyperparameter overrides. Default: the class defaults.
            skip: Rows before this index are left out of scoring. Default: 2.
            forge: Feature strategy. Default: built from the hyperparameters
                (exogenous lags when the model has a `q` hyperparameter).
            regressor: Scikit-learn compatible regression model. Must implement
                fit(X, y) and predict(X). Default: least squares with a ridge
                penalty of `lambda` (none when 0).
            hide: Exogenous hide policy, "last" or "zero". Default: "last".
        """
        super().__init__(horizon, hparams, skip)
        self.forge = forge if forge is not None else self._make_forge(hide)
        self.regressor = regressor if regressor is not None else make_regressor(self.hparams["lambda"])
        self._scale: Optional[int] = None
        self._X: Optional[np.ndarray] = None

    def _make_forge(self, hide: str) -> Forge:
        lags = _endogenous_lags(self.hparams)
        power = self.hparams.get("pp")
        if "q" in self.hparams:
            return ExogenousLagForge(self.hparams["spec"], self.hparams["lwave"], lags,
                                     self.hparams["q"], bool(self.hparams["cross"]), hide, power)
        return LagForge(self.hparams["spec"], self.hparams["lwave"], lags, power)

    @property
    def n_params(self) -> int:
        return self.forge.n_features

    def _rectify(self, pred: float) -> float:
        return max(pred, 0.0) if self.hparams["nneg"] else pred

    def _check_finite(self, X: np.ndarray, what: str):
        if not np.all(np.isfinite(X)):
            raise NumericalError(f"{self.name}: {what} contain NaN or infinite values.")

    def _fit(self, y, exog):
        m = len(y)
        self._scale = m
        X = self.forge.build(y, exog, m, m)
        # row 0 has no observed lags
        X_train, y_train = X[1:], y[1:]
        self._check_finite(X_train, "training features")
        self.regressor.fit(X_train, y_train)
        self._check_finite(np.asarray(self.regressor.coef_), "fitted coefficients")
        logger.info("%s fitted %d features on %d rows", self.name, X.shape[1], len(y_train))

    def _prepare(self, y, exog, yf):
        self._X = self.forge.build(y, exog, len(y) + self.horizon, self._scale)

    def _step(self, t, h, yf):
        x = self.forge.forge(self._X[t + h], yf.origin_row(t, h - 1), h)
        pred = self.regressor.predict(x.reshape(1, -1))[0]
        return self._rectify(float(pred))

    def get_params(self):
        """
        Get model parameters from the underlying regressor.

        Returns:
            coef_: Regression coefficients (numpy array)
            intercept_: Intercept term (float or numpy array)
        """
        self._check_trained("get_params")
        return self.regressor.coef_, self.regressor.intercept_

    def __repr__(self):
        return f"{self.name}(forge={self.forge}, regressor={self.regressor})"


class ARY(RegressionForecaster):
    """Trend plus lags 1..p of the series, forecast recursively."""

    name = "ARY"


class SARY(RegressionForecaster):
    """ARY with seasonal lags sp, 2 sp, ..., ps * sp added."""

    name = "SARY"
    DEFAULTS = HyperParameterSet([
        HyperParameter("p", 1, 1),
        HyperParameter("sp", 7, 2),
        HyperParameter("ps", 2, 0),
        HyperParameter("spec", 1, 0, 5),
        HyperParameter("lwave", 7.0, 1e-9),
        HyperParameter("nneg", 0, 0, 1),
        HyperParameter("lambda", 0.0, 0.0),
    ])


_ARX_DEFAULTS = HyperParameterSet([
    HyperParameter("p", 1, 1),
    HyperParameter("q", 1, 1),
    HyperParameter("spec", 1, 0, 5),
    HyperParameter("lwave", 7.0, 1e-9),
    HyperParameter("cross", 0, 0, 1),
    HyperParameter("nneg", 0, 0, 1),
    HyperParameter("lambda", 0.0, 0.0),
])


class ARX(RegressionForecaster):
    """ARY plus lags 1..q of each exogenous variable, forecast recursively."""

    name = "ARX"
    DEFAULTS = _ARX_DEFAULTS


class ARYQuad(RegressionForecaster):
    """ARY plus the lags 1..p raised to the power `pp` (squared by default)."""

    name = "ARYQuad"
    DEFAULTS = HyperParameterSet([
        HyperParameter("p", 1, 1),
        HyperParameter("pp", 2.0, 1e-9),
        HyperParameter("spec", 1, 0, 5),
        HyperParameter("lwave", 7.0, 1e-9),
        HyperParameter("nneg", 0, 0, 1),
        HyperParameter("lambda", 0.0, 0.0),
    ])


_ARX_QUAD_DEFAULTS = HyperParameterSet([
    HyperParameter("p", 1, 1),
    HyperParameter("pp", 2.0, 1e-9),
    HyperParameter("q", 1, 1),
    HyperParameter("spec", 1, 0, 5),
    HyperParameter("lwave", 7.0, 1e-9),
    HyperParameter("cross", 0, 0, 1),
    HyperParameter("nneg", 0, 0, 1),
    HyperParameter("lambda", 0.0, 0.0),
])


class ARXQuad(RegressionForecaster):
    """ARX with powered endogenous lags, forecast recursively."""

    name = "ARXQuad"
    DEFAULTS = _ARX_QUAD_DEFAULTS


class DirectRegressionForecaster(RegressionForecaster):
    """
    Direct multi-horizon regression: one least-squares fit per horizon.

    The features are those of the row following the origin, all known at
    the origin, and horizon h is predicted by the h-th output of a
    multi-output regression. No forecast is fed back, at the cost of H
    times as many coefficients.
    """

    name = "RegressionForecasterDirect"

    def _fit(self, y, exog):
        m = len(y)
        H = self.horizon
        if m - H < 2:
            raise ConfigurationError(f"Series of length {m} is too short for horizon {H}.")
        self._scale = m
        X = self.forge.build(y, exog, m, m)
        # origins whose targets y[t+1..t+H] are all observed
        origins = np.arange(0, m - H)
        X_train = X[origins + 1]
        Y_train = np.column_stack([y[origins + h] for h in range(1, H + 1)])
        self._check_finite(X_train, "training features")
        self.regressor.fit(X_train, Y_train)
        self._check_finite(np.asarray(self.regressor.coef_), "fitted coefficients")
        logger.info("%s fitted %d features for %d horizons on %d rows",
                    self.name, X.shape[1], H, len(origins))

    def _step(self, t, h, yf):
        x = self._X[t + 1]
        pred = self.regressor.predict(x.reshape(1, -1))[0, h - 1]
        return self._rectify(float(pred))


class ARYDirect(DirectRegressionForecaster):
    """ARY features with one regression per horizon."""

    name = "ARYDirect"


class ARXDirect(DirectRegressionForecaster):
    """ARX features with one regression per horizon."""

    name = "ARXDirect"
    DEFAULTS = _ARX_DEFAULTS


class ARXQuadDirect(DirectRegressionForecaster):
    """ARXQuad features with one regression per horizon."""

    name = "ARXQuadDirect"
    DEFAULTS = _ARX_QUAD_DEFAULTS

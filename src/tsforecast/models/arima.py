"""
Autoregressive moving-average models: AR, ARMA, ARIMA and SARIMAX.

All four share one recursion on a working series z (the series after
simple and seasonal differencing, centered on its mean when it is not
differenced):

    z_hat(tau) = mu + delta_c + sum_i a_i (z(tau - L_i) - mu)
                              + sum_j c_j e(tau - M_j)
                              + sum_k beta_k xe_k(tau - K_k)

where the AR lags L_i cover 1..p and, for SARIMAX, the seasonal lags
s, 2s, ..., P*s; the MA lags M_j cover 1..q and s, ..., Q*s; and the
exogenous lags run from a to b. AR lags reaching before the first working
value are clamped to it; MA lags reaching before it are left out.

Parameters are estimated by minimizing the conditional sum of squared
one-step errors (or the concentrated Gaussian negative log-likelihood)
with a quasi-Newton optimizer. Forecasting follows the same recursion:
beyond the origin, future values of z are the model's own forecasts and
future errors are zero. Differenced forecasts are integrated back to the
original scale one level at a time, on the diagonal of each level.
"""

import logging
from typing import List, Optional, Tuple, Union

import numpy as np

from .base import Forecaster
from ..correlogram import yule_walker
from ..errors import ConfigurationError
from ..forecast_matrix import ForecastMatrix
from ..hyperparameters import HyperParameter, HyperParameterSet
from ..optimizers import BFGS, Optimizer, get_optimizer
from ..transforms import difference_levels, fill_exogenous

logger = logging.getLogger(__name__)

OBJECTIVES = ("css", "nll")
HIDE_POLICIES = ("last", "zero")


class ARMA(Forecaster):
    """
    Autoregressive moving-average model ARMA(p, q).

        y_t = delta + phi_1 y_{t-1} + ... + phi_p y_{t-p}
                    + theta_1 e_{t-1} + ... + theta_q e_{t-q} + e_t

    Attributes:
        phi: AR coefficients (lag 1 first)
        theta: MA coefficients (lag 1 first)
        delta: Intercept on the working scale, delta = delta_c + mu (1 - sum(phi))
        mu: Mean of the working series (0.0 for differenced models)
        sigma2: Variance of the one-step errors on the training series
    """

    name = "ARMA"
    DEFAULTS = HyperParameterSet([
        HyperParameter("p", 1, 0),
        HyperParameter("q", 1, 0),
    ])

    def __init__(
        self,
        horizon: int = 1,
        hparams=None,
        skip: int = 2,
        objective: str = "css",
        optimizer: Union[Optimizer, str, None] = None,
    ):
        """
        Create an ARMA-family model.

        Args:
            horizon: Maximum forecasting horizon. Default: 1.
            hparams: Hyperparameter overrides. Default: the class defaults.
            skip: Rows before this index are left out of scoring and of the
                estimation objective. Default: 2.
            objective: "css" (conditional sum of squares) or "nll"
                (negative log-likelihood). Default: "css".
            optimizer: `Optimizer` instance or registered name. Default: BFGS.
        """
        super().__init__(horizon, hparams, skip)
        if objective not in OBJECTIVES:
            raise ConfigurationError(f"Unknown objective '{objective}'. Valid objectives: {OBJECTIVES}.")
        self.objective = objective
        if isinstance(optimizer, str):
            optimizer = get_optimizer(optimizer)
        self.optimizer = optimizer if optimizer is not None else BFGS()

        self._ar = np.zeros(len(self._ar_lags()))
        self._ma = np.zeros(len(self._ma_lags()))
        self._beta = np.zeros(0)
        self._delta_c = 0.0
        self.mu = 0.0
        self.sigma2 = np.nan

        self._exog_mean: Optional[np.ndarray] = None
        self._work: Optional[ForecastMatrix] = None
        self._level_mats: List[ForecastMatrix] = []
        self._lags: List[int] = []
        self._xw: Optional[np.ndarray] = None

    # model structure -----------------------------------------------------

    def _ar_lags(self) -> List[int]:
        return list(range(1, self.hparams.get("p", 0) + 1))

    def _ma_lags(self) -> List[int]:
        return list(range(1, self.hparams.get("q", 0) + 1))

    def _exog_lags(self) -> List[int]:
        return []

    def _difference_lags(self) -> Tuple[int, int, int]:
        """Simple order d, seasonal order D and seasonal period s."""
        return 0, 0, 1

    @property
    def differenced(self) -> bool:
        d, D, _ = self._difference_lags()
        return d + D > 0

    @property
    def first_origin(self) -> int:
        d, D, s = self._difference_lags()
        return d + D * s

    @property
    def n_params(self) -> int:
        return len(self._ar) + len(self._ma) + len(self._beta) + (0 if self.differenced else 1)

    @property
    def phi(self) -> np.ndarray:
        return self._ar[:self.hparams.get("p", 0)]

    @property
    def theta(self) -> np.ndarray:
        return self._ma[:self.hparams.get("q", 0)]

    @property
    def delta(self) -> float:
        shift = np.dot(self._beta, self._exog_shift()) if len(self._beta) else 0.0
        return self._delta_c + self.mu * (1.0 - np.sum(self._ar)) - shift

    def _exog_shift(self) -> np.ndarray:
        # beta multiplies centered exogenous values; move the centering into delta
        n_lags = len(self._exog_lags())
        return np.repeat(self._exog_mean, n_lags)

    # working series ------------------------------------------------------

    def _levels(self, y: np.ndarray) -> Tuple[List[np.ndarray], List[int]]:
        d, D, s = self._difference_lags()
        return difference_levels(y, d, D, s)

    def _working_exog(self, exog: Optional[np.ndarray]) -> Optional[np.ndarray]:
        """Backfilled, differenced exogenous columns, time-aligned with the working series."""
        if exog is None:
            return None
        d, D, s = self._difference_lags()
        columns = []
        for j in range(exog.shape[1]):
            col = fill_exogenous(exog[:, j])
            columns.append(difference_levels(col, d, D, s)[0][-1])
        return np.column_stack(columns)

    def _check_exog(self, exog: Optional[np.ndarray]):
        n_exog = 0 if self._exog_mean is None else len(self._exog_mean)
        if exog is None and n_exog == 0:
            return
        if not self._exog_lags():
            raise ConfigurationError(f"{self.name} does not use exogenous variables.")
        if exog is None:
            raise ConfigurationError(f"{self.name} was trained with exogenous variables; pass exog.")
        if n_exog and exog.shape[1] != n_exog:
            raise ConfigurationError(
                f"Expected {n_exog} exogenous columns, got {exog.shape[1]}."
            )

    def _ar_design(self, x: np.ndarray, start: int) -> np.ndarray:
        """Row tau holds x at each AR lag, indices before `start` clamped to `start`."""
        tau = np.arange(len(x))[:, None]
        idx = np.maximum(tau - np.asarray(self._ar_lags(), dtype=int)[None, :], start)
        return x[idx]

    def _exog_design(self, xw: Optional[np.ndarray], start: int) -> Optional[np.ndarray]:
        """Row tau holds each exogenous column at each exogenous lag, clamped like the AR lags."""
        if xw is None:
            return None
        lags = np.asarray(self._exog_lags(), dtype=int)
        tau = np.arange(len(xw))[:, None]
        idx = np.maximum(tau - lags[None, :], start)
        return np.concatenate([xw[idx, j] for j in range(xw.shape[1])], axis=1)

    # estimation ----------------------------------------------------------

    def _split(self, b: np.ndarray):
        n_ar, n_ma, n_beta = len(self._ar), len(self._ma), len(self._beta)
        ar = b[:n_ar]
        ma = b[n_ar:n_ar + n_ma]
        beta = b[n_ar + n_ma:n_ar + n_ma + n_beta]
        delta_c = b[n_ar + n_ma + n_beta] if not self.differenced else 0.0
        return ar, ma, beta, delta_c

    def _residuals(self, b, x, A, XE, start) -> np.ndarray:
        """
        One-step residuals of the centered working series for a trial parameter vector.

        Entry tau is the error of the prediction of x[tau] from origin tau-1;
        entries up to `start` are 0.0.
        """
        ar, ma, beta, delta_c = self._split(b)
        m = len(x)
        lin = A @ ar + delta_c
        if XE is not None:
            lin = lin + XE @ beta

        e = np.zeros(m)
        if len(ma) == 0:
            e[start + 1:] = x[start + 1:] - lin[start + 1:]
            return e

        ma_lags = np.asarray(self._ma_lags(), dtype=int)
        pad = int(ma_lags.max())
        ep = np.zeros(m + pad)  # ep[tau + pad] = e[tau]; zeros before start stand for omitted terms
        for tau in range(start + 1, m):
            ep[tau + pad] = x[tau] - lin[tau] - np.dot(ma, ep[tau + pad - ma_lags])
        return ep[pad:]

    def _objective(self, b, x, A, XE, start) -> float:
        e = self._residuals(b, x, A, XE, start)
        lo = max(self.skip, start + 1)
        sse = float(np.sum(e[lo:]**2))
        if self.objective == "css":
            return sse
        n = len(e) - lo
        sigma2 = max(sse / n, np.finfo(float).tiny)
        return 0.5 * n * (np.log(2 * np.pi) + np.log(sigma2) + 1.0)

    def _initial(self, x: np.ndarray, start: int) -> np.ndarray:
        """Starting point: Yule-Walker estimates for the regular AR lags, zeros elsewhere."""
        b = np.zeros(len(self._ar) + len(self._ma) + len(self._beta) + (0 if self.differenced else 1))
        p = self.hparams.get("p", 0)
        b[:p] = yule_walker(x[start:], p)
        return b

    def _estimate(self, x, A, XE, start) -> np.ndarray:
        b0 = self._initial(x, start)
        result = self.optimizer.minimize(lambda b: self._objective(b, x, A, XE, start), b0)
        logger.debug("%s %s objective: %.6g -> %.6g", self.name, self.objective,
                     self._objective(b0, x, A, XE, start), result.value)
        return result.argmin

    def _fit(self, y, exog):
        levels, _ = self._levels(y)
        start = self.first_origin
        z = levels[-1]
        lo = max(self.skip, start + 1)
        if lo >= len(z):
            raise ConfigurationError(
                f"{self.name} has no residuals to estimate from: series of length {len(y)} "
                f"with skip={self.skip} leaves rows {lo}..{len(z) - 1}."
            )
        self.mu = 0.0 if self.differenced else float(np.mean(z[start:]))
        x = z - self.mu

        xw = self._working_exog(exog)
        if xw is not None:
            if not self._exog_lags():
                raise ConfigurationError(f"{self.name} does not use exogenous variables.")
            self._exog_mean = np.mean(xw[start:], axis=0)
            xw = xw - self._exog_mean
            self._beta = np.zeros(xw.shape[1] * len(self._exog_lags()))
        else:
            self._exog_mean = None
            self._beta = np.zeros(0)

        A = self._ar_design(x, start)
        XE = self._exog_design(xw, start)
        b = self._estimate(x, A, XE, start)

        ar, ma, beta, delta_c = self._split(np.asarray(b, dtype=float))
        self._ar, self._ma, self._beta = ar.copy(), ma.copy(), beta.copy()
        self._delta_c = float(delta_c)

        e = self._residuals(b, x, A, XE, start)
        self.sigma2 = float(np.mean(e[lo:]**2))
        logger.info("%s estimates: phi=%s theta=%s delta=%.6g sigma2=%.6g",
                    self.name, np.round(self.phi, 6), np.round(self.theta, 6), self.delta, self.sigma2)

    # forecasting ---------------------------------------------------------

    def _prepare(self, y, exog, yf):
        self._check_exog(exog)
        levels, self._lags = self._levels(y)
        start = self.first_origin
        self._work = ForecastMatrix(levels[-1], self.horizon, start)
        self._level_mats = [ForecastMatrix(level, self.horizon, start) for level in levels[1:-1]]
        xw = self._working_exog(exog)
        self._xw = None if xw is None else xw - self._exog_mean

    def _working_step(self, t: int, h: int) -> float:
        """Forecast of the working series at t+h from origin t."""
        W = self._work
        start = self.first_origin
        tau = t + h
        mu = self.mu
        value = mu + self._delta_c
        for lag, a in zip(self._ar_lags(), self._ar):
            value += a * (W.known(t, max(tau - lag, start)) - mu)
        for lag, c in zip(self._ma_lags(), self._ma):
            u = tau - lag
            if start <= u <= t:
                value += c * self.e[u]
        if self._xw is not None:
            value += np.dot(self._beta, self._exog_row(t, tau, start))
        return value

    def _exog_row(self, t: int, tau: int, start: int) -> np.ndarray:
        return np.zeros(0)

    def _step(self, t, h, yf):
        value = self._working_step(t, h)
        self._work.set(t, h, value)
        # integrate back through each differencing level, newest level first
        mats = [yf] + self._level_mats
        for level in range(len(self._lags) - 1, -1, -1):
            value += mats[level].known(t, t + h - self._lags[level])
            if level > 0:
                mats[level].set(t, h, value)
        return value

    def get_params(self) -> dict:
        """
        Get fitted parameters.

        Returns:
            params: dict with phi, theta, delta, mu and sigma2
        """
        self._check_trained("get_params")
        return {
            "phi": self.phi.copy(),
            "theta": self.theta.copy(),
            "delta": self.delta,
            "mu": self.mu,
            "sigma2": self.sigma2,
        }


class AR(ARMA):
    """
    Autoregressive model AR(p), estimated by the Yule-Walker equations
    (Durbin-Levinson recursion) instead of numerical optimization.
    """

    name = "AR"
    DEFAULTS = HyperParameterSet([HyperParameter("p", 1, 0)])

    def _estimate(self, x, A, XE, start):
        b = np.zeros(len(self._ar) + 1)
        b[:len(self._ar)] = yule_walker(x[start:], len(self._ar))
        return b


class ARIMA(ARMA):
    """
    ARIMA(p, d, q): an ARMA(p, q) model of the d-times differenced series.

    A differenced model has no intercept. Forecasts are made on the
    differenced scale and integrated back using the actual values up to
    the origin.
    """

    name = "ARIMA"
    DEFAULTS = HyperParameterSet([
        HyperParameter("p", 1, 0),
        HyperParameter("d", 1, 0, 2),
        HyperParameter("q", 1, 0),
    ])

    def _difference_lags(self):
        return self.hparams["d"], 0, 1


class SARIMAX(ARIMA):
    """
    Seasonal ARIMA with exogenous variables, SARIMAX(p, d, q) x (P, D, Q)_s [a, b].

    Seasonal AR and MA terms act at lags s, 2s, ..., P*s and s, ..., Q*s and
    are added to the regular terms. Exogenous columns, when given, enter
    with lags a..b after the same differencing as the endogenous series.
    Exogenous values after the forecast origin are unknown; they are
    replaced according to `hide`: "last" repeats the value at the origin,
    "zero" uses the (centered) mean.
    """

    name = "SARIMAX"
    DEFAULTS = HyperParameterSet([
        HyperParameter("p", 1, 0),
        HyperParameter("d", 1, 0, 2),
        HyperParameter("q", 1, 0),
        HyperParameter("P", 1, 0),
        HyperParameter("D", 1, 0, 2),
        HyperParameter("Q", 1, 0),
        HyperParameter("s", 7, 2),
        HyperParameter("a", 1, 1),
        HyperParameter("b", 2, 1),
    ])

    def __init__(self, horizon: int = 1, hparams=None, skip: int = 2, objective: str = "css",
                 optimizer: Union[Optimizer, str, None] = None, hide: str = "last"):
        super().__init__(horizon, hparams, skip, objective, optimizer)
        if self.hparams["b"] < self.hparams["a"]:
            raise ConfigurationError(
                f"Last exogenous lag b={self.hparams['b']} must not precede the first a={self.hparams['a']}."
            )
        if hide not in HIDE_POLICIES:
            raise ConfigurationError(f"Unknown hide policy '{hide}'. Valid policies: {HIDE_POLICIES}.")
        self.hide = hide

    def _ar_lags(self):
        s = self.hparams["s"]
        return super()._ar_lags() + [s * k for k in range(1, self.hparams["P"] + 1)]

    def _ma_lags(self):
        s = self.hparams["s"]
        return super()._ma_lags() + [s * k for k in range(1, self.hparams["Q"] + 1)]

    def _exog_lags(self):
        return list(range(self.hparams["a"], self.hparams["b"] + 1))

    def _difference_lags(self):
        return self.hparams["d"], self.hparams["D"], self.hparams["s"]

    @property
    def phi_s(self) -> np.ndarray:
        return self._ar[self.hparams["p"]:]

    @property
    def theta_s(self) -> np.ndarray:
        return self._ma[self.hparams["q"]:]

    @property
    def beta(self) -> np.ndarray:
        """Exogenous coefficients, grouped by column then by lag a..b."""
        return self._beta

    def _exog_row(self, t, tau, start):
        row = []
        for j in range(self._xw.shape[1]):
            for lag in self._exog_lags():
                u = tau - lag
                if u <= t:
                    row.append(self._xw[max(u, start), j])
                elif self.hide == "last":
                    row.append(self._xw[t, j])
                else:
                    row.append(0.0)
        return np.array(row)

    def get_params(self):
        params = super().get_params()
        params.update({"phi_s": self.phi_s.copy(), "theta_s": self.theta_s.copy(), "beta": self.beta.copy()})
        return params

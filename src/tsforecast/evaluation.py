"""Evaluation metrics and Quality of Fit (QoF) reports for forecasting models."""

import numpy as np
import pandas as pd
from typing import Optional

from .errors import ConfigurationError, NumericalError


# Order is part of the public contract: reports are read by name and by position.
QOF_NAMES = (
    "r_sq",       # coefficient of determination
    "r_sq_bar",   # adjusted R^2
    "sst",        # total sum of squares
    "sse",        # sum of squared errors
    "sde",        # standard deviation of errors
    "mse0",       # raw mean squared error (sse / m)
    "rmse",
    "mae",
    "smape",      # symmetric mean absolute percentage error
    "m",          # number of scored points
    "dfm",        # degrees of freedom of the model
    "df",         # degrees of freedom of the error
    "f_stat",
    "aic",
    "bic",
    "mape",
    "mase",       # mean absolute scaled error (vs. one-step random walk)
    "smape_ic",   # sMAPE information criterion
)


def rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Calculate the root mean square error (RMSE).

    Args:
        y_true: True values
        y_pred: Predicted values

    Returns:
        rmse: Root mean square error
    """
    return np.sqrt(np.mean((y_pred - y_true)**2))


def mae(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Calculate mean absolute error (MAE).

    Args:
        y_true: True values
        y_pred: Predicted values

    Returns:
        mae: Mean absolute error
    """
    return np.mean(np.abs(y_pred - y_true))


def mape(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Calculate mean absolute percentage error (MAPE).

    MAPE = mean(|y_true - y_pred| / |y_true|) * 100

    Points where y_true is zero are left out.

    Args:
        y_true: True values
        y_pred: Predicted values

    Returns:
        mape: Mean absolute percentage error (in percent)
    """
    err = y_true - y_pred
    denom = y_true

    # Protect against divide-by-zero errors
    inds = np.where(np.isclose(denom, 0))
    denom = np.delete(denom, inds)
    err = np.delete(err, inds)
    if len(denom) == 0:
        return np.nan

    return np.mean(np.abs(err / denom)) * 100


def smape(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Calculate symmetric mean absolute percentage error (sMAPE).

    sMAPE = 200 * mean(|y_true - y_pred| / (|y_true| + |y_pred|))

    Terms with a zero denominator contribute zero.
    """
    num = np.abs(y_true - y_pred)
    denom = np.abs(y_true) + np.abs(y_pred)
    ratio = np.divide(num, denom, out=np.zeros_like(num, dtype=float), where=denom != 0)
    return 200.0 * np.mean(ratio)


def mae_naive(y: np.ndarray, h: int = 1) -> float:
    """MAE of the naive forecast y[t] = y[t-h] over the series itself."""
    return np.mean(np.abs(y[h:] - y[:-h]))


def mase(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Calculate mean absolute scaled error (MASE).

    The MAE of the predictions divided by the MAE of the one-step
    random walk on the same actual values.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        return mae(y_true, y_pred) / mae_naive(y_true)


def r2_score(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    The coefficient of determination of a set of predictions.

    Args:
        y_true: True values
        y_pred: Predicted values
    """
    sum_e = np.sum((y_true - y_pred)**2)
    sum_s = np.sum((y_true - np.mean(y_true))**2)
    with np.errstate(divide="ignore", invalid="ignore"):
        return 1.0 - sum_e / sum_s


def log_likelihood(mse0: float, sigma2: float, m: int) -> float:
    """
    Gaussian log-likelihood of m residuals with raw MSE `mse0` and variance `sigma2`.

        ll = -m/2 * (ln(2 pi) + ln(sigma2) + mse0 / sigma2)
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        return -m / 2.0 * (np.log(2 * np.pi) + np.log(sigma2) + mse0 / sigma2)


def diagnose(y_true, y_pred, dfm: float = 0, skip: int = 0) -> pd.Series:
    """
    Compute the Quality of Fit (QoF) report for aligned actual and predicted values.

    Args:
        y_true: Actual values
        y_pred: Predicted values, aligned with y_true
        dfm: Degrees of freedom of the model (number of fitted parameters)
        skip: Number of leading pairs left out of the computation

    Returns:
        qof: `pandas.Series` indexed by `QOF_NAMES`, in that order

    Raises:
        ConfigurationError: If the vectors differ in length or fewer than two pairs remain
        NumericalError: If the scored region contains NaN or infinite values
    """
    y = np.asarray(y_true, dtype=float)
    yp = np.asarray(y_pred, dtype=float)
    if y.shape != yp.shape or y.ndim != 1:
        raise ConfigurationError(
            f"Actual and predicted values must be aligned 1-D vectors, got shapes {y.shape} and {yp.shape}."
        )
    if skip < 0:
        raise ConfigurationError(f"skip must be non-negative, got {skip}.")
    y, yp = y[skip:], yp[skip:]
    m = len(y)
    if m < 2:
        raise ConfigurationError(f"At least two aligned pairs are needed to diagnose, got {m}.")
    if not (np.all(np.isfinite(y)) and np.all(np.isfinite(yp))):
        raise NumericalError("Cannot diagnose: the scored region contains NaN or infinite values.")

    e = y - yp
    # numpy scalars, so degenerate ratios give inf or nan under errstate
    sse = np.sum(e**2)
    sst = np.sum((y - np.mean(y))**2)
    ssr = sst - sse
    df = m - dfm
    r_df = (dfm + df) / df if df > 1 else dfm + 1.0

    with np.errstate(divide="ignore", invalid="ignore"):
        r_sq = 1.0 - sse / sst
        mse0 = sse / m
        msr = 0.0 if dfm == 0 else ssr / dfm
        mse = sse / df if df > 0 else np.nan
        f_stat = msr / mse
        sig2e = np.var(e)
        ll = log_likelihood(mse0, sig2e, m)
        aic = -2.0 * ll + 2.0 * (dfm + 1)
        bic = -2.0 * ll + (dfm + 1) * np.log(m)

    s = smape(y, yp)
    values = [
        r_sq,
        1.0 - (1.0 - r_sq) * r_df,
        sst,
        sse,
        np.std(e, ddof=1),
        mse0,
        np.sqrt(mse0),
        mae(y, yp),
        s,
        m,
        dfm,
        df,
        f_stat,
        aic,
        bic,
        mape(y, yp),
        mase(y, yp),
        s + 2.0 * (dfm + 1) / m,
    ]
    return pd.Series(values, index=list(QOF_NAMES), dtype=float)


def qof_vector(qof: pd.Series, r_sq_cv: Optional[float] = None) -> np.ndarray:
    """
    Summary vector [100 R^2, 100 adjusted R^2, sMAPE, 100 cross-validated R^2].

    The cross-validated entry is -0.0 when no cross-validation was run.
    """
    cv = -0.0 if r_sq_cv is None else r_sq_cv
    return np.array([100 * qof["r_sq"], 100 * qof["r_sq_bar"], qof["smape"], 100 * cv])

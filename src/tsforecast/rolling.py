"""Train/test splitting and rolling validation of forecasting models."""

import logging
import math
from typing import Callable, Optional, Tuple

import numpy as np
import pandas as pd

from .errors import ConfigurationError
from .evaluation import QOF_NAMES, diagnose
from .forecast_matrix import ForecastMatrix
from .models.base import Forecaster
from .transforms import as_exogenous, as_series

logger = logging.getLogger(__name__)

TE_RATIO = 0.2


def holdout_size(m: int, te_ratio: float = TE_RATIO) -> int:
    """Number of test points for a series of length m: m * te_ratio + 0.5, rounded half up."""
    if not 0.0 < te_ratio < 1.0:
        raise ConfigurationError(f"te_ratio must be in (0, 1), got {te_ratio}.")
    return int(math.floor(m * te_ratio + 1.0))


def train_test_split(y, te_ratio: float = TE_RATIO) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split a series into a leading training part and a trailing test part.

    Args:
        y: Series
        te_ratio: Fraction of the series used for testing. Default: 0.2.

    Returns:
        y_train, y_test: Contiguous parts of y
    """
    y = as_series(y)
    n_train = len(y) - holdout_size(len(y), te_ratio)
    if n_train < 2:
        raise ConfigurationError(f"Series of length {len(y)} is too short to split with te_ratio={te_ratio}.")
    return y[:n_train], y[n_train:]


def rolling_validate(
    factory: Callable[[], Forecaster],
    y,
    exog=None,
    te_size: Optional[int] = None,
    rc: int = 2,
    growing: bool = False,
) -> Tuple[ForecastMatrix, pd.DataFrame]:
    """
    Out-of-sample evaluation with periodic retraining.

    The last `te_size` points form the test set. For every test origin
    (the time before each test point) the model forecasts horizons 1..H,
    having been trained only on data up to an origin no later than the
    current one. The model is retrained every `rc` origins, on a window of
    fixed length that slides along with the origin, or on all data from
    the start when `growing` is set.

    Args:
        factory: Callable returning an untrained model
        y: Series
        exog: Exogenous variables matching y. Default: None.
        te_size: Number of test points. Default: `holdout_size(len(y))`.
        rc: Retraining cycle, in origins. Default: 2.
        growing: Whether the training window grows instead of sliding. Default: False.

    Returns:
        yf: Forecast matrix holding the out-of-sample forecasts from every test origin
        qof: Quality-of-fit report per horizon (rows: QoF names, columns: h1..hH)

    Example:
        yf, qof = rolling_validate(lambda: ARIMA(horizon=6, hparams={"p": 2}), y)
        print(qof.loc["smape"])
    """
    y = as_series(y)
    m = len(y)
    exog = as_exogenous(exog, m)
    te_size = holdout_size(m) if te_size is None else te_size
    if rc < 1:
        raise ConfigurationError(f"Retraining cycle rc must be at least 1, got {rc}.")

    model = factory()
    tr_size = m - te_size
    if te_size < 1 or tr_size < model.first_origin + 2:
        raise ConfigurationError(
            f"Cannot roll {te_size} test points over a series of length {m} for {model.name}."
        )

    H = model.horizon
    yf = ForecastMatrix(y, H, first_origin=tr_size - 1)
    for i in range(te_size):
        t = tr_size - 1 + i
        if i % rc == 0:
            start = 0 if growing else i
            model.train(y[start:t + 1], None if exog is None else exog[start:t + 1])
            logger.debug("Retrained %s on rows %d..%d", model.name, start, t)
        # forecast on the window's own time axis, which trend terms are measured on
        window = slice(start, t + 1)
        forecasts = model.forecast(t - start, y=y[window], exog=None if exog is None else exog[window])
        for h in range(1, H + 1):
            yf.set(t, h, forecasts[h - 1])

    reports = {}
    for h in range(1, H + 1):
        rows = yf.valid_rows(h)
        if len(rows) < 2:
            break
        reports[f"h{h}"] = diagnose(y[rows.start:], yf.column(h)[rows.start:m], dfm=model.n_params)
    qof = pd.DataFrame(reports, index=list(QOF_NAMES))
    logger.info("Rolling validation of %s over %d test points: smape by horizon %s",
                model.name, te_size, qof.loc["smape"].round(3).to_dict())
    return yf, qof

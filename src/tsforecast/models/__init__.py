"""Time series forecasting models."""

from .base import Forecaster
from .baseline import RandomWalk, RandomWalkS, SimpleExpSmoothing, SimpleMovingAverage, WeightedMovingAverage
from .arima import AR, ARIMA, ARMA, SARIMAX
from .regression import (
    ARX,
    ARXDirect,
    ARXQuad,
    ARXQuadDirect,
    ARY,
    ARYDirect,
    ARYQuad,
    SARY,
    DirectRegressionForecaster,
    ExogenousLagForge,
    Forge,
    LagForge,
    RegressionForecaster,
)
from ..errors import ConfigurationError

MODELS = {
    cls.name: cls
    for cls in (
        RandomWalk, RandomWalkS, SimpleMovingAverage, WeightedMovingAverage, SimpleExpSmoothing,
        AR, ARMA, ARIMA, SARIMAX,
        ARY, SARY, ARX, ARYQuad, ARXQuad, ARYDirect, ARXDirect, ARXQuadDirect,
    )
}


def create_model(name: str, horizon: int = 1, hparams=None, **kwargs) -> Forecaster:
    """
    Build a model by name.

    Args:
        name: Key of `MODELS` (e.g. "ARIMA", "ARX")
        horizon: Maximum forecasting horizon
        hparams: Hyperparameter overrides
        **kwargs: Further constructor arguments (skip, objective, hide, ...)
    """
    try:
        cls = MODELS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown model '{name}'. Available: {sorted(MODELS)}.") from None
    return cls(horizon=horizon, hparams=hparams, **kwargs)


__all__ = [
    "Forecaster",
    "RandomWalk", "RandomWalkS", "SimpleMovingAverage", "WeightedMovingAverage", "SimpleExpSmoothing",
    "AR", "ARMA", "ARIMA", "SARIMAX",
    "RegressionForecaster", "DirectRegressionForecaster", "Forge", "LagForge", "ExogenousLagForge",
    "ARY", "SARY", "ARX", "ARYQuad", "ARXQuad", "ARYDirect", "ARXDirect", "ARXQuadDirect",
    "MODELS", "create_model",
]

"""Univariate time series forecasting: baselines, ARIMA-class and lag-regression models."""

from .errors import ConfigurationError, ForecastingError, ModelStateError, NumericalError
from .forecast_matrix import ForecastMatrix
from .hyperparameters import HyperParameter, HyperParameterSet
from .models import MODELS, Forecaster, create_model
from .config import load_config, model_from_config
from .rolling import rolling_validate, train_test_split

__version__ = "0.1.0"

__all__ = [
    "ForecastingError",
    "ConfigurationError",
    "NumericalError",
    "ModelStateError",
    "ForecastMatrix",
    "HyperParameter",
    "HyperParameterSet",
    "Forecaster",
    "MODELS",
    "create_model",
    "load_config",
    "model_from_config",
    "rolling_validate",
    "train_test_split",
]

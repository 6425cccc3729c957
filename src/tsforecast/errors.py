"""Exceptions raised by forecasting models."""


class ForecastingError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(ForecastingError, ValueError):
    """Invalid hyperparameter, horizon, series shape or model name."""


class NumericalError(ForecastingError, ArithmeticError):
    """
    A numerical procedure failed to produce usable values.

    Raised when an optimizer stops at its iteration limit or returns
    non-finite values, when regression features or coefficients are not
    finite, and when a region being scored contains NaN predictions.
    """


class ModelStateError(ForecastingError, ValueError):
    """A method was called before the state it depends on exists."""

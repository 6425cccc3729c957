"""Configuration loading utilities for YAML-based model setup."""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Union

import yaml

from .errors import ConfigurationError
from .models import Forecaster, create_model
from .optimizers import get_optimizer

logger = logging.getLogger(__name__)

MODEL_KEYS = ("model", "horizon", "skip", "hyperparameters", "objective", "optimizer", "hide", "optimize")


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override dict into base dict.

    Args:
        base: Base configuration dictionary.
        override: Override dictionary whose values take precedence.

    Returns:
        Merged dictionary with override values taking precedence.
    """
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_paths: Iterable[Union[str, Path]]) -> Dict[str, Any]:
    """Load and merge multiple YAML config files.

    Later files override earlier ones for duplicate keys. Nested
    dictionaries are merged recursively.

    Args:
        config_paths: Paths to YAML config files.

    Returns:
        Merged configuration dictionary.

    Raises:
        FileNotFoundError: If a config file does not exist.
        ConfigurationError: If a file does not hold a mapping.
    """
    merged: Dict[str, Any] = {}
    for path in config_paths:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
        if not isinstance(config, dict):
            raise ConfigurationError(f"Config file {path} must hold a mapping, got {type(config).__name__}.")
        merged = _deep_merge(merged, config)
        logger.debug("Loaded config %s", path)
    return merged


def model_from_config(cfg: Mapping[str, Any]) -> Forecaster:
    """Build a model from a configuration mapping.

    Recognized keys: `model` (required, a name from `models.MODELS`),
    `horizon`, `skip`, `hyperparameters` (mapping), `objective` and
    `optimizer` (ARIMA-class models; the optimizer is a name or a mapping
    with `name` plus constructor options), `hide` (exogenous hide policy)
    and `optimize` (SimpleExpSmoothing).

    Example:
        model: SARIMAX
        horizon: 6
        hyperparameters: {p: 2, d: 1, q: 1, s: 12}
        optimizer: {name: bfgs, max_iter: 1000}
    """
    if "model" not in cfg:
        raise ConfigurationError("Configuration must name a 'model'.")
    unknown = sorted(set(cfg) - set(MODEL_KEYS))
    if unknown:
        raise ConfigurationError(f"Unknown configuration key(s) {unknown}. Valid keys: {list(MODEL_KEYS)}.")

    kwargs: Dict[str, Any] = {}
    for key in ("skip", "objective", "hide", "optimize"):
        if key in cfg:
            kwargs[key] = cfg[key]
    if "optimizer" in cfg:
        opt = cfg["optimizer"]
        if isinstance(opt, Mapping):
            opt = dict(opt)
            if "name" not in opt:
                raise ConfigurationError("Optimizer configuration must have a 'name'.")
            kwargs["optimizer"] = get_optimizer(opt.pop("name"), **opt)
        else:
            kwargs["optimizer"] = get_optimizer(opt)

    try:
        model = create_model(cfg["model"], cfg.get("horizon", 1), cfg.get("hyperparameters"), **kwargs)
    except TypeError as e:
        # constructor options the chosen model does not take (e.g. objective for ARY)
        raise ConfigurationError(f"Invalid options for model '{cfg['model']}': {e}") from e
    logger.info("Built %r from configuration", model)
    return model

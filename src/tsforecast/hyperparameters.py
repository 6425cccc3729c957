"""Hyperparameter definitions shared by all forecasting models."""

import numbers
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Union

from .errors import ConfigurationError


Number = Union[int, float]


@dataclass(frozen=True)
class HyperParameter:
    """
    A single tunable value.

    Attributes:
        name: Key used to look the parameter up (e.g. "p", "lambda")
        default: Value used when no override is given. Its type fixes the
            type of every value: an integer default only accepts integers.
        low: Smallest valid value (None for unbounded)
        high: Largest valid value (None for unbounded)
        value: Current value
    """

    name: str
    default: Number
    low: Optional[Number] = None
    high: Optional[Number] = None
    value: Optional[Number] = None

    def __post_init__(self):
        if self.value is None:
            object.__setattr__(self, "value", self.default)
        object.__setattr__(self, "value", self.validate(self.value))

    @property
    def is_integer(self) -> bool:
        return isinstance(self.default, int) and not isinstance(self.default, bool)

    def validate(self, value: Any) -> Number:
        """
        Check a candidate value against the type and bounds of this parameter.

        Args:
            value: Candidate value

        Returns:
            value: The value, converted to float for real-valued parameters

        Raises:
            ConfigurationError: If the value has the wrong type or lies outside [low, high]
        """
        if isinstance(value, bool):
            raise ConfigurationError(f"Hyperparameter '{self.name}' must be numeric, got bool.")
        if self.is_integer:
            if not isinstance(value, numbers.Integral):
                raise ConfigurationError(
                    f"Hyperparameter '{self.name}' must be an integer, got {type(value).__name__}."
                )
            value = int(value)
        else:
            if not isinstance(value, numbers.Real):
                raise ConfigurationError(
                    f"Hyperparameter '{self.name}' must be a number, got {type(value).__name__}."
                )
            value = float(value)

        if self.low is not None and value < self.low:
            raise ConfigurationError(
                f"Hyperparameter '{self.name}' = {value} is below its lower bound {self.low}."
            )
        if self.high is not None and value > self.high:
            raise ConfigurationError(
                f"Hyperparameter '{self.name}' = {value} is above its upper bound {self.high}."
            )
        return value


class HyperParameterSet(Mapping):
    """
    Immutable collection of hyperparameters, indexed by name.

    Indexing returns the current value; `param(name)` returns the full
    `HyperParameter`. Overriding values returns a new set, so a model's
    defaults are never mutated by another model's configuration.

    Example:
        >>> defaults = HyperParameterSet([HyperParameter("p", 1, 0), HyperParameter("d", 0, 0, 2)])
        >>> hp = defaults.updated({"p": 3})
        >>> hp["p"], defaults["p"]
        (3, 1)
    """

    def __init__(self, params: Iterable[HyperParameter]):
        self._params: Dict[str, HyperParameter] = {}
        for param in params:
            if param.name in self._params:
                raise ConfigurationError(f"Duplicate hyperparameter '{param.name}'.")
            self._params[param.name] = param

    def __getitem__(self, name: str) -> Number:
        return self.param(name).value

    def __iter__(self) -> Iterator[str]:
        return iter(self._params)

    def __len__(self) -> int:
        return len(self._params)

    def __contains__(self, name) -> bool:
        return name in self._params

    def get(self, name: str, default=None):
        return self._params[name].value if name in self._params else default

    def param(self, name: str) -> HyperParameter:
        try:
            return self._params[name]
        except KeyError:
            raise ConfigurationError(
                f"Unknown hyperparameter '{name}'. Valid names: {sorted(self._params)}."
            ) from None

    def updated(self, overrides: Optional[Mapping[str, Any]] = None, **kwargs) -> "HyperParameterSet":
        """
        Return a copy with some values replaced.

        Args:
            overrides: Mapping from name to new value. A `HyperParameterSet`
                is accepted too, in which case its current values are used.
            **kwargs: Further overrides by keyword

        Returns:
            hparams: New `HyperParameterSet`

        Raises:
            ConfigurationError: If a key is unknown or a value is invalid
        """
        values = dict(overrides or {})
        values.update(kwargs)
        unknown = sorted(set(values) - set(self._params))
        if unknown:
            raise ConfigurationError(
                f"Unknown hyperparameter(s) {unknown}. Valid names: {sorted(self._params)}."
            )
        return HyperParameterSet(
            replace(p, value=values[p.name]) if p.name in values else p
            for p in self._params.values()
        )

    def to_dict(self) -> Dict[str, Number]:
        return {name: p.value for name, p in self._params.items()}

    def __repr__(self):
        inner = ", ".join(f"{k}={v}" for k, v in self.to_dict().items())
        return f"HyperParameterSet({inner})"

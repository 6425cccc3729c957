"""Unconstrained minimizers used to estimate nonlinear model parameters."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Type

import numpy as np
from scipy.optimize import minimize

from .errors import ConfigurationError, NumericalError

logger = logging.getLogger(__name__)


@dataclass
class OptimizationResult:
    """Outcome of a minimization: the objective value at the minimizer and the minimizer."""

    value: float
    argmin: np.ndarray
    n_iter: int = 0
    converged: bool = True


class Optimizer(ABC):
    """
    Base class for minimizers of a scalar objective over a parameter vector.
    """

    @abstractmethod
    def minimize(self, objective: Callable[[np.ndarray], float], x0: np.ndarray) -> OptimizationResult:
        """
        Minimize an objective function.

        Args:
            objective: Function of the parameter vector returning a float
            x0: Starting point

        Returns:
            result: `OptimizationResult` with the minimum value and the minimizer

        Raises:
            NumericalError: If the search does not converge or leaves finite values
        """
        pass


class ScipyOptimizer(Optimizer):
    """
    Minimizer delegating to `scipy.optimize.minimize`.

    Stopping at the iteration limit is treated as non-convergence and
    raised. Stopping because no further progress is possible within
    floating-point precision is accepted with a warning, as the point
    reached is stationary to working precision.
    """

    method = None

    def __init__(self, max_iter: int = 500, tol: float = 1e-8):
        self.max_iter = max_iter
        self.tol = tol

    def _options(self) -> dict:
        return {"maxiter": self.max_iter}

    def minimize(self, objective, x0):
        x0 = np.asarray(x0, dtype=float)
        if len(x0) == 0:
            return OptimizationResult(value=float(objective(x0)), argmin=x0)

        res = minimize(objective, x0, method=self.method, tol=self.tol, options=self._options())
        n_iter = int(getattr(res, "nit", 0))

        if not np.isfinite(res.fun) or not np.all(np.isfinite(res.x)):
            raise NumericalError(f"{self.method} produced non-finite values: {res.message}")
        if not res.success:
            if n_iter >= self.max_iter:
                raise NumericalError(
                    f"{self.method} did not converge within {self.max_iter} iterations: {res.message}"
                )
            logger.warning("%s stopped after %d iterations: %s", self.method, n_iter, res.message)

        logger.debug("%s finished: value=%.6g, iterations=%d", self.method, res.fun, n_iter)
        return OptimizationResult(
            value=float(res.fun), argmin=np.asarray(res.x), n_iter=n_iter, converged=bool(res.success)
        )

    def __repr__(self):
        return f"{type(self).__name__}(max_iter={self.max_iter}, tol={self.tol})"


class BFGS(ScipyOptimizer):
    """Quasi-Newton minimizer (Broyden-Fletcher-Goldfarb-Shanno) with numerical gradients."""

    method = "BFGS"


class NelderMead(ScipyOptimizer):
    """Derivative-free simplex minimizer."""

    method = "Nelder-Mead"

    def _options(self) -> dict:
        return {"maxiter": self.max_iter, "xatol": self.tol, "fatol": self.tol}


OPTIMIZERS: Dict[str, Type[Optimizer]] = {
    "bfgs": BFGS,
    "nelder-mead": NelderMead,
}


def get_optimizer(name: str, **kwargs) -> Optimizer:
    """
    Create an optimizer by name ("bfgs" or "nelder-mead").

    Raises:
        ConfigurationError: If the name is not registered
    """
    try:
        cls = OPTIMIZERS[name.lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown optimizer '{name}'. Valid names: {sorted(OPTIMIZERS)}."
        ) from None
    return cls(**kwargs)

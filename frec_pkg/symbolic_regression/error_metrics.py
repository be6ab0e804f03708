"""Error metrics comparing training targets with predictions.

Every metric takes ``(actual, predicted)`` arrays and returns a float where
lower is better. NaN anywhere in the predictions yields NaN, which marks the
candidate as unusable.
"""

from __future__ import annotations

from typing import Callable

import numpy as np

from ..types import ConfigurationError

ErrorMetric = Callable[[np.ndarray, np.ndarray], float]


def _difference(actual, predicted) -> np.ndarray:
    diff = np.asarray(predicted, dtype=float) - np.asarray(actual, dtype=float)
    # Keep squares finite for huge but finite differences
    return np.clip(diff, -1e100, 1e100)


def absolute_error(actual, predicted) -> float:
    """Sum of absolute differences."""
    with np.errstate(all="ignore"):
        return float(np.sum(np.abs(_difference(actual, predicted))))


def mean_squared_error(actual, predicted) -> float:
    with np.errstate(all="ignore"):
        return float(np.mean(_difference(actual, predicted) ** 2))


def root_mean_squared_error(actual, predicted) -> float:
    with np.errstate(all="ignore"):
        return float(np.sqrt(mean_squared_error(actual, predicted)))


def huber_loss(actual, predicted, delta: float = 1.35) -> float:
    """Calculate Huber loss (quadratic near zero, linear for outliers)."""
    with np.errstate(all="ignore"):
        error = _difference(actual, predicted)
        is_small_error = np.abs(error) <= delta
        squared_loss = 0.5 * error**2
        linear_loss = delta * (np.abs(error) - 0.5 * delta)
        return float(np.where(is_small_error, squared_loss, linear_loss).mean())


ERROR_METRICS: dict[str, ErrorMetric] = {
    "absolute": absolute_error,
    "mse": mean_squared_error,
    "rmse": root_mean_squared_error,
    "huber": huber_loss,
}


def get_error_metric(metric: str | ErrorMetric) -> ErrorMetric:
    """Resolve a metric name (see ``ERROR_METRICS``) or pass a callable through.

    Raises:
        ConfigurationError: For unknown names
    """
    if callable(metric):
        return metric
    try:
        return ERROR_METRICS[metric]
    except KeyError:
        raise ConfigurationError(
            f"unknown error metric '{metric}', expected one of {sorted(ERROR_METRICS)}"
        ) from None

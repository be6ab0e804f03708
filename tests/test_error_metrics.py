import math

import numpy as np
import pytest

from frec_pkg.symbolic_regression.error_metrics import ERROR_METRICS
from frec_pkg.symbolic_regression.error_metrics import absolute_error
from frec_pkg.symbolic_regression.error_metrics import get_error_metric
from frec_pkg.symbolic_regression.error_metrics import huber_loss
from frec_pkg.symbolic_regression.error_metrics import mean_squared_error
from frec_pkg.symbolic_regression.error_metrics import root_mean_squared_error
from frec_pkg.types import ConfigurationError

ACTUAL = np.array([1.0, 2.0, 3.0])
PREDICTED = np.array([1.0, 4.0, 3.0])


def test_absolute_error_is_a_sum():
    assert absolute_error(ACTUAL, PREDICTED) == 2.0
    assert absolute_error(ACTUAL, ACTUAL) == 0.0


def test_squared_errors():
    assert mean_squared_error(ACTUAL, PREDICTED) == pytest.approx(4.0 / 3.0)
    assert root_mean_squared_error(ACTUAL, PREDICTED) == pytest.approx(
        math.sqrt(4.0 / 3.0)
    )


def test_huber_loss():
    assert huber_loss(ACTUAL, ACTUAL) == 0.0
    # |error| = 2 > delta: linear branch 1.35 * (2 - 0.675), averaged over 3
    assert huber_loss(ACTUAL, PREDICTED) == pytest.approx(1.35 * 1.325 / 3)
    assert huber_loss([0.0], [0.5]) == pytest.approx(0.125)


@pytest.mark.parametrize("name", sorted(ERROR_METRICS))
def test_nan_predictions_give_nan(name):
    metric = ERROR_METRICS[name]
    assert math.isnan(metric(ACTUAL, np.array([1.0, math.nan, 3.0])))


def test_huge_differences_stay_finite():
    value = mean_squared_error([0.0], [1e300])
    assert math.isfinite(value)


def test_metric_lookup():
    assert get_error_metric("absolute") is absolute_error
    assert get_error_metric("rmse") is root_mean_squared_error
    assert get_error_metric(huber_loss) is huber_loss
    with pytest.raises(ConfigurationError):
        get_error_metric("r2")

import numpy as np
import pandas as pd
import pytest
from tsforecast.errors import ConfigurationError
from tsforecast.transforms import (
    as_exogenous,
    as_series,
    backcast,
    backfill,
    difference,
    difference_levels,
    exogenous_lag_columns,
    fill_exogenous,
    lag_columns,
    lagged_columns,
    moving_average_weights,
    seasonal_difference,
    seasonal_lag_columns,
    seasonal_undifference,
    trend_columns,
    undifference,
)


class TestInputs:
    def test_series_from_pandas(self):
        """A pandas Series is converted to a float array."""
        y = as_series(pd.Series([1, 2, 3]))
        assert y.dtype == float
        np.testing.assert_array_equal(y, [1.0, 2.0, 3.0])

    def test_series_rejects_nan(self):
        with pytest.raises(ConfigurationError):
            as_series([1.0, np.nan, 3.0])

    def test_series_rejects_matrix(self):
        with pytest.raises(ConfigurationError):
            as_series(np.ones((3, 2)))

    def test_series_too_short(self):
        with pytest.raises(ConfigurationError):
            as_series([1.0], min_length=2)

    def test_exog_shape(self):
        assert as_exogenous(None, 5) is None
        assert as_exogenous(np.arange(5), 5).shape == (5, 1)
        with pytest.raises(ConfigurationError):
            as_exogenous(np.ones((4, 2)), 5)


class TestDifferencing:
    @pytest.mark.parametrize("d", [0, 1, 2])
    def test_round_trip(self, d):
        """Undifferencing with the returned seeds restores the series."""
        y = np.array([3.0, 1.0, 4.0, 1.0, 5.0, 9.0, 2.0, 6.0])
        v, seeds = difference(y, d)
        assert len(v) == len(y) - d
        np.testing.assert_allclose(undifference(v, seeds), y)

    def test_first_difference(self):
        v, seeds = difference([1.0, 4.0, 9.0, 16.0], 1)
        np.testing.assert_array_equal(v, [3.0, 5.0, 7.0])
        np.testing.assert_array_equal(seeds, [1.0])

    def test_second_difference_of_quadratic_is_constant(self):
        t = np.arange(10.0)
        v, _ = difference(t**2, 2)
        np.testing.assert_allclose(v, 2.0)

    def test_invalid_order(self):
        with pytest.raises(ConfigurationError):
            difference([1.0, 2.0, 3.0, 4.0], 3)

    def test_too_short(self):
        with pytest.raises(ConfigurationError):
            difference([1.0, 2.0], 2)

    def test_seasonal_round_trip(self, rng):
        y = rng.normal(size=30)
        v, seeds = seasonal_difference(y, period=4, D=2)
        assert len(v) == 30 - 8
        assert seeds.shape == (2, 4)
        np.testing.assert_allclose(seasonal_undifference(v, seeds, 4), y)

    def test_seasonal_difference_removes_pattern(self):
        y = np.tile([1.0, 5.0, 2.0], 4)
        v, _ = seasonal_difference(y, period=3)
        np.testing.assert_allclose(v, 0.0)

    def test_levels_are_time_aligned(self):
        y = np.array([1.0, 2.0, 4.0, 7.0, 11.0, 16.0])
        levels, lags = difference_levels(y, d=1, D=1, period=2)
        assert lags == [1, 2]
        assert len(levels) == 3
        assert all(len(level) == len(y) for level in levels)
        # first difference: [nan, 1, 2, 3, 4, 5]; lag-2 difference of that: [nan, nan, nan, 2, 2, 2]
        np.testing.assert_allclose(levels[1][1:], [1.0, 2.0, 3.0, 4.0, 5.0])
        assert np.all(np.isnan(levels[2][:3]))
        np.testing.assert_allclose(levels[2][3:], [2.0, 2.0, 2.0])


class TestColumns:
    def test_trend(self):
        X = trend_columns(4, spec=3)
        np.testing.assert_allclose(X[:, 0], 1.0)
        np.testing.assert_allclose(X[:, 1], [0.0, 0.25, 0.5, 0.75])
        np.testing.assert_allclose(X[:, 2], [1.0, 0.25, 0.0, 0.25])

    def test_trend_scale_extends_past_series(self):
        X = trend_columns(6, spec=2, scale=4)
        np.testing.assert_allclose(X[:, 1], np.arange(6) / 4)

    def test_trend_none(self):
        assert trend_columns(5, spec=0).shape == (5, 0)

    def test_lags_clamp_and_pad(self):
        """Lags before the start repeat y[0]; unobserved rows are NaN."""
        X = lag_columns([10.0, 20.0, 30.0], p=2, n_rows=5)
        expected = np.array([
            [10.0, 10.0],
            [10.0, 10.0],
            [20.0, 10.0],
            [30.0, 20.0],
            [np.nan, 30.0],
        ])
        np.testing.assert_array_equal(X, expected)

    def test_row_uses_only_past(self):
        """Row t never contains y[t] or later."""
        y = np.arange(20.0)
        X = lagged_columns(y, [1, 3, 7])
        for t in range(1, 20):
            assert np.all(X[t] < t)

    def test_seasonal_lags(self):
        X = seasonal_lag_columns(np.arange(10.0), period=3, order=2)
        np.testing.assert_array_equal(X[9], [6.0, 3.0])

    def test_invalid_lag(self):
        with pytest.raises(ConfigurationError):
            lagged_columns([1.0, 2.0], [0])


class TestBackfill:
    def test_weights(self):
        np.testing.assert_allclose(moving_average_weights(3, 0.0), [1 / 3] * 3)
        np.testing.assert_allclose(moving_average_weights(2, 1.0), [1 / 3, 2 / 3])

    def test_backcast_weights_nearest_most(self):
        # window [4, 1]: nearest value 4 gets weight 2/3
        assert backcast([0.0, 4.0, 1.0], i=1, q=2) == pytest.approx(3.0)

    def test_backfill_leading_zeros(self):
        x = backfill([0.0, 0.0, 4.0, 1.0])
        assert x[1] == pytest.approx(3.0)
        assert x[0] == pytest.approx(2.0 / 3 * 3.0 + 1.0 / 3 * 4.0)
        np.testing.assert_array_equal(x[2:], [4.0, 1.0])

    def test_backfill_untouched(self):
        np.testing.assert_array_equal(backfill([1.0, 0.0, 2.0]), [1.0, 0.0, 2.0])

    def test_exog_lags_fill_gaps(self):
        X = exogenous_lag_columns([np.nan, 2.0, np.nan, 5.0], q=1)
        np.testing.assert_allclose(X[:, 0], [2.0, 2.0, 2.0, 2.0])

    def test_fill_carries_forward(self):
        np.testing.assert_allclose(fill_exogenous([np.nan, 0.0, 4.0, np.nan, 1.0]), [4.0, 4.0, 4.0, 4.0, 1.0])

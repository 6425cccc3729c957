import numpy as np
import pytest
from tsforecast.errors import ConfigurationError
from tsforecast.evaluation import QOF_NAMES
from tsforecast.models import ARIMA, ARY, ARX, RandomWalk
from tsforecast.rolling import holdout_size, rolling_validate, train_test_split


class TestSplit:
    def test_holdout_size(self):
        # 0.2 * 100 + 0.5 = 20.5, rounded half up
        assert holdout_size(100) == 21
        assert holdout_size(12) == 3

    def test_train_test_split(self):
        y_train, y_test = train_test_split(np.arange(100.0))
        assert len(y_train) == 79
        assert len(y_test) == 21
        assert y_test[0] == 79.0

    def test_invalid_ratio(self):
        with pytest.raises(ConfigurationError):
            train_test_split(np.arange(10.0), te_ratio=1.5)


class TestRollingValidate:
    def test_random_walk(self, small_series):
        """Out-of-sample random-walk forecasts are the last value before each test point."""
        yf, qof = rolling_validate(lambda: RandomWalk(horizon=2), small_series, te_size=4)
        # test origins 5..9
        np.testing.assert_allclose(yf.column(1)[6:10], small_series[5:9])
        np.testing.assert_allclose(yf.column(2)[7:10], small_series[5:8])
        assert np.all(np.isnan(yf.column(1)[:6]))
        assert list(qof.columns) == ["h1", "h2"]
        assert list(qof.index) == list(QOF_NAMES)
        assert qof.loc["m", "h1"] == 4
        assert qof.loc["m", "h2"] == 3

    def test_arima(self, random_walk_series):
        yf, qof = rolling_validate(
            lambda: ARIMA(horizon=3, hparams={"p": 1, "d": 1, "q": 0}), random_walk_series, rc=5
        )
        te_size = holdout_size(len(random_walk_series))
        assert qof.loc["m", "h1"] == te_size
        assert np.all(np.isfinite(qof.loc["rmse"]))

    def test_growing_window(self, short_ar1_series):
        _, qof = rolling_validate(lambda: ARY(horizon=2), short_ar1_series, growing=True)
        assert qof.loc["smape", "h1"] > 0.0

    def test_no_future_in_training(self, short_ar1_series):
        """Forecasts from an origin do not depend on data after it."""
        y = short_ar1_series
        changed = y.copy()
        changed[-5:] += 50.0
        yf, _ = rolling_validate(lambda: ARY(horizon=2), y, rc=1)
        yf_changed, _ = rolling_validate(lambda: ARY(horizon=2), changed, rc=1)
        t = len(y) - 6
        np.testing.assert_allclose(yf_changed.origin_row(t), yf.origin_row(t))

    def test_sliding_window_matches_fresh_models(self, rng):
        """With a trend term, every sliding-window forecast equals a model trained on that window alone."""
        t_idx = np.arange(80)
        y = 0.5 * t_idx + rng.normal(scale=0.3, size=80)

        def factory():
            return ARY(horizon=2, hparams={"p": 1, "spec": 2})

        yf, _ = rolling_validate(factory, y, te_size=10, rc=1)
        tr_size = 70
        for i in range(10):
            t = tr_size - 1 + i
            window = y[i:t + 1]
            expected = factory().train(window).forecast(len(window) - 1)
            np.testing.assert_allclose(yf.origin_row(t), expected)

    def test_retraining_cycle_keeps_window_origin(self, rng):
        """Between retrains the model forecasts on the window it was trained on."""
        y = 2.0 + 0.3 * np.arange(60) + rng.normal(scale=0.2, size=60)

        def factory():
            return ARY(horizon=1, hparams={"p": 2, "spec": 2})

        yf, _ = rolling_validate(factory, y, te_size=6, rc=3)
        # origins 53..55 use the model trained on y[0:54], 56..58 the one trained on y[3:57]
        first = factory().train(y[0:54])
        second = factory().train(y[3:57])
        np.testing.assert_allclose(yf.origin_row(55), first.forecast(55, y=y[0:56]))
        np.testing.assert_allclose(yf.origin_row(58), second.forecast(55, y=y[3:59]))

    def test_exogenous(self, exog_series):
        y, exog = exog_series
        yf, qof = rolling_validate(lambda: ARX(horizon=2, hparams={"q": 1}), y, exog, te_size=30)
        assert qof.loc["r_sq", "h1"] > 0.5

    def test_invalid(self, small_series):
        with pytest.raises(ConfigurationError):
            rolling_validate(lambda: RandomWalk(), small_series, te_size=9)
        with pytest.raises(ConfigurationError):
            rolling_validate(lambda: RandomWalk(), small_series, rc=0)

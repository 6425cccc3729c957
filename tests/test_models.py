import numpy as np
import pandas as pd
import pytest
from sklearn.linear_model import LinearRegression, Ridge
from tsforecast.errors import ConfigurationError, ModelStateError
from tsforecast.models import ARX, ARXDirect, ARXQuad, ARXQuadDirect, ARY, ARYDirect, ARYQuad, SARY
from tsforecast.models.regression import ExogenousLagForge, LagForge, RegressionForecaster


def _lag(values, k):
    """values[r - k] for every row r, clamped to values[0]."""
    idx = np.maximum(np.arange(len(values)) - k, 0)
    return values[idx]


class TestARY:
    def test_fit_matches_least_squares(self, short_ar1_series):
        """Coefficients equal an ordinary least-squares fit of y[r] on [1, y[r-1], y[r-2]]."""
        y = short_ar1_series
        model = ARY(hparams={"p": 2}).train(y)
        coef, intercept = model.get_params()

        features = np.column_stack([np.ones(len(y)), _lag(y, 1), _lag(y, 2)])[1:]
        regressor = LinearRegression(fit_intercept=False)
        regressor.fit(features, y[1:])

        np.testing.assert_allclose(coef, regressor.coef_, rtol=1e-10)
        assert intercept == 0.0
        assert model.n_params == 3

    def test_recursive_forecast(self, short_ar1_series):
        """Lags after the origin are filled with the model's own forecasts."""
        y = short_ar1_series
        model = ARY(horizon=3, hparams={"p": 2}).train(y)
        c = model.get_params()[0]
        t = 60
        f1 = c @ [1.0, y[t], y[t - 1]]
        f2 = c @ [1.0, f1, y[t]]
        f3 = c @ [1.0, f2, f1]
        np.testing.assert_allclose(model.forecast(t), [f1, f2, f3])

    def test_forecast_past_the_end(self, short_ar1_series):
        model = ARY(horizon=4).train(short_ar1_series)
        forecasts = model.forecast(len(short_ar1_series) - 1)
        assert forecasts.shape == (4,)
        assert np.all(np.isfinite(forecasts))

    def test_no_leakage(self, short_ar1_series):
        model = ARY(horizon=3, hparams={"p": 3, "spec": 2}).train(short_ar1_series)
        t = 70
        changed = short_ar1_series.copy()
        changed[t + 1:] = 0.0
        np.testing.assert_allclose(
            model.forecast(t, y=changed), model.forecast(t, y=short_ar1_series.copy())
        )

    def test_diagonal_law(self, short_ar1_series):
        model = ARY(horizon=3, hparams={"p": 2}).train(short_ar1_series)
        yf = model.forecast_all()
        for t in (0, 30, 119):
            expected = yf.origin_row(t).copy()
            np.testing.assert_allclose(model.forecast(t), expected)

    def test_nonnegative(self):
        y = np.linspace(10.0, 0.5, 40)
        model = ARY(horizon=5, hparams={"p": 1, "spec": 2, "nneg": 1}).train(y)
        yf = model.forecast_all()
        forecasts = yf.values[:, 1:-1]
        assert np.nanmin(forecasts) >= 0.0

    def test_ridge(self, short_ar1_series):
        model = ARY(hparams={"lambda": 0.5}).train(short_ar1_series)
        assert isinstance(model.regressor, Ridge)
        assert model.regressor.alpha == 0.5

    def test_custom_regressor(self, short_ar1_series):
        regressor = LinearRegression(fit_intercept=True)
        model = ARY(hparams={"spec": 0}, regressor=regressor).train(short_ar1_series)
        assert model.regressor is regressor
        assert model.get_params()[1] != 0.0

    def test_rejects_exog(self, exog_series):
        y, exog = exog_series
        with pytest.raises(ConfigurationError):
            ARY().train(y, exog)

    def test_untrained(self):
        with pytest.raises(ModelStateError):
            ARY().get_params()


class TestSARY:
    def test_seasonal_lags(self):
        model = SARY(hparams={"p": 2, "sp": 7, "ps": 2})
        assert model.forge.lags == [1, 2, 7, 14]

    def test_fits_seasonal_pattern(self, seasonal_series):
        model = SARY(horizon=7, hparams={"p": 1, "sp": 7, "ps": 1}).train(seasonal_series)
        model.forecast_all()
        _, qof = model.test_f(7)
        assert qof["r_sq"] > 0.9


class TestARX:
    def test_fit_matches_least_squares(self, exog_series):
        """Coefficients equal a least-squares fit on trend, endogenous and exogenous lags."""
        y, exog = exog_series
        x = exog["feature1"].to_numpy()
        model = ARX(hparams={"p": 1, "q": 2}).train(y, exog)
        coef, _ = model.get_params()

        features = np.column_stack([np.ones(len(y)), _lag(y, 1), _lag(x, 1), _lag(x, 2)])[1:]
        regressor = LinearRegression(fit_intercept=False)
        regressor.fit(features, y[1:])

        np.testing.assert_allclose(coef, regressor.coef_, rtol=1e-8)
        assert coef[2] == pytest.approx(2.0, abs=0.1)

    def test_hide_last(self, exog_series):
        """Beyond the origin the lag-h exogenous column stands in for the shorter lags."""
        y, exog = exog_series
        x = exog["feature1"].to_numpy()
        model = ARX(horizon=2, hparams={"p": 1, "q": 2}).train(y, exog)
        c = model.get_params()[0]
        t = 100
        f1 = c @ [1.0, y[t], x[t], x[t - 1]]
        f2 = c @ [1.0, f1, x[t], x[t]]
        np.testing.assert_allclose(model.forecast(t), [f1, f2])

    def test_hide_zero(self, exog_series):
        y, exog = exog_series
        x = exog["feature1"].to_numpy()
        model = ARX(horizon=2, hparams={"p": 1, "q": 2}, hide="zero").train(y, exog)
        c = model.get_params()[0]
        t = 100
        f1 = c @ [1.0, y[t], x[t], x[t - 1]]
        f2 = c @ [1.0, f1, 0.0, x[t]]
        np.testing.assert_allclose(model.forecast(t), [f1, f2])

    def test_exog_not_leaked(self, exog_series):
        y, exog = exog_series
        model = ARX(horizon=3, hparams={"p": 2, "q": 2, "cross": 1}).train(y, exog)
        t = 150
        changed = exog.copy()
        changed.iloc[t + 1:, 0] = -9.0
        np.testing.assert_allclose(model.forecast(t, y=y.copy(), exog=changed), model.forecast(t))

    def test_cross_terms(self, exog_series):
        y, exog = exog_series
        model = ARX(hparams={"p": 2, "q": 1, "cross": 1}).train(y, exog)
        # trend + 2 endogenous lags + 1 exogenous lag + 1 cross term
        assert model.n_params == 5

    def test_missing_exog_values(self, exog_series):
        y, exog = exog_series
        gappy = exog.copy()
        gappy.iloc[:3, 0] = 0.0
        gappy.iloc[50:55, 0] = np.nan
        model = ARX(hparams={"p": 1, "q": 1}).train(y, gappy)
        assert np.all(np.isfinite(model.predict_all()[1:]))

    def test_requires_exog(self, short_ar1_series):
        with pytest.raises(ConfigurationError):
            ARX().train(short_ar1_series)

    def test_column_count_checked(self, exog_series):
        y, exog = exog_series
        model = ARX().train(y, exog)
        wider = pd.concat([exog, exog.rename(columns={"feature1": "feature2"})], axis=1)
        with pytest.raises(ConfigurationError):
            model.forecast(10, y=y.copy(), exog=wider)

    def test_invalid_hide(self):
        with pytest.raises(ConfigurationError):
            ARX(hide="mean")


class TestDirect:
    def test_one_regression_per_horizon(self, short_ar1_series):
        y = short_ar1_series
        H = 3
        model = ARYDirect(horizon=H, hparams={"p": 2}).train(y)
        coef, _ = model.get_params()
        assert coef.shape == (H, 3)

        m = len(y)
        origins = np.arange(0, m - H)
        features = np.column_stack([np.ones(m), _lag(y, 1), _lag(y, 2)])[origins + 1]
        targets = np.column_stack([y[origins + h] for h in range(1, H + 1)])
        regressor = LinearRegression(fit_intercept=False)
        regressor.fit(features, targets)
        np.testing.assert_allclose(coef, regressor.coef_, rtol=1e-10)

    def test_forecasts_use_origin_row(self, short_ar1_series):
        """Every horizon is predicted from the features known at the origin."""
        y = short_ar1_series
        model = ARYDirect(horizon=3, hparams={"p": 2}).train(y)
        coef, _ = model.get_params()
        t = 40
        expected = coef @ np.array([1.0, y[t], y[t - 1]])
        np.testing.assert_allclose(model.forecast(t), expected)

    def test_single_horizon_matches_recursive(self, short_ar1_series):
        direct = ARYDirect(horizon=1, hparams={"p": 2}).train(short_ar1_series)
        recursive = ARY(horizon=1, hparams={"p": 2}).train(short_ar1_series)
        np.testing.assert_allclose(direct.get_params()[0][0], recursive.get_params()[0])
        np.testing.assert_allclose(direct.predict_all(), recursive.predict_all())

    def test_arx_direct(self, exog_series):
        y, exog = exog_series
        model = ARXDirect(horizon=4, hparams={"p": 1, "q": 2}).train(y, exog)
        yf = model.forecast_all()
        assert np.all(np.isfinite(yf.origin_row(100)))
        assert model.get_params()[0].shape == (4, 4)

    def test_too_short(self):
        with pytest.raises(ConfigurationError):
            ARYDirect(horizon=5).train(np.arange(6.0))


class TestQuad:
    def test_ary_quad_matches_least_squares(self, short_ar1_series):
        """Coefficients equal a least-squares fit with squared lags appended."""
        y = short_ar1_series
        model = ARYQuad(hparams={"p": 2}).train(y)
        coef, _ = model.get_params()

        y1, y2 = _lag(y, 1), _lag(y, 2)
        features = np.column_stack([np.ones(len(y)), y1, y2, y1**2, y2**2])[1:]
        regressor = LinearRegression(fit_intercept=False)
        regressor.fit(features, y[1:])

        np.testing.assert_allclose(coef, regressor.coef_, rtol=1e-8)
        assert model.n_params == 5

    def test_powered_lags_forged(self, short_ar1_series):
        """Squared lags after the origin are squares of the model's own forecasts."""
        y = short_ar1_series
        model = ARYQuad(horizon=3, hparams={"p": 2}).train(y)
        c = model.get_params()[0]
        t = 60
        f1 = c @ [1.0, y[t], y[t - 1], y[t]**2, y[t - 1]**2]
        f2 = c @ [1.0, f1, y[t], f1**2, y[t]**2]
        f3 = c @ [1.0, f2, f1, f2**2, f1**2]
        np.testing.assert_allclose(model.forecast(t), [f1, f2, f3])

    def test_no_leakage(self, short_ar1_series):
        model = ARYQuad(horizon=3, hparams={"p": 2, "pp": 3.0}).train(short_ar1_series)
        t = 70
        changed = short_ar1_series.copy()
        changed[t + 1:] = 0.0
        np.testing.assert_allclose(
            model.forecast(t, y=changed), model.forecast(t, y=short_ar1_series.copy())
        )

    def test_arx_quad_matches_least_squares(self, exog_series):
        y, exog = exog_series
        x = exog["feature1"].to_numpy()
        model = ARXQuad(hparams={"p": 1, "q": 2}).train(y, exog)
        coef, _ = model.get_params()

        y1 = _lag(y, 1)
        features = np.column_stack([np.ones(len(y)), y1, y1**2, _lag(x, 1), _lag(x, 2)])[1:]
        regressor = LinearRegression(fit_intercept=False)
        regressor.fit(features, y[1:])

        np.testing.assert_allclose(coef, regressor.coef_, rtol=1e-6)

    def test_arx_quad_exog_not_leaked(self, exog_series):
        y, exog = exog_series
        model = ARXQuad(horizon=3, hparams={"p": 2, "q": 2, "cross": 1}).train(y, exog)
        t = 150
        changed = exog.copy()
        changed.iloc[t + 1:, 0] = -9.0
        changed_y = y.copy()
        changed_y[t + 1:] = 0.0
        np.testing.assert_allclose(model.forecast(t, y=changed_y, exog=changed), model.forecast(t))

    def test_arx_quad_direct(self, exog_series):
        y, exog = exog_series
        model = ARXQuadDirect(horizon=3, hparams={"p": 1, "q": 1}).train(y, exog)
        assert model.get_params()[0].shape == (3, 4)
        assert np.all(np.isfinite(model.forecast_all().origin_row(100)))

    def test_forge_powers(self):
        forge = LagForge(spec=1, lags=[1, 3], power=2.0)
        past_row = np.array([1.0, np.nan, 5.0, np.nan, 25.0])
        x = forge.forge(past_row, np.array([3.0]), h=2)
        np.testing.assert_array_equal(x, [1.0, 3.0, 5.0, 9.0, 25.0])


class TestForge:
    def test_lag_forge(self):
        forge = LagForge(spec=1, lags=[1, 2, 4])
        past_row = np.array([1.0, np.nan, np.nan, 7.0])
        x = forge.forge(past_row, np.array([10.0, 20.0]), h=3)
        # lag 1 -> 2-step forecast, lag 2 -> 1-step forecast, lag 4 observed
        np.testing.assert_array_equal(x, [1.0, 20.0, 10.0, 7.0])
        assert np.isnan(past_row[1])

    def test_exogenous_forge_zero_when_lag_missing(self):
        forge = ExogenousLagForge(spec=0, lags=[1], q=1, hide="last")
        forge.n_exog = 1
        x = forge.forge(np.array([np.nan, np.nan]), np.array([5.0]), h=2)
        np.testing.assert_array_equal(x, [5.0, 0.0])

    def test_generic_forecaster_with_forge(self, short_ar1_series):
        model = RegressionForecaster(horizon=2, forge=LagForge(spec=1, lags=[1, 3])).train(short_ar1_series)
        assert model.n_params == 3
        assert model.forecast(50).shape == (2,)

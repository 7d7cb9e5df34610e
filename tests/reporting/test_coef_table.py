"""
Tests for coefficient tables: Wald and profile intervals across model kinds.
"""

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose
from scipy import stats

from pyregkit.core.exceptions import ValidationError
from pyregkit.categorical import multinomial
from pyregkit.regression import glm, lm
from pyregkit.reporting import CoefficientTable, coef_table
from pyregkit.survival import coxph


@pytest.fixture
def linear_model(rng):
    n = 40
    x = rng.standard_normal(n)
    y = 1.0 + 2.0 * x + rng.standard_normal(n)
    return lm("y ~ x", {"y": y, "x": x})


@pytest.fixture
def logistic_model(logistic_data):
    return glm("y ~ x", logistic_data, family='binomial')


# ═══════════════════════════════════════════════════════════════════════
# Wald intervals
# ═══════════════════════════════════════════════════════════════════════


class TestWald:

    def test_linear_uses_student_t(self, linear_model):
        table = coef_table(linear_model)
        assert isinstance(table, CoefficientTable)
        assert table.statistic_name == 't'
        assert table.df == linear_model.df_residual
        q = stats.t.ppf(0.975, linear_model.df_residual)
        se = linear_model.standard_errors
        assert_allclose(table.ci_lower, linear_model.coefficients - q * se)
        assert_allclose(table.ci_upper, linear_model.coefficients + q * se)
        assert_allclose(table.p_value, linear_model.p_values, rtol=1e-10)

    def test_binomial_uses_normal(self, logistic_model):
        table = coef_table(logistic_model, conf_level=0.90)
        assert table.statistic_name == 'z'
        assert table.df is None
        q = stats.norm.ppf(0.95)
        assert_allclose(
            table.ci_upper - table.ci_lower, 2 * q * logistic_model.standard_errors,
        )

    def test_intervals_contain_estimate(self, logistic_model):
        table = coef_table(logistic_model)
        assert np.all(table.ci_lower < table.estimate)
        assert np.all(table.estimate < table.ci_upper)

    def test_higher_level_is_wider(self, linear_model):
        narrow = coef_table(linear_model, conf_level=0.80)
        wide = coef_table(linear_model, conf_level=0.99)
        assert np.all(wide.ci_upper - wide.ci_lower > narrow.ci_upper - narrow.ci_lower)

    def test_exponentiated_odds_ratios(self, logistic_model):
        plain = coef_table(logistic_model)
        odds = coef_table(logistic_model, exponentiate=True)
        assert odds.exponentiated
        assert_allclose(odds.estimate, np.exp(plain.estimate))
        assert_allclose(odds.ci_lower, np.exp(plain.ci_lower))
        assert_allclose(odds.std_error, plain.std_error)

    def test_cox_hazard_ratios(self, survival_data):
        model = coxph(survival_data["time"], survival_data["event"], survival_data["x"])
        table = coef_table(model, exponentiate=True)
        assert_allclose(table.estimate, model.hazard_ratios)
        assert table.statistic_name == 'z'

    def test_multinomial_rows_per_level(self, rng):
        n = 90
        data = {
            "y": np.repeat(["a", "b", "c"], 30).astype(object),
            "x": rng.standard_normal(n),
        }
        table = coef_table(multinomial("y ~ x", data))
        assert table.names == ("b:Intercept", "b:x", "c:Intercept", "c:x")
        assert len(table) == 4


class TestTableOutput:

    def test_to_pandas(self, linear_model):
        df = coef_table(linear_model).to_pandas()
        assert isinstance(df, pd.DataFrame)
        assert df.index.name == 'term'
        assert list(df.index) == ['Intercept', 'x']
        assert list(df.columns) == [
            'estimate', 'std_error', 't_value', 'p_value', 'lower_95', 'upper_95',
        ]

    def test_format(self, logistic_model):
        text = str(coef_table(logistic_model, exponentiate=True))
        assert "exp(Estimate)" in text
        assert "Pr(>|z|)" in text
        assert "Intercept" in text


class TestErrors:

    def test_exponentiate_linear(self, linear_model):
        with pytest.raises(ValidationError, match="exponentiate"):
            coef_table(linear_model, exponentiate=True)

    def test_profile_requires_glm(self, linear_model):
        with pytest.raises(ValidationError, match="GLMs only"):
            coef_table(linear_model, method='profile')

    def test_unknown_method(self, logistic_model):
        with pytest.raises(ValidationError, match="method"):
            coef_table(logistic_model, method='bootstrap')

    @pytest.mark.parametrize("level", [0.0, 1.0, 1.2])
    def test_conf_level(self, logistic_model, level):
        with pytest.raises(ValidationError):
            coef_table(logistic_model, conf_level=level)


# ═══════════════════════════════════════════════════════════════════════
# Profile likelihood intervals
# ═══════════════════════════════════════════════════════════════════════


class TestProfile:

    def test_gaussian_profile_equals_wald(self, rng):
        n = 50
        x = rng.standard_normal(n)
        y = 0.5 - x + rng.standard_normal(n)
        model = glm("y ~ x", {"y": y, "x": x}, family='gaussian')
        wald = coef_table(model)
        profile = coef_table(model, method='profile')
        assert profile.method == 'profile'
        assert_allclose(profile.ci_lower, wald.ci_lower, rtol=1e-6)
        assert_allclose(profile.ci_upper, wald.ci_upper, rtol=1e-6)

    def test_logistic_profile_close_to_wald(self, logistic_model):
        wald = coef_table(logistic_model)
        profile = coef_table(logistic_model, method='profile')
        assert np.all(profile.ci_lower < profile.estimate)
        assert np.all(profile.estimate < profile.ci_upper)
        assert_allclose(profile.ci_lower, wald.ci_lower, atol=0.05)
        assert_allclose(profile.ci_upper, wald.ci_upper, atol=0.05)

    def test_intercept_only_bounds_solve_deviance_equation(self, logistic_data):
        y = logistic_data["y"]
        model = glm("y ~ 1", logistic_data, family='binomial')
        profile = coef_table(model, method='profile')

        def deviance(b):
            mu = 1 / (1 + np.exp(-b))
            return -2 * np.sum(y * np.log(mu) + (1 - y) * np.log(1 - mu))

        q = stats.norm.ppf(0.975)
        for bound in (profile.ci_lower[0], profile.ci_upper[0]):
            assert deviance(bound) - model.deviance == pytest.approx(q ** 2, rel=1e-6)

    def test_profile_interval_is_asymmetric_for_small_samples(self):
        y = np.array([0, 0, 0, 0, 0, 0, 1, 1, 0, 1], dtype=float)
        model = glm("y ~ 1", {"y": y}, family='binomial')
        profile = coef_table(model, method='profile')
        below = profile.estimate[0] - profile.ci_lower[0]
        above = profile.ci_upper[0] - profile.estimate[0]
        assert below != pytest.approx(above, rel=1e-3)

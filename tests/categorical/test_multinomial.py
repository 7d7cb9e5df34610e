"""
Tests for multinomial logistic regression.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from pyregkit.core.exceptions import FormulaError, SingularMatrixError, ValidationError
from pyregkit.categorical import MultinomialSolution, fit_multinomial, multinomial
from pyregkit.regression import glm


@pytest.fixture
def diet_data(rng):
    """Three-level outcome driven by one numeric predictor."""
    n = 600
    x = rng.standard_normal(n)
    eta = np.column_stack([np.zeros(n), 0.3 + 0.8 * x, -0.2 - 0.6 * x])
    prob = np.exp(eta)
    prob /= prob.sum(axis=1, keepdims=True)
    u = rng.uniform(size=n)[:, np.newaxis]
    codes = (u > np.cumsum(prob, axis=1)).sum(axis=1)
    labels = np.array(["fish", "meat", "veg"], dtype=object)[codes]
    return {"diet": labels, "x": x}


# ═══════════════════════════════════════════════════════════════════════
# Fitting
# ═══════════════════════════════════════════════════════════════════════


class TestMultinomialFit:

    def test_returns_solution(self, diet_data):
        model = multinomial("diet ~ x", diet_data)
        assert isinstance(model, MultinomialSolution)
        assert model.levels == ("fish", "meat", "veg")
        assert model.baseline == "fish"
        assert model.response_levels == ("meat", "veg")
        assert model.coefficients.shape == (2, 2)

    def test_recovers_signal(self, diet_data):
        model = multinomial("diet ~ x", diet_data)
        assert model.coefficient("meat", "x") == pytest.approx(0.8, abs=0.3)
        assert model.coefficient("veg", "x") == pytest.approx(-0.6, abs=0.3)
        assert model.coefficient("fish", "x") == 0.0

    def test_intercept_only_gives_log_ratios(self, diet_data):
        model = multinomial("diet ~ 1", diet_data)
        counts = {lv: np.sum(diet_data["diet"] == lv) for lv in ("fish", "meat", "veg")}
        assert model.coefficients[0, 0] == pytest.approx(
            np.log(counts["meat"] / counts["fish"]), abs=1e-7,
        )
        assert model.coefficients[1, 0] == pytest.approx(
            np.log(counts["veg"] / counts["fish"]), abs=1e-7,
        )
        assert model.log_likelihood == pytest.approx(model.null_log_likelihood)

    def test_probabilities_sum_to_one(self, diet_data):
        model = multinomial("diet ~ x", diet_data)
        assert model.fitted_probabilities.shape == (600, 3)
        assert_allclose(model.fitted_probabilities.sum(axis=1), 1.0, rtol=1e-12)

    def test_changing_baseline_preserves_log_odds_differences(self, diet_data):
        by_fish = multinomial("diet ~ x", diet_data)
        by_meat = multinomial("diet ~ x", diet_data, baseline="meat")
        assert by_meat.baseline == "meat"
        for column in ("Intercept", "x"):
            expected = by_fish.coefficient("veg", column) - by_fish.coefficient("meat", column)
            assert by_meat.coefficient("veg", column) == pytest.approx(expected, abs=1e-6)
            assert by_meat.coefficient("fish", column) == pytest.approx(
                -by_fish.coefficient("meat", column), abs=1e-6,
            )
        assert by_meat.log_likelihood == pytest.approx(by_fish.log_likelihood)
        assert_allclose(by_meat.fitted_probabilities, by_fish.fitted_probabilities, atol=1e-8)

    def test_two_levels_match_logistic_glm(self, logistic_data):
        labels = np.where(logistic_data["y"] == 1.0, "yes", "no").astype(object)
        data = {"y": labels, "x": logistic_data["x"]}
        multi = multinomial("y ~ x", data)
        logit = glm("y ~ x", data, family='binomial')
        assert_allclose(multi.coefficients[0], logit.coefficients, rtol=1e-6)
        assert_allclose(multi.standard_errors[0], logit.standard_errors, rtol=1e-5)

    def test_arrays_match_formula(self, diet_data):
        codes = np.searchsorted(["fish", "meat", "veg"], diet_data["diet"].astype(str))
        X = np.column_stack([np.ones(len(codes)), diet_data["x"]])
        by_arrays = fit_multinomial(
            X, codes, levels=["fish", "meat", "veg"], column_names=["Intercept", "x"],
        )
        by_formula = multinomial("diet ~ x", diet_data)
        assert_allclose(by_arrays.coefficients, by_formula.coefficients, rtol=1e-8)

    def test_numeric_response_treated_as_levels(self, rng):
        y = np.repeat([1.0, 2.0, 3.0], 20)
        model = multinomial("y ~ x", {"y": y, "x": rng.standard_normal(60)})
        assert model.levels == ("1", "2", "3")


class TestMultinomialInterface:

    def test_fitted_model_protocol(self, diet_data):
        model = multinomial("diet ~ x", diet_data)
        assert model.model_kind == 'multinomial'
        assert model.df_residual is None
        assert model.term_labels == (
            "meat:Intercept", "meat:x", "veg:Intercept", "veg:x",
        )
        assert model.estimates.shape == (4,)
        assert model.vcov.shape == (4, 4)
        assert model.n_parameters == 4

    def test_wald_statistics(self, diet_data):
        model = multinomial("diet ~ x", diet_data)
        assert_allclose(model.z_statistics, model.coefficients / model.standard_errors)
        assert np.all((model.p_values >= 0) & (model.p_values <= 1))

    def test_results_are_read_only(self, rng):
        X = np.column_stack([np.ones(30), rng.standard_normal(30)])
        model = fit_multinomial(X, np.tile([0, 1, 2], 10))
        before = model.coefficients.copy()
        with pytest.raises(ValueError, match="read-only"):
            model.coefficients[0, 0] = 99.0
        with pytest.raises(ValueError, match="read-only"):
            model.row_index[0] = 5
        X[:, 1] = 0.0
        assert_allclose(model.coefficients, before)

    def test_summary(self, diet_data):
        text = multinomial("diet ~ x", diet_data).summary()
        assert "baseline: fish" in text
        assert "veg vs fish:" in text


# ═══════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════


class TestMultinomialErrors:

    def test_unknown_baseline(self, diet_data):
        with pytest.raises(FormulaError, match="baseline"):
            multinomial("diet ~ x", diet_data, baseline="pasta")

    def test_unobserved_level(self, rng):
        X = np.column_stack([np.ones(20), rng.standard_normal(20)])
        y = np.tile([0, 1], 10)
        with pytest.raises(ValidationError, match="no observations"):
            fit_multinomial(X, y, levels=["a", "b", "c"])

    def test_single_level(self, rng):
        X = np.ones((10, 1))
        with pytest.raises(ValidationError, match="at least 2 levels"):
            fit_multinomial(X, np.zeros(10))

    def test_non_integer_codes(self, rng):
        X = np.ones((4, 1))
        with pytest.raises(ValidationError, match="non-negative integers"):
            fit_multinomial(X, [0, 1, 0.5, 1])

    def test_collinear_design(self, rng):
        x = rng.standard_normal(30)
        X = np.column_stack([np.ones(30), x, 2 * x])
        with pytest.raises(SingularMatrixError):
            fit_multinomial(X, np.tile([0, 1, 2], 10))

    def test_float32_identical_columns(self, rng):
        x = rng.standard_normal(30).astype(np.float32)
        X = np.column_stack([np.ones(30, dtype=np.float32), x, x])
        with pytest.raises(SingularMatrixError):
            fit_multinomial(X, np.tile([0, 1, 2], 10))

    def test_empty_outcome(self):
        with pytest.raises(ValidationError, match="at least 1"):
            fit_multinomial(np.empty((0, 1)), [])

    def test_bad_baseline_index(self, rng):
        with pytest.raises(ValidationError, match="baseline index"):
            fit_multinomial(np.ones((6, 1)), np.tile([0, 1], 3), baseline=5)

"""
Tests for coxph() and cox() matching R survival::coxph().
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from pyregkit.core.exceptions import (
    ConvergenceError,
    FormulaError,
    SchemaError,
    SingularMatrixError,
    ValidationError,
)
from pyregkit.core.protocols import FittedModel
from pyregkit.frame import Frame
from pyregkit.survival import CoxSolution, cox, coxph
from pyregkit.survival._cox import concordance


# Four subjects, one censored at a tied time:
#   risk set at 5:  all four        → 2 + 2e^β, event x = 0
#   risk set at 8:  {8, 8, 12}      → 1 + 2e^β, event x = 1
#   risk set at 12: {12}            → e^β, contributes 0
#   ℓ(β) = β − log(2 + 2e^β) − log(1 + 2e^β),  β̂ = −½ log 2
HAND_TIME = np.array([5.0, 8.0, 8.0, 12.0])
HAND_EVENT = np.array([1.0, 1.0, 0.0, 1.0])
HAND_X = np.array([0.0, 1.0, 0.0, 1.0])


def _hand_loglik(beta):
    u = np.exp(beta)
    return beta - np.log(2 + 2 * u) - np.log(1 + 2 * u)


class TestCoxHandComputed:

    def test_coefficient(self):
        result = coxph(HAND_TIME, HAND_EVENT, HAND_X)
        assert isinstance(result, CoxSolution)
        assert result.coefficients[0] == pytest.approx(-0.5 * np.log(2), abs=1e-8)
        assert result.hazard_ratios[0] == pytest.approx(1 / np.sqrt(2), abs=1e-8)

    def test_log_partial_likelihood(self):
        result = coxph(HAND_TIME, HAND_EVENT, HAND_X)
        null, model = result.loglik
        assert null == pytest.approx(_hand_loglik(0.0))
        assert model == pytest.approx(_hand_loglik(-0.5 * np.log(2)))
        assert result.log_likelihood == model

    def test_standard_error_from_information(self):
        u = 1 / np.sqrt(2)
        information = u / (1 + u) ** 2 + 2 * u / (1 + 2 * u) ** 2
        result = coxph(HAND_TIME, HAND_EVENT, HAND_X)
        assert result.standard_errors[0] == pytest.approx(1 / np.sqrt(information), rel=1e-6)

    def test_efron_equals_breslow_without_tied_events(self):
        breslow = coxph(HAND_TIME, HAND_EVENT, HAND_X, ties="breslow")
        efron = coxph(HAND_TIME, HAND_EVENT, HAND_X, ties="efron")
        assert_allclose(efron.coefficients, breslow.coefficients, rtol=1e-10)
        assert efron.ties == "efron"


class TestCoxFit:

    def test_recovers_signal(self, survival_data):
        treated = (survival_data["group"] == "treated").astype(float)
        X = np.column_stack([survival_data["x"], treated])
        result = coxph(survival_data["time"], survival_data["event"], X,
                       column_names=["x", "treated"])
        assert result.term_labels == ("x", "treated")
        assert result.coefficients[0] == pytest.approx(0.7, abs=0.35)
        assert result.coefficients[1] == pytest.approx(-0.5, abs=0.5)

    def test_likelihood_ratio_test(self, survival_data):
        result = coxph(survival_data["time"], survival_data["event"], survival_data["x"])
        statistic, df, p_value = result.likelihood_ratio_test
        null, model = result.loglik
        assert statistic == pytest.approx(2 * (model - null))
        assert statistic > 0
        assert df == 1
        assert 0.0 <= p_value <= 1.0

    def test_wald_statistics(self, survival_data):
        result = coxph(survival_data["time"], survival_data["event"], survival_data["x"])
        assert_allclose(result.z_statistics, result.coefficients / result.standard_errors)

    def test_shift_invariance(self, survival_data):
        time, event, x = survival_data["time"], survival_data["event"], survival_data["x"]
        base = coxph(time, event, x)
        shifted = coxph(time, event, x + 100.0)
        assert_allclose(shifted.coefficients, base.coefficients, rtol=1e-7)
        assert shifted.log_likelihood == pytest.approx(base.log_likelihood)

    def test_scale_equivariance(self, survival_data):
        time, event, x = survival_data["time"], survival_data["event"], survival_data["x"]
        base = coxph(time, event, x)
        doubled = coxph(time, event, 2.0 * x)
        assert doubled.coefficients[0] == pytest.approx(base.coefficients[0] / 2, rel=1e-7)

    def test_efron_differs_with_tied_events(self, survival_data):
        # Round times to create many tied events
        time = np.ceil(survival_data["time"] * 4) / 4
        event, x = survival_data["event"], survival_data["x"]
        breslow = coxph(time, event, x, ties="breslow")
        efron = coxph(time, event, x, ties="efron")
        assert efron.coefficients[0] != pytest.approx(breslow.coefficients[0], rel=1e-6)

    def test_concordance_in_range(self, survival_data):
        result = coxph(survival_data["time"], survival_data["event"], survival_data["x"])
        assert 0.5 < result.concordance <= 1.0

    def test_fitted_model_protocol(self, survival_data):
        result = coxph(survival_data["time"], survival_data["event"], survival_data["x"])
        assert isinstance(result, FittedModel)
        assert result.model_kind == 'cox'
        assert result.df_residual is None
        assert result.n_parameters == 1
        assert result.n_events == int(survival_data["event"].sum())
        assert result.info["converged"] is True
        assert result.backend_name == "cpu_cox"

    def test_summary(self, survival_data):
        text = coxph(survival_data["time"], survival_data["event"], survival_data["x"]).summary()
        assert "number of events=" in text
        assert "Likelihood ratio test" in text
        assert "Score (logrank) test" in text


class TestConcordance:

    def test_perfect_ordering(self):
        time = np.array([1.0, 2.0, 3.0, 4.0])
        assert concordance(time, np.ones(4), np.array([4.0, 3.0, 2.0, 1.0])) == 1.0

    def test_reversed_ordering(self):
        time = np.array([1.0, 2.0, 3.0, 4.0])
        assert concordance(time, np.ones(4), np.array([1.0, 2.0, 3.0, 4.0])) == 0.0

    def test_tied_scores_count_half(self):
        time = np.array([1.0, 2.0, 3.0])
        assert concordance(time, np.ones(3), np.zeros(3)) == 0.5

    def test_censored_subject_only_on_the_right(self):
        time = np.array([1.0, 2.0, 3.0])
        event = np.array([0.0, 1.0, 1.0])
        # Only the pair (2, 3) is comparable
        assert concordance(time, event, np.array([0.0, 5.0, 1.0])) == 1.0


class TestCoxFormula:

    def test_matches_array_interface(self, survival_data):
        by_formula = cox("~ x + group", survival_data, time="time", event="event")
        treated = (survival_data["group"] == "treated").astype(float)
        by_arrays = coxph(
            survival_data["time"], survival_data["event"],
            np.column_stack([survival_data["x"], treated]),
        )
        assert by_formula.term_labels == ("x", "group[T.treated]")
        assert_allclose(by_formula.coefficients, by_arrays.coefficients, rtol=1e-8)

    def test_missing_rows_dropped(self, survival_data):
        data = dict(survival_data)
        x = data["x"].copy()
        x[[0, 5]] = np.nan
        data["x"] = x
        with pytest.warns(UserWarning, match="2 row"):
            result = cox("~ x", data, time="time", event="event")
        assert result.n_observations == len(x) - 2
        assert result.info["n_dropped"] == 2
        assert 0 not in result.row_index

    def test_response_rejected(self, survival_data):
        with pytest.raises(FormulaError, match="no response"):
            cox("time ~ x", survival_data, time="time", event="event")

    def test_unknown_time_column(self, survival_data):
        with pytest.raises(FormulaError, match="not found"):
            cox("~ x", survival_data, time="duration", event="event")

    def test_accepts_frame(self, survival_data):
        frame = Frame.from_dict(survival_data)
        result = cox("~ x", frame, time="time", event="event")
        assert result.term_labels == ("x",)


class TestCoxValidation:

    def test_no_events(self):
        with pytest.raises(ValidationError, match="no events"):
            coxph(HAND_TIME, np.zeros(4), HAND_X)

    def test_invalid_ties(self):
        with pytest.raises(ValidationError, match="ties"):
            coxph(HAND_TIME, HAND_EVENT, HAND_X, ties="exact")

    def test_constant_covariate_is_aliased(self, survival_data):
        X = np.column_stack([survival_data["x"], np.ones(len(survival_data["x"]))])
        with pytest.raises(SingularMatrixError) as exc_info:
            coxph(survival_data["time"], survival_data["event"], X)
        assert exc_info.value.matrix_name == 'centred X'

    def test_float32_identical_columns_aliased(self, survival_data):
        x = survival_data["x"].astype(np.float32)
        with pytest.raises(SingularMatrixError):
            coxph(survival_data["time"], survival_data["event"], np.column_stack([x, x]))

    def test_results_do_not_share_caller_arrays(self, survival_data):
        x = survival_data["x"].copy()
        result = coxph(survival_data["time"], survival_data["event"], x)
        before = result.coefficients.copy()
        x[:] = 0.0
        assert_allclose(result.coefficients, before)
        with pytest.raises(ValueError, match="read-only"):
            result.coefficients[0] = 99.0
        with pytest.raises(ValueError, match="read-only"):
            result.row_index[0] = 5

    def test_negative_time(self):
        with pytest.raises(ValidationError, match="non-negative"):
            coxph([-1.0, 2.0, 3.0], [1, 1, 1], [0.0, 1.0, 0.0])

    def test_invalid_event_values(self):
        with pytest.raises(SchemaError):
            coxph(HAND_TIME, [1, 2, 0, 1], HAND_X)

    def test_x_row_mismatch(self):
        with pytest.raises(ValidationError):
            coxph(HAND_TIME, HAND_EVENT, np.zeros(3))

    def test_iteration_limit(self, survival_data):
        with pytest.raises(ConvergenceError) as exc_info:
            coxph(survival_data["time"], survival_data["event"], survival_data["x"], max_iter=1)
        assert exc_info.value.iterations == 1

"""
Tests for kaplan_meier() matching R survival::survfit(Surv(time, event) ~ 1).

R reference code:
    library(survival)
    fit <- survfit(Surv(time, event) ~ 1, data=...)
    summary(fit)
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from pyregkit.core.exceptions import SchemaError, ValidationError
from pyregkit.survival import KMSolution, StratifiedKMSolution, kaplan_meier


# ── Fixtures ─────────────────────────────────────────────────────────

# Classic textbook: 6 subjects, 2 censored
# R:
#   time <- c(1, 2, 3, 4, 5, 6)
#   event <- c(1, 0, 1, 0, 1, 1)
BASIC_TIME = np.array([1, 2, 3, 4, 5, 6], dtype=np.float64)
BASIC_EVENT = np.array([1, 0, 1, 0, 1, 1], dtype=np.float64)


class TestKaplanMeierBasic:
    """Basic Kaplan-Meier survival curve estimation."""

    def test_basic_survival_curve(self):
        """
        R:
            # time n.risk n.event survival std.err
            #    1      6       1    0.833   0.152
            #    3      4       1    0.625   0.196
            #    5      2       1    0.312   0.226
            #    6      1       1    0.000   NaN
        """
        result = kaplan_meier(BASIC_TIME, BASIC_EVENT)

        assert isinstance(result, KMSolution)
        assert result.n_observations == 6
        assert result.n_events_total == 4
        assert_allclose(result.time, [1, 3, 5, 6])
        assert_allclose(result.n_events, [1, 1, 1, 1])
        assert_allclose(result.n_risk, [6, 4, 2, 1])
        assert_allclose(result.n_censored, [1, 1, 0, 0])
        assert_allclose(result.survival, [5/6, 5/8, 5/16, 0.0], rtol=1e-10)

    def test_no_censoring_matches_empirical_survival(self, rng):
        time = rng.exponential(size=50)
        event = np.ones(50)
        result = kaplan_meier(time, event)
        empirical = np.array([np.mean(time > t) for t in result.time])
        assert_allclose(result.survival, empirical, atol=1e-12)

    def test_survival_is_non_increasing(self, survival_data):
        result = kaplan_meier(survival_data["time"], survival_data["event"])
        assert np.all(np.diff(result.survival) <= 0)
        assert np.all((result.survival >= 0) & (result.survival <= 1))

    def test_list_inputs(self):
        result = kaplan_meier([3.0, 1.0, 2.0], [1, 1, 0])
        assert_allclose(result.time, [1.0, 3.0])

    def test_all_censored_warns_and_returns_empty_curve(self):
        time = np.array([1, 2, 3, 4, 5], dtype=np.float64)
        with pytest.warns(UserWarning, match="no events"):
            result = kaplan_meier(time, np.zeros(5))
        assert result.n_events_total == 0
        assert len(result.time) == 0
        assert len(result.survival) == 0
        assert result.median_survival is None
        assert len(result.warnings) == 1
        assert result.survival_at(10.0) == 1.0


class TestKaplanMeierTiedTimes:

    def test_tied_events(self):
        """
        R:
            time <- c(1, 1, 2, 2, 3); event <- rep(1, 5)
            # survival 0.6, 0.2, 0.0
        """
        time = np.array([1, 1, 2, 2, 3], dtype=np.float64)
        result = kaplan_meier(time, np.ones(5))
        assert_allclose(result.time, [1, 2, 3])
        assert_allclose(result.n_events, [2, 2, 1])
        assert_allclose(result.n_risk, [5, 3, 1])
        assert_allclose(result.survival, [3/5, 1/5, 0.0], rtol=1e-10)

    def test_censored_at_event_time_still_at_risk(self):
        time = np.array([1, 1, 2, 2, 3], dtype=np.float64)
        event = np.array([1, 0, 1, 0, 1], dtype=np.float64)
        result = kaplan_meier(time, event)
        assert_allclose(result.n_risk, [5, 3, 1])
        assert_allclose(result.survival, [4/5, 4/5 * 2/3, 0.0], rtol=1e-10)


class TestKaplanMeierStepFunction:

    def test_survival_at_before_first_event(self):
        result = kaplan_meier(BASIC_TIME, BASIC_EVENT)
        assert result.survival_at(0.5) == 1.0

    def test_survival_at_is_right_continuous(self):
        result = kaplan_meier(BASIC_TIME, BASIC_EVENT)
        assert result.survival_at(3.0) == pytest.approx(5/8)
        assert result.survival_at(2.999) == pytest.approx(5/6)

    def test_survival_at_vectorized(self):
        result = kaplan_meier(BASIC_TIME, BASIC_EVENT)
        values = result.survival_at([0.0, 1.0, 4.0, 100.0])
        assert_allclose(values, [1.0, 5/6, 5/8, 0.0])

    def test_survival_after_last_time_keeps_last_value(self):
        result = kaplan_meier([1.0, 2.0, 5.0], [1, 0, 0])
        assert result.survival_at(50.0) == pytest.approx(2/3)


class TestKaplanMeierConfidenceIntervals:

    @pytest.mark.parametrize("conf_type", ["log", "plain", "log-log"])
    def test_bounds_contain_estimate(self, conf_type):
        result = kaplan_meier(BASIC_TIME, BASIC_EVENT, conf_type=conf_type)
        assert result.conf_type == conf_type
        mask = (result.survival > 0) & (result.survival < 1)
        assert np.all(result.ci_lower[mask] <= result.survival[mask] + 1e-10)
        assert np.all(result.ci_upper[mask] >= result.survival[mask] - 1e-10)
        assert np.all(result.ci_lower[mask] >= 0)
        assert np.all(result.ci_upper[mask] <= 1)

    def test_greenwood_first_step(self):
        """Var(S(1)) = (5/6)^2 * 1/(6*5)."""
        result = kaplan_meier(BASIC_TIME, BASIC_EVENT)
        assert result.se[0] == pytest.approx(np.sqrt((5/6) ** 2 / 30), rel=1e-10)

    def test_wider_at_higher_level(self):
        narrow = kaplan_meier(BASIC_TIME, BASIC_EVENT, conf_level=0.90)
        wide = kaplan_meier(BASIC_TIME, BASIC_EVENT, conf_level=0.99)
        mask = (narrow.survival > 0) & (narrow.survival < 1)
        assert np.all(
            (wide.ci_upper - wide.ci_lower)[mask]
            >= (narrow.ci_upper - narrow.ci_lower)[mask] - 1e-12
        )

    def test_unknown_conf_type(self):
        with pytest.raises(ValidationError, match="conf_type"):
            kaplan_meier(BASIC_TIME, BASIC_EVENT, conf_type="arcsine")

    def test_conf_level_out_of_range(self):
        with pytest.raises(ValidationError):
            kaplan_meier(BASIC_TIME, BASIC_EVENT, conf_level=1.5)


class TestKaplanMeierMedian:

    def test_median_exists(self):
        # S = [0.8333, 0.625, 0.3125, 0.0]
        assert kaplan_meier(BASIC_TIME, BASIC_EVENT).median_survival == pytest.approx(5.0)

    def test_median_with_tied_crossing(self):
        time = np.array([1, 2, 2, 2, 3], dtype=np.float64)
        assert kaplan_meier(time, np.ones(5)).median_survival == pytest.approx(2.0)

    def test_median_none_when_curve_stays_high(self):
        time = np.arange(1, 11, dtype=np.float64)
        event = np.zeros(10)
        event[0] = 1
        assert kaplan_meier(time, event).median_survival is None


class TestKaplanMeierStrata:

    def test_one_curve_per_group(self, survival_data):
        result = kaplan_meier(
            survival_data["time"], survival_data["event"], strata=survival_data["group"],
        )
        assert isinstance(result, StratifiedKMSolution)
        assert result.strata_labels == ("control", "treated")
        assert len(result) == 2
        n_control = int(np.sum(survival_data["group"] == "control"))
        assert result["control"].n_observations == n_control

    def test_strata_curves_match_subsets(self, survival_data):
        group = survival_data["group"]
        result = kaplan_meier(survival_data["time"], survival_data["event"], strata=group)
        treated = group == "treated"
        alone = kaplan_meier(survival_data["time"][treated], survival_data["event"][treated])
        assert_allclose(result["treated"].survival, alone.survival)
        assert_allclose(result["treated"].time, alone.time)

    def test_logrank_attached(self, survival_data):
        result = kaplan_meier(
            survival_data["time"], survival_data["event"], strata=survival_data["group"],
        )
        assert result.logrank.df == 1
        assert result.logrank.rho == 0.0
        assert set(result.median_survival) == {"control", "treated"}
        assert "Log-rank" in result.summary()

    def test_single_stratum_rejected(self):
        with pytest.raises(ValidationError, match="at least 2 groups"):
            kaplan_meier(BASIC_TIME, BASIC_EVENT, strata=["a"] * 6)


class TestKaplanMeierValidation:

    def test_negative_time(self):
        with pytest.raises(ValidationError, match="time"):
            kaplan_meier([-1.0, 2.0], [1, 1])

    def test_event_not_binary(self):
        with pytest.raises(SchemaError) as exc_info:
            kaplan_meier([1.0, 2.0], [1, 2])
        assert exc_info.value.column == 'event'

    def test_length_mismatch(self):
        with pytest.raises(ValidationError):
            kaplan_meier([1.0, 2.0, 3.0], [1, 1])

    def test_nan_time(self):
        with pytest.raises(ValidationError):
            kaplan_meier([1.0, np.nan], [1, 1])

"""
Solution wrappers for survival analysis results.

Each Solution wraps a Result[Params] and exposes user-friendly properties
with R-style summary() methods. CoxSolution also satisfies the
FittedModel protocol consumed by the reporting layer.
"""

from __future__ import annotations

from typing import Any, Mapping

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy import stats

from pyregkit.core.protocols import ModelKind
from pyregkit.core.result import Result
from pyregkit.survival._common import CoxParams, KMParams, LogRankParams


class KMSolution:
    """Kaplan-Meier survival curve solution.

    Properties mirror R's survfit() output.
    """

    __slots__ = ('_result',)

    def __init__(self, _result: Result[KMParams]) -> None:
        self._result = _result

    # -- Properties delegating to KMParams --

    @property
    def time(self) -> NDArray:
        """Distinct event times."""
        return self._result.params.time

    @property
    def survival(self) -> NDArray:
        """S(t) at each event time."""
        return self._result.params.survival

    @property
    def n_risk(self) -> NDArray:
        """Number at risk just before each event time."""
        return self._result.params.n_risk

    @property
    def n_events(self) -> NDArray:
        """Number of events at each event time."""
        return self._result.params.n_events

    @property
    def n_censored(self) -> NDArray:
        """Number censored in [t_j, t_{j+1})."""
        return self._result.params.n_censored

    @property
    def se(self) -> NDArray:
        """Greenwood standard error of S(t)."""
        return self._result.params.se

    @property
    def ci_lower(self) -> NDArray:
        """Lower confidence bound for S(t)."""
        return self._result.params.ci_lower

    @property
    def ci_upper(self) -> NDArray:
        """Upper confidence bound for S(t)."""
        return self._result.params.ci_upper

    @property
    def conf_level(self) -> float:
        return self._result.params.conf_level

    @property
    def conf_type(self) -> str:
        return self._result.params.conf_type

    @property
    def n_observations(self) -> int:
        return self._result.params.n_observations

    @property
    def n_events_total(self) -> int:
        return self._result.params.n_events_total

    @property
    def median_survival(self) -> float | None:
        """Median survival time (smallest t where S(t) <= 0.5)."""
        idx = self.survival <= 0.5
        if not idx.any():
            return None
        return float(self.time[idx][0])

    def survival_at(self, t: ArrayLike) -> NDArray | float:
        """Evaluate the right-continuous step function S(t).

        S(t) = 1 before the first event time and stays at its last
        value beyond the final event time.
        """
        t_arr = np.asarray(t, dtype=np.float64)
        idx = np.searchsorted(self.time, t_arr, side='right')
        values = np.concatenate([[1.0], self.survival])[idx]
        if t_arr.ndim == 0:
            return float(values)
        return values

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    def summary(self) -> str:
        """R-style summary of Kaplan-Meier fit."""
        lines = []
        lines.append("Call: kaplan_meier()")
        lines.append("")
        lines.append(
            f"  n={self.n_observations}, "
            f"events={self.n_events_total}"
        )
        lines.append("")

        median = self.median_survival
        median_str = f"{median:.4g}" if median is not None else "NA"
        lines.append(f"  median survival = {median_str}")
        lines.append("")

        ci_pct = int(round(self.conf_level * 100))
        lower_header = f"lower {ci_pct}%"
        upper_header = f"upper {ci_pct}%"
        lines.append(
            f"  {'time':>8s}  {'n.risk':>8s}  {'n.event':>8s}  "
            f"{'survival':>10s}  {'se':>10s}  "
            f"{lower_header:>10s}  {upper_header:>10s}"
        )

        # Show up to 20 rows
        m = len(self.time)
        show = min(m, 20)
        for i in range(show):
            lines.append(
                f"  {self.time[i]:8.4g}  {self.n_risk[i]:8.0f}  "
                f"{self.n_events[i]:8.0f}  "
                f"{self.survival[i]:10.6f}  {self.se[i]:10.6f}  "
                f"{self.ci_lower[i]:10.6f}  {self.ci_upper[i]:10.6f}"
            )
        if m > 20:
            lines.append(f"  ... ({m - 20} more rows)")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"KMSolution(n={self.n_observations}, "
            f"events={self.n_events_total}, "
            f"median={self.median_survival})"
        )


class LogRankSolution:
    """Log-rank test solution.

    Properties mirror R's survdiff() output.
    """

    __slots__ = ('_result',)

    def __init__(self, _result: Result[LogRankParams]) -> None:
        self._result = _result

    @property
    def statistic(self) -> float:
        return self._result.params.statistic

    @property
    def df(self) -> int:
        return self._result.params.df

    @property
    def p_value(self) -> float:
        return self._result.params.p_value

    @property
    def n_groups(self) -> int:
        return self._result.params.n_groups

    @property
    def observed(self) -> NDArray:
        return self._result.params.observed

    @property
    def expected(self) -> NDArray:
        return self._result.params.expected

    @property
    def variance(self) -> NDArray:
        """Variance matrix of observed minus expected."""
        return self._result.params.variance

    @property
    def n_per_group(self) -> NDArray:
        return self._result.params.n_per_group

    @property
    def rho(self) -> float:
        return self._result.params.rho

    @property
    def group_labels(self) -> tuple[str, ...]:
        return self._result.params.group_labels

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    def summary(self) -> str:
        """R-style summary of log-rank test."""
        lines = []
        lines.append("Call: survdiff()")
        lines.append("")

        lines.append(f"  {'':>12s}  {'N':>6s}  {'Observed':>10s}  {'Expected':>10s}  {'(O-E)^2/E':>10s}")
        for i in range(self.n_groups):
            oe = ((self.observed[i] - self.expected[i]) ** 2
                  / self.expected[i]) if self.expected[i] > 0 else 0.0
            label = self.group_labels[i]
            lines.append(
                f"  {label:>12s}  {self.n_per_group[i]:6.0f}  "
                f"{self.observed[i]:10.1f}  {self.expected[i]:10.1f}  "
                f"{oe:10.3f}"
            )

        lines.append("")
        lines.append(
            f"  Chisq= {self.statistic:.4f} on {self.df} degrees of freedom, "
            f"p= {self.p_value:.4g}"
        )

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"LogRankSolution(chisq={self.statistic:.4f}, "
            f"df={self.df}, p={self.p_value:.4g})"
        )


class StratifiedKMSolution:
    """One Kaplan-Meier curve per stratum plus the log-rank comparison.

    Matches R's survfit(Surv(time, event) ~ group) together with
    survdiff() on the same grouping.
    """

    __slots__ = ('_curves', '_logrank')

    def __init__(
        self,
        _curves: Mapping[str, KMSolution],
        _logrank: LogRankSolution,
    ) -> None:
        self._curves = dict(_curves)
        self._logrank = _logrank

    @property
    def strata_labels(self) -> tuple[str, ...]:
        return tuple(self._curves)

    @property
    def curves(self) -> dict[str, KMSolution]:
        return dict(self._curves)

    @property
    def logrank(self) -> LogRankSolution:
        return self._logrank

    def __getitem__(self, label: str) -> KMSolution:
        return self._curves[str(label)]

    def __len__(self) -> int:
        return len(self._curves)

    @property
    def median_survival(self) -> dict[str, float | None]:
        return {label: km.median_survival for label, km in self._curves.items()}

    def summary(self) -> str:
        lines = ["Call: kaplan_meier(strata=...)", ""]
        lines.append(f"  {'':>12s}  {'n':>6s}  {'events':>6s}  {'median':>8s}")
        for label, km in self._curves.items():
            median = km.median_survival
            median_str = f"{median:8.4g}" if median is not None else f"{'NA':>8s}"
            lines.append(
                f"  {label:>12s}  {km.n_observations:6d}  "
                f"{km.n_events_total:6d}  {median_str}"
            )
        lines.append("")
        lines.append(
            f"  Log-rank Chisq= {self._logrank.statistic:.4f} on "
            f"{self._logrank.df} degrees of freedom, "
            f"p= {self._logrank.p_value:.4g}"
        )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"StratifiedKMSolution(strata={list(self._curves)}, "
            f"logrank_p={self._logrank.p_value:.4g})"
        )


class CoxSolution:
    """Cox proportional hazards solution.

    Properties mirror R's coxph() output.
    """

    __slots__ = ('_result', '_column_names', '_row_index')

    def __init__(
        self,
        _result: Result[CoxParams],
        _column_names: tuple[str, ...],
        _row_index: NDArray,
    ) -> None:
        self._result = _result
        self._column_names = _column_names
        self._row_index = _row_index

    # -- FittedModel protocol --

    @property
    def model_kind(self) -> ModelKind:
        return 'cox'

    @property
    def estimates(self) -> NDArray:
        return self._result.params.coefficients

    @property
    def vcov(self) -> NDArray:
        return self._result.params.covariance

    @property
    def term_labels(self) -> tuple[str, ...]:
        return self._column_names

    @property
    def df_residual(self) -> None:
        return None

    @property
    def log_likelihood(self) -> float:
        """Log partial likelihood at the estimate."""
        return self._result.params.loglik[1]

    @property
    def n_observations(self) -> int:
        return self._result.params.n_observations

    @property
    def n_parameters(self) -> int:
        return len(self._result.params.coefficients)

    @property
    def row_index(self) -> NDArray:
        return self._row_index

    # -- Cox-specific --

    @property
    def coefficients(self) -> NDArray:
        """Log hazard ratios."""
        return self._result.params.coefficients

    @property
    def hazard_ratios(self) -> NDArray:
        return np.exp(self._result.params.coefficients)

    @property
    def standard_errors(self) -> NDArray:
        return np.sqrt(np.maximum(np.diag(self.vcov), 0.0))

    @property
    def z_statistics(self) -> NDArray:
        return self.coefficients / self.standard_errors

    @property
    def p_values(self) -> NDArray:
        return 2.0 * stats.norm.sf(np.abs(self.z_statistics))

    @property
    def loglik(self) -> tuple[float, float]:
        """(null, model) log partial likelihood."""
        return self._result.params.loglik

    @property
    def likelihood_ratio_test(self) -> tuple[float, int, float]:
        """(statistic, df, p-value) for H0: β = 0."""
        null, model = self.loglik
        statistic = 2.0 * (model - null)
        df = self.n_parameters
        return statistic, df, float(stats.chi2.sf(statistic, df))

    @property
    def score_test(self) -> tuple[float, int, float]:
        """(statistic, df, p-value) of the score test at β = 0."""
        statistic = self._result.params.score_statistic
        df = self.n_parameters
        return statistic, df, float(stats.chi2.sf(statistic, df))

    @property
    def concordance(self) -> float:
        return self._result.params.concordance

    @property
    def n_events(self) -> int:
        return self._result.params.n_events

    @property
    def n_iter(self) -> int:
        return self._result.params.n_iter

    @property
    def ties(self) -> str:
        return self._result.params.ties

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    def summary(self) -> str:
        """R-style summary of Cox PH fit."""
        lines = []
        lines.append("Call: coxph()")
        lines.append("")
        lines.append(
            f"  n= {self.n_observations}, "
            f"number of events= {self.n_events}"
        )
        lines.append("")

        width = max([len(n) for n in self.term_labels] + [10])
        lines.append(
            f"  {'':>{width}s}  {'coef':>10s}  {'exp(coef)':>10s}  "
            f"{'se(coef)':>10s}  {'z':>10s}  {'Pr(>|z|)':>12s}"
        )
        for i, name in enumerate(self.term_labels):
            lines.append(
                f"  {name:>{width}s}  {self.coefficients[i]:10.6f}  "
                f"{self.hazard_ratios[i]:10.6f}  "
                f"{self.standard_errors[i]:10.6f}  "
                f"{self.z_statistics[i]:10.4f}  "
                f"{self.p_values[i]:12.4g}"
            )

        lines.append("")
        lines.append(f"  Concordance= {self.concordance:.4f}")
        lr_stat, df, lr_p = self.likelihood_ratio_test
        lines.append(
            f"  Likelihood ratio test= {lr_stat:.4f} on {df} df, p={lr_p:.4g}"
        )
        sc_stat, _, sc_p = self.score_test
        lines.append(
            f"  Score (logrank) test = {sc_stat:.4f} on {df} df, p={sc_p:.4g}"
        )

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"CoxSolution(n={self.n_observations}, "
            f"events={self.n_events}, "
            f"concordance={self.concordance:.4f})"
        )

"""
Kaplan-Meier product-limit estimator.

Matches R's survival::survfit(Surv(time, event) ~ 1):
- Product-limit survival estimate: S(t) = ∏(1 - d_j / n_j)
- Greenwood variance: Var(S(t)) = S(t)^2 * Σ(d_j / (n_j * (n_j - d_j)))
- Confidence intervals via log, plain, or log-log transformation

The risk set at t_j is every subject with time ≥ t_j, so a subject
censored at t_j still counts at risk for the events at t_j.

References:
    Kaplan, E. L., & Meier, P. (1958). Nonparametric estimation from
        incomplete observations. JASA, 53(282), 457-481.
    R Core Team. survival::survfit.formula
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pyregkit.core.exceptions import ValidationError
from pyregkit.survival._common import KMParams

CONF_TYPES = ("log", "plain", "log-log")


def kaplan_meier_fit(
    time: NDArray,
    event: NDArray,
    conf_level: float,
    conf_type: str,
) -> KMParams:
    """Compute Kaplan-Meier survival curve.

    Parameters
    ----------
    time : NDArray
        (n,) time to event or censoring.
    event : NDArray
        (n,) event indicator (1=event, 0=censored).
    conf_level : float
        Confidence level for CI (e.g. 0.95).
    conf_type : str
        CI type: "log" (default, matches R), "plain", "log-log".

    Returns
    -------
    KMParams
    """
    n_total = len(time)
    is_event = event == 1

    all_sorted = np.sort(time)
    event_sorted = np.sort(time[is_event])
    cens_sorted = np.sort(time[~is_event])

    event_times = np.unique(event_sorted)
    if len(event_times) == 0:
        empty = np.array([], dtype=np.float64)
        return KMParams(
            time=empty, survival=empty, n_risk=empty, n_events=empty,
            n_censored=empty, se=empty, ci_lower=empty, ci_upper=empty,
            conf_level=conf_level, conf_type=conf_type,
            n_observations=n_total, n_events_total=0,
            n_censored_before=len(cens_sorted),
        )

    # n_j: subjects with time ≥ t_j
    n_risk = (n_total - np.searchsorted(all_sorted, event_times, side='left')).astype(np.float64)
    n_events = (
        np.searchsorted(event_sorted, event_times, side='right')
        - np.searchsorted(event_sorted, event_times, side='left')
    ).astype(np.float64)

    next_times = np.append(event_times[1:], np.inf)
    n_censored = (
        np.searchsorted(cens_sorted, next_times, side='left')
        - np.searchsorted(cens_sorted, event_times, side='left')
    ).astype(np.float64)
    n_censored_before = int(np.searchsorted(cens_sorted, event_times[0], side='left'))

    survival = np.cumprod(1.0 - n_events / n_risk)

    # Greenwood; the term is undefined once everyone at risk has failed
    denom = n_risk * (n_risk - n_events)
    denom = np.where(denom > 0, denom, np.inf)
    se = np.sqrt(survival ** 2 * np.cumsum(n_events / denom))

    z = stats.norm.ppf((1.0 + conf_level) / 2.0)
    ci_lower, ci_upper = compute_ci(survival, se, z, conf_type)

    return KMParams(
        time=event_times,
        survival=survival,
        n_risk=n_risk,
        n_events=n_events,
        n_censored=n_censored,
        se=se,
        ci_lower=ci_lower,
        ci_upper=ci_upper,
        conf_level=conf_level,
        conf_type=conf_type,
        n_observations=n_total,
        n_events_total=int(np.sum(is_event)),
        n_censored_before=n_censored_before,
    )


def compute_ci(
    survival: NDArray,
    se: NDArray,
    z: float,
    conf_type: str,
) -> tuple[NDArray, NDArray]:
    """Compute CI for survival function.

    Parameters
    ----------
    survival : S(t) values
    se : Greenwood standard errors
    z : normal quantile (e.g. 1.96 for 95%)
    conf_type : "log", "plain", or "log-log"

    Returns
    -------
    (ci_lower, ci_upper) clipped to [0, 1]
    """
    with np.errstate(divide='ignore', invalid='ignore'):
        if conf_type == "plain":
            ci_lower = survival - z * se
            ci_upper = survival + z * se

        elif conf_type == "log":
            # se of log(S) = se(S) / S
            se_log = se / survival
            ci_lower = survival * np.exp(-z * se_log)
            ci_upper = survival * np.exp(z * se_log)

        elif conf_type == "log-log":
            # se of log(-log(S)) = se(S) / (S |log S|)
            log_s = np.log(survival)
            se_loglog = se / (survival * np.abs(log_s))
            log_neg_log_s = np.log(-log_s)
            ci_lower = np.exp(-np.exp(log_neg_log_s + z * se_loglog))
            ci_upper = np.exp(-np.exp(log_neg_log_s - z * se_loglog))

        else:
            raise ValidationError(
                f"conf_type must be one of {CONF_TYPES}, got {conf_type!r}"
            )

    ci_lower = np.clip(ci_lower, 0.0, 1.0)
    ci_upper = np.clip(ci_upper, 0.0, 1.0)

    # S = 0 or S = 1 leave the transformed scale undefined
    ci_lower = np.where(np.isnan(ci_lower), 0.0, ci_lower)
    ci_upper = np.where(np.isnan(ci_upper), 1.0, ci_upper)

    return ci_lower, ci_upper

"""
Cox proportional hazards model via Newton-Raphson.

Implements Breslow's and Efron's methods for tied event times,
matching R's survival::coxph(ties=...).

Breslow partial likelihood:
    L(β) = Σ_j [ Σ_{i ∈ D_j} x_i'β - d_j log Σ_{l ∈ R_j} exp(x_l'β) ]

Efron partial likelihood:
    L(β) = Σ_j [ Σ_{i ∈ D_j} x_i'β
            - Σ_{s=0}^{d_j-1} log(Σ_{l ∈ R_j} exp(x_l'β)
                - (s/d_j) Σ_{i ∈ D_j} exp(x_i'β)) ]

where D_j is the set of events at t_j, d_j = |D_j| and R_j is the risk
set at t_j (every subject with time ≥ t_j).

Risk-set sums come from reverse cumulative sums over the subjects
sorted by time, so each evaluation is O(n p²).

References:
    Cox, D. R. (1972). Regression models and life-tables. JRSS-B, 34(2), 187-220.
    Efron, B. (1977). The efficiency of Cox's likelihood function for
        censored data. JASA, 72(359), 557-565.
    R Core Team. survival::coxph, agreg.fit
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pyregkit.core.compute.optimization.newton import (
    invert_information,
    newton_raphson,
)
from pyregkit.survival._common import CoxParams

TIES_METHODS = ("breslow", "efron")

# Cap on max|Δβ| per Newton step so exp(x'β) stays finite
_MAX_STEP = 5.0


class _RiskSets:
    """Event-time bookkeeping for the partial likelihood.

    Each event contributes one term; term k belongs to event time j(k)
    and carries the Efron fraction s/d_j (zero for Breslow).
    """

    def __init__(self, time: NDArray, event: NDArray, X: NDArray, ties: str):
        order = np.argsort(time, kind='stable')
        self.time = time[order]
        self.event = event[order]
        self.X = X[order]

        is_event = self.event == 1
        self.event_times, d = np.unique(self.time[is_event], return_counts=True)
        self.d = d

        # First sorted index in each risk set
        self.start = np.searchsorted(self.time, self.event_times, side='left')
        # Event time of each event subject
        self.event_rows = np.flatnonzero(is_event)
        self.event_slot = np.searchsorted(
            self.event_times, self.time[self.event_rows], side='left',
        )

        self.term_slot = np.repeat(np.arange(len(d)), d)
        if ties == "efron":
            within = np.arange(len(self.term_slot)) - np.repeat(np.cumsum(d) - d, d)
            self.term_frac = within / np.repeat(d, d)
        else:
            self.term_frac = np.zeros(len(self.term_slot), dtype=np.float64)

    def evaluate(self, beta: NDArray) -> tuple[float, NDArray, NDArray]:
        """Partial log-likelihood, score and observed information at β."""
        X = self.X
        m = len(self.event_times)
        p = X.shape[1]

        eta = X @ beta
        # Shift cancels between numerator and denominator
        eta = eta - np.max(eta)
        w = np.exp(eta)
        wX = X * w[:, np.newaxis]
        wXX = wX[:, :, np.newaxis] * X[:, np.newaxis, :]

        S0 = np.cumsum(w[::-1])[::-1][self.start]
        S1 = np.cumsum(wX[::-1], axis=0)[::-1][self.start]
        S2 = np.cumsum(wXX[::-1], axis=0)[::-1][self.start]

        rows = self.event_rows
        D0 = np.zeros(m)
        D1 = np.zeros((m, p))
        D2 = np.zeros((m, p, p))
        np.add.at(D0, self.event_slot, w[rows])
        np.add.at(D1, self.event_slot, wX[rows])
        np.add.at(D2, self.event_slot, wXX[rows])

        j = self.term_slot
        frac = self.term_frac
        denom = S0[j] - frac * D0[j]
        mean = (S1[j] - frac[:, np.newaxis] * D1[j]) / denom[:, np.newaxis]
        second = (
            (S2[j] - frac[:, np.newaxis, np.newaxis] * D2[j])
            / denom[:, np.newaxis, np.newaxis]
        )

        loglik = float(np.sum(eta[rows]) - np.sum(np.log(denom)))
        score = X[rows].sum(axis=0) - mean.sum(axis=0)
        information = (second - mean[:, :, np.newaxis] * mean[:, np.newaxis, :]).sum(axis=0)
        return loglik, score, information


def cox_fit(
    time: NDArray,
    event: NDArray,
    X: NDArray,
    ties: str = "breslow",
    tol: float = 1e-9,
    max_iter: int = 20,
) -> CoxParams:
    """Fit Cox proportional hazards model.

    Parameters
    ----------
    time : NDArray
        (n,) time to event or censoring.
    event : NDArray
        (n,) event indicator (1=event, 0=censored). At least one event.
    X : NDArray
        (n, p) covariate matrix (NO intercept), full column rank after
        centring.
    ties : str
        "breslow" (default) or "efron".
    tol : float
        Convergence tolerance (max absolute change in β).
    max_iter : int
        Maximum Newton-Raphson iterations.

    Returns
    -------
    CoxParams
    """
    n, p = X.shape
    risk = _RiskSets(time, event, X, ties)

    beta0 = np.zeros(p, dtype=np.float64)
    null_loglik, score0, info0 = risk.evaluate(beta0)
    score_statistic = float(
        score0 @ invert_information(info0, 'Cox information matrix') @ score0
    )

    fit = newton_raphson(
        risk.evaluate,
        beta0,
        tol=tol,
        max_iter=max_iter,
        max_step=_MAX_STEP,
        matrix_name='Cox information matrix',
    )
    covariance = invert_information(fit.information, 'Cox information matrix')

    return CoxParams(
        coefficients=fit.params,
        covariance=covariance,
        loglik=(float(null_loglik), fit.log_likelihood),
        score_statistic=score_statistic,
        concordance=concordance(time, event, X @ fit.params),
        n_events=int(np.sum(event == 1)),
        n_observations=n,
        n_iter=fit.n_iter,
        final_change=fit.final_change,
        ties=ties,
    )


def concordance(time: NDArray, event: NDArray, risk_score: NDArray) -> float:
    """Harrell's concordance statistic (C-statistic).

    A pair (i, j) is comparable when subject i has an event and
    time_j > time_i; it is concordant when risk_i > risk_j. Tied risk
    scores count one half.
    """
    order = np.argsort(time, kind='stable')
    t = time[order]
    e = event[order]
    r = risk_score[order]

    concordant = 0.0
    tied = 0.0
    total = 0.0
    for i in np.flatnonzero(e == 1):
        later = r[np.searchsorted(t, t[i], side='right'):]
        if later.size == 0:
            continue
        concordant += np.sum(r[i] > later)
        tied += np.sum(r[i] == later)
        total += later.size

    if total == 0:
        return 0.5
    return float((concordant + 0.5 * tied) / total)

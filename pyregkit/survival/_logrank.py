"""
Log-rank test (G-rho family) for comparing survival curves across groups.

Matches R's survival::survdiff(Surv(time, event) ~ group, rho=0):
- Standard log-rank test (rho=0): Mantel-Haenszel
- G-rho family (rho>0): Fleming-Harrington weighted variant
  When rho=1, gives the Peto & Peto modification of the Gehan-Wilcoxon test.

At each distinct event time t_j, with n_kj at risk and d_kj events in
group k, N_j and D_j the totals and w_j = S(t_j-)^rho from the pooled
Kaplan-Meier curve:

    O_k = Σ_j w_j d_kj
    E_k = Σ_j w_j n_kj D_j / N_j
    V   = Σ_j w_j² D_j (N_j - D_j) / (N_j² (N_j - 1)) (N_j diag(n_j) - n_j n_jᵀ)

The statistic (O - E)ᵀ V⁻ (O - E) on the first K-1 groups is χ² on K-1 df.

References:
    Harrington, D. P. & Fleming, T. R. (1982). A class of rank test
        procedures for censored survival data. Biometrika, 69(3), 553-566.
    R Core Team. survival::survdiff
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pyregkit.core.exceptions import ValidationError
from pyregkit.survival._common import LogRankParams


def group_codes(group: NDArray) -> tuple[NDArray, tuple[str, ...]]:
    """Map group labels to 0..K-1 codes; labels sorted as strings."""
    labels = np.array([str(g) for g in group], dtype=object)
    unique, codes = np.unique(labels, return_inverse=True)
    return codes.astype(np.intp), tuple(str(u) for u in unique)


def logrank_test(
    time: NDArray,
    event: NDArray,
    group: NDArray,
    rho: float = 0.0,
) -> LogRankParams:
    """Compute log-rank test (G-rho family).

    Parameters
    ----------
    time : NDArray
        (n,) time to event or censoring.
    event : NDArray
        (n,) event indicator (1=event, 0=censored).
    group : NDArray
        (n,) group labels.
    rho : float
        G-rho weight parameter: rho=0 is standard log-rank,
        rho=1 is Peto & Peto / Gehan-Wilcoxon.

    Raises
    ------
    ValidationError
        If fewer than two groups are present.
    """
    codes, labels = group_codes(group)
    n_groups = len(labels)
    if n_groups < 2:
        raise ValidationError(
            f"Need at least 2 groups for log-rank test, got {n_groups}"
        )

    n_per_group = np.bincount(codes, minlength=n_groups).astype(np.float64)
    is_event = event == 1
    event_times = np.unique(time[is_event])
    df = n_groups - 1

    if len(event_times) == 0:
        zeros = np.zeros(n_groups, dtype=np.float64)
        return LogRankParams(
            statistic=0.0, df=df, p_value=1.0, n_groups=n_groups,
            observed=zeros, expected=zeros.copy(),
            variance=np.zeros((n_groups, n_groups)),
            n_per_group=n_per_group, rho=rho, group_labels=labels,
        )

    m = len(event_times)
    n_kg = np.zeros((m, n_groups), dtype=np.float64)
    d_kg = np.zeros((m, n_groups), dtype=np.float64)
    for k in range(n_groups):
        in_k = codes == k
        t_k = np.sort(time[in_k])
        e_k = np.sort(time[in_k & is_event])
        n_kg[:, k] = len(t_k) - np.searchsorted(t_k, event_times, side='left')
        d_kg[:, k] = (
            np.searchsorted(e_k, event_times, side='right')
            - np.searchsorted(e_k, event_times, side='left')
        )

    D = d_kg.sum(axis=1)
    N = n_kg.sum(axis=1)

    if rho == 0.0:
        weights = np.ones(m, dtype=np.float64)
    else:
        # Pooled KM just before each event time
        surv = np.cumprod(1.0 - D / N)
        s_before = np.concatenate([[1.0], surv[:-1]])
        weights = s_before ** rho

    observed = weights @ d_kg
    expected = weights @ (n_kg * (D / N)[:, np.newaxis])

    with np.errstate(divide='ignore', invalid='ignore'):
        factor = np.where(
            N > 1, weights ** 2 * D * (N - D) / (N ** 2 * (N - 1)), 0.0,
        )
    V = (
        np.diag(np.sum((factor * N)[:, np.newaxis] * n_kg, axis=0))
        - np.einsum('j,jk,jl->kl', factor, n_kg, n_kg)
    )

    # Σ(O - E) = 0, so the last group is redundant
    diff = (observed - expected)[:df]
    statistic = float(diff @ np.linalg.pinv(V[:df, :df]) @ diff)
    p_value = float(stats.chi2.sf(statistic, df))

    return LogRankParams(
        statistic=statistic,
        df=df,
        p_value=p_value,
        n_groups=n_groups,
        observed=observed,
        expected=expected,
        variance=V,
        n_per_group=n_per_group,
        rho=rho,
        group_labels=labels,
    )

"""
Public API for survival analysis.

    kaplan_meier(time, event, strata=None) → KMSolution | StratifiedKMSolution
    survdiff(time, event, group) → LogRankSolution
    coxph(time, event, X) → CoxSolution
    cox(formula, data, time=..., event=...) → CoxSolution

Each function validates inputs, creates a SurvivalDesign, runs the
estimator and wraps the Result in a Solution.
"""

from __future__ import annotations

import warnings
from typing import Any, Literal, Sequence

import numpy as np
from numpy.typing import ArrayLike

from pyregkit.core.compute.linalg.qr import check_full_rank, qr_decompose
from pyregkit.core.compute.timing import Timer
from pyregkit.core.exceptions import FormulaError, ValidationError
from pyregkit.core.result import Result
from pyregkit.core.validation import check_conf_level, check_iteration_control
from pyregkit.formula.design import build_design
from pyregkit.formula.formula import Formula
from pyregkit.frame.frame import as_frame
from pyregkit.survival._cox import TIES_METHODS, cox_fit
from pyregkit.survival._km import CONF_TYPES, kaplan_meier_fit
from pyregkit.survival._logrank import group_codes, logrank_test
from pyregkit.survival.design import SurvivalDesign
from pyregkit.survival.solution import (
    CoxSolution,
    KMSolution,
    LogRankSolution,
    StratifiedKMSolution,
)


def kaplan_meier(
    time: ArrayLike,
    event: ArrayLike,
    *,
    strata: ArrayLike | None = None,
    conf_level: float = 0.95,
    conf_type: Literal["log", "plain", "log-log"] = "log",
) -> KMSolution | StratifiedKMSolution:
    """Kaplan-Meier survival curve estimation.

    Matches R's survival::survfit(Surv(time, event) ~ 1), or
    survfit(Surv(time, event) ~ strata) when strata is given.

    Parameters
    ----------
    time : array-like
        Time to event or censoring.
    event : array-like
        Event indicator (1=event, 0=censored).
    strata : array-like or None
        Group labels. When given, one curve is fitted per group and the
        groups are compared with the log-rank test.
    conf_level : float
        Confidence level for CI (default 0.95).
    conf_type : str
        CI transformation: "log" (R default), "plain", "log-log".

    Returns
    -------
    KMSolution, or StratifiedKMSolution when strata is given
    """
    design = SurvivalDesign.for_survival(time, event, strata=strata)
    check_conf_level(conf_level)
    if conf_type not in CONF_TYPES:
        raise ValidationError(
            f"conf_type must be one of {CONF_TYPES}, got {conf_type!r}"
        )

    if design.strata is None:
        return _km_curve(design.time, design.event, conf_level, conf_type, label=None)

    codes, labels = group_codes(design.strata)
    if len(labels) < 2:
        raise ValidationError(
            f"strata must contain at least 2 groups, got {len(labels)}"
        )

    curves = {}
    for k, label in enumerate(labels):
        in_k = codes == k
        curves[label] = _km_curve(
            design.time[in_k], design.event[in_k], conf_level, conf_type, label=label,
        )

    logrank = _logrank(design, design.strata, rho=0.0)
    return StratifiedKMSolution(_curves=curves, _logrank=logrank)


def _km_curve(time, event, conf_level, conf_type, *, label) -> KMSolution:
    timer = Timer()
    timer.start()

    with timer.section('product_limit'):
        params = kaplan_meier_fit(time, event, conf_level=conf_level, conf_type=conf_type)

    timer.stop()

    notes = []
    if params.n_events_total == 0:
        where = f" in stratum {label!r}" if label is not None else ""
        msg = f"no events observed{where}; the survival curve is empty"
        warnings.warn(msg, UserWarning, stacklevel=3)
        notes.append(msg)

    result = Result(
        params=params,
        info={"method": "Kaplan-Meier", "stratum": label},
        timing=timer.result(),
        backend_name="cpu_km",
        warnings=tuple(notes),
    )
    return KMSolution(_result=result)


def survdiff(
    time: ArrayLike,
    event: ArrayLike,
    group: ArrayLike,
    *,
    rho: float = 0.0,
) -> LogRankSolution:
    """Log-rank test (and G-rho family).

    Matches R's survival::survdiff().

    Parameters
    ----------
    time : array-like
        Time to event or censoring.
    event : array-like
        Event indicator (1=event, 0=censored).
    group : array-like
        Group labels (e.g. treatment vs control).
    rho : float
        G-rho weight parameter. rho=0 (default) gives the standard
        log-rank test. rho=1 gives Peto & Peto / Gehan-Wilcoxon.

    Returns
    -------
    LogRankSolution
    """
    design = SurvivalDesign.for_survival(time, event, strata=group)
    if not np.isfinite(rho) or rho < 0:
        raise ValidationError(f"rho must be a non-negative number, got {rho}")
    return _logrank(design, design.strata, rho=rho)


def _logrank(design: SurvivalDesign, group, *, rho: float) -> LogRankSolution:
    timer = Timer()
    timer.start()

    with timer.section('logrank'):
        params = logrank_test(design.time, design.event, group, rho=rho)

    timer.stop()

    notes = []
    if design.n_events == 0:
        msg = "no events observed; the log-rank statistic is 0"
        warnings.warn(msg, UserWarning, stacklevel=3)
        notes.append(msg)

    result = Result(
        params=params,
        info={"method": "Log-rank test", "rho": rho},
        timing=timer.result(),
        backend_name="cpu_logrank",
        warnings=tuple(notes),
    )
    return LogRankSolution(_result=result)


def coxph(
    time: ArrayLike,
    event: ArrayLike,
    X: ArrayLike,
    *,
    ties: Literal["breslow", "efron"] = "breslow",
    tol: float = 1e-9,
    max_iter: int = 20,
    column_names: Sequence[str] | None = None,
) -> CoxSolution:
    """Cox proportional hazards model.

    Matches R's survival::coxph(Surv(time, event) ~ X, ties=ties).

    Parameters
    ----------
    time : array-like
        Time to event or censoring.
    event : array-like
        Event indicator (1=event, 0=censored).
    X : array-like
        Covariate matrix (n, p). No intercept: the baseline hazard absorbs it.
    ties : str
        Method for handling tied event times: "breslow" (default) or "efron".
    tol : float
        Convergence tolerance on max|Δβ|.
    max_iter : int
        Maximum Newton-Raphson iterations.
    column_names : sequence of str or None
        Labels for the columns of X.

    Returns
    -------
    CoxSolution

    Raises
    ------
    ValidationError
        If no events are observed.
    SingularMatrixError
        If the centred covariates are rank-deficient.
    ConvergenceError
        If Newton-Raphson does not converge in max_iter iterations.
    """
    design = SurvivalDesign.for_survival(time, event, X, column_names=column_names)
    return _cox(design, ties=ties, tol=tol, max_iter=max_iter)


def cox(
    formula: str | Formula,
    data: Any,
    *,
    time: str,
    event: str,
    ties: Literal["breslow", "efron"] = "breslow",
    tol: float = 1e-9,
    max_iter: int = 20,
) -> CoxSolution:
    """Cox proportional hazards model from a response-less formula.

    Parameters
    ----------
    formula : str or Formula
        Right-hand side only, e.g. "~ age + treatment".
    data : Frame, mapping or pandas DataFrame
    time, event : str
        Names of the time and event indicator columns.

    Rows with a missing value in any formula column, time or event are
    dropped with a warning.
    """
    if isinstance(formula, str):
        formula = Formula.parse(formula)
    if formula.response is not None:
        raise FormulaError(
            f"Cox formulas have no response; pass time= and event= instead "
            f"of {formula.response!r} ~ ...",
            term=formula.response,
        )

    matrix = build_design(
        as_frame(data), formula, intercept=False, extra_columns=(time, event),
    )
    design = SurvivalDesign.for_survival(
        matrix.data.numeric(time),
        matrix.data.numeric(event),
        matrix.X,
        column_names=matrix.column_names,
        row_index=matrix.row_index,
        n_dropped=matrix.n_dropped,
        warnings=matrix.warnings,
    )
    return _cox(design, ties=ties, tol=tol, max_iter=max_iter)


def _cox(
    design: SurvivalDesign,
    *,
    ties: str,
    tol: float,
    max_iter: int,
) -> CoxSolution:
    if design.X is None:
        raise ValidationError("X (covariates) is required for coxph()")
    if ties not in TIES_METHODS:
        raise ValidationError(f"ties must be one of {TIES_METHODS}, got {ties!r}")
    check_iteration_control(tol, max_iter)
    if design.n_events == 0:
        raise ValidationError(
            "no events observed; the Cox partial likelihood is undefined"
        )

    timer = Timer()
    timer.start()

    # Partial likelihood is invariant to shifts, so a constant column is aliased
    with timer.section('rank_check'):
        centred = design.X - design.X.mean(axis=0)
        check_full_rank(
            qr_decompose(centred), design.p,
            matrix_name='centred X', column_names=design.column_names,
        )

    with timer.section('newton'):
        params = cox_fit(
            design.time, design.event, design.X,
            ties=ties, tol=tol, max_iter=max_iter,
        )

    timer.stop()

    result = Result(
        params=params,
        info={
            "method": "Cox PH",
            "ties": ties,
            "iterations": params.n_iter,
            "final_change": params.final_change,
            "converged": True,
            "n_dropped": design.n_dropped,
        },
        timing=timer.result(),
        backend_name="cpu_cox",
        warnings=design.warnings,
    )
    return CoxSolution(
        _result=result,
        _column_names=design.column_names,
        _row_index=design.row_index,
    )

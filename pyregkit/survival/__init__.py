"""
Survival analysis.

Public API:
    kaplan_meier(time, event, strata=None) -> KMSolution | StratifiedKMSolution
    survdiff(time, event, group, rho=0) -> LogRankSolution
    coxph(time, event, X, ties='breslow') -> CoxSolution
    cox(formula, data, time=..., event=...) -> CoxSolution
"""

from pyregkit.survival._common import CoxParams, KMParams, LogRankParams
from pyregkit.survival.design import SurvivalDesign
from pyregkit.survival.solution import (
    CoxSolution,
    KMSolution,
    LogRankSolution,
    StratifiedKMSolution,
)
from pyregkit.survival.solvers import cox, coxph, kaplan_meier, survdiff

__all__ = [
    "kaplan_meier",
    "survdiff",
    "coxph",
    "cox",
    "SurvivalDesign",
    "KMSolution",
    "StratifiedKMSolution",
    "LogRankSolution",
    "CoxSolution",
    "KMParams",
    "LogRankParams",
    "CoxParams",
]

"""
Reporting for fitted models.

Public API:
    coef_table(model, conf_level=0.95, exponentiate=False, method='wald')
        → CoefficientTable
    goodness_of_fit(model) → GoodnessOfFit
    diagnostics(model) → Diagnostics   (linear models only)

Every function accepts any object satisfying core.protocols.FittedModel.
"""

from pyregkit.reporting.coefficients import CoefficientTable, coef_table
from pyregkit.reporting.diagnostics import Diagnostics, diagnostics, ppoints
from pyregkit.reporting.fit import GoodnessOfFit, goodness_of_fit

__all__ = [
    "coef_table",
    "CoefficientTable",
    "goodness_of_fit",
    "GoodnessOfFit",
    "diagnostics",
    "Diagnostics",
    "ppoints",
]

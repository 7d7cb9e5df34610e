"""
Models for categorical outcomes.

Public API:
    multinomial(formula, data, baseline=None) → MultinomialSolution
    fit_multinomial(X, y, levels, baseline=0) → MultinomialSolution
    ordinal(formula, data) → OrdinalSolution
    fit_ordinal(X, y, levels) → OrdinalSolution
"""

from pyregkit.categorical._common import MultinomialParams, OrdinalParams
from pyregkit.categorical.solution import MultinomialSolution, OrdinalSolution
from pyregkit.categorical.solvers import (
    fit_multinomial,
    fit_ordinal,
    multinomial,
    ordinal,
)

__all__ = [
    "multinomial",
    "fit_multinomial",
    "ordinal",
    "fit_ordinal",
    "MultinomialSolution",
    "OrdinalSolution",
    "MultinomialParams",
    "OrdinalParams",
]

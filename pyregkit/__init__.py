"""
PyRegKit: regression modelling on tabular data.

Immutable data frames, R-style formulas with treatment coding, and
closed-form or iterative fitters whose results share one reporting layer.

Submodules:
    frame: Immutable typed data frames
    formula: Formula parsing and design-matrix construction
    regression: Linear models and GLMs (binomial, Poisson, Gaussian)
    categorical: Multinomial and proportional-odds logistic regression
    survival: Kaplan-Meier, log-rank test, Cox proportional hazards
    reporting: Coefficient tables, goodness of fit, diagnostics
"""

__version__ = "0.1.0"

from pyregkit import frame
from pyregkit import formula
from pyregkit import regression
from pyregkit import categorical
from pyregkit import survival
from pyregkit import reporting

__all__ = [
    "__version__",
    "frame",
    "formula",
    "regression",
    "categorical",
    "survival",
    "reporting",
]

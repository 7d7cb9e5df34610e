"""
Linear and generalized linear models.

Public API:
    fit(X, y, family=None, ...) -> LinearSolution | GLMSolution
    lm(formula, data) -> LinearSolution
    glm(formula, data, family='gaussian', ...) -> GLMSolution

Example:
    >>> from pyregkit.regression import lm, glm
    >>> model = lm("bmi ~ age + sex", frame)
    >>> print(model.summary())
    >>> logit = glm("smoker ~ age", frame, family='binomial')
"""

from pyregkit.regression.design import RegressionDesign
from pyregkit.regression.families import (
    Binomial,
    Family,
    Gaussian,
    IdentityLink,
    Link,
    LogitLink,
    LogLink,
    Poisson,
    ProbitLink,
    resolve_family,
)
from pyregkit.regression.solution import (
    GLMParams,
    GLMSolution,
    LinearParams,
    LinearSolution,
)
from pyregkit.regression.solvers import fit, glm, lm

__all__ = [
    "fit",
    "lm",
    "glm",
    "RegressionDesign",
    "LinearSolution",
    "LinearParams",
    "GLMSolution",
    "GLMParams",
    "Family",
    "Gaussian",
    "Binomial",
    "Poisson",
    "Link",
    "IdentityLink",
    "LogitLink",
    "LogLink",
    "ProbitLink",
    "resolve_family",
]

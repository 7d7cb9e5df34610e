"""
Solver dispatch for regression.

This module provides the public fitting functions:

    fit(X, y)                           OLS on arrays
    fit(X, y, family='binomial')        GLM on arrays
    lm(formula, data)                   OLS from a formula
    glm(formula, data, family=...)      GLM from a formula

All input validation happens here; backends trust their inputs.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import ArrayLike

from pyregkit.core.exceptions import ValidationError
from pyregkit.core.validation import check_iteration_control
from pyregkit.formula.design import DesignMatrix, build_design
from pyregkit.formula.formula import Formula
from pyregkit.frame.frame import as_frame
from pyregkit.regression.backends.cpu import CPUQRBackend
from pyregkit.regression.backends.cpu_glm import CPUIRLSBackend
from pyregkit.regression.design import RegressionDesign
from pyregkit.regression.families import Family, Link, resolve_family
from pyregkit.regression.solution import GLMSolution, LinearSolution


def fit(
    X: ArrayLike,
    y: ArrayLike,
    *,
    family: str | Family | None = None,
    link: str | Link | None = None,
    offset: ArrayLike | None = None,
    column_names: list[str] | tuple[str, ...] | None = None,
    tol: float = 1e-8,
    max_iter: int = 25,
) -> LinearSolution | GLMSolution:
    """
    Fit a linear model or GLM to arrays.

    With family=None, solves ordinary least squares min_β ||y - Xβ||²
    by pivoted QR. Otherwise fits the GLM by IRLS.

    Args:
        X: Design matrix (n x p), including an intercept column if wanted
        y: Response vector (n,)
        family: None for OLS, or 'gaussian', 'binomial', 'poisson'
            or a Family instance
        link: Optional link override ('identity', 'logit', 'log', 'probit')
        offset: Optional offset added to the linear predictor (GLM only)
        column_names: Optional coefficient labels
        tol: IRLS convergence tolerance on max|Δβ|
        max_iter: Maximum IRLS iterations

    Returns:
        LinearSolution (family=None) or GLMSolution

    Raises:
        ValidationError: If inputs are invalid
        DimensionError: If X and y have inconsistent dimensions
        SingularMatrixError: If X is rank-deficient
        ConvergenceError: If IRLS does not converge

    Example:
        >>> X = np.column_stack([np.ones(100), np.random.randn(100, 2)])
        >>> y = X @ [1, 2, 3] + np.random.randn(100) * 0.1
        >>> result = fit(X, y)
        >>> print(result.summary())
    """
    if family is None:
        if link is not None or offset is not None:
            raise ValidationError("link and offset require a GLM family")
        design = RegressionDesign.from_arrays(X, y, column_names=column_names)
        return _fit_linear(design)

    fam = resolve_family(family, link)
    check_iteration_control(tol, max_iter)
    design = RegressionDesign.from_arrays(X, y, column_names=column_names, offset=offset)
    return _fit_glm(design, fam, tol, max_iter)


def lm(formula: str | Formula, data: Any) -> LinearSolution:
    """
    Fit a linear model from a formula, like R's lm().

    Args:
        formula: e.g. "bmi ~ age + sex"
        data: Frame, {name: values} mapping or pandas DataFrame

    Returns:
        LinearSolution labelled with the design's column names
    """
    matrix = build_design(as_frame(data), formula)
    return _fit_linear(RegressionDesign.from_matrix(matrix))


def glm(
    formula: str | Formula,
    data: Any,
    family: str | Family = 'gaussian',
    *,
    link: str | Link | None = None,
    offset: str | None = None,
    tol: float = 1e-8,
    max_iter: int = 25,
) -> GLMSolution:
    """
    Fit a generalized linear model from a formula, like R's glm().

    A binomial response may be a 0/1 numeric column or a two-level
    categorical column; the second level is the success.

    Args:
        formula: e.g. "smoker ~ age + sex"
        data: Frame, {name: values} mapping or pandas DataFrame
        family: 'gaussian', 'binomial', 'poisson' or a Family instance
        link: Optional link override
        offset: Optional name of a numeric column used as offset
            (e.g. log exposure for Poisson rates)
        tol: IRLS convergence tolerance on max|Δβ|
        max_iter: Maximum IRLS iterations
    """
    fam = resolve_family(family, link)
    check_iteration_control(tol, max_iter)

    frame = as_frame(data)
    extra = (offset,) if offset is not None else ()
    matrix = build_design(frame, formula, extra_columns=extra)

    offset_arr = matrix.data.numeric(offset) if offset is not None else None
    y = _glm_response(matrix, fam)
    design = RegressionDesign.from_matrix(matrix, y=y, offset=offset_arr)
    return _fit_glm(design, fam, tol, max_iter)


def _glm_response(matrix: DesignMatrix, family: Family) -> np.ndarray | None:
    """Recode a two-level categorical response to 0/1 for binomial fits."""
    if not matrix.response_is_categorical:
        return None
    levels = matrix.response_levels
    if family.name != 'binomial' or len(levels) != 2:
        raise ValidationError(
            f"response {matrix.response_name!r} is categorical with levels {levels}; "
            f"only a two-level factor can be used, with family='binomial'"
        )
    return (matrix.require_response() == 1).astype(np.float64)


def _fit_linear(design: RegressionDesign) -> LinearSolution:
    result = CPUQRBackend().solve(design)
    return LinearSolution(_result=result, _design=design)


def _fit_glm(
    design: RegressionDesign,
    family: Family,
    tol: float,
    max_iter: int,
) -> GLMSolution:
    family.validate_response(design.y)
    result = CPUIRLSBackend().solve(design, family, tol=tol, max_iter=max_iter)
    return GLMSolution(_result=result, _design=design, _family=family)


def refit_glm(
    design: RegressionDesign,
    family: Family,
    *,
    tol: float = 1e-8,
    max_iter: int = 25,
) -> GLMSolution:
    """Fit a GLM to an already-validated design (used for profiling)."""
    return _fit_glm(design, family, tol, max_iter)

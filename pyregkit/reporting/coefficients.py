"""
Coefficient tables for any fitted model.

    coef_table(model, conf_level=0.95, exponentiate=False, method='wald')

Wald intervals use Student-t with the model's residual df when it has
one (linear and Gaussian models) and the standard normal otherwise.
Profile-likelihood intervals (GLMs only) invert the signed root
deviance

    z(b) = sign(b - β̂_j) sqrt((D(b) - D(β̂)) / φ)

where D(b) is the deviance with β_j held at b through the offset and
the remaining coefficients refitted by IRLS. Matches R's
confint(glm_fit) from MASS.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Callable, Literal

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy import optimize, stats

from pyregkit.core.exceptions import ConvergenceError, ValidationError
from pyregkit.core.protocols import FittedModel
from pyregkit.core.validation import check_conf_level
from pyregkit.regression.solution import GLMSolution
from pyregkit.regression.solvers import refit_glm

# Bracket half-widths tried for each profile bound, in standard errors
_PROFILE_BRACKETS = (2.0, 4.0, 8.0, 16.0, 32.0, 64.0)


@dataclass(frozen=True)
class CoefficientTable:
    """One row per reported parameter.

    When `exponentiated` is set, estimate and bounds are on the exp scale
    while std_error, statistic and p_value stay on the link scale.
    """
    names: tuple[str, ...]
    estimate: NDArray
    std_error: NDArray
    statistic: NDArray
    p_value: NDArray
    ci_lower: NDArray
    ci_upper: NDArray
    statistic_name: Literal['t', 'z']
    conf_level: float
    method: str
    exponentiated: bool
    df: int | None

    def __len__(self) -> int:
        return len(self.names)

    def to_pandas(self) -> pd.DataFrame:
        pct = _percent(self.conf_level)
        return pd.DataFrame(
            {
                'estimate': self.estimate,
                'std_error': self.std_error,
                f'{self.statistic_name}_value': self.statistic,
                'p_value': self.p_value,
                f'lower_{pct}': self.ci_lower,
                f'upper_{pct}': self.ci_upper,
            },
            index=pd.Index(self.names, name='term'),
        )

    def format(self, digits: int = 4) -> str:
        pct = _percent(self.conf_level)
        width = max([len(n) for n in self.names] + [8])
        head = 'exp(Estimate)' if self.exponentiated else 'Estimate'
        p_header = f"Pr(>|{self.statistic_name}|)"
        lines = [
            f"{'':<{width}} {head:>13} {'Std.Error':>11} "
            f"{self.statistic_name + ' value':>9} {p_header:>10} "
            f"{'lower ' + pct + '%':>11} {'upper ' + pct + '%':>11}"
        ]
        for i, name in enumerate(self.names):
            lines.append(
                f"{name:<{width}} {self.estimate[i]:13.{digits}f} "
                f"{self.std_error[i]:11.{digits}f} {self.statistic[i]:9.3f} "
                f"{self.p_value[i]:10.4g} {self.ci_lower[i]:11.{digits}f} "
                f"{self.ci_upper[i]:11.{digits}f}"
            )
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.format()


def _percent(conf_level: float) -> str:
    return f"{100 * conf_level:g}"


def coef_table(
    model: FittedModel,
    conf_level: float = 0.95,
    exponentiate: bool = False,
    method: Literal['wald', 'profile'] = 'wald',
) -> CoefficientTable:
    """
    Coefficient table with confidence intervals.

    Args:
        model: Any fitted model (linear, GLM, multinomial, ordinal, Cox)
        conf_level: Confidence level in (0, 1)
        exponentiate: Report exp(estimate) and exp(bounds): odds ratios
            for logistic-type models, hazard ratios for Cox
        method: 'wald' (default) or 'profile' (GLMs only)

    Raises:
        ValidationError: For exponentiate on a linear model, profile on a
            non-GLM, or an invalid conf_level/method
    """
    check_conf_level(conf_level)
    if method not in ('wald', 'profile'):
        raise ValidationError(f"method must be 'wald' or 'profile', got {method!r}")
    if exponentiate and model.model_kind == 'linear':
        raise ValidationError(
            "exponentiate is only meaningful for GLM, multinomial, ordinal and Cox models"
        )

    estimate = np.asarray(model.estimates, dtype=np.float64)
    se = np.sqrt(np.maximum(np.diag(model.vcov), 0.0))
    df = model.df_residual

    with np.errstate(divide='ignore', invalid='ignore'):
        statistic = estimate / se

    alpha = 1.0 - conf_level
    if df is not None:
        statistic_name = 't'
        p_value = 2.0 * stats.t.sf(np.abs(statistic), df)
        q = float(stats.t.ppf(1.0 - alpha / 2.0, df))
    else:
        statistic_name = 'z'
        p_value = 2.0 * stats.norm.sf(np.abs(statistic))
        q = float(stats.norm.ppf(1.0 - alpha / 2.0))

    if method == 'profile':
        if not isinstance(model, GLMSolution):
            raise ValidationError(
                f"profile intervals are available for GLMs only, got a "
                f"{model.model_kind!r} model"
            )
        lower, upper = _profile_intervals(model, q)
    else:
        lower = estimate - q * se
        upper = estimate + q * se

    if exponentiate:
        estimate, lower, upper = np.exp(estimate), np.exp(lower), np.exp(upper)

    return CoefficientTable(
        names=tuple(model.term_labels),
        estimate=estimate,
        std_error=se,
        statistic=statistic,
        p_value=p_value,
        ci_lower=lower,
        ci_upper=upper,
        statistic_name=statistic_name,
        conf_level=conf_level,
        method=method,
        exponentiated=bool(exponentiate),
        df=df,
    )


# =====================================================================
# Profile likelihood
# =====================================================================

def _profile_intervals(model: GLMSolution, q: float) -> tuple[NDArray, NDArray]:
    p = len(model.coefficients)
    lower = np.empty(p)
    upper = np.empty(p)
    for j in range(p):
        zeta = _signed_root(model, j)
        lower[j] = _profile_bound(model, j, zeta, -q)
        upper[j] = _profile_bound(model, j, zeta, q)
    return lower, upper


def _signed_root(model: GLMSolution, j: int) -> Callable[[float], float]:
    design = model.design
    family = model.family
    beta_hat = float(model.coefficients[j])
    deviance_hat = model.deviance
    dispersion = model.dispersion
    wt = np.ones(design.n)

    def zeta(b: float) -> float:
        if design.p == 1:
            eta = design.offset_or_zero() + b * design.X[:, 0]
            mu = family.link.linkinv(eta)
            deviance = family.deviance(design.y, mu, wt)
        else:
            deviance = refit_glm(design.drop_column(j, b), family).deviance
        gap = max(deviance - deviance_hat, 0.0)
        return float(np.sign(b - beta_hat) * np.sqrt(gap / dispersion))

    return zeta


def _profile_bound(
    model: GLMSolution,
    j: int,
    zeta: Callable[[float], float],
    target: float,
) -> float:
    beta_hat = float(model.coefficients[j])
    se = float(np.sqrt(model.vcov[j, j]))
    direction = np.sign(target)
    label = model.term_labels[j]
    side = 'upper' if direction > 0 else 'lower'

    for k in _PROFILE_BRACKETS:
        edge = beta_hat + direction * k * se
        try:
            beyond = abs(zeta(edge)) >= abs(target)
        except ConvergenceError:
            break
        if beyond:
            lo, hi = sorted((beta_hat, edge))
            return float(optimize.brentq(
                lambda b: zeta(b) - target, lo, hi, xtol=1e-10 * max(se, 1.0),
            ))

    warnings.warn(
        f"profile {side} bound for {label!r} could not be bracketed; "
        f"reported as nan",
        UserWarning,
        stacklevel=4,
    )
    return float('nan')

"""
GLM family and link function specifications.

Each Family defines:
- A variance function V(μ) relating variance to the mean
- A default link function g(μ) mapping the mean to the linear predictor
- Unit deviance contributions (summed for the deviance, signed square
  roots for deviance residuals)
- A log-likelihood function for AIC/BIC
- Response validation and IRLS starting values

Each Link defines:
- g(μ) → η  (link)
- g⁻¹(η) → μ  (inverse link)
- dμ/dη  (derivative of inverse link, for IRLS weights)

References:
    McCullagh, P., & Nelder, J. A. (1989). Generalized Linear Models (2nd ed.)
    R Core Team. stats::family, stats::make.link
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
from numpy.typing import NDArray
from scipy import special, stats

from pyregkit.core.exceptions import ValidationError
from pyregkit.core.validation import check_binary, check_nonnegative

_EPS = 1e-10


# =====================================================================
# Link functions
# =====================================================================

class Link(ABC):
    """Abstract link function g(μ) mapping mean to linear predictor."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def link(self, mu: NDArray) -> NDArray:
        """g(μ) → η."""
        ...

    @abstractmethod
    def linkinv(self, eta: NDArray) -> NDArray:
        """g⁻¹(η) → μ."""
        ...

    @abstractmethod
    def mu_eta(self, eta: NDArray) -> NDArray:
        """dμ/dη = (g⁻¹)'(η)."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class IdentityLink(Link):
    """Identity link: g(μ) = μ. Default for Gaussian family."""

    @property
    def name(self) -> str:
        return 'identity'

    def link(self, mu: NDArray) -> NDArray:
        return mu.copy()

    def linkinv(self, eta: NDArray) -> NDArray:
        return eta.copy()

    def mu_eta(self, eta: NDArray) -> NDArray:
        return np.ones_like(eta)


class LogitLink(Link):
    """Logit link: g(μ) = log(μ/(1-μ)). Default for Binomial family."""

    @property
    def name(self) -> str:
        return 'logit'

    def link(self, mu: NDArray) -> NDArray:
        return special.logit(np.clip(mu, _EPS, 1 - _EPS))

    def linkinv(self, eta: NDArray) -> NDArray:
        return special.expit(eta)

    def mu_eta(self, eta: NDArray) -> NDArray:
        p = special.expit(eta)
        return np.maximum(p * (1.0 - p), _EPS)


class LogLink(Link):
    """Log link: g(μ) = log(μ). Default for Poisson family."""

    @property
    def name(self) -> str:
        return 'log'

    def link(self, mu: NDArray) -> NDArray:
        return np.log(np.maximum(mu, _EPS))

    def linkinv(self, eta: NDArray) -> NDArray:
        # Clip to prevent overflow
        return np.exp(np.clip(eta, -500, 500))

    def mu_eta(self, eta: NDArray) -> NDArray:
        return np.maximum(np.exp(np.clip(eta, -500, 500)), _EPS)


class ProbitLink(Link):
    """Probit link: g(μ) = Φ⁻¹(μ). Alternative for Binomial family."""

    @property
    def name(self) -> str:
        return 'probit'

    def link(self, mu: NDArray) -> NDArray:
        return stats.norm.ppf(np.clip(mu, _EPS, 1 - _EPS))

    def linkinv(self, eta: NDArray) -> NDArray:
        return stats.norm.cdf(eta)

    def mu_eta(self, eta: NDArray) -> NDArray:
        return np.maximum(stats.norm.pdf(eta), _EPS)


_LINK_CLASSES: dict[str, type[Link]] = {
    'identity': IdentityLink,
    'logit': LogitLink,
    'log': LogLink,
    'probit': ProbitLink,
}


def _resolve_link(link: str | Link | None, default: Link) -> Link:
    """Resolve a link argument to a Link instance."""
    if link is None:
        return default
    if isinstance(link, Link):
        return link
    if isinstance(link, str):
        cls = _LINK_CLASSES.get(link.lower())
        if cls is None:
            valid = ', '.join(sorted(_LINK_CLASSES))
            raise ValidationError(f"Unknown link: {link!r}. Valid links: {valid}")
        return cls()
    raise ValidationError(f"link must be str or Link, got {type(link).__name__}")


# =====================================================================
# Family base class
# =====================================================================

class Family(ABC):
    """
    GLM family specification.

    Defines the relationship between the mean and variance of the
    response distribution, along with a link function.
    """

    def __init__(self, link: str | Link | None = None):
        self._link = _resolve_link(link, self._default_link())

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def _default_link(self) -> Link:
        ...

    @property
    def link(self) -> Link:
        return self._link

    @property
    def dispersion_is_fixed(self) -> bool:
        """True when φ = 1 a priori (Binomial, Poisson)."""
        return True

    @abstractmethod
    def variance(self, mu: NDArray) -> NDArray:
        """Variance function V(μ)."""
        ...

    @abstractmethod
    def unit_deviance(self, y: NDArray, mu: NDArray) -> NDArray:
        """Per-observation deviance d(y_i, μ_i)."""
        ...

    @abstractmethod
    def initialize(self, y: NDArray) -> NDArray:
        """Starting μ for IRLS, inside the link's domain."""
        ...

    @abstractmethod
    def log_likelihood(self, y: NDArray, mu: NDArray, wt: NDArray) -> float:
        """Log-likelihood at μ (at the MLE dispersion when it is estimated)."""
        ...

    def validate_response(self, y: NDArray) -> None:
        """Raise ValidationError if y lies outside the family's support."""
        return None

    def deviance(self, y: NDArray, mu: NDArray, wt: NDArray) -> float:
        """Total deviance Σ wt_i d(y_i, μ_i)."""
        return float(np.sum(wt * self.unit_deviance(y, mu)))

    def deviance_residuals(self, y: NDArray, mu: NDArray, wt: NDArray) -> NDArray:
        """sign(y - μ) * sqrt(wt * d)."""
        d = self.unit_deviance(y, mu)
        return np.sign(y - mu) * np.sqrt(np.maximum(wt * d, 0.0))

    def n_extra_parameters(self) -> int:
        """Parameters beyond the coefficients counted by AIC (dispersion)."""
        return 0 if self.dispersion_is_fixed else 1

    def aic(self, y: NDArray, mu: NDArray, wt: NDArray, rank: int) -> float:
        """AIC = -2 loglik + 2 (rank + extra parameters), as R's glm reports."""
        k = rank + self.n_extra_parameters()
        return -2.0 * self.log_likelihood(y, mu, wt) + 2.0 * k

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(link={self._link.name!r})"


# =====================================================================
# Concrete families
# =====================================================================

class Gaussian(Family):
    """Gaussian (Normal) family. Default link: identity.

    V(μ) = 1
    d(y, μ) = (y - μ)²
    """

    @property
    def name(self) -> str:
        return 'gaussian'

    def _default_link(self) -> Link:
        return IdentityLink()

    @property
    def dispersion_is_fixed(self) -> bool:
        return False

    def variance(self, mu: NDArray) -> NDArray:
        return np.ones_like(mu)

    def initialize(self, y: NDArray) -> NDArray:
        return y.copy()

    def unit_deviance(self, y: NDArray, mu: NDArray) -> NDArray:
        return (y - mu) ** 2

    def log_likelihood(self, y: NDArray, mu: NDArray, wt: NDArray) -> float:
        # MLE dispersion σ² = RSS/n, as R's gaussian()$aic uses
        n = float(np.sum(wt > 0))
        rss = float(np.sum(wt * (y - mu) ** 2))
        sigma_sq = rss / n
        return -0.5 * n * (np.log(2 * np.pi * sigma_sq) + 1.0)


class Binomial(Family):
    """Binomial family for 0/1 outcomes. Default link: logit.

    V(μ) = μ(1-μ)
    d(y, μ) = 2 [y log(y/μ) + (1-y) log((1-y)/(1-μ))]
    """

    @property
    def name(self) -> str:
        return 'binomial'

    def _default_link(self) -> Link:
        return LogitLink()

    def validate_response(self, y: NDArray) -> None:
        check_binary(y, 'y')

    def variance(self, mu: NDArray) -> NDArray:
        mu = np.clip(mu, _EPS, 1 - _EPS)
        return mu * (1.0 - mu)

    def initialize(self, y: NDArray) -> NDArray:
        # R's default: (y + 0.5) / 2 for binary data
        return (y + 0.5) / 2.0

    def unit_deviance(self, y: NDArray, mu: NDArray) -> NDArray:
        mu = np.clip(mu, _EPS, 1 - _EPS)
        # 0*log(0) = 0; np.where evaluates both branches
        with np.errstate(divide='ignore', invalid='ignore'):
            term1 = np.where(y > 0, y * np.log(y / mu), 0.0)
            term2 = np.where(y < 1, (1 - y) * np.log((1 - y) / (1 - mu)), 0.0)
        return 2.0 * (term1 + term2)

    def log_likelihood(self, y: NDArray, mu: NDArray, wt: NDArray) -> float:
        mu = np.clip(mu, _EPS, 1 - _EPS)
        return float(np.sum(wt * (y * np.log(mu) + (1 - y) * np.log(1 - mu))))


class Poisson(Family):
    """Poisson family for counts. Default link: log.

    V(μ) = μ
    d(y, μ) = 2 [y log(y/μ) - (y - μ)]
    """

    @property
    def name(self) -> str:
        return 'poisson'

    def _default_link(self) -> Link:
        return LogLink()

    def validate_response(self, y: NDArray) -> None:
        check_nonnegative(y, 'y')

    def variance(self, mu: NDArray) -> NDArray:
        return np.maximum(mu, _EPS)

    def initialize(self, y: NDArray) -> NDArray:
        # R: y + 0.1 (to avoid log(0))
        return y + 0.1

    def unit_deviance(self, y: NDArray, mu: NDArray) -> NDArray:
        mu = np.maximum(mu, _EPS)
        with np.errstate(divide='ignore', invalid='ignore'):
            term = np.where(y > 0, y * np.log(y / mu), 0.0)
        return 2.0 * (term - (y - mu))

    def log_likelihood(self, y: NDArray, mu: NDArray, wt: NDArray) -> float:
        mu = np.maximum(mu, _EPS)
        return float(np.sum(wt * (y * np.log(mu) - mu - special.gammaln(y + 1))))


_FAMILY_CLASSES: dict[str, type[Family]] = {
    'gaussian': Gaussian,
    'normal': Gaussian,
    'binomial': Binomial,
    'poisson': Poisson,
}


def resolve_family(family: str | Family, link: str | Link | None = None) -> Family:
    """Resolve a family argument to a Family instance.

    Args:
        family: 'gaussian', 'binomial', 'poisson' or a Family instance
        link: Optional link override for a family given by name

    Raises:
        ValidationError: If the family or link is not recognized
    """
    if isinstance(family, Family):
        if link is not None:
            raise ValidationError("link cannot be combined with a Family instance")
        return family
    if isinstance(family, str):
        cls = _FAMILY_CLASSES.get(family.lower())
        if cls is None:
            valid = ', '.join(sorted(k for k in _FAMILY_CLASSES if k != 'normal'))
            raise ValidationError(
                f"Unknown family: {family!r}. Valid families: {valid}"
            )
        return cls(link)
    raise ValidationError(f"family must be str or Family, got {type(family).__name__}")

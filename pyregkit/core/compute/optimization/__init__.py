"""
Optimization utilities for pyregkit.

Provides the damped Newton-Raphson driver shared by the multinomial,
ordinal and Cox fitters, and the information-matrix inversion used for
their covariance estimates.
"""

from pyregkit.core.compute.optimization.newton import (
    NewtonResult,
    invert_information,
    newton_raphson,
)

__all__ = [
    "NewtonResult",
    "invert_information",
    "newton_raphson",
]

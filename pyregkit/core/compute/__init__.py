"""
Shared compute infrastructure for pyregkit.

This module provides timing utilities, linear algebra kernels and the
Newton-Raphson driver shared across all model families.

IMPORTANT: This is NOT where family-specific fitting lives. Those go in
{domain}/backends/ or {domain}/_*.py. This module contains shared NUMERIC
infrastructure.

Submodules:
    timing: Execution timing utilities
    tolerances: Numerical tolerance tiers
    linalg: Linear algebra kernels (pivoted QR)
    optimization: Newton-Raphson and information inversion
"""

from pyregkit.core.compute.timing import Timer, timed

__all__ = [
    "Timer",
    "timed",
]

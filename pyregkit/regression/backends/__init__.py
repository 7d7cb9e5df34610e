"""
Regression backends.

Available backends:
    CPUQRBackend: ordinary least squares via pivoted QR
    CPUIRLSBackend: GLMs via IRLS with a pivoted-QR inner solve
"""

from pyregkit.regression.backends.cpu import CPUQRBackend
from pyregkit.regression.backends.cpu_glm import CPUIRLSBackend

__all__ = [
    "CPUQRBackend",
    "CPUIRLSBackend",
]

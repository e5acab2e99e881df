"""Regression backends: direct QR least squares and IRLS."""

from pyinference.regression.backends.cpu import CPUQRBackend
from pyinference.regression.backends.cpu_glm import CPUIRLSBackend

__all__ = ["CPUQRBackend", "CPUIRLSBackend"]

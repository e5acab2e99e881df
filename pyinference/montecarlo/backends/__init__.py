"""Bootstrap backends."""

from pyinference.montecarlo.backends.cpu import CPUBootstrapBackend

__all__ = ["CPUBootstrapBackend"]

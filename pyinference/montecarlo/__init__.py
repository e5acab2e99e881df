"""
Bootstrap resampling of GLM fits.

Usage:
    from pyinference.montecarlo import bootstrap

    result = bootstrap(df, "win ~ kills", family="binomial", times=1000, seed=42)
    result.replicates     # (k, p) coefficient draws
    result.se
"""

from pyinference.montecarlo.design import BootstrapDesign
from pyinference.montecarlo.solution import BootstrapSolution
from pyinference.montecarlo.solvers import bootstrap

__all__ = [
    "bootstrap",
    "BootstrapDesign",
    "BootstrapSolution",
]

"""
Shared compute infrastructure for pyinference.

IMPORTANT: This is NOT where domain-specific backends live. Those go in
{domain}/backends/. This module contains shared NUMERIC infrastructure.

Submodules:
    timing: Execution timing utilities
    tolerances: Numerical thresholds and tolerance tiers
    linalg: Linear algebra kernels (QR)
    random: Explicit random generator handling
    parallel: Thread pool for independent tasks
"""

from pyinference.core.compute.timing import Timer
from pyinference.core.compute.random import SeedLike, make_rng, spawn_rngs
from pyinference.core.compute.parallel import run_tasks

__all__ = [
    "Timer",
    "SeedLike",
    "make_rng",
    "spawn_rngs",
    "run_tasks",
]

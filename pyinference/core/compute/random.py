"""
Explicit random state.

No module-level or global seeding anywhere in the library. Every
stochastic entry point accepts a seed-like value and threads the
resulting Generator through its computation; parallel workers get
independent child generators spawned from it.
"""

from __future__ import annotations

from typing import Union

import numpy as np

SeedLike = Union[None, int, np.random.SeedSequence, np.random.Generator]


def make_rng(seed: SeedLike = None) -> np.random.Generator:
    """
    Resolve a seed-like value to a Generator.

    A Generator is passed through unchanged (its state is shared with the
    caller); anything else seeds a fresh PCG64 generator.
    """
    if isinstance(seed, np.random.Generator):
        return seed
    if isinstance(seed, (bool, float)):
        raise TypeError(f"seed must be None, int, SeedSequence or Generator, got {seed!r}")
    return np.random.default_rng(seed)


def spawn_rngs(seed: SeedLike, n: int) -> list[np.random.Generator]:
    """Spawn n statistically independent child generators."""
    return make_rng(seed).spawn(n)

"""
Wall-clock timings for backends.

Each backend splits its work into named phases (resampling, refits,
sampling, diagnostics) and hands the accumulated seconds to
Result.timing.
"""

import time
from contextlib import contextmanager
from typing import Iterator


class Timer:
    """
    Phase timer with an overall clock.

    Usage:
        timer = Timer()
        timer.start()

        with timer.section('resample_indices'):
            indices = rng.integers(0, n, size=(times, n))

        with timer.section('bootstrap_replicates'):
            outcomes = run_tasks(replicate, range(times), n_jobs=n_jobs)

        timer.stop()
        timer.result()
        # {'total_seconds': 0.41, 'resample_indices': 0.01, 'bootstrap_replicates': 0.39}

    Re-entering a phase adds to its total, so an IRLS loop can time each
    iteration under one name.
    """

    def __init__(self) -> None:
        self._phases: dict[str, float] = {}
        self._t0: float | None = None
        self._total: float | None = None

    def start(self) -> None:
        self._t0 = time.perf_counter()
        self._total = None

    def stop(self) -> None:
        if self._t0 is None:
            raise RuntimeError("Timer.stop() called before start()")
        self._total = time.perf_counter() - self._t0

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        """Add the time spent in the block to phase `name`."""
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self._phases[name] = self._phases.get(name, 0.0) + (time.perf_counter() - t0)

    def result(self) -> dict[str, float]:
        """
        Overall and per-phase seconds.

        Raises:
            RuntimeError: The overall clock was never stopped
        """
        if self._total is None:
            raise RuntimeError("Timer.result() called before stop()")
        return {'total_seconds': self._total, **self._phases}

"""
Worker pool for embarrassingly parallel work.

Bootstrap replicates and sampler chains are independent tasks that share
only read-only inputs. They run on a joblib thread pool: the heavy
lifting is LAPACK/BLAS inside numpy, which releases the GIL, so threads
overlap without serialising the inputs to worker processes.

Results always come back in task order, whatever the completion order.
"""

from __future__ import annotations

from typing import Callable, Iterable, TypeVar

from joblib import Parallel, delayed

T = TypeVar('T')
R = TypeVar('R')


def run_tasks(
    fn: Callable[[T], R],
    tasks: Iterable[T],
    n_jobs: int = 1,
) -> list[R]:
    """
    Apply fn to every task, optionally on a thread pool.

    Args:
        fn: Function of one task
        tasks: Task arguments
        n_jobs: 1 runs inline (no joblib overhead); -1 uses all cores;
            any other value is passed to joblib.Parallel

    Returns:
        List of results in task order
    """
    if n_jobs == 0:
        raise ValueError("n_jobs must be non-zero")

    if n_jobs == 1:
        return [fn(task) for task in tasks]

    return list(Parallel(n_jobs=n_jobs, prefer="threads")(
        delayed(fn)(task) for task in tasks
    ))

"""
Core infrastructure for pyinference.

Shared abstractions and utilities used by every domain sub-package
(design, regression, bayes, montecarlo, inference, prediction, metrics).

Key components:
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    table: Observation table conversion and splitting
    compute: Timing, linear algebra, random state, worker pool
"""

from pyinference.core.result import Result
from pyinference.core.exceptions import (
    PyInferenceError,
    ValidationError,
    DimensionError,
    FormulaError,
    MissingDataError,
    SchemaMismatchError,
    NumericalError,
    CollinearityError,
    ConvergenceError,
    ResamplingError,
    UndefinedMetricError,
)
from pyinference.core.table import as_table, read_table, train_test_split

__all__ = [
    # Result
    "Result",
    # Exceptions
    "PyInferenceError",
    "ValidationError",
    "DimensionError",
    "FormulaError",
    "MissingDataError",
    "SchemaMismatchError",
    "NumericalError",
    "CollinearityError",
    "ConvergenceError",
    "ResamplingError",
    "UndefinedMetricError",
    # Tables
    "as_table",
    "read_table",
    "train_test_split",
]

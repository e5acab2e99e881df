"""
Exception hierarchy for pyinference.

All exceptions inherit from PyInferenceError to allow catching any
library-specific error. Domain code raises the most specific class that
applies; nothing here is ever swallowed silently by the library.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""


class PyInferenceError(Exception):
    """Base exception for all pyinference errors."""
    pass


class ValidationError(PyInferenceError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when array shapes don't match expected dimensions or
    when multiple arrays have inconsistent shapes.
    """
    pass


class FormulaError(ValidationError):
    """
    A model formula could not be parsed.

    Attributes:
        formula: The offending formula string
    """

    def __init__(self, message: str, formula: str | None = None):
        super().__init__(message)
        self.formula = formula


class MissingDataError(ValidationError):
    """
    Required columns are absent or contain missing values.

    Attributes:
        columns: Names of the offending columns
        counts: Number of missing values per column (None when the column
            itself is absent)
    """

    def __init__(
        self,
        message: str,
        columns: tuple[str, ...] = (),
        counts: dict[str, int | None] | None = None,
    ):
        super().__init__(message)
        self.columns = tuple(columns)
        self.counts = dict(counts) if counts is not None else {}


class SchemaMismatchError(ValidationError):
    """
    Prediction input does not match the training schema.

    Raised when new rows lack a training column, carry a categorical level
    that was not seen at fit time, or hold non-numeric values in a numeric
    column.

    Attributes:
        column: The offending column
        unseen_levels: Levels not present in the training encoding
    """

    def __init__(
        self,
        message: str,
        column: str | None = None,
        unseen_levels: tuple[str, ...] = (),
    ):
        super().__init__(message)
        self.column = column
        self.unseen_levels = tuple(unseen_levels)


class NumericalError(PyInferenceError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    pass


class CollinearityError(NumericalError):
    """
    Design matrix is singular or ill-conditioned.

    Raised instead of returning numerically unstable coefficients when the
    (weighted) design matrix is rank deficient or its condition number
    exceeds the configured threshold.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        condition_number: Estimated condition number, if available
        rank: Numerical rank, if computed
        expected_rank: Expected rank (number of columns)
        threshold: The condition number threshold that was exceeded
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        condition_number: float | None = None,
        rank: int | None = None,
        expected_rank: int | None = None,
        threshold: float | None = None,
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.condition_number = condition_number
        self.rank = rank
        self.expected_rank = expected_rank
        self.threshold = threshold


class ConvergenceError(PyInferenceError):
    """
    Iterative algorithm failed to converge.

    Raised when an iterative method (IRLS, Newton-Raphson) fails to meet
    its convergence criterion within the maximum number of iterations.

    Attributes:
        iterations: Number of iterations completed
        final_change: Final maximum absolute coefficient change
        reason: Why convergence failed (e.g., 'max_iterations', 'non_finite')
        threshold: The convergence threshold that was not met
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        final_change: float | None = None,
        reason: str | None = None,
        threshold: float | None = None,
    ):
        super().__init__(message)
        self.iterations = iterations
        self.final_change = final_change
        self.reason = reason
        self.threshold = threshold


class ResamplingError(PyInferenceError):
    """
    Too many bootstrap replicates failed.

    A failure rate above the configured threshold is treated as a systemic
    problem with the model or data rather than bad luck in resampling.

    Attributes:
        n_failed: Number of failed replicates
        times: Number of replicates attempted
        max_failure_rate: The threshold that was exceeded
    """

    def __init__(
        self,
        message: str,
        n_failed: int,
        times: int,
        max_failure_rate: float,
    ):
        super().__init__(message)
        self.n_failed = n_failed
        self.times = times
        self.max_failure_rate = max_failure_rate


class UndefinedMetricError(PyInferenceError):
    """
    A classification metric is undefined for the given labels.

    Attributes:
        metric: Name of the undefined metric
    """

    def __init__(self, message: str, metric: str | None = None):
        super().__init__(message)
        self.metric = metric

"""
Tests for the PyInference exception hierarchy.

Validates:
    - Inheritance chain (all exceptions catchable via PyInferenceError)
    - Diagnostic attributes on the errors that carry them
    - Default attribute values
"""

import pytest

from pyinference.core.exceptions import (
    CollinearityError,
    ConvergenceError,
    DimensionError,
    FormulaError,
    MissingDataError,
    NumericalError,
    PyInferenceError,
    ResamplingError,
    SchemaMismatchError,
    UndefinedMetricError,
    ValidationError,
)


# ═══════════════════════════════════════════════════════════════════════
# Inheritance hierarchy
# ═══════════════════════════════════════════════════════════════════════


class TestInheritance:
    """Every exception is catchable via PyInferenceError."""

    @pytest.mark.parametrize("exc", [
        DimensionError("x"),
        FormulaError("x"),
        MissingDataError("x"),
        SchemaMismatchError("x"),
    ])
    def test_input_errors_are_validation_errors(self, exc):
        assert isinstance(exc, ValidationError)
        assert isinstance(exc, PyInferenceError)

    def test_collinearity_is_numerical_error(self):
        with pytest.raises(NumericalError):
            raise CollinearityError("singular")

    def test_convergence_error_is_not_numerical_error(self):
        err = ConvergenceError("did not converge", iterations=25)
        assert isinstance(err, PyInferenceError)
        assert not isinstance(err, NumericalError)

    @pytest.mark.parametrize("exc", [
        ResamplingError("x", n_failed=6, times=10, max_failure_rate=0.5),
        UndefinedMetricError("x"),
    ])
    def test_runtime_errors_are_pyinference_errors(self, exc):
        assert isinstance(exc, PyInferenceError)
        assert not isinstance(exc, ValidationError)


# ═══════════════════════════════════════════════════════════════════════
# Diagnostic attributes
# ═══════════════════════════════════════════════════════════════════════


class TestAttributes:

    def test_collinearity_attributes(self):
        err = CollinearityError(
            "rank deficient", matrix_name="X", condition_number=1e17,
            rank=2, expected_rank=3, threshold=1e10,
        )
        assert err.matrix_name == "X"
        assert err.rank == 2
        assert err.expected_rank == 3
        assert err.threshold == 1e10
        assert str(err) == "rank deficient"

    def test_collinearity_defaults(self):
        err = CollinearityError("singular")
        assert err.matrix_name is None
        assert err.condition_number is None
        assert err.rank is None

    def test_convergence_attributes(self):
        err = ConvergenceError(
            "IRLS failed", iterations=25, final_change=3.2,
            reason="separation", threshold=1e-8,
        )
        assert err.iterations == 25
        assert err.final_change == 3.2
        assert err.reason == "separation"

    def test_missing_data_attributes(self):
        err = MissingDataError("missing", columns=["x"], counts={"x": 3})
        assert err.columns == ("x",)
        assert err.counts == {"x": 3}

    def test_missing_data_defaults(self):
        err = MissingDataError("missing")
        assert err.columns == ()
        assert err.counts == {}

    def test_schema_mismatch_attributes(self):
        err = SchemaMismatchError("unseen", column="g", unseen_levels=["d"])
        assert err.column == "g"
        assert err.unseen_levels == ("d",)

    def test_formula_attribute(self):
        err = FormulaError("bad", formula="y ~ ")
        assert err.formula == "y ~ "

    def test_resampling_attributes(self):
        err = ResamplingError("too many", n_failed=7, times=10, max_failure_rate=0.5)
        assert err.n_failed == 7
        assert err.times == 10
        assert err.max_failure_rate == 0.5

    def test_undefined_metric_attribute(self):
        assert UndefinedMetricError("undefined", metric="auc").metric == "auc"

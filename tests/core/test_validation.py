"""
Tests for input validation and table utilities.
"""

import numpy as np
import pandas as pd
import pytest

from pyinference.core.exceptions import DimensionError, ValidationError
from pyinference.core.result import Result
from pyinference.core.table import as_table, is_categorical, train_test_split
from pyinference.core.validation import (
    check_1d,
    check_2d,
    check_array,
    check_binary,
    check_consistent_length,
    check_finite,
    check_min_samples,
    check_positive_int,
    check_probability,
)
from pyinference.core.compute.random import make_rng, spawn_rngs
from pyinference.core.compute.parallel import run_tasks
from pyinference.core.compute.timing import Timer


# ═══════════════════════════════════════════════════════════════════════
# Validators
# ═══════════════════════════════════════════════════════════════════════


class TestCheckArray:

    def test_list_to_float_array(self):
        result = check_array([1, 2, 3], "X")
        assert result.dtype == np.float64
        np.testing.assert_array_equal(result, [1.0, 2.0, 3.0])

    def test_bool_promoted(self):
        result = check_array([True, False], "X")
        np.testing.assert_array_equal(result, [1.0, 0.0])

    def test_strings_rejected(self):
        with pytest.raises(ValidationError, match="X"):
            check_array(["a", "b"], "X")

    def test_mixed_types_rejected(self):
        with pytest.raises(ValidationError, match="object dtype"):
            check_array([1, "a", None], "X")


class TestChecks:

    def test_check_finite(self):
        check_finite(np.array([1.0, 2.0]), "y")
        with pytest.raises(ValidationError, match="1 NaN"):
            check_finite(np.array([1.0, np.nan]), "y")

    def test_check_ndim(self):
        check_1d(np.zeros(3), "y")
        check_2d(np.zeros((3, 2)), "X")
        with pytest.raises(DimensionError):
            check_1d(np.zeros((3, 2)), "y")

    def test_consistent_length(self):
        with pytest.raises(DimensionError, match="X=3, y=4"):
            check_consistent_length(np.zeros((3, 2)), np.zeros(4), names=("X", "y"))

    def test_min_samples(self):
        with pytest.raises(ValidationError, match="at least 5"):
            check_min_samples(np.zeros(3), 5, "y")

    def test_check_binary(self):
        check_binary(np.array([0.0, 1.0, 1.0]), "y")
        with pytest.raises(ValidationError, match="0/1"):
            check_binary(np.array([0.0, 2.0]), "y")

    @pytest.mark.parametrize("value", [0.0, 1.0, -0.1, 1.5])
    def test_probability_open_interval(self, value):
        with pytest.raises(ValidationError):
            check_probability(value, "level")

    def test_probability_inclusive(self):
        assert check_probability(1.0, "threshold", inclusive=True) == 1.0
        assert check_probability(0.0, "threshold", inclusive=True) == 0.0

    @pytest.mark.parametrize("value", [0, -3, 2.5, True])
    def test_positive_int_rejects(self, value):
        with pytest.raises(ValidationError):
            check_positive_int(value, "times")

    def test_positive_int_accepts_integral_float(self):
        assert check_positive_int(4.0, "times") == 4


# ═══════════════════════════════════════════════════════════════════════
# Tables
# ═══════════════════════════════════════════════════════════════════════


class TestTables:

    def test_mapping_of_columns(self):
        table = as_table({'x': [1, 2], 'g': ['a', 'b']})
        assert list(table.columns) == ['x', 'g']
        assert len(table) == 2

    def test_row_mappings(self):
        table = as_table([{'x': 1, 'g': 'a'}, {'x': 2, 'g': 'b'}])
        assert table['x'].tolist() == [1, 2]

    def test_dataframe_passthrough(self):
        df = pd.DataFrame({'x': [1.0]})
        assert as_table(df) is df

    def test_unsupported_input(self):
        with pytest.raises(ValidationError, match="expected a DataFrame"):
            as_table(np.zeros((2, 2)))

    def test_is_categorical(self):
        df = pd.DataFrame({
            's': ['a', 'b'], 'b': [True, False], 'x': [1.0, 2.0],
            'c': pd.Categorical(['u', 'v']),
        })
        assert is_categorical(df['s'])
        assert is_categorical(df['b'])
        assert is_categorical(df['c'])
        assert not is_categorical(df['x'])

    def test_train_test_split_partitions_rows(self):
        df = pd.DataFrame({'x': np.arange(20)})
        train, test = train_test_split(df, 0.25, seed=1)
        assert len(test) == 5
        assert len(train) == 15
        assert sorted(train['x'].tolist() + test['x'].tolist()) == list(range(20))

    def test_train_test_split_reproducible(self):
        df = pd.DataFrame({'x': np.arange(50)})
        _, a = train_test_split(df, seed=7)
        _, b = train_test_split(df, seed=7)
        assert a['x'].tolist() == b['x'].tolist()

    def test_train_test_split_bad_fraction(self):
        with pytest.raises(ValidationError, match="test_fraction"):
            train_test_split({'x': [1, 2, 3]}, 1.0)


# ═══════════════════════════════════════════════════════════════════════
# Compute utilities
# ═══════════════════════════════════════════════════════════════════════


class TestCompute:

    def test_make_rng_passthrough(self):
        g = np.random.default_rng(0)
        assert make_rng(g) is g

    def test_make_rng_rejects_float(self):
        with pytest.raises(TypeError):
            make_rng(1.5)

    def test_spawn_rngs_reproducible(self):
        a = [g.random() for g in spawn_rngs(3, 4)]
        b = [g.random() for g in spawn_rngs(3, 4)]
        assert a == b
        assert len(set(a)) == 4

    def test_run_tasks_preserves_order(self):
        assert run_tasks(lambda t: t * t, range(10), n_jobs=2) == [t * t for t in range(10)]

    def test_run_tasks_rejects_zero_jobs(self):
        with pytest.raises(ValueError):
            run_tasks(lambda t: t, [1], n_jobs=0)

    def test_result_envelope(self):
        result = Result(
            params=None, info={}, timing={'total_seconds': 0.5},
            backend_name='cpu_qr', warnings=("saturated model",),
        )
        assert result.warnings == ("saturated model",)
        with pytest.raises(AttributeError):
            result.backend_name = "cpu_irls"

    def test_timer_accumulates_sections(self):
        timer = Timer()
        timer.start()
        for _ in range(3):
            with timer.section('irls'):
                pass
        timer.stop()
        timing = timer.result()
        assert set(timing) == {'total_seconds', 'irls'}
        assert 0.0 <= timing['irls'] <= timing['total_seconds']

    def test_timer_result_before_stop(self):
        timer = Timer()
        timer.start()
        with pytest.raises(RuntimeError):
            timer.result()

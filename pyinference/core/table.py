"""
Observation tables.

An observation table is an ordered set of rows with named, already-typed
columns. It doesn't know what model will consume it; the design layer
decides which columns are predictors, which are categorical, and how they
are encoded.

pandas.DataFrame is the canonical representation. Other inputs are
converted once at the boundary:

    as_table(df)                                  # passed through
    as_table({'x': [1, 2], 'g': ['a', 'b']})      # mapping of columns
    as_table([{'x': 1, 'g': 'a'}, {...}])         # sequence of row mappings
    read_table("data.csv")                        # CSV / TSV file
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from sklearn import model_selection

from pyinference.core.exceptions import ValidationError
from pyinference.core.compute.random import SeedLike, make_rng


def as_table(data: Any, name: str = 'data') -> pd.DataFrame:
    """
    Convert supported inputs to a DataFrame.

    The input is never modified; DataFrames are returned as-is, so callers
    that need to mutate must copy.

    Raises:
        ValidationError: If the input type is not supported
    """
    if isinstance(data, pd.DataFrame):
        return data
    if isinstance(data, Mapping):
        try:
            return pd.DataFrame(dict(data))
        except ValueError as e:
            raise ValidationError(f"{name}: cannot build table from columns: {e}") from e
    if isinstance(data, Sequence) and not isinstance(data, (str, bytes)):
        if all(isinstance(row, Mapping) for row in data):
            return pd.DataFrame.from_records(list(data))
    raise ValidationError(
        f"{name}: expected a DataFrame, a mapping of columns or a sequence "
        f"of row mappings, got {type(data).__name__}"
    )


def read_table(path: str | Path, *, columns: list[str] | None = None) -> pd.DataFrame:
    """Read a CSV or TSV file into an observation table."""
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == '.csv':
        return pd.read_csv(path, usecols=columns)
    elif suffix == '.tsv':
        return pd.read_csv(path, sep='\t', usecols=columns)
    else:
        raise ValidationError(f"Unknown file format: {suffix}")


def is_categorical(column: pd.Series) -> bool:
    """True when a column should be treated as a factor rather than a number."""
    dtype = column.dtype
    return bool(
        pd.api.types.is_object_dtype(dtype)
        or pd.api.types.is_string_dtype(dtype)
        or isinstance(dtype, pd.CategoricalDtype)
        or pd.api.types.is_bool_dtype(dtype)
    )


def train_test_split(
    data: Any,
    test_fraction: float = 0.25,
    *,
    seed: SeedLike = None,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Randomly split rows into a training and a held-out table.

    Row order within each part follows the original table. At least one
    row lands in each part.

    Args:
        data: Observation table
        test_fraction: Share of rows held out, in (0, 1)
        seed: Seed or generator for the row permutation

    Returns:
        (train, test) DataFrames with their original index preserved
    """
    table = as_table(data)
    if not 0.0 < test_fraction < 1.0:
        raise ValidationError(
            f"test_fraction: must be in (0, 1), got {test_fraction}"
        )
    n = len(table)
    if n < 2:
        raise ValidationError(f"data: need at least 2 rows to split, got {n}")

    n_test = int(round(n * test_fraction))
    n_test = min(max(n_test, 1), n - 1)

    rng = make_rng(seed)
    train_rows, test_rows = model_selection.train_test_split(
        np.arange(n),
        test_size=n_test,
        random_state=int(rng.integers(np.iinfo(np.int32).max)),
    )
    return table.iloc[np.sort(train_rows)], table.iloc[np.sort(test_rows)]

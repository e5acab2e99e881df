"""
Column encodings captured at fit time.

Handles the translation from typed table columns to numeric design
columns, and records every parameter of that translation so new rows can
be encoded identically at prediction time.

Key concepts:
    - Treatment coding: k-1 indicator columns (reference = first level)
    - Levels are the sorted string forms of the observed values
    - Standardization: (x - mean) / sd with the training mean and sd
    - Interaction: products of all column pairs of the member blocks
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pyinference.core.exceptions import SchemaMismatchError, ValidationError


def level_strings(values: Iterable[Any]) -> NDArray:
    """String form of factor values; the key used for level lookup."""
    return np.array([str(v) for v in values], dtype=object)


@dataclass(frozen=True)
class FactorEncoding:
    """
    Treatment coding for one categorical variable.

    Attributes:
        name: Variable name
        levels: All training levels in sorted order
        reference: Dropped baseline level (levels[0])
        columns: Design column names, one per non-reference level
    """
    name: str
    levels: tuple[str, ...]
    reference: str
    columns: tuple[str, ...]

    @classmethod
    def fit(cls, name: str, values: Iterable[Any]) -> FactorEncoding:
        """Learn the level table from training values."""
        levels = tuple(sorted(set(level_strings(values))))
        if len(levels) < 2:
            raise ValidationError(
                f"{name}: categorical predictor needs at least 2 levels, "
                f"got {list(levels)}"
            )
        columns = tuple(f"{name}[T.{level}]" for level in levels[1:])
        return cls(name=name, levels=levels, reference=levels[0], columns=columns)

    @property
    def column_index(self) -> dict[str, int]:
        """Level -> column offset within this block (reference excluded)."""
        return {level: j for j, level in enumerate(self.levels[1:])}

    def encode(self, values: Iterable[Any]) -> NDArray[np.floating[Any]]:
        """
        Indicator matrix (n, k-1) for the given values.

        Raises:
            SchemaMismatchError: If a value is not a training level
        """
        strings = level_strings(values)
        unseen = sorted(set(strings) - set(self.levels))
        if unseen:
            raise SchemaMismatchError(
                f"{self.name}: levels {unseen} were not seen during fitting "
                f"(known levels: {list(self.levels)})",
                column=self.name,
                unseen_levels=tuple(unseen),
            )

        X = np.zeros((len(strings), len(self.columns)), dtype=np.float64)
        for level, j in self.column_index.items():
            X[:, j] = (strings == level).astype(np.float64)
        return X


@dataclass(frozen=True)
class Standardization:
    """Centering and scaling parameters for one numeric variable."""
    name: str
    mean: float
    scale: float

    @classmethod
    def fit(cls, name: str, values: NDArray[np.floating[Any]]) -> Standardization:
        if len(values) < 2:
            raise ValidationError(f"{name}: need at least 2 values to standardize")
        scale = float(np.std(values, ddof=1))
        if not scale > 0:
            raise ValidationError(
                f"{name}: zero variance, cannot standardize a constant column"
            )
        return cls(name=name, mean=float(np.mean(values)), scale=scale)

    def apply(self, values: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
        return (values - self.mean) / self.scale


@dataclass(frozen=True)
class ResponseEncoding:
    """
    How the response column maps to the numeric y.

    For a categorical binomial response `levels` holds (failure, success),
    with success the second sorted level. Numeric responses have levels=None.
    """
    name: str
    levels: tuple[str, str] | None = None

    @property
    def positive(self) -> str | None:
        return None if self.levels is None else self.levels[1]


def numeric_values(column: pd.Series, name: str) -> NDArray[np.floating[Any]]:
    """
    Float64 values of a numeric column.

    Raises:
        SchemaMismatchError: If the column holds non-numeric values
    """
    try:
        return column.to_numpy(dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise SchemaMismatchError(
            f"{name}: expected a numeric column, got dtype {column.dtype}",
            column=name,
        ) from e


def interaction_columns(
    X_a: NDArray, X_b: NDArray,
) -> NDArray:
    """
    Element-wise products of all column pairs of X_a and X_b.

    Column order: for each column of X_a, every column of X_b.

    Args:
        X_a: (n, p_a) columns of the first member
        X_b: (n, p_b) columns of the second member

    Returns:
        (n, p_a * p_b) interaction columns
    """
    n = X_a.shape[0]
    p_a = X_a.shape[1]
    p_b = X_b.shape[1]
    X_int = np.empty((n, p_a * p_b), dtype=np.float64)

    col = 0
    for i in range(p_a):
        for j in range(p_b):
            X_int[:, col] = X_a[:, i] * X_b[:, j]
            col += 1

    return X_int


def interaction_names(names_a: Iterable[str], names_b: Iterable[str]) -> list[str]:
    """Column names matching interaction_columns() order."""
    names_b = list(names_b)
    return [f"{a}:{b}" for a in names_a for b in names_b]

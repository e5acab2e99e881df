"""
Design matrix construction.

build_design(table, spec) turns an observation table and a ModelSpec into
a DesignMatrix: the numeric X (n, p), the numeric response y (n,), and a
DesignInfo recording every encoding decision. DesignInfo is the persisted
encoding table; prediction and resampling reuse it so that new rows get
exactly the training column layout.

Column layout:
    Intercept | term 1 columns | term 2 columns | ...

with each term's block given by DesignInfo.term_slices.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray

from pyinference.core.exceptions import (
    MissingDataError,
    SchemaMismatchError,
    ValidationError,
)
from pyinference.core.table import as_table, is_categorical
from pyinference.core.validation import (
    check_array,
    check_binary,
    check_finite,
    check_1d,
    check_2d,
    check_consistent_length,
)
from pyinference.design.encoding import (
    FactorEncoding,
    ResponseEncoding,
    Standardization,
    interaction_columns,
    interaction_names,
    level_strings,
    numeric_values,
)
from pyinference.design.formula import ModelSpec, Term


@dataclass(frozen=True)
class DesignInfo:
    """
    Encoding table captured when a design is built.

    Attributes:
        spec: The model specification
        column_names: Design column names in order
        term_slices: Term name -> column slice of X
        factors: Categorical variable -> treatment coding
        scalings: Standardized numeric variable -> centering/scaling
        numeric: Numeric predictor variables
        response: Response encoding
    """
    spec: ModelSpec
    column_names: tuple[str, ...]
    term_slices: dict[str, slice]
    factors: dict[str, FactorEncoding]
    scalings: dict[str, Standardization]
    numeric: tuple[str, ...]
    response: ResponseEncoding

    @property
    def p(self) -> int:
        return len(self.column_names)

    def transform(self, data: Any) -> NDArray[np.floating[Any]]:
        """
        Encode new rows with the training layout.

        The response column is not required.

        Raises:
            SchemaMismatchError: Missing predictor column, unseen level or
                non-numeric value in a numeric column
            MissingDataError: Predictor values are missing
        """
        table = as_table(data, 'new_data')
        absent = [v for v in self.spec.predictors if v not in table.columns]
        if absent:
            raise SchemaMismatchError(
                f"new_data is missing predictor columns {absent}",
                column=absent[0],
            )
        _check_no_missing(table, self.spec.predictors)
        blocks = self._main_effects(table)
        return _assemble(self.spec, blocks, len(table))

    def _main_effects(self, table: pd.DataFrame) -> dict[str, NDArray]:
        blocks: dict[str, NDArray] = {}
        for name in self.spec.predictors:
            if name in self.factors:
                blocks[name] = self.factors[name].encode(table[name])
                continue
            if is_categorical(table[name]) and not pd.api.types.is_bool_dtype(table[name].dtype):
                raise SchemaMismatchError(
                    f"{name}: was numeric during fitting, got dtype {table[name].dtype}",
                    column=name,
                )
            values = numeric_values(table[name], name)
            if name in self.scalings:
                values = self.scalings[name].apply(values)
            blocks[name] = values.reshape(-1, 1)
        return blocks


@dataclass(frozen=True)
class DesignMatrix:
    """
    Numeric regression design.

    Immutable after construction. Build with build_design() from a table or
    DesignMatrix.from_arrays() from ready-made arrays.

    Attributes:
        X: Design matrix (n, p), float64
        y: Response (n,), float64
        info: Encoding table, or None for array-built designs
    """
    X: NDArray[np.floating[Any]]
    y: NDArray[np.floating[Any]]
    info: DesignInfo | None = None
    _column_names: tuple[str, ...] = field(default=(), repr=False)

    @classmethod
    def from_arrays(
        cls,
        X: ArrayLike,
        y: ArrayLike,
        *,
        column_names: tuple[str, ...] | None = None,
    ) -> DesignMatrix:
        """
        Build a design directly from arrays.

        The caller is responsible for the intercept column, if any.
        Column names default to x0, x1, ...
        """
        X_arr = check_array(X, 'X')
        y_arr = check_array(y, 'y')
        if X_arr.ndim == 1:
            X_arr = X_arr.reshape(-1, 1)
        if y_arr.ndim == 2 and y_arr.shape[1] == 1:
            y_arr = y_arr.ravel()
        check_2d(X_arr, 'X')
        check_1d(y_arr, 'y')
        check_finite(X_arr, 'X')
        check_finite(y_arr, 'y')
        check_consistent_length(X_arr, y_arr, names=('X', 'y'))

        p = X_arr.shape[1]
        if column_names is None:
            column_names = tuple(f"x{j}" for j in range(p))
        elif len(column_names) != p:
            raise ValidationError(
                f"column_names: expected {p} names, got {len(column_names)}"
            )
        return cls(X=X_arr, y=y_arr, info=None, _column_names=tuple(column_names))

    # === Properties ===

    @property
    def n(self) -> int:
        """Number of observations."""
        return self.X.shape[0]

    @property
    def p(self) -> int:
        """Number of design columns."""
        return self.X.shape[1]

    @property
    def column_names(self) -> tuple[str, ...]:
        if self.info is not None:
            return self.info.column_names
        return self._column_names

    @property
    def family(self) -> str | None:
        """Family tag of the specification, if built from one."""
        return self.info.spec.family if self.info is not None else None

    def take(self, indices: NDArray[np.integer[Any]]) -> DesignMatrix:
        """
        Design for a subset of rows (with repetition), same encoding.

        Selecting rows of an encoded design is the same as re-encoding the
        selected table rows with the training DesignInfo.
        """
        idx = np.asarray(indices, dtype=np.intp)
        return DesignMatrix(
            X=self.X[idx],
            y=self.y[idx],
            info=self.info,
            _column_names=self._column_names,
        )


def build_design(data: Any, spec: ModelSpec | str, *, family: str | None = None) -> DesignMatrix:
    """
    Build a design matrix from an observation table.

    Args:
        data: Observation table (DataFrame, mapping of columns, row mappings)
        spec: ModelSpec, or a formula string parsed with `family`
        family: Family for a formula string (default 'gaussian'); when spec
            is a ModelSpec and family is given, it overrides spec.family

    Returns:
        DesignMatrix with X, y and the encoding table

    Raises:
        MissingDataError: Referenced column absent or holding missing values
        ValidationError: Response incompatible with the family, categorical
            predictor with a single level, constant column to standardize
    """
    if isinstance(spec, str):
        spec = ModelSpec.from_formula(spec, family=family or 'gaussian')
    elif family is not None and family != spec.family:
        spec = spec.with_family(family)

    table = as_table(data)
    absent = [v for v in spec.variables if v not in table.columns]
    if absent:
        raise MissingDataError(
            f"data is missing columns {absent}",
            columns=tuple(absent),
            counts={name: None for name in absent},
        )
    _check_no_missing(table, spec.variables)
    if len(table) == 0:
        raise ValidationError("data: table has no rows")

    # Encodings
    factors: dict[str, FactorEncoding] = {}
    scalings: dict[str, Standardization] = {}
    numeric: list[str] = []
    for name in spec.predictors:
        column = table[name]
        if is_categorical(column):
            if name in spec.standardize:
                raise ValidationError(f"standardize: {name!r} is categorical")
            factors[name] = FactorEncoding.fit(name, column)
        else:
            numeric.append(name)
            if spec.standardize_all or name in spec.standardize:
                scalings[name] = Standardization.fit(name, numeric_values(column, name))

    y, response = _encode_response(table[spec.response], spec)

    column_names, term_slices = _layout(spec, factors)
    info = DesignInfo(
        spec=spec,
        column_names=column_names,
        term_slices=term_slices,
        factors=factors,
        scalings=scalings,
        numeric=tuple(numeric),
        response=response,
    )

    X = _assemble(spec, info._main_effects(table), len(table))
    check_finite(X, 'X')
    return DesignMatrix(X=X, y=y, info=info)


# =====================================================================
# Helpers
# =====================================================================

def _check_no_missing(table: pd.DataFrame, columns) -> None:
    counts = {name: int(table[name].isna().sum()) for name in columns}
    bad = {name: c for name, c in counts.items() if c > 0}
    if bad:
        details = ", ".join(f"{name} ({c} missing)" for name, c in bad.items())
        raise MissingDataError(
            f"columns contain missing values: {details}",
            columns=tuple(bad),
            counts=bad,
        )


def _encode_response(column: pd.Series, spec: ModelSpec) -> tuple[NDArray, ResponseEncoding]:
    name = spec.response
    if spec.family == 'gaussian':
        if is_categorical(column):
            raise ValidationError(
                f"{name}: gaussian response must be numeric, got dtype {column.dtype}"
            )
        y = numeric_values(column, name)
        check_finite(y, name)
        return y, ResponseEncoding(name=name)

    # binomial
    if pd.api.types.is_bool_dtype(column.dtype):
        return column.to_numpy(dtype=np.float64), ResponseEncoding(name=name)
    if is_categorical(column):
        strings = level_strings(column)
        levels = sorted(set(strings))
        if len(levels) != 2:
            raise ValidationError(
                f"{name}: binomial response needs exactly 2 levels, got {levels}"
            )
        y = (strings == levels[1]).astype(np.float64)
        return y, ResponseEncoding(name=name, levels=(levels[0], levels[1]))
    y = numeric_values(column, name)
    check_binary(y, name)
    return y, ResponseEncoding(name=name)


def _term_columns(term: Term, factors: dict[str, FactorEncoding]) -> list[str]:
    names = [list(factors[v].columns) if v in factors else [v] for v in term.variables]
    result = names[0]
    for nxt in names[1:]:
        result = interaction_names(result, nxt)
    return result


def _layout(spec: ModelSpec, factors: dict[str, FactorEncoding]):
    column_names: list[str] = []
    term_slices: dict[str, slice] = {}
    if spec.intercept:
        column_names.append('Intercept')
        term_slices['Intercept'] = slice(0, 1)
    for term in spec.terms:
        start = len(column_names)
        column_names.extend(_term_columns(term, factors))
        term_slices[term.name] = slice(start, len(column_names))
    return tuple(column_names), term_slices


def _assemble(spec: ModelSpec, blocks: dict[str, NDArray], n: int) -> NDArray:
    columns = []
    if spec.intercept:
        columns.append(np.ones((n, 1), dtype=np.float64))
    for term in spec.terms:
        block = blocks[term.variables[0]]
        for name in term.variables[1:]:
            block = interaction_columns(block, blocks[name])
        columns.append(block)
    return np.hstack(columns) if columns else np.empty((n, 0), dtype=np.float64)

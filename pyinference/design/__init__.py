"""
Design matrix construction.

Public API:
    ModelSpec.from_formula("y ~ x + g + x:g", family=...) -> ModelSpec
    ModelSpec.build("y", ["x", "g"], interactions=[("x", "g")]) -> ModelSpec
    build_design(table, spec) -> DesignMatrix

Categorical predictors are treatment coded against their first sorted
level; interaction columns are products of main-effect columns; numeric
predictors may be standardized. Every encoding parameter is kept in
DesignMatrix.info so new rows can be encoded identically.
"""

from pyinference.design.formula import ModelSpec, Term, parse_formula
from pyinference.design.encoding import FactorEncoding, Standardization, ResponseEncoding
from pyinference.design.design import DesignMatrix, DesignInfo, build_design

__all__ = [
    "ModelSpec",
    "Term",
    "parse_formula",
    "FactorEncoding",
    "Standardization",
    "ResponseEncoding",
    "DesignMatrix",
    "DesignInfo",
    "build_design",
]

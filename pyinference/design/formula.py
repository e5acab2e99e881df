"""
Model specifications and the formula parser.

A ModelSpec is the validated, structured description of a regression:
which column is the response, which terms enter the linear predictor, the
distributional family, which numeric predictors are standardized and, for
Bayesian fits, the priors.

Two ways to build one:

    ModelSpec.from_formula("win ~ kills + position * serve", family="binomial")
    ModelSpec.build("win", ["kills", "position", "serve"],
                    interactions=[("position", "serve")], family="binomial")

Supported formula grammar (R/patsy subset):

    formula := response "~" rhs
    rhs     := item ("+" item)* ("-" "1")?
    item    := "1" | "0" | term | term "*" term ...
    term    := name (":" name)*

"a*b" expands to "a + b + a:b"; "0" or "- 1" drops the intercept.
Names are Python-style identifiers; backquotes allow any other column
name, e.g. `body mass`.
"""

from __future__ import annotations

import itertools
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Sequence

from pyinference.core.exceptions import FormulaError, ValidationError

if TYPE_CHECKING:
    from pyinference.bayes.priors import PriorSpec


FAMILIES = ('gaussian', 'binomial')
FAMILY_ALIASES = {'normal': 'gaussian', 'logistic': 'binomial'}

_TOKEN = re.compile(r"\s*(?:(`[^`]+`)|([A-Za-z_.][A-Za-z0-9_.]*)|(\d+)|([~+*:\-]))")


@dataclass(frozen=True)
class Term:
    """
    One additive term of the linear predictor.

    A single variable is a main effect; several variables form an
    interaction whose columns are products of the main-effect columns.
    """
    variables: tuple[str, ...]

    @property
    def name(self) -> str:
        return ':'.join(self.variables)

    @property
    def is_interaction(self) -> bool:
        return len(self.variables) > 1

    def __str__(self) -> str:
        return ':'.join(_quote(v) for v in self.variables)


@dataclass(frozen=True)
class ModelSpec:
    """
    Validated model specification.

    Attributes:
        response: Response column name
        terms: Terms of the linear predictor in order (intercept excluded)
        intercept: Whether an intercept column is included
        family: 'gaussian' (identity link) or 'binomial' (logit link)
        standardize: Numeric predictors to center and scale
        standardize_all: Standardize every numeric predictor
        priors: Priors for Bayesian fits, or None for the defaults
    """
    response: str
    terms: tuple[Term, ...]
    intercept: bool = True
    family: str = 'gaussian'
    standardize: tuple[str, ...] = ()
    standardize_all: bool = False
    priors: PriorSpec | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.family not in FAMILIES:
            raise ValidationError(
                f"family: must be one of {FAMILIES}, got {self.family!r}"
            )
        predictors = set(self.predictors)
        if self.response in predictors:
            raise ValidationError(
                f"response {self.response!r} also appears as a predictor"
            )
        if not self.terms and not self.intercept:
            raise ValidationError("model has neither terms nor an intercept")
        unknown = [s for s in self.standardize if s not in predictors]
        if unknown:
            raise ValidationError(
                f"standardize: {unknown} are not predictors of the model"
            )

    # === Construction ===

    @classmethod
    def from_formula(
        cls,
        formula: str,
        *,
        family: str = 'gaussian',
        standardize: bool | Iterable[str] = (),
        priors: PriorSpec | None = None,
    ) -> ModelSpec:
        """
        Parse a formula string.

        Args:
            formula: e.g. "y ~ x + g + x:g"
            family: 'gaussian' or 'binomial'
            standardize: Predictor names to standardize, or True for every
                numeric predictor
            priors: Optional PriorSpec for Bayesian fits

        Raises:
            FormulaError: If the formula cannot be parsed
        """
        response, terms, intercept = parse_formula(formula)
        return cls._create(response, terms, intercept, family, standardize, priors)

    @classmethod
    def build(
        cls,
        response: str,
        predictors: Sequence[str] = (),
        *,
        interactions: Iterable[Sequence[str]] = (),
        intercept: bool = True,
        family: str = 'gaussian',
        standardize: bool | Iterable[str] = (),
        priors: PriorSpec | None = None,
    ) -> ModelSpec:
        """
        Build a specification from names instead of a formula string.

        Interaction members need not be listed among the predictors.
        """
        if isinstance(predictors, str):
            predictors = [predictors]
        terms: list[Term] = []
        for name in predictors:
            _check_name(name, 'predictors')
            terms.append(Term((name,)))
        for combo in interactions:
            if isinstance(combo, str):
                raise ValidationError(
                    f"interactions: expected a sequence of names, got {combo!r}"
                )
            names = tuple(combo)
            if len(names) < 2:
                raise ValidationError(
                    f"interactions: need at least two variables, got {names}"
                )
            for name in names:
                _check_name(name, 'interactions')
            terms.append(Term(names))
        _check_name(response, 'response')
        return cls._create(response, _dedupe(terms), intercept, family, standardize, priors)

    @classmethod
    def _create(cls, response, terms, intercept, family, standardize, priors) -> ModelSpec:
        scale_all = standardize is True
        if isinstance(standardize, bool):
            scaled = ()
        elif isinstance(standardize, str):
            scaled = (standardize,)
        else:
            scaled = tuple(_unique(standardize))
        return cls(
            response=response,
            terms=tuple(terms),
            intercept=bool(intercept),
            family=family_tag(family),
            standardize=scaled,
            standardize_all=scale_all,
            priors=priors,
        )

    def with_family(self, family: str) -> ModelSpec:
        """Copy of this specification with a different family."""
        return ModelSpec(
            response=self.response,
            terms=self.terms,
            intercept=self.intercept,
            family=family_tag(family),
            standardize=self.standardize,
            standardize_all=self.standardize_all,
            priors=self.priors,
        )

    # === Properties ===

    @property
    def predictors(self) -> tuple[str, ...]:
        """Distinct predictor variables in first-seen order."""
        return tuple(_unique(v for t in self.terms for v in t.variables))

    @property
    def variables(self) -> tuple[str, ...]:
        """Every referenced column, response first."""
        return (self.response,) + self.predictors

    @property
    def term_names(self) -> tuple[str, ...]:
        names = tuple(t.name for t in self.terms)
        return (('Intercept',) + names) if self.intercept else names

    def __str__(self) -> str:
        rhs = [str(t) for t in self.terms]
        if not self.intercept:
            rhs.append('0')
        elif not rhs:
            rhs.append('1')
        return f"{_quote(self.response)} ~ {' + '.join(rhs)}"


# =====================================================================
# Parser
# =====================================================================

def parse_formula(formula: str) -> tuple[str, list[Term], bool]:
    """
    Parse "response ~ rhs" into (response, terms, intercept).

    Raises:
        FormulaError: On any syntax error
    """
    if not isinstance(formula, str):
        raise FormulaError(f"formula must be a string, got {type(formula).__name__}")

    tokens = _tokenize(formula)
    if tokens.count(('op', '~')) != 1:
        raise FormulaError("formula must contain exactly one '~'", formula)

    split = tokens.index(('op', '~'))
    lhs, rhs = tokens[:split], tokens[split + 1:]
    if len(lhs) != 1 or lhs[0][0] != 'name':
        raise FormulaError("left-hand side must be a single column name", formula)
    if not rhs:
        raise FormulaError("right-hand side is empty", formula)

    response = lhs[0][1]
    terms: list[Term] = []
    intercept = True

    for sign, item in _split_items(rhs, formula):
        if len(item) == 1 and item[0][0] == 'number':
            value = item[0][1]
            if value not in ('0', '1'):
                raise FormulaError(f"unexpected number {value!r}", formula)
            keep = (value == '1') == (sign == '+')
            intercept = keep
            continue
        if sign == '-':
            raise FormulaError("only '- 1' may be subtracted", formula)
        terms.extend(_expand_item(item, formula))

    return response, _dedupe(terms), intercept


def _tokenize(formula: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    text = formula.rstrip()
    while pos < len(text):
        match = _TOKEN.match(text, pos)
        if match is None:
            raise FormulaError(
                f"unexpected character {text[pos:].strip()[:1]!r} at position {pos}",
                formula,
            )
        quoted, name, number, op = match.groups()
        if quoted is not None:
            tokens.append(('name', quoted[1:-1]))
        elif name is not None:
            tokens.append(('name', name))
        elif number is not None:
            tokens.append(('number', number))
        else:
            tokens.append(('op', op))
        pos = match.end()
    return tokens


def _split_items(tokens, formula):
    """Split the right-hand side on '+'/'-' into (sign, item tokens)."""
    items = []
    sign = '+'
    current: list[tuple[str, str]] = []
    for tok in tokens:
        if tok in (('op', '+'), ('op', '-')):
            if not current:
                if not items and tok == ('op', '-') and sign == '+':
                    sign = '-'
                    continue
                raise FormulaError("empty term in right-hand side", formula)
            items.append((sign, current))
            sign, current = tok[1], []
        else:
            current.append(tok)
    if not current:
        raise FormulaError("formula ends with an operator", formula)
    items.append((sign, current))
    return items


def _expand_item(item, formula) -> list[Term]:
    """Expand 'a:b*c' into its terms: a:b + c + a:b:c."""
    factors: list[tuple[str, ...]] = []
    current: list[str] = []
    expect_name = True
    for kind, value in item:
        if expect_name:
            if kind != 'name':
                raise FormulaError(f"expected a column name, got {value!r}", formula)
            current.append(value)
            expect_name = False
        elif (kind, value) == ('op', ':'):
            expect_name = True
        elif (kind, value) == ('op', '*'):
            factors.append(tuple(current))
            current = []
            expect_name = True
        else:
            raise FormulaError(f"unexpected token {value!r}", formula)
    if expect_name:
        raise FormulaError("term ends with an operator", formula)
    factors.append(tuple(current))

    terms = []
    for size in range(1, len(factors) + 1):
        for combo in itertools.combinations(factors, size):
            variables = tuple(_unique(v for part in combo for v in part))
            terms.append(Term(variables))
    return terms


# =====================================================================
# Helpers
# =====================================================================

def _unique(values: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for v in values:
        seen.setdefault(v, None)
    return list(seen)


def _dedupe(terms: Iterable[Term]) -> list[Term]:
    """Drop repeated terms, treating a:b and b:a as the same term."""
    seen: set[frozenset[str]] = set()
    result = []
    for term in terms:
        key = frozenset(term.variables)
        if key not in seen:
            seen.add(key)
            result.append(term)
    return result


def _check_name(name: object, what: str) -> None:
    if not isinstance(name, str) or not name:
        raise ValidationError(f"{what}: column names must be non-empty strings, got {name!r}")


def _quote(name: str) -> str:
    if re.fullmatch(r"[A-Za-z_.][A-Za-z0-9_.]*", name):
        return name
    return f"`{name}`"


def family_tag(family: str) -> str:
    """Canonical family name, resolving the 'normal' and 'logistic' aliases."""
    if not isinstance(family, str):
        raise ValidationError(f"family: expected a name, got {type(family).__name__}")
    tag = family.lower()
    return FAMILY_ALIASES.get(tag, tag)

"""
Model formula parsing.

Supported syntax (a subset of R's Wilkinson-Rogers notation):

    y ~ a + b          main effects
    y ~ a:b            pairwise interaction only
    y ~ a*b            expands to a + b + a:b
    y ~ a + b - 1      no intercept (also `+ 0` or `0 +`)
    y ~ 1              intercept only
    ~ a + b            no response (Cox covariates)
    y ~ a + b - b      term removal

Interactions of more than two factors are rejected. Terms are ordered
main effects first, then interactions, each in order of first appearance
(R's `terms()` ordering).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Mapping

from pyregkit.core.exceptions import FormulaError

_NAME = re.compile(r'^[A-Za-z_.][A-Za-z0-9_.]*$')
_SPLIT = re.compile(r'\s*([+-])\s*')


@dataclass(frozen=True)
class Term:
    """
    One formula term: a main effect (one factor) or a pairwise interaction.

    Terms compare equal regardless of factor order, so a:b == b:a.
    """
    factors: tuple[str, ...]

    def __post_init__(self) -> None:
        if not 1 <= len(self.factors) <= 2:
            raise FormulaError(
                f"terms must have one or two factors, got {':'.join(self.factors)!r}; "
                f"interactions of more than two factors are not supported",
                term=':'.join(self.factors),
            )
        if len(set(self.factors)) != len(self.factors):
            raise FormulaError(
                f"term {':'.join(self.factors)!r} repeats a factor",
                term=':'.join(self.factors),
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Term):
            return NotImplemented
        return frozenset(self.factors) == frozenset(other.factors)

    def __hash__(self) -> int:
        return hash(frozenset(self.factors))

    @property
    def order(self) -> int:
        return len(self.factors)

    @property
    def label(self) -> str:
        return ':'.join(self.factors)

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class Formula:
    """
    Parsed model formula.

    Attributes:
        response: response column name, or None for a one-sided formula
        terms: predictor terms in design order
        intercept: whether an intercept column is requested
        baselines: {column: level} overriding the first level as the
            treatment-coding reference
    """
    response: str | None
    terms: tuple[Term, ...]
    intercept: bool = True
    baselines: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def parse(
        cls,
        text: str,
        *,
        baselines: Mapping[str, str] | None = None,
    ) -> Formula:
        """
        Parse formula text.

        Args:
            text: e.g. "bmi ~ age + sex*smoker"
            baselines: optional {column: reference level}

        Raises:
            FormulaError: On malformed syntax or unsupported terms
        """
        if not isinstance(text, str):
            raise FormulaError(f"formula must be a string, got {type(text).__name__}")

        parts = text.split('~')
        if len(parts) != 2:
            raise FormulaError(f"formula must contain exactly one '~': {text!r}")
        lhs, rhs = parts[0].strip(), parts[1].strip()

        response = None
        if lhs:
            if not _NAME.match(lhs):
                raise FormulaError(f"invalid response {lhs!r} in {text!r}", term=lhs)
            response = lhs

        if not rhs:
            raise FormulaError(f"formula has no right-hand side: {text!r}")

        intercept = True
        added: list[Term] = []
        removed: set[Term] = set()

        # Leading sign is implicit '+'
        tokens = _SPLIT.split(rhs if rhs[0] in '+-' else '+' + rhs)
        for sign, chunk in zip(tokens[1::2], tokens[2::2]):
            chunk = chunk.strip()
            if not chunk:
                raise FormulaError(f"empty term in {text!r}")

            if chunk in ('0', '1'):
                # '+1' / '-0' keep the intercept; '+0' / '-1' drop it
                intercept = (chunk == '1') == (sign == '+')
                continue

            for term in _expand(chunk, text):
                if sign == '+':
                    if term not in added:
                        added.append(term)
                else:
                    removed.add(term)

        terms = [t for t in added if t not in removed]
        terms.sort(key=lambda t: t.order)

        return cls(
            response=response,
            terms=tuple(terms),
            intercept=intercept,
            baselines=dict(baselines or {}),
        )

    @property
    def predictors(self) -> tuple[str, ...]:
        """Distinct predictor columns in order of first appearance."""
        seen: list[str] = []
        for term in self.terms:
            for factor in term.factors:
                if factor not in seen:
                    seen.append(factor)
        return tuple(seen)

    @property
    def columns(self) -> tuple[str, ...]:
        """Every column the formula references, response first."""
        head = (self.response,) if self.response is not None else ()
        return head + tuple(c for c in self.predictors if c != self.response)

    def __str__(self) -> str:
        rhs = [t.label for t in self.terms]
        if not self.intercept:
            rhs.append('0')
        elif not rhs:
            rhs.append('1')
        lhs = self.response or ''
        return f"{lhs} ~ {' + '.join(rhs)}".strip()


def _expand(chunk: str, text: str) -> list[Term]:
    """Expand `a`, `a:b` or `a*b` into terms."""
    if '*' in chunk:
        names = [_check_name(n, text) for n in chunk.split('*')]
        if len(names) > 2:
            raise FormulaError(
                f"{chunk!r} expands to an interaction of more than two factors",
                term=chunk,
            )
        return [Term((names[0],)), Term((names[1],)), Term((names[0], names[1]))]

    names = [_check_name(n, text) for n in chunk.split(':')]
    return [Term(tuple(names))]


def _check_name(name: str, text: str) -> str:
    name = name.strip()
    if not _NAME.match(name):
        raise FormulaError(f"invalid column name {name!r} in {text!r}", term=name)
    return name

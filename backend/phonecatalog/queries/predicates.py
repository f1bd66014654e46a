"""
Structured WHERE-clause predicates.

Filters compile to a list of these before any SQL text exists, so the filter
logic can be tested without caring about placeholder style.
"""
from dataclasses import dataclass
from typing import Any, Tuple, Union


@dataclass(frozen=True)
class Equals:
    column: str
    value: Any


@dataclass(frozen=True)
class GreaterOrEqual:
    column: str
    value: Any


@dataclass(frozen=True)
class LessOrEqual:
    column: str
    value: Any


@dataclass(frozen=True)
class Between:
    """Inclusive on both ends."""

    column: str
    low: Any
    high: Any


@dataclass(frozen=True)
class AnyOf:
    """Disjunction of simpler predicates, rendered in parentheses."""

    options: Tuple["Predicate", ...]


@dataclass(frozen=True)
class Exists:
    """
    Correlated subquery matching when one row of ``table`` meets every
    condition at once.

    ``correlation`` ties the subquery to the outer row, e.g.
    ``"pp.phone_id = p.phone_id"``.
    """

    table: str
    alias: str
    correlation: str
    conditions: Tuple["Predicate", ...]


Predicate = Union[Equals, GreaterOrEqual, LessOrEqual, Between, AnyOf, Exists]


def predicate_params(predicate: Predicate) -> list:
    """Bound values in the order their placeholders appear."""
    if isinstance(predicate, (Equals, GreaterOrEqual, LessOrEqual)):
        return [predicate.value]
    if isinstance(predicate, Between):
        return [predicate.low, predicate.high]
    if isinstance(predicate, AnyOf):
        return _collect_params(predicate.options)
    if isinstance(predicate, Exists):
        return _collect_params(predicate.conditions)
    raise TypeError(f"Unknown predicate: {predicate!r}")


def _collect_params(predicates) -> list:
    params: list = []
    for predicate in predicates:
        params.extend(predicate_params(predicate))
    return params

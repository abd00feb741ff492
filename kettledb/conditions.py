"""Comparison clauses for key conditions and filters.

Clauses are ordered (attribute, operator, value) triples. They are collected
by a Record's where/filter builder methods and turned into the store's
comparison-operator condition documents when a query or scan runs:

    [Clause("age", "GT", 20)]
    ->
    {"age": {"ComparisonOperator": "GT", "AttributeValueList": [{"N": "20"}]}}
"""

from collections.abc import Iterable
from typing import Any, NamedTuple

from kettledb.codec import stringify
from kettledb.exceptions import UnknownOperatorError
from kettledb.types import Schema, element_type, resolve_type

DEFAULT_OPERATOR = "EQ"

OPERATOR_ALIASES: dict[str, str] = {
    "=": "EQ",
    "!=": "NE",
    ">": "GT",
    ">=": "GE",
    "<": "LT",
    "<=": "LE",
    "~": "BETWEEN",
    "^": "BEGINS_WITH",
    "NOT_NULL": "NOT_NULL",
    "NULL": "NULL",
    "CONTAINS": "CONTAINS",
    "NOT_CONTAINS": "NOT_CONTAINS",
    "IN": "IN",
}

CANONICAL_OPERATORS: frozenset[str] = frozenset(OPERATOR_ALIASES.values())


class Clause(NamedTuple):
    """A single comparison on one attribute.

    Attributes:
        attribute: The attribute name.
        operator: A canonical comparison operator (EQ, GT, BETWEEN, ...).
        value: A scalar, or a list of values for BETWEEN and IN.

    """

    attribute: str
    operator: str
    value: Any


def convert_operator(token: str, *, strict: bool = False) -> str:
    """Map an operator alias or canonical token to its canonical operator.

    Unknown tokens fall back to EQ unless strict is set.

    Raises:
        UnknownOperatorError: If strict is set and the token is not recognized.

    """
    if token in OPERATOR_ALIASES:
        return OPERATOR_ALIASES[token]
    if token in CANONICAL_OPERATORS:
        return token
    if strict:
        raise UnknownOperatorError(token)
    return DEFAULT_OPERATOR


def add_clause(
    clauses: list[Clause],
    attribute: str,
    operator: str,
    value: Any,
    *,
    strict: bool = False,
) -> Clause:
    """Append a clause to clauses, converting the operator token first."""
    clause = Clause(attribute, convert_operator(operator, strict=strict), value)
    clauses.append(clause)
    return clause


def _value_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def build_conditions(schema: Schema, clauses: Iterable[Clause]) -> dict[str, dict[str, Any]]:
    """Build a KeyConditions/QueryFilter/ScanFilter document from clauses.

    Each clause value is wrapped in a list unless it already is one; list
    order is kept in AttributeValueList. A None value produces an empty list
    (NULL and NOT_NULL take no arguments). When several clauses name the same
    attribute, the last one wins.

    Values are encoded with the element type of set attributes, so a clause
    on an SS attribute sends {"S": ...}: CONTAINS and NOT_CONTAINS compare a
    single member. Binary values are sent as given.
    """
    result: dict[str, dict[str, Any]] = {}
    for attribute, operator, value in clauses:
        type_tag = element_type(resolve_type(schema, attribute))
        attribute_values = [
            {type_tag: v if type_tag == "B" else stringify(v)} for v in _value_list(value)
        ]
        result[attribute] = {
            "ComparisonOperator": operator,
            "AttributeValueList": attribute_values,
        }
    return result


__all__ = [
    "CANONICAL_OPERATORS",
    "DEFAULT_OPERATOR",
    "OPERATOR_ALIASES",
    "Clause",
    "add_clause",
    "build_conditions",
    "convert_operator",
]

"""Type aliases for attribute schemas and wire values.

Type aliases:
    TypeTag: The wire type tags a schema may declare. Scalars are S (string),
        N (number, carried as a string) and B (binary); SS, NS and BS are sets
        of those.

    Schema: A mapping of attribute name to TypeTag.

    WireValue: A single typed attribute as sent to or received from the store,
        e.g. {"N": "20"}.

    WireItem: A mapping of attribute name to WireValue.
"""

from collections.abc import Mapping
from typing import Any, Literal, TypeAlias

TypeTag: TypeAlias = Literal["S", "N", "B", "SS", "NS", "BS"]
Schema: TypeAlias = Mapping[str, TypeTag]
WireValue: TypeAlias = dict[str, Any]
WireItem: TypeAlias = dict[str, WireValue]

DEFAULT_TYPE: TypeTag = "S"
SCALAR_TYPES: frozenset[str] = frozenset({"S", "N", "B"})
SET_TYPES: frozenset[str] = frozenset({"SS", "NS", "BS"})
TYPE_TAGS: frozenset[str] = SCALAR_TYPES | SET_TYPES


def resolve_type(schema: Schema, attribute_name: str) -> TypeTag:
    """Return the declared type tag for an attribute, or S when undeclared."""
    return schema.get(attribute_name, DEFAULT_TYPE)


def element_type(type_tag: str) -> str:
    """Return the scalar tag of a set tag's elements (SS -> S); scalars map to themselves."""
    if type_tag in SET_TYPES:
        return type_tag[0]
    return type_tag


__all__ = [
    "DEFAULT_TYPE",
    "SCALAR_TYPES",
    "SET_TYPES",
    "TYPE_TAGS",
    "Schema",
    "TypeTag",
    "WireItem",
    "WireValue",
    "element_type",
    "resolve_type",
]

"""Conversion between plain attribute maps and the store's typed wire form.

A plain map holds attribute values as the application sees them:

    {"id": "u1", "age": "20", "tags": ["a", "b"]}

The wire form wraps every value in a single-entry map keyed by its type tag,
resolved from the schema (undeclared attributes are strings):

    {"id": {"S": "u1"}, "age": {"N": "20"}, "tags": {"SS": ["a", "b"]}}

Numbers always travel as their string representation, inside N and NS.
"""

import base64
import json
from collections.abc import Iterable, Mapping
from typing import Any

from kettledb.types import Schema, WireItem, WireValue, resolve_type

DEFAULT_UPDATE_ACTION = "PUT"

# Field separators of the Data Pipeline import/export line format.
ETX = "\x03"
STX = "\x02"


def stringify(value: Any) -> Any:
    """Return the string form of a scalar; bytes and None pass through."""
    if value is None or isinstance(value, (bytes, bytearray)):
        return value
    return str(value)


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (str, bytes, bytearray)):
        return [value]
    if isinstance(value, Iterable):
        return list(value)
    return [value]


def encode_value(type_tag: str, value: Any) -> WireValue:
    """Wrap one plain value in its typed envelope."""
    if type_tag in ("S", "N"):
        return {type_tag: stringify(value)}
    if type_tag in ("SS", "NS"):
        return {type_tag: [stringify(v) for v in _as_list(value)]}
    if type_tag == "BS":
        return {type_tag: _as_list(value)}
    return {type_tag: value}


def encode_attributes(schema: Schema, values: Mapping[str, Any]) -> WireItem:
    """Encode a plain attribute map into wire form."""
    return {key: encode_value(resolve_type(schema, key), value) for key, value in values.items()}


def encode_attribute_updates(
    schema: Schema,
    values: Mapping[str, Any],
    actions: Mapping[str, str] | None = None,
) -> dict[str, dict[str, Any]]:
    """Encode a plain attribute map as an AttributeUpdates document.

    Args:
        schema: The binding's attribute schema.
        values: Attribute values to write.
        actions: Per-attribute action overrides (ADD or DELETE). Attributes
            without an override are PUT.

    Returns:
        A mapping like {"age": {"Action": "ADD", "Value": {"N": "1"}}}.

    """
    actions = actions or {}
    return {
        key: {
            "Action": actions.get(key, DEFAULT_UPDATE_ACTION),
            "Value": encode_value(resolve_type(schema, key), value),
        }
        for key, value in values.items()
    }


def decode_attribute(wire_value: Mapping[str, Any]) -> Any:
    """Return the payload of a typed envelope, whatever its tag.

    The tag echoed by the store is trusted and not checked against the schema.
    An empty envelope decodes to None.
    """
    for value in wire_value.values():
        return value
    return None


def decode_item(wire_item: Mapping[str, Mapping[str, Any]]) -> dict[str, Any]:
    return {key: decode_attribute(value) for key, value in wire_item.items()}


def decode_items(wire_items: Iterable[Mapping[str, Mapping[str, Any]]]) -> list[dict[str, Any]]:
    return [decode_item(item) for item in wire_items]


def compact_for_write(values: Mapping[str, Any]) -> dict[str, Any]:
    """Drop attributes whose value is None or the empty string.

    The store rejects empty scalar attributes, so they are omitted from writes
    rather than written as empty.
    """
    return {key: value for key, value in values.items() if value is not None and value != ""}


def add_to_set(type_tag: str, current: list[Any] | None, value: Any) -> list[Any]:
    """Return a copy of a set attribute's element list with value appended.

    String and number set elements are stored in string form; binary set
    elements are stored as given.
    """
    result = list(current or [])
    if type_tag in ("SS", "NS"):
        result.append(stringify(value))
    elif type_tag == "BS":
        result.append(value)
    return result


def remove_from_set(current: list[Any] | None, value: Any) -> list[Any]:
    """Return a copy of current without the first element equal to value.

    Removing a value that is not present is a no-op.
    """
    result = list(current or [])
    if value in result:
        result.remove(value)
    return result


def _import_payload(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_import_payload(v) for v in value]
    return value


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, bytes, bytearray, list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def to_import_line(schema: Schema, values: Mapping[str, Any]) -> str:
    """Render one record in the Data Pipeline import/export line format.

    Each non-empty schema attribute becomes ``name<ETX>{"type": value}``;
    attributes are joined with STX and the line ends with a newline. Type
    tags are lowercased and JSON slashes are escaped as ``\\/``.
    """
    fields = []
    for column, type_tag in schema.items():
        value = values.get(column)
        if _is_empty(value):
            continue
        payload = json.dumps({type_tag.lower(): _import_payload(value)}, separators=(",", ":"))
        fields.append(column + ETX + payload.replace("/", "\\/"))
    return STX.join(fields) + "\n"


__all__ = [
    "DEFAULT_UPDATE_ACTION",
    "ETX",
    "STX",
    "add_to_set",
    "compact_for_write",
    "decode_attribute",
    "decode_item",
    "decode_items",
    "encode_attribute_updates",
    "encode_attributes",
    "encode_value",
    "remove_from_set",
    "stringify",
    "to_import_line",
]

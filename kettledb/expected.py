"""Expected-state documents for conditional writes."""

from collections.abc import Mapping
from typing import Any

from kettledb.codec import encode_value
from kettledb.types import Schema, resolve_type


def build_expected(
    schema: Schema,
    expected: Mapping[str, Any] | None = None,
    exists: Mapping[str, bool] | None = None,
) -> dict[str, dict[str, Any]]:
    """Build an Expected document asserting the previous state of an item.

    Args:
        schema: The binding's attribute schema.
        expected: Attribute values the stored item must currently hold.
        exists: Per-attribute existence assertions. An attribute named here
            but absent from expected gets an existence-only entry.

    Returns:
        A mapping like
        {"name": {"Value": {"S": "John"}}, "age": {"Exists": False}}.

    Example:
        build_expected({"id": "S"}, {}, {"id": False})
        Returns {"id": {"Exists": False}}, which makes a put fail when an
        item with the same key already exists.

    """
    result: dict[str, dict[str, Any]] = {}
    for key, value in (expected or {}).items():
        result[key] = {"Value": encode_value(resolve_type(schema, key), value)}
    for key, flag in (exists or {}).items():
        result.setdefault(key, {})["Exists"] = flag
    return result


__all__ = ["build_expected"]

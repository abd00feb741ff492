"""Binding source generator.

Builds the Python source of a module that defines a TableBinding for an
existing table, from the table description and a small sample of items.
"""

import json
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from kettledb.binding import IndexKeys
from kettledb.types import TYPE_TAGS

SAMPLE_SIZE = 10


def table_name_to_class_name(table_name: str) -> str:
    """Convert a table name to a CamelCase identifier (user_profiles -> UserProfiles)."""
    return "".join(part[:1].upper() + part[1:] for part in table_name.split("_"))


def parse_key_schema(key_schema: Iterable[Mapping[str, str]]) -> IndexKeys:
    """Return the (hash, range) attribute names of a key schema."""
    hash_key = ""
    range_key: str | None = None
    for element in key_schema:
        if element["KeyType"] == "HASH":
            hash_key = element["AttributeName"]
        elif element["KeyType"] == "RANGE":
            range_key = element["AttributeName"]
    return hash_key, range_key


def infer_schema(
    attribute_definitions: Iterable[Mapping[str, str]],
    items: Iterable[Mapping[str, Mapping[str, Any]]],
) -> dict[str, str]:
    """Infer an attribute schema, sorted by attribute name.

    Types seen in sample items come first and are overridden by the table's
    attribute definitions. Types a binding cannot declare (BOOL, L, M, NULL)
    are left out.
    """
    schema: dict[str, str] = {}
    for item in items:
        for attribute_name, wire_value in item.items():
            for type_tag in wire_value:
                if type_tag in TYPE_TAGS:
                    schema[attribute_name] = type_tag
    for definition in attribute_definitions:
        schema[definition["AttributeName"]] = definition["AttributeType"]
    return dict(sorted(schema.items()))


def index_keys(indexes: Iterable[Mapping[str, Any]] | None) -> dict[str, IndexKeys]:
    return {index["IndexName"]: parse_key_schema(index["KeySchema"]) for index in indexes or []}


def _literal(value: str | None) -> str:
    return "None" if value is None else json.dumps(value)


def _render_mapping(entries: Sequence[tuple[str, str]]) -> str:
    if not entries:
        return "{}"
    width = max(len(_literal(name)) for name, _ in entries) + 1
    lines = [f"        {_literal(name) + ':':<{width}} {value}," for name, value in entries]
    return "{\n" + "\n".join(lines) + "\n    }"


def render_binding_module(
    table_name: str,
    hash_key: str,
    range_key: str | None,
    schema: Mapping[str, str],
    global_secondary_indexes: Mapping[str, IndexKeys] | None = None,
    local_secondary_indexes: Mapping[str, IndexKeys] | None = None,
) -> str:
    """Render the source of a module defining the binding."""

    def _indexes(indexes: Mapping[str, IndexKeys] | None) -> str:
        entries = [
            (name, f"({_literal(keys[0])}, {_literal(keys[1])})")
            for name, keys in (indexes or {}).items()
        ]
        return _render_mapping(entries)

    schema_code = _render_mapping([(name, _literal(tag)) for name, tag in schema.items()])
    return (
        "from kettledb import define_binding\n"
        "\n"
        f"{table_name_to_class_name(table_name)} = define_binding(\n"
        f"    {_literal(table_name)},\n"
        f"    hash_key={_literal(hash_key)},\n"
        f"    range_key={_literal(range_key)},\n"
        f"    schema={schema_code},\n"
        f"    global_secondary_indexes={_indexes(global_secondary_indexes)},\n"
        f"    local_secondary_indexes={_indexes(local_secondary_indexes)},\n"
        ")\n"
    )


def generate_skeleton(client: Any, table_name: str) -> str:
    """Describe a table with a boto3 DynamoDB client and render its binding module.

    Raises:
        botocore.exceptions.ClientError: If the table cannot be described or scanned.

    """
    table = client.describe_table(TableName=table_name)["Table"]
    items = client.scan(TableName=table_name, Limit=SAMPLE_SIZE).get("Items", [])

    hash_key, range_key = parse_key_schema(table["KeySchema"])
    return render_binding_module(
        table_name,
        hash_key,
        range_key,
        infer_schema(table.get("AttributeDefinitions", []), items),
        index_keys(table.get("GlobalSecondaryIndexes")),
        index_keys(table.get("LocalSecondaryIndexes")),
    )


__all__ = [
    "SAMPLE_SIZE",
    "generate_skeleton",
    "index_keys",
    "infer_schema",
    "parse_key_schema",
    "render_binding_module",
    "table_name_to_class_name",
]

"""Table bindings.

A TableBinding describes one table: its name, key attributes and attribute
schema. It is defined once and shared by every Record produced for the table.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kettledb.types import Schema, TypeTag, resolve_type

IndexKeys = tuple[str, str | None]


class TableBinding(BaseModel):
    """Immutable description of a table.

    Attributes:
        table_name: The table name in the store.
        hash_key: The partition key attribute name.
        range_key: The sort key attribute name, or None for hash-only tables.
        attributes: The attribute schema, name -> type tag. Attributes not
            listed here are treated as strings.
        global_secondary_indexes: Index name -> (hash key, range key).
        local_secondary_indexes: Index name -> (hash key, range key).

    Example:
        users = TableBinding(
            table_name="users",
            hash_key="id",
            attributes={"id": "S", "age": "N", "tags": "SS"},
        )

    """

    model_config = ConfigDict(frozen=True)

    table_name: str = Field(min_length=1)
    hash_key: str = Field(min_length=1)
    range_key: str | None = None
    attributes: dict[str, TypeTag] = Field(default_factory=dict)
    global_secondary_indexes: dict[str, IndexKeys] = Field(default_factory=dict)
    local_secondary_indexes: dict[str, IndexKeys] = Field(default_factory=dict)

    @field_validator("range_key")
    @classmethod
    def _empty_range_key_is_none(cls, value: str | None) -> str | None:
        return value or None

    @property
    def key_attributes(self) -> tuple[str, ...]:
        if self.range_key is None:
            return (self.hash_key,)
        return (self.hash_key, self.range_key)

    def type_of(self, attribute_name: str) -> TypeTag:
        return resolve_type(self.attributes, attribute_name)


def define_binding(
    table_name: str,
    hash_key: str,
    range_key: str | None = None,
    schema: Schema | None = None,
    *,
    global_secondary_indexes: dict[str, IndexKeys] | None = None,
    local_secondary_indexes: dict[str, IndexKeys] | None = None,
) -> TableBinding:
    """Define a table binding.

    Raises:
        pydantic.ValidationError: If a schema type tag is not one of
            S, N, B, SS, NS, BS, or the table name or hash key is empty.

    """
    return TableBinding(
        table_name=table_name,
        hash_key=hash_key,
        range_key=range_key,
        attributes=dict(schema or {}),
        global_secondary_indexes=global_secondary_indexes or {},
        local_secondary_indexes=local_secondary_indexes or {},
    )


__all__ = [
    "IndexKeys",
    "TableBinding",
    "define_binding",
]

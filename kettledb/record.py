"""Records: per-table object mapping and query building.

This module provides the primary public API:

- `Record` wraps one item of a bound table and exposes CRUD, query, scan and
  batch-get operations on it
- `factory` produces fresh Records for a binding from a ConnectionRegistry

A Record is either new (made by create(), written with an insert
precondition) or existing (hydrated from a read, written with the loaded
snapshot as precondition). Query builder state (where/filter clauses, limit,
index, consistency, pagination cursor) lives on the instance; use a fresh
Record per logical operation.

Example:
    users = define_binding("users", "id", schema={"id": "S", "age": "N"})
    registry = ConnectionRegistry()

    user = factory(users, registry).create({"id": "u1", "age": 20})
    user.save()

    adults = factory(users, registry).where_equals("id", "u1").filter_op("age", ">=", 18).find_many()
"""

import copy
import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, TypeVar

from typing_extensions import Self

from kettledb.binding import TableBinding
from kettledb.codec import (
    add_to_set,
    compact_for_write,
    decode_item,
    decode_items,
    encode_attribute_updates,
    encode_attributes,
    remove_from_set,
    stringify,
    to_import_line,
)
from kettledb.conditions import Clause, add_clause, build_conditions
from kettledb.connections import DEFAULT_CONNECTION, ConnectionRegistry, StoreClient
from kettledb.exceptions import MissingRangeKeyError
from kettledb.expected import build_expected
from kettledb.types import SET_TYPES, Schema, WireItem

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound="Record")

_WRITE_OPTION_NAMES = {
    "return_values": "ReturnValues",
    "return_consumed_capacity": "ReturnConsumedCapacity",
    "return_item_collection_metrics": "ReturnItemCollectionMetrics",
}


def _write_options(**options: str | None) -> dict[str, str]:
    return {
        _WRITE_OPTION_NAMES[name]: value
        for name, value in options.items()
        if value is not None
    }


class Record:
    """One item of a bound table, plus the query builder state for that table.

    Subclass it to give a table a domain-specific type:

        class User(Record):
            @property
            def name(self) -> str | None:
                return self.get("name")

        user = factory(users, registry, record_class=User).find_one("u1")

    """

    def __init__(
        self,
        binding: TableBinding,
        client: StoreClient,
        *,
        connection_name: str = DEFAULT_CONNECTION,
        strict_operators: bool = False,
    ) -> None:
        self._binding = binding
        self._client = client
        self._connection_name = connection_name
        self._strict_operators = strict_operators

        self._data: dict[str, Any] = {}
        self._data_original: dict[str, Any] = {}
        self._is_new = False

        self._limit: int | None = None
        self._exclusive_start_key: dict[str, Any] | None = None
        self._index_name: str | None = None
        self._consistent_read = False
        self._where_conditions: list[Clause] = []
        self._filter_conditions: list[Clause] = []

        self._last_evaluated_key: dict[str, Any] | None = None
        self._count: int | None = None

    def __repr__(self) -> str:
        state = "new" if self._is_new else "existing"
        return f"{type(self).__name__}({self.table_name!r}, {state}, {self._data!r})"

    # ------------------------------------------------------------------
    # Binding and state accessors
    # ------------------------------------------------------------------

    @property
    def binding(self) -> TableBinding:
        return self._binding

    @property
    def table_name(self) -> str:
        return self._binding.table_name

    @property
    def hash_key(self) -> str:
        return self._binding.hash_key

    @property
    def range_key(self) -> str | None:
        return self._binding.range_key

    @property
    def schema(self) -> Schema:
        return self._binding.attributes

    @property
    def connection_name(self) -> str:
        return self._connection_name

    @property
    def client(self) -> StoreClient:
        return self._client

    @property
    def is_new(self) -> bool:
        return self._is_new

    @property
    def count(self) -> int | None:
        """Number of items returned by the last query."""
        return self._count

    @property
    def last_evaluated_key(self) -> dict[str, Any] | None:
        """Pagination cursor of the last limited query, or None when exhausted."""
        return self._last_evaluated_key

    @property
    def where_conditions(self) -> tuple[Clause, ...]:
        return tuple(self._where_conditions)

    @property
    def filter_conditions(self) -> tuple[Clause, ...]:
        return tuple(self._filter_conditions)

    def _spawn(self) -> Self:
        return type(self)(
            self._binding,
            self._client,
            connection_name=self._connection_name,
            strict_operators=self._strict_operators,
        )

    # ------------------------------------------------------------------
    # Data access
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any:
        """Return an attribute value, or None if it is not set."""
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        """Set an attribute value.

        Attributes missing from the schema are ignored. S and N values are
        stored in their string form.
        """
        if key not in self.schema:
            logger.debug("Ignoring attribute %r not in schema of %s", key, self.table_name)
            return
        if self._binding.type_of(key) in ("S", "N"):
            value = stringify(value)
        self._data[key] = value

    def unset(self, key: str) -> None:
        self._data.pop(key, None)

    def has(self, key: str) -> bool:
        return self._data.get(key) is not None

    def as_dict(self) -> dict[str, Any]:
        """Return a copy of the record's attributes."""
        return dict(self._data)

    def create(self, data: Mapping[str, Any] | None = None) -> Self:
        """Fill a new record; save() will insert it."""
        self._is_new = True
        return self.hydrate(data)

    def hydrate(self, data: Mapping[str, Any] | None = None) -> Self:
        """Fill the record and take the snapshot used as save() precondition."""
        for key, value in (data or {}).items():
            self.set(key, value)
        self._data_original = copy.deepcopy(self._data)
        return self

    def set_add(self, key: str, value: Any) -> None:
        """Append a value to a set attribute (SS, NS or BS)."""
        type_tag = self._binding.type_of(key)
        if type_tag in SET_TYPES:
            self._data[key] = add_to_set(type_tag, self.get(key), value)

    def set_remove(self, key: str, value: Any) -> None:
        """Remove a value from a set attribute; absent values are ignored.

        Removing the last member unsets the attribute, since the store
        rejects empty sets.
        """
        type_tag = self._binding.type_of(key)
        current = self.get(key)
        if type_tag not in SET_TYPES or current is None:
            return
        if type_tag != "BS":
            value = stringify(value)
        remaining = remove_from_set(current, value)
        if remaining:
            self.set(key, remaining)
        else:
            self.unset(key)

    def to_import_format(self) -> str:
        """Render the record as one Data Pipeline import/export line."""
        return to_import_line(self.schema, self._data)

    # ------------------------------------------------------------------
    # Query builder
    # ------------------------------------------------------------------

    def where_equals(self, key: str, value: Any) -> Self:
        """Add a key condition `key = value`."""
        return self.where_op(key, "EQ", value)

    def where_op(self, key: str, operator: str, value: Any) -> Self:
        """Add a key condition with an operator alias (=, >, ~, ^, IN, ...).

        Raises:
            UnknownOperatorError: In strict mode, for an unrecognized operator.

        """
        add_clause(self._where_conditions, key, operator, value, strict=self._strict_operators)
        return self

    def filter_equals(self, key: str, value: Any) -> Self:
        """Add a filter `key = value`, applied after key evaluation."""
        return self.filter_op(key, "EQ", value)

    def filter_op(self, key: str, operator: str, value: Any) -> Self:
        """Add a filter with an operator alias, applied after key evaluation.

        Raises:
            UnknownOperatorError: In strict mode, for an unrecognized operator.

        """
        add_clause(self._filter_conditions, key, operator, value, strict=self._strict_operators)
        return self

    def limit(self, limit: int | None) -> Self:
        self._limit = limit
        return self

    def index(self, index_name: str | None) -> Self:
        self._index_name = index_name
        return self

    def consistent(self, consistent_read: bool = True) -> Self:
        self._consistent_read = consistent_read
        return self

    def set_exclusive_start_key(self, exclusive_start_key: Mapping[str, Any] | None) -> Self:
        """Resume a limited query after the given key (a plain attribute map)."""
        self._exclusive_start_key = dict(exclusive_start_key) if exclusive_start_key else None
        return self

    def reset_conditions(self) -> Self:
        """Clear clauses, limit, cursor, index and consistency."""
        self._limit = None
        self._where_conditions = []
        self._filter_conditions = []
        self._exclusive_start_key = None
        self._index_name = None
        self._consistent_read = False
        return self

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_one(
        self,
        hash_value: Any,
        range_value: Any = None,
        *,
        attributes_to_get: list[str] | None = None,
        return_consumed_capacity: str = "TOTAL",
    ) -> Self | None:
        """Get a single item by its key.

        Returns:
            A hydrated record, or None when no item matches.

        Raises:
            MissingRangeKeyError: If range_value is given but the binding has
                no range key.

        """
        key_values = {self.hash_key: hash_value}
        if range_value is not None:
            if self.range_key is None:
                raise MissingRangeKeyError(table_name=self.table_name)
            key_values[self.range_key] = range_value

        request: dict[str, Any] = {
            "TableName": self.table_name,
            "Key": encode_attributes(self.schema, key_values),
            "ConsistentRead": self._consistent_read,
            "ReturnConsumedCapacity": return_consumed_capacity,
        }
        if attributes_to_get is not None:
            request["AttributesToGet"] = attributes_to_get

        logger.debug("find_one on %s: %s", self.table_name, key_values)
        item = self._client.get_item(**request)
        if not item:
            return None
        return self._spawn().hydrate(decode_item(item))

    def _build_query_filter(self) -> dict[str, Any] | None:
        if not self._filter_conditions:
            return None
        return build_conditions(self.schema, self._filter_conditions)

    def find_many(self, *, scan_index_forward: bool = True) -> list[Self]:
        """Query with the accumulated where and filter clauses."""
        rows = self.query(
            build_conditions(self.schema, self._where_conditions),
            scan_index_forward=scan_index_forward,
            query_filter=self._build_query_filter(),
        )
        return [self._spawn().hydrate(row) for row in rows]

    def find_first(self, *, scan_index_forward: bool = True) -> Self | None:
        records = self.find_many(scan_index_forward=scan_index_forward)
        return records[0] if records else None

    def find_array(self, *, scan_index_forward: bool = True) -> list[dict[str, Any]]:
        """Like find_many(), returning plain attribute maps."""
        return [record.as_dict() for record in self.find_many(scan_index_forward=scan_index_forward)]

    def find_all(self) -> list[Self]:
        """Scan the table with the accumulated filter clauses."""
        rows = self.scan(scan_filter=self._build_query_filter())
        return [self._spawn().hydrate(row) for row in rows]

    def _build_query_request(
        self,
        key_conditions: Mapping[str, Any],
        *,
        scan_index_forward: bool,
        query_filter: Mapping[str, Any] | None,
    ) -> dict[str, Any]:
        request: dict[str, Any] = {
            "TableName": self.table_name,
            "KeyConditions": dict(key_conditions),
            "ScanIndexForward": scan_index_forward,
            "Select": "ALL_ATTRIBUTES",
            "ReturnConsumedCapacity": "TOTAL",
            "ConsistentRead": self._consistent_read,
        }
        if query_filter:
            request["QueryFilter"] = dict(query_filter)
        if self._index_name:
            request["IndexName"] = self._index_name
        return request

    def query(
        self,
        key_conditions: Mapping[str, Any],
        *,
        scan_index_forward: bool = True,
        query_filter: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Run a query and return decoded items.

        With a limit set, one page is read starting at the exclusive start
        key, and the page's cursor and count are recorded on the record.
        Without a limit, every page is read and all items are returned.

        Args:
            key_conditions: A built KeyConditions document.
            scan_index_forward: Sort ascending by range key when True.
            query_filter: A built QueryFilter document.

        """
        request = self._build_query_request(
            key_conditions, scan_index_forward=scan_index_forward, query_filter=query_filter
        )

        if self._limit is not None and self._limit > 0:
            if self._exclusive_start_key:
                request["ExclusiveStartKey"] = encode_attributes(
                    self.schema, self._exclusive_start_key
                )
            request["Limit"] = self._limit

            logger.debug("query on %s (limit %d)", self.table_name, self._limit)
            page = self._client.query(**request)
            items: list[WireItem] = page.get("Items", [])

            last_evaluated_key = page.get("LastEvaluatedKey")
            self._last_evaluated_key = decode_item(last_evaluated_key) if last_evaluated_key else None
            self._count = page.get("Count")
        else:
            logger.debug("query on %s (all pages)", self.table_name)
            items = []
            for page in self._client.paginate("query", **request):
                items.extend(page.get("Items", []))
            self._last_evaluated_key = None
            self._count = len(items)

        return decode_items(items)

    def iter_query(self, *, scan_index_forward: bool = True) -> Iterator[Self]:
        """Lazily yield hydrated records for the accumulated clauses, page by page."""
        request = self._build_query_request(
            build_conditions(self.schema, self._where_conditions),
            scan_index_forward=scan_index_forward,
            query_filter=self._build_query_filter(),
        )
        for page in self._client.paginate("query", **request):
            for item in page.get("Items", []):
                yield self._spawn().hydrate(decode_item(item))

    def _build_scan_request(self, scan_filter: Mapping[str, Any] | None) -> dict[str, Any]:
        request: dict[str, Any] = {"TableName": self.table_name}
        if scan_filter:
            request["ScanFilter"] = dict(scan_filter)
        if self._index_name:
            request["IndexName"] = self._index_name
        if self._consistent_read:
            request["ConsistentRead"] = True
        return request

    def scan(self, *, scan_filter: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        """Scan every page of the table and return decoded items."""
        logger.debug("scan on %s", self.table_name)
        items: list[WireItem] = []
        for page in self._client.paginate("scan", **self._build_scan_request(scan_filter)):
            items.extend(page.get("Items", []))
        self._count = len(items)
        return decode_items(items)

    def iter_scan(self) -> Iterator[Self]:
        """Lazily yield hydrated records of a filtered scan, page by page."""
        request = self._build_scan_request(self._build_query_filter())
        for page in self._client.paginate("scan", **request):
            for item in page.get("Items", []):
                yield self._spawn().hydrate(decode_item(item))

    def batch_get_items(self, key_values: Iterable[Any]) -> list[Self]:
        """Get several items in one batch read.

        Args:
            key_values: For hash-only tables, hash values (bare or as 1-element
                sequences). For range-keyed tables, (hash, range) pairs. The
                store's batch size limit is not checked here.

        """
        keys: list[WireItem] = []
        for key_value in key_values:
            if self.range_key is not None:
                hash_value, range_value = key_value
                conditions = {self.hash_key: hash_value, self.range_key: range_value}
            else:
                hash_value = key_value[0] if isinstance(key_value, (list, tuple)) else key_value
                conditions = {self.hash_key: hash_value}
            keys.append(encode_attributes(self.schema, conditions))

        logger.debug("batch_get_items on %s: %d keys", self.table_name, len(keys))
        items = self._client.batch_get_item(self.table_name, keys, consistent_read=True)
        return [self._spawn().hydrate(row) for row in decode_items(items)]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _key_conditions(self) -> WireItem:
        key_values = {self.hash_key: self.get(self.hash_key)}
        if self.range_key is not None and self.get(self.range_key) is not None:
            key_values[self.range_key] = self.get(self.range_key)
        return encode_attributes(self.schema, key_values)

    def save(
        self,
        *,
        force_update: bool = False,
        return_values: str | None = None,
        return_consumed_capacity: str | None = None,
        return_item_collection_metrics: str | None = None,
    ) -> dict[str, Any]:
        """Write the whole record.

        A new record is written on condition that none of its schema
        attributes exist yet; an existing record on condition that the stored
        item still matches the snapshot taken when it was loaded. Pass
        force_update=True to skip the condition.

        Returns:
            The store's raw put_item response.

        Raises:
            ConditionCheckFailedError: If the condition does not hold.

        """
        values = compact_for_write(self._data)
        options = {
            "return_values": return_values,
            "return_consumed_capacity": return_consumed_capacity,
            "return_item_collection_metrics": return_item_collection_metrics,
        }

        if self._is_new:
            exists = None if force_update else {key: False for key in self.schema}
            result = self.put_item(values, exists=exists, **options)
            self._is_new = False
        else:
            expected = None if force_update else self._data_original
            result = self.put_item(values, expected=expected, **options)

        return result

    def put_item(
        self,
        values: Mapping[str, Any],
        *,
        expected: Mapping[str, Any] | None = None,
        exists: Mapping[str, bool] | None = None,
        return_values: str | None = None,
        return_consumed_capacity: str | None = None,
        return_item_collection_metrics: str | None = None,
    ) -> dict[str, Any]:
        """Put a full item built from values.

        Args:
            values: Plain attribute values of the item.
            expected: Attribute values the stored item must currently hold.
            exists: Per-attribute existence assertions.

        """
        request: dict[str, Any] = {
            "TableName": self.table_name,
            "Item": encode_attributes(self.schema, values),
            "ReturnConsumedCapacity": "TOTAL",
            "ReturnItemCollectionMetrics": "SIZE",
        }
        if expected or exists:
            request["Expected"] = build_expected(
                self.schema, compact_for_write(expected or {}), exists
            )
        request |= _write_options(
            return_values=return_values,
            return_consumed_capacity=return_consumed_capacity,
            return_item_collection_metrics=return_item_collection_metrics,
        )

        logger.debug("put_item on %s", self.table_name)
        return self._client.put_item(**request)

    def update_item(
        self,
        values: Mapping[str, Any],
        *,
        actions: Mapping[str, str] | None = None,
        expected: Mapping[str, Any] | None = None,
        exists: Mapping[str, bool] | None = None,
        return_values: str | None = None,
        return_consumed_capacity: str | None = None,
        return_item_collection_metrics: str | None = None,
    ) -> dict[str, Any]:
        """Update attributes of the item identified by this record's key.

        Args:
            values: Plain attribute values to write. Key attributes are skipped.
            actions: Per-attribute ADD or DELETE overrides; the default is PUT.
            expected: Attribute values the stored item must currently hold.
            exists: Per-attribute existence assertions.

        Example:
            counter.update_item({"hits": 1}, actions={"hits": "ADD"})

        """
        key = self._key_conditions()
        attribute_updates = {
            name: update
            for name, update in encode_attribute_updates(self.schema, values, actions).items()
            if name not in key
        }

        request: dict[str, Any] = {
            "TableName": self.table_name,
            "Key": key,
            "AttributeUpdates": attribute_updates,
            "ReturnValues": "ALL_NEW",
            "ReturnConsumedCapacity": "TOTAL",
            "ReturnItemCollectionMetrics": "SIZE",
        }
        if expected or exists:
            request["Expected"] = build_expected(
                self.schema, compact_for_write(expected or {}), exists
            )
        request |= _write_options(
            return_values=return_values,
            return_consumed_capacity=return_consumed_capacity,
            return_item_collection_metrics=return_item_collection_metrics,
        )

        logger.debug("update_item on %s", self.table_name)
        return self._client.update_item(**request)

    def delete(self) -> dict[str, Any]:
        """Delete the item identified by this record's key.

        Returns:
            The store's raw response, including the deleted item's old
            attributes under "Attributes".

        """
        request = {
            "TableName": self.table_name,
            "Key": self._key_conditions(),
            "ReturnValues": "ALL_OLD",
        }
        logger.debug("delete_item on %s", self.table_name)
        return self._client.delete_item(**request)


def factory(
    binding: TableBinding,
    registry: ConnectionRegistry,
    connection_name: str = DEFAULT_CONNECTION,
    *,
    record_class: type[RecordT] = Record,  # type: ignore[assignment]
    strict_operators: bool = False,
) -> RecordT:
    """Return a fresh record for binding, using the registry's client for connection_name.

    Args:
        binding: The table binding.
        registry: The connection registry providing the store client.
        connection_name: Which connection to use.
        record_class: A Record subclass to instantiate.
        strict_operators: Reject unknown operator tokens in where/filter
            instead of treating them as EQ.

    """
    client = registry.get_client(connection_name)
    return record_class(
        binding,
        client,
        connection_name=connection_name,
        strict_operators=strict_operators,
    )


__all__ = [
    "Record",
    "factory",
]

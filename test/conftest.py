"""Shared test fixtures.

This module provides:
- Table bindings for a hash-only table and a hash + range table
- A MagicMock standing in for the store client
- A connection registry wired to that mock
"""

from unittest.mock import MagicMock

from pytest import fixture

from kettledb.binding import TableBinding, define_binding
from kettledb.connections import ConnectionRegistry, DynamoStoreClient
from kettledb.record import Record, factory


@fixture
def users_binding() -> TableBinding:
    return define_binding(
        "users",
        "id",
        schema={"id": "S", "age": "N", "name": "S", "tags": "SS", "scores": "NS", "blobs": "BS"},
    )


@fixture
def events_binding() -> TableBinding:
    return define_binding(
        "events",
        "user_id",
        "created_at",
        schema={"user_id": "S", "created_at": "N", "kind": "S"},
        local_secondary_indexes={"kind-index": ("user_id", "kind")},
    )


@fixture
def store() -> MagicMock:
    return MagicMock(spec=DynamoStoreClient)


@fixture
def registry(store: MagicMock) -> ConnectionRegistry:
    registry = ConnectionRegistry()
    registry.register("default", store)
    return registry


@fixture
def users(users_binding: TableBinding, registry: ConnectionRegistry) -> Record:
    return factory(users_binding, registry)


@fixture
def events(events_binding: TableBinding, registry: ConnectionRegistry) -> Record:
    return factory(events_binding, registry)

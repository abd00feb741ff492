"""Store clients and the connection registry.

Records never build store clients themselves. A ConnectionRegistry, created
once at application start, holds per-connection settings and hands out one
StoreClient per connection name:

    registry = ConnectionRegistry()
    registry.configure("default", region="ap-northeast-1")
    users = factory(users_binding, registry)

Tests and alternative backends can register a ready client instead:

    registry.register("default", FakeStoreClient())
"""

import logging
import threading
from collections.abc import Callable, Iterator, Mapping
from types import TracebackType
from typing import Any, Protocol

import boto3
from botocore.exceptions import ClientError
from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Self

from kettledb.exceptions import ConnectionNotConfiguredError, wrap_client_error
from kettledb.types import WireItem

logger = logging.getLogger(__name__)

DEFAULT_CONNECTION = "default"


class ConnectionSettings(BaseModel):
    """Settings for one named connection.

    Attributes:
        key: AWS access key id. Used only together with secret.
        secret: AWS secret access key.
        region: AWS region name.
        endpoint: Endpoint URL, e.g. for DynamoDB Local. Also accepted as base_url.
        version: The store API version.
        scheme: "https" or "http"; used when endpoint has no scheme.
        profile: Named AWS credentials profile.

    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    key: str | None = None
    secret: str | None = None
    region: str | None = None
    endpoint: str | None = Field(default=None, alias="base_url")
    version: str = "2012-08-10"
    scheme: str = "https"
    profile: str | None = None

    def endpoint_url(self) -> str | None:
        if not self.endpoint:
            return None
        if "://" in self.endpoint:
            return self.endpoint
        return f"{self.scheme}://{self.endpoint}"


class StoreClient(Protocol):
    """The store operations a Record needs.

    Requests are keyword arguments named after the store's request fields
    (TableName, Key, Item, Expected, KeyConditions, ...). Implementations
    must raise ConditionCheckFailedError when an Expected precondition does
    not hold, and must return None from get_item when no item matches.
    """

    def get_item(self, **request: Any) -> WireItem | None: ...

    def put_item(self, **request: Any) -> dict[str, Any]: ...

    def update_item(self, **request: Any) -> dict[str, Any]: ...

    def delete_item(self, **request: Any) -> dict[str, Any]: ...

    def query(self, **request: Any) -> dict[str, Any]: ...

    def scan(self, **request: Any) -> dict[str, Any]: ...

    def batch_get_item(
        self, table_name: str, keys: list[WireItem], *, consistent_read: bool = True
    ) -> list[WireItem]: ...

    def paginate(self, operation: str, **request: Any) -> Iterator[dict[str, Any]]: ...


class DynamoStoreClient:
    """StoreClient backed by a boto3 DynamoDB low-level client.

    Example:
        store = DynamoStoreClient(boto3.client("dynamodb", region_name="us-east-1"))
        store.get_item(TableName="users", Key={"id": {"S": "u1"}})

    """

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: ConnectionSettings) -> Self:
        session = boto3.session.Session(
            profile_name=settings.profile,
            region_name=settings.region,
        )
        client_kwargs: dict[str, Any] = {
            "api_version": settings.version,
            "use_ssl": settings.scheme == "https",
        }
        endpoint_url = settings.endpoint_url()
        if endpoint_url is not None:
            client_kwargs["endpoint_url"] = endpoint_url
        if settings.key and settings.secret:
            client_kwargs["aws_access_key_id"] = settings.key
            client_kwargs["aws_secret_access_key"] = settings.secret

        return cls(session.client("dynamodb", **client_kwargs))

    @property
    def client(self) -> Any:
        return self._client

    def _call(self, operation: str, request: dict[str, Any]) -> dict[str, Any]:
        logger.debug("%s on %s", operation, request.get("TableName"))
        try:
            return getattr(self._client, operation)(**request)  # type: ignore[no-any-return]
        except ClientError as e:
            wrapped = wrap_client_error(
                e, operation=operation, table_name=request.get("TableName")
            )
            if wrapped is e:
                raise
            raise wrapped from e

    def get_item(self, **request: Any) -> WireItem | None:
        response = self._call("get_item", request)
        return response.get("Item")

    def put_item(self, **request: Any) -> dict[str, Any]:
        return self._call("put_item", request)

    def update_item(self, **request: Any) -> dict[str, Any]:
        return self._call("update_item", request)

    def delete_item(self, **request: Any) -> dict[str, Any]:
        return self._call("delete_item", request)

    def query(self, **request: Any) -> dict[str, Any]:
        return self._call("query", request)

    def scan(self, **request: Any) -> dict[str, Any]:
        return self._call("scan", request)

    def batch_get_item(
        self, table_name: str, keys: list[WireItem], *, consistent_read: bool = True
    ) -> list[WireItem]:
        response = self._call(
            "batch_get_item",
            {"RequestItems": {table_name: {"Keys": keys, "ConsistentRead": consistent_read}}},
        )
        unprocessed = response.get("UnprocessedKeys") or {}
        if unprocessed.get(table_name):
            logger.warning(
                "batch_get_item on %s left %d keys unprocessed",
                table_name,
                len(unprocessed[table_name].get("Keys", [])),
            )
        return response.get("Responses", {}).get(table_name, [])  # type: ignore[no-any-return]

    def paginate(self, operation: str, **request: Any) -> Iterator[dict[str, Any]]:
        """Yield every response page of a query or scan."""
        logger.debug("paginate %s on %s", operation, request.get("TableName"))
        paginator = self._client.get_paginator(operation)
        try:
            yield from paginator.paginate(**request)
        except ClientError as e:
            wrapped = wrap_client_error(
                e, operation=operation, table_name=request.get("TableName")
            )
            if wrapped is e:
                raise
            raise wrapped from e


ClientFactory = Callable[[ConnectionSettings], StoreClient]


class ConnectionRegistry:
    """Named connection settings and their lazily built store clients.

    The first get_client() call for a name builds its client; concurrent
    first calls build it once.
    """

    def __init__(
        self,
        settings: Mapping[str, ConnectionSettings] | None = None,
        *,
        client_factory: ClientFactory = DynamoStoreClient.from_settings,
    ) -> None:
        self._settings: dict[str, ConnectionSettings] = dict(settings or {})
        self._clients: dict[str, StoreClient] = {}
        self._client_factory = client_factory
        self._lock = threading.Lock()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def configure(self, connection_name: str = DEFAULT_CONNECTION, /, **values: Any) -> None:
        """Set settings for a connection, merging with what is already set.

        A client already built for the connection is dropped so that the next
        get_client() uses the new settings.

        Raises:
            pydantic.ValidationError: If a value has the wrong type.

        """
        if "base_url" in values:
            values["endpoint"] = values.pop("base_url")
        with self._lock:
            current = self._settings.get(connection_name, ConnectionSettings())
            merged = current.model_dump() | values
            self._settings[connection_name] = ConnectionSettings.model_validate(merged)
            self._clients.pop(connection_name, None)

    def get_settings(self, connection_name: str = DEFAULT_CONNECTION) -> ConnectionSettings:
        """Return the settings of a connection.

        The default connection falls back to empty settings, which leaves
        credentials and region to boto3's own resolution.

        Raises:
            ConnectionNotConfiguredError: If a non-default connection has no settings.

        """
        if connection_name in self._settings:
            return self._settings[connection_name]
        if connection_name == DEFAULT_CONNECTION:
            return ConnectionSettings()
        raise ConnectionNotConfiguredError(connection_name)

    def register(self, connection_name: str, client: StoreClient) -> None:
        """Use a ready client for a connection."""
        with self._lock:
            self._clients[connection_name] = client

    def get_client(self, connection_name: str = DEFAULT_CONNECTION) -> StoreClient:
        client = self._clients.get(connection_name)
        if client is not None:
            return client

        with self._lock:
            client = self._clients.get(connection_name)
            if client is None:
                settings = self.get_settings(connection_name)
                logger.info("Creating store client for connection '%s'", connection_name)
                client = self._client_factory(settings)
                self._clients[connection_name] = client
        return client

    def close(self) -> None:
        """Drop every cached client."""
        with self._lock:
            self._clients.clear()


__all__ = [
    "DEFAULT_CONNECTION",
    "ConnectionRegistry",
    "ConnectionSettings",
    "DynamoStoreClient",
    "StoreClient",
]

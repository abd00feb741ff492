"""Tests for connection settings, the registry and the boto3-backed store client."""

import logging
import threading
from unittest.mock import MagicMock

import pydantic
import pytest
from botocore.exceptions import ClientError

from kettledb.connections import ConnectionRegistry, ConnectionSettings, DynamoStoreClient
from kettledb.exceptions import ConditionCheckFailedError, ConnectionNotConfiguredError


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "failed"}}, "PutItem")


class TestConnectionSettings:
    """Test settings defaults and aliases."""

    def test_defaults(self) -> None:
        settings = ConnectionSettings()

        assert settings.version == "2012-08-10"
        assert settings.scheme == "https"
        assert settings.endpoint is None
        assert settings.endpoint_url() is None

    def test_base_url_alias(self) -> None:
        settings = ConnectionSettings.model_validate({"base_url": "http://localhost:8000"})

        assert settings.endpoint == "http://localhost:8000"

    def test_endpoint_without_scheme_uses_scheme(self) -> None:
        settings = ConnectionSettings(endpoint="localhost:8000", scheme="http")

        assert settings.endpoint_url() == "http://localhost:8000"

    def test_from_settings_builds_boto3_client(self) -> None:
        settings = ConnectionSettings(
            key="key",
            secret="secret",  # noqa: S106
            region="ap-northeast-1",
            endpoint="localhost:8000",
            scheme="http",
        )

        store = DynamoStoreClient.from_settings(settings)

        assert store.client.meta.endpoint_url == "http://localhost:8000"
        assert store.client.meta.region_name == "ap-northeast-1"


class TestConnectionRegistry:
    """Test named connections and lazy client construction."""

    def test_configure_merges_settings(self) -> None:
        registry = ConnectionRegistry()

        registry.configure("default", region="us-east-1")
        registry.configure("default", base_url="http://localhost:8000")

        settings = registry.get_settings("default")
        assert settings.region == "us-east-1"
        assert settings.endpoint == "http://localhost:8000"

    def test_configure_validates(self) -> None:
        registry = ConnectionRegistry()

        with pytest.raises(pydantic.ValidationError):
            registry.configure("default", region=["not", "a", "string"])

    def test_default_connection_falls_back_to_empty_settings(self) -> None:
        assert ConnectionRegistry().get_settings() == ConnectionSettings()

    def test_unknown_connection_raises(self) -> None:
        with pytest.raises(ConnectionNotConfiguredError):
            ConnectionRegistry().get_client("replica")

    def test_get_client_builds_once(self) -> None:
        client_factory = MagicMock()
        registry = ConnectionRegistry(
            {"replica": ConnectionSettings(region="eu-west-1")}, client_factory=client_factory
        )

        first = registry.get_client("replica")
        second = registry.get_client("replica")

        assert first is second
        client_factory.assert_called_once_with(ConnectionSettings(region="eu-west-1"))

    def test_concurrent_first_use_builds_once(self) -> None:
        client_factory = MagicMock()
        registry = ConnectionRegistry(client_factory=client_factory)
        barrier = threading.Barrier(8)
        results = []

        def worker() -> None:
            barrier.wait()
            results.append(registry.get_client())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert client_factory.call_count == 1
        assert all(result is results[0] for result in results)

    def test_register_bypasses_factory(self) -> None:
        client_factory = MagicMock()
        registry = ConnectionRegistry(client_factory=client_factory)
        store = MagicMock()

        registry.register("replica", store)

        assert registry.get_client("replica") is store
        client_factory.assert_not_called()

    def test_configure_drops_cached_client(self) -> None:
        client_factory = MagicMock(side_effect=lambda settings: MagicMock())
        registry = ConnectionRegistry(client_factory=client_factory)
        first = registry.get_client()

        registry.configure("default", region="us-east-1")

        assert registry.get_client() is not first
        assert client_factory.call_count == 2

    def test_close_on_exit(self) -> None:
        client_factory = MagicMock(side_effect=lambda settings: MagicMock())
        with ConnectionRegistry(client_factory=client_factory) as registry:
            first = registry.get_client()

        assert registry.get_client() is not first


class TestDynamoStoreClient:
    """Test the boto3 adapter with a mocked low-level client."""

    def test_get_item_returns_item(self) -> None:
        client = MagicMock()
        client.get_item.return_value = {"Item": {"id": {"S": "u1"}}}

        item = DynamoStoreClient(client).get_item(TableName="users", Key={"id": {"S": "u1"}})

        assert item == {"id": {"S": "u1"}}
        client.get_item.assert_called_once_with(TableName="users", Key={"id": {"S": "u1"}})

    def test_get_item_missing_returns_none(self) -> None:
        client = MagicMock()
        client.get_item.return_value = {}

        assert DynamoStoreClient(client).get_item(TableName="users", Key={}) is None

    def test_conditional_check_failure_is_wrapped(self) -> None:
        client = MagicMock()
        error = _client_error("ConditionalCheckFailedException")
        client.put_item.side_effect = error

        with pytest.raises(ConditionCheckFailedError) as exc_info:
            DynamoStoreClient(client).put_item(TableName="users", Item={})

        assert exc_info.value.original_error is error
        assert exc_info.value.__cause__ is error
        assert exc_info.value.table_name == "users"
        assert exc_info.value.operation == "put_item"

    def test_other_client_errors_propagate_unchanged(self) -> None:
        client = MagicMock()
        error = _client_error("ProvisionedThroughputExceededException")
        client.query.side_effect = error

        with pytest.raises(ClientError) as exc_info:
            DynamoStoreClient(client).query(TableName="users")

        assert exc_info.value is error

    def test_batch_get_item(self) -> None:
        client = MagicMock()
        client.batch_get_item.return_value = {"Responses": {"users": [{"id": {"S": "u1"}}]}}

        items = DynamoStoreClient(client).batch_get_item("users", [{"id": {"S": "u1"}}])

        assert items == [{"id": {"S": "u1"}}]
        client.batch_get_item.assert_called_once_with(
            RequestItems={"users": {"Keys": [{"id": {"S": "u1"}}], "ConsistentRead": True}}
        )

    def test_batch_get_item_warns_on_unprocessed_keys(self, caplog: pytest.LogCaptureFixture) -> None:
        client = MagicMock()
        client.batch_get_item.return_value = {
            "Responses": {"users": []},
            "UnprocessedKeys": {"users": {"Keys": [{"id": {"S": "u2"}}]}},
        }

        with caplog.at_level(logging.WARNING, logger="kettledb.connections"):
            DynamoStoreClient(client).batch_get_item("users", [{"id": {"S": "u2"}}])

        assert "unprocessed" in caplog.text

    def test_paginate_yields_pages(self) -> None:
        client = MagicMock()
        client.get_paginator.return_value.paginate.return_value = iter([{"Items": [1]}, {"Items": [2]}])

        pages = list(DynamoStoreClient(client).paginate("scan", TableName="users"))

        assert pages == [{"Items": [1]}, {"Items": [2]}]
        client.get_paginator.assert_called_once_with("scan")
        client.get_paginator.return_value.paginate.assert_called_once_with(TableName="users")

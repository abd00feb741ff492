from collections.abc import Generator
from os import environ
from typing import Any

import boto3
from moto import mock_aws
from pytest import fixture

from kettledb.binding import TableBinding, define_binding
from kettledb.connections import ConnectionRegistry, DynamoStoreClient


@fixture(scope="session", autouse=True)
def aws_credentials() -> None:
    environ["AWS_ACCESS_KEY_ID"] = "testing"
    environ["AWS_SECRET_ACCESS_KEY"] = "testing"  # noqa: S105
    environ["AWS_SECURITY_TOKEN"] = "testing"  # noqa: S105
    environ["AWS_SESSION_TOKEN"] = "testing"  # noqa: S105
    environ["AWS_DEFAULT_REGION"] = "us-east-1"


@fixture
def dynamodb_client() -> Generator[Any, None, None]:
    with mock_aws():
        client = boto3.client("dynamodb", region_name="us-east-1")
        client.create_table(
            TableName="users",
            KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "id", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        client.create_table(
            TableName="events",
            KeySchema=[
                {"AttributeName": "user_id", "KeyType": "HASH"},
                {"AttributeName": "created_at", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "user_id", "AttributeType": "S"},
                {"AttributeName": "created_at", "AttributeType": "N"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        yield client


@fixture
def registry(dynamodb_client: Any) -> ConnectionRegistry:
    registry = ConnectionRegistry()
    registry.register("default", DynamoStoreClient(dynamodb_client))
    return registry


@fixture
def users_binding() -> TableBinding:
    return define_binding("users", "id", schema={"id": "S", "age": "N", "name": "S", "tags": "SS"})


@fixture
def events_binding() -> TableBinding:
    return define_binding(
        "events",
        "user_id",
        "created_at",
        schema={"user_id": "S", "created_at": "N", "kind": "S"},
    )

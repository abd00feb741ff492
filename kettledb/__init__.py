"""kettledb: a lightweight object mapper for DynamoDB tables."""

from kettledb.binding import TableBinding, define_binding
from kettledb.conditions import Clause, build_conditions, convert_operator
from kettledb.connections import (
    DEFAULT_CONNECTION,
    ConnectionRegistry,
    ConnectionSettings,
    DynamoStoreClient,
    StoreClient,
)
from kettledb.exceptions import (
    ConditionCheckFailedError,
    ConfigurationError,
    ConnectionNotConfiguredError,
    KettleError,
    MissingRangeKeyError,
    OperationError,
    UnknownOperatorError,
)
from kettledb.record import Record, factory

__all__ = [
    "DEFAULT_CONNECTION",
    "Clause",
    "ConditionCheckFailedError",
    "ConfigurationError",
    "ConnectionNotConfiguredError",
    "ConnectionRegistry",
    "ConnectionSettings",
    "DynamoStoreClient",
    "KettleError",
    "MissingRangeKeyError",
    "OperationError",
    "Record",
    "StoreClient",
    "TableBinding",
    "UnknownOperatorError",
    "build_conditions",
    "convert_operator",
    "define_binding",
    "factory",
]

"""Kettle exceptions.

This module defines the exception hierarchy for the kettledb library.
All custom exceptions inherit from KettleError, allowing users to catch
all library-specific errors with a single except clause.

Exception categories:
- ConfigurationError: The binding or call site is wrong; never retried
- OperationError: The store rejected an operation in a way callers may handle

Note: Store errors other than conditional-check failures (throttling,
validation, connectivity) are intentionally not wrapped and come directly
from boto3/botocore. A point lookup that finds nothing returns None instead
of raising.
"""

from typing import Any


class KettleError(Exception):
    """Base exception for all kettledb errors.

    Example:
        try:
            user.save()
        except KettleError as e:
            pass

    """


class ConfigurationError(KettleError):
    """Base class for errors caused by a binding or call-site mistake."""


class MissingRangeKeyError(ConfigurationError):
    """Raised when a range key value is given for a binding without a range key.

    Example:
        users = factory(define_binding("users", "id"), registry)
        users.find_one("u1", "extra")
        Raises MissingRangeKeyError.

    """

    def __init__(self, *, table_name: str | None = None) -> None:
        self.table_name = table_name
        message = "Range key is not defined"
        if table_name:
            message = f"Range key is not defined for table '{table_name}'"
        super().__init__(message)


class UnknownOperatorError(ConfigurationError):
    """Raised in strict mode when a condition operator token is not recognized.

    Attributes:
        operator: The rejected token.

    """

    def __init__(self, operator: str) -> None:
        self.operator = operator
        super().__init__(f"Unknown comparison operator: {operator!r}")


class ConnectionNotConfiguredError(ConfigurationError):
    """Raised when a connection name has neither settings nor a registered client."""

    def __init__(self, connection_name: str) -> None:
        self.connection_name = connection_name
        super().__init__(f"Connection '{connection_name}' is not configured")


class OperationError(KettleError):
    """Base class for errors raised while talking to the store."""


class ConditionCheckFailedError(OperationError):
    """Raised when the store rejects a write because its expected state did not hold.

    This happens when a new record's key already exists, or when an existing
    record was changed by someone else since it was loaded.

    Attributes:
        operation: The operation that failed (e.g. "put_item").
        table_name: The table the write targeted.
        original_error: The underlying botocore ClientError, if any.

    """

    def __init__(
        self,
        *,
        operation: str | None = None,
        table_name: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        self.operation = operation
        self.table_name = table_name
        self.original_error = original_error
        message = "The conditional request failed"
        if operation and table_name:
            message = f"{message} in {operation} on '{table_name}'"
        elif operation:
            message = f"{message} in {operation}"
        super().__init__(message)


def _error_code(error: Any) -> str | None:
    response = getattr(error, "response", None)
    if not isinstance(response, dict):
        return None
    return response.get("Error", {}).get("Code")


def wrap_client_error(
    error: Exception,
    *,
    operation: str | None = None,
    table_name: str | None = None,
) -> Exception:
    """Convert a conditional-check ClientError into ConditionCheckFailedError.

    Any other error is returned unchanged so that it can be re-raised as is.

    Example:
        try:
            client.put_item(**kwargs)
        except ClientError as e:
            wrapped = wrap_client_error(e, operation="put_item", table_name="users")
            if wrapped is e:
                raise
            raise wrapped from e

    """
    if _error_code(error) == "ConditionalCheckFailedException":
        return ConditionCheckFailedError(
            operation=operation,
            table_name=table_name,
            original_error=error,
        )
    return error


__all__ = [
    "ConditionCheckFailedError",
    "ConfigurationError",
    "ConnectionNotConfiguredError",
    "KettleError",
    "MissingRangeKeyError",
    "OperationError",
    "UnknownOperatorError",
    "wrap_client_error",
]

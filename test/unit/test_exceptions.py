"""Tests for kettledb exceptions."""

import pytest
from botocore.exceptions import ClientError

from kettledb.exceptions import (
    ConditionCheckFailedError,
    ConfigurationError,
    ConnectionNotConfiguredError,
    KettleError,
    MissingRangeKeyError,
    OperationError,
    UnknownOperatorError,
    wrap_client_error,
)


class TestExceptionHierarchy:
    """Test that exception hierarchy is correctly structured."""

    def test_configuration_errors(self) -> None:
        assert issubclass(ConfigurationError, KettleError)
        assert issubclass(MissingRangeKeyError, ConfigurationError)
        assert issubclass(UnknownOperatorError, ConfigurationError)
        assert issubclass(ConnectionNotConfiguredError, ConfigurationError)

    def test_operation_errors(self) -> None:
        assert issubclass(OperationError, KettleError)
        assert issubclass(ConditionCheckFailedError, OperationError)
        assert not issubclass(ConditionCheckFailedError, ConfigurationError)


class TestMessages:
    """Test error messages and attributes."""

    def test_missing_range_key_error(self) -> None:
        exc = MissingRangeKeyError(table_name="users")
        assert "Range key is not defined" in str(exc)
        assert "users" in str(exc)
        assert exc.table_name == "users"

    def test_missing_range_key_error_without_table(self) -> None:
        assert str(MissingRangeKeyError()) == "Range key is not defined"

    def test_condition_check_failed_error(self) -> None:
        exc = ConditionCheckFailedError(operation="put_item", table_name="users")
        assert "put_item" in str(exc)
        assert "users" in str(exc)
        assert exc.original_error is None

    def test_connection_not_configured_error(self) -> None:
        exc = ConnectionNotConfiguredError("replica")
        assert "replica" in str(exc)
        assert exc.connection_name == "replica"


class TestWrapClientError:
    """Test the wrap_client_error helper function."""

    def test_wrap_conditional_check_failed(self) -> None:
        error = _client_error("ConditionalCheckFailedException", "The conditional request failed")

        result = wrap_client_error(error, operation="put_item", table_name="users")

        assert isinstance(result, ConditionCheckFailedError)
        assert result.original_error is error
        assert result.operation == "put_item"
        assert result.table_name == "users"

    @pytest.mark.parametrize(
        "code",
        [
            "ProvisionedThroughputExceededException",
            "ResourceNotFoundException",
            "ValidationException",
        ],
    )
    def test_other_errors_are_returned_unchanged(self, code: str) -> None:
        error = _client_error(code, "Something went wrong")

        assert wrap_client_error(error, operation="query") is error

    def test_error_without_response_is_returned_unchanged(self) -> None:
        error = RuntimeError("boom")

        assert wrap_client_error(error) is error


def _client_error(code: str, message: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, "PutItem")

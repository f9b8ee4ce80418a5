"""Common error types and helpers shared across gridsql."""

from gridsql.common.exceptions import (
    ErrorCode,
    GridSQLError,
    configuration_error,
    connection_failure,
    duplicate_property_error,
    malformed_compound_key_error,
    platform_not_supported_error,
    property_conflict_error,
    statement_execution_failure,
    unsupported_command_error,
    validation_error,
)

__all__ = [
    "ErrorCode",
    "GridSQLError",
    "configuration_error",
    "connection_failure",
    "duplicate_property_error",
    "malformed_compound_key_error",
    "platform_not_supported_error",
    "property_conflict_error",
    "statement_execution_failure",
    "unsupported_command_error",
    "validation_error",
]

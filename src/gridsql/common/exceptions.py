from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Standard error codes for gridsql operations.

    This enum provides categorized error codes that can be used
    to identify error types without creating numerous exception classes.
    Each category has a specific number range for easy identification.

    Attributes:
        CONFIG_*: Configuration-related errors (1xxx)
        VALIDATION_*: Input validation errors (2xxx)
        CONNECTION_*: Connection errors (3xxx)
        EXECUTION_*: Statement building and execution errors (4xxx)
        DATA_*: Row data and key errors (6xxx)
        PLATFORM_*: Dialect support errors (7xxx)
    """
    # Configuration errors (1xxx)
    CONFIG_ERROR = "CONFIG_001"

    # Validation errors (2xxx)
    VALIDATION_ERROR = "VALIDATION_001"
    INVALID_ARGUMENT = "VALIDATION_002"

    # Connection errors (3xxx)
    CONNECTION_FAILURE = "CONNECTION_001"

    # Execution errors (4xxx)
    STATEMENT_EXECUTION_FAILURE = "EXECUTION_002"
    UNSUPPORTED_COMMAND = "EXECUTION_006"

    # Data errors (6xxx)
    MALFORMED_COMPOUND_KEY = "DATA_004"
    PROPERTY_CONFLICT = "DATA_005"
    DUPLICATE_PROPERTY = "DATA_006"

    # Platform errors (7xxx)
    PLATFORM_NOT_SUPPORTED = "PLATFORM_002"


class GridSQLError(Exception):
    """Base exception for all gridsql errors.

    A single exception class categorised by ``error_code`` rather than a
    deep hierarchy. Callers branch on ``error.error_code`` when they need to
    tell a connection failure from a statement failure.

    Attributes:
        message: Error message
        error_code: Error code from ErrorCode enum
        details: Additional error details
        cause: Optional underlying exception
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        """Initialize gridsql error.

        Args:
            message: Error message
            error_code: Error code from ErrorCode enum
            details: Additional error details
            cause: Optional underlying exception
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

        # Lazy import, the logging package imports the version module only
        from gridsql.logging import get_logger
        logger = get_logger(__name__)
        logger.error(
            message,
            extra={
                "error_code": error_code.value,
                "details": self.details,
            },
            exc_info=cause if cause is not None else None,
        )

    def __str__(self) -> str:
        """String representation of the error."""
        msg = f"[{self.error_code.value}] {self.message}"
        if self.cause:
            msg = f"{msg} (caused by: {type(self.cause).__name__}: {str(self.cause)})"
        return msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "details": self.details,
        }

    @classmethod
    def from_error_code(
        cls,
        error_code: ErrorCode,
        message: str,
        **kwargs
    ) -> "GridSQLError":
        """Create exception from error code.

        Args:
            error_code: Error code
            message: Error message
            **kwargs: Additional arguments for GridSQLError

        Returns:
            GridSQLError instance
        """
        return cls(message=message, error_code=error_code, **kwargs)


# Helper functions for common error scenarios
def configuration_error(
    message: str,
    config_key: Optional[str] = None,
    **kwargs
) -> GridSQLError:
    """Create a configuration error.

    Args:
        message: Error message
        config_key: Configuration key that caused the error
        **kwargs: Additional error details

    Returns:
        GridSQLError with CONFIG_ERROR code
    """
    details = kwargs.get('details', {})
    if config_key:
        details["config_key"] = config_key

    return GridSQLError(
        message=message,
        error_code=ErrorCode.CONFIG_ERROR,
        details=details,
        **{k: v for k, v in kwargs.items() if k != 'details'}
    )


def validation_error(
    message: str,
    field: Optional[str] = None,
    value: Any = None,
    **kwargs
) -> GridSQLError:
    """Create a validation error.

    Args:
        message: Error message
        field: Field that failed validation
        value: Invalid value
        **kwargs: Additional error details

    Returns:
        GridSQLError with VALIDATION_ERROR code
    """
    details = kwargs.get('details', {})
    if field:
        details["field"] = field
    if value is not None:
        details["value"] = str(value)

    return GridSQLError(
        message=message,
        error_code=ErrorCode.VALIDATION_ERROR,
        details=details,
        **{k: v for k, v in kwargs.items() if k != 'details'}
    )


def connection_failure(
    database: Optional[str],
    original_error: Exception,
    dialect: Optional[str] = None,
    **kwargs
) -> GridSQLError:
    """Create a connection failure.

    The message is the one shown to the end user when the process aborts,
    so it names the database and repeats the driver's own text.

    Args:
        database: Database name from the credentials
        original_error: The driver or SQLAlchemy exception
        dialect: Dialect that failed to connect

    Returns:
        GridSQLError with CONNECTION_FAILURE code
    """
    details = kwargs.get('details', {})
    details["database"] = database
    if dialect:
        details["dialect"] = dialect

    return GridSQLError(
        message=(
            f"An error occurred while connecting to the database '{database or ''}'. "
            f"The error reported by the server was: {original_error}"
        ),
        error_code=ErrorCode.CONNECTION_FAILURE,
        details=details,
        cause=original_error,
        **{k: v for k, v in kwargs.items() if k not in ['details', 'cause']}
    )


def statement_execution_failure(
    query: str,
    original_error: Exception,
    **kwargs
) -> GridSQLError:
    """Create a statement execution failure.

    Args:
        query: SQL text that failed
        original_error: The underlying exception
        **kwargs: Additional error details

    Returns:
        GridSQLError with STATEMENT_EXECUTION_FAILURE code
    """
    details = kwargs.get('details', {})
    details["query"] = query[:500] + "..." if len(query) > 500 else query

    return GridSQLError(
        message=f"An SQL error occurred: {original_error}",
        error_code=ErrorCode.STATEMENT_EXECUTION_FAILURE,
        details=details,
        cause=original_error,
        **{k: v for k, v in kwargs.items() if k not in ['details', 'cause']}
    )


def unsupported_command_error(kind: str, **kwargs) -> GridSQLError:
    """Create an unsupported statement kind error."""
    details = kwargs.get('details', {})
    details["kind"] = kind

    return GridSQLError(
        message=f"Unknown database command or not supported: {kind}",
        error_code=ErrorCode.UNSUPPORTED_COMMAND,
        details=details,
        **{k: v for k, v in kwargs.items() if k != 'details'}
    )


def malformed_compound_key_error(
    value: str,
    expected: int,
    received: int,
    **kwargs
) -> GridSQLError:
    """Create a compound key mismatch error.

    Args:
        value: Composite identifier that was split
        expected: Number of primary key columns
        received: Number of parts found in ``value``
    """
    details = kwargs.get('details', {})
    details.update({"value": value, "expected": expected, "received": received})

    return GridSQLError(
        message="Primary key data doesn't match submitted data",
        error_code=ErrorCode.MALFORMED_COMPOUND_KEY,
        details=details,
        **{k: v for k, v in kwargs.items() if k != 'details'}
    )


def property_conflict_error(name: str, **kwargs) -> GridSQLError:
    """Create an error for a dotted write through a non-mapping value."""
    return GridSQLError(
        message=(
            f"A property with the name `{name}` already exists. This can occur "
            "if you have properties which share a prefix - for example `name` "
            "and `name.first`."
        ),
        error_code=ErrorCode.PROPERTY_CONFLICT,
        details={"name": name},
        **kwargs
    )


def duplicate_property_error(name: str, **kwargs) -> GridSQLError:
    """Create an error for a dotted leaf written twice."""
    return GridSQLError(
        message=f"Duplicate field detected - a field with the name `{name}` already exists.",
        error_code=ErrorCode.DUPLICATE_PROPERTY,
        details={"name": name},
        **kwargs
    )


def platform_not_supported_error(
    platform: str,
    **kwargs
) -> GridSQLError:
    """Create a platform not supported error.

    Args:
        platform: Dialect name that is not supported
        **kwargs: Additional error details

    Returns:
        GridSQLError with PLATFORM_NOT_SUPPORTED code
    """
    details = kwargs.get('details', {})
    details["platform"] = platform

    return GridSQLError(
        message=f"Unknown database driver type '{platform}'",
        error_code=ErrorCode.PLATFORM_NOT_SUPPORTED,
        details=details,
        **{k: v for k, v in kwargs.items() if k != 'details'}
    )

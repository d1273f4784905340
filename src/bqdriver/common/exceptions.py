from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Standard error codes for bqdriver operations.

    This enum provides categorized error codes that can be used
    to identify error types. Each category has a specific number range
    for easy identification; ``number`` exposes the stable numeric code
    reported to callers.

    Attributes:
        CONFIG_*: Configuration-related errors (1xxx)
        VALIDATION_*: Input validation errors (2xxx)
        CONNECTION_*: Network and connection errors (3xxx)
        RESOURCE_*: Resource availability errors (5xxx)
        DATA_*: Imported data errors (6xxx)
        OPERATION_*: High-level operation errors (8xxx)
        RETRY_*: Transient/retryable errors (9xxx)
    """
    # Configuration errors (1xxx)
    CONFIG_ERROR = "CONFIG_001"

    # Validation errors (2xxx)
    QUERY_BUILDER_ERROR = "VALIDATION_101"
    UNSUPPORTED_TYPE = "VALIDATION_102"
    BAD_FILTER_PARAMETERS = "VALIDATION_103"
    COLUMN_NOT_FOUND = "VALIDATION_201"
    COLUMNS_MISMATCH = "VALIDATION_202"

    # Connection errors (3xxx)
    CONNECTION_ERROR = "CONNECTION_001"
    TIMEOUT_ERROR = "CONNECTION_003"

    # Resource errors (5xxx)
    TABLE_NOT_FOUND = "RESOURCE_002"
    OBJECT_ALREADY_EXISTS = "RESOURCE_101"

    # Data errors (6xxx)
    IMPORT_VALIDATION_ERROR = "DATA_101"
    MAXIMUM_LENGTH_OVERFLOW = "DATA_102"

    # Operation errors (8xxx)
    OPERATION_ERROR = "OPERATION_001"

    # Retry/Transient errors (9xxx)
    RETRYABLE_ERROR = "RETRY_001"
    RATE_LIMIT_ERROR = "RETRY_002"

    @property
    def number(self) -> int:
        """Stable numeric code, e.g. ``VALIDATION_101`` -> 2101."""
        category, _, suffix = self.value.partition("_")
        return _CATEGORY_BASE[category] + int(suffix)


_CATEGORY_BASE = {
    "CONFIG": 1000,
    "VALIDATION": 2000,
    "CONNECTION": 3000,
    "RESOURCE": 5000,
    "DATA": 6000,
    "OPERATION": 8000,
    "RETRY": 9000,
}


class DriverError(Exception):
    """Base exception for all bqdriver errors.

    Attributes:
        message: Error message
        error_code: Error code from ErrorCode enum
        details: Additional error details
        cause: Optional underlying exception
        is_retryable: Whether the error is transient and can be retried
    """

    default_error_code: ErrorCode = ErrorCode.OPERATION_ERROR

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        is_retryable: bool = False
    ):
        """Initialize driver error.

        Args:
            message: Error message
            error_code: Error code from ErrorCode enum, defaults to the
                class's ``default_error_code``
            details: Additional error details
            cause: Optional underlying exception
            is_retryable: Whether error is transient
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        self.cause = cause
        self.is_retryable = is_retryable

        # Lazy import to avoid circular dependency
        from bqdriver.logging import get_logger
        logger = get_logger(__name__)
        logger.debug(
            message,
            extra={
                "error_code": self.error_code.value,
                "error_type": type(self).__name__,
                "is_retryable": is_retryable,
            },
        )

    @property
    def code(self) -> int:
        """Stable numeric code reported to callers."""
        return self.error_code.number

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
            "code": self.code,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "details": self.details,
            "is_retryable": self.is_retryable
        }

    @classmethod
    def from_error_code(
        cls,
        error_code: ErrorCode,
        message: str,
        **kwargs
    ) -> "DriverError":
        """Create exception from error code.

        Args:
            error_code: Error code
            message: Error message
            **kwargs: Additional arguments for DriverError

        Returns:
            DriverError instance
        """
        if error_code in [
            ErrorCode.TIMEOUT_ERROR,
            ErrorCode.RETRYABLE_ERROR,
            ErrorCode.RATE_LIMIT_ERROR
        ]:
            kwargs.setdefault('is_retryable', True)

        return cls(message=message, error_code=error_code, **kwargs)


class QueryBuilderError(DriverError):
    """Caller supplied an invalid filter, operator or mode combination."""

    default_error_code = ErrorCode.QUERY_BUILDER_ERROR


class UnsupportedTypeError(QueryBuilderError):
    """Logical data type has no SQL counterpart."""

    default_error_code = ErrorCode.UNSUPPORTED_TYPE


class BadExportFilterParametersError(DriverError):
    """Preview/export filter parameters failed validation."""

    default_error_code = ErrorCode.BAD_FILTER_PARAMETERS


class ColumnNotFoundError(DriverError):
    """Selected or filtered column is absent from the table definition."""

    default_error_code = ErrorCode.COLUMN_NOT_FOUND


class ColumnsMismatchError(DriverError):
    """Command columns do not match the live catalog."""

    default_error_code = ErrorCode.COLUMNS_MISMATCH


class ImportValidationError(DriverError):
    """Imported data violates a destination constraint."""

    default_error_code = ErrorCode.IMPORT_VALIDATION_ERROR


class MaximumLengthOverflowError(ImportValidationError):
    """Imported value exceeds the destination column length."""

    default_error_code = ErrorCode.MAXIMUM_LENGTH_OVERFLOW


class ObjectAlreadyExistsError(DriverError):
    """Destination object exists and create mode forbids replacing it."""

    default_error_code = ErrorCode.OBJECT_ALREADY_EXISTS

    def __init__(self, message: str = "Object already exists.", **kwargs):
        super().__init__(message, **kwargs)


class TooManyRequestsError(DriverError):
    """Remote engine throttled the request."""

    default_error_code = ErrorCode.RATE_LIMIT_ERROR

    def __init__(self, message: str = "Too many requests.", **kwargs):
        kwargs.setdefault("is_retryable", True)
        super().__init__(message, **kwargs)


# Helper functions for common error scenarios
def connection_error(
    message: str,
    service: Optional[str] = None,
    **kwargs
) -> DriverError:
    """Create a connection error.

    Args:
        message: Error message
        service: Service that failed to connect
        **kwargs: Additional error details

    Returns:
        DriverError with CONNECTION_ERROR code
    """
    details = kwargs.get('details', {})
    if service:
        details["service"] = service

    return DriverError(
        message=message,
        error_code=ErrorCode.CONNECTION_ERROR,
        details=details,
        **{k: v for k, v in kwargs.items() if k != 'details'}
    )


def unsupported_command_error(command: Any) -> DriverError:
    """Create an error for a command without a registered handler."""
    return DriverError(
        message=f"Command {type(command).__name__} is not supported",
        error_code=ErrorCode.OPERATION_ERROR,
        details={"command": type(command).__name__},
    )

"""Common utilities and exceptions for bqdriver.

Key Components:
    - **Exceptions**: Exception hierarchy with string error codes and
      stable numeric codes
    - **Error messages**: Extraction of user-facing messages from
      BigQuery error payloads

Exception Design:
    All exceptions inherit from DriverError and include structured error
    information. Subclasses exist only where callers branch on the type
    (query builder, column shape, import validation, conflicts, throttling).
"""

from bqdriver.common.exceptions import (
    BadExportFilterParametersError,
    ColumnNotFoundError,
    ColumnsMismatchError,
    DriverError,
    ErrorCode,
    ImportValidationError,
    MaximumLengthOverflowError,
    ObjectAlreadyExistsError,
    QueryBuilderError,
    TooManyRequestsError,
    UnsupportedTypeError,
    # Helper functions
    connection_error,
    unsupported_command_error,
)
from bqdriver.common.error_messages import (
    decode_direct_error_message,
    decode_error_message,
    filter_type_error,
    length_overflow_error,
)

__all__ = [
    # Base Exception and Error Codes
    "DriverError",
    "ErrorCode",
    # Typed errors
    "QueryBuilderError",
    "UnsupportedTypeError",
    "BadExportFilterParametersError",
    "ColumnNotFoundError",
    "ColumnsMismatchError",
    "ImportValidationError",
    "MaximumLengthOverflowError",
    "ObjectAlreadyExistsError",
    "TooManyRequestsError",
    # Helper functions
    "connection_error",
    "unsupported_command_error",
    # Error messages
    "decode_error_message",
    "decode_direct_error_message",
    "filter_type_error",
    "length_overflow_error",
]

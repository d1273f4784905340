"""Human-readable messages extracted from BigQuery errors.

BigQuery reports failures either as ``google.api_core`` exceptions that
carry an ``errors`` list, or as raw JSON payloads of the REST error
envelope. Both shapes are reduced to the message a user should see.
"""

import json
import re
from typing import Any, List, Optional

from google.api_core.exceptions import GoogleAPICallError

from bqdriver.common.exceptions import (
    BadExportFilterParametersError,
    ImportValidationError,
    MaximumLengthOverflowError,
)

_DIRECT_MESSAGE_PATTERN = re.compile(r"(.+)error message\: (.+)", re.DOTALL)
_EXPECTED_ACTUAL_PATTERN = re.compile(r"types:\s(.*?)\.")
_NO_MATCHING_SIGNATURE = "No matching signature for operator "
_PARTITION_ELIMINATION = "can be used for partition elimination"
_REQUIRED_FIELD_PATTERN = re.compile(r"Required field (\S+) cannot be null", re.IGNORECASE)


def _raw_message(exc: BaseException) -> str:
    if isinstance(exc, GoogleAPICallError):
        return exc.message
    return str(exc)


def _join_error_messages(errors: List[Any]) -> Optional[str]:
    messages = [e.get("message") for e in errors if isinstance(e, dict) and e.get("message")]
    if not messages:
        return None
    if len(messages) == 1:
        return messages[0]
    return "Errors: " + "\n".join(messages)


def _decode_payload(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    if "message" in payload:
        return payload["message"]

    error = payload.get("error")
    if isinstance(error, str):
        return error
    if not isinstance(error, dict):
        return None

    errors = error.get("errors")
    if isinstance(errors, list) and errors:
        joined = _join_error_messages(errors)
        if joined:
            return joined
    return error.get("message")


def decode_error_message(exc: BaseException) -> str:
    """Return the most specific message carried by ``exc``.

    Lookup order: the ``errors`` list of an API exception, then a JSON
    payload in the message (``message``, ``error`` string,
    ``error.errors[*].message``, ``error.message``), then the raw message.
    """
    if isinstance(exc, GoogleAPICallError) and exc.errors:
        joined = _join_error_messages(list(exc.errors))
        if joined:
            return joined

    raw = _raw_message(exc)
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError):
        return raw

    return _decode_payload(payload) or raw


def decode_direct_error_message(exc: BaseException) -> str:
    """Strip the "Error while reading table ..., error message: " preamble."""
    message = decode_error_message(exc)
    match = _DIRECT_MESSAGE_PATTERN.match(message)
    if match:
        return match.group(2)
    return message


def filter_type_error(exc: BaseException) -> Optional[BadExportFilterParametersError]:
    """Translate a rejected filter comparison into BadExportFilterParametersError.

    Returns None when ``exc`` is not caused by a filter value.
    """
    message = str(exc)
    if _NO_MATCHING_SIGNATURE in message:
        match = _EXPECTED_ACTUAL_PATTERN.search(message)
        if match:
            expected, _, actual = match.group(1).partition(",")
            return BadExportFilterParametersError(
                f'Invalid filter value, expected:"{expected.strip()}", actual:"{actual.strip()}".',
                cause=exc,
            )
    if "Invalid" in message or _PARTITION_ELIMINATION in message:
        return BadExportFilterParametersError(decode_error_message(exc), cause=exc)
    return None


def length_overflow_error(exc: BaseException) -> Optional[MaximumLengthOverflowError]:
    """``Field x: STRING(3) has maximum length 3 but got a value with length 5``."""
    message = decode_error_message(exc)
    if "has maximum length" in message:
        return MaximumLengthOverflowError(message, cause=exc)
    return None


def required_value_error(exc: BaseException) -> Optional[ImportValidationError]:
    """``Required field id cannot be null`` raised while writing a NOT NULL column."""
    match = _REQUIRED_FIELD_PATTERN.search(decode_error_message(exc))
    if match is None:
        return None
    column = match.group(1).rstrip(".;,")
    return ImportValidationError(
        f'Required columns "{column}" cannot contain NULL values.',
        details={"columns": [column]},
        cause=exc,
    )

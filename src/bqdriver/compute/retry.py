"""Retry policy for BigQuery API calls.

``should_retry`` decides whether a failed call is transient;
``handle_retry_exception`` translates the error left after the retries
are exhausted.
"""

import json
from typing import Any, Iterable, Optional

from bqdriver.common.exceptions import DriverError, TooManyRequestsError
from bqdriver.constants.bigquery import (
    RETRYABLE_MESSAGES,
    RETRYABLE_REASONS,
    RETRYABLE_STATUS_CODES,
    TOO_MANY_REQUESTS_CODES,
)
from bqdriver.logging import get_logger

logger = get_logger(__name__)


def status_code(exc: BaseException) -> Optional[int]:
    """HTTP status carried by an API exception, None when there is none."""
    if isinstance(exc, DriverError):
        return None
    code = getattr(exc, "code", None)
    if isinstance(code, int) and not isinstance(code, bool):
        return code
    return None


def _response_message(exc: BaseException) -> str:
    response = getattr(exc, "response", None)
    text = getattr(response, "text", None)
    if isinstance(text, str) and text:
        return text
    return str(exc)


def _has_retryable_reason(errors: Iterable[Any]) -> bool:
    return any(
        isinstance(error, dict) and error.get("reason") in RETRYABLE_REASONS
        for error in errors
    )


def should_retry(exc: BaseException) -> bool:
    """Decide whether ``exc`` is worth another attempt.

    Retries HTTP 429, 500, 503 and 401, the eventual-consistency messages
    BigQuery emits right after IAM changes, and payloads whose
    ``error.errors[].reason`` is a rate-limit or backend error.
    """
    if isinstance(exc, DriverError):
        return exc.is_retryable

    code = status_code(exc)
    if code in RETRYABLE_STATUS_CODES:
        _log_decision(True, code, str(exc))
        return True
    if code is not None and 200 <= code < 300:
        return False

    message = _response_message(exc)
    if any(marker in message for marker in RETRYABLE_MESSAGES):
        _log_decision(True, code, message)
        return True

    if _has_retryable_reason(getattr(exc, "errors", None) or []):
        _log_decision(True, code, message)
        return True

    try:
        payload = json.loads(message)
    except ValueError:
        _log_decision(False, code, message)
        return False

    error = payload.get("error") if isinstance(payload, dict) else None
    errors = error.get("errors") if isinstance(error, dict) else None
    retry = isinstance(errors, list) and _has_retryable_reason(errors)
    _log_decision(retry, code, message)
    return retry


def handle_retry_exception(exc: BaseException) -> BaseException:
    """Translate throttling answers into ``TooManyRequestsError``."""
    if status_code(exc) in TOO_MANY_REQUESTS_CODES:
        return TooManyRequestsError(cause=exc, details={"status_code": status_code(exc)})
    return exc


def _log_decision(retry: bool, code: Optional[int], message: str) -> None:
    logger.info(
        "Retrying request" if retry else "Not retrying request",
        extra={"http.status_code": code, "error": message[:1000]},
    )

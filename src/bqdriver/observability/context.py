"""Request context shared by logging and tracing of one command."""

from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Mapping, Optional

from opentelemetry.trace import Status, StatusCode
from pydantic import Field

from bqdriver.constants.bigquery import BACKEND_NAME
from bqdriver.logging import get_logger
from bqdriver.logging.filters import clear_request_context, set_request_context
from bqdriver.telemetry import get_tracer
from bqdriver.types.base import DriverValueModel

logger = get_logger(__name__)

DEFAULT_OPERATION = "bqdriver.command"


def _new_request_id() -> str:
    return str(uuid.uuid4())


class ExecutionRequestContext(DriverValueModel):
    """Caller identity and free-form attributes of one dispatched command.

    ``attributes`` are stringified into ``ctx.<key>`` telemetry fields.
    """

    request_id: str = Field(default_factory=_new_request_id, min_length=1)
    user_id: Optional[str] = None
    correlation_id: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)

    def telemetry_fields(self) -> Dict[str, str]:
        fields = {
            "request_id": self.request_id,
            "user_id": self.user_id,
            "correlation_id": self.correlation_id,
        }
        fields.update(
            (f"ctx.{key}", None if value is None else str(value))
            for key, value in self.attributes.items()
        )
        return {key: value for key, value in fields.items() if value}


def resolve_request_context(ctx: Optional[Any]) -> ExecutionRequestContext:
    """Normalize inbound context data into an ExecutionRequestContext.

    Accepts an existing context, None (a fresh request id is generated), a
    bare request id string or a mapping with ``request_id``, ``user_id``,
    ``correlation_id`` and ``attributes`` keys. A non-mapping ``attributes``
    value is kept under the ``value`` key.
    """
    if isinstance(ctx, ExecutionRequestContext):
        return ctx
    if ctx is None:
        return ExecutionRequestContext()
    if isinstance(ctx, str):
        return ExecutionRequestContext(request_id=ctx)
    if not isinstance(ctx, Mapping):
        raise TypeError(f"Unsupported request context type: {type(ctx).__name__}")

    attributes = ctx.get("attributes") or {}
    if not isinstance(attributes, Mapping):
        attributes = {"value": attributes}

    return ExecutionRequestContext(
        request_id=str(ctx.get("request_id") or _new_request_id()),
        user_id=ctx.get("user_id"),
        correlation_id=ctx.get("correlation_id"),
        attributes=dict(attributes),
    )


@contextmanager
def execution_request_scope(
    ctx: ExecutionRequestContext,
    *,
    operation: Optional[str] = None,
    command: Optional[str] = None,
) -> Iterator[ExecutionRequestContext]:
    """Logging and tracing scope around one command.

    Sets the request context read by ``ContextFilter`` and opens a span
    named after ``operation``. A failure is recorded on the span and logged
    with its duration before it propagates. The request context is cleared
    on every exit path.
    """
    operation_name = operation or DEFAULT_OPERATION
    fields = ctx.telemetry_fields()
    log_extra: Dict[str, Any] = {**fields, "operation.name": operation_name}
    if command:
        log_extra["bqdriver.command"] = command

    set_request_context(request_id=ctx.request_id, user_id=ctx.user_id)
    start = time.perf_counter()
    with get_tracer("bqdriver").start_as_current_span(operation_name) as span:
        span.set_attribute("db.system", BACKEND_NAME)
        span.set_attribute("bqdriver.operation.name", operation_name)
        if command:
            span.set_attribute("bqdriver.command", command)
        for key, value in fields.items():
            span.set_attribute(f"bqdriver.{key}", value)

        try:
            yield ctx
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            log_extra["duration.seconds"] = f"{time.perf_counter() - start:.6f}"
            logger.error("Command failed", extra=log_extra, exc_info=True)
            raise
        else:
            log_extra["duration.seconds"] = f"{time.perf_counter() - start:.6f}"
            logger.info("Command completed", extra=log_extra)
        finally:
            clear_request_context()

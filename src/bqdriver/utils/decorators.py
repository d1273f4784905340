import functools
import time
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, TypeVar

from opentelemetry.trace import SpanKind, Status, StatusCode

from bqdriver.logging import get_logger
from bqdriver.telemetry import get_tracer

F = TypeVar('F', bound=Callable[..., Any])
T = TypeVar('T')

logger = get_logger(__name__)


def _span_attributes(
    static: Optional[Mapping[str, Any]],
    getter: Optional[Callable[..., Optional[Mapping[str, Any]]]],
    args: tuple,
    kwargs: dict,
) -> Dict[str, Any]:
    """Static plus call-time attributes, unset values dropped."""
    merged: Dict[str, Any] = dict(static or {})
    if getter is not None:
        try:
            merged.update(getter(*args, **kwargs) or {})
        except Exception as exc:  # pragma: no cover
            logger.warning("Trace attribute getter failed", extra={"error": str(exc)})
    return {key: value for key, value in merged.items() if value is not None}


def traced(
    span_name: Optional[str] = None,
    *,
    kind: SpanKind = SpanKind.CLIENT,
    attributes: Optional[Dict[str, Any]] = None,
    attribute_getter: Optional[Callable[..., Optional[Dict[str, Any]]]] = None,
) -> Callable[[F], F]:
    """Run the decorated call inside an OpenTelemetry span.

    Args:
        span_name: Span name, the module-qualified function name when omitted
        kind: Span kind, CLIENT since traced calls reach BigQuery
        attributes: Attributes set on every span
        attribute_getter: Receives the call arguments and returns attributes
            such as ``db.statement`` for this call

    Failures are recorded on the span, which is marked as errored, and the
    exception propagates unchanged.
    """

    def decorator(func: F) -> F:
        name = span_name or f"{func.__module__}.{func.__qualname__}"

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = get_tracer(func.__module__)
            with tracer.start_as_current_span(name, kind=kind) as span:
                for key, value in _span_attributes(attributes, attribute_getter, args, kwargs).items():
                    span.set_attribute(key, value)
                try:
                    return func(*args, **kwargs)
                except Exception as exc:
                    span.record_exception(exc)
                    span.set_status(Status(StatusCode.ERROR, str(exc)))
                    raise

        return wrapper  # type: ignore[return-value]

    return decorator


def _backoff_delays(initial_delay: float, exponential_base: float, max_delay: float) -> Iterator[float]:
    delay = initial_delay
    while True:
        yield delay
        delay = min(delay * exponential_base, max_delay)


def retry_with_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    retry_condition: Optional[Callable[[Exception], bool]] = None,
    on_give_up: Optional[Callable[[Exception], Exception]] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Retry a BigQuery call with exponential backoff.

    Attempt ``n`` (zero based) waits ``min(initial_delay * exponential_base ** n,
    max_delay)`` before the next try. Exceptions rejected by
    ``retry_condition`` propagate at once. When every retry is spent, the last
    exception is passed to ``on_give_up`` and its result raised, chained to
    the original, unless it returns the same exception.

    Example:
        >>> @retry_with_backoff(max_retries=5, retry_condition=should_retry)
        ... def submit_job():
        ...     return client.query(sql).result()
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            delays = _backoff_delays(initial_delay, exponential_base, max_delay)
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except Exception as exc:
                    if retry_condition is not None and not retry_condition(exc):
                        raise

                    if attempt >= max_retries:
                        logger.error(
                            "BigQuery call failed after retries",
                            extra={"function": func.__name__, "retry.attempts": attempt + 1},
                        )
                        translated = on_give_up(exc) if on_give_up is not None else exc
                        if translated is not exc:
                            raise translated from exc
                        raise

                    delay = next(delays)
                    attempt += 1
                    logger.warning(
                        "Retrying BigQuery call",
                        extra={
                            "function": func.__name__,
                            "retry.attempt": attempt,
                            "retry.delay_seconds": delay,
                            "error": str(exc),
                        },
                    )
                    time.sleep(delay)

        return wrapper

    return decorator


# Alias used by client code
retry = retry_with_backoff

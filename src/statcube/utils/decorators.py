import functools
import time
from typing import Any, Callable, Dict, Optional, TypeVar

from opentelemetry.trace import SpanKind, Status, StatusCode

from statcube.logging import get_logger
from statcube.telemetry import get_tracer

F = TypeVar('F', bound=Callable[..., Any])

logger = get_logger(__name__)


def _span_attributes(
    static: Optional[Dict[str, Any]],
    getter: Optional[Callable[..., Optional[Dict[str, Any]]]],
    args: tuple,
    kwargs: dict,
) -> Dict[str, Any]:
    collected = {k: v for k, v in (static or {}).items() if v is not None}
    if getter is None:
        return collected
    try:
        dynamic = getter(*args, **kwargs) or {}
    except Exception as exc:  # pragma: no cover - a broken getter must not fail the call
        logger.warning("Span attribute getter failed", extra={"error": str(exc)})
        dynamic = {}
    collected.update({k: v for k, v in dynamic.items() if v is not None})
    return collected


def traced(
    span_name: Optional[str] = None,
    *,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: Optional[Dict[str, Any]] = None,
    attribute_getter: Optional[Callable[..., Optional[Dict[str, Any]]]] = None,
) -> Callable[[F], F]:
    """Run the decorated function inside an OpenTelemetry span.

    The span carries the static ``attributes``, whatever ``attribute_getter``
    returns for the call arguments, and ``duration.seconds``. A failing call
    marks the span as an error with ``error.type`` and re-raises unchanged.
    """

    def decorator(func: F) -> F:
        name = span_name or f"{func.__module__}.{func.__qualname__}"

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = get_tracer(func.__module__)
            with tracer.start_as_current_span(name, kind=kind) as span:
                for key, value in _span_attributes(attributes, attribute_getter, args, kwargs).items():
                    span.set_attribute(key, value)

                start = time.perf_counter()
                try:
                    return func(*args, **kwargs)
                except Exception as exc:
                    span.set_attribute("error.type", type(exc).__name__)
                    span.record_exception(exc)
                    span.set_status(Status(StatusCode.ERROR, str(exc)))
                    raise
                finally:
                    span.set_attribute("duration.seconds", time.perf_counter() - start)

        return wrapper  # type: ignore[return-value]

    return decorator

"""
Span helpers for the session and conversation layers.

``traced`` wraps a sync or async callable in a span named after the
operation; failures mark the span as errored and are re-raised untouched.
"""

import functools
import inspect
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Span, SpanKind, Status, StatusCode

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

TRACER_NAME = "chat-frontend"


def get_tracer(name: Optional[str] = None) -> trace.Tracer:
    """Return a tracer from the active provider (no-op until configured)."""
    return trace.get_tracer(name or TRACER_NAME)


@contextmanager
def _operation_span(
    span_name: str, kind: SpanKind, attributes: Optional[Dict[str, Any]]
) -> Iterator[Span]:
    # Looked up per call so a provider configured after import is used
    with get_tracer().start_as_current_span(
        span_name, kind=kind, attributes=attributes, record_exception=False
    ) as span:
        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, f"{type(e).__name__}: {e}"))
            raise
        span.set_status(Status(StatusCode.OK))


def traced(
    _func: Optional[Callable] = None,
    *,
    name: Optional[str] = None,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: Optional[Dict[str, Any]] = None,
):
    """
    Run the decorated function inside a span.

    Usable bare (``@traced``) or with options. The span name defaults to
    the function's qualified name, e.g. ``ConversationStore.load_chats``.

    Example:
        @traced(name="conversations.delete_project")
        async def delete_project(self, project_id): ...
    """
    def decorator(func: F) -> F:
        span_name = name or func.__qualname__

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                with _operation_span(span_name, kind, attributes):
                    return await func(*args, **kwargs)

            return async_wrapper  # type: ignore

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            with _operation_span(span_name, kind, attributes):
                return func(*args, **kwargs)

        return sync_wrapper  # type: ignore

    if _func is not None:
        return decorator(_func)
    return decorator


def add_span_attributes(attributes: Dict[str, Any]) -> None:
    """Set attributes on the current span. None values are skipped."""
    span = trace.get_current_span()
    if not span.is_recording():
        return
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, value)

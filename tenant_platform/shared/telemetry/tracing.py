"""Span helpers for service operations"""
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from tenant_platform.shared.context import get_current_tenant_id

logger = logging.getLogger(__name__)

R = TypeVar("R")

_tracer = trace.get_tracer("tenant_platform")


def traced(
    span_name: str,
) -> Callable[[Callable[..., Awaitable[R]]], Callable[..., Awaitable[R]]]:
    """
    Run the decorated coroutine inside a span named ``span_name``.

    The span carries the current tenant (when one is in scope) and records
    any exception before it propagates.

    Usage:
        @traced("tenant.provision")
        async def provision(self, tenant_id: str) -> Tenant:
            ...
    """

    def decorator(func: Callable[..., Awaitable[R]]) -> Callable[..., Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> R:
            with _tracer.start_as_current_span(span_name, record_exception=False) as span:
                tenant_id = get_current_tenant_id()
                if tenant_id:
                    span.set_attribute("tenant.context_id", tenant_id)
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    span.record_exception(e)
                    span.set_status(Status(StatusCode.ERROR, type(e).__name__))
                    raise

        return wrapper

    return decorator


def add_span_attributes(**attributes: Any) -> None:
    """Set attributes on the active span (ignored when nothing is recording)"""
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attributes(attributes)


def get_trace_id() -> str | None:
    """Hex id of the active trace, for log lines and error reports"""
    context = trace.get_current_span().get_span_context()
    if not context.is_valid:
        return None
    return format(context.trace_id, "032x")

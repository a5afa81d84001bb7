"""
Tenant context management using contextvars.

Provides async-safe storage for the "current tenant" of an in-flight request.
Each asyncio task works on its own copy of the context, so concurrent requests
never observe each other's tenant, and nested scopes restore the outer tenant
on exit.

Usage:
    # In middleware, around request processing:
    with tenant_scope("tenant-123"):
        response = await call_next(request)

    # Or explicitly around a unit of work:
    result = await run_with_tenant("tenant-123", load_invoices, invoice_ids)

    # In any code that needs the current tenant:
    tenant_id = get_current_tenant_id()  # Returns "tenant-123" or None
"""

from __future__ import annotations

import copy
import functools
import inspect
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar

from tenant_platform.domain.exceptions import ContextExpiredError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_current_tenant: ContextVar[TenantContext | None] = ContextVar("current_tenant", default=None)


@dataclass
class TenantContext:
    """Tenant identity bound to one logical execution scope."""

    tenant_id: str | None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: datetime | None = None

    @classmethod
    def create(
        cls,
        tenant_id: str | None,
        metadata: dict[str, Any] | None = None,
        ttl: float | None = None,
    ) -> TenantContext:
        created_at = datetime.now(timezone.utc)
        expires_at = created_at + timedelta(seconds=ttl) if ttl is not None else None
        return cls(
            tenant_id=tenant_id,
            metadata=dict(metadata or {}),
            created_at=created_at,
            expires_at=expires_at,
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) >= self.expires_at


@contextmanager
def tenant_scope(
    tenant_id: str | None,
    metadata: dict[str, Any] | None = None,
    ttl: float | None = None,
) -> Iterator[TenantContext]:
    """
    Enter a tenant scope for the duration of the ``with`` block.

    The previous context (if any) is restored on exit, including on error.
    """
    context = TenantContext.create(tenant_id, metadata=metadata, ttl=ttl)
    token = _current_tenant.set(context)
    try:
        yield context
    finally:
        _current_tenant.reset(token)


async def _await_within(context: TenantContext | None, awaitable: Any) -> Any:
    token = _current_tenant.set(context)
    try:
        return await awaitable
    finally:
        _current_tenant.reset(token)


def run_with_tenant(
    tenant_id: str | None,
    body: Callable[..., T],
    *args: Any,
    metadata: dict[str, Any] | None = None,
    ttl: float | None = None,
    **kwargs: Any,
) -> T:
    """
    Run ``body`` with the given tenant as the current tenant.

    Works for plain callables and for coroutine functions. For the latter an
    awaitable is returned; the tenant scope is active while it is awaited.
    Return values and exceptions of ``body`` are propagated unchanged.
    """
    with tenant_scope(tenant_id, metadata=metadata, ttl=ttl) as context:
        result = body(*args, **kwargs)
    if inspect.isawaitable(result):
        return _await_within(context, result)  # type: ignore[return-value]
    return result


def get_current_context() -> TenantContext | None:
    """
    Get the context of the nearest enclosing tenant scope.

    Raises:
        ContextExpiredError: If the scope was opened with a TTL that has elapsed
    """
    context = _current_tenant.get()
    if context is not None and context.is_expired():
        raise ContextExpiredError(context.tenant_id)
    return context


def get_current_tenant_id() -> str | None:
    """Get the current tenant ID, or None if no (unexpired) scope is active."""
    try:
        context = get_current_context()
    except ContextExpiredError as e:
        logger.warning("Ignoring expired tenant context for %s", e.tenant_id)
        return None
    return context.tenant_id if context else None


def wrap_with_captured_context(fn: Callable[..., T]) -> Callable[..., T]:
    """
    Bind ``fn`` to the tenant context active right now.

    The context is deep-copied at wrap time, so later changes to the original
    context object (e.g. its metadata) are not seen by the wrapped callable.
    """
    captured = copy.deepcopy(_current_tenant.get())

    if inspect.iscoroutinefunction(fn):

        @functools.wraps(fn)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            token = _current_tenant.set(captured)
            try:
                return await fn(*args, **kwargs)
            finally:
                _current_tenant.reset(token)

        return async_wrapper  # type: ignore[return-value]

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        token = _current_tenant.set(captured)
        try:
            return fn(*args, **kwargs)
        finally:
            _current_tenant.reset(token)

    return wrapper

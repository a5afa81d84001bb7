"""Helpers for publishing tenant events after a transaction has committed."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from tenant_platform.infrastructure.persistence.models import Tenant

logger = logging.getLogger(__name__)


def build_event_payload(tenant: Tenant) -> dict[str, Any]:
    """Public view of a tenant carried by lifecycle events"""
    return {
        "id": tenant.id,
        "name": tenant.name,
        "domain": tenant.subdomain,
        "status": "active" if tenant.is_active else "inactive",
        "created_at": tenant.created_at.isoformat() if tenant.created_at else None,
        "updated_at": tenant.updated_at.isoformat() if tenant.updated_at else None,
    }


async def dispatch_event(
    publish: Callable[..., Awaitable[bool]], *args: Any, event: str, tenant_id: str
) -> bool:
    """
    Publish an event without ever failing the caller.

    The write it describes is already committed, so a failed publish is logged
    and dropped (at-most-once delivery, no retry).
    """
    try:
        delivered = await publish(*args)
    except Exception:
        logger.exception("Failed to publish %s event for tenant %s", event, tenant_id)
        return False

    if not delivered:
        logger.warning("%s event for tenant %s was not delivered", event, tenant_id)
    return delivered

"""Domain event publishing over Redis Pub/Sub"""

from __future__ import annotations

import json
import logging
from typing import Any

import redis.asyncio as redis

from tenant_platform.infrastructure.config.settings import get_settings
from tenant_platform.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class EventPublisher:
    """
    Publishes JSON messages to ``<topic>:<routing_key>`` channels.

    Delivery is fire-and-forget: ``publish`` reports failure through its return
    value and never raises.
    """

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        self.redis = redis_client
        self.settings = get_settings()
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection"""
        if self.redis is None:
            try:
                self.redis = redis.Redis(
                    host=self.settings.redis_host,
                    port=self.settings.redis_port,
                    db=self.settings.redis_db,
                    password=self.settings.redis_password or None,
                    decode_responses=True,
                    socket_connect_timeout=5,
                )
                await self.redis.ping()
                self._connected = True
                logger.info("Redis event publisher connected")
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning("Redis event publisher connection failed: %s", e)
                self._connected = False
                self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection"""
        if self.redis:
            await self.redis.aclose()
            self._connected = False
            logger.info("Redis event publisher disconnected")

    def is_available(self) -> bool:
        """Check if Redis is connected"""
        return self._connected and self.redis is not None

    @staticmethod
    def channel(topic: str, routing_key: str) -> str:
        return f"{topic}:{routing_key}"

    async def publish(self, topic: str, routing_key: str, payload: dict[str, Any]) -> bool:
        """
        Publish ``payload`` to the channel for ``topic``/``routing_key``

        Returns:
            True if published successfully
        """
        if not self.is_available() or self.redis is None:
            logger.debug("Redis not available, skipping publish of %s", routing_key)
            return False

        try:
            channel = self.channel(topic, routing_key)
            message = json.dumps(payload, default=str)
            await self.redis.publish(channel, message)
            logger.debug("Published %s to %s", routing_key, channel)
            return True
        except Exception as e:
            logger.error("Failed to publish %s: %s", routing_key, e)
            return False


class TenantEventPublisher:
    """Tenant lifecycle events"""

    CREATED = "tenant.created"
    UPDATED = "tenant.updated"
    DELETED = "tenant.deleted"
    PROVISIONED = "tenant.provisioned"
    DEPROVISIONED = "tenant.deprovisioned"

    def __init__(self, publisher: EventPublisher, topic: str | None = None) -> None:
        self.publisher = publisher
        self.topic = topic or get_settings().event_topic

    async def _publish_tenant(self, routing_key: str, tenant: dict[str, Any]) -> bool:
        return await self.publisher.publish(
            self.topic,
            routing_key,
            {"tenant": tenant, "timestamp": utc_now().isoformat()},
        )

    async def publish_tenant_created(self, tenant: dict[str, Any]) -> bool:
        return await self._publish_tenant(self.CREATED, tenant)

    async def publish_tenant_updated(self, tenant: dict[str, Any]) -> bool:
        return await self._publish_tenant(self.UPDATED, tenant)

    async def publish_tenant_deleted(self, tenant_id: str) -> bool:
        return await self.publisher.publish(
            self.topic,
            self.DELETED,
            {"tenant_id": tenant_id, "timestamp": utc_now().isoformat()},
        )

    async def publish_tenant_provisioned(self, tenant: dict[str, Any]) -> bool:
        return await self._publish_tenant(self.PROVISIONED, tenant)

    async def publish_tenant_deprovisioned(self, tenant: dict[str, Any]) -> bool:
        return await self._publish_tenant(self.DEPROVISIONED, tenant)


# Global publisher instance (initialized on app startup)
_publisher: EventPublisher | None = None


def get_event_publisher() -> EventPublisher:
    """Get the global event publisher (an unconnected one until startup runs)"""
    global _publisher
    if _publisher is None:
        _publisher = EventPublisher()
    return _publisher


def set_event_publisher(publisher: EventPublisher) -> None:
    """Set the global event publisher"""
    global _publisher
    _publisher = publisher

"""
Shared key-value state in Redis.

Holds what every worker process must see, such as idempotency keys and the
tenant they resolved to. Values are JSON with an expiry. An unreachable Redis
is never an error for callers: reads miss and writes report False, and the
idempotency layer falls back to per-request behaviour.
"""
from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as redis

from tenant_platform.infrastructure.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL = 300


class CacheService:
    """
    JSON values with a TTL on one Redis connection pool.

    Args:
        redis_client: Ready client (tests inject a mock); when omitted,
            ``connect`` opens one from settings
        settings: Connection settings, defaults to ``get_settings()``
    """

    def __init__(self, redis_client: redis.Redis | None = None, settings: Settings | None = None):
        self.redis = redis_client
        self.settings = settings or get_settings()
        self._connected = redis_client is not None

    @property
    def _address(self) -> str:
        return f"{self.settings.redis_host}:{self.settings.redis_port}"

    async def connect(self) -> None:
        """Open the pool on startup; stays disabled when Redis does not answer PING"""
        if self.redis is not None:
            return

        client = redis.Redis(
            host=self.settings.redis_host,
            port=self.settings.redis_port,
            db=self.settings.redis_db,
            password=self.settings.redis_password or None,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
        )
        try:
            await client.ping()
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning("Redis at %s unreachable, shared state disabled: %s", self._address, e)
            return

        self.redis = client
        self._connected = True
        logger.info("Redis connected at %s", self._address)

    async def disconnect(self) -> None:
        if self.redis is None:
            return
        await self.redis.aclose()
        self._connected = False
        logger.info("Redis connection to %s closed", self._address)

    def is_available(self) -> bool:
        return self._connected and self.redis is not None

    async def _call(
        self,
        command: str,
        key: str,
        action: Callable[[redis.Redis], Awaitable[T]],
        fallback: T,
    ) -> T:
        if not self.is_available() or self.redis is None:
            return fallback
        try:
            return await action(self.redis)
        except (redis.RedisError, ValueError, TypeError) as e:
            logger.error("Redis %s failed for %s: %s", command, key, e)
            return fallback

    async def get(self, key: str) -> Any | None:
        """Decoded value, or None on a miss or when Redis is unavailable"""

        async def read(client: redis.Redis) -> Any | None:
            raw = await client.get(key)
            logger.debug("Redis GET %s: %s", key, "hit" if raw else "miss")
            return json.loads(raw) if raw else None

        return await self._call("GET", key, read, None)

    async def set(self, key: str, value: Any, ttl: int = DEFAULT_TTL) -> bool:
        """Store ``value`` for ``ttl`` seconds; False when it could not be written"""
        payload = json.dumps(value, default=str)

        async def write(client: redis.Redis) -> bool:
            await client.setex(key, ttl, payload)
            return True

        return await self._call("SETEX", key, write, False)

    async def delete(self, key: str) -> bool:
        async def remove(client: redis.Redis) -> bool:
            await client.delete(key)
            return True

        return await self._call("DEL", key, remove, False)

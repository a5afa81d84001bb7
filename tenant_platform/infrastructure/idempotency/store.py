"""
Idempotency key stores.

A store maps a caller-supplied idempotency key to the id of the record the
first request created, for a limited time (24 hours by default).
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from weakref import WeakValueDictionary

from tenant_platform.infrastructure.cache.redis_cache import CacheService

logger = logging.getLogger(__name__)


class IdempotencyStore(ABC):
    """
    Base class for idempotency stores.

    ``lock(key)`` serializes concurrent requests carrying the same key within
    this process; there is no cross-process lock.
    """

    def __init__(self, ttl: int):
        self.ttl = ttl
        self._locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    def lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Stored value for ``key``, or None if absent or expired"""

    @abstractmethod
    async def put(self, key: str, value: str) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds"""


class InMemoryIdempotencyStore(IdempotencyStore):
    """Process-local store; expired keys are dropped lazily on read."""

    def __init__(self, ttl: int, clock: Callable[[], float] = time.monotonic):
        super().__init__(ttl)
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def put(self, key: str, value: str) -> None:
        self._entries[key] = (value, self._clock() + self.ttl)


class RedisIdempotencyStore(IdempotencyStore):
    """Store shared by all instances through Redis (keys expire via Redis TTL)."""

    KEY_PREFIX = "idempotency"

    def __init__(self, cache: CacheService, ttl: int, namespace: str = "tenant"):
        super().__init__(ttl)
        self.cache = cache
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.KEY_PREFIX}:{self.namespace}:{key}"

    async def get(self, key: str) -> str | None:
        value = await self.cache.get(self._key(key))
        return str(value) if value is not None else None

    async def put(self, key: str, value: str) -> None:
        if not await self.cache.set(self._key(key), value, ttl=self.ttl):
            logger.warning("Idempotency key %s could not be stored; replays will not be detected", key)

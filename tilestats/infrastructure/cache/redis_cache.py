"""Redis-backed key/value cache for resolved tile stats batches.

Values are stored as JSON with a TTL. The cache is an optimization only:
every operation degrades to a miss (or False) when Redis is unreachable,
and one reconnect is attempted when an established connection drops.
Key format lives in tilestats.infrastructure.cache.keys.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as redis

from tilestats.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CONNECTION_ERRORS = (redis.ConnectionError, redis.TimeoutError)


def _client_from_settings(settings: Settings) -> redis.Redis:
    password = settings.redis_password.get_secret_value() if settings.redis_password else None
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        password=password,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_keepalive=True,
    )


class CacheService:
    """Async Redis cache implementing ICacheService.

    Call connect() at startup and disconnect() at shutdown. An injected
    client (tests, DI) is treated as already connected.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.redis = redis_client
        self.settings = settings or get_settings()
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Open and ping a connection; on failure the cache stays disabled."""
        if self.redis is not None:
            return
        client = _client_from_settings(self.settings)
        try:
            await client.ping()
        except _CONNECTION_ERRORS as e:
            logger.warning("Redis connection failed: %s. Tile stats cache disabled.", e)
            await client.aclose()
            return
        self.redis = client
        self._connected = True
        logger.info(
            "Redis cache connected: %s:%s/%s",
            self.settings.redis_host,
            self.settings.redis_port,
            self.settings.redis_db,
        )

    async def disconnect(self) -> None:
        """Close the connection pool."""
        if self.redis is None:
            return
        await self.redis.aclose()
        self.redis = None
        self._connected = False
        logger.info("Redis cache disconnected")

    def is_available(self) -> bool:
        return self._connected and self.redis is not None

    async def _reconnect(self) -> bool:
        if self.redis is not None:
            try:
                await self.redis.aclose()
            except redis.RedisError:
                logger.debug("Ignoring error while closing stale Redis connection")
        self.redis = None
        self._connected = False
        await self.connect()
        return self.is_available()

    async def _call(
        self, key: str, action: str, op: Callable[[redis.Redis], Awaitable[T]], default: T
    ) -> T:
        """Run op against the client, retrying once after a dropped connection."""
        if not self.is_available() or self.redis is None:
            return default
        try:
            return await op(self.redis)
        except _CONNECTION_ERRORS:
            if not await self._reconnect() or self.redis is None:
                logger.warning("Cache %s unavailable for key %s (Redis disconnected)", action, key)
                return default
            try:
                return await op(self.redis)
            except redis.RedisError:
                logger.exception("Cache %s error for key %s after reconnect", action, key)
                return default
        except redis.RedisError:
            logger.exception("Cache %s error for key %s", action, key)
            return default

    async def get(self, key: str) -> Any | None:
        """Return the JSON-decoded value, or None on miss, error, or unavailability."""
        raw = await self._call(key, "get", lambda client: client.get(key), None)
        if raw is None:
            logger.debug("Cache MISS: %s", key)
            return None
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding non-JSON cache value for key %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        return value

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Store value as JSON with a TTL in seconds. Returns True on success."""
        serialized = json.dumps(value, default=str)

        async def _setex(client: redis.Redis) -> bool:
            await client.setex(key, ttl, serialized)
            return True

        stored = await self._call(key, "set", _setex, False)
        if stored:
            logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)
        return stored

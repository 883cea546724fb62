"""Redis-backed cache store shared by every service instance.

Provides async Redis access with TTL support for the cache core. Values
arrive already serialized. Connection errors trigger one reconnect attempt;
failures surface as CacheStoreException so the cache core can decide
whether they are fatal (reads degrade to a miss, writes are reported).
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

import redis.asyncio as redis

from app.core.config import get_settings
from app.core.constants import CACHE_SCAN_BATCH, REDIS_RECONNECT_INTERVAL_SECONDS
from app.domain.exceptions import CacheStoreException

logger = logging.getLogger(__name__)

T = TypeVar("T")

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def escape_glob(value: str) -> str:
    """Escape Redis MATCH glob metacharacters so value matches literally."""
    return _GLOB_SPECIAL.sub(r"\\\1", value)


class RedisCacheStore:
    """Async Redis store. Call connect() at startup and disconnect() at shutdown."""

    name = "redis"

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        """Initialize store.

        Args:
            redis_client: Optional Redis client for testing or DI.
        """
        self.redis = redis_client
        self.settings = get_settings()
        self._connected = redis_client is not None
        self._next_connect_at: float | None = None

    async def connect(self) -> None:
        """Establish Redis connection. Call on app startup."""
        if self._connected:
            return
        if self.redis is None:
            try:
                self.redis = redis.Redis(
                    host=self.settings.redis_host,
                    port=self.settings.redis_port,
                    db=self.settings.redis_db,
                    password=self.settings.redis_password.get_secret_value() if self.settings.redis_password else None,
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=self.settings.redis_socket_timeout,
                    socket_keepalive=True,
                )
                await self.redis.ping()
                self._connected = True
                logger.info(
                    "Redis cache connected: %s:%s",
                    self.settings.redis_host,
                    self.settings.redis_port,
                )
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning("Redis connection failed: %s. Shared cache disabled.", e)
                self._connected = False
                self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on app shutdown."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self._connected = False
            logger.info("Redis cache disconnected")

    async def _reconnect(self) -> bool:
        """Attempt to reconnect after a dropped connection. Returns True if reconnected."""
        if self.redis is None:
            return False
        try:
            await self.redis.aclose()
        except redis.RedisError:
            logger.debug("Ignoring error while closing stale Redis client")
        self.redis = None
        self._connected = False
        await self.connect()
        return self._connected

    def is_available(self) -> bool:
        """Return True if Redis is connected and usable."""
        return self._connected and self.redis is not None

    async def _ensure_connected(self) -> None:
        """Retry connect() for a store that is down, at most once per reconnect interval.

        Lets a store that missed Redis at startup recover on the next command
        instead of waiting for a health check.
        """
        if self.is_available():
            return
        now = time.monotonic()
        if self._next_connect_at is not None and now < self._next_connect_at:
            return
        self._next_connect_at = now + REDIS_RECONNECT_INTERVAL_SECONDS
        await self.connect()

    async def _run(
        self,
        operation: str,
        key: str,
        call: Callable[[redis.Redis], Awaitable[T]],
    ) -> T:
        """Run call against the client, connecting first when the store is down.

        A connection error mid-command triggers one reconnect and retry.

        Raises:
            CacheStoreException: If Redis is unavailable or the command fails.
        """
        await self._ensure_connected()
        if not self.is_available() or self.redis is None:
            raise CacheStoreException(operation, key, "redis unavailable")
        try:
            return await call(self.redis)
        except (redis.ConnectionError, redis.TimeoutError) as e:
            if await self._reconnect() and self.redis is not None:
                try:
                    return await call(self.redis)
                except redis.RedisError as retry_error:
                    raise CacheStoreException(operation, key, str(retry_error)) from retry_error
            logger.warning("Cache %s unavailable for %s (Redis disconnected)", operation, key)
            raise CacheStoreException(operation, key, str(e)) from e
        except redis.RedisError as e:
            logger.exception("Cache %s error for %s", operation, key)
            raise CacheStoreException(operation, key, str(e)) from e

    async def ping(self) -> bool:
        """Return True if Redis answers PING.

        Health checks call this, so a store that was down at startup
        reconnects here once Redis is back.
        """
        if not self.is_available():
            await self.connect()
        if not self.is_available() or self.redis is None:
            return False
        try:
            return bool(await self.redis.ping())
        except redis.RedisError:
            return False

    async def read(self, key: str) -> str | None:
        return await self._run("read", key, lambda r: r.get(key))

    async def write(self, key: str, value: str, ttl: int | None = None) -> None:
        if ttl is None:
            await self._run("write", key, lambda r: r.set(key, value))
        else:
            await self._run("write", key, lambda r: r.setex(key, ttl, value))

    async def delete(self, key: str) -> int:
        return int(await self._run("delete", key, lambda r: r.unlink(key)) or 0)

    async def delete_prefix(self, prefix: str) -> int:
        """Delete all keys under prefix using SCAN + batched UNLINK (non-blocking).

        Uses scan_iter to avoid KEYS blocking; collects keys in chunks and
        UNLINKs each chunk to minimize round-trips.
        """
        pattern = f"{escape_glob(prefix)}*"

        async def _scan_and_unlink(client: redis.Redis) -> int:
            deleted = 0
            chunk: list[str] = []
            async for key in client.scan_iter(match=pattern, count=CACHE_SCAN_BATCH):
                chunk.append(key)
                if len(chunk) >= CACHE_SCAN_BATCH:
                    deleted += await self._unlink_chunk(client, chunk)
                    chunk = []
            if chunk:
                deleted += await self._unlink_chunk(client, chunk)
            return deleted

        deleted = await self._run("delete_prefix", prefix, _scan_and_unlink)
        if deleted > 0:
            logger.info("Cache INVALIDATE: %s* (%s keys)", prefix, deleted)
        return deleted

    @staticmethod
    async def _unlink_chunk(client: redis.Redis, chunk: list[str]) -> int:
        async with client.pipeline(transaction=False) as pipe:
            pipe.unlink(*chunk)
            results = await pipe.execute()
        return sum(int(r or 0) for r in results)

    async def count_prefix(self, prefix: str) -> int:
        pattern = f"{escape_glob(prefix)}*"

        async def _count(client: redis.Redis) -> int:
            total = 0
            async for _ in client.scan_iter(match=pattern, count=CACHE_SCAN_BATCH):
                total += 1
            return total

        return await self._run("count_prefix", prefix, _count)

    async def server_info(self) -> dict[str, str]:
        """Return a few INFO fields (version, uptime, memory, hit counters) for health output."""
        info = await self._run("info", "*", lambda r: r.info())
        wanted = (
            "redis_version",
            "uptime_in_seconds",
            "used_memory_human",
            "connected_clients",
            "keyspace_hits",
            "keyspace_misses",
        )
        return {k: str(info[k]) for k in wanted if k in info}

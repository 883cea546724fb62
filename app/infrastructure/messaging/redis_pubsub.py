"""Redis Pub/Sub transport for cache invalidation events.

Every service instance subscribes to one fixed channel; a publish reaches
all live subscribers, including the publisher itself. Redis pub/sub is
fire-and-forget: instances that are down when an event is published miss
it and rely on TTL expiry.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import redis.asyncio as redis

from app.core.config import get_settings
from app.domain.exceptions import InvalidationTransportException

logger = logging.getLogger(__name__)


class RedisInvalidationTransport:
    """Redis connection shared by the invalidation publisher and subscriber."""

    name = "redis"

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        """Initialize. Pass redis_client for DI/testing."""
        self.redis = redis_client
        self.settings = get_settings()
        self._connected = redis_client is not None

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
                )
                await self.redis.ping()
                self._connected = True
                logger.info("Redis pub/sub connected")
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning("Redis pub/sub connection failed: %s", e)
                self._connected = False
                self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on app shutdown."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self._connected = False
            logger.info("Redis pub/sub disconnected")

    def is_available(self) -> bool:
        """Return True if Redis is connected."""
        return self._connected and self.redis is not None

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        """Publish a JSON payload to channel.

        Raises:
            InvalidationTransportException: If Redis is unavailable or PUBLISH fails.
        """
        if not self.is_available() or self.redis is None:
            raise InvalidationTransportException(channel, "redis unavailable")
        try:
            receivers = await self.redis.publish(channel, json.dumps(payload))
        except redis.RedisError as e:
            raise InvalidationTransportException(channel, str(e)) from e
        logger.debug("Published invalidation to %s (%s receivers)", channel, receivers)

    async def subscribe(self, channel: str) -> AsyncIterator[dict[str, Any]]:
        """Subscribe to channel and yield decoded payloads as they arrive.

        Each call uses its own PubSub, closed in finally, so cancelling the
        consuming task unsubscribes cleanly. Undecodable messages are logged
        and skipped.

        Raises:
            InvalidationTransportException: If Redis cannot be reached or the
                subscription connection is lost.
        """
        if not self.is_available():
            await self.connect()
        if not self.is_available() or self.redis is None:
            raise InvalidationTransportException(channel, "redis unavailable")
        pubsub = self.redis.pubsub()
        try:
            await pubsub.subscribe(channel)
            logger.info("Subscribed to %s", channel)
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    data = json.loads(message["data"])
                except (json.JSONDecodeError, TypeError):
                    logger.warning("Dropping undecodable invalidation message on %s", channel)
                    continue
                if not isinstance(data, dict):
                    logger.warning("Dropping non-object invalidation message on %s", channel)
                    continue
                yield data
        except redis.RedisError as e:
            raise InvalidationTransportException(channel, str(e)) from e
        finally:
            try:
                await pubsub.unsubscribe(channel)
                await pubsub.aclose()
            except redis.RedisError as e:
                logger.debug("Pub/sub close on %s failed: %s", channel, e)
            logger.info("Unsubscribed from %s", channel)

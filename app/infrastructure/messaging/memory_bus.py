"""Process-local invalidation transport.

Fans every published payload out to all current subscribers of the channel
through per-subscriber asyncio queues. Used when Redis is disabled (single
instance) and in tests, where two cache cores sharing one transport stand
in for two service instances.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections import defaultdict
from collections.abc import AsyncIterator
from typing import Any

from app.domain.exceptions import InvalidationTransportException

logger = logging.getLogger(__name__)

_CLOSED = object()


class InMemoryInvalidationTransport:
    """In-process pub/sub delivering every publish to each live subscriber."""

    name = "memory"

    def __init__(self) -> None:
        self._subscribers: dict[str, set[asyncio.Queue[Any]]] = defaultdict(set)
        self._connected = True
        self.published: list[tuple[str, dict[str, Any]]] = []

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        """Stop accepting publishes and end every active subscription."""
        self._connected = False
        for queues in self._subscribers.values():
            for queue in queues:
                queue.put_nowait(_CLOSED)

    def is_available(self) -> bool:
        return self._connected

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, ()))

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        if not self._connected:
            raise InvalidationTransportException(channel, "transport closed")
        self.published.append((channel, payload))
        for queue in self._subscribers.get(channel, ()):
            # Each subscriber gets its own copy, as if decoded off the wire.
            queue.put_nowait(copy.deepcopy(payload))

    async def subscribe(self, channel: str) -> AsyncIterator[dict[str, Any]]:
        queue: asyncio.Queue[Any] = asyncio.Queue()
        self._subscribers[channel].add(queue)
        logger.debug("In-memory subscriber added to %s", channel)
        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                yield item
        finally:
            self._subscribers[channel].discard(queue)

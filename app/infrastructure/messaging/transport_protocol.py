"""Invalidation transport protocol (DIP).

The invalidation bus publishes and consumes JSON-able dicts on one fixed
channel. Implementations: RedisInvalidationTransport (cross-instance) and
InMemoryInvalidationTransport (single process, tests).
"""

from collections.abc import AsyncIterator
from typing import Any, Protocol


class InvalidationTransportProtocol(Protocol):
    """Publish/subscribe over a named channel."""

    name: str

    async def connect(self) -> None:
        """Open connections. Call on app startup."""
        ...

    async def disconnect(self) -> None:
        """Close connections and end active subscriptions."""
        ...

    def is_available(self) -> bool:
        """Return True if publish can currently succeed."""
        ...

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        """Deliver payload to every live subscriber of channel.

        Raises:
            InvalidationTransportException: If the payload could not be handed off.
        """
        ...

    def subscribe(self, channel: str) -> AsyncIterator[dict[str, Any]]:
        """Yield payloads published to channel until the transport disconnects."""
        ...

"""Backing store protocol for the cache core (DIP).

Stores hold opaque serialized strings; serialization, TTL policy and key
construction belong to the cache core. Implementations: InMemoryCacheStore
(per process) and RedisCacheStore (shared).
"""

from typing import Protocol


class CacheStoreProtocol(Protocol):
    """Uniform read/write/delete against a backing key-value resource."""

    name: str

    async def connect(self) -> None:
        """Open connections. Call on app startup."""
        ...

    async def disconnect(self) -> None:
        """Close connections. Call on app shutdown."""
        ...

    def is_available(self) -> bool:
        """Return True if the store is connected and usable."""
        ...

    async def ping(self) -> bool:
        """Round-trip health check; never raises."""
        ...

    async def read(self, key: str) -> str | None:
        """Return the stored payload or None if missing or expired.

        Raises:
            CacheStoreException: On connection failure.
        """
        ...

    async def write(self, key: str, value: str, ttl: int | None = None) -> None:
        """Store payload; ttl in seconds, None for no expiry.

        Raises:
            CacheStoreException: On failure (no partial entry is left behind).
        """
        ...

    async def delete(self, key: str) -> int:
        """Remove key; return number of entries removed (0 if absent)."""
        ...

    async def delete_prefix(self, prefix: str) -> int:
        """Remove every key starting with prefix; return number removed."""
        ...

    async def count_prefix(self, prefix: str) -> int:
        """Return number of live keys starting with prefix."""
        ...

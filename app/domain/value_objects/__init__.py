"""Domain value objects and shared value types."""

from app.domain.value_objects.core import CacheEntry, CacheKey, NamespaceSpec

__all__ = [
    "CacheEntry",
    "CacheKey",
    "NamespaceSpec",
]

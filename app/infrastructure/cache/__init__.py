"""Cache: namespace registry, key builders, backing stores and the cache core.

CacheCore holds all cache logic; CacheHelper exposes one typed accessor per
namespace. Stores implement CacheStoreProtocol (Redis shared, in-memory per
process).
"""

from app.infrastructure.cache.accessors import CacheHelper, NamespaceCache, composite_id
from app.infrastructure.cache.cache_core import CacheCore, Loader, NamespaceStats
from app.infrastructure.cache.cache_protocol import CacheStoreProtocol
from app.infrastructure.cache.keys import (
    build_key,
    cache_key,
    namespace_of,
    parse_key,
    scope_prefix,
    slot_prefix,
)
from app.infrastructure.cache.memory_store import InMemoryCacheStore
from app.infrastructure.cache.namespaces import (
    DEFAULT_NAMESPACES,
    NamespaceRegistry,
    build_registry,
)
from app.infrastructure.cache.redis_cache import RedisCacheStore

__all__ = [
    "CacheCore",
    "CacheHelper",
    "CacheStoreProtocol",
    "DEFAULT_NAMESPACES",
    "InMemoryCacheStore",
    "Loader",
    "NamespaceCache",
    "NamespaceRegistry",
    "NamespaceStats",
    "RedisCacheStore",
    "build_key",
    "build_registry",
    "cache_key",
    "composite_id",
    "namespace_of",
    "parse_key",
    "scope_prefix",
    "slot_prefix",
]

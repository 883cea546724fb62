"""Cache core: namespaced get/set/invalidate with a miss-fallback loader.

Builds keys from (namespace, tenant, organization, entity id), serializes
values to JSON, applies namespace TTLs and routes each namespace to its
backing store. Single-key store calls are bounded by a short timeout;
prefix scans (scope invalidation, entry counts) by a longer one.

Failure policy:
- read failures and timeouts degrade to a miss (the loader path runs);
- write and invalidate failures raise CacheStoreException;
- loader failures propagate unchanged and nothing is cached.

Concurrent get_or_load calls for the same key may each run the loader
(no single-flight).
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, TypeVar

from app.core.constants import CACHE_MISS_MARKER
from app.domain.exceptions import CacheStoreException, ValidationException
from app.domain.value_objects import NamespaceSpec
from app.infrastructure.cache.cache_protocol import CacheStoreProtocol
from app.infrastructure.cache.keys import cache_key, scope_prefix, slot_prefix
from app.infrastructure.cache.namespaces import NamespaceRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

Loader = Callable[[], Awaitable[Any]]


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime | date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


@dataclass
class NamespaceStats:
    """Per-namespace counters kept by one process."""

    hits: int = 0
    negative_hits: int = 0
    misses: int = 0
    sets: int = 0
    loads: int = 0
    load_failures: int = 0
    invalidations: int = 0
    errors: int = 0

    def hit_rate(self) -> float:
        total = self.hits + self.negative_hits + self.misses
        return round((self.hits + self.negative_hits) / total, 4) if total else 0.0


class CacheCore:
    """Generic cache engine parameterized by namespace.

    Args:
        registry: Frozen namespace registry (built at startup).
        store: Default backing store (Redis or in-memory).
        local_store: Per-process store for namespaces with use_internal.
        timeout: Seconds allowed for each single-key store call.
        scan_timeout: Seconds allowed for a prefix scan (delete_prefix, count_prefix).
        negative_ttl: TTL for cached "not found" loader results.
        enabled: Master switch; when False reads miss and writes are skipped.
    """

    def __init__(
        self,
        registry: NamespaceRegistry,
        store: CacheStoreProtocol,
        local_store: CacheStoreProtocol | None = None,
        *,
        timeout: float = 0.5,
        scan_timeout: float = 30.0,
        negative_ttl: int = 60,
        enabled: bool = True,
    ) -> None:
        self.registry = registry
        self.store = store
        self.local_store = local_store
        self.timeout = timeout
        self.scan_timeout = scan_timeout
        self.negative_ttl = negative_ttl
        self.enabled = enabled
        self._stats: dict[str, NamespaceStats] = {
            name: NamespaceStats() for name in registry.names()
        }

    # ---- helpers -------------------------------------------------------

    def _store_for(self, spec: NamespaceSpec) -> CacheStoreProtocol:
        if spec.use_internal and self.local_store is not None:
            return self.local_store
        return self.store

    def stores(self) -> list[CacheStoreProtocol]:
        """Return the distinct backing stores in use."""
        if self.local_store is None or self.local_store is self.store:
            return [self.store]
        return [self.store, self.local_store]

    def _active(self, spec: NamespaceSpec) -> bool:
        return self.enabled and spec.enabled

    async def _call(
        self,
        operation: str,
        key: str,
        awaitable: Awaitable[T],
        timeout: float | None = None,
    ) -> T:
        """Await a store call with timeout (the single-key timeout by default).

        Raises:
            CacheStoreException: On timeout or store failure.
        """
        try:
            return await asyncio.wait_for(
                awaitable, timeout=self.timeout if timeout is None else timeout
            )
        except TimeoutError as e:
            raise CacheStoreException(operation, key, "timeout") from e

    @staticmethod
    def _serialize(value: Any, key: str) -> str:
        try:
            return json.dumps(value, default=_json_default)
        except (TypeError, ValueError) as e:
            raise ValidationException(
                f"Value for cache key {key} is not JSON serializable: {e}", field="value"
            ) from e

    async def _lookup(self, spec: NamespaceSpec, key: str) -> tuple[bool, Any]:
        """Return (found, value). A negative entry is (True, None)."""
        stats = self._stats[spec.name]
        if not self._active(spec):
            stats.misses += 1
            return False, None
        store = self._store_for(spec)
        try:
            raw = await self._call("read", key, store.read(key))
        except CacheStoreException as e:
            stats.errors += 1
            stats.misses += 1
            logger.warning("Cache read degraded to miss for %s: %s", key, e.details.get("reason"))
            return False, None
        if raw is None:
            stats.misses += 1
            logger.debug("Cache MISS: %s", key)
            return False, None
        if raw == CACHE_MISS_MARKER:
            stats.negative_hits += 1
            logger.debug("Cache NEGATIVE HIT: %s", key)
            return True, None
        try:
            value = json.loads(raw)
        except ValueError:
            stats.errors += 1
            stats.misses += 1
            logger.warning("Cache entry for %s is not valid JSON; treating as miss", key)
            return False, None
        stats.hits += 1
        logger.debug("Cache HIT: %s", key)
        return True, value

    async def _write_quietly(
        self, spec: NamespaceSpec, key: str, payload: str, ttl: int | None
    ) -> bool:
        """Write after a successful load; failures are logged, never raised."""
        try:
            await self._call("write", key, self._store_for(spec).write(key, payload, ttl))
        except CacheStoreException as e:
            self._stats[spec.name].errors += 1
            logger.warning("Cache write after load failed for %s: %s", key, e.details.get("reason"))
            return False
        self._stats[spec.name].sets += 1
        return True

    # ---- reads ---------------------------------------------------------

    async def get(
        self,
        namespace: str,
        tenant_code: str,
        organization_code: str | None = None,
        entity_id: str | int | None = None,
    ) -> Any | None:
        """Return the cached value, or None on miss, expiry, negative entry or store failure.

        Raises:
            UnknownNamespaceException: If namespace is not registered.
            ValidationException: If a key component is invalid.
        """
        spec = self.registry.get(namespace)
        key = cache_key(namespace, tenant_code, organization_code, entity_id)
        _, value = await self._lookup(spec, key)
        return value

    async def get_cache_only(
        self,
        namespace: str,
        tenant_code: str,
        organization_code: str | None = None,
        entity_id: str | int | None = None,
    ) -> Any | None:
        """Same as get; named for call sites where a miss is definitive (no fallback)."""
        return await self.get(namespace, tenant_code, organization_code, entity_id)

    async def get_or_load(
        self,
        namespace: str,
        tenant_code: str,
        organization_code: str | None,
        entity_id: str | int | None,
        loader: Loader,
        ttl: int | None = None,
    ) -> Any | None:
        """Return the cached value, or run loader on miss and cache its result.

        Args:
            namespace: Registered namespace name.
            tenant_code: Tenant code.
            organization_code: Organization code (None for tenant level).
            entity_id: Entity id within the namespace (None where the namespace has none).
            loader: Zero-argument coroutine function reading the authoritative store.
            ttl: Optional TTL override in seconds.

        Returns:
            Cached or freshly loaded value (None when the loader found nothing).

        Raises:
            Whatever loader raises; nothing is cached in that case.
        """
        spec = self.registry.get(namespace)
        key = cache_key(namespace, tenant_code, organization_code, entity_id)
        found, value = await self._lookup(spec, key)
        if found:
            return value

        stats = self._stats[spec.name]
        try:
            value = await loader()
        except Exception:
            stats.load_failures += 1
            raise
        stats.loads += 1

        if not self._active(spec):
            return value
        if value is None:
            if spec.allow_negative_caching:
                await self._write_quietly(spec, key, CACHE_MISS_MARKER, self.negative_ttl)
            return None
        try:
            payload = self._serialize(value, key)
        except ValidationException:
            logger.warning("Loaded value for %s is not JSON serializable; not cached", key)
            return value
        await self._write_quietly(
            spec, key, payload, ttl if ttl is not None else spec.default_ttl
        )
        return value

    # ---- writes --------------------------------------------------------

    async def set(
        self,
        namespace: str,
        tenant_code: str,
        organization_code: str | None,
        entity_id: str | int | None,
        value: Any,
        ttl: int | None = None,
    ) -> None:
        """Unconditionally overwrite an entry.

        Use after a committed write to the authoritative store (write-through).

        Raises:
            ValidationException: If value is None or not JSON serializable.
            CacheStoreException: If the store write fails or times out.
        """
        spec = self.registry.get(namespace)
        key = cache_key(namespace, tenant_code, organization_code, entity_id)
        if value is None:
            raise ValidationException(
                "Cannot cache None; use invalidate to remove an entry", field="value"
            )
        payload = self._serialize(value, key)
        if not self._active(spec):
            logger.debug("Cache SET skipped (namespace disabled): %s", key)
            return
        effective_ttl = ttl if ttl is not None else spec.default_ttl
        try:
            await self._call("write", key, self._store_for(spec).write(key, payload, effective_ttl))
        except CacheStoreException:
            self._stats[spec.name].errors += 1
            raise
        self._stats[spec.name].sets += 1
        logger.debug("Cache SET: %s (TTL: %ss)", key, effective_ttl)

    async def invalidate(
        self,
        namespace: str,
        tenant_code: str,
        organization_code: str | None = None,
        entity_id: str | int | None = None,
    ) -> int:
        """Remove one entry, or every entity under (namespace, tenant, organization).

        Runs even when the namespace is disabled so re-enabling never serves
        stale data. Safe when nothing matches.

        Returns:
            Number of entries removed.

        Raises:
            CacheStoreException: If the store delete fails or times out.
        """
        spec = self.registry.get(namespace)
        store = self._store_for(spec)
        if entity_id is not None:
            target = cache_key(namespace, tenant_code, organization_code, entity_id)
            call = self._call("delete", target, store.delete(target))
        else:
            target = slot_prefix(namespace, tenant_code, organization_code)
            call = self._call(
                "delete_prefix", target, store.delete_prefix(target), self.scan_timeout
            )
        try:
            removed = await call
        except CacheStoreException:
            self._stats[spec.name].errors += 1
            raise
        self._stats[spec.name].invalidations += 1
        logger.debug("Cache INVALIDATE: %s (%d removed)", target, removed)
        return removed

    async def invalidate_scope(
        self,
        namespace: str | None = None,
        tenant_code: str | None = None,
        organization_code: str | None = None,
    ) -> int:
        """Remove every entry in a scope.

        - namespace only: the whole namespace, all tenants;
        - namespace + tenant: every organization of the tenant in that namespace;
        - namespace + tenant + org: that organization in that namespace;
        - tenant (+ org) only: every namespace for the tenant (organization);
        - nothing: every registered namespace.

        Raises:
            UnknownNamespaceException: If namespace is not registered.
            ValidationException: If organization_code is given without tenant_code.
            CacheStoreException: If a store delete fails or times out.
        """
        if namespace is not None:
            specs = [self.registry.get(namespace)]
        else:
            specs = list(self.registry)
        removed = 0
        for spec in specs:
            prefix = scope_prefix(spec.name, tenant_code, organization_code)
            try:
                removed += await self._call(
                    "delete_prefix",
                    prefix,
                    self._store_for(spec).delete_prefix(prefix),
                    self.scan_timeout,
                )
            except CacheStoreException:
                self._stats[spec.name].errors += 1
                raise
            self._stats[spec.name].invalidations += 1
        logger.info(
            "Cache scope invalidated: namespace=%s tenant=%s org=%s (%d removed)",
            namespace or "*",
            tenant_code or "*",
            organization_code or "*",
            removed,
        )
        return removed

    # ---- diagnostics ---------------------------------------------------

    def stats(self) -> dict[str, dict[str, Any]]:
        """Return a snapshot of per-namespace counters (read-only)."""
        return {
            name: {**asdict(s), "hit_rate": s.hit_rate()}
            for name, s in self._stats.items()
        }

    async def entry_counts(
        self,
        tenant_code: str | None = None,
        organization_code: str | None = None,
    ) -> dict[str, int | None]:
        """Return live entry counts per namespace in a scope (None where the store failed)."""
        counts: dict[str, int | None] = {}
        for spec in self.registry:
            prefix = scope_prefix(spec.name, tenant_code, organization_code)
            try:
                counts[spec.name] = await self._call(
                    "count_prefix",
                    prefix,
                    self._store_for(spec).count_prefix(prefix),
                    self.scan_timeout,
                )
            except CacheStoreException as e:
                logger.warning("Entry count failed for %s: %s", prefix, e.details.get("reason"))
                counts[spec.name] = None
        return counts

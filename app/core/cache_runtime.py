"""Cache runtime: builds and tears down the cache object graph for one process.

Used by lifespan at startup and by tests, which pass in-memory stores and
transport. Routes and services reach the pieces through app.state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from fastapi import FastAPI

from app.core.config import Settings
from app.infrastructure.cache import (
    CacheCore,
    CacheHelper,
    CacheStoreProtocol,
    InMemoryCacheStore,
    NamespaceRegistry,
    RedisCacheStore,
    build_registry,
)
from app.infrastructure.messaging import (
    InMemoryInvalidationTransport,
    InvalidationBus,
    InvalidationTransportProtocol,
    RedisInvalidationTransport,
)
from app.infrastructure.persistence.sources import SourceScope, read_sources, write_sources
from app.infrastructure.services import (
    CacheAdminService,
    CacheInvalidationService,
    PlatformConfigService,
)

logger = logging.getLogger(__name__)


@dataclass
class CacheRuntime:
    """Everything one process needs to serve and invalidate its cache."""

    settings: Settings
    registry: NamespaceRegistry
    store: CacheStoreProtocol
    local_store: InMemoryCacheStore
    core: CacheCore
    cache: CacheHelper
    transport: InvalidationTransportProtocol
    bus: InvalidationBus
    invalidation: CacheInvalidationService
    admin: CacheAdminService
    platform_config: PlatformConfigService
    listener_task: asyncio.Task[None] | None = field(default=None, repr=False)

    async def start(self) -> None:
        """Connect stores and transport, start the sweeper and the invalidation listener."""
        await self.store.connect()
        if self.local_store is not self.store:
            await self.local_store.connect()
        await self.transport.connect()
        self.local_store.start_sweeper(self.settings.cache_sweep_interval_seconds)
        if isinstance(self.store, InMemoryCacheStore) and self.store is not self.local_store:
            self.store.start_sweeper(self.settings.cache_sweep_interval_seconds)
        self.listener_task = asyncio.create_task(self.bus.listen())
        logger.info(
            "Cache runtime started: store=%s transport=%s namespaces=%d",
            self.store.name,
            self.transport.name,
            len(self.registry),
        )

    async def stop(self) -> None:
        """Cancel the listener, then close transport and stores."""
        task, self.listener_task = self.listener_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                # Already logged by the listener when it failed.
                logger.debug("Invalidation listener had exited with an error")
            logger.info("Invalidation listener stopped")
        await self.transport.disconnect()
        await self.store.disconnect()
        if self.local_store is not self.store:
            await self.local_store.disconnect()
        logger.info("Cache runtime stopped")

    def attach(self, app: FastAPI) -> None:
        app.state.cache_runtime = self
        app.state.cache = self.cache
        app.state.cache_admin = self.admin
        app.state.cache_invalidation = self.invalidation
        app.state.platform_config_service = self.platform_config


def build_cache_runtime(
    settings: Settings,
    *,
    store: CacheStoreProtocol | None = None,
    local_store: InMemoryCacheStore | None = None,
    transport: InvalidationTransportProtocol | None = None,
    read_scope: SourceScope = read_sources,
    write_scope: SourceScope = write_sources,
) -> CacheRuntime:
    """Build the cache object graph from settings.

    Redis backs the shared store and the bus when REDIS_ENABLED is set;
    otherwise both are in-process. Namespaces listed in
    CACHE_INTERNAL_NAMESPACES always use the per-process store.

    Raises:
        CacheConfigurationException: If cache settings reference unknown namespaces.
    """
    registry = build_registry(settings)
    local = local_store or InMemoryCacheStore()
    if store is None:
        store = RedisCacheStore() if settings.redis_enabled else local
    if transport is None:
        transport = (
            RedisInvalidationTransport()
            if settings.redis_enabled
            else InMemoryInvalidationTransport()
        )
    core = CacheCore(
        registry,
        store,
        local,
        timeout=settings.cache_store_timeout_seconds,
        scan_timeout=settings.cache_scan_timeout_seconds,
        negative_ttl=settings.cache_negative_ttl_seconds,
        enabled=settings.cache_enabled,
    )
    helper = CacheHelper(core)
    bus = InvalidationBus(
        core,
        transport,
        settings.cache_invalidation_channel,
        origin=settings.instance_id,
        retry_delay=settings.cache_invalidation_retry_seconds,
    )
    invalidation = CacheInvalidationService(core, bus)
    admin = CacheAdminService(helper, invalidation, bus, read_scope=read_scope)
    platform_config = PlatformConfigService(
        helper, bus, read_scope=read_scope, write_scope=write_scope
    )
    return CacheRuntime(
        settings=settings,
        registry=registry,
        store=store,
        local_store=local,
        core=core,
        cache=helper,
        transport=transport,
        bus=bus,
        invalidation=invalidation,
        admin=admin,
        platform_config=platform_config,
    )

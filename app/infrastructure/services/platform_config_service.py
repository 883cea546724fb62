"""Platform config service: cached reads and write-through updates."""

from __future__ import annotations

from typing import Any

from app.application.dtos.cache import PlatformConfigUpdateResult
from app.core.constants import NS_ORGANIZATIONS, NS_PLATFORM_CONFIG
from app.domain.exceptions import CacheStoreException, ResourceNotFoundException
from app.infrastructure.cache.accessors import CacheHelper
from app.infrastructure.messaging.invalidation import InvalidationBus, InvalidationEvent
from app.infrastructure.persistence.sources import SourceScope, read_sources, write_sources
from app.shared.telemetry.logging import get_logger
from app.shared.telemetry.tracing import traced

logger = get_logger(__name__)


class PlatformConfigService:
    """Per-organization platform config backed by the platformConfig namespace.

    Reads go through get_or_load. Updates commit to the database first, then
    overwrite the local entry, drop the cached organization snapshot and
    publish key invalidations for both so every other instance re-reads the
    committed value.
    """

    def __init__(
        self,
        cache: CacheHelper,
        bus: InvalidationBus,
        *,
        read_scope: SourceScope = read_sources,
        write_scope: SourceScope = write_sources,
    ) -> None:
        self.cache = cache
        self.bus = bus
        self.read_scope = read_scope
        self.write_scope = write_scope

    @traced("platform_config.get")
    async def get(self, tenant_code: str, organization_code: str) -> dict[str, Any]:
        """Return the organization's platform config ({} when none is set).

        Raises:
            ResourceNotFoundException: If the organization does not exist.
        """

        async def _load() -> dict[str, Any] | None:
            async with self.read_scope() as sources:
                org = await sources.organizations.get_by_code(tenant_code, organization_code)
            return org.platform_config if org else None

        config = await self.cache.platform_config.fetch(tenant_code, organization_code, _load)
        if config is None:
            raise ResourceNotFoundException(
                "organization", f"{tenant_code}/{organization_code}"
            )
        return config

    @traced("platform_config.update")
    async def update(
        self, tenant_code: str, organization_code: str, config: dict[str, Any]
    ) -> PlatformConfigUpdateResult:
        """Replace the platform config (write-through).

        Raises:
            ResourceNotFoundException: If the organization does not exist.
        """
        async with self.write_scope() as sources:
            org = await sources.organizations.update_platform_config(
                tenant_code, organization_code, config
            )
        # Committed; only now may the cache see the new value.
        committed = org.platform_config
        cache_refreshed = True
        try:
            await self.cache.platform_config.put(tenant_code, organization_code, committed)
        except CacheStoreException as e:
            cache_refreshed = False
            logger.warning(
                "Platform config committed but local cache refresh failed for %s/%s: %s",
                tenant_code,
                organization_code,
                e.message,
            )
            try:
                await self.cache.platform_config.delete(tenant_code, organization_code)
            except CacheStoreException:
                logger.warning(
                    "Stale platform config for %s/%s remains cached until TTL",
                    tenant_code,
                    organization_code,
                )
        # The organizations snapshot embeds platform_config; warm-up reads it.
        try:
            await self.cache.organizations.delete(tenant_code, organization_code)
        except CacheStoreException as e:
            logger.warning(
                "Stale organization snapshot for %s/%s remains cached until TTL: %s",
                tenant_code,
                organization_code,
                e.message,
            )
        publishes = [
            await self.bus.publish_invalidation(
                InvalidationEvent.for_key(namespace, tenant_code, organization_code)
            )
            for namespace in (NS_ORGANIZATIONS, NS_PLATFORM_CONFIG)
        ]
        publish = next((p for p in publishes if not p.published), publishes[-1])
        return PlatformConfigUpdateResult(
            config=committed, cache_refreshed=cache_refreshed, publish=publish
        )

"""Cache admin service: diagnostics, scoped clearing and warm-up.

Diagnostics never mutate cache state. Clearing goes through
CacheInvalidationService like every other writer, so an operator clear
reaches all instances. Warm-up only calls get_or_load.
"""

from __future__ import annotations

from collections.abc import Awaitable
from typing import Any

from app.application.dtos.cache import WarmUpResult
from app.core.constants import (
    NS_DISPLAY_PROPERTIES,
    NS_ENTITY_TYPES,
    NS_ORGANIZATIONS,
    NS_PLATFORM_CONFIG,
)
from app.domain.enums import CacheHealthStatus
from app.domain.exceptions import MentoringException, SqlNotConfiguredException
from app.infrastructure.cache.accessors import CacheHelper, EntityTypeCache
from app.infrastructure.cache.redis_cache import RedisCacheStore
from app.infrastructure.messaging.invalidation import InvalidationBus
from app.infrastructure.persistence.sources import DataSources, SourceScope, read_sources
from app.infrastructure.services.cache_invalidation_service import CacheInvalidationService
from app.shared.telemetry.logging import get_logger
from app.shared.telemetry.tracing import add_span_attributes, traced
from app.shared.utils.datetime import utc_now

logger = get_logger(__name__)


class CacheAdminService:
    """Operational surface over one instance's cache core."""

    def __init__(
        self,
        cache: CacheHelper,
        invalidation: CacheInvalidationService,
        bus: InvalidationBus,
        *,
        read_scope: SourceScope = read_sources,
    ) -> None:
        self.cache = cache
        self.core = cache.core
        self.invalidation = invalidation
        self.bus = bus
        self.read_scope = read_scope

    @traced("cache_admin.stats")
    async def get_cache_stats(
        self, tenant_code: str | None = None, organization_code: str | None = None
    ) -> dict[str, Any]:
        """Per-namespace counters for this instance; entry counts when a tenant is given."""
        stats: dict[str, Any] = {
            "enabled": self.core.enabled,
            "generated_at": utc_now().isoformat(),
            "namespaces": self.core.stats(),
            "bus": {
                "received": self.bus.received,
                "rejected": self.bus.rejected,
                "publish_failures": self.bus.publish_failures,
                "subscription_failures": self.bus.subscription_failures,
                "apply_failures": self.bus.apply_failures,
            },
        }
        if tenant_code is not None:
            stats["scope"] = {"tenant_code": tenant_code, "organization_code": organization_code}
            stats["entries"] = await self.core.entry_counts(tenant_code, organization_code)
        return stats

    @traced("cache_admin.health")
    async def get_cache_health(self) -> dict[str, Any]:
        """Store reachability, bus availability and namespace configuration."""
        stores: dict[str, Any] = {}
        for store in self.core.stores():
            available = await store.ping()
            entry: dict[str, Any] = {"available": available}
            if available and isinstance(store, RedisCacheStore):
                try:
                    entry["info"] = await store.server_info()
                except MentoringException as e:
                    logger.warning("Redis INFO failed: %s", e.message)
            stores[store.name] = entry
        primary_ok = stores[self.core.store.name]["available"]
        all_ok = all(s["available"] for s in stores.values())
        # A listener that has exited no longer applies invalidations from other instances.
        bus_ok = self.bus.is_available() and not self.bus.listener_exited

        if not self.core.enabled:
            status = CacheHealthStatus.DISABLED
        elif not primary_ok:
            status = CacheHealthStatus.UNHEALTHY
        elif not all_ok or not bus_ok:
            status = CacheHealthStatus.DEGRADED
        else:
            status = CacheHealthStatus.HEALTHY

        return {
            "status": status.value,
            "enabled": self.core.enabled,
            "stores": stores,
            "bus": {
                "transport": self.bus.transport.name,
                "channel": self.bus.channel,
                "available": bus_ok,
                "listening": self.bus.listening,
                "listener_exited": self.bus.listener_exited,
            },
            "namespaces": {
                spec.name: {
                    "key_template": spec.key_template,
                    "default_ttl": spec.default_ttl,
                    "enabled": spec.enabled,
                    "use_internal": spec.use_internal,
                    "negative_caching": spec.allow_negative_caching,
                }
                for spec in self.core.registry
            },
            "checked_at": utc_now().isoformat(),
        }

    @traced("cache_admin.clear")
    async def clear_cache(
        self,
        namespace: str | None = None,
        tenant_code: str | None = None,
        organization_code: str | None = None,
    ) -> dict[str, Any]:
        """Clear a scope on every instance.

        Raises:
            UnknownNamespaceException: If namespace is not registered.
            ValidationException: If organization_code is given without tenant_code.
            CacheStoreException: If the local eviction fails.
        """
        add_span_attributes(
            **{"cache.namespace": namespace or "*", "cache.tenant": tenant_code or "*"}
        )
        outcome = await self.invalidation.clear(namespace, tenant_code, organization_code)
        logger.info(
            "Admin cache clear: namespace=%s tenant=%s org=%s removed=%d published=%s",
            namespace or "*",
            tenant_code or "*",
            organization_code or "*",
            outcome.removed,
            outcome.published,
        )
        return {
            "namespace": namespace,
            "tenant_code": tenant_code,
            "organization_code": organization_code,
            **outcome.to_dict(),
        }

    @traced("cache_admin.warm_up")
    async def warm_up_cache(
        self, tenant_code: str, organization_code: str | None = None
    ) -> WarmUpResult:
        """Load organizations, platform config, display properties and entity types.

        Targets the given organization, or every active organization of the
        tenant. Per-item failures are counted, not raised; only a failure to
        list the organizations propagates. Without a configured database
        nothing is loaded and the result is empty.
        """
        result = WarmUpResult(tenant_code=tenant_code)
        try:
            if organization_code is not None:
                result.organizations = [organization_code]
            else:
                async with self.read_scope() as sources:
                    result.organizations = await sources.organizations.list_active_codes(
                        tenant_code
                    )

            for org_code in result.organizations:
                async with self.read_scope() as sources:
                    await self._warm_organization(sources, result, tenant_code, org_code)
        except SqlNotConfiguredException:
            logger.warning("Cache warm-up for %s skipped: SQL database not configured", tenant_code)
            return WarmUpResult(tenant_code=tenant_code)
        logger.info(
            "Cache warm-up for %s: %d organizations, loaded=%s failed=%s",
            tenant_code,
            len(result.organizations),
            result.loaded,
            result.failed,
        )
        return result

    async def _warm_organization(
        self, sources: DataSources, result: WarmUpResult, tenant_code: str, org_code: str
    ) -> None:
        async def _load_org() -> dict[str, Any] | None:
            org = await sources.organizations.get_by_code(tenant_code, org_code)
            return org.to_cache() if org else None

        org = await self._warm(
            result,
            NS_ORGANIZATIONS,
            self.cache.organizations.fetch(tenant_code, org_code, _load_org),
        )
        if not org:
            return

        async def _platform_config() -> dict[str, Any]:
            return org.get("platform_config") or {}

        async def _display_properties() -> dict[str, Any]:
            return org.get("display_properties") or {}

        await self._warm(
            result,
            NS_PLATFORM_CONFIG,
            self.cache.platform_config.fetch(tenant_code, org_code, _platform_config),
        )
        await self._warm(
            result,
            NS_DISPLAY_PROPERTIES,
            self.cache.display_properties.fetch(tenant_code, org_code, _display_properties),
        )

        try:
            entity_types = await sources.entity_types.list_for_organization(tenant_code, org_code)
        except SqlNotConfiguredException:
            raise
        except Exception:
            logger.exception("Listing entity types failed for %s/%s", tenant_code, org_code)
            result.record(NS_ENTITY_TYPES, ok=False)
            return
        for et in entity_types:
            payload = et.to_cache()

            async def _entity_type(payload: dict[str, Any] = payload) -> dict[str, Any]:
                return payload

            await self._warm(
                result,
                NS_ENTITY_TYPES,
                self.cache.entity_types.get_or_load(
                    tenant_code,
                    org_code,
                    EntityTypeCache.entity_id(et.model_name, et.value),
                    _entity_type,
                ),
            )

    @staticmethod
    async def _warm(result: WarmUpResult, namespace: str, load: Awaitable[Any]) -> Any:
        try:
            value = await load
        except SqlNotConfiguredException:
            raise
        except Exception:
            logger.exception("Warm-up load failed in %s", namespace)
            result.record(namespace, ok=False)
            return None
        result.record(namespace, ok=value is not None)
        return value

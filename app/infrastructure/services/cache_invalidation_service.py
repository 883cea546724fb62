"""Cache invalidation service: local eviction first, then cross-instance publish.

Every writer and the admin surface invalidate through this service, so no
path evicts locally without also telling the other instances.
"""

from __future__ import annotations

from app.application.dtos.cache import InvalidationOutcome
from app.infrastructure.cache.cache_core import CacheCore
from app.infrastructure.messaging.invalidation import InvalidationBus, InvalidationEvent
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class CacheInvalidationService:
    """Invalidate locally (synchronously) and publish the matching event.

    A local store failure raises CacheStoreException before anything is
    published. A publish failure is returned in the outcome, never raised.
    """

    def __init__(self, core: CacheCore, bus: InvalidationBus) -> None:
        self.core = core
        self.bus = bus

    async def invalidate(
        self,
        namespace: str,
        tenant_code: str,
        organization_code: str | None = None,
        entity_id: str | None = None,
    ) -> InvalidationOutcome:
        """Remove one entry (or one organization slot) everywhere."""
        event = InvalidationEvent.for_key(namespace, tenant_code, organization_code, entity_id)
        removed = await self.core.invalidate(
            namespace, tenant_code, organization_code, entity_id
        )
        publish = await self.bus.publish_invalidation(event)
        return InvalidationOutcome(removed=removed, publishes=(publish,))

    async def clear(
        self,
        namespace: str | None = None,
        tenant_code: str | None = None,
        organization_code: str | None = None,
    ) -> InvalidationOutcome:
        """Remove every entry in a scope everywhere.

        With a namespace, one namespace event (optionally narrowed to tenant
        and organization). With only a tenant, one tenant event. With
        neither, one namespace event per registered namespace.

        Raises:
            UnknownNamespaceException: If namespace is not registered.
            ValidationException: If organization_code is given without tenant_code.
            CacheStoreException: If the local eviction fails.
        """
        if namespace is not None:
            self.core.registry.get(namespace)
            events = [
                InvalidationEvent.for_namespace(namespace, tenant_code, organization_code)
            ]
        elif tenant_code is not None:
            events = [InvalidationEvent.for_tenant(tenant_code, organization_code)]
        else:
            events = [
                InvalidationEvent.for_namespace(name, None, organization_code)
                for name in self.core.registry.names()
            ]
        removed = await self.core.invalidate_scope(namespace, tenant_code, organization_code)
        publishes = tuple([await self.bus.publish_invalidation(e) for e in events])
        outcome = InvalidationOutcome(removed=removed, publishes=publishes)
        if not outcome.published:
            logger.warning(
                "Cache cleared locally but not every instance was notified: %s",
                [p.error for p in publishes if not p.published],
            )
        return outcome

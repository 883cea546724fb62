"""Cache invalidation events and the bus that carries them between instances.

Writers invalidate their own cache synchronously and then publish an
InvalidationEvent; every instance (the writer included) applies received
events to its local cache core. Publishing is best-effort: a transport
failure is reported in PublishResult and never fails the write that
triggered it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from app.application.dtos.cache import PublishResult
from app.core.constants import CACHE_KEY_SEP
from app.domain.enums import InvalidationScope
from app.domain.exceptions import (
    CacheStoreException,
    InvalidationTransportException,
    MentoringException,
    ValidationException,
)
from app.infrastructure.cache.cache_core import CacheCore
from app.infrastructure.cache.keys import cache_key, parse_key
from app.infrastructure.messaging.transport_protocol import InvalidationTransportProtocol
from app.shared.utils.datetime import utc_now
from app.shared.utils.generators import generate_cuid

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return utc_now().isoformat()


@dataclass(frozen=True)
class InvalidationEvent:
    """One invalidation, scoped to a key, a namespace or a tenant.

    - KEY: namespace + tenant (+ organization) (+ entity id). Without an
      entity id the whole (namespace, tenant, organization) slot is removed.
    - NAMESPACE: namespace, optionally narrowed to a tenant and organization.
    - TENANT: every namespace for a tenant, optionally one organization.
    """

    scope: InvalidationScope
    namespace: str | None = None
    tenant_code: str | None = None
    organization_code: str | None = None
    entity_id: str | None = None
    emitted_at: str = field(default_factory=_now_iso)
    event_id: str = field(default_factory=generate_cuid)
    origin: str | None = None

    def __post_init__(self) -> None:
        for name in ("namespace", "tenant_code", "organization_code", "origin"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                raise ValidationException(f"{name} must be a string", field=name)
        if self.entity_id is not None:
            if isinstance(self.entity_id, bool) or not isinstance(self.entity_id, str | int):
                raise ValidationException(
                    "entity_id must be a string or an integer", field="entity_id"
                )
            object.__setattr__(self, "entity_id", str(self.entity_id))
        if self.organization_code is not None and self.tenant_code is None:
            raise ValidationException(
                "organization_code requires tenant_code", field="organization_code"
            )
        if self.scope is InvalidationScope.KEY:
            if not self.namespace or not self.tenant_code:
                raise ValidationException(
                    "key invalidation requires namespace and tenant_code", field="target"
                )
        elif self.scope is InvalidationScope.NAMESPACE:
            if not self.namespace:
                raise ValidationException(
                    "namespace invalidation requires a namespace", field="namespace"
                )
            if self.entity_id is not None:
                raise ValidationException(
                    "namespace invalidation does not take an entity_id", field="entity_id"
                )
        elif self.scope is InvalidationScope.TENANT:
            if not self.tenant_code:
                raise ValidationException(
                    "tenant invalidation requires tenant_code", field="tenant_code"
                )
            if self.namespace is not None or self.entity_id is not None:
                raise ValidationException(
                    "tenant invalidation does not take a namespace or entity_id",
                    field="target",
                )

    @classmethod
    def for_key(
        cls,
        namespace: str,
        tenant_code: str,
        organization_code: str | None = None,
        entity_id: str | int | None = None,
        origin: str | None = None,
    ) -> InvalidationEvent:
        return cls(
            InvalidationScope.KEY,
            namespace=namespace,
            tenant_code=tenant_code,
            organization_code=organization_code,
            entity_id=entity_id,
            origin=origin,
        )

    @classmethod
    def for_namespace(
        cls,
        namespace: str,
        tenant_code: str | None = None,
        organization_code: str | None = None,
        origin: str | None = None,
    ) -> InvalidationEvent:
        return cls(
            InvalidationScope.NAMESPACE,
            namespace=namespace,
            tenant_code=tenant_code,
            organization_code=organization_code,
            origin=origin,
        )

    @classmethod
    def for_tenant(
        cls,
        tenant_code: str,
        organization_code: str | None = None,
        origin: str | None = None,
    ) -> InvalidationEvent:
        return cls(
            InvalidationScope.TENANT,
            tenant_code=tenant_code,
            organization_code=organization_code,
            origin=origin,
        )

    @property
    def target(self) -> str:
        """Scope target: physical key, namespace name or tenant code."""
        if self.scope is InvalidationScope.KEY:
            assert self.namespace is not None and self.tenant_code is not None
            return cache_key(
                self.namespace, self.tenant_code, self.organization_code, self.entity_id
            )
        if self.scope is InvalidationScope.NAMESPACE:
            assert self.namespace is not None
            return self.namespace
        assert self.tenant_code is not None
        return self.tenant_code

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON publish."""
        return {
            "scope": self.scope.value,
            "target": self.target,
            "namespace": self.namespace,
            "tenant_code": self.tenant_code,
            "organization_code": self.organization_code,
            "entity_id": self.entity_id,
            "emitted_at": self.emitted_at,
            "event_id": self.event_id,
            "origin": self.origin,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InvalidationEvent:
        """Deserialize a received payload.

        Accepts the full form produced by to_dict and the bare
        {scope, target} form, where target is a physical key, a namespace
        name or a tenant code depending on scope. Codes must be strings;
        an integer entity_id is accepted and keyed by its string form.

        Raises:
            ValidationException: If the payload is malformed.
        """
        if not isinstance(data, dict):
            raise ValidationException("Invalidation payload must be an object")
        try:
            scope = InvalidationScope(data.get("scope"))
        except ValueError as e:
            raise ValidationException(
                f"Unknown invalidation scope: {data.get('scope')!r}", field="scope"
            ) from e

        fields: dict[str, Any] = {
            name: data.get(name)
            for name in ("namespace", "tenant_code", "organization_code", "entity_id")
        }
        target = data.get("target")
        if not any(fields.values()) and target:
            if not isinstance(target, str):
                raise ValidationException("Invalidation target must be a string", field="target")
            if scope is InvalidationScope.KEY:
                key = parse_key(target)
                fields = {
                    "namespace": key.namespace,
                    "tenant_code": key.tenant_code,
                    "organization_code": key.organization_code,
                    "entity_id": key.entity_id,
                }
            elif scope is InvalidationScope.NAMESPACE:
                fields["namespace"] = target
            else:
                if CACHE_KEY_SEP in target:
                    raise ValidationException("Malformed tenant target", field="target")
                fields["tenant_code"] = target

        extra: dict[str, Any] = {}
        for name in ("emitted_at", "event_id"):
            if data.get(name):
                extra[name] = str(data[name])
        return cls(scope, origin=data.get("origin"), **fields, **extra)


class InvalidationBus:
    """Bridges the cache core to an invalidation transport.

    Args:
        core: Local cache core that received events are applied to.
        transport: Pub/sub transport shared by all instances.
        channel: Fixed channel name for invalidation events.
        origin: Identifier of this instance, stamped on published events.
        retry_delay: Seconds to wait before re-subscribing after a lost subscription.
    """

    def __init__(
        self,
        core: CacheCore,
        transport: InvalidationTransportProtocol,
        channel: str,
        origin: str | None = None,
        retry_delay: float = 1.0,
    ) -> None:
        self.core = core
        self.transport = transport
        self.channel = channel
        self.origin = origin
        self.retry_delay = retry_delay
        self.received = 0
        self.rejected = 0
        self.publish_failures = 0
        self.subscription_failures = 0
        self.apply_failures = 0
        self.listening = False
        self.listener_exited = False

    def is_available(self) -> bool:
        return self.transport.is_available()

    async def publish_invalidation(self, event: InvalidationEvent) -> PublishResult:
        """Publish event to every instance. Never raises for transport failures."""
        if event.origin is None and self.origin is not None:
            event = InvalidationEvent(
                event.scope,
                namespace=event.namespace,
                tenant_code=event.tenant_code,
                organization_code=event.organization_code,
                entity_id=event.entity_id,
                emitted_at=event.emitted_at,
                event_id=event.event_id,
                origin=self.origin,
            )
        try:
            await self.transport.publish(self.channel, event.to_dict())
        except InvalidationTransportException as e:
            self.publish_failures += 1
            reason = e.details.get("reason", e.message)
            logger.warning(
                "Invalidation publish failed (%s %s); other instances stay stale until TTL: %s",
                event.scope.value,
                event.target,
                reason,
            )
            return PublishResult(published=False, event_id=event.event_id, error=reason)
        logger.debug("Invalidation published: %s %s", event.scope.value, event.target)
        return PublishResult(published=True, event_id=event.event_id)

    async def apply(self, event: InvalidationEvent) -> int:
        """Apply an event to the local cache core. Returns entries removed.

        Idempotent: deletes of already-absent entries are no-ops.
        """
        if event.scope is InvalidationScope.KEY:
            assert event.namespace is not None and event.tenant_code is not None
            return await self.core.invalidate(
                event.namespace, event.tenant_code, event.organization_code, event.entity_id
            )
        if event.scope is InvalidationScope.NAMESPACE:
            return await self.core.invalidate_scope(
                event.namespace, event.tenant_code, event.organization_code
            )
        return await self.core.invalidate_scope(
            None, event.tenant_code, event.organization_code
        )

    async def on_invalidation_received(self, payload: dict[str, Any]) -> int:
        """Consumer entry point for every received payload, self-originated ones included.

        Malformed payloads and unknown namespaces are logged and ignored.
        Store failures and unexpected errors are logged; the entries involved
        expire by TTL. Nothing raised here ends the listener.

        Returns:
            Number of local entries removed.
        """
        self.received += 1
        try:
            event = InvalidationEvent.from_dict(payload)
            removed = await self.apply(event)
        except CacheStoreException as e:
            self.apply_failures += 1
            logger.warning(
                "Could not apply invalidation %s: %s", payload.get("event_id"), e.message
            )
            return 0
        except MentoringException as e:
            self.rejected += 1
            logger.warning("Ignoring invalid invalidation payload %r: %s", payload, e.message)
            return 0
        except Exception:
            self.apply_failures += 1
            logger.exception("Failed to apply invalidation payload %r", payload)
            return 0
        logger.debug(
            "Invalidation applied: %s %s (%d removed, origin=%s)",
            event.scope.value,
            event.target,
            removed,
            event.origin or "?",
        )
        return removed

    async def listen(self) -> None:
        """Consume the invalidation channel until cancelled or the transport closes.

        A lost subscription is re-established after retry_delay seconds;
        events published in between are missed and expire by TTL.
        Run as a background task from lifespan. Once it returns or fails,
        listener_exited stays True and health reports the bus as degraded.
        """
        logger.info("Invalidation listener started on %s", self.channel)
        self.listening = True
        self.listener_exited = False
        try:
            while True:
                try:
                    async for payload in self.transport.subscribe(self.channel):
                        await self.on_invalidation_received(payload)
                    break
                except InvalidationTransportException as e:
                    self.subscription_failures += 1
                    logger.warning(
                        "Invalidation subscription on %s lost (%s); retrying in %ss",
                        self.channel,
                        e.details.get("reason", e.message),
                        self.retry_delay,
                    )
                    await asyncio.sleep(self.retry_delay)
        except asyncio.CancelledError:
            logger.info("Invalidation listener cancelled")
            raise
        except Exception:
            self.listener_exited = True
            logger.exception("Invalidation listener on %s failed", self.channel)
            raise
        finally:
            self.listening = False
        self.listener_exited = True
        logger.info("Invalidation listener stopped")

"""Tests for CacheInvalidationService (local eviction then publish) across instances."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from app.core.cache_runtime import build_cache_runtime
from app.core.constants import NS_MENTEE, NS_MENTOR
from app.domain.exceptions import (
    CacheStoreException,
    UnknownNamespaceException,
    ValidationException,
)
from app.infrastructure.cache import CacheCore
from app.infrastructure.messaging import InMemoryInvalidationTransport, InvalidationBus
from app.infrastructure.services import CacheInvalidationService


@pytest.fixture
def service(core: CacheCore, bus: InvalidationBus) -> CacheInvalidationService:
    return CacheInvalidationService(core, bus)


async def test_invalidate_evicts_locally_and_publishes(
    service: CacheInvalidationService, core: CacheCore, transport
) -> None:
    await core.set(NS_MENTOR, "t1", "o1", "u1", {"v": 1})
    outcome = await service.invalidate(NS_MENTOR, "t1", "o1", "u1")
    assert outcome.removed == 1
    assert outcome.published is True
    assert transport.published[0][1]["target"] == "mentor:t1:o1:u1"
    assert await core.get(NS_MENTOR, "t1", "o1", "u1") is None


async def test_publish_failure_does_not_fail_local_invalidation(
    service: CacheInvalidationService, core: CacheCore, transport
) -> None:
    await core.set(NS_MENTOR, "t1", "o1", "u1", {"v": 1})
    await transport.disconnect()
    outcome = await service.invalidate(NS_MENTOR, "t1", "o1", "u1")
    assert outcome.removed == 1
    assert outcome.published is False
    assert outcome.to_dict()["events"][0]["error"] == "transport closed"
    assert await core.get(NS_MENTOR, "t1", "o1", "u1") is None


async def test_local_failure_raises_before_publish(
    service: CacheInvalidationService, core: CacheCore, transport
) -> None:
    core.store.delete = AsyncMock(side_effect=CacheStoreException("delete", "k", "down"))
    with pytest.raises(CacheStoreException):
        await service.invalidate(NS_MENTOR, "t1", "o1", "u1")
    assert transport.published == []


async def test_clear_namespace_and_tenant(
    service: CacheInvalidationService, core: CacheCore, transport
) -> None:
    await core.set(NS_MENTOR, "t1", "o1", "u1", {"v": 1})
    await core.set(NS_MENTOR, "t1", "o2", "u2", {"v": 1})
    await core.set(NS_MENTEE, "t1", "o1", "u1", {"v": 1})
    outcome = await service.clear(NS_MENTOR, "t1")
    assert outcome.removed == 2
    assert len(outcome.publishes) == 1
    payload = transport.published[0][1]
    assert payload["scope"] == "namespace"
    assert payload["namespace"] == NS_MENTOR
    assert payload["tenant_code"] == "t1"


async def test_clear_tenant_only_publishes_tenant_event(
    service: CacheInvalidationService, transport
) -> None:
    await service.clear(None, "t1", "o1")
    payload = transport.published[0][1]
    assert payload["scope"] == "tenant"
    assert payload["target"] == "t1"
    assert payload["organization_code"] == "o1"


async def test_clear_everything_publishes_one_event_per_namespace(
    service: CacheInvalidationService, core: CacheCore, transport
) -> None:
    outcome = await service.clear()
    assert len(outcome.publishes) == len(core.registry)
    assert {p["namespace"] for _, p in transport.published} == set(core.registry.names())


async def test_clear_rejects_unknown_namespace_and_org_without_tenant(
    service: CacheInvalidationService, transport
) -> None:
    with pytest.raises(UnknownNamespaceException):
        await service.clear("reports")
    with pytest.raises(ValidationException):
        await service.clear(NS_MENTOR, None, "o1")
    assert transport.published == []


async def test_admin_clear_reaches_every_instance(settings, sources) -> None:
    """Clearing mentor for t1 on one instance evicts mentor/t1 entries on the other."""
    transport = InMemoryInvalidationTransport()
    node_a = build_cache_runtime(
        settings, transport=transport, read_scope=sources.read, write_scope=sources.write
    )
    node_b = build_cache_runtime(
        settings, transport=transport, read_scope=sources.read, write_scope=sources.write
    )
    await node_a.start()
    await node_b.start()
    try:
        for node in (node_a, node_b):
            await node.core.set(NS_MENTOR, "t1", "o1", "u1", {"v": 1})
            await node.core.set(NS_MENTOR, "t1", "o2", "u2", {"v": 1})
            await node.core.set(NS_MENTOR, "t2", "o1", "u1", {"v": 1})
        for _ in range(100):
            if transport.subscriber_count(settings.cache_invalidation_channel) == 2:
                break
            await asyncio.sleep(0.001)

        result = await node_a.admin.clear_cache(NS_MENTOR, "t1")
        assert result["removed"] == 2
        assert result["published"] is True
        await asyncio.sleep(0.01)

        counts_b = await node_b.core.entry_counts("t1")
        assert counts_b[NS_MENTOR] == 0
        assert await node_b.core.get(NS_MENTOR, "t2", "o1", "u1") == {"v": 1}
    finally:
        await node_a.stop()
        await node_b.stop()

"""Tests for PlatformConfigService (cached read, write-through update)."""

from unittest.mock import AsyncMock

import pytest

from app.core.cache_runtime import CacheRuntime
from app.domain.exceptions import CacheStoreException, ResourceNotFoundException
from app.infrastructure.services import PlatformConfigService


@pytest.fixture
def service(runtime: CacheRuntime) -> PlatformConfigService:
    return runtime.platform_config


async def test_get_loads_once_then_serves_from_cache(service: PlatformConfigService, sources) -> None:
    assert await service.get("t1", "o1") == {"theme": "dark"}
    assert await service.get("t1", "o1") == {"theme": "dark"}
    assert sources.organizations.reads == 1


async def test_get_unknown_organization(service: PlatformConfigService) -> None:
    with pytest.raises(ResourceNotFoundException):
        await service.get("t1", "ghost")


async def test_get_propagates_loader_failure(service: PlatformConfigService, sources) -> None:
    sources.organizations.fail_reads = True
    with pytest.raises(RuntimeError, match="database unavailable"):
        await service.get("t1", "o1")


async def test_update_commits_then_refreshes_and_publishes(
    service: PlatformConfigService, runtime: CacheRuntime, sources
) -> None:
    await service.get("t1", "o1")
    commits_seen_by_cache: list[int] = []
    original_set = runtime.core.set

    async def spy_set(*args, **kwargs):
        commits_seen_by_cache.append(sources.commits)
        return await original_set(*args, **kwargs)

    runtime.core.set = spy_set

    result = await service.update("t1", "o1", {"theme": "light", "chat": True})

    assert commits_seen_by_cache == [1]
    assert result.config == {"theme": "light", "chat": True}
    assert result.cache_refreshed is True
    assert result.publish.published is True
    payload = runtime.transport.published[-1][1]
    assert payload["scope"] == "key"
    assert payload["target"] == "platformConfig:t1:o1:_"
    assert await runtime.cache.platform_config.get("t1", "o1") == {
        "theme": "light",
        "chat": True,
    }


async def test_update_drops_cached_organization_snapshot(
    service: PlatformConfigService, runtime: CacheRuntime
) -> None:
    await runtime.admin.warm_up_cache("t1", "o1")
    assert await runtime.cache.organizations.get("t1", "o1") is not None

    await service.update("t1", "o1", {"theme": "light"})

    assert await runtime.cache.organizations.get("t1", "o1") is None
    targets = [payload["target"] for _, payload in runtime.transport.published]
    assert targets == ["organizations:t1:o1:_", "platformConfig:t1:o1:_"]

    await runtime.admin.warm_up_cache("t1", "o1")
    assert await runtime.cache.platform_config.get("t1", "o1") == {"theme": "light"}


async def test_update_unknown_organization_leaves_cache_alone(
    service: PlatformConfigService, runtime: CacheRuntime
) -> None:
    with pytest.raises(ResourceNotFoundException):
        await service.update("t1", "ghost", {"x": 1})
    assert runtime.transport.published == []


async def test_update_succeeds_when_publish_fails(
    service: PlatformConfigService, runtime: CacheRuntime, sources
) -> None:
    await runtime.transport.disconnect()
    result = await service.update("t1", "o1", {"theme": "light"})
    assert result.publish.published is False
    assert sources.organizations.rows[("t1", "o1")].platform_config == {"theme": "light"}


async def test_update_reports_failed_cache_refresh(
    service: PlatformConfigService, runtime: CacheRuntime, sources
) -> None:
    await service.get("t1", "o1")
    runtime.core.set = AsyncMock(side_effect=CacheStoreException("write", "k", "down"))
    result = await service.update("t1", "o1", {"theme": "light"})
    assert result.cache_refreshed is False
    # The stale entry was dropped; the next read re-loads the committed value.
    assert await service.get("t1", "o1") == {"theme": "light"}

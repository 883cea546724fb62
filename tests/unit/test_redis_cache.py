"""Tests for RedisCacheStore against a mocked redis.asyncio client."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis

from app.domain.exceptions import CacheStoreException
from app.infrastructure.cache.redis_cache import RedisCacheStore, escape_glob


def _client() -> AsyncMock:
    client = AsyncMock()
    client.get = AsyncMock(return_value='{"a": 1}')
    client.set = AsyncMock(return_value=True)
    client.setex = AsyncMock(return_value=True)
    client.unlink = AsyncMock(return_value=1)
    client.ping = AsyncMock(return_value=True)
    return client


async def test_read_returns_raw_payload() -> None:
    client = _client()
    store = RedisCacheStore(redis_client=client)
    assert await store.read("k") == '{"a": 1}'
    client.get.assert_awaited_once_with("k")


async def test_write_uses_setex_with_ttl_and_set_without() -> None:
    client = _client()
    store = RedisCacheStore(redis_client=client)
    await store.write("k", "v", 30)
    client.setex.assert_awaited_once_with("k", 30, "v")
    await store.write("k", "v", None)
    client.set.assert_awaited_once_with("k", "v")


async def test_delete_uses_unlink() -> None:
    client = _client()
    store = RedisCacheStore(redis_client=client)
    assert await store.delete("k") == 1
    client.unlink.assert_awaited_once_with("k")


async def test_delete_prefix_scans_and_unlinks() -> None:
    client = _client()

    async def scan_iter(match: str, count: int):
        assert match == "mentor:t1:*"
        for key in ("mentor:t1:o1:u1", "mentor:t1:o2:u2"):
            yield key

    client.scan_iter = scan_iter
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[2])
    pipeline_cm = MagicMock()
    pipeline_cm.__aenter__ = AsyncMock(return_value=pipe)
    pipeline_cm.__aexit__ = AsyncMock(return_value=False)
    client.pipeline = MagicMock(return_value=pipeline_cm)

    store = RedisCacheStore(redis_client=client)
    assert await store.delete_prefix("mentor:t1:") == 2
    pipe.unlink.assert_called_once_with("mentor:t1:o1:u1", "mentor:t1:o2:u2")


async def test_unavailable_store_raises_cache_store_exception(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    store = RedisCacheStore()
    monkeypatch.setattr(store, "connect", AsyncMock())
    with pytest.raises(CacheStoreException) as exc_info:
        await store.read("k")
    assert exc_info.value.details["reason"] == "redis unavailable"
    assert await store.ping() is False
    assert store.connect.await_count == 2


async def test_ping_reconnects_a_store_that_was_down(monkeypatch: pytest.MonkeyPatch) -> None:
    store = RedisCacheStore()
    client = _client()

    async def connect() -> None:
        store.redis = client
        store._connected = True

    monkeypatch.setattr(store, "connect", connect)
    assert await store.ping() is True
    assert store.is_available() is True


async def test_command_connects_a_store_that_was_down(monkeypatch: pytest.MonkeyPatch) -> None:
    store = RedisCacheStore()
    client = _client()

    async def connect() -> None:
        store.redis = client
        store._connected = True

    monkeypatch.setattr(store, "connect", connect)
    assert await store.read("k") == '{"a": 1}'
    assert store.is_available() is True


async def test_connect_retries_are_spaced_out(monkeypatch: pytest.MonkeyPatch) -> None:
    store = RedisCacheStore()
    monkeypatch.setattr(store, "connect", AsyncMock())
    for _ in range(3):
        with pytest.raises(CacheStoreException):
            await store.write("k", "v", 10)
    store.connect.assert_awaited_once()


async def test_command_error_is_wrapped() -> None:
    client = _client()
    client.setex = AsyncMock(side_effect=redis.ResponseError("OOM"))
    store = RedisCacheStore(redis_client=client)
    with pytest.raises(CacheStoreException) as exc_info:
        await store.write("k", "v", 10)
    assert exc_info.value.details["operation"] == "write"


async def test_connection_error_without_reconnect_is_wrapped() -> None:
    client = _client()
    client.get = AsyncMock(side_effect=redis.ConnectionError("gone"))
    store = RedisCacheStore(redis_client=client)
    # Reconnect builds a real client against localhost; make it fail fast.
    store.connect = AsyncMock()
    with pytest.raises(CacheStoreException):
        await store.read("k")
    assert store.is_available() is False


def test_escape_glob() -> None:
    assert escape_glob("a*b?[c]") == r"a\*b\?\[c\]"

"""Tests for RedisInvalidationTransport against a mocked redis.asyncio client."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis

from app.domain.exceptions import InvalidationTransportException
from app.infrastructure.messaging import RedisInvalidationTransport


def _pubsub(messages: list[dict]) -> MagicMock:
    pubsub = MagicMock()
    pubsub.subscribe = AsyncMock()
    pubsub.unsubscribe = AsyncMock()
    pubsub.aclose = AsyncMock()

    async def listen():
        for message in messages:
            yield message

    pubsub.listen = listen
    return pubsub


async def test_publish_serializes_json() -> None:
    client = MagicMock()
    client.publish = AsyncMock(return_value=2)
    transport = RedisInvalidationTransport(redis_client=client)
    await transport.publish("cache:invalidate", {"scope": "tenant", "target": "t1"})
    client.publish.assert_awaited_once_with(
        "cache:invalidate", json.dumps({"scope": "tenant", "target": "t1"})
    )


async def test_publish_failure_raises_transport_exception() -> None:
    client = MagicMock()
    client.publish = AsyncMock(side_effect=redis.ConnectionError("down"))
    transport = RedisInvalidationTransport(redis_client=client)
    with pytest.raises(InvalidationTransportException) as exc_info:
        await transport.publish("cache:invalidate", {})
    assert exc_info.value.details["channel"] == "cache:invalidate"


async def test_publish_without_connection_raises() -> None:
    transport = RedisInvalidationTransport()
    assert transport.is_available() is False
    with pytest.raises(InvalidationTransportException):
        await transport.publish("cache:invalidate", {})


async def test_subscribe_yields_objects_and_skips_noise() -> None:
    pubsub = _pubsub(
        [
            {"type": "subscribe", "data": 1},
            {"type": "message", "data": "{not json"},
            {"type": "message", "data": "[1, 2]"},
            {"type": "message", "data": json.dumps({"scope": "tenant", "target": "t1"})},
        ]
    )
    client = MagicMock()
    client.pubsub = MagicMock(return_value=pubsub)
    transport = RedisInvalidationTransport(redis_client=client)

    received = [payload async for payload in transport.subscribe("cache:invalidate")]

    assert received == [{"scope": "tenant", "target": "t1"}]
    pubsub.subscribe.assert_awaited_once_with("cache:invalidate")
    pubsub.unsubscribe.assert_awaited_once_with("cache:invalidate")
    pubsub.aclose.assert_awaited_once()


async def test_subscribe_without_connection_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    transport = RedisInvalidationTransport()
    monkeypatch.setattr(transport, "connect", AsyncMock())
    with pytest.raises(InvalidationTransportException):
        [p async for p in transport.subscribe("cache:invalidate")]
    transport.connect.assert_awaited_once()


async def test_subscribe_connection_lost_raises_and_closes_pubsub() -> None:
    pubsub = _pubsub([])

    async def listen():
        yield {"type": "message", "data": json.dumps({"scope": "tenant", "target": "t1"})}
        raise redis.ConnectionError("connection reset")

    pubsub.listen = listen
    client = MagicMock()
    client.pubsub = MagicMock(return_value=pubsub)
    transport = RedisInvalidationTransport(redis_client=client)

    received = []
    with pytest.raises(InvalidationTransportException) as exc_info:
        async for payload in transport.subscribe("cache:invalidate"):
            received.append(payload)

    assert received == [{"scope": "tenant", "target": "t1"}]
    assert exc_info.value.details["reason"] == "connection reset"
    pubsub.aclose.assert_awaited_once()

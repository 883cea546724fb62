"""Tests for InvalidationEvent, InvalidationBus and the in-memory transport."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from app.core.constants import NS_MENTEE, NS_MENTOR, NS_PLATFORM_CONFIG
from app.domain.enums import InvalidationScope
from app.domain.exceptions import InvalidationTransportException, ValidationException
from app.infrastructure.cache import CacheCore, InMemoryCacheStore
from app.infrastructure.messaging import (
    InMemoryInvalidationTransport,
    InvalidationBus,
    InvalidationEvent,
)

CHANNEL = "cache:invalidate"


async def _wait_for_subscriber(transport: InMemoryInvalidationTransport, count: int = 1) -> None:
    for _ in range(100):
        if transport.subscriber_count(CHANNEL) >= count:
            return
        await asyncio.sleep(0.001)
    raise AssertionError("subscriber never registered")


async def _drain() -> None:
    await asyncio.sleep(0.01)


# ---- events ----------------------------------------------------------------


def test_key_event_target_is_physical_key() -> None:
    event = InvalidationEvent.for_key(NS_MENTOR, "t1", "o1", "u42")
    assert event.target == "mentor:t1:o1:u42"
    assert event.to_dict()["scope"] == "key"


def test_event_round_trips_through_dict() -> None:
    event = InvalidationEvent.for_namespace(NS_MENTOR, "t1", origin="node-a")
    parsed = InvalidationEvent.from_dict(event.to_dict())
    assert parsed == event


@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        (
            {"scope": "key", "target": "platformConfig:t1:o1:_"},
            (NS_PLATFORM_CONFIG, "t1", "o1", None),
        ),
        ({"scope": "namespace", "target": "mentor"}, ("mentor", None, None, None)),
        ({"scope": "tenant", "target": "t1"}, (None, "t1", None, None)),
    ],
)
def test_bare_scope_target_payload_accepted(payload: dict, expected: tuple) -> None:
    event = InvalidationEvent.from_dict(payload)
    assert (
        event.namespace,
        event.tenant_code,
        event.organization_code,
        event.entity_id,
    ) == expected


@pytest.mark.parametrize(
    "payload",
    [
        {"scope": "galaxy", "target": "x"},
        {"scope": "key", "target": "mentor:t1"},
        {"scope": "tenant", "target": "t1:o1"},
        {"scope": "namespace"},
        {"scope": "tenant", "organization_code": "o1"},
        {"scope": "namespace", "namespace": "mentor", "entity_id": "u1"},
    ],
)
def test_malformed_payloads_rejected(payload: dict) -> None:
    with pytest.raises(ValidationException):
        InvalidationEvent.from_dict(payload)


# ---- bus -------------------------------------------------------------------


async def test_publish_stamps_origin(bus: InvalidationBus, transport) -> None:
    result = await bus.publish_invalidation(InvalidationEvent.for_tenant("t1"))
    assert result.published is True
    channel, payload = transport.published[0]
    assert channel == CHANNEL
    assert payload["origin"] == "node-a"
    assert payload["event_id"] == result.event_id


async def test_publish_failure_is_reported_not_raised(bus: InvalidationBus, transport) -> None:
    await transport.disconnect()
    result = await bus.publish_invalidation(InvalidationEvent.for_tenant("t1"))
    assert result.published is False
    assert result.error == "transport closed"
    assert bus.publish_failures == 1


async def test_transport_publish_raises_when_closed() -> None:
    transport = InMemoryInvalidationTransport()
    await transport.disconnect()
    with pytest.raises(InvalidationTransportException):
        await transport.publish(CHANNEL, {"scope": "tenant", "target": "t1"})


async def test_received_event_applied_and_idempotent(core: CacheCore, bus: InvalidationBus) -> None:
    """Processing the same event twice leaves the same state as once."""
    await core.set(NS_MENTOR, "t1", "o1", "u1", {"v": 1})
    await core.set(NS_MENTOR, "t1", "o1", "u2", {"v": 2})
    payload = InvalidationEvent.for_key(NS_MENTOR, "t1", "o1", "u1").to_dict()

    assert await bus.on_invalidation_received(payload) == 1
    state_once = await core.entry_counts("t1")
    assert await bus.on_invalidation_received(payload) == 0
    assert await core.entry_counts("t1") == state_once
    assert await core.get(NS_MENTOR, "t1", "o1", "u2") == {"v": 2}


async def test_malformed_payload_ignored(bus: InvalidationBus) -> None:
    assert await bus.on_invalidation_received({"scope": "nope"}) == 0
    assert await bus.on_invalidation_received({"scope": "namespace", "target": "reports"}) == 0
    assert bus.rejected == 2
    assert bus.received == 2


@pytest.mark.parametrize(
    "payload",
    [
        {"scope": "tenant", "tenant_code": 7},
        {"scope": "key", "namespace": NS_MENTOR, "tenant_code": ["t1"]},
        {"scope": "key", "namespace": NS_MENTOR, "tenant_code": "t1", "entity_id": 1.5},
        {"scope": "tenant", "target": "t1", "origin": 3},
    ],
)
def test_mistyped_payload_fields_rejected(payload: dict) -> None:
    with pytest.raises(ValidationException):
        InvalidationEvent.from_dict(payload)


def test_integer_entity_id_keyed_as_string() -> None:
    event = InvalidationEvent.from_dict(
        {"scope": "key", "namespace": NS_MENTOR, "tenant_code": "t1", "organization_code": "o1", "entity_id": 42}
    )
    assert event.entity_id == "42"
    assert event.target == "mentor:t1:o1:42"


async def test_unexpected_apply_error_is_logged_and_counted(
    bus: InvalidationBus, core: CacheCore, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(core, "invalidate_scope", AsyncMock(side_effect=RuntimeError("boom")))
    assert await bus.on_invalidation_received({"scope": "tenant", "target": "t1"}) == 0
    assert bus.apply_failures == 1


async def test_listener_survives_mistyped_payloads(core: CacheCore) -> None:
    """A bad payload on the shared channel never stops later events from being applied."""
    transport = InMemoryInvalidationTransport()
    bus = InvalidationBus(core, transport, CHANNEL)
    await core.set(NS_MENTOR, "t1", "o1", "42", {"v": 1})
    await core.set(NS_MENTOR, "t1", "o1", "u2", {"v": 2})

    listener = asyncio.create_task(bus.listen())
    await _wait_for_subscriber(transport)
    await transport.publish(CHANNEL, {"scope": "tenant", "tenant_code": 7})
    await transport.publish(
        CHANNEL,
        {"scope": "key", "namespace": NS_MENTOR, "tenant_code": "t1", "organization_code": "o1", "entity_id": 42},
    )
    await transport.publish(CHANNEL, InvalidationEvent.for_key(NS_MENTOR, "t1", "o1", "u2").to_dict())
    await _drain()

    assert not listener.done()
    assert bus.rejected == 1
    assert await core.get(NS_MENTOR, "t1", "o1", "42") is None
    assert await core.get(NS_MENTOR, "t1", "o1", "u2") is None

    listener.cancel()
    with pytest.raises(asyncio.CancelledError):
        await listener
    assert bus.listener_exited is False


async def test_namespace_event_scoped_to_tenant(core: CacheCore, bus: InvalidationBus) -> None:
    await core.set(NS_MENTOR, "t1", "o1", "u1", {"v": 1})
    await core.set(NS_MENTOR, "t2", "o1", "u1", {"v": 1})
    await core.set(NS_MENTEE, "t1", "o1", "u1", {"v": 1})
    event = InvalidationEvent.for_namespace(NS_MENTOR, "t1")
    assert await bus.apply(event) == 1
    assert await core.get(NS_MENTOR, "t2", "o1", "u1") == {"v": 1}
    assert await core.get(NS_MENTEE, "t1", "o1", "u1") == {"v": 1}


async def test_listener_applies_events_from_other_instance(registry) -> None:
    """Two cores sharing one transport stand in for two service instances."""
    transport = InMemoryInvalidationTransport()
    store_a, store_b = InMemoryCacheStore(), InMemoryCacheStore()
    core_a = CacheCore(registry, store_a, store_a)
    core_b = CacheCore(registry, store_b, store_b)
    bus_a = InvalidationBus(core_a, transport, CHANNEL, origin="a")
    bus_b = InvalidationBus(core_b, transport, CHANNEL, origin="b")
    await core_b.set(NS_MENTOR, "t1", "o1", "u1", {"v": 1})

    listener = asyncio.create_task(bus_b.listen())
    await _wait_for_subscriber(transport)
    await bus_a.publish_invalidation(InvalidationEvent.for_key(NS_MENTOR, "t1", "o1", "u1"))
    await _drain()

    assert await core_b.get(NS_MENTOR, "t1", "o1", "u1") is None
    assert bus_b.received == 1

    listener.cancel()
    with pytest.raises(asyncio.CancelledError):
        await listener


async def test_listener_ends_when_transport_disconnects(bus: InvalidationBus, transport) -> None:
    listener = asyncio.create_task(bus.listen())
    await _wait_for_subscriber(transport)
    await transport.disconnect()
    await asyncio.wait_for(listener, timeout=1)
    assert transport.subscriber_count(CHANNEL) == 0


class FlakyTransport(InMemoryInvalidationTransport):
    """First subscription fails; the second delivers the queued payloads and ends."""

    def __init__(self, payloads: list[dict]) -> None:
        super().__init__()
        self.payloads = payloads
        self.attempts = 0

    async def subscribe(self, channel: str):
        self.attempts += 1
        if self.attempts == 1:
            raise InvalidationTransportException(channel, "connection reset")
        for payload in self.payloads:
            yield payload


async def test_listener_resubscribes_after_lost_subscription(core: CacheCore) -> None:
    await core.set(NS_MENTOR, "t1", "o1", "u1", {"v": 1})
    transport = FlakyTransport([InvalidationEvent.for_key(NS_MENTOR, "t1", "o1", "u1").to_dict()])
    bus = InvalidationBus(core, transport, CHANNEL, retry_delay=0)

    await asyncio.wait_for(bus.listen(), timeout=1)

    assert transport.attempts == 2
    assert bus.subscription_failures == 1
    assert await core.get(NS_MENTOR, "t1", "o1", "u1") is None


def test_scope_values() -> None:
    assert InvalidationScope.values() == ["key", "namespace", "tenant"]

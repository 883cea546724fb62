"""Messaging: cache invalidation bus and its pub/sub transports.

Redis pub/sub carries invalidation events between service instances; the
in-memory transport serves single-instance deployments and tests.
"""

from app.infrastructure.messaging.invalidation import (
    InvalidationBus,
    InvalidationEvent,
    PublishResult,
)
from app.infrastructure.messaging.memory_bus import InMemoryInvalidationTransport
from app.infrastructure.messaging.redis_pubsub import RedisInvalidationTransport
from app.infrastructure.messaging.transport_protocol import InvalidationTransportProtocol

__all__ = [
    "InMemoryInvalidationTransport",
    "InvalidationBus",
    "InvalidationEvent",
    "InvalidationTransportProtocol",
    "PublishResult",
    "RedisInvalidationTransport",
]

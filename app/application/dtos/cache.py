"""DTOs for cache invalidation and admin operations."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PublishResult:
    """Outcome of a best-effort invalidation publish, separate from the triggering write."""

    published: bool
    event_id: str
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"published": self.published, "event_id": self.event_id, "error": self.error}


@dataclass(frozen=True)
class InvalidationOutcome:
    """Local removal count plus the separate best-effort publish result.

    A failed publish means other instances may serve stale entries until
    TTL; it never means the local invalidation or the triggering write failed.
    """

    removed: int
    publishes: tuple[PublishResult, ...]

    @property
    def published(self) -> bool:
        return all(p.published for p in self.publishes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "removed": self.removed,
            "published": self.published,
            "events": [p.to_dict() for p in self.publishes],
        }


@dataclass(frozen=True)
class PlatformConfigUpdateResult:
    """Result of a platform config write-through.

    config is the committed value. cache_refreshed is False when the local
    cache write failed (the committed value is served after the next miss).
    """

    config: dict[str, Any]
    cache_refreshed: bool
    publish: PublishResult


@dataclass
class WarmUpResult:
    """Per-namespace counts of warmed and failed entries."""

    tenant_code: str
    organizations: list[str] = field(default_factory=list)
    loaded: dict[str, int] = field(default_factory=dict)
    failed: dict[str, int] = field(default_factory=dict)

    def record(self, namespace: str, ok: bool) -> None:
        bucket = self.loaded if ok else self.failed
        bucket[namespace] = bucket.get(namespace, 0) + 1

"""Cache admin API schemas."""

from typing import Any

from pydantic import BaseModel, Field


class NamespaceStatsResponse(BaseModel):
    """Counters for one namespace on the answering instance."""

    hits: int
    negative_hits: int
    misses: int
    sets: int
    loads: int
    load_failures: int
    invalidations: int
    errors: int
    hit_rate: float


class CacheScope(BaseModel):
    tenant_code: str
    organization_code: str | None = None


class CacheStatsResponse(BaseModel):
    """Response for GET /cache/stats. Counters are per instance."""

    enabled: bool
    generated_at: str
    namespaces: dict[str, NamespaceStatsResponse]
    bus: dict[str, int]
    scope: CacheScope | None = None
    entries: dict[str, int | None] | None = Field(
        default=None,
        description="Live entry counts per namespace in scope (null where the store failed)",
    )


class PublishResultResponse(BaseModel):
    published: bool
    event_id: str
    error: str | None = None


class CacheClearResponse(BaseModel):
    """Response for POST /cache/clear.

    removed counts entries evicted on the answering instance; published
    tells whether the other instances were notified.
    """

    namespace: str | None
    tenant_code: str | None
    organization_code: str | None
    removed: int
    published: bool
    events: list[PublishResultResponse]


class CacheWarmupResponse(BaseModel):
    """Response for POST /cache/warmup."""

    tenant_code: str
    organizations: list[str]
    loaded: dict[str, int]
    failed: dict[str, int]


class CacheHealthResponse(BaseModel):
    """Response for GET /cache/health."""

    status: str = Field(..., description="healthy, degraded, unhealthy or disabled")
    enabled: bool
    stores: dict[str, dict[str, Any]]
    bus: dict[str, Any]
    namespaces: dict[str, dict[str, Any]]
    checked_at: str

"""Pydantic request/response schemas for the API."""

from app.schemas.cache import (
    CacheClearResponse,
    CacheHealthResponse,
    CacheStatsResponse,
    CacheWarmupResponse,
)
from app.schemas.health import HealthResponse, ReadinessErrorResponse, ReadinessResponse
from app.schemas.platform_config import (
    PlatformConfigResponse,
    PlatformConfigUpdateRequest,
    PlatformConfigUpdateResponse,
)

__all__ = [
    "CacheClearResponse",
    "CacheHealthResponse",
    "CacheStatsResponse",
    "CacheWarmupResponse",
    "HealthResponse",
    "PlatformConfigResponse",
    "PlatformConfigUpdateRequest",
    "PlatformConfigUpdateResponse",
    "ReadinessErrorResponse",
    "ReadinessResponse",
]

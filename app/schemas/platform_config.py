"""Platform config API schemas."""

from typing import Any

from pydantic import BaseModel, Field

from app.schemas.cache import PublishResultResponse


class PlatformConfigResponse(BaseModel):
    """Platform config of one organization."""

    tenant_code: str
    organization_code: str
    config: dict[str, Any]


class PlatformConfigUpdateRequest(BaseModel):
    """Request body for PUT /platform-config (replaces the whole config)."""

    config: dict[str, Any] = Field(..., description="New platform config object")


class PlatformConfigUpdateResponse(PlatformConfigResponse):
    """Committed config plus cache refresh and invalidation publish outcome."""

    cache_refreshed: bool
    publish: PublishResultResponse

"""Platform config API: cached read and write-through update."""

from fastapi import APIRouter, Depends, Query, Request

from app.api.v1.dependencies import get_platform_config_service
from app.core.limiter import limit_writes
from app.infrastructure.services import PlatformConfigService
from app.schemas.cache import PublishResultResponse
from app.schemas.platform_config import (
    PlatformConfigResponse,
    PlatformConfigUpdateRequest,
    PlatformConfigUpdateResponse,
)

router = APIRouter()


@router.get("", response_model=PlatformConfigResponse)
async def get_platform_config(
    tenant_code: str = Query(..., min_length=1, max_length=255),
    org_code: str = Query(..., min_length=1, max_length=255),
    service: PlatformConfigService = Depends(get_platform_config_service),
):
    """Return the organization's platform config (cached)."""
    config = await service.get(tenant_code, org_code)
    return PlatformConfigResponse(
        tenant_code=tenant_code, organization_code=org_code, config=config
    )


@router.put("", response_model=PlatformConfigUpdateResponse)
@limit_writes
async def update_platform_config(
    request: Request,
    body: PlatformConfigUpdateRequest,
    tenant_code: str = Query(..., min_length=1, max_length=255),
    org_code: str = Query(..., min_length=1, max_length=255),
    service: PlatformConfigService = Depends(get_platform_config_service),
):
    """Replace the platform config, refresh the cache and notify other instances.

    The update succeeds once the database commit succeeds; a failed cache
    refresh or publish is reported in the response, not as an error.
    """
    result = await service.update(tenant_code, org_code, body.config)
    return PlatformConfigUpdateResponse(
        tenant_code=tenant_code,
        organization_code=org_code,
        config=result.config,
        cache_refreshed=result.cache_refreshed,
        publish=PublishResultResponse(**result.publish.to_dict()),
    )

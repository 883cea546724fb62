"""Cache admin API: statistics, health, scoped clear and warm-up.

Thin routes delegating to CacheAdminService. Counters and entry counts are
those of the instance answering the request; clear reaches every instance
through the invalidation bus.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request

from app.api.v1.dependencies import get_cache_admin, require_admin_key
from app.core.limiter import limit_admin_reads, limit_cache_clear, limit_cache_warmup
from app.domain.exceptions import ValidationException
from app.infrastructure.services import CacheAdminService
from app.schemas.cache import (
    CacheClearResponse,
    CacheHealthResponse,
    CacheStatsResponse,
    CacheWarmupResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin_key)])

_TENANT_QUERY = Query(None, min_length=1, max_length=255, description="Tenant code")
_ORG_QUERY = Query(None, min_length=1, max_length=255, description="Organization code")


def _require_tenant_for_org(tenant_code: str | None, org_id: str | None) -> None:
    if org_id is not None and tenant_code is None:
        raise ValidationException("org_id requires tenant_code", field="org_id")


@router.get("/stats", response_model=CacheStatsResponse)
@limit_admin_reads
async def get_cache_stats(
    request: Request,
    tenant_code: str | None = _TENANT_QUERY,
    org_id: str | None = _ORG_QUERY,
    admin: CacheAdminService = Depends(get_cache_admin),
):
    """Per-namespace counters; entry counts when tenant_code is given."""
    _require_tenant_for_org(tenant_code, org_id)
    return await admin.get_cache_stats(tenant_code, org_id)


@router.get("/health", response_model=CacheHealthResponse)
@limit_admin_reads
async def get_cache_health(
    request: Request,
    admin: CacheAdminService = Depends(get_cache_admin),
):
    """Store reachability, bus availability and namespace configuration."""
    return await admin.get_cache_health()


@router.post("/clear", response_model=CacheClearResponse)
@limit_cache_clear
async def clear_cache(
    request: Request,
    namespace: str | None = Query(
        None, min_length=1, max_length=255, description="Registered namespace name"
    ),
    tenant_code: str | None = _TENANT_QUERY,
    org_id: str | None = _ORG_QUERY,
    admin: CacheAdminService = Depends(get_cache_admin),
):
    """Clear a scope on every instance.

    No parameters clears everything. Unknown namespace returns 400.
    """
    _require_tenant_for_org(tenant_code, org_id)
    return await admin.clear_cache(namespace, tenant_code, org_id)


@router.post("/warmup", response_model=CacheWarmupResponse)
@limit_cache_warmup
async def warm_up_cache(
    request: Request,
    tenant_code: str | None = _TENANT_QUERY,
    org_id: str | None = _ORG_QUERY,
    admin: CacheAdminService = Depends(get_cache_admin),
):
    """Load the tenant's (or one organization's) configuration into the cache."""
    if tenant_code is None:
        raise ValidationException("tenant_code is required for warm-up", field="tenant_code")
    result = await admin.warm_up_cache(tenant_code, org_id)
    return CacheWarmupResponse(
        tenant_code=result.tenant_code,
        organizations=result.organizations,
        loaded=result.loaded,
        failed=result.failed,
    )

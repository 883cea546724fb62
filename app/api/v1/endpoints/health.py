"""Health check endpoints: liveness and readiness probes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.domain.enums import CacheHealthStatus
from app.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={
        503: {
            "description": "Not ready (cache not started or primary store unreachable)",
            "model": ReadinessErrorResponse,
        }
    },
)
async def readiness_check(request: Request) -> ReadinessResponse | JSONResponse:
    """Return 200 while the primary cache store is reachable; 503 otherwise.

    A degraded cache (local store or invalidation bus down) is still ready:
    reads fall back to the authoritative sources.
    """
    admin = getattr(request.app.state, "cache_admin", None)
    if admin is None:
        return _not_ready("Cache runtime not started")
    health = await admin.get_cache_health()
    if health["status"] == CacheHealthStatus.UNHEALTHY.value:
        return _not_ready("Primary cache store unreachable")
    return ReadinessResponse(cache=health["status"])


def _not_ready(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content=ReadinessErrorResponse(status="not_ready", message=message).model_dump(),
    )

"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags. All routes
use dependencies from app.api.v1.dependencies.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import cache, health, platform_config

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(cache.router, prefix="/cache", tags=["cache"])
api_router.include_router(
    platform_config.router, prefix="/platform-config", tags=["platform-config"]
)

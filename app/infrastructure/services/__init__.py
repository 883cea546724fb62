"""Infrastructure services: cache invalidation, cache admin and platform config."""

from app.infrastructure.services.cache_admin_service import CacheAdminService
from app.infrastructure.services.cache_invalidation_service import CacheInvalidationService
from app.infrastructure.services.platform_config_service import PlatformConfigService

__all__ = [
    "CacheAdminService",
    "CacheInvalidationService",
    "PlatformConfigService",
]

"""Presentation-layer dependency injection.

The cache object graph is built once per process by the lifespan
(app.core.cache_runtime) and attached to app.state; these dependencies only
read it back. Routes depend on these functions, never on app.state directly.
"""

from __future__ import annotations

import hmac

from fastapi import Request

from app.core.config import get_settings
from app.domain.exceptions import AuthenticationException, CacheUnavailableException
from app.infrastructure.services import CacheAdminService, PlatformConfigService


def _from_state(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise CacheUnavailableException()
    return service


def get_cache_admin(request: Request) -> CacheAdminService:
    """Return the cache admin service. 503 before startup has completed."""
    return _from_state(request, "cache_admin")


def get_platform_config_service(request: Request) -> PlatformConfigService:
    return _from_state(request, "platform_config_service")


def require_admin_key(request: Request) -> None:
    """Check the admin key header when ADMIN_API_KEY is configured.

    Raises:
        AuthenticationException: If the header is missing or does not match.
    """
    settings = get_settings()
    if settings.admin_api_key is None:
        return
    provided = request.headers.get(settings.admin_api_key_header)
    expected = settings.admin_api_key.get_secret_value()
    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        raise AuthenticationException("Invalid or missing admin key")


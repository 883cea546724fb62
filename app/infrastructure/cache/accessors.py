"""Typed per-namespace accessors over the generic cache core.

Thin wrappers for call-site ergonomics (cache.mentor.get_cache_only(...),
cache.platform_config.get(...)). They only build entity ids and apply small
namespace rules (session TTL from end date, profile sanitizing); all cache
logic stays in CacheCore.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from app.core.constants import (
    CACHE_KEY_SEP,
    NS_API_PERMISSIONS,
    NS_DISPLAY_PROPERTIES,
    NS_ENTITY_TYPES,
    NS_FORMS,
    NS_MENTEE,
    NS_MENTOR,
    NS_NOTIFICATION_TEMPLATES,
    NS_ORGANIZATIONS,
    NS_PERMISSIONS,
    NS_PLATFORM_CONFIG,
    NS_SESSIONS,
    ONE_DAY_SECONDS,
)
from app.domain.exceptions import CacheStoreException
from app.infrastructure.cache.cache_core import CacheCore, Loader
from app.shared.utils.datetime import ensure_utc, from_timestamp_utc, utc_now

logger = logging.getLogger(__name__)

BatchLoader = Callable[[list[str]], Awaitable[list[dict[str, Any]]]]


def composite_id(*parts: str) -> str:
    """Join entity id parts with ':' (the entity id may contain the separator)."""
    return CACHE_KEY_SEP.join(str(p) for p in parts)


class NamespaceCache:
    """Cache operations bound to one namespace."""

    def __init__(self, core: CacheCore, namespace: str) -> None:
        core.registry.get(namespace)
        self.core = core
        self.namespace = namespace

    async def get(
        self, tenant_code: str, organization_code: str | None, entity_id: str | None = None
    ) -> Any | None:
        return await self.core.get(self.namespace, tenant_code, organization_code, entity_id)

    async def get_cache_only(
        self, tenant_code: str, organization_code: str | None, entity_id: str | None = None
    ) -> Any | None:
        return await self.core.get_cache_only(
            self.namespace, tenant_code, organization_code, entity_id
        )

    async def get_or_load(
        self,
        tenant_code: str,
        organization_code: str | None,
        entity_id: str | None,
        loader: Loader,
        ttl: int | None = None,
    ) -> Any | None:
        return await self.core.get_or_load(
            self.namespace, tenant_code, organization_code, entity_id, loader, ttl
        )

    async def set(
        self,
        tenant_code: str,
        organization_code: str | None,
        entity_id: str | None,
        value: Any,
        ttl: int | None = None,
    ) -> None:
        await self.core.set(
            self.namespace, tenant_code, organization_code, entity_id, value, ttl
        )

    async def delete(
        self, tenant_code: str, organization_code: str | None, entity_id: str | None = None
    ) -> int:
        """Remove one entry (or the whole slot when entity_id is None)."""
        return await self.core.invalidate(
            self.namespace, tenant_code, organization_code, entity_id
        )

    async def clear(self, tenant_code: str, organization_code: str | None = None) -> int:
        """Remove every entry of this namespace for a tenant (optionally one organization)."""
        return await self.core.invalidate_scope(self.namespace, tenant_code, organization_code)


def _end_date_to_datetime(end_date: Any) -> datetime | None:
    """Parse a session end_date given as epoch seconds or ISO-8601 string."""
    if end_date is None or end_date == "":
        return None
    if isinstance(end_date, datetime):
        return ensure_utc(end_date)
    try:
        return from_timestamp_utc(int(end_date))
    except (TypeError, ValueError, OverflowError, OSError):
        pass
    try:
        parsed = datetime.fromisoformat(str(end_date))
    except ValueError:
        logger.debug("Unparseable session end_date %r; using default TTL", end_date)
        return None
    return ensure_utc(parsed)


class SessionCache(NamespaceCache):
    """Sessions expire one day after their end date unless a TTL is given."""

    def __init__(self, core: CacheCore) -> None:
        super().__init__(core, NS_SESSIONS)

    @staticmethod
    def ttl_for(session: dict[str, Any], now: datetime | None = None) -> int:
        """Seconds until one day after session end_date; one day when unknown or past."""
        end = _end_date_to_datetime(session.get("end_date"))
        if end is None:
            return ONE_DAY_SECONDS
        remaining = int((end - (now or utc_now())).total_seconds()) + ONE_DAY_SECONDS
        return remaining if remaining > 0 else ONE_DAY_SECONDS

    async def set(
        self,
        tenant_code: str,
        organization_code: str | None,
        entity_id: str | None,
        value: Any,
        ttl: int | None = None,
    ) -> None:
        if ttl is None and isinstance(value, dict):
            ttl = self.ttl_for(value)
        await super().set(tenant_code, organization_code, entity_id, value, ttl)


class UserProfileCache(NamespaceCache):
    """Mentor / mentee profiles. Expiring download links are not cached."""

    @staticmethod
    def sanitize(profile: dict[str, Any]) -> dict[str, Any]:
        sanitized = dict(profile)
        image = sanitized.get("image")
        if isinstance(image, str) and "download" in image:
            del sanitized["image"]
        return sanitized

    async def set(
        self,
        tenant_code: str,
        organization_code: str | None,
        entity_id: str | None,
        value: Any,
        ttl: int | None = None,
    ) -> None:
        if isinstance(value, dict):
            value = self.sanitize(value)
        await super().set(tenant_code, organization_code, entity_id, value, ttl)

    async def get_or_load(
        self,
        tenant_code: str,
        organization_code: str | None,
        entity_id: str | None,
        loader: Loader,
        ttl: int | None = None,
    ) -> Any | None:
        async def _sanitized() -> Any:
            value = await loader()
            return self.sanitize(value) if isinstance(value, dict) else value

        return await super().get_or_load(
            tenant_code, organization_code, entity_id, _sanitized, ttl
        )

    async def get_many(
        self,
        tenant_code: str,
        organization_code: str | None,
        user_ids: list[str | int],
        loader: BatchLoader,
        id_field: str = "user_id",
    ) -> list[dict[str, Any]]:
        """Return profiles for user_ids, loading every cache miss in one batch.

        loader receives the missing ids (as strings) and returns profile dicts
        carrying id_field. Loaded profiles are sanitized and cached; a failed
        cache write is logged and the profile is still returned. Ids the
        loader does not return are omitted. Results follow user_ids order.

        Raises:
            Whatever loader raises.
        """
        ids = list(dict.fromkeys(str(user_id) for user_id in user_ids))
        found: dict[str, Any] = {}
        missing: list[str] = []
        for user_id in ids:
            cached = await self.get_cache_only(tenant_code, organization_code, user_id)
            if cached is not None:
                found[user_id] = cached
            else:
                missing.append(user_id)

        if missing:
            for profile in await loader(missing):
                user_id = profile.get(id_field)
                if user_id is None:
                    continue
                user_id = str(user_id)
                found[user_id] = self.sanitize(profile)
                try:
                    await self.set(tenant_code, organization_code, user_id, profile)
                except CacheStoreException as e:
                    logger.warning(
                        "Profile cache write failed for %s: %s", user_id, e.details.get("reason")
                    )
            logger.debug(
                "Profile batch %s: %d cached, %d loaded",
                self.namespace,
                len(ids) - len(missing),
                len(missing),
            )
        return [found[user_id] for user_id in ids if user_id in found]


class OrganizationSingletonCache(NamespaceCache):
    """Namespaces with one entry per organization and no entity id."""

    async def get(
        self, tenant_code: str, organization_code: str | None, entity_id: str | None = None
    ) -> Any | None:
        return await super().get(tenant_code, organization_code, None)

    async def fetch(self, tenant_code: str, organization_code: str, loader: Loader) -> Any | None:
        return await self.get_or_load(tenant_code, organization_code, None, loader)

    async def put(self, tenant_code: str, organization_code: str, value: Any) -> None:
        await self.set(tenant_code, organization_code, None, value)


class DisplayPropertiesCache(OrganizationSingletonCache):
    """Display properties fall back from the organization entry to the tenant-level entry."""

    def __init__(self, core: CacheCore) -> None:
        super().__init__(core, NS_DISPLAY_PROPERTIES)

    async def get(
        self, tenant_code: str, organization_code: str | None, entity_id: str | None = None
    ) -> Any | None:
        if organization_code is not None:
            value = await super().get(tenant_code, organization_code)
            if value is not None:
                return value
        return await super().get(tenant_code, None)

    async def delete(
        self, tenant_code: str, organization_code: str | None, entity_id: str | None = None
    ) -> int:
        """Remove the organization entry and the tenant-level entry."""
        removed = await self.core.invalidate(self.namespace, tenant_code, organization_code)
        if organization_code is not None:
            removed += await self.core.invalidate(self.namespace, tenant_code, None)
        return removed


class EntityTypeCache(NamespaceCache):
    """Entity types keyed by model name and entity value."""

    def __init__(self, core: CacheCore) -> None:
        super().__init__(core, NS_ENTITY_TYPES)

    @staticmethod
    def entity_id(model_name: str, value: str) -> str:
        return composite_id(model_name, value)


class FormCache(NamespaceCache):
    """Forms keyed by type and subtype."""

    def __init__(self, core: CacheCore) -> None:
        super().__init__(core, NS_FORMS)

    @staticmethod
    def entity_id(form_type: str, subtype: str) -> str:
        return composite_id(form_type, subtype)


class ApiPermissionsCache(NamespaceCache):
    """Allowed request types per (role, module, api path)."""

    def __init__(self, core: CacheCore) -> None:
        super().__init__(core, NS_API_PERMISSIONS)

    @staticmethod
    def entity_id(role: str, module: str, api_path: str) -> str:
        return composite_id(role, module, api_path)

    async def get_multiple_roles(
        self,
        tenant_code: str,
        organization_code: str | None,
        roles: list[str],
        module: str,
        api_paths: list[str],
    ) -> list[dict[str, Any]]:
        """Collect cached permissions for every (role, api path); misses are skipped."""
        permissions: list[dict[str, Any]] = []
        for role in roles:
            for api_path in api_paths:
                cached = await self.get_cache_only(
                    tenant_code, organization_code, self.entity_id(role, module, api_path)
                )
                if cached and cached.get("request_type"):
                    permissions.append(
                        {
                            "request_type": cached["request_type"],
                            "api_path": api_path,
                            "module": module,
                            "role_title": role,
                        }
                    )
        return permissions


class CacheHelper:
    """One accessor per registered namespace, sharing a single CacheCore."""

    def __init__(self, core: CacheCore) -> None:
        self.core = core
        self.sessions = SessionCache(core)
        self.entity_types = EntityTypeCache(core)
        self.forms = FormCache(core)
        self.organizations = OrganizationSingletonCache(core, NS_ORGANIZATIONS)
        self.mentor = UserProfileCache(core, NS_MENTOR)
        self.mentee = UserProfileCache(core, NS_MENTEE)
        self.platform_config = OrganizationSingletonCache(core, NS_PLATFORM_CONFIG)
        self.notification_templates = NamespaceCache(core, NS_NOTIFICATION_TEMPLATES)
        self.display_properties = DisplayPropertiesCache(core)
        self.permissions = NamespaceCache(core, NS_PERMISSIONS)
        self.api_permissions = ApiPermissionsCache(core)

"""Namespace registry: the fixed set of cache namespaces and their policies.

Built once at startup by build_registry(settings) and passed to the cache
core; read-only afterwards. Referencing an unregistered namespace raises
UnknownNamespaceException (a configuration error, not a cache miss).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import replace
from types import MappingProxyType

from app.core.config import Settings
from app.core.constants import (
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
    ONE_HOUR_SECONDS,
)
from app.domain.exceptions import CacheConfigurationException, UnknownNamespaceException
from app.domain.value_objects import NamespaceSpec

logger = logging.getLogger(__name__)

# Configuration changes rarely: one day. User profiles change through external
# sync events: one hour. Permissions never expire and are always invalidated
# explicitly when role mappings change.
DEFAULT_NAMESPACES: tuple[NamespaceSpec, ...] = (
    NamespaceSpec(NS_SESSIONS, "sessions:{tenant}:{org}:{session_id}", ONE_DAY_SECONDS),
    NamespaceSpec(
        NS_ENTITY_TYPES, "entityTypes:{tenant}:{org}:{model}:{value}", ONE_DAY_SECONDS
    ),
    NamespaceSpec(NS_FORMS, "forms:{tenant}:{org}:{type}:{subtype}", ONE_DAY_SECONDS),
    NamespaceSpec(
        NS_ORGANIZATIONS,
        "organizations:{tenant}:{org}:_",
        ONE_DAY_SECONDS,
        allow_negative_caching=True,
    ),
    NamespaceSpec(
        NS_MENTOR,
        "mentor:{tenant}:{org}:{user_id}",
        ONE_HOUR_SECONDS,
        allow_negative_caching=True,
    ),
    NamespaceSpec(
        NS_MENTEE,
        "mentee:{tenant}:{org}:{user_id}",
        ONE_HOUR_SECONDS,
        allow_negative_caching=True,
    ),
    NamespaceSpec(NS_PLATFORM_CONFIG, "platformConfig:{tenant}:{org}:_", ONE_DAY_SECONDS),
    NamespaceSpec(
        NS_NOTIFICATION_TEMPLATES,
        "notificationTemplates:{tenant}:{org}:{template_code}",
        ONE_DAY_SECONDS,
    ),
    NamespaceSpec(
        NS_DISPLAY_PROPERTIES, "displayProperties:{tenant}:{org}:_", ONE_DAY_SECONDS
    ),
    NamespaceSpec(NS_PERMISSIONS, "permissions:{tenant}:{org}:{role}", None),
    NamespaceSpec(
        NS_API_PERMISSIONS,
        "apiPermissions:{tenant}:{org}:{role}:{module}:{api_path}",
        None,
    ),
)


class NamespaceRegistry:
    """Immutable mapping of namespace name to NamespaceSpec."""

    def __init__(self, specs: Iterable[NamespaceSpec]) -> None:
        """Build the registry.

        Args:
            specs: Namespace specs; names must be unique.

        Raises:
            CacheConfigurationException: On duplicate names.
        """
        by_name: dict[str, NamespaceSpec] = {}
        for spec in specs:
            if spec.name in by_name:
                raise CacheConfigurationException(
                    f"Duplicate cache namespace: {spec.name}", setting="namespaces"
                )
            by_name[spec.name] = spec
        self._specs: Mapping[str, NamespaceSpec] = MappingProxyType(by_name)

    def get(self, name: str) -> NamespaceSpec:
        """Return the spec for name or raise UnknownNamespaceException."""
        try:
            return self._specs[name]
        except KeyError:
            raise UnknownNamespaceException(name) from None

    def names(self) -> list[str]:
        """Return registered namespace names in registration order."""
        return list(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __iter__(self) -> Iterator[NamespaceSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)


def _check_known(names: Iterable[str], known: set[str], setting: str) -> None:
    """Raise CacheConfigurationException if any name is not registered."""
    unknown = sorted(set(names) - known)
    if unknown:
        raise CacheConfigurationException(
            f"{setting.upper()} references unregistered cache namespaces: {', '.join(unknown)}",
            setting=setting,
        )


def build_registry(
    settings: Settings,
    specs: Iterable[NamespaceSpec] = DEFAULT_NAMESPACES,
) -> NamespaceRegistry:
    """Build the process-wide registry from defaults plus settings overrides.

    Args:
        settings: Application settings (ttl overrides, disabled and internal namespaces).
        specs: Base namespace specs (defaults to DEFAULT_NAMESPACES).

    Returns:
        Frozen NamespaceRegistry.

    Raises:
        CacheConfigurationException: If settings reference an unregistered namespace.
    """
    base = list(specs)
    known = {spec.name for spec in base}
    _check_known(settings.cache_ttl_overrides, known, "cache_ttl_overrides")
    _check_known(settings.cache_disabled_namespaces, known, "cache_disabled_namespaces")
    _check_known(settings.cache_internal_namespaces, known, "cache_internal_namespaces")

    disabled = set(settings.cache_disabled_namespaces)
    internal = set(settings.cache_internal_namespaces)
    resolved: list[NamespaceSpec] = []
    for spec in base:
        changes: dict[str, object] = {}
        if spec.name in settings.cache_ttl_overrides:
            changes["default_ttl"] = settings.cache_ttl_overrides[spec.name]
        if spec.name in disabled:
            changes["enabled"] = False
        if spec.name in internal:
            changes["use_internal"] = True
        resolved.append(replace(spec, **changes) if changes else spec)

    registry = NamespaceRegistry(resolved)
    logger.info(
        "Cache namespace registry built: %d namespaces (%d disabled, %d internal)",
        len(registry),
        len(disabled),
        len(internal),
    )
    return registry

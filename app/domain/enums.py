"""Domain enumerations for the mentoring cache service.

Enums represent fixed sets of domain values (e.g. invalidation scope).
"""

from enum import Enum


class InvalidationScope(str, Enum):
    """Breadth of an invalidation event.

    KEY removes one entry; NAMESPACE removes a namespace, optionally narrowed
    to a tenant and organization; TENANT removes every namespace for a tenant,
    optionally narrowed to an organization.
    """

    KEY = "key"
    NAMESPACE = "namespace"
    TENANT = "tenant"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid scope values as strings.

        Returns:
            List of enum value strings (e.g. for validation or serialization).
        """
        return [scope.value for scope in cls]


class OrganizationStatus(str, Enum):
    """Organization lifecycle status. Only ACTIVE organizations are warmed up."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid status values as strings."""
        return [status.value for status in cls]


class CacheHealthStatus(str, Enum):
    """Overall cache health reported by the admin surface."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    DISABLED = "disabled"

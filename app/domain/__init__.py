"""Domain layer: value objects, enums, and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from app.domain.enums import CacheHealthStatus, InvalidationScope, OrganizationStatus
from app.domain.exceptions import (
    AuthenticationException,
    CacheConfigurationException,
    CacheStoreException,
    CacheUnavailableException,
    InvalidationTransportException,
    MentoringException,
    ResourceNotFoundException,
    SqlNotConfiguredException,
    UnknownNamespaceException,
    ValidationException,
)
from app.domain.value_objects import CacheEntry, CacheKey, NamespaceSpec

__all__ = [
    # Enums
    "CacheHealthStatus",
    "InvalidationScope",
    "OrganizationStatus",
    # Exceptions
    "AuthenticationException",
    "CacheConfigurationException",
    "CacheStoreException",
    "CacheUnavailableException",
    "InvalidationTransportException",
    "MentoringException",
    "ResourceNotFoundException",
    "SqlNotConfiguredException",
    "UnknownNamespaceException",
    "ValidationException",
    # Value objects
    "CacheEntry",
    "CacheKey",
    "NamespaceSpec",
]

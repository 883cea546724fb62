"""Application layer: DTOs and repository interfaces.

Depends only on domain and protocol definitions (DIP).
Infrastructure implements the interfaces (repositories) and returns the DTOs.
"""

from app.application.dtos import (
    EntityTypeResult,
    InvalidationOutcome,
    OrganizationResult,
    PlatformConfigUpdateResult,
    PublishResult,
    WarmUpResult,
)
from app.application.interfaces import IEntityTypeRepository, IOrganizationRepository

__all__ = [
    "EntityTypeResult",
    "IEntityTypeRepository",
    "IOrganizationRepository",
    "InvalidationOutcome",
    "OrganizationResult",
    "PlatformConfigUpdateResult",
    "PublishResult",
    "WarmUpResult",
]

"""Persistence repositories. Re-exports for dependency injection."""

from app.infrastructure.persistence.repositories.base import BaseRepository
from app.infrastructure.persistence.repositories.entity_type_repo import (
    EntityTypeRepository,
)
from app.infrastructure.persistence.repositories.organization_repo import (
    OrganizationRepository,
)

__all__ = [
    "BaseRepository",
    "EntityTypeRepository",
    "OrganizationRepository",
]

"""Persistence models: ORM entities and mixins."""

from app.infrastructure.persistence.models.entity_type import EntityType
from app.infrastructure.persistence.models.mixins import (
    CuidMixin,
    OrganizationScopedMixin,
    OrganizationScopedModel,
    TimestampMixin,
)
from app.infrastructure.persistence.models.organization import OrganizationExtension

__all__ = [
    "EntityType",
    "OrganizationExtension",
    "CuidMixin",
    "OrganizationScopedMixin",
    "OrganizationScopedModel",
    "TimestampMixin",
]

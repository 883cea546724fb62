"""Application DTOs (no ORM dependency)."""

from app.application.dtos.cache import (
    InvalidationOutcome,
    PlatformConfigUpdateResult,
    PublishResult,
    WarmUpResult,
)
from app.application.dtos.organization import EntityTypeResult, OrganizationResult

__all__ = [
    "EntityTypeResult",
    "InvalidationOutcome",
    "OrganizationResult",
    "PlatformConfigUpdateResult",
    "PublishResult",
    "WarmUpResult",
]

"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference application DTOs only; no infrastructure imports.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from app.application.dtos.organization import EntityTypeResult, OrganizationResult


class IOrganizationRepository(Protocol):
    """Protocol for organization repository (DIP)."""

    async def get_by_code(
        self, tenant_code: str, organization_code: str
    ) -> OrganizationResult | None:
        """Return the organization or None."""

    async def list_active_codes(self, tenant_code: str) -> list[str]:
        """Return codes of every active organization of a tenant."""

    async def update_platform_config(
        self, tenant_code: str, organization_code: str, config: dict[str, Any]
    ) -> OrganizationResult:
        """Replace platform_config; raises ResourceNotFoundException if absent."""


class IEntityTypeRepository(Protocol):
    """Protocol for entity type repository (DIP)."""

    async def list_for_organization(
        self, tenant_code: str, organization_code: str, model_name: str | None = None
    ) -> list[EntityTypeResult]:
        """Return active entity types of an organization, optionally for one model."""

"""Organization repository: authoritative source for organizations and platform config."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dtos.organization import OrganizationResult
from app.domain.enums import OrganizationStatus
from app.domain.exceptions import ResourceNotFoundException
from app.infrastructure.persistence.models.organization import OrganizationExtension
from app.infrastructure.persistence.repositories.base import BaseRepository


def _organization_to_result(org: OrganizationExtension) -> OrganizationResult:
    """Map ORM OrganizationExtension to application OrganizationResult."""
    return OrganizationResult(
        id=org.id,
        tenant_code=org.tenant_code,
        organization_code=org.organization_code,
        organization_id=org.organization_id,
        name=org.name,
        status=org.status,
        platform_config=dict(org.platform_config or {}),
        display_properties=dict(org.display_properties or {}),
    )


class OrganizationRepository(BaseRepository[OrganizationExtension]):
    """Reads organizations by (tenant_code, organization_code). Returns DTOs."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, OrganizationExtension)

    async def _get_entity(
        self, tenant_code: str, organization_code: str
    ) -> OrganizationExtension | None:
        result = await self.db.execute(
            select(OrganizationExtension).where(
                OrganizationExtension.tenant_code == tenant_code,
                OrganizationExtension.organization_code == organization_code,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_code(
        self, tenant_code: str, organization_code: str
    ) -> OrganizationResult | None:
        """Return the organization or None."""
        org = await self._get_entity(tenant_code, organization_code)
        return _organization_to_result(org) if org else None

    async def list_active_codes(self, tenant_code: str) -> list[str]:
        """Return codes of every active organization of a tenant, sorted."""
        result = await self.db.execute(
            select(OrganizationExtension.organization_code)
            .where(
                OrganizationExtension.tenant_code == tenant_code,
                OrganizationExtension.status == OrganizationStatus.ACTIVE.value,
            )
            .order_by(OrganizationExtension.organization_code)
        )
        return list(result.scalars().all())

    async def update_platform_config(
        self, tenant_code: str, organization_code: str, config: dict[str, Any]
    ) -> OrganizationResult:
        """Replace platform_config of an organization.

        Raises:
            ResourceNotFoundException: If the organization does not exist.
        """
        org = await self._get_entity(tenant_code, organization_code)
        if org is None:
            raise ResourceNotFoundException(
                "organization", f"{tenant_code}/{organization_code}"
            )
        org.platform_config = dict(config)
        updated = await self.update(org)
        return _organization_to_result(updated)

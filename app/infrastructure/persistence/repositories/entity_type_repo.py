"""Entity type repository: authoritative source for the entityTypes namespace."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dtos.organization import EntityTypeResult
from app.domain.enums import OrganizationStatus
from app.infrastructure.persistence.models.entity_type import EntityType
from app.infrastructure.persistence.repositories.base import BaseRepository


def _entity_type_to_result(et: EntityType) -> EntityTypeResult:
    return EntityTypeResult(
        id=et.id,
        model_name=et.model_name,
        value=et.value,
        label=et.label,
        data_type=et.data_type,
        status=et.status,
    )


class EntityTypeRepository(BaseRepository[EntityType]):
    """Entity type reads scoped to one organization."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, EntityType)

    async def list_for_organization(
        self, tenant_code: str, organization_code: str, model_name: str | None = None
    ) -> list[EntityTypeResult]:
        """Return active entity types of an organization, optionally for one model."""
        stmt = select(EntityType).where(
            EntityType.tenant_code == tenant_code,
            EntityType.organization_code == organization_code,
            EntityType.status == OrganizationStatus.ACTIVE.value,
        )
        if model_name is not None:
            stmt = stmt.where(EntityType.model_name == model_name)
        result = await self.db.execute(stmt.order_by(EntityType.model_name, EntityType.value))
        return [_entity_type_to_result(et) for et in result.scalars().all()]

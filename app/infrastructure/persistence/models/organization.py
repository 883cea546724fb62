"""Organization extension ORM model: per-organization settings read by the cache."""

from typing import Any

from sqlalchemy import JSON, CheckConstraint, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.domain.enums import OrganizationStatus
from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import OrganizationScopedModel


class OrganizationExtension(OrganizationScopedModel, Base):
    """Organization settings. Table: organization_extension.

    platform_config and display_properties are cached per organization in
    the platformConfig and displayProperties namespaces.
    """

    __tablename__ = "organization_extension"

    organization_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=OrganizationStatus.ACTIVE.value, index=True
    )
    platform_config: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    display_properties: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "tenant_code", "organization_code", name="uq_organization_extension_code"
        ),
        CheckConstraint(
            "status IN ({})".format(
                ", ".join(
                    "'{}'".format(v.replace("'", "''"))
                    for v in OrganizationStatus.values()
                )
            ),
            name="organization_extension_status_check",
        ),
    )

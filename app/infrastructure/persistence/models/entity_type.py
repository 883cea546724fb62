"""Entity type ORM model: selectable values for profile and session fields."""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.domain.enums import OrganizationStatus
from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import OrganizationScopedModel


class EntityType(OrganizationScopedModel, Base):
    """Entity type (e.g. designation, area of expertise) of one model. Table: entity_type."""

    __tablename__ = "entity_type"

    model_name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    value: Mapped[str] = mapped_column(String, nullable=False)
    label: Mapped[str] = mapped_column(String, nullable=False)
    data_type: Mapped[str] = mapped_column(String, nullable=False, default="STRING")
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=OrganizationStatus.ACTIVE.value
    )

    __table_args__ = (
        UniqueConstraint(
            "tenant_code",
            "organization_code",
            "model_name",
            "value",
            name="uq_entity_type_value",
        ),
    )

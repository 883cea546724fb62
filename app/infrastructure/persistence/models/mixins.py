"""SQLAlchemy mixins for common model patterns (DRY).

Provides: CuidMixin, TimestampMixin, OrganizationScopedMixin and the
combined OrganizationScopedModel.
"""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

from app.shared.utils.generators import generate_cuid


class CuidMixin:
    """Mixin for models using CUID as primary key. Provides id with default generate_cuid."""

    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String, primary_key=True, default=generate_cuid)


class OrganizationScopedMixin:
    """Mixin for rows owned by one organization of one tenant.

    Rows are addressed by codes (the same codes used in cache keys), not by
    foreign keys: tenants and organizations are managed by another service.
    """

    @declared_attr
    def tenant_code(cls) -> Mapped[str]:
        return mapped_column(String(255), nullable=False, index=True)

    @declared_attr
    def organization_code(cls) -> Mapped[str]:
        return mapped_column(String(255), nullable=False, index=True)


class TimestampMixin:
    """Mixin for created_at and updated_at (server defaults, timezone-aware)."""

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )


class OrganizationScopedModel(CuidMixin, OrganizationScopedMixin, TimestampMixin):
    """Combined mixin: CUID + tenant/organization codes + created_at/updated_at."""

    __abstract__ = True

"""DTOs for organization reads (no dependency on ORM)."""

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class OrganizationResult:
    """Organization read-model cached in the organizations namespace."""

    id: str
    tenant_code: str
    organization_code: str
    organization_id: str | None
    name: str
    status: str
    platform_config: dict[str, Any] = field(default_factory=dict)
    display_properties: dict[str, Any] = field(default_factory=dict)

    def to_cache(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EntityTypeResult:
    """One entity type value of a model (e.g. designation: 'mentor')."""

    id: str
    model_name: str
    value: str
    label: str
    data_type: str
    status: str

    def to_cache(self) -> dict[str, Any]:
        return asdict(self)

"""Application interfaces (ports): repository protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from app.infrastructure.
"""

from app.application.interfaces.repositories import (
    IEntityTypeRepository,
    IOrganizationRepository,
)

__all__ = [
    "IEntityTypeRepository",
    "IOrganizationRepository",
]

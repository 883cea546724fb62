"""Authoritative read sources used by cache loaders, warm-up and write-through.

A source scope opens one database session and exposes the repositories
over it. read_sources never commits; write_sources commits when the block
exits, before the caller touches the cache.
"""

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass

from app.application.interfaces.repositories import (
    IEntityTypeRepository,
    IOrganizationRepository,
)
from app.infrastructure.persistence.database import session_scope, transaction_scope
from app.infrastructure.persistence.repositories import (
    EntityTypeRepository,
    OrganizationRepository,
)


@dataclass(frozen=True)
class DataSources:
    """Repositories bound to one session."""

    organizations: IOrganizationRepository
    entity_types: IEntityTypeRepository


SourceScope = Callable[[], AbstractAsyncContextManager[DataSources]]


@asynccontextmanager
async def read_sources() -> AsyncIterator[DataSources]:
    async with session_scope() as db:
        yield DataSources(OrganizationRepository(db), EntityTypeRepository(db))


@asynccontextmanager
async def write_sources() -> AsyncIterator[DataSources]:
    async with transaction_scope() as db:
        yield DataSources(OrganizationRepository(db), EntityTypeRepository(db))

"""Base repository: shared session and model binding."""

from typing import Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.persistence.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository holding the session and the mapped model.

    The database is read here and written only by platform config updates;
    cache refresh happens in the calling service after commit, never in
    repository hooks.
    """

    def __init__(self, db: AsyncSession, model: type[ModelType]) -> None:
        self.db = db
        self.model = model

    async def update(self, obj: ModelType) -> ModelType:
        """Flush changes to an attached record and reload server-side defaults."""
        await self.db.flush()
        await self.db.refresh(obj)
        return obj

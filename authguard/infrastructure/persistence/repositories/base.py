"""Base repository: generic get/create/update with optimistic-lock translation."""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from authguard.domain.exceptions import ConcurrencyException
from authguard.infrastructure.persistence.database import Base


ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with get_by_id, create, and update.

    Writes flush inside the caller's transaction; commit belongs to the
    unit of work. A version-column mismatch on flush surfaces as
    ConcurrencyException.
    """

    def __init__(self, db: AsyncSession, model: type[ModelType]) -> None:
        self.db = db
        self.model = model

    async def get_by_id(self, entity_id: str) -> ModelType | None:
        """Return a single record by primary key, or None."""
        model: Any = self.model
        result = await self.db.execute(select(self.model).where(model.id == entity_id))
        return result.scalar_one_or_none()

    async def create(self, obj: ModelType) -> ModelType:
        """Persist a new record."""
        self.db.add(obj)
        await self._flush(obj)
        return obj

    async def update(self, obj: ModelType) -> ModelType:
        """Flush pending changes on an attached record."""
        await self._flush(obj)
        return obj

    async def _flush(self, obj: ModelType | None = None) -> None:
        try:
            await self.db.flush()
        except StaleDataError as e:
            raise ConcurrencyException(
                self.model.__tablename__, getattr(obj, "id", None)
            ) from e

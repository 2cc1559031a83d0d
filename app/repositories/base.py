"""
Base repository.

Shared lookups and writes for the referral repositories. Repositories
flush but never commit; services own the transaction boundaries.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository over one mapped model.

    Example:
        class OrderRepository(BaseRepository[Order]):
            def __init__(self, session: AsyncSession):
                super().__init__(Order, session)
    """

    def __init__(
        self, model: type[ModelType], session: AsyncSession
    ) -> None:
        self.model = model
        self.session = session

    async def get_by_id(self, id: int) -> ModelType | None:
        """Get entity by primary key."""
        return await self.session.get(self.model, id)

    async def get_by(self, **filters: Any) -> ModelType | None:
        """
        Get the single entity matching column filters.

        Args:
            **filters: Column filters (expected to hit a unique key)

        Returns:
            Entity or None
        """
        stmt = select(self.model).filter_by(**filters)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def exists(self, **filters: Any) -> bool:
        """Check whether any entity matches the filters."""
        stmt = select(self.model.id).filter_by(**filters).limit(1)
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def create(self, **data: Any) -> ModelType:
        """
        Insert a new entity and load its server-generated columns.

        Args:
            **data: Column values

        Returns:
            Created entity

        Raises:
            sqlalchemy.exc.IntegrityError: On a unique constraint violation
        """
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def update(
        self, id: int, for_update: bool = False, **data: Any
    ) -> ModelType | None:
        """
        Set attributes on an entity.

        Args:
            id: Entity ID
            for_update: Lock the row before changing it
            **data: Attribute values

        Returns:
            Updated entity or None if not found
        """
        stmt = select(self.model).where(self.model.id == id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        entity = result.scalar_one_or_none()
        if entity is None:
            return None

        for key, value in data.items():
            setattr(entity, key, value)
        await self.session.flush()
        return entity

    async def delete(self, id: int) -> bool:
        """Delete entity by ID; True if a row was removed."""
        result = await self.session.execute(
            delete(self.model).where(self.model.id == id)
        )
        await self.session.flush()
        return result.rowcount > 0

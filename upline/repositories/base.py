"""
Base repository.

Shared lookups and writes for the account, commission and withdrawal
repositories. Writes only flush; committing belongs to the service that
owns the transaction.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from upline.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Repository over one mapped model.

    Example:
        class WithdrawalRepository(BaseRepository[WithdrawalRequest]):
            def __init__(self, session: AsyncSession) -> None:
                super().__init__(WithdrawalRequest, session)
    """

    def __init__(
        self, model: type[ModelType], session: AsyncSession
    ) -> None:
        self.model = model
        self.session = session

    async def get_by_id(self, id: int | str) -> ModelType | None:
        """Get a row by primary key (identity map first)."""
        return await self.session.get(self.model, id)

    async def get_by(self, **filters: Any) -> ModelType | None:
        """
        Get the row matching unique column filters.

        Args:
            **filters: Equality filters on unique columns
                (event_key, referral_code, email)

        Returns:
            Matching row or None
        """
        stmt = select(self.model).filter_by(**filters)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def exists(self, **filters: Any) -> bool:
        """Check whether any row matches the filters."""
        stmt = select(self.model.id).filter_by(**filters).limit(1)
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def create(self, **data: Any) -> ModelType:
        """
        Insert a row and flush it.

        The flush surfaces unique constraint violations (duplicate email,
        reused event key) as IntegrityError inside the caller's transaction.

        Returns:
            Created row with server defaults loaded
        """
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def update(self, id: int | str, **data: Any) -> ModelType | None:
        """
        Set plain attributes on a row.

        Not for money columns: balances only change through the atomic
        increments of AccountRepository.

        Returns:
            Updated row or None if not found
        """
        entity = await self.get_by_id(id)
        if entity is None:
            return None

        for key, value in data.items():
            setattr(entity, key, value)

        await self.session.flush()
        await self.session.refresh(entity)
        return entity

"""
Commission repository.

Data access layer for CommissionEvent and CommissionCredit models.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from upline.models.commission import (
    CommissionCredit,
    CommissionEvent,
    CommissionEventStatus,
)
from upline.repositories.base import BaseRepository


class CommissionEventRepository(BaseRepository[CommissionEvent]):
    """Commission event repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission event repository."""
        super().__init__(CommissionEvent, session)

    async def get_by_key(self, event_key: str) -> CommissionEvent | None:
        """
        Get event by its idempotency key.

        Args:
            event_key: Caller supplied or generated event key

        Returns:
            CommissionEvent or None
        """
        return await self.get_by(event_key=event_key)

    async def mark_applied(
        self, event_id: int, total_credited: Decimal
    ) -> bool:
        """
        Mark a pending event as applied.

        Only a pending event transitions, so the marker is written once.

        Args:
            event_id: Event ID
            total_credited: Sum of credits applied

        Returns:
            True if the event was pending and is now applied
        """
        stmt = (
            update(CommissionEvent)
            .where(
                CommissionEvent.id == event_id,
                CommissionEvent.status == CommissionEventStatus.PENDING,
            )
            .values(
                status=CommissionEventStatus.APPLIED,
                total_credited=total_credited,
                applied_at=datetime.now(UTC),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1


class CommissionCreditRepository(BaseRepository[CommissionCredit]):
    """Commission credit repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission credit repository."""
        super().__init__(CommissionCredit, session)

    async def get_by_event(self, event_id: int) -> list[CommissionCredit]:
        """
        Get credits of one event ordered by level.

        Args:
            event_id: Event ID

        Returns:
            List of credits, level 1 first
        """
        stmt = (
            select(CommissionCredit)
            .where(CommissionCredit.event_id == event_id)
            .order_by(CommissionCredit.level.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_ancestor(
        self, ancestor_id: str, limit: int, offset: int
    ) -> list[CommissionCredit]:
        """
        Get credits received by an account, newest first.

        Args:
            ancestor_id: Receiving account ID
            limit: Page size
            offset: Rows to skip

        Returns:
            List of credits
        """
        stmt = (
            select(CommissionCredit)
            .where(CommissionCredit.ancestor_id == ancestor_id)
            .order_by(CommissionCredit.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_totals_by_ancestor(
        self, ancestor_id: str
    ) -> tuple[int, Decimal]:
        """
        Get count and sum of credits received by an account.

        Uses SQL aggregation to avoid loading all records.

        Args:
            ancestor_id: Receiving account ID

        Returns:
            Tuple of (count, total_amount)
        """
        stmt = select(
            func.count(CommissionCredit.id).label("total"),
            func.sum(CommissionCredit.amount).label("total_amount"),
        ).where(CommissionCredit.ancestor_id == ancestor_id)

        result = await self.session.execute(stmt)
        stats = result.one()
        return stats.total or 0, stats.total_amount or Decimal("0")

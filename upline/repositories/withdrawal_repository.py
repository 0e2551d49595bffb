"""
Withdrawal repository.

Data access layer for WithdrawalRequest model.
"""

from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from upline.models.withdrawal import WithdrawalRequest, WithdrawalStatus
from upline.repositories.base import BaseRepository


class WithdrawalRepository(BaseRepository[WithdrawalRequest]):
    """Withdrawal request repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize withdrawal repository."""
        super().__init__(WithdrawalRequest, session)

    async def get_pending_by_account(
        self, account_id: str
    ) -> list[WithdrawalRequest]:
        """
        Get pending requests of an account, oldest first.

        Args:
            account_id: Account ID

        Returns:
            List of pending requests
        """
        stmt = (
            select(WithdrawalRequest)
            .where(
                WithdrawalRequest.account_id == account_id,
                WithdrawalRequest.status == WithdrawalStatus.PENDING,
            )
            .order_by(WithdrawalRequest.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def transition(
        self,
        request_id: int,
        new_status: str,
        admin_note: str | None = None,
    ) -> bool:
        """
        Move a pending request to a final status.

        The WHERE clause on status makes concurrent transitions of the same
        request mutually exclusive.

        Args:
            request_id: Request ID
            new_status: completed / rejected
            admin_note: Optional note

        Returns:
            True if the request was pending and was transitioned
        """
        stmt = (
            update(WithdrawalRequest)
            .where(
                WithdrawalRequest.id == request_id,
                WithdrawalRequest.status == WithdrawalStatus.PENDING,
            )
            .values(
                status=new_status,
                admin_note=admin_note,
                processed_at=datetime.now(UTC),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

"""
Downline query service.

Read-only reporting over the stored ancestor columns. Counts may lag
concurrent enrollments, so callers may hand in a replica session.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from upline.config.constants import DEFAULT_LEADERBOARD_SIZE, DEFAULT_PAGE_SIZE
from upline.repositories.account_repository import (
    LEADERBOARD_FIELDS,
    AccountRepository,
)
from upline.services.base_service import BaseService, transaction
from upline.utils.validation import validate_limit, validate_pagination


class DownlineService(BaseService):
    """Downline size and membership queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize downline service."""
        super().__init__(session)
        self.account_repo = AccountRepository(session)

    async def count_downline_levels(self, account_id: str) -> list[int]:
        """
        Count downline accounts per level.

        Args:
            account_id: Account ID

        Returns:
            Exactly 5 counts, level 1 first, zeros included

        Raises:
            AccountNotFoundError: Unknown account
        """
        await self.require_account(account_id)
        return await self.account_repo.count_downline_levels(account_id)

    async def get_downline_summary(self, account_id: str) -> dict:
        """
        Get per-level counts together with the denormalized counter.

        Args:
            account_id: Account ID

        Returns:
            Dict with levels ([{level, count}]), total, direct_referral_count
        """
        account = await self.require_account(account_id)
        counts = await self.account_repo.count_downline_levels(account_id)

        return {
            "levels": [
                {"level": index + 1, "count": count}
                for index, count in enumerate(counts)
            ],
            "total": sum(counts),
            "direct_referral_count": account.direct_referral_count,
        }

    async def get_direct_referrals(
        self, account_id: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> dict:
        """
        Get level 1 referrals with pagination.

        Args:
            account_id: Sponsor account ID
            page: Page number
            limit: Items per page

        Returns:
            Dict with referrals, total, page, pages

        Raises:
            ValidationError: limit out of range
            AccountNotFoundError: Unknown account
        """
        await self.require_account(account_id)
        page, offset = validate_pagination(page, limit)

        accounts = await self.account_repo.get_direct_referrals(
            account_id, limit=limit, offset=offset
        )
        total = await self.account_repo.count_direct_referrals(account_id)

        referrals = [
            {
                "account": account,
                "referral_earnings": account.referral_earnings,
                "joined_at": account.created_at,
            }
            for account in accounts
        ]

        pages = (total + limit - 1) // limit

        return {
            "referrals": referrals,
            "total": total,
            "page": page,
            "pages": pages,
        }

    async def get_leaderboards(
        self, limit: int = DEFAULT_LEADERBOARD_SIZE
    ) -> dict[str, list[dict]]:
        """
        Rank accounts by balance, referral earnings and direct referrals.

        Args:
            limit: Entries per leaderboard

        Returns:
            Dict with top_balances, top_earners and top_referrers, each a
            list of {rank, account_id, full_name, value}

        Raises:
            ValidationError: limit out of range
        """
        validate_limit(limit)
        leaderboards = {}

        for name, field in LEADERBOARD_FIELDS.items():
            accounts = await self.account_repo.get_top_accounts(name, limit)
            leaderboards[name] = [
                {
                    "rank": rank,
                    "account_id": account.id,
                    "full_name": account.full_name,
                    "value": getattr(account, field),
                }
                for rank, account in enumerate(accounts, 1)
            ]

        return leaderboards

    @transaction
    async def recount_direct_referrals(self, account_id: str) -> int:
        """
        Re-derive the direct referral counter from the ancestor column.

        Repairs drift left by failed best-effort increments at enrollment.

        Args:
            account_id: Sponsor account ID

        Returns:
            Stored count
        """
        account = await self.require_account(account_id)
        count = await self.account_repo.count_direct_referrals(account_id)

        if count != account.direct_referral_count:
            self.logger.warning(
                "Direct referral counter drift repaired",
                extra={
                    "account_id": account_id,
                    "stored": account.direct_referral_count,
                    "actual": count,
                },
            )
            await self.account_repo.set_direct_referral_count(account_id, count)

        return count

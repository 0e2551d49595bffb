"""
Account repository.

Data access layer for Account model. All money and counter mutations are
single SQL statements that increment in the database, never
read-modify-write on a loaded object.
"""

from decimal import Decimal

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from upline.config.constants import MAX_ANCESTOR_DEPTH
from upline.models.account import Account
from upline.repositories.base import BaseRepository

# Leaderboard name -> ranked column
LEADERBOARD_FIELDS = {
    "top_balances": "balance",
    "top_earners": "referral_earnings",
    "top_referrers": "direct_referral_count",
}


class AccountRepository(BaseRepository[Account]):
    """Account repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize account repository."""
        super().__init__(Account, session)

    async def get_by_referral_code(
        self, referral_code: str
    ) -> Account | None:
        """
        Get account by referral code.

        Args:
            referral_code: Referral code (exact match)

        Returns:
            Account or None
        """
        return await self.get_by(referral_code=referral_code)

    async def get_by_email(self, email: str) -> Account | None:
        """
        Get account by normalized email.

        Args:
            email: Lower-cased email

        Returns:
            Account or None
        """
        return await self.get_by(email=email)

    async def get_ancestors(self, account_id: str) -> list[str] | None:
        """
        Read an account's ancestor chain without loading the entity.

        Args:
            account_id: Account ID

        Returns:
            Ancestor ids nearest first, or None if account does not exist
        """
        columns = [
            Account.ancestor_column(level)
            for level in range(1, MAX_ANCESTOR_DEPTH + 1)
        ]
        stmt = select(*columns).where(Account.id == account_id)
        result = await self.session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None

        chain = []
        for ancestor_id in row:
            if ancestor_id is None:
                break
            chain.append(ancestor_id)
        return chain

    async def credit_referral_earnings(
        self, account_id: str, amount: Decimal
    ) -> bool:
        """
        Atomically increment referral earnings.

        Args:
            account_id: Account ID
            amount: Amount to add

        Returns:
            True if the row was updated
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(referral_earnings=Account.referral_earnings + amount)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def adjust_referral_earnings(
        self, account_id: str, delta: Decimal
    ) -> bool:
        """
        Atomically apply a signed delta to referral earnings.

        The update only matches when the result stays non-negative.

        Args:
            account_id: Account ID
            delta: Signed amount

        Returns:
            True if applied, False if account missing or funds insufficient
        """
        stmt = (
            update(Account)
            .where(
                Account.id == account_id,
                Account.referral_earnings + delta >= 0,
            )
            .values(referral_earnings=Account.referral_earnings + delta)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def adjust_balance(
        self, account_id: str, delta: Decimal
    ) -> bool:
        """
        Atomically apply a signed delta to the spend balance.

        Args:
            account_id: Account ID
            delta: Signed amount

        Returns:
            True if applied, False if account missing or funds insufficient
        """
        stmt = (
            update(Account)
            .where(
                Account.id == account_id,
                Account.balance + delta >= 0,
            )
            .values(balance=Account.balance + delta)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def increment_direct_referral_count(
        self, account_id: str, by: int = 1
    ) -> bool:
        """
        Atomically increment the denormalized direct referral counter.

        Args:
            account_id: Sponsor account ID
            by: Increment

        Returns:
            True if the row was updated
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(
                direct_referral_count=Account.direct_referral_count + by
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def set_direct_referral_count(
        self, account_id: str, count: int
    ) -> bool:
        """Overwrite the denormalized counter (drift repair)."""
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(direct_referral_count=count)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def count_downline_levels(self, account_id: str) -> list[int]:
        """
        Count downline accounts per level in a single query.

        Each ancestor_L column is indexed, so the OR filter is an index
        union and the CASE sums split the matches by level.

        Args:
            account_id: Account ID

        Returns:
            Exactly MAX_ANCESTOR_DEPTH counts, level 1 first
        """
        levels = range(1, MAX_ANCESTOR_DEPTH + 1)
        stmt = select(
            *[
                func.coalesce(
                    func.sum(
                        case(
                            (Account.ancestor_column(level) == account_id, 1),
                            else_=0,
                        )
                    ),
                    0,
                ).label(f"level_{level}")
                for level in levels
            ]
        ).where(
            or_(
                *[
                    Account.ancestor_column(level) == account_id
                    for level in levels
                ]
            )
        )

        result = await self.session.execute(stmt)
        row = result.one()
        return [int(count or 0) for count in row]

    async def count_direct_referrals(self, account_id: str) -> int:
        """
        Count level 1 referrals from the ancestor column.

        Args:
            account_id: Sponsor account ID

        Returns:
            Number of accounts whose ancestor_1 is the sponsor
        """
        stmt = select(func.count(Account.id)).where(
            Account.ancestor_1 == account_id
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def get_direct_referrals(
        self, account_id: str, limit: int, offset: int
    ) -> list[Account]:
        """
        Get level 1 referrals, newest first.

        Args:
            account_id: Sponsor account ID
            limit: Page size
            offset: Rows to skip

        Returns:
            List of accounts
        """
        stmt = (
            select(Account)
            .where(Account.ancestor_1 == account_id)
            .order_by(Account.created_at.desc(), Account.id)
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_top_accounts(self, field: str, limit: int) -> list[Account]:
        """
        Get accounts ranked by a leaderboard column.

        Accounts with a zero value are left out. Ties go to the earlier
        enrollment.

        Args:
            field: One of LEADERBOARD_FIELDS
            limit: Number of accounts

        Returns:
            Accounts, highest value first
        """
        column = getattr(Account, LEADERBOARD_FIELDS[field])
        stmt = (
            select(Account)
            .where(column > 0)
            .order_by(column.desc(), Account.created_at, Account.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_counter_drift(self, limit: int = 500) -> list[str]:
        """
        Find accounts whose direct referral counter disagrees with the
        ancestor_1 column.

        Args:
            limit: Maximum ids to return

        Returns:
            Account ids needing a recount
        """
        referral = aliased(Account)
        actual = (
            select(func.count(referral.id))
            .where(referral.ancestor_1 == Account.id)
            .correlate(Account)
            .scalar_subquery()
        )
        stmt = (
            select(Account.id)
            .where(Account.direct_referral_count != actual)
            .order_by(Account.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

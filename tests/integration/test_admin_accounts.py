"""Integration tests for AdminAccountService."""

from decimal import Decimal

import pytest

from upline.models import AccountStatus
from upline.services.admin_account_service import AdminAccountService
from upline.utils.exceptions import (
    AccountNotFoundError,
    InsufficientFundsError,
    ValidationError,
)


@pytest.fixture
def admin(session_factory):
    """Run an AdminAccountService method on its own session."""
    async def _call(method, *args, **kwargs):
        async with session_factory() as session:
            return await getattr(AdminAccountService(session), method)(
                *args, **kwargs
            )

    return _call


class TestAdjustBalance:
    """Signed balance corrections."""

    @pytest.mark.asyncio
    async def test_credit_and_debit(self, enroll, admin, fetch_account):
        """Balance moves by the delta and may reach zero."""
        account = await enroll("User")

        credited = await admin("adjust_balance", account.id, "10.00", "promo")
        assert credited.balance == Decimal("12.00")

        debited = await admin("adjust_balance", account.id, "-12.00", "correction")
        assert debited.balance == Decimal("0")
        assert (await fetch_account(account.id)).balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_cannot_go_negative(self, enroll, admin, fetch_account):
        """A debit beyond the balance is refused."""
        account = await enroll("User")

        with pytest.raises(InsufficientFundsError):
            await admin("adjust_balance", account.id, "-2.01", "correction")

        assert (await fetch_account(account.id)).balance == Decimal("2.00")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("delta,reason", [(0, "x"), ("abc", "x"), (5, "")])
    async def test_invalid_input(self, enroll, admin, delta, reason):
        """Zero or invalid delta and empty reason are rejected."""
        account = await enroll("User")

        with pytest.raises(ValidationError):
            await admin("adjust_balance", account.id, delta, reason)

    @pytest.mark.asyncio
    async def test_unknown_account(self, admin):
        """Unknown account raises AccountNotFoundError."""
        with pytest.raises(AccountNotFoundError):
            await admin("adjust_balance", "0" * 32, 5, "promo")


class TestAdjustReferralEarnings:
    """Signed earnings corrections."""

    @pytest.mark.asyncio
    async def test_adjust(self, enroll, admin):
        """Earnings move by the delta and never below zero."""
        account = await enroll("User")

        updated = await admin("adjust_referral_earnings", account.id, 15, "bonus")
        assert updated.referral_earnings == Decimal("15.00")

        with pytest.raises(InsufficientFundsError):
            await admin("adjust_referral_earnings", account.id, -16, "clawback")


class TestSetStatus:
    """Suspension."""

    @pytest.mark.asyncio
    async def test_suspend_and_reactivate(self, enroll, admin, fetch_account):
        """Status toggles between active and suspended."""
        account = await enroll("User")

        await admin("set_status", account.id, AccountStatus.SUSPENDED)
        assert (await fetch_account(account.id)).status == AccountStatus.SUSPENDED

        await admin("set_status", account.id, AccountStatus.ACTIVE)
        assert (await fetch_account(account.id)).is_active

    @pytest.mark.asyncio
    async def test_unknown_status(self, enroll, admin):
        """Only active and suspended exist."""
        account = await enroll("User")

        with pytest.raises(ValidationError):
            await admin("set_status", account.id, "banned")

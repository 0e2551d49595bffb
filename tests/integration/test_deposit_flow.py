"""Integration tests for DepositConfirmationService."""

from decimal import Decimal

import pytest

from upline.services.deposit_service import DepositConfirmationService
from upline.utils.exceptions import AccountNotFoundError, ValidationError


@pytest.fixture
def confirm(session_factory, dispatcher):
    """Confirm one deposit on its own session."""
    async def _confirm(account_id, amount, payment_id):
        async with session_factory() as session:
            service = DepositConfirmationService(session, dispatcher=dispatcher)
            return await service.confirm_deposit(account_id, amount, payment_id)

    return _confirm


class TestConfirmDeposit:
    """Deposit credit plus commission, exactly once per payment."""

    @pytest.mark.asyncio
    async def test_credits_balance_and_commission(
        self, enroll_chain, confirm, fetch_account
    ):
        """Balance grows by the deposit; the chain earns its commission."""
        a, b, c = await enroll_chain("A", "B", "C")

        credits = await confirm(c.id, "100.00", "pi_123")

        assert [line.ancestor_id for line in credits] == [b.id, a.id]
        assert (await fetch_account(c.id)).balance == Decimal("102.00")
        assert (await fetch_account(b.id)).referral_earnings == Decimal("5.00")
        assert (await fetch_account(a.id)).referral_earnings == Decimal("2.50")

    @pytest.mark.asyncio
    async def test_repeated_confirmation(self, enroll_chain, confirm, fetch_account):
        """The same payment id is applied once."""
        a, b, c = await enroll_chain("A", "B", "C")

        await confirm(c.id, "100.00", "pi_123")
        await confirm(c.id, "100.00", "pi_123")

        assert (await fetch_account(c.id)).balance == Decimal("102.00")
        assert (await fetch_account(b.id)).referral_earnings == Decimal("5.00")

    @pytest.mark.asyncio
    async def test_repeated_confirmation_with_eight_decimals(
        self, enroll_chain, confirm, fetch_account
    ):
        """A replay of a full-precision amount is recognised as the same payment."""
        a, b, c = await enroll_chain("A", "B", "C")

        first = await confirm(c.id, "100.12345678", "pi_456")
        second = await confirm(c.id, "100.12345678", "pi_456")

        assert second == first
        assert (await fetch_account(b.id)).referral_earnings == Decimal("5.00")

    @pytest.mark.asyncio
    async def test_root_deposit_is_not_doubled(self, enroll, confirm, fetch_account):
        """Accounts without ancestors are still protected against replays."""
        root = await enroll("Root")

        assert await confirm(root.id, 50, "pi_root") == []
        await confirm(root.id, 50, "pi_root")

        assert (await fetch_account(root.id)).balance == Decimal("52.00")

    @pytest.mark.asyncio
    async def test_unknown_account(self, confirm):
        """Unknown account raises AccountNotFoundError."""
        with pytest.raises(AccountNotFoundError):
            await confirm("f" * 32, 100, "pi_ghost")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "amount,payment_id",
        [(0, "pi_1"), ("-5", "pi_1"), ("0.000000001", "pi_1"), (100, ""), (100, "  ")],
    )
    async def test_invalid_input(self, enroll, confirm, fetch_account, amount, payment_id):
        """Bad amount or missing payment id change nothing."""
        root = await enroll("Root")

        with pytest.raises(ValidationError):
            await confirm(root.id, amount, payment_id)

        assert (await fetch_account(root.id)).balance == Decimal("2.00")

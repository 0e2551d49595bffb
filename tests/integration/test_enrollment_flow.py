"""Integration tests for EnrollmentService against a SQLite database."""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from upline.models import Account, AccountStatus
from upline.services.admin_account_service import AdminAccountService
from upline.services.enrollment_service import (
    INVALID_REFERRAL_CODE_WARNING,
    EnrollmentService,
)
from upline.services.notification_dispatcher import NotificationKind
from upline.utils.exceptions import DuplicateAccountError, ValidationError


def _kinds_for(sink, account_id):
    return [c.args[1] for c in sink.call_args_list if c.args[0] == account_id]


class TestEnrollRoot:
    """Accounts without a sponsor."""

    @pytest.mark.asyncio
    async def test_root_account(self, session_factory, dispatcher, notification_sink):
        """No sponsor code gives an empty chain and the signup bonus."""
        async with session_factory() as session:
            result = await EnrollmentService(session, dispatcher=dispatcher).enroll(
                full_name="  Root User ", email="Root@Example.com"
            )

        account = result.account
        assert result.warning is None
        assert result.sponsor_id is None
        assert account.ancestors == []
        assert account.sponsor_code is None
        assert account.full_name == "Root User"
        assert account.email == "root@example.com"
        assert account.referral_code
        assert account.balance == Decimal("2.00")
        assert account.referral_earnings == Decimal("0")
        assert account.status == AccountStatus.ACTIVE
        assert _kinds_for(notification_sink, account.id) == [NotificationKind.WELCOME]

    @pytest.mark.asyncio
    async def test_as_dict(self, session_factory, dispatcher):
        """External result exposes account id and referral code."""
        async with session_factory() as session:
            result = await EnrollmentService(session, dispatcher=dispatcher).enroll(
                full_name="Root", email="root@example.com"
            )

        assert result.as_dict() == {
            "account_id": result.account_id,
            "referral_code": result.referral_code,
        }


class TestEnrollWithSponsor:
    """Chain construction from the sponsor."""

    @pytest.mark.asyncio
    async def test_direct_sponsor(self, enroll, fetch_account, notification_sink):
        """Child chain is [sponsor]; sponsor counter and notification follow."""
        root = await enroll("Root")
        child = await enroll("Child", sponsor=root)

        assert child.ancestors == [root.id]
        assert child.sponsor_code == root.referral_code

        stored_root = await fetch_account(root.id)
        assert stored_root.direct_referral_count == 1

        new_referral_calls = [
            c for c in notification_sink.call_args_list
            if c.args[1] == NotificationKind.NEW_REFERRAL
        ]
        assert len(new_referral_calls) == 1
        assert new_referral_calls[0].args[0] == root.id
        assert new_referral_calls[0].args[2]["new_account_id"] == child.id

    @pytest.mark.asyncio
    async def test_chain_is_truncated_at_five(self, enroll_chain, fetch_account):
        """A..G linear: G's chain is [F, E, D, C, B]; A drops out."""
        a, b, c, d, e, f, g = await enroll_chain("A", "B", "C", "D", "E", "F", "G")

        stored = await fetch_account(g.id)

        assert stored.ancestors == [f.id, e.id, d.id, c.id, b.id]
        assert a.id not in stored.ancestors

    @pytest.mark.asyncio
    async def test_chain_prefix_property(self, enroll_chain, fetch_account):
        """chain(child)[1:] is a prefix of chain(sponsor)."""
        accounts = await enroll_chain("A", "B", "C", "D", "E", "F", "G", "H")

        for sponsor, child in zip(accounts, accounts[1:]):
            stored_child = await fetch_account(child.id)
            stored_sponsor = await fetch_account(sponsor.id)
            tail = stored_child.ancestors[1:]
            assert stored_child.ancestors[0] == sponsor.id
            assert stored_sponsor.ancestors[: len(tail)] == tail

    @pytest.mark.asyncio
    async def test_unknown_referral_code(self, session_factory, dispatcher):
        """An unknown code never blocks enrollment: root account plus warning."""
        async with session_factory() as session:
            result = await EnrollmentService(session, dispatcher=dispatcher).enroll(
                full_name="Lost", email="lost@example.com", sponsor_code="NOPE1234"
            )

        assert result.warning == INVALID_REFERRAL_CODE_WARNING
        assert result.account.ancestors == []
        assert result.as_dict()["warning"] == INVALID_REFERRAL_CODE_WARNING

    @pytest.mark.asyncio
    async def test_blank_referral_code_is_no_sponsor(self, session_factory, dispatcher):
        """Whitespace-only code means no sponsor and no warning."""
        async with session_factory() as session:
            result = await EnrollmentService(session, dispatcher=dispatcher).enroll(
                full_name="Blank", email="blank@example.com", sponsor_code="   "
            )

        assert result.warning is None
        assert result.account.ancestors == []

    @pytest.mark.asyncio
    async def test_suspended_sponsor_is_not_used(
        self, enroll, session_factory, dispatcher
    ):
        """A suspended account's code is treated as unknown."""
        root = await enroll("Root")
        async with session_factory() as session:
            await AdminAccountService(session).set_status(
                root.id, AccountStatus.SUSPENDED
            )

        async with session_factory() as session:
            result = await EnrollmentService(session, dispatcher=dispatcher).enroll(
                full_name="Child",
                email="child@example.com",
                sponsor_code=root.referral_code,
            )

        assert result.warning == INVALID_REFERRAL_CODE_WARNING
        assert result.account.ancestors == []


class TestEnrollValidation:
    """Rejected enrollments leave no trace."""

    @pytest.mark.asyncio
    async def test_duplicate_email(self, enroll, session_factory, dispatcher):
        """Emails are unique regardless of case."""
        async with session_factory() as session:
            service = EnrollmentService(session, dispatcher=dispatcher)
            await service.enroll(full_name="First", email="same@example.com")

            with pytest.raises(DuplicateAccountError):
                await service.enroll(full_name="Second", email="SAME@example.com")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "full_name,email",
        [("", "a@example.com"), ("Name", "not-an-email"), ("Name", "")],
    )
    async def test_invalid_input(
        self, session_factory, dispatcher, notification_sink, full_name, email
    ):
        """Bad name or email raises ValidationError and creates nothing."""
        async with session_factory() as session:
            with pytest.raises(ValidationError):
                await EnrollmentService(session, dispatcher=dispatcher).enroll(
                    full_name=full_name, email=email
                )

        async with session_factory() as session:
            count = await session.scalar(select(func.count(Account.id)))

        assert count == 0
        notification_sink.assert_not_called()

    @pytest.mark.asyncio
    async def test_referral_codes_are_unique(self, enroll):
        """Every account gets its own referral code."""
        accounts = [await enroll(f"User {n}") for n in range(20)]

        codes = {account.referral_code for account in accounts}
        assert len(codes) == 20


class TestSponsorCounter:
    """The direct referral counter is best-effort."""

    @pytest.mark.asyncio
    async def test_counter_failure_does_not_fail_enrollment(
        self, enroll, fetch_account
    ):
        """Enrollment commits even when the counter update fails."""
        root = await enroll("Root")

        failing = AsyncMock(
            side_effect=OperationalError("UPDATE", {}, Exception("locked"))
        )
        with patch(
            "upline.repositories.account_repository.AccountRepository."
            "increment_direct_referral_count",
            new=failing,
        ):
            child = await enroll("Child", sponsor=root)

        stored_child = await fetch_account(child.id)
        stored_root = await fetch_account(root.id)

        assert stored_child.ancestors == [root.id]
        assert stored_root.direct_referral_count == 0

    @pytest.mark.asyncio
    async def test_counter_error_with_braces_is_swallowed(
        self, enroll, fetch_account, notification_sink
    ):
        """An error text that looks like a format field is logged, not raised."""
        root = await enroll("Root")

        failing = AsyncMock(
            side_effect=RuntimeError("rejected row {'sponsor_id': 'x'}")
        )
        with patch(
            "upline.repositories.account_repository.AccountRepository."
            "increment_direct_referral_count",
            new=failing,
        ):
            child = await enroll("Child", sponsor=root)

        assert (await fetch_account(child.id)).ancestors == [root.id]
        kinds = [c.args[1] for c in notification_sink.call_args_list]
        assert NotificationKind.WELCOME in kinds

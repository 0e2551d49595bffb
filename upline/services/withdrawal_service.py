"""
Withdrawal service.

Pays out referral earnings. The requested amount is held (debited) when the
request is created and restored if an admin rejects it.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from upline.config.settings import settings
from upline.models.withdrawal import WithdrawalRequest, WithdrawalStatus
from upline.repositories.account_repository import AccountRepository
from upline.repositories.withdrawal_repository import WithdrawalRepository
from upline.services.base_service import BaseService, log_operation, transaction
from upline.services.notification_dispatcher import (
    NotificationDispatcher,
    NotificationKind,
    default_dispatcher,
)
from upline.utils.exceptions import (
    InsufficientFundsError,
    InvalidStateError,
    ValidationError,
)
from upline.utils.money import require_positive
from upline.utils.validation import sanitize_input

METHOD_MAX_LENGTH = 64
DETAILS_MAX_LENGTH = 1000


class WithdrawalService(BaseService):
    """Withdrawal requests over referral earnings."""

    def __init__(
        self,
        session: AsyncSession,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        """Initialize withdrawal service."""
        super().__init__(session)
        self.account_repo = AccountRepository(session)
        self.withdrawal_repo = WithdrawalRepository(session)
        self.dispatcher = dispatcher or default_dispatcher

    async def request_withdrawal(
        self,
        account_id: str,
        amount: Any,
        method: str,
        details: str,
    ) -> WithdrawalRequest:
        """
        Request a payout of referral earnings.

        Args:
            account_id: Account ID
            amount: Amount to withdraw
            method: Payout method (e.g. "paypal", "bank")
            details: Payout details (account number, address)

        Returns:
            Pending withdrawal request

        Raises:
            ValidationError: Bad amount, below minimum, empty method/details
            AccountNotFoundError: Unknown account
            InvalidStateError: Account suspended
            InsufficientFundsError: Amount exceeds referral earnings
        """
        value = require_positive(amount, "amount")
        if value < settings.minimum_withdrawal:
            raise ValidationError(
                f"Minimum withdrawal is {settings.minimum_withdrawal}"
            )

        clean_method = sanitize_input(method or "", METHOD_MAX_LENGTH)
        clean_details = sanitize_input(details or "", DETAILS_MAX_LENGTH)
        if not clean_method:
            raise ValidationError("Withdrawal method is required")
        if not clean_details:
            raise ValidationError("Withdrawal details are required")

        request = await self._hold_and_create(
            account_id, value, clean_method, clean_details
        )

        self.logger.info(
            "Withdrawal requested",
            extra={
                "account_id": account_id,
                "request_id": request.id,
                "amount": str(value),
                "method": clean_method,
            },
        )

        self.dispatcher.notify(
            account_id,
            NotificationKind.WITHDRAWAL_REQUESTED,
            {"request_id": request.id, "amount": value, "method": clean_method},
        )

        return request

    @transaction
    async def _hold_and_create(
        self, account_id: str, amount: Decimal, method: str, details: str
    ) -> WithdrawalRequest:
        account = await self.require_account(account_id)
        if not account.is_active:
            raise InvalidStateError("Suspended accounts cannot withdraw")

        # Guarded debit: only matches while earnings cover the amount
        debited = await self.account_repo.adjust_referral_earnings(
            account_id, -amount
        )
        if not debited:
            raise InsufficientFundsError(
                "Withdrawal amount exceeds available referral earnings"
            )

        return await self.withdrawal_repo.create(
            account_id=account_id,
            amount=amount,
            method=method,
            details=details,
            status=WithdrawalStatus.PENDING,
        )

    @log_operation
    @transaction
    async def reject_withdrawal(
        self, request_id: int, note: str | None = None
    ) -> WithdrawalRequest:
        """
        Reject a pending request and restore the held amount.

        Args:
            request_id: Request ID
            note: Admin note

        Returns:
            Updated request

        Raises:
            InvalidStateError: Request missing or not pending
        """
        request = await self._get_pending(request_id)

        if not await self.withdrawal_repo.transition(
            request_id, WithdrawalStatus.REJECTED, note
        ):
            raise InvalidStateError(f"Withdrawal {request_id} is not pending")

        await self.account_repo.adjust_referral_earnings(
            request.account_id, request.amount
        )

        await self.session.refresh(request)
        return request

    @log_operation
    @transaction
    async def complete_withdrawal(
        self, request_id: int, note: str | None = None
    ) -> WithdrawalRequest:
        """
        Mark a pending request as paid out.

        Raises:
            InvalidStateError: Request missing or not pending
        """
        request = await self._get_pending(request_id)

        if not await self.withdrawal_repo.transition(
            request_id, WithdrawalStatus.COMPLETED, note
        ):
            raise InvalidStateError(f"Withdrawal {request_id} is not pending")

        await self.session.refresh(request)
        return request

    async def get_pending_withdrawals(
        self, account_id: str
    ) -> list[WithdrawalRequest]:
        """Get pending requests of an account."""
        return await self.withdrawal_repo.get_pending_by_account(account_id)

    async def _get_pending(self, request_id: int) -> WithdrawalRequest:
        request = await self.withdrawal_repo.get_by_id(request_id)
        if request is None:
            raise InvalidStateError(f"Withdrawal {request_id} not found")
        if not request.is_pending:
            raise InvalidStateError(
                f"Withdrawal {request_id} is already {request.status}"
            )
        return request

"""
Admin account service.

Manual corrections from the admin panel: signed balance adjustments and
account suspension.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from upline.models.account import Account, AccountStatus
from upline.repositories.account_repository import AccountRepository
from upline.services.base_service import BaseService, log_operation, transaction
from upline.utils.exceptions import (
    InsufficientFundsError,
    ValidationError,
)
from upline.utils.money import to_decimal
from upline.utils.validation import sanitize_input


class AdminAccountService(BaseService):
    """Admin operations on accounts."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize admin account service."""
        super().__init__(session)
        self.account_repo = AccountRepository(session)

    @log_operation
    @transaction
    async def adjust_balance(
        self, account_id: str, delta: Any, reason: str
    ) -> Account:
        """
        Apply a signed correction to the spend balance.

        Args:
            account_id: Account ID
            delta: Signed amount (non-zero)
            reason: Audit reason

        Returns:
            Account with fresh values

        Raises:
            ValidationError: Zero or invalid delta, empty reason
            AccountNotFoundError: Unknown account
            InsufficientFundsError: Balance would become negative
        """
        value, clean_reason = self._validate_adjustment(delta, reason)
        account = await self.require_account(account_id)

        if not await self.account_repo.adjust_balance(account_id, value):
            raise InsufficientFundsError("Balance cannot become negative")

        self.logger.info(
            "Balance adjusted by admin",
            extra={
                "account_id": account_id,
                "delta": str(value),
                "reason": clean_reason,
            },
        )

        await self.session.refresh(account)
        return account

    @log_operation
    @transaction
    async def adjust_referral_earnings(
        self, account_id: str, delta: Any, reason: str
    ) -> Account:
        """
        Apply a signed correction to referral earnings.

        Raises:
            ValidationError: Zero or invalid delta, empty reason
            AccountNotFoundError: Unknown account
            InsufficientFundsError: Earnings would become negative
        """
        value, clean_reason = self._validate_adjustment(delta, reason)
        account = await self.require_account(account_id)

        if not await self.account_repo.adjust_referral_earnings(account_id, value):
            raise InsufficientFundsError("Referral earnings cannot become negative")

        self.logger.info(
            "Referral earnings adjusted by admin",
            extra={
                "account_id": account_id,
                "delta": str(value),
                "reason": clean_reason,
            },
        )

        await self.session.refresh(account)
        return account

    @transaction
    async def set_status(self, account_id: str, status: str) -> Account:
        """
        Activate or suspend an account.

        Suspended accounts keep their place in every ancestor chain and
        keep receiving commission; they cannot sponsor or withdraw.

        Raises:
            ValidationError: Unknown status
            AccountNotFoundError: Unknown account
        """
        if status not in AccountStatus.ALL:
            raise ValidationError(f"Unknown account status: {status}")

        account = await self.require_account(account_id)
        await self.account_repo.update(account_id, status=status)

        self.logger.info(
            "Account status changed",
            extra={"account_id": account_id, "status": status},
        )
        return account

    @staticmethod
    def _validate_adjustment(delta: Any, reason: str) -> tuple:
        value = to_decimal(delta, "delta")
        if value == 0:
            raise ValidationError("delta must not be zero")
        clean_reason = sanitize_input(reason or "", 500)
        if not clean_reason:
            raise ValidationError("reason is required")
        return value, clean_reason

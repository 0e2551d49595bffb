"""
Deposit confirmation service.

Entry point for the payment flow once a deposit is confirmed: credits the
account's spend balance and distributes referral commission. Both writes
share one transaction keyed by the payment id, so a repeated confirmation
of the same payment changes nothing.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from upline.models.commission import CommissionSource
from upline.repositories.account_repository import AccountRepository
from upline.services.base_service import BaseService
from upline.services.commission_service import CommissionService, CreditLine
from upline.services.notification_dispatcher import NotificationDispatcher
from upline.utils.exceptions import AccountNotFoundError, ValidationError
from upline.utils.money import require_positive


class DepositConfirmationService(BaseService):
    """Confirms deposits and triggers commission distribution."""

    def __init__(
        self,
        session: AsyncSession,
        commission_service: CommissionService | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        """
        Initialize deposit confirmation service.

        Args:
            session: Async database session
            commission_service: Distribution engine (built on the session by default)
            dispatcher: Notification dispatcher for the default engine
        """
        super().__init__(session)
        self.account_repo = AccountRepository(session)
        self.commission_service = commission_service or CommissionService(
            session, dispatcher=dispatcher
        )

    async def confirm_deposit(
        self, account_id: str, amount: Any, payment_id: str
    ) -> list[CreditLine]:
        """
        Confirm a deposit.

        Args:
            account_id: Depositing account
            amount: Confirmed amount
            payment_id: Payment processor id, used as the event key

        Returns:
            Commission credits of the deposit

        Raises:
            ValidationError: Bad amount or payment id
            AccountNotFoundError: Unknown account
        """
        value = require_positive(amount, "amount")
        if not payment_id or not str(payment_id).strip():
            raise ValidationError("payment_id is required")
        event_key = f"deposit:{str(payment_id).strip()}"

        async def credit_balance() -> None:
            if not await self.account_repo.adjust_balance(account_id, value):
                raise AccountNotFoundError(account_id)

        credits = await self.commission_service.distribute_commission(
            beneficiary_id=account_id,
            gross_amount=value,
            event_key=event_key,
            source=CommissionSource.DEPOSIT,
            apply_hook=credit_balance,
        )

        self.logger.info(
            "Deposit confirmed",
            extra={
                "account_id": account_id,
                "payment_id": payment_id,
                "amount": str(value),
                "credits_count": len(credits),
            },
        )
        return credits

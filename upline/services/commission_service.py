"""
Commission service.

Distributes a share of a qualifying payment (deposit or subscription) over
the beneficiary's ancestor chain.

Every distribution is one database transaction that writes the intent
record, applies one atomic increment per ancestor, stores the credit rows
and marks the intent applied. Either all of it commits or none of it does.
The intent's unique event key makes a repeated call for the same payment
return the stored credits instead of crediting again.
"""

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from upline.config.constants import DEFAULT_PAGE_SIZE
from upline.config.settings import settings
from upline.models.commission import (
    CommissionCredit,
    CommissionEvent,
    CommissionEventStatus,
    CommissionSource,
)
from upline.repositories.account_repository import AccountRepository
from upline.repositories.commission_repository import (
    CommissionCreditRepository,
    CommissionEventRepository,
)
from upline.services.base_service import BaseService
from upline.services.commission_calculator import (
    CommissionCalculator,
    LevelShare,
)
from upline.services.notification_dispatcher import (
    NotificationDispatcher,
    NotificationKind,
    default_dispatcher,
)
from upline.utils.exceptions import (
    AccountNotFoundError,
    CommissionApplyError,
    CommissionDistributionError,
    ValidationError,
)
from upline.utils.money import require_positive
from upline.utils.retry import call_with_retry
from upline.utils.validation import validate_pagination

EVENT_KEY_MAX_LENGTH = 128

# Extra write run inside the distribution transaction of a new event
ApplyHook = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class CreditLine:
    """One ancestor credit of a distribution."""

    ancestor_id: str
    level: int
    amount: Decimal

    @classmethod
    def from_credit(cls, credit: CommissionCredit) -> "CreditLine":
        """Build from a stored credit row."""
        return cls(
            ancestor_id=credit.ancestor_id,
            level=credit.level,
            amount=credit.amount,
        )

    def as_dict(self) -> dict[str, Any]:
        """External representation."""
        return {
            "ancestor_account_id": self.ancestor_id,
            "credited_amount": self.amount,
        }


@dataclass
class _Outcome:
    """Result of one distribution attempt."""

    credits: list[CreditLine]
    newly_applied: bool


class CommissionService(BaseService):
    """Commission distribution engine."""

    def __init__(
        self,
        session: AsyncSession,
        calculator: CommissionCalculator | None = None,
        dispatcher: NotificationDispatcher | None = None,
        max_attempts: int | None = None,
        backoff_base: float | None = None,
        backoff_max: float | None = None,
    ) -> None:
        """
        Initialize commission service.

        Args:
            session: Async database session
            calculator: Commission schedule (settings by default)
            dispatcher: Notification dispatcher
            max_attempts: Transaction attempts on transient errors
            backoff_base: Initial backoff in seconds
            backoff_max: Backoff ceiling in seconds
        """
        super().__init__(session)
        self.account_repo = AccountRepository(session)
        self.event_repo = CommissionEventRepository(session)
        self.credit_repo = CommissionCreditRepository(session)
        self.calculator = calculator or CommissionCalculator()
        self.dispatcher = dispatcher or default_dispatcher
        self.max_attempts = max_attempts or settings.commission_max_attempts
        self.backoff_base = (
            backoff_base
            if backoff_base is not None
            else settings.commission_backoff_base
        )
        self.backoff_max = (
            backoff_max
            if backoff_max is not None
            else settings.commission_backoff_max
        )

    async def distribute_commission(
        self,
        beneficiary_id: str,
        gross_amount: Any,
        event_key: str | None = None,
        source: str = CommissionSource.DEPOSIT,
        apply_hook: ApplyHook | None = None,
    ) -> list[CreditLine]:
        """
        Distribute commission for a qualifying event.

        Args:
            beneficiary_id: Account whose payment triggered the distribution
            gross_amount: Qualifying amount (> 0)
            event_key: Stable id of the real-world event (payment id).
                Generated once per call when omitted.
            source: CommissionSource value
            apply_hook: Coroutine function run once, in the same
                transaction, when the event is recorded for the first time.
                Not run on replays.

        Returns:
            Credits applied, level 1 first (empty if no ancestors)

        Raises:
            ValidationError: Bad amount, source or event key
            AccountNotFoundError: Unknown beneficiary
            CommissionApplyError: Store integrity problem, nothing credited
            CommissionDistributionError: Retries exhausted, nothing credited
        """
        amount = require_positive(gross_amount, "gross_amount")
        if source not in CommissionSource.ALL:
            raise ValidationError(f"Unknown commission source: {source}")
        key = self._normalize_event_key(event_key)

        async def attempt() -> _Outcome:
            try:
                return await self._distribute_once(
                    beneficiary_id, amount, key, source, apply_hook
                )
            except Exception:
                await self.safe_rollback()
                raise

        outcome = await call_with_retry(
            attempt,
            max_attempts=self.max_attempts,
            base_delay=self.backoff_base,
            max_delay=self.backoff_max,
            operation_name=f"Commission distribution {key}",
            exhausted_error=CommissionDistributionError,
        )

        if outcome.newly_applied:
            self.logger.info(
                "Commission distributed",
                extra={
                    "beneficiary_id": beneficiary_id,
                    "event_key": key,
                    "source": source,
                    "gross_amount": str(amount),
                    "total_credited": str(
                        sum((c.amount for c in outcome.credits), Decimal("0"))
                    ),
                    "credits_count": len(outcome.credits),
                },
            )
            self._notify_direct_sponsor(beneficiary_id, key, source, outcome.credits)
        else:
            self.logger.debug(
                "Commission distribution produced no new credits",
                extra={"beneficiary_id": beneficiary_id, "event_key": key},
            )

        return outcome.credits

    async def apply_event(self, event: CommissionEvent) -> list[CreditLine]:
        """
        Apply the credits of an intent record.

        Already applied events are a no-op returning the stored credits.
        The caller owns the transaction (commit / rollback).

        Args:
            event: Commission event (pending or applied)

        Returns:
            Credits of the event, level 1 first

        Raises:
            CommissionApplyError: Ancestor missing or event applied concurrently
        """
        await self.session.refresh(event)

        if event.is_applied:
            return await self._stored_credits(event.id)

        ancestors = await self.account_repo.get_ancestors(event.beneficiary_id)
        if ancestors is None:
            raise CommissionApplyError(
                f"Beneficiary {event.beneficiary_id} of event "
                f"{event.event_key} no longer exists"
            )

        calculator = CommissionCalculator(
            pool_rate=event.pool_rate,
            level_rates=self.calculator.level_rates,
            quantum=self.calculator.quantum,
        )
        shares = calculator.split(event.gross_amount, ancestors)
        return await self._apply_shares(event, shares)

    async def get_event_credits(self, event_key: str) -> list[CreditLine] | None:
        """
        Get the credits applied for an event key.

        Args:
            event_key: Event key

        Returns:
            Credits, or None if the key is unknown
        """
        event = await self.event_repo.get_by_key(event_key)
        if event is None:
            return None
        return await self._stored_credits(event.id)

    async def get_earnings_history(
        self, account_id: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> dict:
        """
        Get commission credits received by an account.

        Uses SQL aggregation for the totals.

        Args:
            account_id: Receiving account ID
            page: Page number
            limit: Items per page

        Returns:
            Dict with credits, total, total_amount, page, pages

        Raises:
            ValidationError: limit out of range
        """
        page, offset = validate_pagination(page, limit)

        credits = await self.credit_repo.get_by_ancestor(
            account_id, limit=limit, offset=offset
        )
        total, total_amount = await self.credit_repo.get_totals_by_ancestor(
            account_id
        )
        pages = (total + limit - 1) // limit if total > 0 else 0

        return {
            "credits": credits,
            "total": total,
            "total_amount": total_amount,
            "page": page,
            "pages": pages,
        }

    async def process_agency_subscription(
        self, account_id: str, payment_id: str
    ) -> list[CreditLine]:
        """
        Distribute commission for a confirmed agency subscription payment.

        Args:
            account_id: Subscribing account
            payment_id: Payment confirmation id

        Returns:
            Credits applied
        """
        return await self.distribute_commission(
            beneficiary_id=account_id,
            gross_amount=settings.agency_fee,
            event_key=f"subscription:{payment_id}",
            source=CommissionSource.SUBSCRIPTION,
        )

    async def _distribute_once(
        self,
        beneficiary_id: str,
        amount: Decimal,
        event_key: str,
        source: str,
        apply_hook: ApplyHook | None = None,
    ) -> _Outcome:
        """One transactional attempt of a distribution."""
        existing = await self.event_repo.get_by_key(event_key)
        if existing is not None:
            return await self._replay(existing, beneficiary_id, amount)

        ancestors = await self.account_repo.get_ancestors(beneficiary_id)
        if ancestors is None:
            raise AccountNotFoundError(beneficiary_id)

        # Recorded even when no ancestor is owed anything, so the key
        # still guards the payment against replays
        shares = self.calculator.split(amount, ancestors)

        try:
            event = await self.event_repo.create(
                event_key=event_key,
                beneficiary_id=beneficiary_id,
                source=source,
                gross_amount=amount,
                pool_rate=self.calculator.pool_rate,
                pool_amount=self.calculator.calculate_pool(amount),
                status=CommissionEventStatus.PENDING,
            )
            if apply_hook is not None:
                await apply_hook()
            credits = await self._apply_shares(event, shares)
            await self.commit()
        except IntegrityError as e:
            # Another transaction committed the same event key first
            await self.safe_rollback()
            existing = await self.event_repo.get_by_key(event_key)
            if existing is None:
                raise CommissionApplyError(
                    f"Integrity error while applying {event_key}: {e.orig}"
                ) from e
            return await self._replay(existing, beneficiary_id, amount)

        return _Outcome(credits=credits, newly_applied=True)

    async def _replay(
        self,
        event: CommissionEvent,
        beneficiary_id: str,
        amount: Decimal,
    ) -> _Outcome:
        """Return the outcome of an event that already exists."""
        if event.beneficiary_id != beneficiary_id or event.gross_amount != amount:
            raise ValidationError(
                f"Event key {event.event_key} was already used for a "
                f"different payment"
            )

        was_applied = event.status == CommissionEventStatus.APPLIED
        credits = await self.apply_event(event)
        await self.commit()

        if was_applied:
            self.logger.info(
                "Commission event already applied, returning stored credits",
                extra={"event_key": event.event_key},
            )
        return _Outcome(credits=credits, newly_applied=not was_applied)

    async def _apply_shares(
        self, event: CommissionEvent, shares: list[LevelShare]
    ) -> list[CreditLine]:
        """Increment every ancestor, store the credit rows, mark applied."""
        total = Decimal("0")

        for share in shares:
            credited = await self.account_repo.credit_referral_earnings(
                share.ancestor_id, share.amount
            )
            if not credited:
                raise CommissionApplyError(
                    f"Ancestor {share.ancestor_id} (level {share.level}) "
                    f"of event {event.event_key} not found"
                )

            self.session.add(
                CommissionCredit(
                    event_id=event.id,
                    ancestor_id=share.ancestor_id,
                    level=share.level,
                    rate=share.rate,
                    amount=share.amount,
                )
            )
            total += share.amount

            self.logger.debug(
                "Commission credit queued",
                extra={
                    "event_key": event.event_key,
                    "ancestor_id": share.ancestor_id,
                    "level": share.level,
                    "rate": str(share.rate),
                    "amount": str(share.amount),
                },
            )

        await self.session.flush()

        if not await self.event_repo.mark_applied(event.id, total):
            raise CommissionApplyError(
                f"Event {event.event_key} was applied concurrently"
            )

        return [
            CreditLine(
                ancestor_id=share.ancestor_id,
                level=share.level,
                amount=share.amount,
            )
            for share in shares
        ]

    async def _stored_credits(self, event_id: int) -> list[CreditLine]:
        """Load stored credits of an event."""
        credits = await self.credit_repo.get_by_event(event_id)
        return [CreditLine.from_credit(credit) for credit in credits]

    def _notify_direct_sponsor(
        self,
        beneficiary_id: str,
        event_key: str,
        source: str,
        credits: list[CreditLine],
    ) -> None:
        """Tell the level 1 ancestor about the bonus (fire-and-forget)."""
        for credit in credits:
            if credit.level != 1:
                continue
            self.dispatcher.notify(
                credit.ancestor_id,
                NotificationKind.REFERRAL_BONUS,
                {
                    "beneficiary_id": beneficiary_id,
                    "amount": credit.amount,
                    "level": credit.level,
                    "source": source,
                    "event_key": event_key,
                },
            )

    @staticmethod
    def _normalize_event_key(event_key: str | None) -> str:
        """Validate a caller key or generate one for this call."""
        if event_key is None:
            return f"auto:{uuid.uuid4().hex}"
        if not isinstance(event_key, str) or not event_key.strip():
            raise ValidationError("event_key must be a non-empty string")
        key = event_key.strip()
        if len(key) > EVENT_KEY_MAX_LENGTH:
            raise ValidationError(
                f"event_key must be at most {EVENT_KEY_MAX_LENGTH} characters"
            )
        return key

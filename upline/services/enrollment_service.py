"""
Enrollment service.

Creates accounts and attaches them to the referral network. The new
account's ancestor chain is the sponsor followed by the sponsor's own
chain, truncated to MAX_ANCESTOR_DEPTH, and is never rewritten.
"""

import secrets
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from upline.config.constants import MAX_ANCESTOR_DEPTH, REFERRAL_CODE_MAX_ATTEMPTS
from upline.config.settings import settings
from upline.models.account import Account, generate_account_id
from upline.repositories.account_repository import AccountRepository
from upline.services.base_service import BaseService
from upline.services.notification_dispatcher import (
    NotificationDispatcher,
    NotificationKind,
    default_dispatcher,
)
from upline.utils.exceptions import DuplicateAccountError, ReferralEngineError
from upline.utils.validation import (
    normalize_email,
    normalize_full_name,
    normalize_referral_code,
)

INVALID_REFERRAL_CODE_WARNING = (
    "Referral code not recognized; the account was created without a sponsor"
)


@dataclass
class EnrollmentResult:
    """Result of an enrollment."""

    account: Account
    sponsor_id: str | None = None
    warning: str | None = None

    @property
    def account_id(self) -> str:
        """New account ID."""
        return self.account.id

    @property
    def referral_code(self) -> str:
        """New account's own referral code."""
        return self.account.referral_code

    def as_dict(self) -> dict[str, Any]:
        """External representation."""
        data = {
            "account_id": self.account_id,
            "referral_code": self.referral_code,
        }
        if self.warning:
            data["warning"] = self.warning
        return data


class EnrollmentService(BaseService):
    """Enrollment service for new accounts."""

    def __init__(
        self,
        session: AsyncSession,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        """Initialize enrollment service."""
        super().__init__(session)
        self.account_repo = AccountRepository(session)
        self.dispatcher = dispatcher or default_dispatcher

    async def enroll(
        self,
        full_name: str,
        email: str,
        sponsor_code: str | None = None,
    ) -> EnrollmentResult:
        """
        Enroll a new account.

        An unknown sponsor code never blocks enrollment: the account is
        created as a root and the result carries a warning.

        Args:
            full_name: Display name
            email: Email address
            sponsor_code: Referral code presented at signup (optional)

        Returns:
            EnrollmentResult

        Raises:
            ValidationError: Invalid name or email
            DuplicateAccountError: Email already registered
        """
        name = normalize_full_name(full_name)
        normalized_email = normalize_email(email)
        code = normalize_referral_code(sponsor_code)

        try:
            if await self.account_repo.exists(email=normalized_email):
                raise DuplicateAccountError("Email already registered")

            sponsor, warning = await self._resolve_sponsor(code)
            ancestors = build_ancestor_chain(sponsor)
            referral_code = await self._generate_referral_code()

            account = await self.account_repo.create(
                id=generate_account_id(),
                full_name=name,
                email=normalized_email,
                referral_code=referral_code,
                sponsor_code=sponsor.referral_code if sponsor else None,
                balance=settings.signup_bonus,
                **Account.chain_fields(ancestors),
            )
            await self.commit()

        except IntegrityError as e:
            await self.rollback()
            if await self.account_repo.get_by_email(normalized_email):
                raise DuplicateAccountError("Email already registered") from e
            raise
        except Exception:
            await self.rollback()
            raise

        self.logger.info(
            "Account enrolled",
            extra={
                "account_id": account.id,
                "has_sponsor": sponsor is not None,
                "depth": len(ancestors),
            },
        )

        if sponsor:
            await self._increment_sponsor_counter(sponsor.id)
            self.dispatcher.notify(
                sponsor.id,
                NotificationKind.NEW_REFERRAL,
                {"new_account_id": account.id, "new_account_name": account.full_name},
            )

        self.dispatcher.notify(
            account.id,
            NotificationKind.WELCOME,
            {"full_name": account.full_name, "signup_bonus": settings.signup_bonus},
        )

        return EnrollmentResult(
            account=account,
            sponsor_id=sponsor.id if sponsor else None,
            warning=warning,
        )

    async def _resolve_sponsor(
        self, code: str | None
    ) -> tuple[Account | None, str | None]:
        """
        Resolve a referral code to an active sponsor.

        Returns:
            Tuple of (sponsor or None, warning or None)
        """
        if code is None:
            return None, None

        sponsor = await self.account_repo.get_by_referral_code(code)
        if sponsor is None or not sponsor.is_active:
            self.logger.warning(
                "Invalid referral code at enrollment",
                extra={
                    "referral_code": code,
                    "sponsor_found": sponsor is not None,
                },
            )
            return None, INVALID_REFERRAL_CODE_WARNING

        return sponsor, None

    async def _generate_referral_code(self) -> str:
        """Generate a referral code not used by any account."""
        for _ in range(REFERRAL_CODE_MAX_ATTEMPTS):
            referral_code = secrets.token_urlsafe(settings.referral_code_bytes)
            # Check if exists (unlikely collision but safe to check)
            exists = await self.account_repo.get_by_referral_code(referral_code)
            if not exists:
                return referral_code

        raise ReferralEngineError("Could not generate a unique referral code")

    async def _increment_sponsor_counter(self, sponsor_id: str) -> None:
        """
        Bump the sponsor's direct referral counter.

        Runs in its own transaction after the account is committed; a failure
        leaves the counter behind and is repaired by recounting.
        """
        try:
            await self.account_repo.increment_direct_referral_count(sponsor_id)
            await self.commit()
        except Exception as e:
            await self.safe_rollback()
            self.logger.warning(
                "Failed to increment direct referral count: {}",
                e,
                extra={"sponsor_id": sponsor_id},
            )


def build_ancestor_chain(sponsor: Account | None) -> list[str]:
    """
    Build a new account's ancestor chain from its sponsor.

    Args:
        sponsor: Resolved sponsor, or None for a root account

    Returns:
        [sponsor.id] + sponsor.ancestors, truncated to MAX_ANCESTOR_DEPTH
    """
    if sponsor is None:
        return []
    return ([sponsor.id] + sponsor.ancestors)[:MAX_ANCESTOR_DEPTH]

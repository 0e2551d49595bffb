"""
Account model.

Represents a registered platform account and its place in the referral
network.
"""

import uuid
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from upline.config.constants import MAX_ANCESTOR_DEPTH
from upline.models.base import Base
from upline.models.types import AccountIdType, MoneyType


class AccountStatus:
    """Account status constants."""

    ACTIVE = "active"
    SUSPENDED = "suspended"

    ALL = (ACTIVE, SUSPENDED)


def generate_account_id() -> str:
    """Generate a new opaque account identifier."""
    return uuid.uuid4().hex


class Account(Base):
    """
    Account entity.

    The ancestor chain is stored as a fixed-width row of five nullable
    account references, nearest sponsor first. It is captured once at
    enrollment and never rewritten, so commission distribution reads the
    whole upline from a single row and downline counts are plain indexed
    lookups on one column per level.

    Attributes:
        id: Opaque account identifier
        full_name: Display name
        email: Unique email (lower-cased)
        referral_code: Code other users present at signup
        sponsor_code: Code this account presented at signup (None for roots)
        ancestor_1..ancestor_5: Ancestor chain snapshot
        balance: Platform spend balance
        referral_earnings: Commission ledger balance (withdrawable)
        direct_referral_count: Denormalized count of level-1 referrals
        status: active / suspended
    """

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint(
            "balance >= 0", name="check_account_balance_non_negative"
        ),
        CheckConstraint(
            "referral_earnings >= 0",
            name="check_account_referral_earnings_non_negative",
        ),
        CheckConstraint(
            "direct_referral_count >= 0",
            name="check_account_direct_referral_count_non_negative",
        ),
    )

    # Primary key
    id: Mapped[str] = mapped_column(
        AccountIdType, primary_key=True, default=generate_account_id
    )

    # Profile
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )

    # Referral identity
    referral_code: Mapped[str] = mapped_column(
        String(32), nullable=False, unique=True, index=True
    )
    sponsor_code: Mapped[str | None] = mapped_column(
        String(32), nullable=True
    )

    # Ancestor chain (write-once snapshot, nearest first)
    ancestor_1: Mapped[str | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True, index=True
    )
    ancestor_2: Mapped[str | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True, index=True
    )
    ancestor_3: Mapped[str | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True, index=True
    )
    ancestor_4: Mapped[str | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True, index=True
    )
    ancestor_5: Mapped[str | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True, index=True
    )

    # Balances
    balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    referral_earnings: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Denormalized, eventually consistent
    direct_referral_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    status: Mapped[str] = mapped_column(
        String(20), default=AccountStatus.ACTIVE, nullable=False, index=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    @classmethod
    def ancestor_column(cls, level: int):
        """
        Get the ancestor column for a level.

        Args:
            level: Level 1..MAX_ANCESTOR_DEPTH

        Returns:
            Mapped column attribute
        """
        if not 1 <= level <= MAX_ANCESTOR_DEPTH:
            raise ValueError(f"Level must be 1..{MAX_ANCESTOR_DEPTH}, got {level}")
        return getattr(cls, f"ancestor_{level}")

    @staticmethod
    def chain_fields(ancestors: list[str]) -> dict[str, str | None]:
        """
        Spread an ancestor list over the fixed-width columns.

        Args:
            ancestors: Ancestor ids, nearest first (at most 5)

        Returns:
            Column values for ancestor_1..ancestor_5
        """
        if len(ancestors) > MAX_ANCESTOR_DEPTH:
            raise ValueError(
                f"Ancestor chain longer than {MAX_ANCESTOR_DEPTH}"
            )
        padded = list(ancestors) + [None] * (MAX_ANCESTOR_DEPTH - len(ancestors))
        return {
            f"ancestor_{level}": padded[level - 1]
            for level in range(1, MAX_ANCESTOR_DEPTH + 1)
        }

    @property
    def ancestors(self) -> list[str]:
        """Ancestor chain, nearest sponsor first."""
        chain = []
        for level in range(1, MAX_ANCESTOR_DEPTH + 1):
            ancestor_id = getattr(self, f"ancestor_{level}")
            if ancestor_id is None:
                break
            chain.append(ancestor_id)
        return chain

    @property
    def sponsor_id(self) -> str | None:
        """Direct sponsor id (level 1 ancestor)."""
        return self.ancestor_1

    @property
    def is_active(self) -> bool:
        """Check if account is active."""
        return self.status == AccountStatus.ACTIVE

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Account(id={self.id!r}, referral_code={self.referral_code!r}, "
            f"depth={len(self.ancestors)})>"
        )

"""
Commission ledger models.

CommissionEvent is the write-ahead intent record of one qualifying event;
CommissionCredit rows are the per-ancestor credits applied for it.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from upline.models.base import Base
from upline.models.types import AccountIdType, MoneyType, RateType


class CommissionEventStatus:
    """Commission event status constants."""

    PENDING = "pending"  # Intent written, credits not applied yet
    APPLIED = "applied"  # All credits applied


class CommissionSource:
    """Qualifying event sources."""

    DEPOSIT = "deposit"
    SUBSCRIPTION = "subscription"

    ALL = (DEPOSIT, SUBSCRIPTION)


class CommissionEvent(Base):
    """
    Commission event entity.

    One row per qualifying event. `event_key` is unique, so a second
    attempt to distribute the same event finds the first one instead of
    crediting again.
    """

    __tablename__ = "commission_events"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    event_key: Mapped[str] = mapped_column(
        String(128), nullable=False, unique=True, index=True
    )
    beneficiary_id: Mapped[str] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    source: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CommissionSource.DEPOSIT
    )

    gross_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    pool_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    pool_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    total_credited: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CommissionEventStatus.PENDING,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    applied_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def is_applied(self) -> bool:
        """Check if credits were applied."""
        return self.status == CommissionEventStatus.APPLIED

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<CommissionEvent(id={self.id}, key={self.event_key!r}, "
            f"gross={self.gross_amount}, status={self.status})>"
        )


class CommissionCredit(Base):
    """Commission credit applied to one ancestor for one event."""

    __tablename__ = "commission_credits"
    __table_args__ = (
        UniqueConstraint("event_id", "level", name="uq_commission_credit_event_level"),
        UniqueConstraint(
            "event_id", "ancestor_id", name="uq_commission_credit_event_ancestor"
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    event_id: Mapped[int] = mapped_column(
        ForeignKey("commission_events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ancestor_id: Mapped[str] = mapped_column(
        AccountIdType,
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<CommissionCredit(event_id={self.event_id}, "
            f"ancestor_id={self.ancestor_id!r}, level={self.level}, "
            f"amount={self.amount})>"
        )

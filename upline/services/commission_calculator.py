"""
Commission calculator.

Encapsulates the commission schedule: pool size and per-level amounts.
Pure computation, no database access.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from upline.config.constants import MAX_ANCESTOR_DEPTH
from upline.config.settings import settings
from upline.utils.money import quantize_down


@dataclass(frozen=True)
class LevelShare:
    """Commission owed to one ancestor."""

    ancestor_id: str
    level: int
    rate: Decimal
    amount: Decimal


class CommissionCalculator:
    """
    Commission calculator for the 5-level schedule.

    Amounts are truncated to the money quantum; the truncated remainder
    is discarded, so the sum of shares never exceeds the pool.
    """

    def __init__(
        self,
        pool_rate: Decimal | None = None,
        level_rates: Sequence[Decimal] | None = None,
        quantum: Decimal | None = None,
    ) -> None:
        """
        Initialize calculator.

        Args:
            pool_rate: Fraction of the gross amount set aside for the pool
            level_rates: Share of the pool per level, level 1 first
            quantum: Smallest monetary unit
        """
        self.pool_rate = (
            pool_rate if pool_rate is not None else settings.commission_pool_rate
        )
        self.level_rates = tuple(
            level_rates
            if level_rates is not None
            else settings.commission_level_rates
        )
        self.quantum = quantum if quantum is not None else settings.money_quantum

        if len(self.level_rates) != MAX_ANCESTOR_DEPTH:
            raise ValueError(
                f"Expected {MAX_ANCESTOR_DEPTH} level rates, "
                f"got {len(self.level_rates)}"
            )

    def calculate_pool(self, gross_amount: Decimal) -> Decimal:
        """
        Calculate the unrounded commission pool.

        Example:
            >>> CommissionCalculator().calculate_pool(Decimal("100"))
            Decimal("10.00")
        """
        return gross_amount * self.pool_rate

    def calculate_level_amount(
        self, gross_amount: Decimal, level: int
    ) -> Decimal:
        """
        Calculate the commission for one level.

        Args:
            gross_amount: Qualifying amount
            level: Level 1..5

        Returns:
            Amount truncated to the money quantum
        """
        rate = self.level_rates[level - 1]
        return quantize_down(
            self.calculate_pool(gross_amount) * rate, self.quantum
        )

    def split(
        self, gross_amount: Decimal, ancestors: Sequence[str]
    ) -> list[LevelShare]:
        """
        Split a qualifying amount over an ancestor chain.

        Levels whose truncated amount is zero are left out.

        Args:
            gross_amount: Qualifying amount (> 0)
            ancestors: Ancestor ids nearest first (at most 5)

        Returns:
            Shares ordered by level
        """
        shares = []
        for index, ancestor_id in enumerate(ancestors[:MAX_ANCESTOR_DEPTH]):
            level = index + 1
            amount = self.calculate_level_amount(gross_amount, level)
            if amount <= 0:
                continue
            shares.append(
                LevelShare(
                    ancestor_id=ancestor_id,
                    level=level,
                    rate=self.level_rates[index],
                    amount=amount,
                )
            )
        return shares

    def max_payout(self, gross_amount: Decimal, depth: int) -> Decimal:
        """
        Theoretical payout for a chain of the given depth, before truncation.

        gross * pool_rate * sum(level_rates[:depth])
        """
        return self.calculate_pool(gross_amount) * sum(
            self.level_rates[:depth], Decimal("0")
        )

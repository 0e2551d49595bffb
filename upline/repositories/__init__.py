"""
Repositories.

Data access layer for all models.
"""

from upline.repositories.account_repository import AccountRepository
from upline.repositories.commission_repository import (
    CommissionCreditRepository,
    CommissionEventRepository,
)
from upline.repositories.withdrawal_repository import WithdrawalRepository

__all__ = [
    "AccountRepository",
    "CommissionEventRepository",
    "CommissionCreditRepository",
    "WithdrawalRepository",
]

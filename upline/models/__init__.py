"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from upline.models.account import Account, AccountStatus
from upline.models.base import Base
from upline.models.commission import (
    CommissionCredit,
    CommissionEvent,
    CommissionEventStatus,
    CommissionSource,
)
from upline.models.withdrawal import WithdrawalRequest, WithdrawalStatus

__all__ = [
    # Base
    "Base",
    # Core Models
    "Account",
    "AccountStatus",
    # Commission Ledger
    "CommissionEvent",
    "CommissionCredit",
    "CommissionEventStatus",
    "CommissionSource",
    # Withdrawals
    "WithdrawalRequest",
    "WithdrawalStatus",
]

"""
Services.

Business logic layer.
"""

# Base Service Infrastructure
from upline.services.base_service import (
    BaseService,
    log_operation,
    transaction,
)

# Core Services
from upline.services.commission_calculator import CommissionCalculator, LevelShare
from upline.services.commission_service import CommissionService, CreditLine
from upline.services.deposit_service import DepositConfirmationService
from upline.services.downline_service import DownlineService
from upline.services.enrollment_service import EnrollmentResult, EnrollmentService
from upline.services.notification_dispatcher import (
    NotificationDispatcher,
    NotificationKind,
)

# Support & Admin Services
from upline.services.admin_account_service import AdminAccountService
from upline.services.withdrawal_service import WithdrawalService

__all__ = [
    # Base
    "BaseService",
    "log_operation",
    "transaction",
    # Core Services
    "CommissionCalculator",
    "LevelShare",
    "CommissionService",
    "CreditLine",
    "DepositConfirmationService",
    "DownlineService",
    "EnrollmentService",
    "EnrollmentResult",
    "NotificationDispatcher",
    "NotificationKind",
    # Support & Admin
    "AdminAccountService",
    "WithdrawalService",
]

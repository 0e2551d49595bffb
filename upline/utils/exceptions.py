"""
Exception handling utilities.

Defines the referral engine error taxonomy and categorized exception types
for retry decisions.
"""

from sqlalchemy.exc import OperationalError


class ReferralEngineError(Exception):
    """Base class for referral engine errors."""
    pass


class ValidationError(ReferralEngineError, ValueError):
    """Raised when input is rejected. No side effects were applied."""
    pass


class AccountNotFoundError(ReferralEngineError, LookupError):
    """Raised when an account id does not resolve."""

    def __init__(self, account_id: str) -> None:
        super().__init__(f"Account {account_id} not found")
        self.account_id = account_id


class DuplicateAccountError(ReferralEngineError):
    """Raised when an email is already registered."""
    pass


class InsufficientFundsError(ReferralEngineError):
    """Raised when a debit would make a balance negative."""
    pass


class InvalidStateError(ReferralEngineError):
    """Raised when an entity is not in a state that allows the operation."""
    pass


class CommissionApplyError(ReferralEngineError):
    """Raised when the commission fan-out cannot be applied consistently."""
    pass


class CommissionDistributionError(ReferralEngineError):
    """Raised when distribution failed after all retries. Nothing was credited."""
    pass


# Exception categories for retry decisions

# Retry with backoff - lock timeouts, serialization failures, dropped connections
TRANSIENT_ERRORS = (
    OperationalError,
)

"""
Referral engine constants.

Centralized constants for the commission engine.
"""

from decimal import Decimal

# ========================================================================
# REFERRAL NETWORK CONSTANTS
# ========================================================================

# Ancestor chain depth (levels 1..5)
MAX_ANCESTOR_DEPTH = 5

# Default commission schedule
DEFAULT_POOL_RATE = Decimal("0.10")  # 10% of the qualifying amount
DEFAULT_LEVEL_RATES = (
    Decimal("0.50"),  # Level 1: 50% of the pool
    Decimal("0.25"),  # Level 2: 25% of the pool
    Decimal("0.125"),  # Level 3: 12.5% of the pool
    Decimal("0.0625"),  # Level 4: 6.25% of the pool
    Decimal("0.0625"),  # Level 5: 6.25% of the pool
)

# Smallest supported monetary unit
DEFAULT_MONEY_QUANTUM = Decimal("0.01")

# Stored money columns: DECIMAL(MONEY_PRECISION, MONEY_SCALE)
MONEY_PRECISION = 18
MONEY_SCALE = 8

# ========================================================================
# ACCOUNT CONSTANTS
# ========================================================================

DEFAULT_SIGNUP_BONUS = Decimal("2.00")
DEFAULT_MINIMUM_WITHDRAWAL = Decimal("10.00")
DEFAULT_AGENCY_FEE = Decimal("40.00")

FULL_NAME_MAX_LENGTH = 255
EMAIL_MAX_LENGTH = 255

# Referral code generation
REFERRAL_CODE_BYTES = 6  # secrets.token_urlsafe(6) -> 8 chars
REFERRAL_CODE_MAX_ATTEMPTS = 10

# ========================================================================
# COMMISSION RETRY CONSTANTS
# ========================================================================

COMMISSION_MAX_ATTEMPTS = 5
COMMISSION_BACKOFF_BASE = 0.05  # seconds, doubled on every attempt
COMMISSION_BACKOFF_MAX = 2.0  # seconds

# Pagination
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Leaderboards
DEFAULT_LEADERBOARD_SIZE = 10

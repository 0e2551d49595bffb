"""
Standard type definitions for database models.

Provides consistent types for monetary and rate fields across all models.
"""

from sqlalchemy import DECIMAL, String

from upline.config.constants import MONEY_PRECISION, MONEY_SCALE

# Standard money type for amounts, balances, commissions
# Precision: 18 digits total, 8 after decimal point
# Range: up to 9,999,999,999.99999999 (inputs are checked by utils.money)
MoneyType = DECIMAL(MONEY_PRECISION, MONEY_SCALE)

# Rate type for pool and level rates (fractions, e.g. 0.0625)
# Precision: 10 digits total, 6 after decimal point
RateType = DECIMAL(10, 6)

# Opaque account identifier (uuid4 hex)
AccountIdType = String(32)

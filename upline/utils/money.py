"""
Money helpers.

All monetary values are Decimal; floats never enter the ledger. Inputs must
fit the stored money columns exactly, so a value read back from the database
compares equal to the value that was written.
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Any

from upline.config.constants import MONEY_PRECISION, MONEY_SCALE
from upline.utils.exceptions import ValidationError

# Smallest stored step and first value that no longer fits
MONEY_STEP = Decimal(1).scaleb(-MONEY_SCALE)
MONEY_LIMIT = Decimal(10) ** (MONEY_PRECISION - MONEY_SCALE)


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    """
    Convert input to a finite Decimal that fits a money column.

    Floats are converted through str() so 0.1 stays 0.1.

    Args:
        value: int, str, float or Decimal
        field: Field name for the error message

    Returns:
        Decimal value

    Raises:
        ValidationError: If the value is not a finite number, has more than
            MONEY_SCALE decimal places or is out of the column's range
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as e:
            raise ValidationError(f"{field} must be a number") from e
    if not result.is_finite():
        raise ValidationError(f"{field} must be finite")
    if abs(result) >= MONEY_LIMIT:
        raise ValidationError(f"{field} must be less than {MONEY_LIMIT:f}")
    if result != result.quantize(MONEY_STEP):
        raise ValidationError(
            f"{field} must have at most {MONEY_SCALE} decimal places"
        )
    return result


def quantize_down(amount: Decimal, quantum: Decimal) -> Decimal:
    """
    Truncate amount to the smallest monetary unit.

    The remainder is discarded.

    Args:
        amount: Raw amount
        quantum: Smallest unit (e.g. Decimal("0.01"))

    Returns:
        Truncated amount
    """
    return amount.quantize(quantum, rounding=ROUND_DOWN)


def require_positive(value: Any, field: str = "amount") -> Decimal:
    """
    Convert input to Decimal and require it to be > 0.

    Raises:
        ValidationError: If not a positive finite number
    """
    amount = to_decimal(value, field)
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return amount

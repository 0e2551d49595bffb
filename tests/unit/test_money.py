"""Unit tests for money helpers."""

from decimal import Decimal

import pytest

from upline.utils.exceptions import ValidationError
from upline.utils.money import quantize_down, require_positive, to_decimal


class TestToDecimal:
    """Test input conversion."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (10, Decimal("10")),
            ("12.50", Decimal("12.50")),
            (" 3.3 ", Decimal("3.3")),
            (0.1, Decimal("0.1")),
            (Decimal("7.77"), Decimal("7.77")),
        ],
    )
    def test_accepts_numbers(self, value, expected):
        """Numbers and numeric strings are converted exactly."""
        assert to_decimal(value) == expected

    @pytest.mark.parametrize(
        "value", [None, True, "abc", "", "NaN", "Infinity", float("inf")]
    )
    def test_rejects_non_numbers(self, value):
        """Non-numeric and non-finite values raise ValidationError."""
        with pytest.raises(ValidationError):
            to_decimal(value)

    def test_validation_error_is_value_error(self):
        """ValidationError can be caught as ValueError."""
        with pytest.raises(ValueError):
            to_decimal("not a number")


class TestRequirePositive:
    """Test positive amount validation."""

    @pytest.mark.parametrize("value", [0, "0.00", -1, "-0.01"])
    def test_rejects_zero_and_negative(self, value):
        """Zero and negative amounts are rejected."""
        with pytest.raises(ValidationError, match="greater than zero"):
            require_positive(value, "gross_amount")

    def test_accepts_positive(self):
        """Positive amounts pass through as Decimal."""
        assert require_positive("0.01") == Decimal("0.01")


class TestQuantizeDown:
    """Test truncation."""

    @pytest.mark.parametrize(
        "amount,expected",
        [
            ("0.625", "0.62"),
            ("0.999", "0.99"),
            ("5", "5.00"),
            ("0.004", "0.00"),
        ],
    )
    def test_truncates(self, amount, expected):
        """Remainder below the quantum is discarded."""
        result = quantize_down(Decimal(amount), Decimal("0.01"))
        assert result == Decimal(expected)


class TestMoneyColumnFit:
    """Test that accepted amounts are stored without rounding."""

    @pytest.mark.parametrize(
        "value",
        ["100.12345678", "9999999999.99999999", "1.50000000000", "-0.00000001"],
    )
    def test_accepts_values_within_column(self, value):
        """Up to 8 decimals and 10 integer digits fit DECIMAL(18, 8)."""
        assert to_decimal(value) == Decimal(value)

    @pytest.mark.parametrize("value", ["100.123456789", "0.000000001"])
    def test_rejects_extra_decimal_places(self, value):
        """Values the column would round are rejected."""
        with pytest.raises(ValidationError, match="at most 8 decimal places"):
            require_positive(value)

    @pytest.mark.parametrize("value", ["10000000000", "-10000000000", "1E+12"])
    def test_rejects_out_of_range(self, value):
        """Values the column cannot hold are rejected, not left to the driver."""
        with pytest.raises(ValidationError, match="less than 10000000000"):
            to_decimal(value)

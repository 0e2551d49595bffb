"""Unit tests for settings validation."""

from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from upline.config.settings import Settings


class TestCommissionSchedule:
    """Test schedule validators."""

    def test_defaults(self):
        """Default schedule is 10% split 50/25/12.5/6.25/6.25."""
        config = Settings()

        assert config.commission_pool_rate == Decimal("0.10")
        assert config.commission_level_rates == [
            Decimal("0.50"),
            Decimal("0.25"),
            Decimal("0.125"),
            Decimal("0.0625"),
            Decimal("0.0625"),
        ]
        assert config.signup_bonus == Decimal("2.00")
        assert config.minimum_withdrawal == Decimal("10.00")

    def test_level_rates_from_environment(self, monkeypatch):
        """Rates are read as a JSON list from the environment."""
        monkeypatch.setenv(
            "COMMISSION_LEVEL_RATES", '["0.4", "0.3", "0.2", "0.05", "0.05"]'
        )

        config = Settings()

        assert config.commission_level_rates[0] == Decimal("0.4")

    def test_wrong_number_of_levels(self):
        """Exactly five level rates are required."""
        with pytest.raises(PydanticValidationError, match="exactly 5"):
            Settings(commission_level_rates=[Decimal("0.5"), Decimal("0.5")])

    def test_rates_must_not_exceed_pool(self):
        """Level rates may not sum above the whole pool."""
        with pytest.raises(PydanticValidationError, match="sum"):
            Settings(commission_level_rates=[Decimal("0.5")] * 5)

    def test_negative_rate(self):
        """Rates must be within [0, 1]."""
        with pytest.raises(PydanticValidationError, match="outside"):
            Settings(
                commission_level_rates=[
                    Decimal("-0.1"),
                    Decimal("0.25"),
                    Decimal("0.125"),
                    Decimal("0.0625"),
                    Decimal("0.0625"),
                ]
            )

    @pytest.mark.parametrize("rate", [Decimal("0"), Decimal("1.5")])
    def test_pool_rate_bounds(self, rate):
        """Pool rate must be in (0, 1]."""
        with pytest.raises(PydanticValidationError):
            Settings(commission_pool_rate=rate)


class TestRuntimeSettings:
    """Test retry and environment settings."""

    def test_backoff_ceiling_below_base(self):
        """Backoff ceiling must be >= base delay."""
        with pytest.raises(PydanticValidationError, match="BACKOFF_MAX"):
            Settings(commission_backoff_base=1.0, commission_backoff_max=0.5)

    def test_max_attempts_positive(self):
        """At least one attempt is required."""
        with pytest.raises(PydanticValidationError):
            Settings(commission_max_attempts=0)

    def test_is_test(self):
        """Test suite runs with ENVIRONMENT=test."""
        assert Settings().is_test is True

    def test_reporting_url_falls_back_to_primary(self):
        """Without a replica, reports read the primary database."""
        config = Settings(
            database_url="postgresql+asyncpg://u:p@primary/db",
            replica_database_url=None,
        )
        assert config.reporting_database_url == "postgresql+asyncpg://u:p@primary/db"

    def test_reporting_url_uses_replica(self):
        """A configured replica serves reports."""
        config = Settings(
            database_url="postgresql+asyncpg://u:p@primary/db",
            replica_database_url="postgresql+asyncpg://u:p@replica/db",
        )
        assert config.reporting_database_url.endswith("@replica/db")

"""Unit tests for configuration loading."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from blockcharge.config import Settings


class TestSettings:
    """Tests for Settings defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        for name in ("DATABASE_URL", "SWEEP_MAX_ATTEMPTS", "DEFAULT_MAX_REMINDERS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.database_url == "sqlite:///./blockcharge.db"
        assert settings.sweep_max_attempts == 3
        assert settings.default_reminder_days == [7, 3, 1]
        assert settings.default_max_reminders == 3
        assert settings.default_penalty_flat_amount == Decimal("0")
        assert settings.store_timeout_seconds == 10.0

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/blockcharge")
        monkeypatch.setenv("SWEEP_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("DEFAULT_REMINDER_DAYS", "[14, 7]")
        monkeypatch.setenv("DEFAULT_PENALTY_FLAT_AMOUNT", "25.50")

        settings = Settings(_env_file=None)

        assert settings.database_url == "postgresql://u:p@db/blockcharge"
        assert settings.sweep_max_attempts == 5
        assert settings.default_reminder_days == [14, 7]
        assert settings.default_penalty_flat_amount == Decimal("25.50")

    def test_env_file(self, monkeypatch, tmp_path):
        monkeypatch.delenv("DEFAULT_GRACE_PERIOD_DAYS", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("DEFAULT_GRACE_PERIOD_DAYS=7\n")

        assert Settings(_env_file=str(env_file)).default_grace_period_days == 7

    def test_rejects_zero_sweep_attempts(self, monkeypatch):
        monkeypatch.setenv("SWEEP_MAX_ATTEMPTS", "0")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

"""Tests for environment-driven settings."""

import pytest
from decimal import Decimal
from pydantic import ValidationError

from finance_tracker.config import get_settings


class TestSettings:

    def test_defaults(self):
        settings = get_settings()
        assert settings.ledger.default_currency == "USD"
        assert settings.ledger.default_alert_threshold == Decimal("80")
        assert settings.ai.confidence_threshold == 0.7
        assert settings.invoice.number_strategy == "timestamp"
        assert settings.invoice.max_number_attempts == 5

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("FINANCE_DEFAULT_CURRENCY", "eur")
        monkeypatch.setenv("FINANCE_LOG_LEVEL", "debug")
        settings = get_settings()
        assert settings.ledger.default_currency == "EUR"
        assert settings.logging.level == "DEBUG"

    def test_invalid_strategy_rejected(self, monkeypatch):
        monkeypatch.setenv("FINANCE_INVOICE_NUMBER_STRATEGY", "random")
        with pytest.raises(ValidationError):
            get_settings().invoice

    def test_threshold_out_of_range_rejected(self, monkeypatch):
        monkeypatch.setenv("FINANCE_AI_CONFIDENCE_THRESHOLD", "1.5")
        with pytest.raises(ValidationError):
            get_settings().ai

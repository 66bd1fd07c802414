"""
Configuration Management for the Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All tunable defaults of the domain core live here
(default currency, alert threshold, AI confidence cut-off, invoice numbering).
Nothing in the models reads the environment directly.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Defaults applied when creating money, budgets and invoices."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    default_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="ISO currency used when none is given"
    )
    default_alert_threshold: Decimal = Field(
        default=Decimal("80"),
        ge=0,
        le=100,
        description="Budget alert threshold percentage"
    )

    @field_validator('default_currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class AISettings(BaseSettings):
    """Thresholds for accepting AI-assisted suggestions."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_AI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    confidence_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Minimum confidence for an AI category to override Uncategorized"
    )


class InvoiceSettings(BaseSettings):
    """Invoice numbering configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_INVOICE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    number_strategy: str = Field(
        default="timestamp",
        pattern="^(timestamp|sequential)$",
        description="timestamp: INV-<yyyymmdd>-<hex8>, sequential: INV-<year>-<seq4>"
    )
    max_number_attempts: int = Field(
        default=5,
        ge=1,
        le=50,
        description="How many candidate numbers to try before giving up"
    )


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$"
    )
    json_output: bool = Field(
        default=True,
        description="Render log lines as JSON (False renders for the console)"
    )

    @field_validator('level', mode='before')
    @classmethod
    def upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def ai(self) -> AISettings:
        return AISettings()

    @property
    def invoice(self) -> InvoiceSettings:
        return InvoiceSettings()

    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()

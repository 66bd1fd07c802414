"""Configuration package."""

from finance_tracker.config.settings import (
    AISettings,
    InvoiceSettings,
    LedgerSettings,
    LoggingSettings,
    Settings,
    get_settings,
)

__all__ = [
    "AISettings",
    "InvoiceSettings",
    "LedgerSettings",
    "LoggingSettings",
    "Settings",
    "get_settings",
]

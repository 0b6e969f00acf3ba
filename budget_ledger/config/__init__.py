"""Configuration package."""

from budget_ledger.config.settings import (
    AppSettings,
    FinanceServiceSettings,
    LedgerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "FinanceServiceSettings",
    "LedgerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]

"""Settings and structured logging."""

from inventory_ledger.config.logging import configure_logging, get_logger
from inventory_ledger.config.settings import (
    APISettings,
    LedgerSettings,
    Settings,
    StorageSettings,
    get_settings,
    reset_settings,
)

__all__ = [
    "Settings",
    "StorageSettings",
    "APISettings",
    "LedgerSettings",
    "get_settings",
    "reset_settings",
    "configure_logging",
    "get_logger",
]

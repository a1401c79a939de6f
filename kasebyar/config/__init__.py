"""Configuration module."""

from kasebyar.config.logging import configure_logging, get_logger, operation_context
from kasebyar.config.settings import (
    CurrencyConfig,
    Settings,
    get_settings,
    reset_settings,
)

__all__ = [
    "CurrencyConfig",
    "Settings",
    "get_settings",
    "reset_settings",
    "configure_logging",
    "get_logger",
    "operation_context",
]

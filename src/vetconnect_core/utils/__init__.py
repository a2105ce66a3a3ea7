"""
Utility functions and helper modules.

This module provides common utility functions for datetime handling and
configuration management shared by the services and persistence adapters.
"""

from .config import (
    ConfigError,
    EnvironmentConfig,
    LoggingConfigurator,
    LogLevel,
    VetConnectSettings,
)
from .datetime_utils import (
    UTC,
    date_in_range,
    days_from,
    elapsed_days,
    ensure_utc,
    get_current_utc,
    hours_from,
    parse_time_of_day,
    time_to_minutes,
)

__all__ = [
    # DateTime utilities
    "UTC",
    "get_current_utc",
    "ensure_utc",
    "hours_from",
    "days_from",
    "parse_time_of_day",
    "time_to_minutes",
    "date_in_range",
    "elapsed_days",
    # Configuration utilities
    "ConfigError",
    "LogLevel",
    "EnvironmentConfig",
    "LoggingConfigurator",
    "VetConnectSettings",
]

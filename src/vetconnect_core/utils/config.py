"""
Configuration management utilities.

This module provides environment variable handling with type conversion,
logging configuration utilities, and the ``VetConnectSettings`` object
holding the tunable parameters of the routing and workflow core.
"""

import logging
import logging.config
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..exceptions import ConfigurationException


class ConfigError(ConfigurationException):
    """Exception raised for configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message, config_key=config_key)


class LogLevel(Enum):
    """Enumeration for log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentConfig:
    """Utility class for handling environment variables with type conversion."""

    @staticmethod
    def get_str(
        key: str, default: Optional[str] = None, required: bool = False
    ) -> Optional[str]:
        """
        Get a string environment variable.

        Args:
            key: Environment variable key
            default: Default value if not found
            required: Whether the variable is required

        Returns:
            String value or default

        Raises:
            ConfigError: If required variable is missing
        """
        value = os.getenv(key, default)

        if required and value is None:
            raise ConfigError(
                f"Required environment variable '{key}' is not set", config_key=key
            )

        return value

    @staticmethod
    def get_int(
        key: str, default: Optional[int] = None, required: bool = False
    ) -> Optional[int]:
        """
        Get an integer environment variable.

        Raises:
            ConfigError: If required variable is missing or invalid
        """
        value = os.getenv(key)

        if value is None:
            if required:
                raise ConfigError(
                    f"Required environment variable '{key}' is not set", config_key=key
                )
            return default

        try:
            return int(value)
        except ValueError:
            raise ConfigError(
                f"Environment variable '{key}' must be an integer, got: {value}",
                config_key=key,
            )

    @staticmethod
    def get_float(
        key: str, default: Optional[float] = None, required: bool = False
    ) -> Optional[float]:
        """
        Get a float environment variable.

        Raises:
            ConfigError: If required variable is missing or invalid
        """
        value = os.getenv(key)

        if value is None:
            if required:
                raise ConfigError(
                    f"Required environment variable '{key}' is not set", config_key=key
                )
            return default

        try:
            return float(value)
        except ValueError:
            raise ConfigError(
                f"Environment variable '{key}' must be a float, got: {value}",
                config_key=key,
            )

    @staticmethod
    def get_bool(
        key: str, default: Optional[bool] = None, required: bool = False
    ) -> Optional[bool]:
        """Get a boolean environment variable."""
        value = os.getenv(key)

        if value is None:
            if required:
                raise ConfigError(
                    f"Required environment variable '{key}' is not set", config_key=key
                )
            return default

        return value.lower() in ("true", "1", "yes", "on", "enabled")

    @staticmethod
    def get_list(
        key: str,
        separator: str = ",",
        default: Optional[List[str]] = None,
        required: bool = False,
    ) -> Optional[List[str]]:
        """Get a list environment variable split on ``separator``."""
        value = os.getenv(key)

        if value is None:
            if required:
                raise ConfigError(
                    f"Required environment variable '{key}' is not set", config_key=key
                )
            return default or []

        return [item.strip() for item in value.split(separator) if item.strip()]


class LoggingConfigurator:
    """Utility class for configuring logging."""

    DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @staticmethod
    def configure_structured_logging(
        config_dict: Optional[Dict[str, Any]] = None,
        config_file: Optional[str] = None,
        level: Union[str, LogLevel] = LogLevel.INFO,
    ) -> None:
        """
        Configure structured logging using a dictionary or file.

        Args:
            config_dict: Logging configuration dictionary
            config_file: Path to logging configuration file
            level: Level of the ``vetconnect_core`` logger in the default setup
        """
        if isinstance(level, LogLevel):
            level = level.value

        if config_file and Path(config_file).exists():
            logging.config.fileConfig(config_file)
        elif config_dict:
            logging.config.dictConfig(config_dict)
        else:
            default_config = {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "standard": {"format": LoggingConfigurator.DEFAULT_FORMAT},
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": level,
                        "formatter": "standard",
                        "stream": "ext://sys.stdout",
                    }
                },
                "loggers": {
                    "vetconnect_core": {
                        "level": level,
                        "handlers": ["console"],
                        "propagate": False,
                    }
                },
                "root": {"level": "WARNING", "handlers": ["console"]},
            }
            logging.config.dictConfig(default_config)


@dataclass
class VetConnectSettings:
    """Tunable parameters of the case routing and workflow core."""

    database_url: Optional[str] = None
    shortlist_size: int = 5
    documentation_due_hours: int = 2
    follow_up_due_days: int = 7
    educational_outcome_due_hours: int = 24
    verification_timeout_days: int = 14
    notification_webhook_url: Optional[str] = None
    notification_timeout: float = 10.0
    log_level: LogLevel = LogLevel.INFO

    def __post_init__(self) -> None:
        """Validate numeric settings after dataclass creation."""
        for name in (
            "shortlist_size",
            "documentation_due_hours",
            "follow_up_due_days",
            "educational_outcome_due_hours",
            "verification_timeout_days",
        ):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive", config_key=name)

    @classmethod
    def from_env(cls, prefix: str = "VETCONNECT_") -> "VetConnectSettings":
        """
        Load settings from environment variables.

        Args:
            prefix: Prefix shared by all variables

        Returns:
            Settings populated from the environment, defaults elsewhere
        """
        defaults = cls()
        level_name = EnvironmentConfig.get_str(
            f"{prefix}LOG_LEVEL", defaults.log_level.value
        )
        try:
            log_level = LogLevel((level_name or "INFO").upper())
        except ValueError:
            raise ConfigError(
                f"Unknown log level: {level_name}", config_key=f"{prefix}LOG_LEVEL"
            )

        return cls(
            database_url=EnvironmentConfig.get_str(f"{prefix}DATABASE_URL"),
            shortlist_size=EnvironmentConfig.get_int(
                f"{prefix}SHORTLIST_SIZE", defaults.shortlist_size
            ),
            documentation_due_hours=EnvironmentConfig.get_int(
                f"{prefix}DOCUMENTATION_DUE_HOURS", defaults.documentation_due_hours
            ),
            follow_up_due_days=EnvironmentConfig.get_int(
                f"{prefix}FOLLOW_UP_DUE_DAYS", defaults.follow_up_due_days
            ),
            educational_outcome_due_hours=EnvironmentConfig.get_int(
                f"{prefix}EDUCATIONAL_OUTCOME_DUE_HOURS",
                defaults.educational_outcome_due_hours,
            ),
            verification_timeout_days=EnvironmentConfig.get_int(
                f"{prefix}VERIFICATION_TIMEOUT_DAYS", defaults.verification_timeout_days
            ),
            notification_webhook_url=EnvironmentConfig.get_str(
                f"{prefix}NOTIFICATION_WEBHOOK_URL"
            ),
            notification_timeout=EnvironmentConfig.get_float(
                f"{prefix}NOTIFICATION_TIMEOUT", defaults.notification_timeout
            ),
            log_level=log_level,
        )

    def configure_logging(self) -> None:
        """Apply the configured log level to the package loggers."""
        LoggingConfigurator.configure_structured_logging(level=self.log_level)

"""
Tests for configuration utilities.
"""

from unittest.mock import patch

import pytest

from vetconnect_core.exceptions import ConfigurationException
from vetconnect_core.utils.config import (
    ConfigError,
    EnvironmentConfig,
    LoggingConfigurator,
    LogLevel,
    VetConnectSettings,
)


class TestEnvironmentConfig:
    """Test cases for environment variable helpers."""

    def test_get_str_default(self, monkeypatch):
        """Test missing variables fall back to the default."""
        monkeypatch.delenv("VETCONNECT_TEST_STR", raising=False)

        assert EnvironmentConfig.get_str("VETCONNECT_TEST_STR", "fallback") == "fallback"

    def test_get_str_required(self, monkeypatch):
        """Test a missing required variable raises."""
        monkeypatch.delenv("VETCONNECT_TEST_STR", raising=False)

        with pytest.raises(ConfigError):
            EnvironmentConfig.get_str("VETCONNECT_TEST_STR", required=True)

    def test_get_int_invalid(self, monkeypatch):
        """Test non-integer values raise."""
        monkeypatch.setenv("VETCONNECT_TEST_INT", "many")

        with pytest.raises(ConfigError) as exc_info:
            EnvironmentConfig.get_int("VETCONNECT_TEST_INT")

        assert exc_info.value.details["config_key"] == "VETCONNECT_TEST_INT"

    def test_get_bool(self, monkeypatch):
        """Test boolean parsing."""
        monkeypatch.setenv("VETCONNECT_TEST_BOOL", "yes")

        assert EnvironmentConfig.get_bool("VETCONNECT_TEST_BOOL") is True

    def test_get_list(self, monkeypatch):
        """Test list parsing drops empty items."""
        monkeypatch.setenv("VETCONNECT_TEST_LIST", "a, b,,c")

        assert EnvironmentConfig.get_list("VETCONNECT_TEST_LIST") == ["a", "b", "c"]


class TestVetConnectSettings:
    """Test cases for VetConnectSettings."""

    def test_defaults(self):
        """Test the default tunables."""
        settings = VetConnectSettings()

        assert settings.database_url is None
        assert settings.shortlist_size == 5
        assert settings.documentation_due_hours == 2
        assert settings.follow_up_due_days == 7
        assert settings.educational_outcome_due_hours == 24
        assert settings.verification_timeout_days == 14
        assert settings.notification_webhook_url is None
        assert settings.log_level == LogLevel.INFO

    def test_non_positive_values_rejected(self):
        """Test numeric settings must be positive."""
        with pytest.raises(ConfigError):
            VetConnectSettings(shortlist_size=0)

    def test_config_error_is_configuration_exception(self):
        """Test ConfigError belongs to the package hierarchy."""
        with pytest.raises(ConfigurationException):
            VetConnectSettings(follow_up_due_days=-1)

    def test_from_env(self, monkeypatch):
        """Test loading settings from prefixed environment variables."""
        monkeypatch.setenv("VETCONNECT_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
        monkeypatch.setenv("VETCONNECT_SHORTLIST_SIZE", "3")
        monkeypatch.setenv("VETCONNECT_VERIFICATION_TIMEOUT_DAYS", "7")
        monkeypatch.setenv("VETCONNECT_NOTIFICATION_TIMEOUT", "2.5")
        monkeypatch.setenv("VETCONNECT_LOG_LEVEL", "debug")

        settings = VetConnectSettings.from_env()

        assert settings.database_url == "sqlite+aiosqlite:///:memory:"
        assert settings.shortlist_size == 3
        assert settings.verification_timeout_days == 7
        assert settings.notification_timeout == 2.5
        assert settings.log_level == LogLevel.DEBUG

    def test_from_env_unknown_log_level(self, monkeypatch):
        """Test an unknown log level is rejected."""
        monkeypatch.setenv("VETCONNECT_LOG_LEVEL", "chatty")

        with pytest.raises(ConfigError):
            VetConnectSettings.from_env()


class TestLoggingConfigurator:
    """Test cases for logging setup."""

    @patch("logging.config.dictConfig")
    def test_settings_apply_level(self, mock_dict_config):
        """Test settings configure the package logger at their level."""
        VetConnectSettings(log_level=LogLevel.DEBUG).configure_logging()

        config = mock_dict_config.call_args[0][0]
        assert config["loggers"]["vetconnect_core"]["level"] == "DEBUG"
        assert config["handlers"]["console"]["level"] == "DEBUG"
        assert config["disable_existing_loggers"] is False

    @patch("logging.config.dictConfig")
    def test_custom_dict_config(self, mock_dict_config):
        """Test a supplied configuration is used as given."""
        custom = {"version": 1, "root": {"level": "ERROR"}}

        LoggingConfigurator.configure_structured_logging(config_dict=custom)

        mock_dict_config.assert_called_once_with(custom)

    @patch("logging.config.fileConfig")
    @patch("logging.config.dictConfig")
    def test_missing_config_file(self, mock_dict_config, mock_file_config, tmp_path):
        """Test a missing config file falls back to the default setup."""
        LoggingConfigurator.configure_structured_logging(
            config_file=str(tmp_path / "logging.ini")
        )

        mock_file_config.assert_not_called()
        config = mock_dict_config.call_args[0][0]
        assert config["loggers"]["vetconnect_core"]["level"] == "INFO"

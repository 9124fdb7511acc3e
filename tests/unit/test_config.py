"""
Unit tests for configuration management.
"""

import os
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

import billing_engine.config.settings as settings_module
from billing_engine.config.settings import (
    BillingEngineConfig,
    get_config,
    load_config,
    reload_config,
)

BILLING_VARS = [
    "ENVIRONMENT",
    "DEBUG",
    "LOG_LEVEL",
    "BILLING_DEFAULT_RATE",
    "BILLING_DEFAULT_ADJUSTMENT_REASON",
    "BILLING_SYSTEM_ACTOR",
    "BILLING_TASK_VIEW_DEFAULT_DAYS",
    "BILLING_DATA_DIR",
    "BILLING_ADJUSTMENTS_FILE",
    "RATE_SERVICE_URL",
    "RATE_SERVICE_TIMEOUT",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Environment without billing variables or a .env file."""
    for name in BILLING_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    settings_module._config = None
    yield
    settings_module._config = None


class TestBillingEngineConfig:
    """Test cases for BillingEngineConfig."""

    def test_config_with_valid_env_vars(self, test_config):
        """Test configuration loads correctly with valid environment variables."""
        assert test_config.environment == "testing"
        assert test_config.debug is False
        assert test_config.log_level == "DEBUG"
        assert test_config.default_rate == Decimal("75")
        assert test_config.system_actor == "billing-bot"
        assert test_config.task_view_default_days == 90

    def test_default_values(self, clean_env):
        """Test default configuration values."""
        config = BillingEngineConfig()

        assert config.environment == "development"
        assert config.debug is False
        assert config.log_level == "INFO"
        assert config.default_rate == Decimal("75")
        assert config.default_adjustment_reason == "Manual adjustment from billing management"
        assert config.system_actor == "system"
        assert config.data_dir == Path("data")
        assert config.adjustments_file == Path("data/billing_adjustments.json")
        assert config.rate_service_url is None
        assert config.rate_service_timeout == 10.0

    def test_environment_overrides(self, clean_env):
        """Test that BILLING_* variables override defaults."""
        with patch.dict(
            os.environ,
            {
                "BILLING_DEFAULT_RATE": "82.50",
                "BILLING_DATA_DIR": "/srv/billing",
                "RATE_SERVICE_URL": " https://pricing.test/rates ",
                "RATE_SERVICE_TIMEOUT": "2.5",
            },
        ):
            config = BillingEngineConfig()

        assert config.default_rate == Decimal("82.50")
        assert config.data_dir == Path("/srv/billing")
        assert config.rate_service_url == "https://pricing.test/rates"
        assert config.rate_service_timeout == 2.5

    def test_blank_rate_service_url(self, clean_env):
        """Test that an empty URL disables the pricing service."""
        with patch.dict(os.environ, {"RATE_SERVICE_URL": "  "}):
            config = BillingEngineConfig()

        assert config.rate_service_url is None

    def test_log_level_normalized(self, clean_env):
        """Test that log levels are upper-cased."""
        with patch.dict(os.environ, {"LOG_LEVEL": "warning"}):
            assert BillingEngineConfig().log_level == "WARNING"

    @pytest.mark.parametrize(
        "name,value",
        [
            ("LOG_LEVEL", "VERBOSE"),
            ("ENVIRONMENT", "staging"),
            ("BILLING_DEFAULT_RATE", "-1"),
            ("BILLING_DEFAULT_RATE", "cheap"),
            ("BILLING_TASK_VIEW_DEFAULT_DAYS", "0"),
            ("RATE_SERVICE_TIMEOUT", "0"),
        ],
    )
    def test_invalid_values(self, clean_env, name, value):
        """Test that invalid settings raise ValidationError."""
        with patch.dict(os.environ, {name: value}):
            with pytest.raises(ValidationError):
                BillingEngineConfig()

    def test_unrelated_variables_ignored(self, clean_env):
        """Test that unknown variables do not break loading."""
        with patch.dict(os.environ, {"BILLING_UNKNOWN_OPTION": "x"}):
            assert BillingEngineConfig().environment == "development"

    def test_populate_by_name(self, clean_env):
        """Test constructing settings with field names."""
        config = BillingEngineConfig(default_rate="90", system_actor="bot")

        assert config.default_rate == Decimal("90")
        assert config.system_actor == "bot"


class TestConfigLoading:
    """Test loading and caching of the global configuration."""

    def test_load_config_from_env_file(self, clean_env, tmp_path):
        """Test loading values from an explicit .env file."""
        env_file = tmp_path / "billing.env"
        env_file.write_text("BILLING_SYSTEM_ACTOR=env-file-bot\nBILLING_DEFAULT_RATE=60\n")

        try:
            config = load_config(str(env_file))

            assert config.system_actor == "env-file-bot"
            assert config.default_rate == Decimal("60")
        finally:
            os.environ.pop("BILLING_SYSTEM_ACTOR", None)
            os.environ.pop("BILLING_DEFAULT_RATE", None)

    def test_get_config_is_cached(self, clean_env):
        """Test that get_config returns the same instance."""
        assert get_config() is get_config()

    def test_reload_config_replaces_instance(self, clean_env):
        """Test that reload_config builds a fresh instance."""
        first = get_config()

        with patch.dict(os.environ, {"BILLING_SYSTEM_ACTOR": "reloaded"}):
            second = reload_config()

        assert second is not first
        assert second.system_actor == "reloaded"
        assert get_config() is second

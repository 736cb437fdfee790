"""Tests for configuration module."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from agentforce_bot.config import Settings


def test_settings_loads_from_env(settings: Settings):
    """Test that settings loads values from environment variables."""
    assert settings.app_id == "test-app-id"
    assert settings.app_password == "test-app-password"
    assert settings.app_tenant_id == "test-tenant-id"
    assert settings.sf_client_id == "test-sf-client-id"
    assert settings.sf_instance_url == "https://example.my.salesforce.com"


def test_settings_has_defaults(settings: Settings):
    """Test that settings has correct default values."""
    assert settings.host == "127.0.0.1"
    assert settings.port == 3978
    assert settings.log_level == "DEBUG"
    assert settings.status_message == "Processing your request..."
    assert settings.sf_timeout == 120.0


def test_settings_has_session_defaults(settings: Settings):
    """Sessions last 30 minutes and are swept every 15 minutes by default."""
    assert settings.session_timeout_minutes == 30
    assert settings.session_timeout_seconds == 1800
    assert settings.session_sweep_interval == 900


def test_session_timeout_from_min_session(mock_env_vars):
    with patch.dict(os.environ, {"MIN_SESSION": "5"}):
        settings = Settings(_env_file=None)
    assert settings.session_timeout_seconds == 300


def test_settings_has_logging_file_defaults(settings: Settings):
    """Test that file logging settings have correct defaults."""
    assert settings.log_file == ""
    assert settings.log_file_max_bytes == 10_485_760  # 10 MB
    assert settings.log_file_backup_count == 5


def test_legacy_bot_variables_are_optional(mock_env_vars):
    """MICROSOFT_APP_* may be omitted when CONNECTIONS__* vars are used."""
    env_vars = {k: v for k, v in mock_env_vars.items() if not k.startswith("MICROSOFT_")}

    with patch.dict(os.environ, env_vars, clear=True):
        settings = Settings(_env_file=None)

    assert settings.app_id == ""
    assert settings.app_password == ""
    assert settings.app_tenant_id == ""


def test_salesforce_variables_are_required(mock_env_vars):
    env_vars = {k: v for k, v in mock_env_vars.items() if k != "SF_TOKEN_URL"}

    with patch.dict(os.environ, env_vars, clear=True):
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

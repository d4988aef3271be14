"""
Tests for settings module.

Tests settings validation and environment variable loading.
"""
from __future__ import annotations

import os
import pytest
from unittest.mock import patch

from chartview.settings import (
    FLOATING_MAX_AGE_S,
    PINNED_MAX_AGE_S,
    Settings,
    create_settings_from_env,
)


class TestSettings:
    """Test Settings dataclass validation."""

    def test_defaults(self):
        """Test default settings."""
        settings = Settings()
        assert settings.listen_host == "0.0.0.0"
        assert settings.listen_port == 4000
        assert settings.log_level == "INFO"
        assert settings.default_timeout_s == 60.0
        assert settings.sources_file is None
        assert settings.kube_enabled is False
        assert settings.pinned_max_age_s == PINNED_MAX_AGE_S
        assert settings.floating_max_age_s == FLOATING_MAX_AGE_S

    def test_max_age_defaults(self):
        """Pinned lifetime is ten years, floating one day."""
        assert PINNED_MAX_AGE_S == 315360000
        assert FLOATING_MAX_AGE_S == 86400

    def test_invalid_port(self):
        with pytest.raises(ValueError, match="listen_port"):
            Settings(listen_port=0)
        with pytest.raises(ValueError, match="listen_port"):
            Settings(listen_port=70000)

    def test_invalid_log_level(self):
        with pytest.raises(ValueError, match="log_level"):
            Settings(log_level="verbose")

    def test_non_positive_timeout(self):
        with pytest.raises(ValueError, match="default_timeout_s must be positive"):
            Settings(default_timeout_s=0)

    def test_pinned_max_age_not_shorter_than_floating(self):
        with pytest.raises(ValueError, match="must not be shorter"):
            Settings(pinned_max_age_s=60, floating_max_age_s=120)

    def test_settings_are_frozen(self):
        settings = Settings()
        with pytest.raises(Exception):
            settings.listen_port = 1234


class TestCreateSettingsFromEnv:
    """Test environment variable loading."""

    def test_empty_environment_uses_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = create_settings_from_env()
        assert settings == Settings()

    def test_all_variables(self):
        env = {
            "CHARTVIEW_HOST": "127.0.0.1",
            "CHARTVIEW_PORT": "8080",
            "CHARTVIEW_LOG_LEVEL": "debug",
            "CHARTVIEW_TIMEOUT": "12.5",
            "CHARTVIEW_USER_AGENT": "test-agent",
            "CHARTVIEW_SOURCES_FILE": "/etc/chartview/sources.yaml",
            "CHARTVIEW_KUBE_ENABLED": "yes",
            "CHARTVIEW_KUBE_CONTEXT": "kind-dev",
            "CHARTVIEW_PINNED_MAX_AGE": "3600",
            "CHARTVIEW_FLOATING_MAX_AGE": "60",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = create_settings_from_env()

        assert settings.listen_host == "127.0.0.1"
        assert settings.listen_port == 8080
        assert settings.log_level == "DEBUG"
        assert settings.default_timeout_s == 12.5
        assert settings.user_agent == "test-agent"
        assert settings.sources_file == "/etc/chartview/sources.yaml"
        assert settings.kube_enabled is True
        assert settings.kube_context == "kind-dev"
        assert settings.pinned_max_age_s == 3600
        assert settings.floating_max_age_s == 60

    @pytest.mark.parametrize("value,expected", [
        ("true", True), ("1", True), ("on", True), ("false", False), ("0", False), ("nope", False),
    ])
    def test_boolean_parsing(self, value, expected):
        with patch.dict(os.environ, {"CHARTVIEW_KUBE_ENABLED": value}, clear=True):
            assert create_settings_from_env().kube_enabled is expected

    def test_invalid_values_fail_fast(self):
        with patch.dict(os.environ, {"CHARTVIEW_TIMEOUT": "-1"}, clear=True):
            with pytest.raises(ValueError):
                create_settings_from_env()

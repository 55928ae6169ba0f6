"""Unit tests for configuration module."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from orderflow.core.config import Settings, get_settings


class TestSettings:
    """Tests for Settings class."""

    def test_settings_loads_from_environment(self) -> None:
        """Test that Settings loads values from environment variables."""
        env_vars = {
            "APP_NAME": "test-app",
            "APP_ENV": "testing",
            "DEBUG": "true",
            "HOST": "127.0.0.1",
            "PORT": "9000",
            "SUPABASE_URL": "https://test.supabase.co",
            "SUPABASE_SECRET_KEY": "test-secret",
            "STORE_METADATA_TTL_SECONDS": "15",
            "NOTIFICATION_FEED_LIMIT": "20",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            settings = Settings()

            assert settings.app_name == "test-app"
            assert settings.app_env == "testing"
            assert settings.debug is True
            assert settings.host == "127.0.0.1"
            assert settings.port == 9000
            assert settings.supabase_url == "https://test.supabase.co"
            assert settings.store_metadata_ttl_seconds == 15.0
            assert settings.notification_feed_limit == 20

    def test_defaults(self) -> None:
        """Test defaults for the optional store and notification settings."""
        env_vars = {
            "SUPABASE_URL": "https://test.supabase.co",
            "SUPABASE_SECRET_KEY": "test-secret",
        }

        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings(_env_file=None)

            assert settings.store_metadata_ttl_seconds == 60.0
            assert settings.notification_feed_limit == 50
            assert settings.email_outbox_max_size == 1000
            assert settings.email_enabled is False

    def test_settings_cors_origins_list(self) -> None:
        """Test that CORS origins are correctly parsed into a list."""
        env_vars = {
            "CORS_ORIGINS": "http://localhost:3000, http://example.com , http://test.com",
            "SUPABASE_URL": "https://test.supabase.co",
            "SUPABASE_SECRET_KEY": "test-secret",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            settings = Settings()

            assert settings.cors_origins_list == [
                "http://localhost:3000",
                "http://example.com",
                "http://test.com",
            ]

    def test_email_enabled_with_api_key(self) -> None:
        env_vars = {
            "SUPABASE_URL": "https://test.supabase.co",
            "SUPABASE_SECRET_KEY": "test-secret",
            "RESEND_API_KEY": "re_test_key",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            assert Settings().email_enabled is True

    def test_settings_requires_supabase_credentials(self) -> None:
        """Test that missing Supabase settings raise a validation error."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_negative_ttl_rejected(self) -> None:
        env_vars = {
            "SUPABASE_URL": "https://test.supabase.co",
            "SUPABASE_SECRET_KEY": "test-secret",
            "STORE_METADATA_TTL_SECONDS": "-1",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            with pytest.raises(ValidationError):
                Settings()


class TestGetSettings:
    """Tests for get_settings function."""

    def test_get_settings_returns_cached_instance(self) -> None:
        """Test that get_settings returns the same instance."""
        get_settings.cache_clear()

        assert get_settings() is get_settings()

        get_settings.cache_clear()

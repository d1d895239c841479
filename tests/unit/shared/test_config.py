"""Unit tests for app store configuration loading."""

import os

import pytest

from src.lambdas.shared.config import AppConfig, ConfigurationError, get_config


class TestAppConfig:
    def test_defaults(self):
        for name in (
            "SIGNED_URL_EXPIRY_SECONDS",
            "DOWNLOAD_RETENTION_DAYS",
            "RATE_LIMIT_RETENTION_HOURS",
        ):
            os.environ.pop(name, None)

        config = get_config()

        assert config.table_name == "test-app-store"
        assert config.environment == "test"
        assert config.signed_url_expiry_seconds == 3600
        assert config.download_retention_days == 90
        assert config.rate_limit_retention_hours == 24

    def test_overrides(self):
        os.environ["SIGNED_URL_EXPIRY_SECONDS"] = "600"
        os.environ["DOWNLOAD_RETENTION_DAYS"] = "30"

        config = AppConfig.from_env()

        assert config.signed_url_expiry_seconds == 600
        assert config.download_retention_days == 30

    def test_missing_table(self):
        os.environ.pop("APP_STORE_TABLE", None)

        with pytest.raises(ConfigurationError, match="APP_STORE_TABLE"):
            AppConfig.from_env()

    def test_non_integer(self):
        os.environ["DOWNLOAD_RETENTION_DAYS"] = "ninety"

        with pytest.raises(ConfigurationError, match="must be an integer"):
            AppConfig.from_env()

    def test_non_positive(self):
        os.environ["SIGNED_URL_EXPIRY_SECONDS"] = "0"

        with pytest.raises(ConfigurationError, match="must be positive"):
            AppConfig.from_env()

    def test_cached(self):
        assert get_config() is get_config()

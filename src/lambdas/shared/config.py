"""
App Store Lambda Configuration
==============================

Parses and validates configuration from environment variables.

For On-Call Engineers:
    Environment variables:
    - APP_STORE_TABLE: DynamoDB table holding roles, rate-limit attempts,
      audit entries, applications and download logs (required)
    - APK_BUCKET: S3 bucket for APK uploads and signed downloads
    - DOWNLOAD_RETENTION_DAYS / RATE_LIMIT_RETENTION_HOURS: cleanup horizons

    If a handler fails at cold start with ConfigurationError, check the
    Lambda environment variables in the AWS Console.

For Developers:
    - Use get_config() to load configuration (cached per container)
    - Call get_config.cache_clear() in tests after changing os.environ
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

logger = logging.getLogger(__name__)

DEFAULT_APK_BUCKET = "apk-files"
DEFAULT_SIGNED_URL_EXPIRY_SECONDS = 3600
DEFAULT_DOWNLOAD_RETENTION_DAYS = 90
DEFAULT_RATE_LIMIT_RETENTION_HOURS = 24
DEFAULT_FROM_EMAIL = "DevConsole <noreply@devconsole.app>"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


@dataclass(frozen=True)
class AppConfig:
    """Configuration shared by all app store handlers."""

    table_name: str
    environment: str = "dev"
    apk_bucket: str = DEFAULT_APK_BUCKET
    signed_url_expiry_seconds: int = DEFAULT_SIGNED_URL_EXPIRY_SECONDS
    from_email: str = DEFAULT_FROM_EMAIL
    download_retention_days: int = DEFAULT_DOWNLOAD_RETENTION_DAYS
    rate_limit_retention_hours: int = DEFAULT_RATE_LIMIT_RETENTION_HOURS

    def __post_init__(self):
        if not self.table_name:
            raise ConfigurationError("APP_STORE_TABLE is required")
        if self.signed_url_expiry_seconds <= 0:
            raise ConfigurationError("SIGNED_URL_EXPIRY_SECONDS must be positive")
        if self.download_retention_days <= 0:
            raise ConfigurationError("DOWNLOAD_RETENTION_DAYS must be positive")
        if self.rate_limit_retention_hours <= 0:
            raise ConfigurationError("RATE_LIMIT_RETENTION_HOURS must be positive")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create config from environment variables."""
        return cls(
            table_name=os.environ.get("APP_STORE_TABLE", ""),
            environment=os.environ.get("ENVIRONMENT", "dev"),
            apk_bucket=os.environ.get("APK_BUCKET", DEFAULT_APK_BUCKET),
            signed_url_expiry_seconds=_env_int(
                "SIGNED_URL_EXPIRY_SECONDS", DEFAULT_SIGNED_URL_EXPIRY_SECONDS
            ),
            from_email=os.environ.get("FROM_EMAIL", DEFAULT_FROM_EMAIL),
            download_retention_days=_env_int(
                "DOWNLOAD_RETENTION_DAYS", DEFAULT_DOWNLOAD_RETENTION_DAYS
            ),
            rate_limit_retention_hours=_env_int(
                "RATE_LIMIT_RETENTION_HOURS", DEFAULT_RATE_LIMIT_RETENTION_HOURS
            ),
        )


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """
    Load and validate configuration from environment variables.

    Raises:
        ConfigurationError: If required vars missing or invalid
    """
    config = AppConfig.from_env()
    logger.info(
        "Configuration loaded",
        extra={
            "environment": config.environment,
            "table_name": config.table_name,
        },
    )
    return config

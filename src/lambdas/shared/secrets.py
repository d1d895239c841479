"""
Secrets Manager Helper Module
=============================

Provides Secrets Manager integration with in-memory caching for Lambda functions.

For On-Call Engineers:
    If secrets fail to load, check:
    1. Secret exists: aws secretsmanager describe-secret --secret-id <path>
    2. Lambda IAM role has secretsmanager:GetSecretValue permission
    3. Secret path format: ${environment}/app-store/<name>

    Cache has 5-minute TTL. Lambda cold start refreshes cache automatically.

For Developers:
    - Use resolve_secret() when a value may come from a plain env var (local,
      tests) or from a Secrets Manager ARN (deployed stages)
    - Never log secret values, only the last path component of the secret id

Security Notes:
    - Use compare_digest() for timing-safe comparison of shared secrets
"""

import hmac
import json
import logging
import os
import time
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

# On-Call Note: Reduce TTL if secrets need faster rotation pickup
DEFAULT_CACHE_TTL_SECONDS = 300

RETRY_CONFIG = Config(
    retries={
        "max_attempts": 3,
        "mode": "adaptive",
    },
    connect_timeout=5,
    read_timeout=10,
)

# Structure: {secret_id: {"value": <parsed_value>, "expires_at": <timestamp>}}
_secrets_cache: dict[str, dict[str, Any]] = {}


class SecretError(Exception):
    """Base exception for secret-related errors."""


class SecretNotFoundError(SecretError):
    """Raised when a secret doesn't exist."""


class SecretAccessDeniedError(SecretError):
    """Raised when access to a secret is denied."""


class SecretRetrievalError(SecretError):
    """Raised for general secret retrieval errors."""


def _sanitize_secret_id_for_log(secret_id: str) -> str:
    """
    Reduce a secret id or ARN to its bare name for logging.

    Example:
        >>> _sanitize_secret_id_for_log("dev/app-store/sendgrid")
        'sendgrid'
        >>> _sanitize_secret_id_for_log("arn:aws:secretsmanager:us-east-1:123:secret:jwt-key-abc123")
        'jwt-key'
    """
    if secret_id.startswith("arn:"):
        parts = secret_id.split(":")
        if len(parts) >= 7:
            name_with_suffix = parts[6]
            # AWS appends a random "-xxxxxx" suffix to secret ARNs
            return (
                name_with_suffix.rsplit("-", 1)[0]
                if "-" in name_with_suffix
                else name_with_suffix
            )

    return secret_id.split("/")[-1]


def get_secrets_client(region_name: str | None = None) -> Any:
    """Get a Secrets Manager client with retry configuration."""
    region = (
        region_name or os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION")
    )
    if not region:
        raise ValueError("AWS_REGION environment variable must be set")

    return boto3.client(
        "secretsmanager",
        region_name=region,
        config=RETRY_CONFIG,
    )


def get_secret(
    secret_id: str,
    region_name: str | None = None,
    force_refresh: bool = False,
) -> dict[str, Any]:
    """
    Retrieve a secret from Secrets Manager with caching.

    Secret strings that are not JSON objects are returned as
    `{"value": <raw string>}` so callers always get a dict.

    Args:
        secret_id: Secret name or ARN
        region_name: AWS region
        force_refresh: If True, bypass cache and fetch from Secrets Manager

    Returns:
        Parsed secret value as dict

    Raises:
        SecretNotFoundError: If secret doesn't exist
        SecretAccessDeniedError: If Lambda role lacks permission
        SecretRetrievalError: For other Secrets Manager errors
    """
    secret_name = _sanitize_secret_id_for_log(secret_id)

    if not force_refresh:
        cached = _get_from_cache(secret_id)
        if cached is not None:
            logger.debug("Secret retrieved from cache", extra={"secret_name": secret_name})
            return cached

    client = get_secrets_client(region_name)

    try:
        response = client.get_secret_value(SecretId=secret_id)
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        logger.error(
            "Failed to retrieve secret",
            extra={"secret_name": secret_name, "error_code": error_code},
        )
        if error_code == "ResourceNotFoundException":
            raise SecretNotFoundError(f"Secret not found: {secret_name}") from e
        if error_code in ("AccessDeniedException", "UnauthorizedAccess"):
            raise SecretAccessDeniedError(f"Access denied to secret: {secret_name}") from e
        raise SecretRetrievalError(f"Failed to retrieve secret: {secret_name}") from e

    secret_string = response.get("SecretString")
    if not secret_string:
        raise SecretRetrievalError(f"Secret is binary, not string: {secret_name}")

    try:
        parsed = json.loads(secret_string)
    except json.JSONDecodeError:
        parsed = None

    secret_value = parsed if isinstance(parsed, dict) else {"value": secret_string}

    _set_in_cache(secret_id, secret_value)
    logger.info("Secret retrieved from Secrets Manager", extra={"secret_name": secret_name})

    return secret_value


def get_api_key(secret_id: str, key_field: str = "api_key") -> str:
    """
    Retrieve a single field from a secret.

    Falls back to the raw string for non-JSON secrets.

    Raises:
        SecretRetrievalError: If key_field not found in secret
    """
    secret = get_secret(secret_id)

    if key_field in secret:
        return str(secret[key_field])
    if "value" in secret:
        return str(secret["value"])

    raise SecretRetrievalError(
        f"Field '{key_field}' not found in secret: {_sanitize_secret_id_for_log(secret_id)}"
    )


def resolve_secret(env_var: str, arn_env_var: str, key_field: str = "api_key") -> str | None:
    """
    Resolve a secret from a plain env var, else from a Secrets Manager ARN.

    Fallback chain:
    1. `env_var` (local dev, tests)
    2. `arn_env_var` -> Secrets Manager field `key_field`

    Returns:
        Secret value, or None if neither source is configured or retrieval failed
    """
    value = os.environ.get(env_var)
    if value:
        return value

    secret_arn = os.environ.get(arn_env_var)
    if not secret_arn:
        return None

    try:
        return get_api_key(secret_arn, key_field=key_field)
    except SecretError:
        # Already logged by get_secret
        return None


def clear_cache() -> None:
    """Clear the secrets cache (tests, forced rotation pickup)."""
    _secrets_cache.clear()
    logger.debug("Secrets cache cleared")


def _get_from_cache(secret_id: str) -> dict[str, Any] | None:
    entry = _secrets_cache.get(secret_id)
    if entry is None:
        return None

    if time.time() > entry["expires_at"]:
        del _secrets_cache[secret_id]
        return None

    return entry["value"]


def _set_in_cache(secret_id: str, value: dict[str, Any]) -> None:
    ttl = int(os.environ.get("SECRETS_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS))
    _secrets_cache[secret_id] = {
        "value": value,
        "expires_at": time.time() + ttl,
    }


def compare_digest(a: str | None, b: str | None) -> bool:
    """
    Timing-safe comparison of two strings.

    Security Note:
        Always use this for shared-secret validation, never use == directly.
    """
    if a is None or b is None:
        return False

    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))

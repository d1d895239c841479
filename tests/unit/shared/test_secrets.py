"""
Unit Tests for Secrets Manager Helper Module
=============================================

For Developers:
    - All tests use moto to mock Secrets Manager
    - The autouse reset_cached_state fixture clears the secrets cache
"""

import json
import os

import boto3
import pytest
from moto import mock_aws

from src.lambdas.shared.secrets import (
    SecretNotFoundError,
    SecretRetrievalError,
    _sanitize_secret_id_for_log,
    compare_digest,
    get_api_key,
    get_secret,
    resolve_secret,
)


@pytest.fixture
def secrets_manager(aws_credentials):
    """Mocked Secrets Manager with JSON, plain and multi-field secrets."""
    with mock_aws():
        client = boto3.client("secretsmanager", region_name="us-east-1")
        client.create_secret(
            Name="dev/app-store/sendgrid",
            SecretString=json.dumps({"api_key": "SG.test-key"}),
        )
        client.create_secret(
            Name="dev/app-store/hcaptcha",
            SecretString="plain-hcaptcha-secret",
        )
        client.create_secret(
            Name="dev/app-store/auth-hook",
            SecretString=json.dumps({"secret": "hook-secret", "other": "x"}),
        )
        yield client


class TestGetSecret:
    def test_json_secret(self, secrets_manager):
        assert get_secret("dev/app-store/sendgrid") == {"api_key": "SG.test-key"}

    def test_plain_string_wrapped(self, secrets_manager):
        assert get_secret("dev/app-store/hcaptcha") == {"value": "plain-hcaptcha-secret"}

    def test_cached_until_forced(self, secrets_manager):
        get_secret("dev/app-store/sendgrid")
        secrets_manager.put_secret_value(
            SecretId="dev/app-store/sendgrid",
            SecretString=json.dumps({"api_key": "SG.rotated"}),
        )

        assert get_secret("dev/app-store/sendgrid")["api_key"] == "SG.test-key"
        assert get_secret("dev/app-store/sendgrid", force_refresh=True)["api_key"] == "SG.rotated"

    def test_missing_secret(self, secrets_manager):
        with pytest.raises(SecretNotFoundError, match="nope"):
            get_secret("dev/app-store/nope")


class TestGetApiKey:
    def test_named_field(self, secrets_manager):
        assert get_api_key("dev/app-store/auth-hook", key_field="secret") == "hook-secret"

    def test_plain_secret_falls_back_to_raw(self, secrets_manager):
        assert get_api_key("dev/app-store/hcaptcha", key_field="secret") == "plain-hcaptcha-secret"

    def test_missing_field(self, secrets_manager):
        with pytest.raises(SecretRetrievalError, match="Field 'missing'"):
            get_api_key("dev/app-store/sendgrid", key_field="missing")


class TestResolveSecret:
    def test_env_var_wins(self, secrets_manager):
        os.environ["HOOK"] = "from-env"
        os.environ["HOOK_ARN"] = "dev/app-store/auth-hook"

        assert resolve_secret("HOOK", "HOOK_ARN", key_field="secret") == "from-env"

    def test_arn_fallback(self, secrets_manager):
        os.environ.pop("HOOK", None)
        os.environ["HOOK_ARN"] = "dev/app-store/auth-hook"

        assert resolve_secret("HOOK", "HOOK_ARN", key_field="secret") == "hook-secret"

    def test_unconfigured(self):
        os.environ.pop("HOOK", None)
        os.environ.pop("HOOK_ARN", None)

        assert resolve_secret("HOOK", "HOOK_ARN") is None

    def test_retrieval_failure_is_none(self, secrets_manager):
        os.environ.pop("HOOK", None)
        os.environ["HOOK_ARN"] = "dev/app-store/does-not-exist"

        assert resolve_secret("HOOK", "HOOK_ARN") is None


class TestHelpers:
    def test_compare_digest(self):
        assert compare_digest("abc", "abc") is True
        assert compare_digest("abc", "abd") is False
        assert compare_digest(None, "abc") is False
        assert compare_digest("abc", None) is False

    @pytest.mark.parametrize(
        "secret_id,expected",
        [
            ("dev/app-store/sendgrid", "sendgrid"),
            ("arn:aws:secretsmanager:us-east-1:123:secret:jwt-key-abc123", "jwt-key"),
            ("plain", "plain"),
        ],
    )
    def test_sanitize_secret_id(self, secret_id, expected):
        assert _sanitize_secret_id_for_log(secret_id) == expected

"""Unit tests for the persisted fixed-window rate limiter.

All attempts are stored as rows in the moto table, so a "second Lambda
instance" is simply a second call against the same table.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from src.lambdas.shared.errors import RateLimited
from src.lambdas.shared.middleware.rate_limit import (
    DEFAULT_RATE_LIMITS,
    RateLimitResult,
    check_rate_limit,
    enforce_rate_limit,
    get_client_ip,
    get_policy,
    get_rate_limit_headers,
    sweep_rate_limit_attempts,
)
from src.lambdas.shared.models.rate_limit_attempt import attempt_pk
from tests.conftest import assert_error_logged

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=UTC)


def _attempt_rows(table, identifier, action):
    return table.query(KeyConditionExpression=Key("PK").eq(attempt_pk(identifier, action)))[
        "Items"
    ]


def _throttled_table():
    table = MagicMock()
    table.query.side_effect = ClientError(
        {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow"}},
        "Query",
    )
    return table


class TestPolicies:
    def test_auth_policies(self):
        assert get_policy("login") == (5, 900)
        assert get_policy("signup") == (5, 900)

    def test_pii_lookup_policy(self):
        assert get_policy("get_developer_email") == (50, 3600)

    def test_unknown_action_uses_default(self):
        assert get_policy("something-else") == (
            DEFAULT_RATE_LIMITS["default"]["limit"],
            DEFAULT_RATE_LIMITS["default"]["window_seconds"],
        )


class TestCheckRateLimit:
    def test_five_logins_allowed_sixth_denied(self, store_table):
        remaining = []
        for i in range(5):
            result = check_rate_limit(
                store_table, "ip:1.2.3.4", "login", now=NOW + timedelta(seconds=i)
            )
            assert result.allowed is True
            remaining.append(result.remaining)

        sixth = check_rate_limit(store_table, "ip:1.2.3.4", "login", now=NOW + timedelta(seconds=5))

        assert remaining == [4, 3, 2, 1, 0]
        assert sixth.allowed is False
        assert sixth.retry_after == 900
        assert sixth.remaining == 0

    def test_denied_attempt_writes_no_row(self, store_table):
        for i in range(6):
            check_rate_limit(store_table, "ip:1.2.3.4", "login", now=NOW + timedelta(seconds=i))

        assert len(_attempt_rows(store_table, "ip:1.2.3.4", "login")) == 5

    def test_login_and_signup_are_independent(self, store_table):
        for i in range(5):
            check_rate_limit(store_table, "ip:1.2.3.4", "login", now=NOW + timedelta(seconds=i))

        signup = check_rate_limit(store_table, "ip:1.2.3.4", "signup", now=NOW)

        assert signup.allowed is True
        assert signup.remaining == 4

    def test_identifiers_are_independent(self, store_table):
        for i in range(5):
            check_rate_limit(store_table, "ip:1.2.3.4", "login", now=NOW + timedelta(seconds=i))

        assert check_rate_limit(store_table, "ip:5.6.7.8", "login", now=NOW).allowed is True

    def test_window_expiry_allows_again(self, store_table):
        for i in range(5):
            check_rate_limit(store_table, "ip:1.2.3.4", "login", now=NOW + timedelta(seconds=i))

        later = NOW + timedelta(seconds=900 + 10)

        assert check_rate_limit(store_table, "ip:1.2.3.4", "login", now=later).allowed is True

    def test_window_rolls_over_one_attempt_at_a_time(self, store_table):
        minute = timedelta(minutes=1)
        for i in range(5):
            result = check_rate_limit(store_table, "ip:1.2.3.4", "login", now=NOW + i * minute)
            assert result.allowed is True

        denied = check_rate_limit(store_table, "ip:1.2.3.4", "login", now=NOW + 5 * minute)
        # Only the t=0 attempt has left the 15 minute window; t=1..4 still count
        rolled = check_rate_limit(store_table, "ip:1.2.3.4", "login", now=NOW + 16 * minute)

        assert denied.allowed is False
        assert rolled.allowed is True
        assert rolled.remaining == 0

    def test_count_is_shared_across_instances(self, store_table):
        # Same table, separate calls: equivalent to two Lambda containers
        for i in range(3):
            check_rate_limit(store_table, "user@example.com", "signup", now=NOW)
        for i in range(2):
            check_rate_limit(store_table, "user@example.com", "signup", now=NOW)

        assert check_rate_limit(store_table, "user@example.com", "signup", now=NOW).allowed is False

    def test_attempt_rows_carry_ttl(self, store_table):
        check_rate_limit(store_table, "ip:1.2.3.4", "login", now=NOW)

        row = _attempt_rows(store_table, "ip:1.2.3.4", "login")[0]
        assert int(row["ttl"]) == int(NOW.timestamp()) + 1800
        assert row["entity_type"] == "RATE_LIMIT_ATTEMPT"

    def test_custom_limit(self, store_table):
        check_rate_limit(store_table, "k", "default", custom_limit=1, now=NOW)

        assert check_rate_limit(store_table, "k", "default", custom_limit=1, now=NOW).allowed is False

    def test_fails_open_on_query_error(self, caplog):
        table = _throttled_table()

        result = check_rate_limit(table, "ip:1.2.3.4", "login", now=NOW)

        assert result.allowed is True
        assert result.remaining == 5
        table.put_item.assert_not_called()
        assert_error_logged(caplog, "Error checking rate limit")

    def test_record_failure_still_allows(self, caplog):
        table = MagicMock()
        table.query.return_value = {"Count": 0}
        table.put_item.side_effect = ClientError(
            {"Error": {"Code": "InternalServerError", "Message": "boom"}}, "PutItem"
        )

        result = check_rate_limit(table, "ip:1.2.3.4", "login", now=NOW)

        assert result.allowed is True
        assert_error_logged(caplog, "Error recording rate limit attempt")


class TestEnforceRateLimit:
    def test_raises_with_message_and_retry_after(self, store_table):
        for _ in range(50):
            enforce_rate_limit(store_table, "admin-1", "get_developer_email", now=NOW)

        with pytest.raises(RateLimited) as exc_info:
            enforce_rate_limit(
                store_table,
                "admin-1",
                "get_developer_email",
                message="Rate limit exceeded. Maximum 50 requests per hour.",
                now=NOW,
            )

        assert exc_info.value.retry_after == 3600
        assert exc_info.value.message == "Rate limit exceeded. Maximum 50 requests per hour."


class TestHeaders:
    def test_allowed_headers(self):
        result = RateLimitResult(allowed=True, limit=5, remaining=3, reset_at="t")

        headers = get_rate_limit_headers(result)

        assert headers == {
            "X-RateLimit-Limit": "5",
            "X-RateLimit-Remaining": "3",
            "X-RateLimit-Reset": "t",
        }

    def test_denied_headers_include_retry_after(self):
        result = RateLimitResult(allowed=False, limit=5, remaining=0, reset_at="t", retry_after=900)

        assert get_rate_limit_headers(result)["Retry-After"] == "900"


class TestGetClientIp:
    def test_http_api_source_ip(self):
        assert get_client_ip({"requestContext": {"http": {"sourceIp": "1.2.3.4"}}}) == "1.2.3.4"

    def test_rest_api_source_ip(self):
        assert get_client_ip({"requestContext": {"identity": {"sourceIp": "5.6.7.8"}}}) == "5.6.7.8"

    def test_forwarded_for(self):
        event = {"headers": {"X-Forwarded-For": "9.9.9.9, 10.0.0.1"}}
        assert get_client_ip(event) == "9.9.9.9"

    def test_unknown(self):
        assert get_client_ip({}) == "unknown"


class TestSweep:
    def test_removes_rows_older_than_retention(self, store_table):
        check_rate_limit(store_table, "ip:1.2.3.4", "login", now=NOW - timedelta(hours=30))
        check_rate_limit(store_table, "ip:1.2.3.4", "login", now=NOW - timedelta(minutes=5))

        deleted = sweep_rate_limit_attempts(store_table, 24 * 3600, now=NOW)

        assert deleted == 1
        assert len(_attempt_rows(store_table, "ip:1.2.3.4", "login")) == 1

    def test_rejects_retention_shorter_than_longest_window(self, store_table):
        with pytest.raises(ValueError, match="longest window"):
            sweep_rate_limit_attempts(store_table, 600, now=NOW)

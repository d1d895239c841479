"""
Pytest Configuration and Shared Fixtures
=========================================

Common fixtures used across all test modules.

For On-Call Engineers:
    If tests fail with AWS credential errors:
    1. Ensure moto is properly mocking (check the store_table fixture)
    2. Verify AWS env vars are set below
    3. Check moto is 5.x (mock_aws)

    If tests fail with "cannot find the current segment":
    AWS_XRAY_SDK_ENABLED must be "false" before handlers are imported.

For Developers:
    - Import fixtures by name in test files (pytest auto-discovers conftest.py)
    - store_table is a moto DynamoDB table with the production key schema
    - Handlers read the table through get_store_table(); the store_table
      fixture resets that singleton so handlers see the moto table
    - Use assert_error_logged / assert_warning_logged for log assertions
"""

import logging
import os

import boto3
import pytest
from moto import mock_aws

# Set default test environment variables at module load time
# This allows test files to import modules that read env vars at import time
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

# Disable X-Ray SDK in tests. patch_all() and @xray_recorder.capture run at
# import time and log ERROR for every call without an active segment.
os.environ.setdefault("AWS_XRAY_SDK_ENABLED", "false")

os.environ.setdefault("APP_STORE_TABLE", "test-app-store")
os.environ.setdefault("APK_BUCKET", "test-apk-files")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-with-at-least-32-bytes!")

TEST_TABLE_NAME = "test-app-store"
TEST_BUCKET_NAME = "test-apk-files"


def pytest_configure(config):
    """Register custom markers to avoid warnings."""
    config.addinivalue_line(
        "markers",
        "expect_errors(pattern): marks tests that expect ERROR logs matching pattern",
    )


@pytest.fixture(autouse=True)
def reset_env_vars():
    """
    Reset environment variables before each test.

    Ensures tests don't pollute each other's environment.
    """
    original_env = os.environ.copy()

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def reset_cached_state():
    """Drop lazily-built clients, the secrets cache and cached config."""
    from src.lambdas.shared.config import get_config
    from src.lambdas.shared.dependencies import reset_singletons
    from src.lambdas.shared.secrets import clear_cache

    reset_singletons()
    clear_cache()
    get_config.cache_clear()

    yield

    reset_singletons()
    clear_cache()
    get_config.cache_clear()


@pytest.fixture
def aws_credentials():
    """
    Set up mock AWS credentials for moto.

    Use this fixture when testing AWS SDK calls.
    """
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_REGION"] = "us-east-1"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"

    yield


def create_store_table(name: str = TEST_TABLE_NAME):
    """Create the app store table with the production key schema.

    Must be called inside an active mock_aws() context.
    """
    client = boto3.client("dynamodb", region_name="us-east-1")
    client.create_table(
        TableName=name,
        KeySchema=[
            {"AttributeName": "PK", "KeyType": "HASH"},
            {"AttributeName": "SK", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
            {"AttributeName": "GSI1PK", "AttributeType": "S"},
            {"AttributeName": "GSI1SK", "AttributeType": "S"},
        ],
        GlobalSecondaryIndexes=[
            {
                "IndexName": "GSI1",
                "KeySchema": [
                    {"AttributeName": "GSI1PK", "KeyType": "HASH"},
                    {"AttributeName": "GSI1SK", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            }
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    return boto3.resource("dynamodb", region_name="us-east-1").Table(name)


@pytest.fixture
def store_table(aws_credentials):
    """Moto-backed app store table, also returned by get_store_table()."""
    with mock_aws():
        os.environ["APP_STORE_TABLE"] = TEST_TABLE_NAME
        table = create_store_table()
        yield table


@pytest.fixture
def apk_bucket(store_table):
    """Moto S3 bucket for APK presigned URLs (shares store_table's mock)."""
    os.environ["APK_BUCKET"] = TEST_BUCKET_NAME
    s3 = boto3.client("s3", region_name="us-east-1")
    s3.create_bucket(Bucket=TEST_BUCKET_NAME)
    return TEST_BUCKET_NAME


# =============================================================================
# Log Validation Helpers
# =============================================================================


def assert_error_logged(caplog, pattern: str):
    """
    Assert an ERROR log matching pattern was captured.

    Example:
        def test_audit_failure(caplog):
            record_audit_entry(broken_table, "admin-1", "view")
            assert_error_logged(caplog, "Failed to write audit entry")
    """
    assert any(
        pattern in record.message
        for record in caplog.records
        if record.levelno >= logging.ERROR
    ), f"Expected ERROR log matching '{pattern}' not found"


def assert_warning_logged(caplog, pattern: str):
    """Assert a WARNING log matching pattern was captured."""
    assert any(
        pattern in record.message
        for record in caplog.records
        if record.levelno == logging.WARNING
    ), f"Expected WARNING log matching '{pattern}' not found"

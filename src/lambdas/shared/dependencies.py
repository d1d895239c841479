"""Lazy-init singleton dependency getters.

Each getter initializes its resource on first call and caches it for the
Lambda container lifetime. Handlers receive the table explicitly from here
and pass it into every gate, so tests can swap in a moto table or a
MagicMock by calling reset_singletons() or patching the getter.

Usage:
    from src.lambdas.shared.dependencies import get_store_table

    table = get_store_table()
"""

import logging
import os
import threading

logger = logging.getLogger(__name__)

_init_lock = threading.Lock()

# Singleton instances
_store_table = None
_s3_client = None
_email_service = None


def get_store_table():
    """Get DynamoDB app store table resource (lazy singleton).

    Returns:
        boto3 DynamoDB Table resource for APP_STORE_TABLE.

    Raises:
        KeyError: If APP_STORE_TABLE environment variable is not set.
    """
    global _store_table
    if _store_table is None:
        with _init_lock:
            if _store_table is None:
                from src.lambdas.shared.dynamodb import get_table

                _store_table = get_table(os.environ["APP_STORE_TABLE"])
    return _store_table


def get_s3_client():
    """Get S3 client for APK presigned URLs (lazy singleton).

    Signature v4 is required for presigned URLs on KMS-encrypted buckets.
    """
    global _s3_client
    if _s3_client is None:
        with _init_lock:
            if _s3_client is None:
                import boto3
                from botocore.config import Config

                region = os.environ.get("AWS_DEFAULT_REGION") or os.environ.get("AWS_REGION")
                _s3_client = boto3.client(
                    "s3",
                    region_name=region,
                    config=Config(signature_version="s3v4"),
                )
    return _s3_client


def get_email_service():
    """Get SendGrid EmailService (lazy singleton).

    The API key is resolved on first send, so constructing the service
    never fails even when SendGrid is not configured.
    """
    global _email_service
    if _email_service is None:
        with _init_lock:
            if _email_service is None:
                from src.lambdas.notification.sendgrid_service import EmailService
                from src.lambdas.shared.config import DEFAULT_FROM_EMAIL

                _email_service = EmailService(
                    from_email=os.environ.get("FROM_EMAIL", DEFAULT_FROM_EMAIL),
                )
    return _email_service


def reset_singletons():
    """Reset all singleton instances (for testing only).

    Allows tests to reinitialize dependencies between test runs
    without reloading modules.
    """
    global _store_table, _s3_client, _email_service
    with _init_lock:
        _store_table = None
        _s3_client = None
        _email_service = None

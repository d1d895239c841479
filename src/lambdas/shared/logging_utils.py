"""
Secure logging utilities to prevent log injection and sensitive data exposure.

This module provides functions to sanitize data before logging, preventing:
- Log injection attacks (CWE-117, CWE-93)
- Personal data (emails, user IDs) leaking into CloudWatch in full
- Exception messages carrying user input into logs

For On-Call Engineers:
    Log lines from the gating handlers never contain full email addresses or
    user IDs. Search by the 8-character prefix emitted in `user_id_prefix`.

For Developers:
    - Pass any request-derived value through sanitize_for_log() before logging
    - Log exceptions with get_safe_error_info(), never str(exc)
    - Use log_expected_warning() for warnings that tests exercise on purpose

Security References:
- OWASP Logging Cheat Sheet: https://cheatsheetseries.owasp.org/cheatsheets/Logging_Cheat_Sheet.html
"""

import logging
import re
import sys
from typing import Any

# Maximum length for logged user input to prevent log flooding
MAX_LOG_INPUT_LENGTH = 200


def sanitize_for_log(value: Any, max_length: int = MAX_LOG_INPUT_LENGTH) -> str:
    """
    Sanitize a value for safe logging by removing CRLF and limiting length.

    Args:
        value: Value to sanitize (will be converted to string)
        max_length: Maximum length of output (default: 200)

    Returns:
        Sanitized string safe for logging

    Example:
        >>> sanitize_for_log("error\\n[FAKE] Admin logged in")
        'error [FAKE] Admin logged in'
    """
    text = str(value)

    # Remove CRLF characters to prevent log injection
    text = text.replace("\r", " ").replace("\n", " ").replace("\t", " ")

    # Remove other control characters
    text = re.sub(r"[\x00-\x1f\x7f-\x9f]", " ", text)

    if len(text) > max_length:
        text = text[:max_length] + "..."

    return text


def get_safe_error_info(exception: Exception) -> dict[str, str]:
    """
    Extract safe information from an exception for logging.

    Returns only the exception type, NOT the message, because messages from
    the SDKs may echo request data (emails, tokens, table keys).

    Example:
        >>> try:
        ...     raise ValueError("user input here")
        ... except Exception as e:
        ...     get_safe_error_info(e)
        {'error_type': 'ValueError'}
    """
    return {"error_type": type(exception).__name__}


def mask_identifier(value: str | None, visible: int = 8) -> str:
    """Return the first characters of an identifier for log correlation."""
    if not value:
        return ""
    safe = sanitize_for_log(value, max_length=64)
    if len(safe) <= visible:
        return safe
    return f"{safe[:visible]}..."


def mask_email(email: str | None) -> str | None:
    """Mask email for logs and responses: john@example.com -> j***@example.com"""
    if not email:
        return None
    try:
        local, domain = email.split("@")
        if len(local) <= 1:
            return f"*@{domain}"
        return f"{local[0]}***@{domain}"
    except ValueError:
        return "***"


def _is_running_in_pytest() -> bool:
    return "pytest" in sys.modules


def log_expected_warning(logger: logging.Logger, message: str, **kwargs: Any) -> None:
    """
    Log warnings that are expected during normal operation.

    Denied rate-limit checks, rejected captchas and failed role checks are
    normal traffic. Under pytest they are logged at DEBUG to keep test output
    readable; in deployment they stay at WARNING.
    """
    if _is_running_in_pytest():
        logger.debug(message, **kwargs)
    else:
        logger.warning(message, **kwargs)

"""Unit tests for secure logging helpers."""

import logging

from src.lambdas.shared.logging_utils import (
    get_safe_error_info,
    log_expected_warning,
    mask_email,
    mask_identifier,
    sanitize_for_log,
)


class TestSanitizeForLog:
    def test_strips_crlf(self):
        assert sanitize_for_log("bad\r\n[ADMIN] granted") == "bad  [ADMIN] granted"

    def test_truncates(self):
        assert sanitize_for_log("x" * 300) == "x" * 200 + "..."

    def test_non_string(self):
        assert sanitize_for_log(42) == "42"


class TestMasking:
    def test_mask_identifier(self):
        assert mask_identifier("0123456789abcdef") == "01234567..."
        assert mask_identifier("short") == "short"
        assert mask_identifier(None) == ""

    def test_mask_email(self):
        assert mask_email("john@example.com") == "j***@example.com"
        assert mask_email("j@example.com") == "*@example.com"
        assert mask_email("not-an-email") == "***"
        assert mask_email(None) is None


def test_safe_error_info_omits_message():
    assert get_safe_error_info(ValueError("dev@example.com")) == {"error_type": "ValueError"}


def test_expected_warning_is_debug_under_pytest(caplog):
    logger = logging.getLogger("tests.expected")

    with caplog.at_level(logging.DEBUG, logger="tests.expected"):
        log_expected_warning(logger, "Rate limit exceeded")

    assert [r.levelno for r in caplog.records] == [logging.DEBUG]

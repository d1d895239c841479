"""
Input sanitization and validation for user-submitted content.

App metadata, review notes and display names are rendered back into the store
front end and into HTML emails, so anything stored or templated passes through
these helpers first.

Example:
    >>> sanitize_html('<b>"hi"</b>')
    '&lt;b&gt;&quot;hi&quot;&lt;&#x2F;b&gt;'
    >>> sanitize_path("../../etc/passwd")
    'etcpasswd'
"""

import re
from urllib.parse import urlsplit

MAX_EMAIL_LENGTH = 255
DEFAULT_MAX_TEXT_LENGTH = 10000

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Control characters except tab, newline and carriage return
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

_HTML_ENTITIES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
}
_HTML_CHARS = re.compile(r"[&<>\"'/]")


def sanitize_html(value: str) -> str:
    """HTML-entity-encode a string for safe interpolation into markup."""
    return _HTML_CHARS.sub(lambda m: _HTML_ENTITIES[m.group(0)], value)


def sanitize_text(value: str, max_length: int = DEFAULT_MAX_TEXT_LENGTH) -> str:
    """Remove control characters, trim, and truncate to max_length."""
    return _CONTROL_CHARS.sub("", value).strip()[:max_length]


def sanitize_path(value: str) -> str:
    """Remove traversal sequences, separators and reserved characters from a file name."""
    cleaned = value.replace("..", "")
    cleaned = re.sub(r"[/\\]", "", cleaned)
    cleaned = re.sub(r'[<>:"|?*]', "", cleaned)
    return _CONTROL_CHARS.sub("", cleaned)


def sanitize_url(value: str) -> str | None:
    """Return the URL if it is http(s) with a host, else None."""
    try:
        parts = urlsplit(value.strip())
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return parts.geturl()


def is_valid_email(value: str | None) -> bool:
    """Check email shape and length."""
    if not value:
        return False
    return len(value) <= MAX_EMAIL_LENGTH and EMAIL_PATTERN.match(value) is not None

"""Security and CORS headers for all Lambda responses.

For On-Call Engineers:
    The browser app calls these handlers cross-origin with an Authorization
    header, so every response (including errors) must carry the CORS headers
    below. If the front end reports "CORS error" on a 4xx/5xx, check that the
    handler goes through handle_request(). The store API sets the same
    headers through FastAPI middleware (see store/handler.py).

Security Notes:
    - HSTS: Forces HTTPS connections
    - CSP: API responses are JSON only
    - X-Content-Type-Options: Prevents MIME sniffing
    - X-Frame-Options: Prevents clickjacking
"""

import os
from typing import Any

CORS_ALLOWED_ORIGIN = os.environ.get("CORS_ALLOWED_ORIGIN", "*")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": CORS_ALLOWED_ORIGIN,
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Expose-Headers": "Retry-After, X-RateLimit-Limit, X-RateLimit-Remaining, X-RateLimit-Reset",
}

SECURITY_HEADERS = {
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains; preload",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

API_CSP = "default-src 'none'; frame-ancestors 'none'"


def get_cors_headers() -> dict[str, str]:
    """Get CORS headers for response."""
    return dict(CORS_HEADERS)


def get_api_headers() -> dict[str, str]:
    """Security headers for JSON API responses (no CORS)."""
    return {
        **SECURITY_HEADERS,
        "Content-Security-Policy": API_CSP,
        # Responses carry emails and signed URLs; never cache them
        "Cache-Control": "no-store, no-cache, must-revalidate, private",
    }


def add_security_headers(response: dict[str, Any]) -> dict[str, Any]:
    """Add CORS and security headers to a Lambda response.

    Headers already present on the response are left untouched.
    """
    headers = response.setdefault("headers", {})

    for header, value in {**CORS_HEADERS, **get_api_headers()}.items():
        headers.setdefault(header, value)

    return response


def get_preflight_response() -> dict[str, Any]:
    """Get response for CORS preflight (OPTIONS) request."""
    return {
        "statusCode": 204,
        "headers": {
            **CORS_HEADERS,
            **SECURITY_HEADERS,
            "Access-Control-Max-Age": "600",
            "Content-Length": "0",
        },
        "body": "",
    }

"""Utility functions for shared Lambda code."""

from src.lambdas.shared.utils.event_helpers import get_header, parse_json_body
from src.lambdas.shared.utils.response_builder import json_response

__all__ = [
    "get_header",
    "json_response",
    "parse_json_body",
]

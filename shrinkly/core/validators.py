"""
Input Validators and Sanitizers

This module provides validation and sanitization functions for user inputs.
These functions help prevent security issues and ensure data integrity.

Security Considerations:
- Input validation prevents injection attacks
- Length limits prevent DoS attacks
"""

import re
from typing import Optional
from urllib.parse import urlparse

MAX_URL_LENGTH = 2048
MAX_SHORT_CODE_LENGTH = 50

SHORT_CODE_PATTERN = re.compile(r'^[0-9a-zA-Z_-]+$')


def sanitize_short_code(short_code: str) -> Optional[str]:
    """
    Sanitize and validate short code format.

    Generated codes are alphanumeric; custom slugs may also use '-' and '_'.

    Args:
        short_code: The short code to sanitize

    Returns:
        Sanitized short code if valid, None otherwise
    """
    if not short_code or not isinstance(short_code, str):
        return None

    short_code = short_code.strip()

    if len(short_code) > MAX_SHORT_CODE_LENGTH:
        return None

    if not SHORT_CODE_PATTERN.match(short_code):
        return None

    return short_code


def validate_url_length(url: str, max_length: int = MAX_URL_LENGTH) -> bool:
    """
    Validate URL length to prevent DoS attacks.

    Args:
        url: The URL to validate
        max_length: Maximum allowed length (default: 2048 per RFC 7230)

    Returns:
        True if URL length is valid, False otherwise
    """
    return bool(url) and len(url) <= max_length


def is_valid_url(url: str) -> bool:
    """
    Validate a destination URL.

    Checks that URL uses http/https, has a valid domain, and doesn't contain
    javascript:, data:, file: or vbscript: payloads.
    """
    if not url or not isinstance(url, str):
        return False

    if not validate_url_length(url):
        return False

    try:
        result = urlparse(url)
    except ValueError:
        return False

    if not result.scheme or not result.netloc:
        return False

    if result.scheme.lower() not in {'http', 'https'}:
        return False

    domain = result.netloc.split(':')[0]
    if domain != 'localhost' and '.' not in domain:
        return False

    malicious_patterns = ['javascript:', 'data:', 'file:', 'vbscript:']
    url_lower = url.lower()
    if any(pattern in url_lower for pattern in malicious_patterns):
        return False

    return True

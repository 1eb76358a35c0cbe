"""
Custom Exceptions

This module defines custom exceptions for the redirect path, the link
lifecycle and the analytics queries.

Mapping to HTTP (done in the endpoint layer):
- LinkNotFoundError      -> 404
- LinkDeactivatedError   -> 403
- InvalidURLError        -> 400
- SlugTakenError         -> 409
- DatabaseError          -> 500
- AggregationQueryError  -> 500 (generic message, caller may retry)
"""


class ShrinklyException(Exception):
    """Base exception for the Shrinkly service."""
    pass


class InvalidURLError(ShrinklyException):
    """Raised when URL validation fails."""

    def __init__(self, url: str, reason: str = "Invalid URL format"):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url}")


class LinkNotFoundError(ShrinklyException):
    """Raised when a short code or link id does not resolve to a link."""

    def __init__(self, short_code: str = None, link_id: int = None):
        self.short_code = short_code
        self.link_id = link_id
        if short_code is not None:
            super().__init__(f"Short code '{short_code}' not found")
        else:
            super().__init__(f"Link {link_id} not found")


class LinkDeactivatedError(ShrinklyException):
    """Raised when a link exists but its status is inactive."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Link '{short_code}' has been deactivated")


class SlugTakenError(ShrinklyException):
    """Raised when a custom slug is already used as a short code."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Custom slug '{slug}' already in use")


class DatabaseError(ShrinklyException):
    """Raised when database operations fail."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")


class AggregationQueryError(ShrinklyException):
    """Raised when an analytics query fails or times out; no partial result is returned."""

    def __init__(self, query: str, original_error: Exception = None):
        self.query = query
        self.original_error = original_error
        super().__init__(f"Analytics query '{query}' failed")

"""
Rate Limiting Configuration

This module provides rate limiting functionality for the public endpoints.
Rate limiting keeps one client from flooding the redirect counter or the
analytics queries.

Design Decisions:
- Uses slowapi for rate limiting (lightweight, FastAPI-compatible)
- Different limits for redirects, link writes and analytics queries
- Clients are keyed by the same address analytics events record (the first
  X-Forwarded-For entry behind a proxy), so visitors sharing a proxy are
  not limited as one client
- RATE_LIMIT_ENABLED=false turns every limit off (tests do this)
"""

from slowapi import Limiter

from shrinkly.core.setting import settings
from shrinkly.middleware.logging import get_client_ip

# Initialize rate limiter
# Keyed by client IP, see get_client_ip
limiter = Limiter(key_func=get_client_ip, enabled=settings.RATE_LIMIT_ENABLED)

# Rate limit configurations per endpoint group
# Format: "count/period" (e.g., "10/minute" means 10 requests per minute)
RATE_LIMITS = {
    "links": "10/minute",  # Link creation and edits: 10 per minute per IP
    "redirect": "100/minute",  # Redirects: 100 per minute per IP
    "analytics": "30/minute",  # Dashboard queries, each may aggregate the whole event table
}

"""
Request Logging Middleware

Logs one line per HTTP request (method, path, status, latency, client IP)
and adds an X-Process-Time header. Server errors are logged at WARNING so
failed analytics queries stand out from redirect traffic.

get_client_ip is also used by the redirect endpoint, so the IP recorded on
an analytics event is the same one that appears in the request log.
"""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("shrinkly")

UNKNOWN_CLIENT = "unknown"


def get_client_ip(request: Request) -> str:
    """
    Client IP address of a request.

    Behind a proxy the first X-Forwarded-For entry is the original client;
    otherwise the socket peer address is used. Also serves as the slowapi
    key function.

    Args:
        request: FastAPI Request object

    Returns:
        IP address as string, or "unknown" without a peer
    """
    # Check for forwarded IP (from proxy/load balancer)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    # Fallback to direct client IP
    return request.client.host if request.client else UNKNOWN_CLIENT


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging HTTP requests and responses.

    Wraps every request, including redirects and analytics queries, without
    modifying endpoint code.
    """

    async def dispatch(self, request: Request, call_next):
        """
        Process the request and log its outcome.

        Args:
            request: The incoming HTTP request
            call_next: The next middleware/endpoint in the chain

        Returns:
            Response object with an X-Process-Time header
        """
        client_ip = get_client_ip(request)

        # Monotonic clock, unaffected by wall-clock adjustments
        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        # Format: METHOD PATH STATUS_CODE PROCESS_TIME_MS CLIENT_IP
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            f"{request.method} {request.url.path} "
            f"{response.status_code} {process_time * 1000:.2f}ms "
            f"IP:{client_ip}"
        )

        response.headers["X-Process-Time"] = f"{process_time:.6f}"
        return response


def add_logging_middleware(app):
    """
    Add logging middleware to FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_middleware(LoggingMiddleware)

"""
FastAPI Application Entry Point

This module initializes the FastAPI application and configures:
- API routes (redirect, links, analytics)
- Middleware (logging, CORS)
- Rate limiting
- Application metadata
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shrinkly.api import analytics, endpoints
from shrinkly.core.rate_limit import limiter
from shrinkly.core.setting import EnvSettingsOptions, settings
from shrinkly.middleware.logging import add_logging_middleware

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

is_production = settings.ENV_SETTING == EnvSettingsOptions.production

app = FastAPI(
    title="Shrinkly",
    description="URL shortener with click analytics",
    version="1.0.0",
    docs_url=None if is_production else "/docs",
    redoc_url=None if is_production else "/redoc",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

add_logging_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Health"])
async def root():
    """
    Root endpoint for health checks.

    Returns:
        Simple JSON response indicating service is running
    """
    return {
        "message": "Shrinkly",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "healthy"}


app.include_router(endpoints.router, tags=["Links"])
app.include_router(analytics.router)

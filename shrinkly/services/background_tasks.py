"""
Background Task Helpers

Provides the background task that records a click after the redirect has been
sent. Background tasks cannot use the endpoint's session as it's closed after
the endpoint returns, so the task opens its own from the session factory.

The task is bounded by ANALYTICS_RECORD_TIMEOUT; a recording that takes
longer is abandoned and logged, never retried.
"""

import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from shrinkly.core.setting import settings
from shrinkly.services.click_recorder import ClickMetadata, ClickRecorder

logger = logging.getLogger(__name__)


async def _record(
    session_maker: async_sessionmaker,
    link_id: int,
    short_code: str,
    metadata: ClickMetadata,
    is_qr_scan: bool,
) -> bool:
    async with session_maker() as session:
        recorder = ClickRecorder(session)
        return await recorder.record(link_id, short_code, metadata, is_qr_scan)


async def record_click_background(
    session_maker: async_sessionmaker,
    link_id: int,
    short_code: str,
    metadata: ClickMetadata,
    is_qr_scan: bool = False,
    timeout: Optional[float] = None,
) -> bool:
    """
    Background task to record a click.

    Args:
        session_maker: Factory for the task's own database session
        link_id: Id of the resolved link
        short_code: The short code that was accessed
        metadata: User agent, referrer and client IP of the request
        is_qr_scan: Whether the click came from a scanned QR code
        timeout: Seconds before the write is abandoned (default: ANALYTICS_RECORD_TIMEOUT)

    Returns:
        True if the event was stored
    """
    timeout = settings.ANALYTICS_RECORD_TIMEOUT if timeout is None else timeout
    try:
        return await asyncio.wait_for(
            _record(session_maker, link_id, short_code, metadata, is_qr_scan),
            timeout=timeout
        )
    except asyncio.TimeoutError:
        logger.error(f"Recording click for {short_code} timed out after {timeout}s, abandoned")
    except Exception as e:
        logger.error(
            f"Failed to record click for {short_code}: {str(e)}",
            exc_info=True
        )
    return False

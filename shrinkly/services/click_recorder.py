"""
Click Recording Service

This service turns one successful redirect into one analytics event.

Design Decisions:
- Classification (device, browser, OS, referrer source) happens here, at
  write time, so the aggregation queries only group stored columns
- Events are append-only; nothing in the service updates an event
- Recording is best-effort: a failed insert is logged and reported as False,
  never raised, because the visitor has already been redirected
"""

import logging
from typing import NamedTuple, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from shrinkly.core.dates import utcnow
from shrinkly.db.models import AnalyticsEvent
from shrinkly.services.geo import UNKNOWN_GEO, GeoResolver, UnknownGeoResolver
from shrinkly.services.referrer import ReferrerClassifier
from shrinkly.services.user_agent import UserAgentClassifier

logger = logging.getLogger(__name__)


class ClickMetadata(NamedTuple):
    """Request data captured for a click."""
    user_agent: str = ""
    referrer: str = ""
    client_ip: str = ""


class ClickRecorder:
    """
    Builds and stores analytics events.

    This service is designed to be called from a background task with its
    own session, after the redirect response has been sent.
    """

    def __init__(
        self,
        session: AsyncSession,
        user_agent_classifier: Optional[UserAgentClassifier] = None,
        referrer_classifier: Optional[ReferrerClassifier] = None,
        geo_resolver: Optional[GeoResolver] = None,
    ):
        """
        Initialize the recorder with a database session.

        Args:
            session: Async database session for database operations
            user_agent_classifier: Device/browser/OS classifier
            referrer_classifier: Referrer source classifier
            geo_resolver: IP to country/city resolver (default: placeholders)
        """
        self.session = session
        self.user_agent_classifier = user_agent_classifier or UserAgentClassifier()
        self.referrer_classifier = referrer_classifier or ReferrerClassifier()
        self.geo_resolver = geo_resolver or UnknownGeoResolver()

    async def build_event(
        self,
        link_id: int,
        short_code: str,
        metadata: ClickMetadata,
        is_qr_scan: bool = False,
    ) -> AnalyticsEvent:
        """Classify the request metadata into an unsaved AnalyticsEvent."""
        user_agent = metadata.user_agent or ""
        referrer = metadata.referrer or ""
        ip = metadata.client_ip or ""

        ua = self.user_agent_classifier.classify(user_agent)
        source = self.referrer_classifier.classify(referrer)

        try:
            geo = await self.geo_resolver.resolve(ip)
        except Exception:
            logger.warning(f"Geo resolution failed for {ip}, using placeholders", exc_info=True)
            geo = UNKNOWN_GEO

        return AnalyticsEvent(
            link_id=link_id,
            short_code=short_code,
            ip=ip,
            user_agent=user_agent[:500],
            device=ua.device,
            browser=ua.browser,
            os=ua.os,
            country=geo.country,
            city=geo.city,
            referrer=referrer,
            referrer_domain=source,
            is_qr_scan=is_qr_scan,
            clicked_at=utcnow(),
        )

    async def record(
        self,
        link_id: int,
        short_code: str,
        metadata: ClickMetadata,
        is_qr_scan: bool = False,
    ) -> bool:
        """
        Record one click.

        Args:
            link_id: Id of the resolved link
            short_code: The short code that was accessed
            metadata: User agent, referrer and client IP of the request
            is_qr_scan: Whether the click came from a scanned QR code

        Returns:
            True if the event was stored, False if storing failed
        """
        try:
            event = await self.build_event(link_id, short_code, metadata, is_qr_scan)
            self.session.add(event)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(
                f"Failed to record click for {short_code}: {str(e)}",
                exc_info=True
            )
            return False
        return True

"""
Link Service

This service handles the link lifecycle around the redirect path:
- Creating links with a random short code or a custom slug
- Looking links up by id or short code
- Editing destination, status and tags
- Deleting links (single, bulk, or with the owning user's account)

Design Decisions:
- Random base62 codes: [0-9a-zA-Z] for maximum URL compatibility
- Uniqueness is enforced by the unique index on short_code; a colliding
  random code is regenerated, a colliding custom slug is rejected
- The click counter is never written here; only LinkResolver increments it
- Deleting a link deletes its analytics events when
  LINK_DELETE_CASCADE_ANALYTICS is enabled (the default); deleting a user
  always deletes their links and events
"""

import logging
import secrets
from typing import Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shrinkly.core.dates import utcnow
from shrinkly.core.exceptions import (
    DatabaseError,
    InvalidURLError,
    LinkNotFoundError,
    SlugTakenError,
)
from shrinkly.core.setting import settings
from shrinkly.core.validators import is_valid_url, sanitize_short_code
from shrinkly.db.models import AnalyticsEvent, Link, LinkStatus, User

logger = logging.getLogger(__name__)

BASE62_CHARS = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"

# Attempts at drawing an unused random code before giving up
MAX_CODE_ATTEMPTS = 5


def generate_short_code(length: Optional[int] = None) -> str:
    """
    Generate a random base62 short code.

    Args:
        length: Code length (default: SHORT_CODE_LENGTH setting)

    Returns:
        Random code such as "aZ3k9Q"
    """
    length = length or settings.SHORT_CODE_LENGTH
    return "".join(secrets.choice(BASE62_CHARS) for _ in range(length))


class LinkService:
    """
    Link lifecycle operations.

    Separated from the API layer for testability; every write commits its
    own transaction.
    """

    def __init__(self, session: AsyncSession, cascade_analytics: Optional[bool] = None):
        """
        Initialize the link service.

        Args:
            session: Database session
            cascade_analytics: Delete analytics events together with a link
                (default: LINK_DELETE_CASCADE_ANALYTICS setting)
        """
        self.session = session
        if cascade_analytics is None:
            cascade_analytics = settings.LINK_DELETE_CASCADE_ANALYTICS
        self.cascade_analytics = cascade_analytics

    async def get_by_short_code(self, short_code: str) -> Optional[Link]:
        statement = select(Link).where(Link.short_code == short_code)
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def get_link(self, link_id: int) -> Link:
        """
        Fetch a link by id.

        Raises:
            LinkNotFoundError: If no link has this id
        """
        link = await self.session.get(Link, link_id)
        if link is None:
            raise LinkNotFoundError(link_id=link_id)
        return link

    async def create_link(
        self,
        original_url: str,
        custom_slug: Optional[str] = None,
        domain: Optional[str] = None,
        tags: str = "",
        user_id: Optional[int] = None,
    ) -> Link:
        """
        Create a new short link.

        Args:
            original_url: Destination URL
            custom_slug: Optional short code chosen by the caller
            domain: Short link domain (default: DEFAULT_LINK_DOMAIN setting)
            tags: Free-text tags
            user_id: Optional owner

        Returns:
            The persisted Link

        Raises:
            InvalidURLError: If the destination or slug is invalid
            SlugTakenError: If the custom slug is already a short code
            DatabaseError: If the link could not be stored
        """
        if not is_valid_url(original_url):
            raise InvalidURLError(
                original_url,
                reason="Invalid URL format. URL must use http:// or https:// and have a valid domain"
            )

        if custom_slug:
            slug = sanitize_short_code(custom_slug)
            if not slug:
                raise InvalidURLError(custom_slug, reason="Invalid custom slug")
            if await self.get_by_short_code(slug):
                raise SlugTakenError(slug)
            try:
                return await self._insert(original_url, slug, slug, domain, tags, user_id)
            except IntegrityError:
                raise SlugTakenError(slug)

        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_short_code()
            try:
                return await self._insert(original_url, code, None, domain, tags, user_id)
            except IntegrityError:
                logger.info(f"Short code collision on {code}, retrying")

        raise DatabaseError(f"could not allocate a unique short code after {MAX_CODE_ATTEMPTS} attempts")

    async def _insert(
        self,
        original_url: str,
        short_code: str,
        custom_slug: Optional[str],
        domain: Optional[str],
        tags: str,
        user_id: Optional[int],
    ) -> Link:
        link = Link(
            original_url=original_url,
            short_code=short_code,
            custom_slug=custom_slug,
            domain=domain or settings.DEFAULT_LINK_DOMAIN,
            tags=tags or "",
            user_id=user_id,
            clicks=0,
            status=LinkStatus.active.value,
        )
        try:
            self.session.add(link)
            await self.session.flush()
            await self.session.commit()
            await self.session.refresh(link)
        except IntegrityError:
            await self.session.rollback()
            raise
        return link

    async def update_link(
        self,
        link_id: int,
        original_url: Optional[str] = None,
        status: Optional[LinkStatus] = None,
        tags: Optional[str] = None,
    ) -> Link:
        """
        Edit a link's destination, status or tags. Fields left as None are unchanged.

        Raises:
            LinkNotFoundError: If no link has this id
            InvalidURLError: If the new destination is invalid
        """
        link = await self.get_link(link_id)

        if original_url is not None:
            if not is_valid_url(original_url):
                raise InvalidURLError(original_url)
            link.original_url = original_url
        if status is not None:
            link.status = LinkStatus(status).value
        if tags is not None:
            link.tags = tags

        link.updated_at = utcnow()
        self.session.add(link)
        await self.session.commit()
        await self.session.refresh(link)
        return link

    async def delete_link(self, link_id: int) -> None:
        """
        Delete one link, and its analytics events if cascading is enabled.

        Raises:
            LinkNotFoundError: If no link has this id
        """
        deleted = await self.delete_links([link_id])
        if not deleted:
            raise LinkNotFoundError(link_id=link_id)

    async def delete_links(self, link_ids: Iterable[int]) -> int:
        """
        Bulk delete links.

        Returns:
            Number of links deleted
        """
        ids = list(link_ids)
        if not ids:
            return 0

        if self.cascade_analytics:
            await self.session.execute(
                delete(AnalyticsEvent)
                .where(AnalyticsEvent.link_id.in_(ids))
                .execution_options(synchronize_session=False)
            )
        result = await self.session.execute(
            delete(Link)
            .where(Link.id.in_(ids))
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()

        logger.info(f"Deleted {result.rowcount} link(s), cascade_analytics={self.cascade_analytics}")
        return result.rowcount

    async def delete_user(self, user_id: int) -> None:
        """
        Delete a user account together with all of its links and their
        analytics events, regardless of the link cascade setting.
        """
        link_ids = select(Link.id).where(Link.user_id == user_id)
        await self.session.execute(
            delete(AnalyticsEvent)
            .where(AnalyticsEvent.link_id.in_(link_ids))
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(
            delete(Link)
            .where(Link.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(delete(User).where(User.id == user_id))
        await self.session.commit()

"""
Redirect Service

This service resolves a short code for the redirect endpoint.

Design Decisions:
- Lookup, status check and counter increment happen in the request; analytics
  recording does not (see background_tasks)
- The click counter is incremented with a single
  UPDATE ... SET clicks = clicks + 1, never read-modify-write, so concurrent
  redirects of one code cannot lose increments
- The increment is committed before the service returns; it is not retried
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from shrinkly.core.exceptions import LinkDeactivatedError, LinkNotFoundError
from shrinkly.db.models import Link, LinkStatus

logger = logging.getLogger(__name__)


class LinkResolver:
    """
    Maps short codes to active links and counts the click.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize the resolver with a database session.

        Args:
            session: Async database session for database operations
        """
        self.session = session

    async def resolve(self, short_code: str) -> Link:
        """
        Resolve a short code and count one click.

        Args:
            short_code: The short code to look up

        Returns:
            The active Link, with clicks reflecting this increment

        Raises:
            LinkNotFoundError: No link has this short code
            LinkDeactivatedError: The link is inactive; the counter is untouched
        """
        statement = select(Link).where(Link.short_code == short_code)
        result = await self.session.execute(statement)
        link = result.scalar_one_or_none()

        if link is None:
            raise LinkNotFoundError(short_code=short_code)

        if link.status == LinkStatus.inactive.value:
            raise LinkDeactivatedError(short_code)

        link_id = link.id
        clicks = await self.increment_clicks(link_id)
        if clicks is None:
            # Deactivated or deleted between the lookup and the increment
            await self.session.rollback()
            status = await self.session.execute(
                select(Link.status).where(Link.id == link_id)
            )
            if status.scalar_one_or_none() is None:
                raise LinkNotFoundError(short_code=short_code)
            raise LinkDeactivatedError(short_code)

        await self.session.commit()
        set_committed_value(link, "clicks", clicks)
        return link

    async def increment_clicks(self, link_id: int):
        """
        Atomically add one click to an active link.

        Returns:
            The new click count, or None if no active link has this id
        """
        statement = (
            update(Link)
            .where(Link.id == link_id, Link.status == LinkStatus.active.value)
            .values(clicks=Link.clicks + 1)
            .returning(Link.clicks)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

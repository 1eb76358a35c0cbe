"""
Analytics Service

This service answers the dashboard's analytics queries over recorded
AnalyticsEvent rows:
- summary: totals and breakdowns by device, browser, country, referrer
- click_trend: clicks per UTC calendar day
- heatmap: clicks per (day of week, hour of day)
- top_links: most clicked links
- insights: best day, platform, hour and link
- export: flat rows of the most recent events

Every query takes an AnalyticsFilter. A link_id scopes it to one link;
otherwise it covers all links, or only the links owned by user_id. Dates are
inclusive on both ends, the end date through its last instant (UTC).

Design Decisions:
- Pure reads: nothing here writes to links or events
- Grouping happens in SQL; date parts come from the database adapter since
  each dialect spells them differently
- Ties are ordered by label so repeated queries return identical results
- A store error or timeout fails the whole query with AggregationQueryError;
  partial results are never returned
"""

import asyncio
import functools
import logging
from datetime import date
from typing import Any, List, NamedTuple, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shrinkly.core.dates import date_range_bounds, to_iso_z
from shrinkly.core.exceptions import AggregationQueryError
from shrinkly.core.setting import settings
from shrinkly.db.interface import DatabaseAdapter
from shrinkly.db.models import AnalyticsEvent, Link
from shrinkly.db.sqlite_adapter import get_database_adapter

logger = logging.getLogger(__name__)

NOT_ENOUGH_DATA = "Not enough data"
UNKNOWN = "Unknown"

BREAKDOWN_LIMIT = 10
TREND_LIMIT = 30
TOP_LINKS_LIMIT = 5

DAY_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


class AnalyticsFilter(NamedTuple):
    link_id: Optional[int] = None
    user_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


def aggregation_query(method):
    """Bound a public query by the service timeout and wrap store failures."""

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await asyncio.wait_for(method(self, *args, **kwargs), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Analytics query {method.__name__} timed out after {self.timeout}s")
            raise AggregationQueryError(method.__name__, original_error=e) from e
        except SQLAlchemyError as e:
            logger.error(f"Analytics query {method.__name__} failed: {str(e)}", exc_info=True)
            raise AggregationQueryError(method.__name__, original_error=e) from e

    return wrapper


def _short_url(domain: Optional[str], short_code: Optional[str]) -> str:
    if domain is None or short_code is None:
        return UNKNOWN
    return f"{domain}/{short_code}"


class AnalyticsAggregator:
    """
    Read-side analytics over the event store.
    """

    def __init__(
        self,
        session: AsyncSession,
        adapter: Optional[DatabaseAdapter] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the aggregator.

        Args:
            session: Async database session for database operations
            adapter: Database adapter providing date-part expressions
            timeout: Seconds per query (default: ANALYTICS_QUERY_TIMEOUT)
        """
        self.session = session
        self.adapter = adapter or get_database_adapter()
        self.timeout = settings.ANALYTICS_QUERY_TIMEOUT if timeout is None else timeout

    # Filtering

    def _conditions(self, filters: AnalyticsFilter) -> list:
        conditions = []
        if filters.link_id is not None:
            conditions.append(AnalyticsEvent.link_id == filters.link_id)
        elif filters.user_id is not None:
            owned = select(Link.id).where(Link.user_id == filters.user_id)
            conditions.append(AnalyticsEvent.link_id.in_(owned))

        start, end = date_range_bounds(filters.start_date, filters.end_date)
        if start is not None:
            conditions.append(AnalyticsEvent.clicked_at >= start)
        if end is not None:
            conditions.append(AnalyticsEvent.clicked_at < end)
        return conditions

    @staticmethod
    def _where(statement, conditions: list):
        if conditions:
            return statement.where(and_(*conditions))
        return statement

    async def _scalar(self, statement, conditions: list) -> int:
        result = await self.session.execute(self._where(statement, conditions))
        return result.scalar_one() or 0

    async def _grouped(self, key: Any, conditions: list, limit: Optional[int] = None) -> list:
        """Count events per key, most clicks first, ties by key."""
        clicks = func.count(AnalyticsEvent.id)
        statement = self._where(
            select(key.label("key"), clicks.label("clicks")).select_from(AnalyticsEvent),
            conditions
        ).group_by(key).order_by(clicks.desc(), key.asc())
        if limit:
            statement = statement.limit(limit)
        result = await self.session.execute(statement)
        return result.all()

    async def _breakdown(self, column: Any, conditions: list, limit: Optional[int] = None) -> List[dict]:
        rows = await self._grouped(column, conditions, limit)
        return [{"name": row.key, "clicks": row.clicks} for row in rows]

    async def _ranked_links(self, conditions: list, limit: int) -> list:
        clicks = func.count(AnalyticsEvent.id)
        statement = self._where(
            select(
                AnalyticsEvent.link_id,
                clicks.label("clicks"),
                Link.short_code,
                Link.domain,
                Link.original_url,
            )
            .select_from(AnalyticsEvent)
            .outerjoin(Link, Link.id == AnalyticsEvent.link_id),
            conditions
        ).group_by(
            AnalyticsEvent.link_id, Link.short_code, Link.domain, Link.original_url
        ).order_by(clicks.desc(), AnalyticsEvent.link_id.asc()).limit(limit)
        result = await self.session.execute(statement)
        return result.all()

    # Queries

    @aggregation_query
    async def summary(self, filters: AnalyticsFilter = AnalyticsFilter()) -> dict:
        """
        Totals and breakdowns.

        Returns:
            Dictionary with total_clicks, unique_visitors (distinct IPs),
            qr_scans, and devices/browsers/countries/referrers lists of
            {name, clicks}; every breakdown but devices is capped at 10
        """
        conditions = self._conditions(filters)

        total_clicks = await self._scalar(select(func.count(AnalyticsEvent.id)), conditions)
        unique_visitors = await self._scalar(
            select(func.count(func.distinct(AnalyticsEvent.ip))), conditions
        )
        qr_scans = await self._scalar(
            select(func.count(AnalyticsEvent.id)),
            conditions + [AnalyticsEvent.is_qr_scan.is_(True)]
        )

        devices = await self._breakdown(AnalyticsEvent.device, conditions)
        browsers = await self._breakdown(AnalyticsEvent.browser, conditions, BREAKDOWN_LIMIT)
        countries = await self._breakdown(AnalyticsEvent.country, conditions, BREAKDOWN_LIMIT)
        referrers = await self._breakdown(AnalyticsEvent.referrer_domain, conditions, BREAKDOWN_LIMIT)

        return {
            "total_clicks": total_clicks,
            "unique_visitors": unique_visitors,
            "qr_scans": qr_scans,
            "device_count": len(devices),
            "country_count": len(countries),
            "referrer_count": len(referrers),
            "devices": devices,
            "browsers": browsers,
            "countries": countries,
            "referrers": referrers,
        }

    @aggregation_query
    async def click_trend(self, filters: AnalyticsFilter = AnalyticsFilter()) -> List[dict]:
        """Clicks per UTC day ('YYYY-MM-DD'), ascending, first 30 days in range."""
        conditions = self._conditions(filters)
        day = self.adapter.date_bucket(AnalyticsEvent.clicked_at)
        clicks = func.count(AnalyticsEvent.id)

        statement = self._where(
            select(day.label("date"), clicks.label("clicks")).select_from(AnalyticsEvent),
            conditions
        ).group_by(day).order_by(day.asc()).limit(TREND_LIMIT)

        result = await self.session.execute(statement)
        return [{"date": row.date, "clicks": row.clicks} for row in result.all()]

    @aggregation_query
    async def heatmap(self, filters: AnalyticsFilter = AnalyticsFilter()) -> List[dict]:
        """Non-zero (day of week, UTC hour) buckets ordered Sunday first, then by hour."""
        conditions = self._conditions(filters)
        day_of_week = self.adapter.day_of_week(AnalyticsEvent.clicked_at)
        hour = self.adapter.hour_of_day(AnalyticsEvent.clicked_at)
        clicks = func.count(AnalyticsEvent.id)

        statement = self._where(
            select(
                day_of_week.label("day_of_week"),
                hour.label("hour"),
                clicks.label("clicks"),
            ).select_from(AnalyticsEvent),
            conditions
        ).group_by(day_of_week, hour).order_by(day_of_week.asc(), hour.asc())

        result = await self.session.execute(statement)
        return [
            {"day": DAY_LABELS[row.day_of_week - 1], "hour": row.hour, "clicks": row.clicks}
            for row in result.all()
        ]

    @aggregation_query
    async def top_links(self, filters: AnalyticsFilter = AnalyticsFilter()) -> List[dict]:
        """
        The five most clicked links. Only meaningful across links, so a
        single-link filter returns an empty list. Links deleted after being
        clicked are reported with "Unknown" urls.
        """
        if filters.link_id is not None:
            return []

        rows = await self._ranked_links(self._conditions(filters), TOP_LINKS_LIMIT)
        return [
            {
                "link_id": row.link_id,
                "clicks": row.clicks,
                "short_url": _short_url(row.domain, row.short_code),
                "original_url": row.original_url or UNKNOWN,
            }
            for row in rows
        ]

    @aggregation_query
    async def insights(self, filters: AnalyticsFilter = AnalyticsFilter()) -> dict:
        """Best day, platform, hour and link, each the single top bucket."""
        conditions = self._conditions(filters)

        best_day = await self._grouped(
            self.adapter.day_of_week(AnalyticsEvent.clicked_at), conditions, 1
        )
        best_platform = await self._grouped(AnalyticsEvent.referrer_domain, conditions, 1)
        best_hour = await self._grouped(
            self.adapter.hour_of_day(AnalyticsEvent.clicked_at), conditions, 1
        )
        top_link = await self._ranked_links(conditions, 1)

        return {
            "best_day": DAY_NAMES[best_day[0].key - 1] if best_day else NOT_ENOUGH_DATA,
            "best_platform": best_platform[0].key if best_platform else NOT_ENOUGH_DATA,
            "best_hour": f"{best_hour[0].key}:00" if best_hour else NOT_ENOUGH_DATA,
            "top_link": (
                _short_url(top_link[0].domain, top_link[0].short_code)
                if top_link else NOT_ENOUGH_DATA
            ),
            "unusual_patterns": "None detected",
        }

    @aggregation_query
    async def export(self, filters: AnalyticsFilter = AnalyticsFilter(), limit: Optional[int] = None) -> List[dict]:
        """
        Most recent events first, at most ANALYTICS_EXPORT_LIMIT rows.

        This is a bounded snapshot; narrower filters are needed to see more.
        """
        limit = min(limit or settings.ANALYTICS_EXPORT_LIMIT, settings.ANALYTICS_EXPORT_LIMIT)
        statement = self._where(
            select(AnalyticsEvent, Link.short_code, Link.domain, Link.original_url)
            .select_from(AnalyticsEvent)
            .outerjoin(Link, Link.id == AnalyticsEvent.link_id),
            self._conditions(filters)
        ).order_by(
            AnalyticsEvent.clicked_at.desc(), AnalyticsEvent.id.desc()
        ).limit(limit)

        result = await self.session.execute(statement)
        rows = []
        for event, short_code, domain, original_url in result.all():
            rows.append({
                "short_url": _short_url(domain, short_code),
                "original_url": original_url or UNKNOWN,
                "device": event.device,
                "browser": event.browser,
                "os": event.os,
                "country": event.country,
                "referrer": event.referrer_domain,
                "is_qr_scan": event.is_qr_scan,
                "clicked_at": to_iso_z(event.clicked_at),
            })
        return rows

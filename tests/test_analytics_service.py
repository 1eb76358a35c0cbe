"""
Tests for the analytics aggregation queries.
"""

import asyncio
from datetime import date, datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from shrinkly.core.dates import date_range_bounds
from shrinkly.core.exceptions import AggregationQueryError
from shrinkly.core.setting import settings
from shrinkly.services.analytics_service import (
    NOT_ENOUGH_DATA,
    AnalyticsAggregator,
    AnalyticsFilter,
)

SUNDAY_AFTERNOON = datetime(2024, 1, 7, 14, 5, 0)
WEDNESDAY_MORNING = datetime(2024, 1, 10, 9, 30, 0)


@pytest.fixture
def aggregator(session):
    return AnalyticsAggregator(session)


@pytest.fixture
async def mixed_traffic(make_link, add_events):
    """Seven clicks on one link from two visitors."""
    link = await make_link()
    await add_events(
        link, count=3, ip="1.1.1.1", device="mobile", browser="Chrome",
        referrer_domain="Facebook", country="Estonia",
    )
    await add_events(
        link, count=2, ip="2.2.2.2", device="desktop", browser="Firefox",
        referrer_domain="direct", is_qr_scan=True,
    )
    await add_events(
        link, count=2, ip="2.2.2.2", device="tablet", browser="Safari",
        referrer_domain="Google",
    )
    return link


class TestSummary:

    async def test_totals_and_breakdowns(self, aggregator, mixed_traffic):
        summary = await aggregator.summary()

        assert summary["total_clicks"] == 7
        assert summary["unique_visitors"] == 2
        assert summary["qr_scans"] == 2
        assert summary["device_count"] == 3
        assert summary["country_count"] == 2
        assert summary["referrer_count"] == 3
        assert summary["devices"] == [
            {"name": "mobile", "clicks": 3},
            {"name": "desktop", "clicks": 2},
            {"name": "tablet", "clicks": 2},
        ]
        assert summary["browsers"][0] == {"name": "Chrome", "clicks": 3}
        assert summary["countries"] == [
            {"name": "Unknown", "clicks": 4},
            {"name": "Estonia", "clicks": 3},
        ]
        assert [r["name"] for r in summary["referrers"]] == ["Facebook", "Google", "direct"]

    async def test_repeated_queries_are_identical(self, aggregator, mixed_traffic):
        assert await aggregator.summary() == await aggregator.summary()

    async def test_empty_store(self, aggregator):
        summary = await aggregator.summary()

        assert summary["total_clicks"] == 0
        assert summary["unique_visitors"] == 0
        assert summary["qr_scans"] == 0
        assert summary["devices"] == []
        assert summary["referrers"] == []

    async def test_breakdowns_are_capped_at_ten(self, aggregator, make_link, add_events):
        link = await make_link()
        for i in range(12):
            await add_events(link, browser=f"Browser {i:02d}")

        summary = await aggregator.summary()

        assert len(summary["browsers"]) == 10
        assert summary["browsers"][0]["name"] == "Browser 00"

    async def test_link_scope(self, aggregator, mixed_traffic, make_link, add_events):
        other = await make_link("https://example.org")
        await add_events(other, count=4)

        summary = await aggregator.summary(AnalyticsFilter(link_id=other.id))

        assert summary["total_clicks"] == 4

    async def test_user_scope(self, aggregator, make_link, add_events):
        owned = await make_link(user_id=7)
        foreign = await make_link("https://example.org", user_id=8)
        await add_events(owned, count=2)
        await add_events(foreign, count=5)

        summary = await aggregator.summary(AnalyticsFilter(user_id=7))

        assert summary["total_clicks"] == 2


class TestDateRange:

    async def test_end_date_includes_the_whole_day(self, aggregator, make_link, add_events):
        link = await make_link()
        await add_events(link, clicked_at=datetime(2024, 1, 5, 23, 59, 59, 999000))

        included = await aggregator.summary(AnalyticsFilter(end_date=date(2024, 1, 5)))
        excluded = await aggregator.summary(AnalyticsFilter(end_date=date(2024, 1, 4)))

        assert included["total_clicks"] == 1
        assert excluded["total_clicks"] == 0

    async def test_end_date_includes_sub_millisecond_clicks(self, aggregator, make_link, add_events):
        link = await make_link()
        await add_events(link, clicked_at=datetime(2024, 1, 5, 23, 59, 59, 999500))
        await add_events(link, clicked_at=datetime(2024, 1, 6, 0, 0, 0))

        summary = await aggregator.summary(AnalyticsFilter(end_date=date(2024, 1, 5)))

        assert summary["total_clicks"] == 1

    def test_bounds_are_half_open(self):
        start, end = date_range_bounds(date(2024, 1, 5), date(2024, 1, 5))

        assert start == datetime(2024, 1, 5, 0, 0, 0)
        assert end == datetime(2024, 1, 6, 0, 0, 0)
        assert date_range_bounds(None, None) == (None, None)

    async def test_start_date_begins_at_midnight(self, aggregator, make_link, add_events):
        link = await make_link()
        await add_events(link, clicked_at=datetime(2024, 1, 4, 23, 59, 59))
        await add_events(link, clicked_at=datetime(2024, 1, 5, 0, 0, 0))

        summary = await aggregator.summary(AnalyticsFilter(start_date=date(2024, 1, 5)))

        assert summary["total_clicks"] == 1


class TestClickTrend:

    async def test_clicks_per_day_ascending(self, aggregator, make_link, add_events):
        link = await make_link()
        await add_events(link, count=2, clicked_at=datetime(2024, 1, 2, 8, 0, 0))
        await add_events(link, count=1, clicked_at=datetime(2024, 1, 1, 22, 0, 0))

        trend = await aggregator.click_trend()

        assert trend == [
            {"date": "2024-01-01", "clicks": 1},
            {"date": "2024-01-02", "clicks": 2},
        ]

    async def test_capped_at_thirty_days(self, aggregator, make_link, add_events):
        link = await make_link()
        first_day = datetime(2024, 3, 1, 12, 0, 0)
        for offset in range(35):
            await add_events(link, clicked_at=first_day + timedelta(days=offset))

        trend = await aggregator.click_trend()

        assert len(trend) == 30
        assert trend[0]["date"] == "2024-03-01"
        assert trend[-1]["date"] == "2024-03-30"


class TestHeatmap:

    async def test_single_bucket(self, aggregator, make_link, add_events):
        link = await make_link()
        await add_events(link, count=3, clicked_at=SUNDAY_AFTERNOON)

        assert await aggregator.heatmap() == [{"day": "Sun", "hour": 14, "clicks": 3}]

    async def test_sunday_first_then_hour(self, aggregator, make_link, add_events):
        link = await make_link()
        await add_events(link, clicked_at=WEDNESDAY_MORNING)
        await add_events(link, clicked_at=datetime(2024, 1, 7, 23, 0, 0))
        await add_events(link, clicked_at=datetime(2024, 1, 7, 2, 0, 0))

        buckets = await aggregator.heatmap()

        assert [(b["day"], b["hour"]) for b in buckets] == [("Sun", 2), ("Sun", 23), ("Wed", 9)]

    async def test_empty(self, aggregator):
        assert await aggregator.heatmap() == []


class TestTopLinks:

    async def test_five_most_clicked(self, aggregator, make_link, add_events):
        links = []
        for clicks in range(1, 7):
            link = await make_link(f"https://example.com/{clicks}")
            await add_events(link, count=clicks)
            links.append(link)
        never_clicked = await make_link("https://example.com/quiet")

        top = await aggregator.top_links()

        assert [row["clicks"] for row in top] == [6, 5, 4, 3, 2]
        assert top[0]["link_id"] == links[-1].id
        assert top[0]["short_url"] == links[-1].short_url
        assert top[0]["original_url"] == "https://example.com/6"
        assert never_clicked.id not in [row["link_id"] for row in top]

    async def test_single_link_scope_is_empty(self, aggregator, mixed_traffic):
        assert await aggregator.top_links(AnalyticsFilter(link_id=mixed_traffic.id)) == []


class TestInsights:

    async def test_not_enough_data(self, aggregator):
        insights = await aggregator.insights()

        assert insights == {
            "best_day": NOT_ENOUGH_DATA,
            "best_platform": NOT_ENOUGH_DATA,
            "best_hour": NOT_ENOUGH_DATA,
            "top_link": NOT_ENOUGH_DATA,
            "unusual_patterns": "None detected",
        }

    async def test_best_buckets(self, aggregator, make_link, add_events):
        popular = await make_link(custom_slug="popular")
        quiet = await make_link("https://example.org")
        await add_events(popular, count=3, clicked_at=SUNDAY_AFTERNOON, referrer_domain="Facebook")
        await add_events(quiet, count=1, clicked_at=WEDNESDAY_MORNING, referrer_domain="direct")

        insights = await aggregator.insights()

        assert insights["best_day"] == "Sunday"
        assert insights["best_platform"] == "Facebook"
        assert insights["best_hour"] == "14:00"
        assert insights["top_link"] == "shrinkly.link/popular"


class TestExport:

    async def test_most_recent_first(self, aggregator, make_link, add_events):
        link = await make_link(custom_slug="exported")
        await add_events(link, clicked_at=datetime(2024, 1, 1, 8, 0, 0), device="desktop")
        await add_events(link, clicked_at=datetime(2024, 1, 3, 8, 0, 0), device="mobile", is_qr_scan=True)

        rows = await aggregator.export()

        assert rows[0] == {
            "short_url": "shrinkly.link/exported",
            "original_url": "https://example.com",
            "device": "mobile",
            "browser": "unknown",
            "os": "unknown",
            "country": "Unknown",
            "referrer": "direct",
            "is_qr_scan": True,
            "clicked_at": "2024-01-03T08:00:00.000Z",
        }
        assert rows[1]["clicked_at"] == "2024-01-01T08:00:00.000Z"

    async def test_row_limit(self, aggregator, make_link, add_events, monkeypatch):
        monkeypatch.setattr(settings, "ANALYTICS_EXPORT_LIMIT", 2)
        link = await make_link()
        await add_events(link, count=5)

        assert len(await aggregator.export()) == 2
        assert len(await aggregator.export(limit=1)) == 1
        assert len(await aggregator.export(limit=50)) == 2


class FailingSession:
    async def execute(self, statement):
        raise OperationalError("SELECT", {}, Exception("database is locked"))


class SlowSession:
    async def execute(self, statement):
        await asyncio.sleep(1)


class TestQueryFailures:

    @pytest.mark.parametrize("query", ["summary", "click_trend", "heatmap", "top_links", "insights", "export"])
    async def test_store_error_fails_the_query(self, query):
        aggregator = AnalyticsAggregator(FailingSession())

        with pytest.raises(AggregationQueryError):
            await getattr(aggregator, query)()

    async def test_timeout_fails_the_query(self):
        aggregator = AnalyticsAggregator(SlowSession(), timeout=0.01)

        with pytest.raises(AggregationQueryError):
            await aggregator.summary()

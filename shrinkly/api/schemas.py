"""
API Request and Response Schemas

This module defines all Pydantic models for API requests and responses.
Separated from endpoints to keep concerns separated and enable reuse.

JSON field names are camelCase (the dashboard's contract); Python attribute
names stay snake_case and either form is accepted on input.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shrinkly.db.models import Link, LinkStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Links

class ShortenRequest(CamelModel):
    """Request model for link creation."""
    original_url: str = Field(..., description="The destination URL to shorten")
    custom_slug: Optional[str] = Field(None, description="Short code chosen by the caller")
    domain: Optional[str] = Field(None, description="Short link domain")
    tags: str = Field("", description="Free-text tags")
    user_id: Optional[int] = Field(None, description="Owner of the link")


class LinkUpdateRequest(CamelModel):
    """Request model for link edits. Omitted fields are left unchanged."""
    original_url: Optional[str] = None
    status: Optional[LinkStatus] = None
    tags: Optional[str] = None


class BulkDeleteRequest(CamelModel):
    ids: List[int] = Field(..., min_length=1, description="Ids of the links to delete")


class LinkResponse(CamelModel):
    """A link as shown on the dashboard."""
    id: int
    short_code: str
    short_url: str
    redirect_url: str
    original_url: str
    clicks: int
    status: str
    tags: str
    created_at: datetime

    @classmethod
    def from_link(cls, link: Link, base_url: str) -> "LinkResponse":
        return cls(
            id=link.id,
            short_code=link.short_code,
            short_url=link.short_url,
            redirect_url=f"{base_url}/r/{link.short_code}",
            original_url=link.original_url,
            clicks=link.clicks,
            status=link.status,
            tags=link.tags,
            created_at=link.created_at,
        )


class MessageResponse(CamelModel):
    message: str


# Analytics

class BreakdownItem(CamelModel):
    name: str
    clicks: int


class TrendPoint(CamelModel):
    date: str
    clicks: int


class HeatmapBucket(CamelModel):
    day: str
    hour: int
    clicks: int


class TopLink(CamelModel):
    link_id: int
    clicks: int
    short_url: str
    original_url: str


class AnalyticsSummary(CamelModel):
    """Totals, breakdowns and daily trend for one link or a set of links."""
    total_clicks: int
    unique_visitors: int
    qr_scans: int
    device_count: int
    country_count: int
    referrer_count: int
    devices: List[BreakdownItem]
    browsers: List[BreakdownItem]
    countries: List[BreakdownItem]
    referrers: List[BreakdownItem]
    click_trends: List[TrendPoint]


class OverallAnalytics(AnalyticsSummary):
    top_links: List[TopLink]


class LinkAnalyticsResponse(CamelModel):
    analytics: AnalyticsSummary


class OverallAnalyticsResponse(CamelModel):
    analytics: OverallAnalytics


class HeatmapResponse(CamelModel):
    heatmap: List[HeatmapBucket]


class Insights(CamelModel):
    best_day: str
    best_platform: str
    best_hour: str
    top_link: str
    unusual_patterns: str


class InsightsResponse(CamelModel):
    insights: Insights


class ExportRow(CamelModel):
    short_url: str
    original_url: str
    device: str
    browser: str
    os: str
    country: str
    referrer: str
    is_qr_scan: bool
    clicked_at: str


class ExportResponse(CamelModel):
    count: int
    data: List[ExportRow]

"""
FastAPI Endpoints for click analytics

All endpoints accept the same filters:
- linkId: restrict to one link (otherwise all links)
- userId: restrict an all-links query to links owned by this user
- startDate / endDate: inclusive YYYY-MM-DD range, UTC

A failing or timed-out query answers 500 with a generic message; the dashboard
may retry the whole request.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shrinkly.api.schemas import (
    ExportResponse,
    HeatmapResponse,
    InsightsResponse,
    LinkAnalyticsResponse,
    OverallAnalyticsResponse,
)
from shrinkly.core.exceptions import AggregationQueryError, LinkNotFoundError
from shrinkly.core.rate_limit import RATE_LIMITS, limiter
from shrinkly.db.interface import DatabaseAdapter
from shrinkly.db.session import get_db_adapter, get_session
from shrinkly.services.analytics_service import AnalyticsAggregator, AnalyticsFilter
from shrinkly.services.link_service import LinkService

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


def analytics_filter(
    link_id: Optional[int] = Query(None, alias="linkId"),
    user_id: Optional[int] = Query(None, alias="userId"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
) -> AnalyticsFilter:
    return AnalyticsFilter(link_id=link_id, user_id=user_id, start_date=start_date, end_date=end_date)


def get_aggregator(
    session: AsyncSession = Depends(get_session),
    adapter: DatabaseAdapter = Depends(get_db_adapter),
) -> AnalyticsAggregator:
    return AnalyticsAggregator(session, adapter=adapter)


def query_failed() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Server error"
    )


@router.get("", response_model=OverallAnalyticsResponse, summary="Analytics across all links")
@limiter.limit(RATE_LIMITS["analytics"])
async def get_overall_analytics(
    request: Request,
    filters: AnalyticsFilter = Depends(analytics_filter),
    aggregator: AnalyticsAggregator = Depends(get_aggregator),
):
    filters = filters._replace(link_id=None)
    try:
        summary = await aggregator.summary(filters)
        summary["click_trends"] = await aggregator.click_trend(filters)
        summary["top_links"] = await aggregator.top_links(filters)
    except AggregationQueryError:
        raise query_failed()
    return {"analytics": summary}


@router.get("/link/{link_id}", response_model=LinkAnalyticsResponse, summary="Analytics for one link")
@limiter.limit(RATE_LIMITS["analytics"])
async def get_link_analytics(
    link_id: int,
    request: Request,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    session: AsyncSession = Depends(get_session),
    aggregator: AnalyticsAggregator = Depends(get_aggregator),
):
    try:
        await LinkService(session).get_link(link_id)
    except LinkNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Link not found")

    filters = AnalyticsFilter(link_id=link_id, start_date=start_date, end_date=end_date)
    try:
        summary = await aggregator.summary(filters)
        summary["click_trends"] = await aggregator.click_trend(filters)
    except AggregationQueryError:
        raise query_failed()
    return {"analytics": summary}


@router.get("/heatmap", response_model=HeatmapResponse, summary="Clicks by weekday and hour")
@limiter.limit(RATE_LIMITS["analytics"])
async def get_heatmap(
    request: Request,
    filters: AnalyticsFilter = Depends(analytics_filter),
    aggregator: AnalyticsAggregator = Depends(get_aggregator),
):
    try:
        return {"heatmap": await aggregator.heatmap(filters)}
    except AggregationQueryError:
        raise query_failed()


@router.get("/insights", response_model=InsightsResponse, summary="Best day, platform, hour and link")
@limiter.limit(RATE_LIMITS["analytics"])
async def get_insights(
    request: Request,
    filters: AnalyticsFilter = Depends(analytics_filter),
    aggregator: AnalyticsAggregator = Depends(get_aggregator),
):
    try:
        return {"insights": await aggregator.insights(filters)}
    except AggregationQueryError:
        raise query_failed()


@router.get("/export", response_model=ExportResponse, summary="Most recent click events")
@limiter.limit(RATE_LIMITS["analytics"])
async def export_analytics(
    request: Request,
    filters: AnalyticsFilter = Depends(analytics_filter),
    aggregator: AnalyticsAggregator = Depends(get_aggregator),
):
    try:
        rows = await aggregator.export(filters)
    except AggregationQueryError:
        raise query_failed()
    return {"count": len(rows), "data": rows}

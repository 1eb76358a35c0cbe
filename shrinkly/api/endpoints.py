"""
FastAPI Endpoints for the redirect path and link management

Endpoints only handle:
- Request validation (Pydantic models)
- Rate limiting
- Error handling and HTTP responses
- Delegating to service layer

The redirect endpoint resolves and counts the click in the request, then
hands analytics recording to a background task so the visitor is never
delayed by it.
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shrinkly.api.schemas import (
    BulkDeleteRequest,
    LinkResponse,
    LinkUpdateRequest,
    MessageResponse,
    ShortenRequest,
)
from shrinkly.core.exceptions import (
    DatabaseError,
    InvalidURLError,
    LinkDeactivatedError,
    LinkNotFoundError,
    SlugTakenError,
)
from shrinkly.core.rate_limit import RATE_LIMITS, limiter
from shrinkly.core.setting import settings
from shrinkly.core.validators import sanitize_short_code
from shrinkly.db.session import get_session, get_session_maker
from shrinkly.middleware.logging import get_client_ip
from shrinkly.services.background_tasks import record_click_background
from shrinkly.services.click_recorder import ClickMetadata
from shrinkly.services.link_service import LinkService
from shrinkly.services.redirect_service import LinkResolver

logger = logging.getLogger(__name__)

router = APIRouter()

QR_FLAG_VALUES = {"1", "true", "yes"}


def is_qr_scan(qr: Optional[str]) -> bool:
    return qr is not None and qr.strip().lower() in QR_FLAG_VALUES


def link_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Link not found")


@router.get(
    "/r/{short_code}",
    status_code=status.HTTP_302_FOUND,
    summary="Redirect to the destination URL",
    description="Resolves a short code, counts the click and redirects; analytics are recorded in the background"
)
@limiter.limit(RATE_LIMITS["redirect"])
async def redirect_to_url(
    short_code: str,
    request: Request,
    background_tasks: BackgroundTasks,
    qr: Optional[str] = Query(None, description="Set to 1 when the click comes from a QR code"),
    session: AsyncSession = Depends(get_session),
    session_maker: async_sessionmaker = Depends(get_session_maker),
) -> RedirectResponse:
    """
    Redirect to the destination URL for a given short code.

    Raises:
        HTTPException 404: If the short code is unknown or malformed
        HTTPException 403: If the link is deactivated
        HTTPException 429: If rate limit exceeded
    """
    sanitized_code = sanitize_short_code(short_code)
    if not sanitized_code:
        raise link_not_found()

    resolver = LinkResolver(session)
    try:
        link = await resolver.resolve(sanitized_code)
    except LinkNotFoundError:
        raise link_not_found()
    except LinkDeactivatedError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This link has been deactivated"
        )

    metadata = ClickMetadata(
        user_agent=request.headers.get("User-Agent", ""),
        referrer=request.headers.get("Referer") or request.headers.get("Referrer") or "",
        client_ip=get_client_ip(request),
    )

    background_tasks.add_task(
        record_click_background,
        session_maker,
        link.id,
        link.short_code,
        metadata,
        is_qr_scan=is_qr_scan(qr),
    )

    return RedirectResponse(
        url=link.original_url,
        status_code=status.HTTP_302_FOUND
    )


@router.post(
    "/api/shorten",
    response_model=LinkResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a short link",
)
@limiter.limit(RATE_LIMITS["links"])
async def create_short_link(
    request: Request,  # Required for rate limiting (slowapi expects parameter named 'request')
    body: ShortenRequest,
    session: AsyncSession = Depends(get_session)
) -> LinkResponse:
    """
    Create a new short link with a random code or the requested custom slug.
    """
    service = LinkService(session)
    try:
        link = await service.create_link(
            body.original_url,
            custom_slug=body.custom_slug,
            domain=body.domain,
            tags=body.tags,
            user_id=body.user_id,
        )
    except InvalidURLError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SlugTakenError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except DatabaseError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    return LinkResponse.from_link(link, settings.BASE_URL)


@router.get(
    "/api/links/{link_id}",
    response_model=LinkResponse,
    summary="Get a link",
)
async def get_link(
    link_id: int,
    session: AsyncSession = Depends(get_session)
) -> LinkResponse:
    try:
        link = await LinkService(session).get_link(link_id)
    except LinkNotFoundError:
        raise link_not_found()
    return LinkResponse.from_link(link, settings.BASE_URL)


@router.patch(
    "/api/links/{link_id}",
    response_model=LinkResponse,
    summary="Update a link's destination, status or tags",
)
@limiter.limit(RATE_LIMITS["links"])
async def update_link(
    link_id: int,
    request: Request,
    body: LinkUpdateRequest,
    session: AsyncSession = Depends(get_session)
) -> LinkResponse:
    try:
        link = await LinkService(session).update_link(
            link_id,
            original_url=body.original_url,
            status=body.status,
            tags=body.tags,
        )
    except LinkNotFoundError:
        raise link_not_found()
    except InvalidURLError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return LinkResponse.from_link(link, settings.BASE_URL)


@router.delete(
    "/api/links/{link_id}",
    response_model=MessageResponse,
    summary="Delete a link",
)
@limiter.limit(RATE_LIMITS["links"])
async def delete_link(
    link_id: int,
    request: Request,
    session: AsyncSession = Depends(get_session)
) -> MessageResponse:
    try:
        await LinkService(session).delete_link(link_id)
    except LinkNotFoundError:
        raise link_not_found()
    return MessageResponse(message="Link deleted successfully")


@router.post(
    "/api/links/bulk-delete",
    response_model=MessageResponse,
    summary="Delete several links",
)
@limiter.limit(RATE_LIMITS["links"])
async def bulk_delete_links(
    request: Request,
    body: BulkDeleteRequest,
    session: AsyncSession = Depends(get_session)
) -> MessageResponse:
    deleted = await LinkService(session).delete_links(body.ids)
    return MessageResponse(message=f"{deleted} link(s) deleted successfully")

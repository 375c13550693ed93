"""
Content Routes

Spotlight selection and single-item reads with view tracking.
"""

import logging

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.database import get_db
from engagement.dependencies import get_client_ip, get_spotlight_service, get_viewer
from engagement.exceptions import NoContentFoundError, StorageError, UserNotFoundError
from engagement.identity import ViewerIdentity
from engagement.models.content import ContentStatus
from engagement.schemas.engagement import ContentDetailResponse, ContentItem, SpotlightResponse
from engagement.services.content_lookup import get_live_content
from engagement.services.spotlight_service import SpotlightService
from engagement.services.view_recorder import ViewRecorder

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Content"])


# Declared before /content/{content_id} so "random" is not parsed as an id
@router.get("/content/random", response_model=SpotlightResponse)
async def get_random_content(
    category_id: int | None = Query(None, gt=0, description="Return one random item from this category"),
    status: ContentStatus = Query(ContentStatus.PUBLISHED),
    service: SpotlightService = Depends(get_spotlight_service),
):
    result = await service.get_spotlight(category_id=category_id, status=status)
    if not result.items:
        raise NoContentFoundError(category_id)
    return SpotlightResponse(items=result.items, count=len(result.items), cached=result.cached)


@router.get("/content/{content_id}", response_model=ContentDetailResponse)
async def get_content(
    content_id: int,
    db: AsyncSession = Depends(get_db),
    viewer: ViewerIdentity | None = Depends(get_viewer),
    client_ip: str | None = Depends(get_client_ip),
    user_agent: str | None = Header(None),
):
    content = await get_live_content(db, content_id)
    item = ContentItem.from_content(content)

    # View tracking never fails the read
    view_counted = False
    try:
        result = await ViewRecorder(db).record_view(content_id, viewer, ip_address=client_ip, user_agent=user_agent)
        view_counted = result.counted
        item.view_count = result.view_count
    except StorageError as e:
        logger.warning(f"Failed to track view for content {content_id}: {e.message}")
        if e.last_known_count is not None:
            item.view_count = e.last_known_count
    except UserNotFoundError as e:
        logger.warning(f"View not tracked for content {content_id}: {e.message}")

    return ContentDetailResponse(content=item, view_counted=view_counted)

from fastapi import APIRouter, Depends, Header

from engagement.dependencies import get_client_ip, get_view_recorder, get_viewer
from engagement.identity import ViewerIdentity
from engagement.schemas.engagement import ViewResponse, ViewStatsResponse
from engagement.services.view_recorder import ViewRecorder

router = APIRouter(tags=["Views"])


@router.post("/content/{content_id}/view", response_model=ViewResponse)
async def record_view(
    content_id: int,
    viewer: ViewerIdentity | None = Depends(get_viewer),
    client_ip: str | None = Depends(get_client_ip),
    user_agent: str | None = Header(None),
    recorder: ViewRecorder = Depends(get_view_recorder),
):
    result = await recorder.record_view(content_id, viewer, ip_address=client_ip, user_agent=user_agent)
    return ViewResponse(counted=result.counted, view_count=result.view_count)


@router.get("/content/{content_id}/views/stats", response_model=ViewStatsResponse)
async def get_view_stats(content_id: int, recorder: ViewRecorder = Depends(get_view_recorder)):
    stats = await recorder.get_view_stats(content_id)
    return ViewStatsResponse(
        content_id=content_id,
        total_views=stats.total_views,
        unique_viewers=stats.unique_viewers,
        views_today=stats.views_today,
        views_this_week=stats.views_this_week,
    )

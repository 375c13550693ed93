"""
Like Routes

Toggling and reading likes. Every endpoint except the public likers list
requires an authenticated user.
"""

from fastapi import APIRouter, Depends, Query

from engagement.auth import require_user_id
from engagement.dependencies import get_like_toggler
from engagement.schemas.engagement import (
    LikedContentListResponse,
    LikedContentResponse,
    LikeResponse,
    LikerListResponse,
    LikerResponse,
)
from engagement.services.content_lookup import get_live_counters
from engagement.services.like_toggler import LikeToggler

router = APIRouter(tags=["Likes"])


@router.post("/content/{content_id}/like", response_model=LikeResponse)
async def toggle_like(
    content_id: int,
    user_id: int = Depends(require_user_id),
    toggler: LikeToggler = Depends(get_like_toggler),
):
    result = await toggler.toggle_like(content_id, user_id)
    return LikeResponse(liked=result.liked, like_count=result.like_count)


@router.get("/content/{content_id}/like", response_model=LikeResponse)
async def check_like_status(
    content_id: int,
    user_id: int = Depends(require_user_id),
    toggler: LikeToggler = Depends(get_like_toggler),
):
    _, like_count = await get_live_counters(toggler.db, content_id)
    liked = await toggler.has_user_liked(content_id, user_id)
    return LikeResponse(liked=liked, like_count=like_count)


@router.get("/content/{content_id}/likes", response_model=LikerListResponse)
async def get_content_likes(
    content_id: int,
    limit: int = Query(50, ge=1, le=200),
    toggler: LikeToggler = Depends(get_like_toggler),
):
    likers = await toggler.list_likers(content_id, limit=limit)
    return LikerListResponse(likes=[LikerResponse.model_validate(liker) for liker in likers], count=len(likers))


@router.get("/users/me/likes", response_model=LikedContentListResponse)
async def get_my_likes(
    limit: int = Query(50, ge=1, le=200),
    user_id: int = Depends(require_user_id),
    toggler: LikeToggler = Depends(get_like_toggler),
):
    liked = await toggler.list_user_likes(user_id, limit=limit)
    return LikedContentListResponse(
        likes=[LikedContentResponse.model_validate(item) for item in liked],
        count=len(liked),
    )

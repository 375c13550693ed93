from fastapi import Cookie, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.auth import get_optional_user_id
from engagement.database import get_db
from engagement.identity import ViewerIdentity, resolve_viewer
from engagement.services.like_toggler import LikeToggler
from engagement.services.spotlight_service import SpotlightService
from engagement.services.view_recorder import ViewRecorder
from engagement.utils.spotlight_cache import SpotlightCache


def get_session_id(
    x_session_id: str | None = Header(None, alias="X-Session-ID"),
    session_id: str | None = Cookie(None),
) -> str | None:
    """Anonymous session token, from the X-Session-ID header or the session_id cookie."""
    return x_session_id if x_session_id is not None else session_id


def get_viewer(
    user_id: int | None = Depends(get_optional_user_id),
    session_id: str | None = Depends(get_session_id),
) -> ViewerIdentity | None:
    return resolve_viewer(user_id, session_id)


def get_client_ip(request: Request) -> str | None:
    client_ip = request.headers.get("X-Forwarded-For", request.headers.get("X-Real-IP"))
    if client_ip:
        return client_ip.split(",")[0].strip()[:45]
    return request.client.host if request.client else None


def get_spotlight_cache(request: Request) -> SpotlightCache:
    return request.app.state.spotlight_cache


def get_view_recorder(db: AsyncSession = Depends(get_db)) -> ViewRecorder:
    return ViewRecorder(db)


def get_like_toggler(db: AsyncSession = Depends(get_db)) -> LikeToggler:
    return LikeToggler(db)


def get_spotlight_service(
    db: AsyncSession = Depends(get_db),
    cache: SpotlightCache = Depends(get_spotlight_cache),
) -> SpotlightService:
    return SpotlightService(db, cache)

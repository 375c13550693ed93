"""
Monitoring Routes

Liveness and readiness checks plus the Prometheus scrape endpoint.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.config import settings
from engagement.database import get_db
from engagement.dependencies import get_spotlight_cache
from engagement.utils.spotlight_cache import SpotlightCache

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Monitoring"])

APP_START_TIME = time.time()


class HealthStatus(BaseModel):
    status: str
    timestamp: str
    version: str
    uptime_seconds: float


class ReadinessStatus(BaseModel):
    status: str
    timestamp: str
    checks: dict[str, dict[str, Any]]


@router.get("/health", response_model=HealthStatus)
async def health_check() -> HealthStatus:
    """Liveness check. Does not touch the database."""
    return HealthStatus(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.app_version,
        uptime_seconds=round(time.time() - APP_START_TIME, 2),
    )


@router.get("/ready", response_model=ReadinessStatus)
async def readiness_check(
    response: Response,
    db: AsyncSession = Depends(get_db),
    cache: SpotlightCache = Depends(get_spotlight_cache),
) -> ReadinessStatus:
    """
    Readiness check.

    Fails with 503 when the database is unreachable. The spotlight cache is
    reported but never fails the check, since a cache outage only means misses.
    """
    checks: dict[str, dict[str, Any]] = {}

    started = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = {"status": "ok", "latency_ms": round((time.perf_counter() - started) * 1000, 2)}
    except DBAPIError as e:
        logger.warning(f"Readiness check: database unavailable: {e.__class__.__name__}")
        checks["database"] = {"status": "unavailable"}

    checks["spotlight_cache"] = {"status": "ok", **cache.get_stats()}

    ready = checks["database"]["status"] == "ok"
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessStatus(
        status="ready" if ready else "not_ready",
        timestamp=datetime.now(timezone.utc).isoformat(),
        checks=checks,
    )


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

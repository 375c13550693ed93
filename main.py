import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from engagement.config import settings
from engagement.database import Base, engine
from engagement.exception_handlers import register_exception_handlers
from engagement.middleware.logging import RequestLoggingMiddleware, configure_logging
from engagement.routes import content, likes, monitoring, views
from engagement.scheduler import install_engagement_jobs, scheduler
from engagement.utils.metrics import set_app_info
from engagement.utils.spotlight_cache import RedisSpotlightCache, build_spotlight_cache

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Tasks to run at application startup and shutdown."""
    logger.info("Starting up the application...")
    if settings.debug:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created (if not existing).")

    install_engagement_jobs(
        scheduler,
        app.state.spotlight_cache,
        sweep_interval_seconds=settings.spotlight_sweep_interval_seconds,
        retention_days=settings.view_retention_days,
        reconcile_interval_minutes=settings.reconcile_interval_minutes,
    )
    scheduler.start()

    yield

    logger.info("Shutting down the application...")
    scheduler.shutdown(wait=False)
    if isinstance(app.state.spotlight_cache, RedisSpotlightCache):
        await app.state.spotlight_cache.close()
    await engine.dispose()


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    configure_logging(settings.log_level, json_format=settings.log_json)

    app = FastAPI(
        title=settings.app_name,
        description="Views, likes and spotlight content for the content platform",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.spotlight_cache = build_spotlight_cache(
        settings.spotlight_cache_backend,
        ttl_seconds=settings.spotlight_cache_ttl_seconds,
        redis_url=settings.redis_url,
    )

    # Add middleware
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(content.router, prefix="/api/v1")
    app.include_router(views.router, prefix="/api/v1")
    app.include_router(likes.router, prefix="/api/v1")
    app.include_router(monitoring.router)

    set_app_info(settings.app_version, settings.environment)
    if settings.debug:
        logger.info(f"Running in {settings.environment} mode")
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)

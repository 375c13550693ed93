"""
Background jobs

Runs on the application's AsyncIOScheduler. Each job opens its own
database session and a failing run is logged and retried on the next tick.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from engagement import database
from engagement.services.reconciliation import prune_view_facts, reconcile_counters
from engagement.utils.spotlight_cache import SpotlightCache

scheduler = AsyncIOScheduler()

logger = logging.getLogger(__name__)


async def sweep_spotlight_cache(cache: SpotlightCache) -> int:
    try:
        return await cache.sweep()
    except Exception as exc:
        logger.warning(f"[Scheduler] Spotlight cache sweep failed: {exc}")
        return 0


async def prune_old_view_facts(retention_days: int) -> int:
    async with database.AsyncSessionLocal() as db:
        try:
            return await prune_view_facts(db, retention_days)
        except Exception as exc:
            logger.warning(f"[Scheduler] View fact retention failed: {exc}")
            return 0


async def reconcile_engagement_counters() -> None:
    async with database.AsyncSessionLocal() as db:
        try:
            await reconcile_counters(db)
        except Exception as exc:
            logger.warning(f"[Scheduler] Counter reconciliation failed: {exc}")


def install_engagement_jobs(
    scheduler,
    cache: SpotlightCache,
    sweep_interval_seconds: int,
    retention_days: int,
    reconcile_interval_minutes: int,
) -> None:
    """
    Register the engagement maintenance jobs with the shared scheduler.

    Args:
        scheduler: The application's AsyncIOScheduler
        cache: Spotlight cache to sweep
        sweep_interval_seconds: How often expired cache entries are evicted
        retention_days: View facts older than this many days are deleted (daily)
        reconcile_interval_minutes: How often counters are checked against facts
    """
    scheduler.add_job(
        sweep_spotlight_cache,
        trigger=IntervalTrigger(seconds=sweep_interval_seconds),
        args=[cache],
        id="spotlight_cache_sweep",
        replace_existing=True,
        max_instances=1,
    )
    scheduler.add_job(
        prune_old_view_facts,
        trigger=IntervalTrigger(hours=24),
        args=[retention_days],
        id="view_fact_retention",
        replace_existing=True,
        max_instances=1,
    )
    scheduler.add_job(
        reconcile_engagement_counters,
        trigger=IntervalTrigger(minutes=reconcile_interval_minutes),
        id="counter_reconciliation",
        replace_existing=True,
        max_instances=1,
    )
    logger.info(
        f"[Scheduler] Engagement jobs installed (sweep={sweep_interval_seconds}s, "
        f"retention={retention_days}d, reconcile={reconcile_interval_minutes}m)"
    )

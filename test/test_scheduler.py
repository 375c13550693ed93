"""
Tests for the engagement background jobs
"""

from datetime import timedelta

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy import func, select, update

from engagement.identity import SessionViewer
from engagement.models.content import Content
from engagement.models.view import ViewFact
from engagement.scheduler import (
    install_engagement_jobs,
    prune_old_view_facts,
    reconcile_engagement_counters,
    sweep_spotlight_cache,
)
from engagement.services.content_lookup import get_live_counters
from engagement.services.view_recorder import ViewRecorder
from engagement.utils.clock import utcnow


class TestInstallJobs:
    def test_jobs_registered(self, spotlight_cache):
        """Test all maintenance jobs are added with their intervals"""
        scheduler = AsyncIOScheduler()

        install_engagement_jobs(
            scheduler,
            spotlight_cache,
            sweep_interval_seconds=60,
            retention_days=90,
            reconcile_interval_minutes=60,
        )

        jobs = {job.id: job for job in scheduler.get_jobs()}
        assert set(jobs) == {"spotlight_cache_sweep", "view_fact_retention", "counter_reconciliation"}
        assert jobs["spotlight_cache_sweep"].trigger.interval == timedelta(seconds=60)
        assert jobs["view_fact_retention"].trigger.interval == timedelta(hours=24)
        assert jobs["counter_reconciliation"].trigger.interval == timedelta(minutes=60)
        assert jobs["spotlight_cache_sweep"].args == (spotlight_cache,)
        assert jobs["view_fact_retention"].args == (90,)


class TestJobs:
    @pytest.mark.asyncio
    async def test_sweep_job(self, spotlight_cache, fake_clock):
        await spotlight_cache.set("key", "value", ttl=1)
        fake_clock.advance(5)

        assert await sweep_spotlight_cache(spotlight_cache) == 1

    @pytest.mark.asyncio
    async def test_sweep_job_logs_failure(self, spotlight_cache, monkeypatch):
        """Test a failing sweep does not raise out of the scheduler"""

        async def broken_sweep():
            raise RuntimeError("boom")

        monkeypatch.setattr(spotlight_cache, "sweep", broken_sweep)
        assert await sweep_spotlight_cache(spotlight_cache) == 0

    @pytest.mark.asyncio
    async def test_retention_job_uses_own_session(self, test_db, test_content):
        content_id = test_content.id
        await ViewRecorder(test_db).record_view(content_id, SessionViewer("s1"))
        await test_db.execute(update(ViewFact).values(viewed_at=utcnow() - timedelta(days=100)))
        await test_db.commit()

        assert await prune_old_view_facts(90) == 1

        remaining = await test_db.execute(select(func.count(ViewFact.id)))
        assert remaining.scalar_one() == 0

    @pytest.mark.asyncio
    async def test_retention_job_swallows_bad_config(self, setup_test_database):
        assert await prune_old_view_facts(0) == 0

    @pytest.mark.asyncio
    async def test_reconciliation_job(self, test_db, test_content):
        content_id = test_content.id
        await test_db.execute(update(Content).where(Content.id == content_id).values(like_count=3))
        await test_db.commit()

        await reconcile_engagement_counters()

        assert await get_live_counters(test_db, content_id) == (0, 0)

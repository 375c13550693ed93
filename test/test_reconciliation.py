"""
Tests for counter reconciliation and view fact retention
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select, update

from engagement.identity import SessionViewer
from engagement.models.content import Content
from engagement.models.like import LikeFact
from engagement.models.view import ViewFact
from engagement.services.content_lookup import get_live_counters
from engagement.services.like_toggler import LikeToggler
from engagement.services.reconciliation import prune_view_facts, reconcile_counters
from engagement.services.view_recorder import ViewRecorder
from engagement.utils.clock import utcnow


class TestReconcileCounters:
    @pytest.mark.asyncio
    async def test_consistent_counters_untouched(self, test_db, test_content, test_user):
        content_id = test_content.id
        await LikeToggler(test_db).toggle_like(content_id, test_user.id)
        await ViewRecorder(test_db).record_view(content_id, SessionViewer("s1"))

        report = await reconcile_counters(test_db)

        assert report.like_counts_repaired == 0
        assert report.view_counts_repaired == 0
        assert await get_live_counters(test_db, content_id) == (1, 1)

    @pytest.mark.asyncio
    async def test_like_count_recomputed_from_facts(self, test_db, test_content, test_user, other_user):
        """Test a drifted like counter is set to the number of like facts"""
        content_id = test_content.id
        test_db.add_all(
            [
                LikeFact(content_id=content_id, user_id=test_user.id),
                LikeFact(content_id=content_id, user_id=other_user.id),
            ]
        )
        await test_db.commit()
        await test_db.execute(update(Content).where(Content.id == content_id).values(like_count=7))
        await test_db.commit()

        report = await reconcile_counters(test_db)

        assert report.like_counts_repaired == 1
        assert await get_live_counters(test_db, content_id) == (0, 2)

    @pytest.mark.asyncio
    async def test_view_count_only_raised(self, test_db, test_content):
        """Test the view counter is raised to the fact count but never lowered"""
        content_id = test_content.id
        recorder = ViewRecorder(test_db)
        await recorder.record_view(content_id, SessionViewer("s1"))
        await recorder.record_view(content_id, SessionViewer("s2"))

        await test_db.execute(update(Content).where(Content.id == content_id).values(view_count=0))
        await test_db.commit()
        report = await reconcile_counters(test_db)
        assert report.view_counts_repaired == 1
        assert (await get_live_counters(test_db, content_id))[0] == 2

        # Refreshed facts make the counter legitimately larger than the fact count
        await test_db.execute(update(Content).where(Content.id == content_id).values(view_count=10))
        await test_db.commit()
        report = await reconcile_counters(test_db)
        assert report.view_counts_repaired == 0
        assert (await get_live_counters(test_db, content_id))[0] == 10


class TestPruneViewFacts:
    @pytest.mark.asyncio
    async def test_old_facts_deleted_counters_kept(self, test_db, test_content):
        """Test retention removes old facts without touching the counter"""
        content_id = test_content.id
        recorder = ViewRecorder(test_db)
        await recorder.record_view(content_id, SessionViewer("old"))
        await recorder.record_view(content_id, SessionViewer("recent"))
        await test_db.execute(
            update(ViewFact)
            .where(ViewFact.viewer_key == "session:old")
            .values(viewed_at=utcnow() - timedelta(days=120))
        )
        await test_db.commit()

        deleted = await prune_view_facts(test_db, retention_days=90)

        assert deleted == 1
        remaining = await test_db.execute(select(func.count(ViewFact.id)))
        assert remaining.scalar_one() == 1
        assert (await get_live_counters(test_db, content_id))[0] == 2

    @pytest.mark.asyncio
    async def test_pruned_viewer_counts_again(self, test_db, test_content):
        content_id = test_content.id
        recorder = ViewRecorder(test_db)
        await recorder.record_view(content_id, SessionViewer("s1"))
        await test_db.execute(update(ViewFact).values(viewed_at=utcnow() - timedelta(days=120)))
        await test_db.commit()
        await prune_view_facts(test_db, retention_days=90)

        result = await recorder.record_view(content_id, SessionViewer("s1"))

        assert result.counted is True
        assert result.view_count == 2

    @pytest.mark.asyncio
    async def test_rejects_non_positive_retention(self, test_db):
        with pytest.raises(ValueError):
            await prune_view_facts(test_db, retention_days=0)

"""
Tests for live content lookups and dialect-specific upserts
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy import update

from engagement.exceptions import ContentNotFoundError
from engagement.models.content import Content
from engagement.models.like import LikeFact
from engagement.schemas.engagement import ContentItem
from engagement.services.content_lookup import get_live_content, get_live_counters
from engagement.utils.clock import utcnow
from engagement.utils.dialect import upsert_insert


class TestLiveLookups:
    @pytest.mark.asyncio
    async def test_counters_of_new_content(self, test_db, test_content):
        assert await get_live_counters(test_db, test_content.id) == (0, 0)

    @pytest.mark.asyncio
    async def test_deleted_content_is_not_live(self, test_db, test_content):
        content_id = test_content.id
        await test_db.execute(update(Content).where(Content.id == content_id).values(deleted_at=utcnow()))
        await test_db.commit()

        with pytest.raises(ContentNotFoundError):
            await get_live_counters(test_db, content_id)
        with pytest.raises(ContentNotFoundError):
            await get_live_content(test_db, content_id)

    @pytest.mark.asyncio
    async def test_content_item_serialization(self, test_db, test_content):
        """Test the API representation flattens category and author"""
        content = await get_live_content(test_db, test_content.id)

        item = ContentItem.from_content(content).model_dump(mode="json")

        assert item["status"] == "published"
        assert item["category_name"] == "Technology"
        assert item["category_icon"] == "chip"
        assert item["author_username"] == "testuser"
        assert item["like_count"] == 0


class TestUpsertInsert:
    @pytest.mark.asyncio
    async def test_sqlite_insert(self, test_db):
        stmt = upsert_insert(test_db, LikeFact)
        assert hasattr(stmt, "on_conflict_do_nothing")

    def test_unsupported_backend(self):
        db = MagicMock()
        db.get_bind.return_value.dialect.name = "mysql"
        with pytest.raises(RuntimeError):
            upsert_insert(db, LikeFact)

"""
Tests for SpotlightService
"""

import pytest

from engagement.exceptions import CategoryNotFoundError, ValidationError
from engagement.models.category import Category
from engagement.models.content import Content, ContentStatus
from engagement.services.spotlight_service import SpotlightService
from engagement.utils.clock import utcnow


@pytest.fixture
async def catalog(test_db, test_user):
    """Two categories with a mix of published, draft and deleted content"""
    news = Category(name="News", slug="news")
    sports = Category(name="Sports", slug="sports")
    empty = Category(name="Empty", slug="empty")
    test_db.add_all([news, sports, empty])
    await test_db.commit()

    items = [
        Content(title="News 1", category_id=news.id, author_id=test_user.id),
        Content(title="News 2", category_id=news.id, author_id=test_user.id),
        Content(title="News 3", category_id=news.id, author_id=test_user.id),
        Content(title="News removed", category_id=news.id, author_id=test_user.id, deleted_at=utcnow()),
        Content(title="Sports 1", category_id=sports.id, author_id=test_user.id),
        Content(
            title="Sports draft",
            category_id=sports.id,
            author_id=test_user.id,
            status=ContentStatus.DRAFT,
        ),
        Content(
            title="Empty draft",
            category_id=empty.id,
            author_id=test_user.id,
            status=ContentStatus.DRAFT,
        ),
    ]
    test_db.add_all(items)
    await test_db.commit()
    return {"news": news.id, "sports": sports.id, "empty": empty.id}


class TestCacheKey:
    def test_all_categories(self):
        assert SpotlightService.cache_key(None, ContentStatus.PUBLISHED) == "spotlight:all:published"

    def test_single_category(self):
        assert SpotlightService.cache_key(4, ContentStatus.DRAFT) == "spotlight:4:draft"


class TestGetSpotlight:
    @pytest.mark.asyncio
    async def test_one_item_per_category(self, test_db, spotlight_cache, catalog):
        """Test every category with live published content contributes exactly one item"""
        service = SpotlightService(test_db, spotlight_cache)

        result = await service.get_spotlight()

        category_ids = [item["category_id"] for item in result.items]
        assert sorted(category_ids) == sorted([catalog["news"], catalog["sports"]])
        assert result.cached is False
        titles = {item["title"] for item in result.items}
        assert "News removed" not in titles
        assert "Sports draft" not in titles
        assert all(item["status"] == "published" for item in result.items)

    @pytest.mark.asyncio
    async def test_items_carry_category_details(self, test_db, spotlight_cache, catalog):
        service = SpotlightService(test_db, spotlight_cache)

        result = await service.get_spotlight(category_id=catalog["sports"])

        assert len(result.items) == 1
        item = result.items[0]
        assert item["title"] == "Sports 1"
        assert item["category_slug"] == "sports"
        assert item["author_username"] == "testuser"
        assert item["view_count"] == 0

    @pytest.mark.asyncio
    async def test_single_category_returns_one_of_its_items(self, test_db, spotlight_cache, catalog):
        service = SpotlightService(test_db, spotlight_cache)

        result = await service.get_spotlight(category_id=catalog["news"])

        assert len(result.items) == 1
        assert result.items[0]["title"] in {"News 1", "News 2", "News 3"}

    @pytest.mark.asyncio
    async def test_second_call_is_cached(self, test_db, spotlight_cache, catalog):
        """Test a repeat request inside the TTL returns the same selection from cache"""
        service = SpotlightService(test_db, spotlight_cache)

        first = await service.get_spotlight(category_id=catalog["news"])
        second = await service.get_spotlight(category_id=catalog["news"])

        assert first.cached is False
        assert second.cached is True
        assert second.items == first.items

    @pytest.mark.asyncio
    async def test_selection_refreshes_after_ttl(self, test_db, spotlight_cache, fake_clock, catalog):
        service = SpotlightService(test_db, spotlight_cache, ttl_seconds=60)

        await service.get_spotlight()
        fake_clock.advance(60)
        result = await service.get_spotlight()

        assert result.cached is False

    @pytest.mark.asyncio
    async def test_status_is_part_of_the_key(self, test_db, spotlight_cache, catalog):
        """Test draft and published selections are cached separately"""
        service = SpotlightService(test_db, spotlight_cache)

        await service.get_spotlight()
        drafts = await service.get_spotlight(status=ContentStatus.DRAFT)

        assert drafts.cached is False
        assert {item["title"] for item in drafts.items} == {"Sports draft", "Empty draft"}

    @pytest.mark.asyncio
    async def test_empty_result_not_cached(self, test_db, spotlight_cache, catalog):
        """Test an empty category is looked up again on the next request"""
        service = SpotlightService(test_db, spotlight_cache)

        result = await service.get_spotlight(category_id=catalog["empty"])

        assert result.items == []
        assert result.cached is False
        assert len(spotlight_cache) == 0

    @pytest.mark.asyncio
    async def test_unknown_category(self, test_db, spotlight_cache, catalog):
        service = SpotlightService(test_db, spotlight_cache)
        with pytest.raises(CategoryNotFoundError):
            await service.get_spotlight(category_id=9999)

    @pytest.mark.asyncio
    async def test_invalid_category_id(self, test_db, spotlight_cache):
        service = SpotlightService(test_db, spotlight_cache)
        with pytest.raises(ValidationError):
            await service.get_spotlight(category_id=0)

    @pytest.mark.asyncio
    async def test_no_content_at_all(self, test_db, spotlight_cache):
        service = SpotlightService(test_db, spotlight_cache)
        result = await service.get_spotlight()
        assert result.items == []

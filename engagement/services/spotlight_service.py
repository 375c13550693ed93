"""
Spotlight Service

Serves "one random item per category" selections for discovery surfaces
through the spotlight cache. Results may be stale by up to the cache TTL;
that is acceptable for decorative content.
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.config import settings
from engagement.exceptions import CategoryNotFoundError, ValidationError
from engagement.models.category import Category
from engagement.models.content import Content, ContentStatus
from engagement.schemas.engagement import ContentItem
from engagement.utils.metrics import record_cache_hit, record_cache_miss
from engagement.utils.spotlight_cache import SpotlightCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpotlightResult:
    items: list[dict[str, Any]]
    cached: bool


class SpotlightService:
    """Read-through access to random spotlight content."""

    def __init__(self, db: AsyncSession, cache: SpotlightCache, ttl_seconds: int | None = None):
        self.db = db
        self.cache = cache
        self.ttl_seconds = settings.spotlight_cache_ttl_seconds if ttl_seconds is None else ttl_seconds

    @staticmethod
    def cache_key(category_id: int | None, status: ContentStatus) -> str:
        scope = "all" if category_id is None else str(category_id)
        return f"spotlight:{scope}:{ContentStatus(status).value}"

    async def get_spotlight(
        self,
        category_id: int | None = None,
        status: ContentStatus = ContentStatus.PUBLISHED,
    ) -> SpotlightResult:
        """
        Get random spotlight content.

        Args:
            category_id: Restrict to one random item of this category, or None
                for one random item per category
            status: Content status to select from

        Returns:
            SpotlightResult with serialized items and whether they came from cache

        Raises:
            ValidationError: If category_id is not a positive integer
            CategoryNotFoundError: If category_id does not exist

        Database errors on a miss propagate; there is no stale copy to fall back on.
        """
        if category_id is not None and (
            isinstance(category_id, bool) or not isinstance(category_id, int) or category_id <= 0
        ):
            raise ValidationError("Category id must be a positive integer", field="category_id")
        status = ContentStatus(status)
        key = self.cache_key(category_id, status)

        cached = await self.cache.get(key)
        if cached is not None:
            record_cache_hit(self.cache.backend)
            return SpotlightResult(items=cached, cached=True)
        record_cache_miss(self.cache.backend)

        if category_id is None:
            contents = await self._random_per_category(status)
        else:
            await self._ensure_category(category_id)
            contents = await self._random_from_category(category_id, status)

        items = [ContentItem.from_content(content).model_dump(mode="json") for content in contents]
        # Empty selections are not cached so new content shows up right away
        if items:
            await self.cache.set(key, items, self.ttl_seconds)
        logger.debug(f"Spotlight miss for {key}: selected {len(items)} items")
        return SpotlightResult(items=items, cached=False)

    async def _ensure_category(self, category_id: int) -> None:
        category = await self.db.get(Category, category_id)
        if category is None:
            raise CategoryNotFoundError(category_id)

    async def _random_per_category(self, status: ContentStatus) -> list[Content]:
        ranked = (
            select(
                Content.id.label("content_id"),
                func.row_number()
                .over(partition_by=Content.category_id, order_by=func.random())
                .label("position"),
            )
            .where(Content.status == status, Content.deleted_at.is_(None))
            .subquery()
        )
        result = await self.db.execute(
            select(Content)
            .join(ranked, Content.id == ranked.c.content_id)
            .where(ranked.c.position == 1)
            .order_by(Content.category_id)
        )
        return list(result.scalars().all())

    async def _random_from_category(self, category_id: int, status: ContentStatus) -> list[Content]:
        result = await self.db.execute(
            select(Content)
            .where(
                Content.category_id == category_id,
                Content.status == status,
                Content.deleted_at.is_(None),
            )
            .order_by(func.random())
            .limit(1)
        )
        return list(result.scalars().all())

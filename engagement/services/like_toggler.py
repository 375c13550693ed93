"""
Like Toggler

Flips a user's like on a content item. The like fact and
``Content.like_count`` change in one transaction, and the counter only
moves when the fact write actually changed a row.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, case, delete, exists, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.config import settings
from engagement.exceptions import StorageError, ValidationError
from engagement.models.content import Content
from engagement.models.like import LikeFact
from engagement.models.user import User
from engagement.services.content_lookup import find_missing_reference, get_live_counters
from engagement.utils.clock import utcnow
from engagement.utils.dialect import upsert_insert
from engagement.utils.metrics import LIKE_TOGGLES_TOTAL
from engagement.utils.retry import run_with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LikeResult:
    liked: bool
    like_count: int


@dataclass(frozen=True)
class Liker:
    user_id: int
    username: str
    liked_at: datetime


@dataclass(frozen=True)
class LikedContent:
    content_id: int
    title: str
    liked_at: datetime


class LikeToggler:
    """Service for liking and unliking content."""

    def __init__(
        self,
        db: AsyncSession,
        retry_attempts: int | None = None,
        retry_base_delay: float | None = None,
    ):
        self.db = db
        self.retry_attempts = settings.storage_retry_attempts if retry_attempts is None else retry_attempts
        self.retry_base_delay = settings.storage_retry_base_delay if retry_base_delay is None else retry_base_delay

    async def toggle_like(self, content_id: int, user_id: int) -> LikeResult:
        """
        Toggle ``user_id``'s like on ``content_id``.

        - If no like exists, create one and increment the counter.
        - If a like exists, remove it and decrement the counter (never below 0).

        An insert that loses a race against an identical insert is absorbed by
        the conflict clause and reported as "already liked"; a delete that
        finds nothing left to delete does not decrement.

        Raises:
            ValidationError: If either id is not a positive integer
            ContentNotFoundError: If the content does not exist or was deleted
            UserNotFoundError: If ``user_id`` has no row
            StorageError: If the transaction keeps failing. Likes fail closed,
                so no counter is reported in that case.
        """
        _validate_id(content_id, "content_id")
        _validate_id(user_id, "user_id")

        async def attempt() -> tuple[LikeResult, str]:
            _, like_count = await get_live_counters(self.db, content_id)

            if await self._has_like(content_id, user_id):
                if await self._delete_fact(content_id, user_id):
                    like_count = await self._decrement(content_id)
                    action = "unlike"
                else:
                    action = "noop"
                await self.db.commit()
                return LikeResult(liked=False, like_count=like_count), action

            inserted = await self._insert_fact(content_id, user_id)
            if inserted:
                like_count = await self._increment(content_id)
                action = "like"
            else:
                # Someone else's identical request got there first
                _, like_count = await get_live_counters(self.db, content_id)
                action = "noop"
            await self.db.commit()
            return LikeResult(liked=True, like_count=like_count), action

        try:
            result, action = await run_with_retry(
                attempt,
                name="toggle_like",
                attempts=self.retry_attempts,
                base_delay=self.retry_base_delay,
                on_retry=self.db.rollback,
            )
        except IntegrityError as exc:
            # The conflict clause absorbs duplicates; what is left is a dangling reference
            await self.db.rollback()
            missing = await find_missing_reference(self.db, content_id, user_id)
            if missing is None:
                raise
            logger.warning(f"Like rejected for content {content_id}, user {user_id}: {missing.message}")
            raise missing from exc
        except DBAPIError as exc:
            await self.db.rollback()
            logger.error(f"Failed to toggle like for content {content_id}, user {user_id}: {exc}")
            raise StorageError(message="Like could not be updated", operation="toggle_like") from exc

        LIKE_TOGGLES_TOTAL.labels(action=action).inc()
        logger.info(f"Like toggled: content={content_id}, user={user_id}, action={action}, likes={result.like_count}")
        return result

    async def has_user_liked(self, content_id: int, user_id: int) -> bool:
        """Check whether ``user_id`` currently likes ``content_id``."""
        _validate_id(content_id, "content_id")
        _validate_id(user_id, "user_id")
        return await self._has_like(content_id, user_id)

    async def list_likers(self, content_id: int, limit: int = 50) -> list[Liker]:
        """Users who liked a content item, most recent first."""
        _validate_id(content_id, "content_id")
        await get_live_counters(self.db, content_id)

        result = await self.db.execute(
            select(User.id, User.username, LikeFact.created_at)
            .join(User, LikeFact.user_id == User.id)
            .where(LikeFact.content_id == content_id)
            .order_by(LikeFact.created_at.desc(), LikeFact.id.desc())
            .limit(limit)
        )
        return [Liker(user_id=uid, username=username, liked_at=liked_at) for uid, username, liked_at in result.all()]

    async def list_user_likes(self, user_id: int, limit: int = 50) -> list[LikedContent]:
        """Live content items liked by a user, most recent first."""
        _validate_id(user_id, "user_id")

        result = await self.db.execute(
            select(Content.id, Content.title, LikeFact.created_at)
            .join(Content, LikeFact.content_id == Content.id)
            .where(and_(LikeFact.user_id == user_id, Content.deleted_at.is_(None)))
            .order_by(LikeFact.created_at.desc(), LikeFact.id.desc())
            .limit(limit)
        )
        return [
            LikedContent(content_id=cid, title=title, liked_at=liked_at) for cid, title, liked_at in result.all()
        ]

    async def _has_like(self, content_id: int, user_id: int) -> bool:
        result = await self.db.execute(
            select(exists().where(LikeFact.content_id == content_id, LikeFact.user_id == user_id))
        )
        return bool(result.scalar())

    async def _insert_fact(self, content_id: int, user_id: int) -> bool:
        insert = upsert_insert(self.db, LikeFact)
        stmt = (
            insert.values(content_id=content_id, user_id=user_id, created_at=utcnow())
            .on_conflict_do_nothing(index_elements=[LikeFact.content_id, LikeFact.user_id])
            .returning(LikeFact.id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def _delete_fact(self, content_id: int, user_id: int) -> bool:
        result = await self.db.execute(
            delete(LikeFact)
            .where(LikeFact.content_id == content_id, LikeFact.user_id == user_id)
            .returning(LikeFact.id)
        )
        return result.scalar_one_or_none() is not None

    async def _increment(self, content_id: int) -> int:
        result = await self.db.execute(
            update(Content)
            .where(Content.id == content_id)
            .values(like_count=Content.like_count + 1)
            .returning(Content.like_count)
        )
        return result.scalar_one()

    async def _decrement(self, content_id: int) -> int:
        result = await self.db.execute(
            update(Content)
            .where(Content.id == content_id)
            .values(like_count=case((Content.like_count > 0, Content.like_count - 1), else_=0))
            .returning(Content.like_count)
        )
        return result.scalar_one()


def _validate_id(value, field: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer", field=field)

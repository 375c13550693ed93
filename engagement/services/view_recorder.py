"""
View Recorder

Counts content views with per-viewer deduplication. A viewer's view counts
at most once per cooldown window; the fact upsert and the counter increment
commit or roll back together.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import func, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.config import settings
from engagement.exceptions import StorageError, ValidationError
from engagement.identity import UserViewer, ViewerIdentity
from engagement.models.content import Content
from engagement.models.view import ViewFact
from engagement.services.content_lookup import find_missing_reference, get_live_counters
from engagement.utils.clock import utcnow
from engagement.utils.dialect import upsert_insert
from engagement.utils.metrics import VIEWS_RECORDED_TOTAL
from engagement.utils.retry import run_with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewResult:
    counted: bool
    view_count: int


@dataclass(frozen=True)
class ViewStats:
    total_views: int
    unique_viewers: int
    views_today: int
    views_this_week: int


class ViewRecorder:
    """Records views and keeps ``Content.view_count`` in step with the ``views`` table."""

    def __init__(
        self,
        db: AsyncSession,
        cooldown: timedelta | None = None,
        retry_attempts: int | None = None,
        retry_base_delay: float | None = None,
    ):
        self.db = db
        self.cooldown = settings.view_cooldown if cooldown is None else cooldown
        self.retry_attempts = settings.storage_retry_attempts if retry_attempts is None else retry_attempts
        self.retry_base_delay = settings.storage_retry_base_delay if retry_base_delay is None else retry_base_delay

    async def record_view(
        self,
        content_id: int,
        viewer: ViewerIdentity | None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> ViewResult:
        """
        Record a view of ``content_id`` by ``viewer``.

        Args:
            content_id: ID of the viewed content
            viewer: The viewing user or session, or None when neither is known
            ip_address: Client address, stored for analytics only
            user_agent: Client user agent, stored for analytics only

        Returns:
            ViewResult telling whether the view counted and the resulting counter

        Raises:
            ValidationError: If content_id is not a positive integer
            ContentNotFoundError: If the content does not exist or was deleted
            UserNotFoundError: If a user viewer has no row
            StorageError: If the transaction keeps failing; carries the last known counter
        """
        _validate_content_id(content_id)
        last_known: int | None = None

        async def attempt() -> ViewResult:
            nonlocal last_known
            view_count, _ = await get_live_counters(self.db, content_id)
            last_known = view_count

            if viewer is None:
                await self.db.commit()
                return ViewResult(counted=False, view_count=view_count)

            now = utcnow()
            cutoff = now - self.cooldown
            last_viewed_at = await self._last_viewed_at(content_id, viewer)
            if last_viewed_at is not None and last_viewed_at > cutoff:
                await self.db.commit()
                return ViewResult(counted=False, view_count=view_count)

            inserted = await self._upsert_fact(content_id, viewer, now, cutoff, ip_address, user_agent)
            if not inserted:
                view_count, _ = await get_live_counters(self.db, content_id)
                await self.db.commit()
                return ViewResult(counted=False, view_count=view_count)

            new_count = await self._increment(content_id)
            await self.db.commit()
            return ViewResult(counted=True, view_count=new_count)

        try:
            result = await run_with_retry(
                attempt,
                name="record_view",
                attempts=self.retry_attempts,
                base_delay=self.retry_base_delay,
                on_retry=self.db.rollback,
            )
        except IntegrityError as exc:
            # The conflict clause absorbs duplicates; what is left is a dangling reference
            await self.db.rollback()
            user_id = viewer.id if isinstance(viewer, UserViewer) else None
            missing = await find_missing_reference(self.db, content_id, user_id)
            if missing is None:
                raise
            logger.warning(f"View rejected for content {content_id}: {missing.message}")
            raise missing from exc
        except DBAPIError as exc:
            await self.db.rollback()
            logger.error(f"Failed to record view for content {content_id}: {exc}")
            raise StorageError(
                message="View could not be recorded",
                operation="record_view",
                last_known_count=last_known,
            ) from exc

        VIEWS_RECORDED_TOTAL.labels(counted=str(result.counted).lower()).inc()
        if result.counted:
            logger.info(f"View counted: content={content_id}, viewer={viewer.key}, views={result.view_count}")
        return result

    async def get_view_stats(self, content_id: int) -> ViewStats:
        """Get view statistics for a content item."""
        _validate_content_id(content_id)
        view_count, _ = await get_live_counters(self.db, content_id)

        now = utcnow()
        result = await self.db.execute(
            select(
                func.count(func.distinct(ViewFact.viewer_key)).label("unique_viewers"),
                func.count(ViewFact.id).filter(ViewFact.viewed_at > now - timedelta(days=1)).label("views_today"),
                func.count(ViewFact.id).filter(ViewFact.viewed_at > now - timedelta(days=7)).label("views_this_week"),
            ).where(ViewFact.content_id == content_id)
        )
        row = result.one()

        return ViewStats(
            total_views=view_count,
            unique_viewers=row.unique_viewers or 0,
            views_today=row.views_today or 0,
            views_this_week=row.views_this_week or 0,
        )

    async def _last_viewed_at(self, content_id: int, viewer: ViewerIdentity):
        result = await self.db.execute(
            select(ViewFact.viewed_at)
            .where(ViewFact.content_id == content_id, ViewFact.viewer_key == viewer.key)
            .order_by(ViewFact.viewed_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _upsert_fact(self, content_id, viewer, now, cutoff, ip_address, user_agent) -> bool:
        """
        Insert the view fact, or refresh it if the existing one is past the cooldown.

        Returns True when a row was written. A row that is still inside the
        cooldown is left alone, which is how a racing duplicate avoids a
        second increment.
        """
        user_id = viewer.id if isinstance(viewer, UserViewer) else None
        session_id = None if isinstance(viewer, UserViewer) else viewer.id

        insert = upsert_insert(self.db, ViewFact)
        stmt = (
            insert.values(
                content_id=content_id,
                user_id=user_id,
                session_id=session_id,
                viewer_key=viewer.key,
                ip_address=ip_address,
                user_agent=user_agent,
                viewed_at=now,
            )
            .on_conflict_do_update(
                index_elements=[ViewFact.content_id, ViewFact.viewer_key],
                set_={"viewed_at": now, "ip_address": ip_address, "user_agent": user_agent},
                where=ViewFact.viewed_at <= cutoff,
            )
            .returning(ViewFact.id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def _increment(self, content_id: int) -> int:
        result = await self.db.execute(
            update(Content)
            .where(Content.id == content_id)
            .values(view_count=Content.view_count + 1)
            .returning(Content.view_count)
        )
        return result.scalar_one()


def _validate_content_id(content_id) -> None:
    if isinstance(content_id, bool) or not isinstance(content_id, int) or content_id <= 0:
        raise ValidationError("Content id must be a positive integer", field="content_id")

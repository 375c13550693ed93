from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.exceptions import ContentNotFoundError, ResourceNotFoundError, UserNotFoundError
from engagement.models.content import Content
from engagement.models.user import User


async def get_live_counters(db: AsyncSession, content_id: int) -> tuple[int, int]:
    """Return ``(view_count, like_count)`` of a live content item."""
    result = await db.execute(
        select(Content.view_count, Content.like_count).where(
            Content.id == content_id,
            Content.deleted_at.is_(None),
        )
    )
    row = result.one_or_none()
    if row is None:
        raise ContentNotFoundError(content_id)
    return row.view_count, row.like_count


async def get_live_content(db: AsyncSession, content_id: int) -> Content:
    result = await db.execute(select(Content).where(Content.id == content_id, Content.deleted_at.is_(None)))
    content = result.scalars().first()
    if content is None:
        raise ContentNotFoundError(content_id)
    return content


async def find_missing_reference(
    db: AsyncSession, content_id: int, user_id: int | None = None
) -> ResourceNotFoundError | None:
    """
    Name the row a failed fact insert pointed at but could not find.

    Returns None when both the content and the user exist, in which case the
    integrity failure has some other cause.
    """
    if user_id is not None:
        user_exists = await db.scalar(select(exists().where(User.id == user_id)))
        if not user_exists:
            return UserNotFoundError(user_id)
    content_exists = await db.scalar(select(exists().where(Content.id == content_id, Content.deleted_at.is_(None))))
    if not content_exists:
        return ContentNotFoundError(content_id)
    return None

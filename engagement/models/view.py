"""View fact model used for view deduplication and analytics."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from engagement.database import Base
from engagement.utils.clock import utcnow


class ViewFact(Base):
    """
    The latest counted view of a content item by one viewer.

    A viewer is either an authenticated user or an anonymous session, never
    both. ``viewer_key`` is the normalized form of that identity and is what
    the uniqueness constraint is declared on. Rows older than the cooldown
    window are refreshed in place when the viewer comes back.
    """

    __tablename__ = "views"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    content_id = Column(Integer, ForeignKey("content.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    session_id = Column(String(255), nullable=True, index=True)
    viewer_key = Column(String(300), nullable=False)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    viewed_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    content = relationship("Content", back_populates="views")

    __table_args__ = (
        UniqueConstraint("content_id", "viewer_key", name="uq_views_content_viewer"),
        CheckConstraint(
            "(user_id IS NOT NULL AND session_id IS NULL) OR (user_id IS NULL AND session_id IS NOT NULL)",
            name="ck_views_single_identity",
        ),
        Index("idx_views_viewed_at", "viewed_at"),
    )

    def __repr__(self) -> str:
        return f"<ViewFact(content={self.content_id}, viewer={self.viewer_key}, at={self.viewed_at})>"

import enum

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from engagement.database import Base
from engagement.utils.clock import utcnow


class ContentStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Content(Base):
    """
    A published or draft post.

    ``view_count`` and ``like_count`` are denormalized aggregates of the
    ``views`` and ``likes`` fact tables. They are only ever changed in the
    same transaction as the corresponding fact write.
    """

    __tablename__ = "content"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Enum(ContentStatus), default=ContentStatus.PUBLISHED, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Engagement counters
    view_count = Column(Integer, default=0, server_default="0", nullable=False)
    like_count = Column(Integer, default=0, server_default="0", nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    # Relationships
    category = relationship("Category", back_populates="contents", lazy="selectin")
    author = relationship("User", back_populates="contents", lazy="selectin")
    views = relationship("ViewFact", back_populates="content", cascade="all, delete-orphan", passive_deletes=True)
    likes = relationship("LikeFact", back_populates="content", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("view_count >= 0", name="ck_content_view_count_non_negative"),
        CheckConstraint("like_count >= 0", name="ck_content_like_count_non_negative"),
        Index("idx_content_status", "status"),
        Index("idx_content_category_status", "category_id", "status"),
        Index("idx_content_view_count", "view_count"),
        Index("idx_content_like_count", "like_count"),
    )

    @property
    def is_live(self) -> bool:
        return self.deleted_at is None

    def __repr__(self) -> str:
        return f"<Content(id={self.id}, views={self.view_count}, likes={self.like_count})>"

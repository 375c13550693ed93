from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from engagement.database import Base
from engagement.utils.clock import utcnow


class LikeFact(Base):
    """
    A user's like on a content item. Existence of the row means "liked".

    Each user can like a content item at most once.
    """

    __tablename__ = "likes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    content_id = Column(Integer, ForeignKey("content.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    content = relationship("Content", back_populates="likes")
    user = relationship("User", back_populates="likes", lazy="selectin")

    __table_args__ = (UniqueConstraint("content_id", "user_id", name="uq_likes_content_user"),)

    def __repr__(self) -> str:
        return f"<LikeFact(content={self.content_id}, user={self.user_id})>"

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from engagement.database import Base
from engagement.utils.clock import utcnow


# Rows are owned by the registration flow; engagement only references them.
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), index=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    contents = relationship("Content", back_populates="author")
    likes = relationship("LikeFact", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship

from engagement.database import Base
from engagement.utils.clock import utcnow


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    contents = relationship("Content", back_populates="category")

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, slug={self.slug})>"

from .category import Category
from .content import Content, ContentStatus
from .like import LikeFact
from .user import User
from .view import ViewFact

__all__ = [
    "Category",
    "Content",
    "ContentStatus",
    "LikeFact",
    "User",
    "ViewFact",
]

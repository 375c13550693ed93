from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from engagement.models.content import ContentStatus


class ViewResponse(BaseModel):
    counted: bool = Field(..., description="Whether this request incremented the view counter.")
    view_count: int = Field(..., ge=0)


class ViewStatsResponse(BaseModel):
    content_id: int
    total_views: int
    unique_viewers: int
    views_today: int
    views_this_week: int


class LikeResponse(BaseModel):
    liked: bool = Field(..., description="The user's like state after the request.")
    like_count: int = Field(..., ge=0)


class LikerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    username: str
    liked_at: datetime


class LikerListResponse(BaseModel):
    likes: list[LikerResponse]
    count: int


class LikedContentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    content_id: int
    title: str
    liked_at: datetime


class LikedContentListResponse(BaseModel):
    likes: list[LikedContentResponse]
    count: int


class ContentItem(BaseModel):
    """A content item with its engagement counters."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: int
    title: str
    description: str | None = None
    status: ContentStatus
    category_id: int
    category_name: str | None = None
    category_slug: str | None = None
    category_icon: str | None = None
    author_id: int
    author_username: str | None = None
    view_count: int
    like_count: int
    created_at: datetime

    @classmethod
    def from_content(cls, content) -> "ContentItem":
        category = content.category
        author = content.author
        return cls(
            id=content.id,
            title=content.title,
            description=content.description,
            status=content.status,
            category_id=content.category_id,
            category_name=category.name if category else None,
            category_slug=category.slug if category else None,
            category_icon=category.icon if category else None,
            author_id=content.author_id,
            author_username=author.username if author else None,
            view_count=content.view_count,
            like_count=content.like_count,
            created_at=content.created_at,
        )


class SpotlightResponse(BaseModel):
    items: list[ContentItem]
    count: int
    cached: bool = Field(..., description="True when served from the spotlight cache.")


class ContentDetailResponse(BaseModel):
    content: ContentItem
    view_counted: bool

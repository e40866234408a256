from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field
from app.models.article import ArticleStatus
from app.schemas.user import UserBrief


class CategorySummary(BaseModel):
    id: str
    name: str
    slug: str

    class Config:
        from_attributes = True


class TagSummary(BaseModel):
    id: str
    name: str
    slug: str

    class Config:
        from_attributes = True


class ArticleBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255, description="Article title")
    content: str = Field(..., min_length=1, description="Article body")
    excerpt: Optional[str] = Field(None, max_length=500, description="Short summary; derived from content when omitted")
    featured_image_url: Optional[str] = Field(None, max_length=500)
    meta_title: Optional[str] = Field(None, max_length=255)
    meta_description: Optional[str] = Field(None, max_length=500)
    meta_keywords: Optional[str] = Field(None, max_length=500)


class ArticleCreate(ArticleBase):
    """Payload for a new article"""
    category_ids: List[str] = Field(default_factory=list)
    tag_ids: List[str] = Field(default_factory=list)
    status: ArticleStatus = Field(default=ArticleStatus.DRAFT, description="draft or published")


class ArticleUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = Field(None, min_length=1)
    excerpt: Optional[str] = Field(None, max_length=500)
    featured_image_url: Optional[str] = Field(None, max_length=500)
    meta_title: Optional[str] = Field(None, max_length=255)
    meta_description: Optional[str] = Field(None, max_length=500)
    meta_keywords: Optional[str] = Field(None, max_length=500)
    category_ids: Optional[List[str]] = None
    tag_ids: Optional[List[str]] = None


class StaffPickUpdate(BaseModel):
    is_staff_pick: bool


class ArticleSummary(BaseModel):
    """List item"""
    id: str
    title: str
    slug: str
    excerpt: Optional[str] = ""
    featured_image_url: Optional[str] = None
    status: ArticleStatus
    published_at: Optional[datetime] = None
    view_count: int
    reading_time_minutes: int
    is_staff_pick: bool
    author: UserBrief
    categories: List[CategorySummary] = []
    tags: List[TagSummary] = []
    likes_count: int = 0
    comments_count: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ArticleResponse(ArticleSummary):
    """Full article"""
    content: str
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    meta_keywords: Optional[str] = None
    user_liked: bool = False
    user_bookmarked: bool = False


class ArticleListResponse(BaseModel):
    articles: List[ArticleSummary]
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool


class ArticleListQuery(BaseModel):
    """Query-string filters for article listings"""
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    sort: str = Field(default="newest", pattern="^(newest|oldest|popular|alphabetical)$")
    status: Optional[ArticleStatus] = None
    author_id: Optional[str] = None
    category: Optional[str] = Field(None, description="Category slug")
    tag: Optional[str] = Field(None, description="Tag slug")
    search: Optional[str] = Field(None, max_length=200)
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

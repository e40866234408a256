from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field
from app.models.engagement import NotificationType
from app.schemas.user import UserBrief


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    parent_id: Optional[str] = None


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class CommentResponse(BaseModel):
    id: str
    article_id: str
    parent_id: Optional[str] = None
    content: str
    is_approved: bool
    user: UserBrief
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CommentWithReplies(CommentResponse):
    replies: List[CommentResponse] = []


class LikeStatusResponse(BaseModel):
    article_id: str
    liked: bool
    likes_count: int


class BookmarkStatusResponse(BaseModel):
    article_id: str
    bookmarked: bool


class NotificationResponse(BaseModel):
    id: str
    type: NotificationType
    message: str
    article_id: Optional[str] = None
    read: bool
    actor: Optional[UserBrief] = None
    created_at: datetime

    class Config:
        from_attributes = True


class UnreadCountResponse(BaseModel):
    unread_count: int

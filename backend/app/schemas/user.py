from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field
from app.models.user import UserRole


class UserBrief(BaseModel):
    """Author summary embedded in articles, comments and notifications"""
    id: str
    username: str
    first_name: Optional[str] = ""
    last_name: Optional[str] = ""
    profile_image_url: Optional[str] = None

    class Config:
        from_attributes = True


class UserResponse(UserBrief):
    email: EmailStr
    bio: Optional[str] = ""
    role: UserRole
    is_verified: bool
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class CategoryBrief(BaseModel):
    id: str
    name: str
    slug: str

    class Config:
        from_attributes = True


class UserProfileResponse(BaseModel):
    """Public profile with social counters"""
    id: str
    username: str
    first_name: Optional[str] = ""
    last_name: Optional[str] = ""
    bio: Optional[str] = ""
    profile_image_url: Optional[str] = None
    role: UserRole
    created_at: datetime
    article_count: int = 0
    followers_count: int = 0
    following_count: int = 0
    is_following: bool = False
    interests: List[CategoryBrief] = []


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    profile_image_url: Optional[str] = Field(None, max_length=500)


class UserAdminUpdate(BaseModel):
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    is_verified: Optional[bool] = None


class InterestsUpdate(BaseModel):
    category_ids: List[str] = Field(default_factory=list, max_length=50)


class FollowStatusResponse(BaseModel):
    user_id: str
    is_following: bool

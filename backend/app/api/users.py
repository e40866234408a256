from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.core.deps import (
    get_current_admin_user,
    get_current_editor_user,
    get_current_user,
    get_optional_current_user,
    pagination_params,
)
from app.models.user import User, UserRole
from app.schemas.article import ArticleListResponse
from app.schemas.pagination import MessageResponse, PaginatedResponse, PaginationParams
from app.schemas.user import (
    CategoryBrief,
    FollowStatusResponse,
    InterestsUpdate,
    UserAdminUpdate,
    UserBrief,
    UserProfileResponse,
    UserResponse,
    UserUpdate,
)
from app.services.article_service import ArticleService
from app.services.engagement_service import EngagementService
from app.services.user_service import UserService

router = APIRouter()


@router.get("", response_model=PaginatedResponse[UserResponse])
async def list_users(
    pagination: PaginationParams = Depends(pagination_params),
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
    current_user: User = Depends(get_current_editor_user),
    db: Session = Depends(get_db)
):
    """List accounts (editors and admins)"""
    return UserService.list_users(db, current_user, pagination, role, is_active, search)


# Routes on the current user must precede /{user_id}
@router.get("/interests", response_model=List[CategoryBrief])
async def get_interests(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return UserService.get_interests(db, current_user)


@router.put("/interests", response_model=List[CategoryBrief])
async def set_interests(
    body: InterestsUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Replace the current user's categories of interest"""
    return UserService.set_interests(db, current_user, body.category_ids)


@router.delete("/interests", response_model=MessageResponse)
async def clear_interests(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return UserService.clear_interests(db, current_user)


@router.get("/bookmarks", response_model=ArticleListResponse)
async def get_bookmarks(
    pagination: PaginationParams = Depends(pagination_params),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return EngagementService.bookmarks(db, current_user, pagination)


@router.get("/{user_id}", response_model=UserProfileResponse)
async def get_user(
    user_id: str,
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: Session = Depends(get_db)
):
    return UserService.get_profile(db, user_id, current_user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    user_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return UserService.update_user(db, user_id, user_data, current_user)


@router.patch("/{user_id}/admin", response_model=UserResponse)
async def admin_update_user(
    user_id: str,
    user_data: UserAdminUpdate,
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    """Change role or account flags (admin only)"""
    return UserService.admin_update_user(db, user_id, user_data, current_user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    UserService.delete_user(db, user_id, current_user)


@router.get("/{user_id}/articles", response_model=ArticleListResponse)
async def get_user_articles(
    user_id: str,
    pagination: PaginationParams = Depends(pagination_params),
    db: Session = Depends(get_db)
):
    UserService.get_user_or_404(db, user_id)
    return ArticleService.list_by_author(db, user_id, pagination.page, pagination.limit)


@router.post("/{user_id}/follow", response_model=FollowStatusResponse)
async def follow_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return UserService.follow(db, current_user, user_id)


@router.delete("/{user_id}/follow", response_model=FollowStatusResponse)
async def unfollow_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return UserService.unfollow(db, current_user, user_id)


@router.get("/{user_id}/followers", response_model=PaginatedResponse[UserBrief])
async def get_followers(
    user_id: str,
    pagination: PaginationParams = Depends(pagination_params),
    db: Session = Depends(get_db)
):
    return UserService.followers(db, user_id, pagination)


@router.get("/{user_id}/following", response_model=PaginatedResponse[UserBrief])
async def get_following(
    user_id: str,
    pagination: PaginationParams = Depends(pagination_params),
    db: Session = Depends(get_db)
):
    return UserService.following(db, user_id, pagination)
